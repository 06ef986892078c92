"""Batch aggregation and the per-unit build logic it shares with watch mode."""

from docgen.aggregation.aggregator import AggregationResult, Aggregator
from docgen.aggregation.units import UnitBuilder
from docgen.aggregation.writer import AstroWriter, DistWriter, OutputWriter

__all__ = [
    "Aggregator",
    "AggregationResult",
    "UnitBuilder",
    "OutputWriter",
    "DistWriter",
    "AstroWriter",
]
