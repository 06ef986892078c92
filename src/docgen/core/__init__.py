"""Docgen Core -- shared primitives for the aggregation and watch paths.

Architecture::

    errors.py        Typed error hierarchy (SetupError / UnitError / TransientWatchError)
    logging.py       structlog configuration and context binding
    settings.py      DOCGEN_* process settings (pydantic-settings)
    status.py        PublicationStatus, BuildMode, included()
    config.py        docgen.config.yml / concept-manifest.yml / grove.yml models
    frontmatter.py   Leading ``---`` blocks in markdown
    transform.py     Astro path rewrite and frontmatter
    manifest.py      manifest.json models and writer
"""

from docgen.core.errors import DocgenError, SetupError, TransientWatchError, UnitError
from docgen.core.logging import configure_logging, get_logger
from docgen.core.status import BuildMode, PublicationStatus, included

__all__ = [
    "DocgenError",
    "SetupError",
    "UnitError",
    "TransientWatchError",
    "configure_logging",
    "get_logger",
    "BuildMode",
    "PublicationStatus",
    "included",
]
