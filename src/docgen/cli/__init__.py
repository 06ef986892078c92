"""
CLI layer for docgen.

Entry point::

    docgen --help
"""

from docgen.cli.app import app

__all__ = ["app"]
