"""
Publication lifecycle and the visibility predicate.

Content moves through three publication states. Where a piece of content
ends up depends only on its state and the build mode:

    ┌────────────┬──────────┬───────────┐
    │ status     │ mode=dev │ mode=prod │
    ├────────────┼──────────┼───────────┤
    │ draft      │    no    │    no     │
    │ dev        │   yes    │    no     │
    │ production │   yes    │   yes     │
    └────────────┴──────────┴───────────┘

The same predicate gates sections, sidebar packages, concepts and
sections-mode content files. What differs between them is only the
default used when no status is declared (see ``resolve_status``).

Tags:
    docgen, publication-status, visibility
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .errors import InvalidModeError
from .logging import get_logger

logger = get_logger(__name__)


class PublicationStatus(str, Enum):
    """Ordered publication lifecycle: draft < dev < production."""

    DRAFT = "draft"  # Authoring area only
    DEV = "dev"  # Dev builds
    PRODUCTION = "production"  # Every build

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    PublicationStatus.DRAFT: 0,
    PublicationStatus.DEV: 1,
    PublicationStatus.PRODUCTION: 2,
}


class BuildMode(str, Enum):
    """Build mode selected on the command line."""

    DEV = "dev"
    PROD = "prod"

    @classmethod
    def parse(cls, value: str | BuildMode) -> BuildMode:
        """Parse a mode string, raising ``InvalidModeError`` for anything else."""
        if isinstance(value, BuildMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidModeError(
                f"invalid mode '{value}': must be 'dev' or 'prod'", cause=e
            ) from e


def resolve_status(
    value: Any,
    default: PublicationStatus = PublicationStatus.DRAFT,
) -> PublicationStatus:
    """Turn a raw status value into a ``PublicationStatus``.

    Empty values take ``default``. Unknown strings are treated as draft so a
    typo can never publish something.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, PublicationStatus):
        return value
    try:
        return PublicationStatus(str(value).strip().strip("\"'").lower())
    except ValueError:
        logger.warning("status.unknown_value", value=str(value), treated_as="draft")
        return PublicationStatus.DRAFT


def included(status: PublicationStatus | str, mode: BuildMode | str) -> bool:
    """Return True when content with ``status`` is visible in ``mode``."""
    status = resolve_status(status)
    mode = BuildMode.parse(mode)
    return status.rank >= _MINIMUM_STATUS[mode].rank


_MINIMUM_STATUS = {
    BuildMode.DEV: PublicationStatus.DEV,
    BuildMode.PROD: PublicationStatus.PRODUCTION,
}


__all__ = ["PublicationStatus", "BuildMode", "resolve_status", "included"]
