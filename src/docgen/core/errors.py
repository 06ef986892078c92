"""
Structured error types for docgen.

Every failure in docgen falls into one of three buckets, and the bucket
decides how far the failure is allowed to travel:

- **SetupError:** discovery or watcher initialisation failed. Fatal; the
  command aborts and exits non-zero.
- **UnitError:** one package, section, concept or sub-collection could not
  be read, parsed, generated or written. Recovered; the unit is logged and
  skipped and the run continues.
- **TransientWatchError:** the filesystem watcher reported an internal
  error. Logged; the watch loop continues.

Manifesto:
    - **Typed hierarchy:** callers catch the bucket they can handle
    - **Rich context:** errors carry ecosystem/package/section/path
    - **Error chaining:** the original exception is kept as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                       DocgenError                         │
        │              (category, context, cause)                   │
        ├───────────────────────────────────────────────────────────┤
        │  SetupError            UnitError          TransientWatch  │
        │  (SETUP)               (UNIT)             Error (WATCH)   │
        │     │                     │                               │
        │  DiscoveryError        ConfigLoadError                    │
        │  WatcherInitError      ContentNotFoundError               │
        │  InvalidModeError      UnitWriteError                     │
        │                        GenerationError                    │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> err = ConfigLoadError("invalid YAML").with_context(package="flow")
    >>> err.category
    <ErrorCategory.UNIT: 'UNIT'>
    >>> err.to_dict()["context"]
    {'package': 'flow'}

Tags:
    error-handling, exception-hierarchy, error-context, docgen
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error buckets; the bucket decides whether a failure is fatal."""

    SETUP = "SETUP"  # Discovery / watcher init, aborts the command
    UNIT = "UNIT"  # One unit skipped, run continues
    WATCH = "WATCH"  # Watcher-internal, loop continues
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set appear in ``to_dict()``; anything without a
    dedicated field goes into ``metadata``.

    Attributes:
        ecosystem: Ecosystem being processed
        package: Package (workspace) name
        section: Section output filename, concept id, or sub-collection name
        path: Filesystem path involved
        metadata: Additional key-value pairs
    """

    ecosystem: str | None = None
    package: str | None = None
    section: str | None = None
    path: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["ecosystem", "package", "section", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocgenError(Exception):
    """
    Base exception for all docgen errors.

    Subclasses set ``default_category``; everything else is per instance.

    Examples:
        >>> try:
        ...     raise OSError("disk full")
        ... except OSError as e:
        ...     error = UnitWriteError("write failed", cause=e)
        >>> error.cause
        OSError('disk full')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    @property
    def fatal(self) -> bool:
        """True when this error must abort the running command."""
        return self.category == ErrorCategory.SETUP

    def with_context(self, **kwargs: Any) -> DocgenError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigLoadError("bad YAML").with_context(
                package="flow",
                path="/nb/workspaces/flow/docgen/docgen.config.yml",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SETUP ERRORS (fatal)
# =============================================================================


class SetupError(DocgenError):
    """Failure before any unit is processed; aborts the command."""

    default_category = ErrorCategory.SETUP


class DiscoveryError(SetupError):
    """The current ecosystem (or its workspace list) could not be located."""


class WatcherInitError(SetupError):
    """The filesystem watcher could not be created, or found nothing to watch."""


class InvalidModeError(SetupError):
    """Build mode is neither ``dev`` nor ``prod``."""


# =============================================================================
# UNIT ERRORS (recovered, unit skipped)
# =============================================================================


class UnitError(DocgenError):
    """Failure confined to one package, section, concept, or sub-collection."""

    default_category = ErrorCategory.UNIT


class ConfigLoadError(UnitError):
    """A YAML config or manifest is missing, unreadable, or invalid."""


class ContentNotFoundError(UnitError):
    """Neither the pre-generated file nor a placeholder source exists."""


class UnitWriteError(UnitError):
    """Writing into the output tree failed."""


class GenerationError(UnitError):
    """A content generator could not produce its file."""


# =============================================================================
# WATCH ERRORS (logged, loop continues)
# =============================================================================


class TransientWatchError(DocgenError):
    """The watcher reported an internal error; the loop keeps running."""

    default_category = ErrorCategory.WATCH


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocgenError",
    "SetupError",
    "DiscoveryError",
    "WatcherInitError",
    "InvalidModeError",
    "UnitError",
    "ConfigLoadError",
    "ContentNotFoundError",
    "UnitWriteError",
    "GenerationError",
    "TransientWatchError",
]
