"""
Process-level settings for docgen.

Manifesto:
    Per-package behaviour lives in ``docgen.config.yml``; everything that
    belongs to the machine running docgen (where the authoring notebook
    lives, where ecosystems are checked out, the default build mode) is
    read once from ``DOCGEN_*`` environment variables or a ``.env`` file
    and cached.

Tags:
    docgen, configuration, settings, pydantic

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .status import BuildMode


class DocgenSettings(BaseSettings):
    """Docgen centralized configuration.

    All fields can be set via ``DOCGEN_*`` environment variables (e.g.
    ``DOCGEN_MODE=prod``) or through a ``.env`` file. List values accept
    JSON (``DOCGEN_ECOSYSTEM_PATHS='["~/code", "~/work"]'``).
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Build ────────────────────────────────────────────────────
    # Parsed by ``watch`` only; other commands ignore it.
    mode: str = Field(default=BuildMode.DEV.value, description="Default build mode for watch")

    # ── Locations ────────────────────────────────────────────────
    notebook_root: Path | None = Field(
        default=None,
        description="Root of the authoring notebook; unset disables the authoring location",
    )
    ecosystem_paths: list[Path] = Field(
        default_factory=list,
        description="Directories searched for ecosystems (each may be an ecosystem or hold several)",
    )

    # ── Watch ────────────────────────────────────────────────────
    debounce_ms: int = Field(default=100, ge=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto", description="console, json, or auto")

    @field_validator("notebook_root", mode="after")
    @classmethod
    def _expand_notebook_root(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("ecosystem_paths", mode="after")
    @classmethod
    def _expand_ecosystem_paths(cls, v: list[Path]) -> list[Path]:
        return [p.expanduser() for p in v]

    @property
    def json_logs(self) -> bool | None:
        if self.log_format == "json":
            return True
        if self.log_format == "console":
            return False
        return None


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DocgenSettings] = {}


def get_settings(*, _force_reload: bool = False) -> DocgenSettings:
    """Load, validate, and cache a :class:`DocgenSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = DocgenSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["DocgenSettings", "get_settings", "clear_settings_cache"]
