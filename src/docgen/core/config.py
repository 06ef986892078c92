"""Pydantic models and YAML loaders for docgen's on-disk configuration.

Three files are understood here:

- ``docgen.config.yml``: one per package (or per sections-mode sub-collection)
- ``concept-manifest.yml``: one per concept directory
- ``grove.yml``: one per ecosystem root, optionally one per workspace

Only the keys docgen's aggregation and watch paths act on are modelled.
Everything else (LLM generation knobs, README templating, ...) is ignored
on load so that a config written for the full toolchain still validates.

Usage::

    from docgen.core.config import load_docgen_config

    cfg = load_docgen_config(Path("docs/docgen.config.yml"))
    for section in cfg.sections:
        print(section.output, section.effective_status())
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigLoadError
from .status import PublicationStatus, resolve_status

CONFIG_FILENAME = "docgen.config.yml"
CONCEPT_MANIFEST_FILENAME = "concept-manifest.yml"
ECOSYSTEM_CONFIG_FILENAMES = ("grove.yml", "grove.yaml")

OUTPUT_MODE_PACKAGE = "package"
OUTPUT_MODE_SECTIONS = "sections"


class _ConfigModel(BaseModel):
    """Base for config models: unknown keys ignored, YAML nulls mean "unset"."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# =============================================================================
# docgen.config.yml
# =============================================================================


class SettingsConfig(_ConfigModel):
    """Generator-wide settings block."""

    model: str = ""
    output_mode: Literal["package", "sections"] = OUTPUT_MODE_PACKAGE
    ecosystems: list[str] = Field(default_factory=list)
    rules_file: str = ""
    output_dir: str = Field(default="", description="Docs subdirectory, relative to the content root")


class SectionConfig(_ConfigModel):
    """A single piece of documentation owned by a package."""

    name: str = ""
    title: str = ""
    order: int = 0
    status: str | None = Field(default=None, description="draft, dev, or production (default: draft)")
    output: str = ""
    output_dir: str = ""
    type: str = ""
    prompt: str = ""
    json_key: str = ""

    # capture sections
    binary: str = ""
    format: str = ""
    depth: int = 0
    subcommand_order: list[str] = Field(default_factory=list)

    agg_strip_lines: int = Field(default=0, ge=0)

    def effective_status(self) -> PublicationStatus:
        """The declared status, or draft when none is set."""
        return resolve_status(self.status, default=PublicationStatus.DRAFT)


class SidebarCategory(_ConfigModel):
    icon: str = ""
    flat: bool = False
    packages: list[str] = Field(default_factory=list)


class SidebarPackage(_ConfigModel):
    icon: str = ""
    color: str = ""
    status: str | None = None

    def effective_status(self) -> PublicationStatus:
        """Sidebar entries are opt-out: no status means production."""
        return resolve_status(self.status, default=PublicationStatus.PRODUCTION)


class SidebarConfig(_ConfigModel):
    """Sidebar ordering and display for the site generator."""

    category_order: list[str] = Field(default_factory=list)
    categories: dict[str, SidebarCategory] = Field(default_factory=dict)
    packages: dict[str, SidebarPackage] = Field(default_factory=dict)
    package_category_override: dict[str, str] = Field(default_factory=dict)

    def allowed_packages(self) -> set[str]:
        """Packages listed under any category; empty means "no allow-list"."""
        allowed: set[str] = set()
        for category in self.categories.values():
            allowed.update(category.packages)
        return allowed


class DocgenConfig(_ConfigModel):
    """Root of ``docgen.config.yml``."""

    enabled: bool = False
    title: str = ""
    description: str = ""
    category: str = ""
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
    sections: list[SectionConfig] = Field(default_factory=list)
    sidebar: SidebarConfig | None = None
    logos: list[str] = Field(default_factory=list)

    @property
    def is_sections_mode(self) -> bool:
        return self.settings.output_mode == OUTPUT_MODE_SECTIONS


# =============================================================================
# concept-manifest.yml
# =============================================================================


class ConceptManifest(_ConfigModel):
    """A concept: an independently publishable set of pages under a package."""

    id: str = ""
    title: str = ""
    description: str = ""
    status: str = ""
    docgen_publish: str | None = None
    docgen_order: list[str] = Field(default_factory=list)

    def publish_status(self) -> PublicationStatus:
        """``docgen_publish``, defaulting to draft (not published)."""
        return resolve_status(self.docgen_publish, default=PublicationStatus.DRAFT)


# =============================================================================
# grove.yml
# =============================================================================


class EcosystemConfig(_ConfigModel):
    name: str = ""
    version: str = ""
    workspaces: list[str] = Field(default_factory=list)


# =============================================================================
# Loaders
# =============================================================================


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from ``path``.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, or not a mapping.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(f"failed to read {path}: {e}", cause=e).with_context(path=str(path))

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"failed to parse {path}: {e}", cause=e).with_context(path=str(path))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"expected a mapping in {path}, got {type(data).__name__}"
        ).with_context(path=str(path))
    return data


def _validate(model: type[_ConfigModel], path: Path) -> Any:
    data = load_yaml(path)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(f"invalid {path.name} at {path}: {e}", cause=e).with_context(
            path=str(path)
        )


def load_docgen_config(path: Path) -> DocgenConfig:
    """Load and validate a ``docgen.config.yml`` file."""
    return _validate(DocgenConfig, Path(path))


def load_concept_manifest(path: Path) -> ConceptManifest:
    """Load and validate a ``concept-manifest.yml`` file."""
    return _validate(ConceptManifest, Path(path))


def find_ecosystem_config(directory: Path) -> Path | None:
    """Return the ecosystem config file in ``directory``, if any."""
    for name in ECOSYSTEM_CONFIG_FILENAMES:
        candidate = Path(directory) / name
        if candidate.is_file():
            return candidate
    return None


def load_ecosystem_config(path: Path) -> EcosystemConfig:
    """Load and validate a ``grove.yml`` file."""
    return _validate(EcosystemConfig, Path(path))


__all__ = [
    "CONFIG_FILENAME",
    "CONCEPT_MANIFEST_FILENAME",
    "ECOSYSTEM_CONFIG_FILENAMES",
    "OUTPUT_MODE_PACKAGE",
    "OUTPUT_MODE_SECTIONS",
    "SettingsConfig",
    "SectionConfig",
    "SidebarCategory",
    "SidebarPackage",
    "SidebarConfig",
    "DocgenConfig",
    "ConceptManifest",
    "EcosystemConfig",
    "load_yaml",
    "load_docgen_config",
    "load_concept_manifest",
    "find_ecosystem_config",
    "load_ecosystem_config",
]
