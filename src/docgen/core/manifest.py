"""
Manifest of aggregated documentation.

The manifest is the contract between docgen and the site generator: which
packages exist, their sections in display order, the website sub-collections,
and a status-filtered sidebar snapshot.

Manifesto:
    The site generator is a separate process that only ever reads
    ``manifest.json``. Its schema is therefore an external contract: field
    names are stable, ordering is deterministic, and aggregating the same
    inputs twice produces byte-identical output apart from ``generated_at``.

Architecture:
    ::

        Manifest
          ├── packages: [PackageManifest]
          │       └── sections: [SectionManifest]   (sorted by order)
          ├── website_sections: [WebsiteSection]
          │       └── files: [SectionManifest]
          ├── sidebar: SidebarManifest | None
          └── generated_at: datetime (UTC)

        batch aggregate  ── Manifest(...).save(path)        overwrite
        watch rebuild    ── Manifest.load(path)
                            .upsert_package(...) .save()    read-modify-write

Guardrails:
    - Incremental rebuilds and a concurrent batch run against the same
      output tree are not coordinated; the last writer wins.

Tags:
    docgen, manifest, json, contract
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .config import SidebarConfig
from .errors import ConfigLoadError, UnitWriteError
from .status import BuildMode, included

MANIFEST_FILENAME = "manifest.json"


class SectionManifest(BaseModel):
    name: str = ""
    title: str = ""
    order: int = 0
    path: str = ""
    json_key: str | None = None


class PackageManifest(BaseModel):
    name: str
    title: str = ""
    description: str = ""
    category: str = ""
    docs_path: str = ""
    version: str = ""
    repo_url: str | None = None
    changelog_path: str | None = None
    sections: list[SectionManifest] = Field(default_factory=list)


class WebsiteSection(BaseModel):
    """A top-level sub-collection (e.g. ``overview``), separate from package docs."""

    name: str
    title: str = ""
    files: list[SectionManifest] = Field(default_factory=list)


class SidebarCategoryManifest(BaseModel):
    icon: str = ""
    flat: bool = False
    packages: list[str] = Field(default_factory=list)


class SidebarPackageManifest(BaseModel):
    icon: str = ""
    color: str = ""
    status: str = ""


class SidebarManifest(BaseModel):
    category_order: list[str] = Field(default_factory=list)
    categories: dict[str, SidebarCategoryManifest] = Field(default_factory=dict)
    packages: dict[str, SidebarPackageManifest] = Field(default_factory=dict)
    package_category_override: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_config(cls, sidebar: SidebarConfig, mode: BuildMode) -> SidebarManifest:
        """Snapshot ``sidebar``, dropping packages not visible in ``mode``."""
        packages: dict[str, SidebarPackageManifest] = {}
        for name, pkg in sidebar.packages.items():
            status = pkg.effective_status()
            if not included(status, mode):
                continue
            packages[name] = SidebarPackageManifest(icon=pkg.icon, color=pkg.color, status=status.value)

        return cls(
            category_order=list(sidebar.category_order),
            categories={
                name: SidebarCategoryManifest(icon=cat.icon, flat=cat.flat, packages=list(cat.packages))
                for name, cat in sidebar.categories.items()
            },
            packages=packages,
            package_category_override=dict(sidebar.package_category_override),
        )


class Manifest(BaseModel):
    packages: list[PackageManifest] = Field(default_factory=list)
    website_sections: list[WebsiteSection] = Field(default_factory=list)
    sidebar: SidebarManifest | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def upsert_package(self, package: PackageManifest) -> None:
        """Replace the entry with the same name, or append."""
        for i, existing in enumerate(self.packages):
            if existing.name == package.name:
                self.packages[i] = package
                return
        self.packages.append(package)

    def remove_package(self, name: str) -> bool:
        before = len(self.packages)
        self.packages = [p for p in self.packages if p.name != name]
        return len(self.packages) != before

    def upsert_website_section(self, section: WebsiteSection) -> None:
        """Replace the entry with the same name, or append."""
        for i, existing in enumerate(self.website_sections):
            if existing.name == section.name:
                self.website_sections[i] = section
                return
        self.website_sections.append(section)

    def remove_website_section(self, name: str) -> bool:
        before = len(self.website_sections)
        self.website_sections = [s for s in self.website_sections if s.name != name]
        return len(self.website_sections) != before

    def to_json(self) -> str:
        data = self.model_dump(mode="json", exclude_none=True)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    def save(self, path: Path) -> None:
        """Write the manifest to ``path`` atomically."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".manifest-", suffix=".json", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.to_json())
            os.replace(tmp, path)
        except OSError as e:
            raise UnitWriteError(f"failed to write manifest {path}: {e}", cause=e).with_context(
                path=str(path)
            )

    @classmethod
    def load(cls, path: Path) -> Manifest:
        path = Path(path)
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise ConfigLoadError(f"failed to load manifest {path}: {e}", cause=e).with_context(
                path=str(path)
            )


__all__ = [
    "MANIFEST_FILENAME",
    "SectionManifest",
    "PackageManifest",
    "WebsiteSection",
    "SidebarManifest",
    "Manifest",
]
