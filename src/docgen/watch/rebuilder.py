"""
Incremental rebuild of a single watched unit.

Manifesto:
    A rebuild always reflects what is on disk *now*. The unit's config and
    content root are reloaded at rebuild time, never at event time, so a
    burst of edits that ends with a config change is rebuilt against the
    new config. Nothing from a previous rebuild is reused.

Guardrails:
    - The live manifest is only updated if it already exists; a fresh
      website tree needs one full ``docgen aggregate`` first.
    - The manifest is read-modify-written without a lock. Running
      ``aggregate`` into the same tree at the same time may lose one of
      the two writes.

Tags:
    docgen, watch, incremental, rebuild
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from docgen.aggregation.units import UnitBuilder
from docgen.aggregation.writer import OutputWriter
from docgen.core.config import DocgenConfig
from docgen.core.logging import LogContext, get_logger
from docgen.core.manifest import Manifest
from docgen.core.status import BuildMode
from docgen.core.transform import OutputTransform
from docgen.workspace.locator import SourceLocator


@dataclass
class WatchedUnit:
    """A package (or sections-mode root) under watch."""

    owner_key: str
    package_name: str
    workspace_path: Path
    ecosystem: str = ""
    config: DocgenConfig | None = None


class IncrementalRebuilder:
    """Re-runs the per-unit build for one owner into the live output tree."""

    def __init__(
        self,
        writer: OutputWriter,
        locator: SourceLocator,
        mode: BuildMode | str,
        units: dict[str, WatchedUnit],
        *,
        logger: Any = None,
        transform: OutputTransform | str = OutputTransform.ASTRO,
        **builder_options: Any,
    ):
        self.writer = writer
        self.locator = locator
        self.mode = BuildMode.parse(mode)
        self.units = units
        self.transform = OutputTransform(transform)
        self.logger = logger or get_logger(__name__)
        self.builder_options = builder_options

    def rebuild(self, owner_key: str) -> None:
        """Reload the owner's config from disk and rebuild it.

        Raises:
            UnitError: The config could not be loaded or the unit not written.
        """
        unit = self.units.get(owner_key)
        if unit is None:
            self.logger.debug("watch.unknown_owner", owner=owner_key)
            return

        with LogContext(package=unit.package_name, mode=self.mode.value):
            root = self.locator.resolve(unit.workspace_path, unit.package_name)
            unit.config = root.load_config()
            builder = UnitBuilder(
                self.writer,
                self.locator,
                self.mode,
                self.transform,
                logger=self.logger,
                **self.builder_options,
            )

            if unit.config.is_sections_mode:
                sections = builder.build_collections(root, from_frontmatter=True)

                def upsert_sections(manifest: Manifest) -> None:
                    for name, section in sections.items():
                        if section is None:
                            manifest.remove_website_section(name)
                        else:
                            manifest.upsert_website_section(section)

                self._update_manifest(upsert_sections)
                return

            package = builder.build_package(unit.package_name, unit.workspace_path, root, unit.config)
            if package is None:
                self._update_manifest(lambda m: m.remove_package(unit.package_name))
            else:
                self._update_manifest(lambda m: m.upsert_package(package))

    def _update_manifest(self, change: Callable[[Manifest], Any]) -> None:
        path = self.writer.manifest_path
        if not path.is_file():
            self.logger.debug("watch.manifest_missing", path=str(path))
            return
        manifest = Manifest.load(path)
        change(manifest)
        manifest.generated_at = datetime.now(timezone.utc)
        manifest.save(path)


__all__ = ["WatchedUnit", "IncrementalRebuilder"]
