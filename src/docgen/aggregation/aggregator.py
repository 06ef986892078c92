"""
Batch aggregation: every visible package and sub-collection into one tree.

Manifesto:
    A full rebuild is rare and cheap compared with the cost of a confusing
    result, so it runs strictly sequentially, one package at a time. Only a
    discovery failure stops it. A run that produces zero packages still
    writes a manifest, but says so loudly: it almost always means the
    local config or ``DOCGEN_ECOSYSTEM_PATHS`` is wrong.

Architecture:
    ::

        local docgen.config.yml ─► ecosystems, sidebar allow-list, sidebar
                   │
        DiscoveryService.resolve() ─► [Ecosystem] ─► expand_workspaces()
                   │
        for each workspace (sorted):
            SourceLocator.resolve() ─► ContentRoot ─► load_config()
            enabled? allowed?
            sections mode ─► UnitBuilder.build_collections()
            otherwise     ─► UnitBuilder.build_package()
                   │
        Manifest(packages, website_sections, sidebar).save(<out>/manifest.json)

Tags:
    docgen, aggregation, batch, manifest
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docgen.core.config import DocgenConfig
from docgen.core.errors import ConfigLoadError, UnitError
from docgen.core.logging import LogContext, get_logger
from docgen.core.manifest import Manifest, SidebarManifest
from docgen.core.status import BuildMode
from docgen.core.transform import OutputTransform
from docgen.workspace.discovery import DiscoveryService, Ecosystem, Workspace
from docgen.workspace.locator import SourceLocator

from .generators import ContentGenerator
from .units import UnitBuilder
from .writer import DistWriter


@dataclass
class AggregationResult:
    manifest: Manifest
    manifest_path: Path
    skipped: list[str] = field(default_factory=list)

    @property
    def package_count(self) -> int:
        return len(self.manifest.packages)


def allow_list(local_config: DocgenConfig | None) -> set[str]:
    """Package names listed under the local sidebar's categories."""
    if local_config is None or local_config.sidebar is None:
        return set()
    return local_config.sidebar.allowed_packages()


class Aggregator:
    """Runs a full aggregation into a ``DistWriter`` tree."""

    def __init__(
        self,
        locator: SourceLocator,
        discovery: DiscoveryService,
        *,
        logger: Any = None,
        generators: dict[str, ContentGenerator] | None = None,
        cwd: Path | None = None,
        **builder_options: Any,
    ):
        self.locator = locator
        self.discovery = discovery
        self.logger = logger or get_logger(__name__)
        self.generators = generators
        self.cwd = Path(cwd) if cwd else None
        self.builder_options = builder_options

    def aggregate(
        self,
        output_dir: Path,
        mode: BuildMode | str = BuildMode.PROD,
        transform: OutputTransform | str = OutputTransform.NONE,
    ) -> AggregationResult:
        """Rebuild ``output_dir`` from every discovered package.

        Raises:
            InvalidModeError: ``mode`` is not ``dev``/``prod``.
            DiscoveryError: The enclosing ecosystem could not be located.
        """
        mode = BuildMode.parse(mode)
        transform = OutputTransform(transform)
        writer = DistWriter(output_dir)
        self.logger.info("aggregate.started", mode=mode.value, output_dir=str(output_dir), transform=transform.value)

        local_config = self.locator.locate_cwd_config(self.cwd)
        names = local_config.settings.ecosystems if local_config else []
        ecosystems = self.discovery.resolve(names, cwd=self.cwd).ecosystems
        allowed = allow_list(local_config)
        if allowed:
            self.logger.info("aggregate.allow_list", packages=len(allowed))

        builder = UnitBuilder(
            writer,
            self.locator,
            mode,
            transform,
            logger=self.logger,
            generators=self.generators,
            **self.builder_options,
        )
        manifest = Manifest()
        result = AggregationResult(manifest=manifest, manifest_path=writer.manifest_path)

        seen: dict[str, str] = {}
        for ecosystem in ecosystems:
            with LogContext(ecosystem=ecosystem.name):
                self.logger.info("aggregate.ecosystem", path=str(ecosystem.path))
                for workspace in self.discovery.expand_workspaces(ecosystem):
                    if workspace.name in seen:
                        self.logger.warning(
                            "aggregate.duplicate_package",
                            package=workspace.name,
                            first_ecosystem=seen[workspace.name],
                        )
                    seen.setdefault(workspace.name, ecosystem.name)
                    with LogContext(package=workspace.name, mode=mode.value):
                        self._aggregate_workspace(builder, ecosystem, workspace, allowed, manifest, result)

        if local_config is not None and local_config.sidebar is not None:
            manifest.sidebar = SidebarManifest.from_config(local_config.sidebar, mode)

        if not manifest.packages:
            self.logger.warning(
                "aggregate.no_packages",
                message=(
                    "Aggregation produced ZERO packages. Check settings.ecosystems, "
                    "DOCGEN_ECOSYSTEM_PATHS, section statuses and the sidebar allow-list."
                ),
                mode=mode.value,
            )

        manifest.save(writer.manifest_path)
        self.logger.info(
            "aggregate.completed",
            packages=len(manifest.packages),
            website_sections=len(manifest.website_sections),
            skipped=len(result.skipped),
            manifest=str(writer.manifest_path),
        )
        return result

    def _aggregate_workspace(
        self,
        builder: UnitBuilder,
        ecosystem: Ecosystem,
        workspace: Workspace,
        allowed: set[str],
        manifest: Manifest,
        result: AggregationResult,
    ) -> None:
        root = self.locator.resolve(workspace.path, workspace.name)
        if not root.has_config:
            self.logger.debug("aggregate.no_config", package=workspace.name)
            return

        try:
            config = root.load_config()
        except ConfigLoadError as e:
            self.logger.warning("aggregate.config_invalid", **e.with_context(package=workspace.name).to_dict())
            result.skipped.append(workspace.name)
            return

        if not config.enabled:
            self.logger.info("aggregate.package_disabled", package=workspace.name)
            return

        if allowed and workspace.name not in allowed and not config.is_sections_mode:
            self.logger.debug("aggregate.package_not_allowed", package=workspace.name)
            return

        try:
            if config.is_sections_mode:
                for section in builder.build_collections(root).values():
                    if section is not None:
                        manifest.upsert_website_section(section)
                return

            package = builder.build_package(workspace.name, workspace.path, root, config)
        except OSError as e:
            self.logger.error("aggregate.package_failed", package=workspace.name, error=str(e))
            result.skipped.append(workspace.name)
            return
        except UnitError as e:
            self.logger.error(
                "aggregate.package_failed",
                **e.with_context(ecosystem=ecosystem.name, package=workspace.name).to_dict(),
            )
            result.skipped.append(workspace.name)
            return

        if package is None:
            result.skipped.append(workspace.name)
            return
        manifest.packages.append(package)
        self.logger.info("aggregate.package_added", package=workspace.name, sections=len(package.sections))


__all__ = ["Aggregator", "AggregationResult", "allow_list"]
