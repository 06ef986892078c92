"""
Per-unit build logic shared by batch aggregation and watch rebuilds.

A *unit* is either one package (its filtered section list, assets,
changelog, logos and concepts) or one sections-mode sub-collection (a
top-level collection such as ``overview``). ``UnitBuilder`` knows how to
turn a unit's sources into files in an output tree and a manifest entry; it
does not know whether it is running once or on every file change.

Manifesto:
    A failing section never takes its package down and a failing package
    never takes the run down. Everything that can go wrong inside a unit is
    a ``UnitError``; the builder catches it at the narrowest level that still
    makes sense (section, asset folder, concept) and logs it.

Architecture:
    ::

        build_package(name, workspace, root, config)
          ├── filter sections by status     ── none left? return None
          ├── per section
          │     ├── generator (type: capture) ── deposit, read back
          │     ├── authored file             ── strip lines
          │     └── prompt placeholder        ── when the file is missing
          │     └── transform (astro) + write
          ├── asset folders  (authoring first, legacy fallback)
          ├── logos          ──► <pkg>/images/
          ├── CHANGELOG.md   ──► changelog_path
          └── concepts       ──► <pkg>/concepts/<id>/, ordered after sections

        build_collection(name, directory, config, from_frontmatter)
          ├── assets
          └── files: section list (batch) or each file's own status (watch)

Tags:
    docgen, aggregation, unit, sections, concepts, sub-collections
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from docgen.core.config import (
    CONCEPT_MANIFEST_FILENAME,
    CONFIG_FILENAME,
    DocgenConfig,
    SectionConfig,
    load_concept_manifest,
    load_docgen_config,
)
from docgen.core.errors import ConfigLoadError, ContentNotFoundError, UnitError
from docgen.core.frontmatter import order_from_filename, parse_frontmatter
from docgen.core.logging import get_logger
from docgen.core.manifest import PackageManifest, SectionManifest, WebsiteSection
from docgen.core.status import BuildMode, included
from docgen.core.transform import (
    CHANGELOG_ORDER,
    CONCEPT_ORDER_BASE,
    OutputTransform,
    TransformOptions,
    format_concept_title,
    get_transformer,
    strip_lines,
)
from docgen.workspace.locator import ASSET_FOLDERS, ContentRoot, SourceLocator

from .generators import ContentGenerator, default_generators
from .vcs import package_version, repo_url
from .writer import OutputWriter

CHANGELOG_FILENAME = "CHANGELOG.md"

PLACEHOLDER_TEMPLATE = (
    "# {title}\n\n"
    "*Note: This is a placeholder generated from the prompt file. "
    "Full documentation is pending.*\n\n---\n\n{prompt}"
)


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ContentNotFoundError(f"{path} does not exist", cause=e).with_context(path=str(path))
    except OSError as e:
        raise ContentNotFoundError(f"failed to read {path}: {e}", cause=e).with_context(path=str(path))


def _output_name(section: SectionConfig) -> str:
    return section.output or f"{section.name}.md"


class UnitBuilder:
    """Builds packages and sub-collections into one output tree."""

    def __init__(
        self,
        writer: OutputWriter,
        locator: SourceLocator,
        mode: BuildMode | str,
        transform: OutputTransform | str = OutputTransform.NONE,
        *,
        logger: Any = None,
        generators: dict[str, ContentGenerator] | None = None,
        version_lookup: Callable[[Path], str] = package_version,
        repo_lookup: Callable[[Path], str] = repo_url,
    ):
        self.writer = writer
        self.locator = locator
        self.mode = BuildMode.parse(mode)
        self.transformer = get_transformer(transform)
        self.logger = logger or get_logger(__name__)
        self.generators = generators if generators is not None else default_generators(self.logger)
        self.version_lookup = version_lookup
        self.repo_lookup = repo_lookup

    # =========================================================================
    # Packages
    # =========================================================================

    def visible_sections(self, name: str, config: DocgenConfig) -> list[SectionConfig]:
        """Sections visible in this build's mode, in config order."""
        visible = []
        for section in config.sections:
            status = section.effective_status()
            if not included(status, self.mode):
                self.logger.debug(
                    "unit.section_filtered",
                    package=name,
                    section=_output_name(section),
                    status=status.value,
                    mode=self.mode.value,
                )
                continue
            visible.append(section)
        return visible

    def build_package(
        self,
        name: str,
        workspace_path: Path,
        root: ContentRoot,
        config: DocgenConfig,
    ) -> PackageManifest | None:
        """Build one package; None when no section is visible in this mode."""
        sections = self.visible_sections(name, config)
        if not sections:
            self.logger.info("unit.package_skipped", package=name, reason="no_visible_sections", mode=self.mode.value)
            return None

        version = self.version_lookup(workspace_path)
        package = PackageManifest(
            name=name,
            title=config.title,
            description=config.description,
            category=config.category,
            docs_path=f"./{name}",
            version=version,
            repo_url=self.repo_lookup(workspace_path) or None,
        )

        written: list[SectionConfig] = []
        for section in sections:
            try:
                self._build_section(name, root, config, section, version)
            except UnitError as e:
                self.logger.warning(
                    "unit.section_failed", **e.with_context(package=name, section=_output_name(section)).to_dict()
                )
                continue
            written.append(section)

        self._copy_assets(name, root)
        self._copy_logos(name, config)
        package.changelog_path = self._copy_changelog(name, workspace_path, config, version)

        package.sections = [
            SectionManifest(
                name=section.name,
                title=section.title,
                order=section.order,
                path=f"./{name}/{_output_name(section)}",
                json_key=section.json_key or None,
            )
            for section in sorted(written, key=lambda s: s.order)
        ]
        package.sections.extend(self._build_concepts(name, config))
        return package

    def _build_section(
        self,
        name: str,
        root: ContentRoot,
        config: DocgenConfig,
        section: SectionConfig,
        version: str,
    ) -> None:
        output = _output_name(section)
        generator = self.generators.get(section.type) if section.type else None

        if generator is not None:
            dest = self.writer.doc_path(name, output)
            generator.generate(root, section, dest)
            content = _read(dest)
            self.logger.info("unit.section_generated", package=name, section=output, type=section.type)
        else:
            source = root.docs_dir(config) / output
            if source.is_file():
                content = _read(source)
                content, too_short = strip_lines(content, section.agg_strip_lines)
                if too_short:
                    self.logger.warning(
                        "unit.strip_lines_exceeds_file",
                        package=name,
                        section=output,
                        agg_strip_lines=section.agg_strip_lines,
                    )
                self.logger.info("unit.section_copied", package=name, section=output)
            else:
                content = self._placeholder(name, root, section, source)

        if self.transformer is not None:
            content = self.transformer.transform_standard_doc(
                content,
                TransformOptions(
                    package_name=name,
                    title=section.title,
                    description=config.description,
                    version=version,
                    category=config.category,
                    order=section.order,
                ),
            )
        self.writer.write_doc(name, output, content)

    def _placeholder(self, name: str, root: ContentRoot, section: SectionConfig, source: Path) -> str:
        prompt_path = root.prompts_dir / Path(section.prompt).name if section.prompt else None
        if prompt_path is None or not prompt_path.is_file():
            raise ContentNotFoundError(
                f"no documentation or prompt for {name}/{_output_name(section)}"
            ).with_context(package=name, section=_output_name(section), path=str(source))

        self.logger.info("unit.section_placeholder", package=name, section=_output_name(section))
        return PLACEHOLDER_TEMPLATE.format(title=section.title, prompt=_read(prompt_path))

    def _copy_assets(self, name: str, root: ContentRoot) -> None:
        for asset in ASSET_FOLDERS:
            source = self.locator.asset_dir(root, asset)
            if source is None:
                continue
            try:
                count = self.writer.copy_asset_tree(name, asset, source)
            except UnitError as e:
                self.logger.error("unit.assets_failed", **e.with_context(package=name).to_dict())
                continue
            self.logger.debug("unit.assets_copied", package=name, asset=asset, files=count)

    def _copy_logos(self, name: str, config: DocgenConfig) -> None:
        for logo in config.logos:
            path = Path(logo).expanduser()
            if not path.is_file():
                self.logger.warning("unit.logo_missing", package=name, path=str(path))
                continue
            try:
                self.writer.copy_asset_file(name, "images", path)
            except UnitError as e:
                self.logger.error("unit.logo_failed", **e.with_context(package=name).to_dict())

    def _copy_changelog(
        self, name: str, workspace_path: Path, config: DocgenConfig, version: str
    ) -> str | None:
        source = Path(workspace_path) / CHANGELOG_FILENAME
        if not source.is_file():
            self.logger.debug("unit.no_changelog", package=name)
            return None

        try:
            content = _read(source)
            if self.transformer is not None:
                content = self.transformer.transform_standard_doc(
                    content,
                    TransformOptions(
                        package_name=name,
                        title=f"Changelog for {config.title}",
                        version=version,
                        category=config.category,
                        order=CHANGELOG_ORDER,
                    ),
                )
            self.writer.write_doc(name, CHANGELOG_FILENAME, content)
        except UnitError as e:
            self.logger.error("unit.changelog_failed", **e.with_context(package=name).to_dict())
            return None
        return f"./{name}/{CHANGELOG_FILENAME}"

    # =========================================================================
    # Concepts
    # =========================================================================

    def _build_concepts(self, name: str, config: DocgenConfig) -> list[SectionManifest]:
        concepts_dir = self.locator.concepts_dir(name)
        if concepts_dir is None or not concepts_dir.is_dir():
            return []

        entries: list[SectionManifest] = []
        for concept_dir in sorted(p for p in concepts_dir.iterdir() if p.is_dir()):
            try:
                entries.extend(self._build_concept(name, config, concept_dir))
            except UnitError as e:
                self.logger.warning(
                    "unit.concept_failed", **e.with_context(package=name, section=concept_dir.name).to_dict()
                )
        return entries

    def _build_concept(self, name: str, config: DocgenConfig, concept_dir: Path) -> list[SectionManifest]:
        concept_id = concept_dir.name
        manifest_path = concept_dir / CONCEPT_MANIFEST_FILENAME
        if not manifest_path.is_file():
            self.logger.debug("unit.concept_no_manifest", package=name, concept=concept_id)
            return []

        concept = load_concept_manifest(manifest_path)
        status = concept.publish_status()
        if not included(status, self.mode):
            self.logger.debug(
                "unit.concept_filtered", package=name, concept=concept_id, status=status.value, mode=self.mode.value
            )
            return []

        if concept.docgen_order:
            files = [concept_dir / f for f in concept.docgen_order if (concept_dir / f).is_file()]
        else:
            files = sorted(concept_dir.glob("*.md"))
        if not files:
            self.logger.debug("unit.concept_empty", package=name, concept=concept_id)
            return []

        self.logger.info("unit.concept_aggregated", package=name, concept=concept_id, files=len(files))
        entries = []
        for i, path in enumerate(files):
            order = CONCEPT_ORDER_BASE + i + 1
            title = format_concept_title(path.stem)
            content = _read(path)
            if self.transformer is not None:
                content = self.transformer.transform_concept_doc(
                    content,
                    title=title,
                    package_name=name,
                    category=config.category,
                    order=order,
                    concept_title=concept.title,
                    concept_id=concept_id,
                )
            relative = f"concepts/{concept_id}/{path.name}"
            self.writer.write_doc(name, relative, content)
            entries.append(SectionManifest(name=path.stem, title=title, order=order, path=f"./{name}/{relative}"))
        return entries

    # =========================================================================
    # Sub-collections (output_mode: sections)
    # =========================================================================

    def build_collections(
        self, root: ContentRoot, *, from_frontmatter: bool = False
    ) -> dict[str, WebsiteSection | None]:
        """Build every sub-collection below a sections-mode root.

        A sub-collection is any child directory with its own
        ``docgen.config.yml``. The result maps each enabled collection to
        its manifest entry, or None when none of its files is visible.
        """
        if not root.base_path.is_dir():
            self.logger.warning("unit.collections_root_missing", package=root.package_name, path=str(root.base_path))
            return {}

        sections: dict[str, WebsiteSection | None] = {}
        for directory in sorted(p for p in root.base_path.iterdir() if p.is_dir()):
            config_path = directory / CONFIG_FILENAME
            if not config_path.is_file():
                continue
            try:
                config = load_docgen_config(config_path)
            except ConfigLoadError as e:
                self.logger.warning("unit.collection_config_invalid", **e.with_context(section=directory.name).to_dict())
                continue
            if not config.enabled:
                self.logger.debug("unit.collection_disabled", collection=directory.name)
                continue

            sections[directory.name] = self.build_collection(
                directory.name, directory, config, from_frontmatter=from_frontmatter
            )
        return sections

    def build_collection(
        self,
        name: str,
        directory: Path,
        config: DocgenConfig,
        *,
        from_frontmatter: bool = False,
    ) -> WebsiteSection | None:
        """Build one sub-collection; None when no file is visible.

        With ``from_frontmatter`` every markdown file in the docs directory is
        a candidate and its own ``status:`` decides visibility. Otherwise the
        config's section list does.
        """
        for asset in ASSET_FOLDERS:
            source = directory / asset
            if not source.is_dir():
                continue
            try:
                self.writer.copy_asset_tree(name, asset, source)
            except UnitError as e:
                self.logger.warning("unit.assets_failed", **e.with_context(section=name).to_dict())

        docs_dir = directory / (config.settings.output_dir or "docs")
        candidates = self._frontmatter_files(name, docs_dir) if from_frontmatter else self._listed_files(
            name, docs_dir, config
        )

        files: list[SectionManifest] = []
        for filename, title, order in candidates:
            try:
                content = _read(docs_dir / filename)
                if self.transformer is not None:
                    content = self.transformer.transform_website_section(
                        content, TransformOptions(section_name=name, category=config.category)
                    )
                self.writer.write_collection_doc(name, filename, content)
            except UnitError as e:
                self.logger.warning("unit.collection_file_failed", **e.with_context(section=name).to_dict())
                continue
            files.append(SectionManifest(name=filename, title=title, order=order, path=f"./{name}/{filename}"))

        if not files:
            self.logger.info("unit.collection_empty", collection=name, mode=self.mode.value)
            return None

        files.sort(key=lambda f: f.order)
        self.logger.info("unit.collection_built", collection=name, files=len(files))
        return WebsiteSection(name=name, title=config.title, files=files)

    def _listed_files(self, name: str, docs_dir: Path, config: DocgenConfig) -> list[tuple[str, str, int]]:
        listed = []
        for section in self.visible_sections(name, config):
            filename = _output_name(section)
            if not (docs_dir / filename).is_file():
                self.logger.warning("unit.collection_file_missing", collection=name, path=str(docs_dir / filename))
                continue
            listed.append((filename, section.title, section.order))
        return listed

    def _frontmatter_files(self, name: str, docs_dir: Path) -> list[tuple[str, str, int]]:
        if not docs_dir.is_dir():
            return []
        listed = []
        for path in sorted(docs_dir.glob("*.md")):
            try:
                frontmatter = parse_frontmatter(_read(path))
            except UnitError as e:
                self.logger.warning("unit.collection_file_failed", **e.with_context(section=name).to_dict())
                continue
            if not included(frontmatter.status, self.mode):
                self.logger.debug(
                    "unit.collection_file_filtered", collection=name, file=path.name, status=frontmatter.status.value
                )
                continue
            order = frontmatter.order
            if order is None:
                order = order_from_filename(path.name)
            listed.append((path.name, frontmatter.title, order))
        return listed


__all__ = ["UnitBuilder", "CHANGELOG_FILENAME", "PLACEHOLDER_TEMPLATE"]
