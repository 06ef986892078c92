"""
Workspace and ecosystem discovery.

An *ecosystem* is a repository root whose ``grove.yml`` lists glob patterns
for its workspaces::

    name: grove
    workspaces:
      - "packages/*"
      - "tools/cli"

Every directory matching a pattern is a *workspace* (a package); its name is
the directory basename.

Manifesto:
    Discovery is re-run from scratch on every aggregate and every watch
    start; nothing about the ecosystem layout is cached on disk. Failure to
    find one of several *named* ecosystems is a warning. Failure to find
    the ecosystem around the current directory, when no names were given,
    is the only fatal case.

Architecture:
    ::

        local docgen.config.yml
          settings.ecosystems: [a, b]  ──► DiscoveryService.discover_all()
                                              scan DOCGEN_ECOSYSTEM_PATHS
                                              match by name, warn on misses
          (absent)                     ──► find_ecosystem_root(cwd)
                                              walk upward, warn: scope narrowed
                        │
                        ▼
                [Ecosystem] ──► expand_workspaces() ──► [Workspace] (sorted)

Tags:
    docgen, discovery, ecosystem, workspace, glob
"""

from __future__ import annotations

import glob
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docgen.core.config import EcosystemConfig, find_ecosystem_config, load_ecosystem_config
from docgen.core.errors import ConfigLoadError, DiscoveryError
from docgen.core.logging import get_logger


@dataclass(frozen=True)
class Ecosystem:
    """A repository grouping of packages; never persisted."""

    name: str
    path: Path
    workspace_patterns: tuple[str, ...] = ()
    version: str = ""


@dataclass(frozen=True)
class Workspace:
    """A discovered package directory."""

    name: str
    path: Path
    ecosystem: str = ""


@dataclass
class DiscoveryResult:
    ecosystems: list[Ecosystem] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def _ecosystem_from(path: Path, config: EcosystemConfig) -> Ecosystem:
    return Ecosystem(
        name=config.name or path.name,
        path=path,
        workspace_patterns=tuple(config.workspaces),
        version=config.version,
    )


def find_ecosystem_root(start: Path | None = None) -> Path:
    """Walk upward from ``start`` to the first ecosystem root.

    An ecosystem root is a directory whose ecosystem config declares
    ``workspaces``. Workspace-level ``grove.yml`` files without that key are
    stepped over.

    Raises:
        DiscoveryError: If no ecosystem root encloses ``start``.
    """
    start = (start or Path.cwd()).resolve()
    for directory in [start, *start.parents]:
        config_path = find_ecosystem_config(directory)
        if config_path is None:
            continue
        try:
            config = load_ecosystem_config(config_path)
        except ConfigLoadError:
            continue
        if config.workspaces:
            return directory
    raise DiscoveryError(f"could not find ecosystem root above {start}").with_context(path=str(start))


def load_ecosystem(root: Path) -> Ecosystem:
    """Load the ecosystem rooted at ``root``.

    Raises:
        DiscoveryError: If ``root`` has no readable ecosystem config.
    """
    root = Path(root).resolve()
    config_path = find_ecosystem_config(root)
    if config_path is None:
        raise DiscoveryError(f"no ecosystem config in {root}").with_context(path=str(root))
    try:
        config = load_ecosystem_config(config_path)
    except ConfigLoadError as e:
        raise DiscoveryError(f"could not load ecosystem config {config_path}", cause=e).with_context(
            path=str(config_path)
        )
    return _ecosystem_from(root, config)


class DiscoveryService:
    """Finds ecosystems and the documentation workspaces inside them."""

    def __init__(self, search_paths: list[Path] | None = None, logger: Any = None):
        self.search_paths = [Path(p) for p in (search_paths or [])]
        self.logger = logger or get_logger(__name__)

    def discover_all(self) -> list[Ecosystem]:
        """Every ecosystem reachable from the configured search paths, sorted by name."""
        found: dict[str, Ecosystem] = {}
        for search_path in self.search_paths:
            if not search_path.is_dir():
                self.logger.warning("discovery.search_path_missing", path=str(search_path))
                continue

            candidates = [search_path] if find_ecosystem_config(search_path) else sorted(
                p for p in search_path.iterdir() if p.is_dir() and not p.name.startswith(".")
            )
            for candidate in candidates:
                config_path = find_ecosystem_config(candidate)
                if config_path is None:
                    continue
                try:
                    config = load_ecosystem_config(config_path)
                except ConfigLoadError as e:
                    self.logger.warning("discovery.ecosystem_config_invalid", **e.to_dict())
                    continue
                if not config.workspaces:
                    continue
                eco = _ecosystem_from(candidate.resolve(), config)
                if eco.name in found:
                    self.logger.warning(
                        "discovery.duplicate_ecosystem",
                        ecosystem=eco.name,
                        kept=str(found[eco.name].path),
                        ignored=str(eco.path),
                    )
                    continue
                found[eco.name] = eco

        return [found[name] for name in sorted(found)]

    def resolve(self, names: list[str] | None, cwd: Path | None = None) -> DiscoveryResult:
        """Ecosystems to process for a run.

        With ``names``, each is looked up among all discovered ecosystems and
        unknown names are logged and skipped. Without, the ecosystem enclosing
        ``cwd`` is used alone.

        Raises:
            DiscoveryError: If ``names`` is empty and no ecosystem encloses ``cwd``.
        """
        if names:
            self.logger.info("discovery.using_configured_ecosystems", ecosystems=list(names))
            by_name = {eco.name: eco for eco in self.discover_all()}
            result = DiscoveryResult()
            for name in names:
                if name in by_name:
                    result.ecosystems.append(by_name[name])
                else:
                    self.logger.warning("discovery.ecosystem_not_found", ecosystem=name)
                    result.missing.append(name)
            if not result.ecosystems:
                self.logger.warning("discovery.no_configured_ecosystems_found", ecosystems=list(names))
            return result

        root = find_ecosystem_root(cwd)
        eco = load_ecosystem(root)
        self.logger.warning(
            "discovery.scope_narrowed",
            ecosystem=eco.name,
            message=(
                "No 'settings.ecosystems' in docgen.config.yml - using the current ecosystem only. "
                "Add 'settings.ecosystems' to aggregate from several ecosystems."
            ),
        )
        return DiscoveryResult(ecosystems=[eco])

    def expand_workspaces(self, ecosystem: Ecosystem) -> list[Workspace]:
        """Expand the ecosystem's patterns to workspace directories, sorted by path."""
        paths: set[Path] = set()
        for pattern in ecosystem.workspace_patterns:
            full_pattern = str(ecosystem.path / pattern)
            try:
                matches = glob.glob(full_pattern)
            except (OSError, ValueError) as e:
                self.logger.warning(
                    "discovery.pattern_failed", ecosystem=ecosystem.name, pattern=pattern, error=str(e)
                )
                continue
            for match in matches:
                path = Path(match)
                if path.is_dir():
                    paths.add(path.resolve())

        workspaces = [Workspace(name=p.name, path=p, ecosystem=ecosystem.name) for p in sorted(paths)]
        self.logger.debug(
            "discovery.workspaces_found", ecosystem=ecosystem.name, count=len(workspaces)
        )
        return workspaces


__all__ = [
    "Ecosystem",
    "Workspace",
    "DiscoveryResult",
    "DiscoveryService",
    "find_ecosystem_root",
    "load_ecosystem",
]
