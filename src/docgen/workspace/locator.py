"""
Source locator: which directory is authoritative for a package's docs.

A package keeps its documentation in one of two places:

- the **authoring** location, ``<notebook_root>/workspaces/<name>/docgen/``,
  outside the source repository
- the **legacy** location, ``<workspace>/docs/``, inside the repository

If the authoring location holds a ``docgen.config.yml`` it wins outright:
sections, prompts and sub-collections are all read relative to it and the
legacy tree is ignored. Otherwise the legacy tree is used. Asset folders are
the one exception: each of ``images/``, ``asciicasts/`` and ``videos/`` is
looked up in the authoring location first and the legacy one second.

Resolution is never cached. The watch engine calls ``resolve()`` again on
every rebuild so that an author creating the authoring-side config for the
first time is picked up without a restart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from docgen.core.config import CONFIG_FILENAME, DocgenConfig, load_docgen_config
from docgen.core.errors import ConfigLoadError
from docgen.core.logging import get_logger

ASSET_FOLDERS = ("images", "asciicasts", "videos")


class ContentRootKind(str, Enum):
    AUTHORING = "authoring"
    LEGACY = "legacy"


@dataclass(frozen=True)
class ContentRoot:
    """The resolved root every relative docs path is joined against."""

    kind: ContentRootKind
    base_path: Path
    workspace_path: Path
    package_name: str

    @property
    def config_path(self) -> Path:
        return self.base_path / CONFIG_FILENAME

    @property
    def has_config(self) -> bool:
        return self.config_path.is_file()

    @property
    def prompts_dir(self) -> Path:
        return self.base_path / "prompts"

    def docs_dir(self, config: DocgenConfig | None = None) -> Path:
        """Directory holding pre-generated section files.

        ``settings.output_dir`` overrides the default (``docs/`` under an
        authoring root, the root itself for legacy).
        """
        if config is not None and config.settings.output_dir:
            return self.base_path / config.settings.output_dir
        if self.kind is ContentRootKind.AUTHORING:
            return self.base_path / "docs"
        return self.base_path

    def load_config(self) -> DocgenConfig:
        """Load this root's ``docgen.config.yml`` fresh from disk."""
        return load_docgen_config(self.config_path)


class SourceLocator:
    """Resolves a package's ``ContentRoot`` and asset folders."""

    def __init__(self, notebook_root: Path | None = None, logger: Any = None):
        self.notebook_root = Path(notebook_root).expanduser() if notebook_root else None
        self.logger = logger or get_logger(__name__)

    def authoring_dir(self, name: str) -> Path | None:
        if self.notebook_root is None:
            return None
        return self.notebook_root / "workspaces" / name / "docgen"

    def concepts_dir(self, name: str) -> Path | None:
        """``<notebook_root>/workspaces/<name>/concepts``, beside the authoring dir."""
        if self.notebook_root is None:
            return None
        return self.notebook_root / "workspaces" / name / "concepts"

    def resolve(self, workspace_path: Path, name: str | None = None) -> ContentRoot:
        """Resolve the authoritative content root for a workspace."""
        workspace_path = Path(workspace_path)
        name = name or workspace_path.name

        authoring = self.authoring_dir(name)
        if authoring is not None and (authoring / CONFIG_FILENAME).is_file():
            self.logger.debug("locator.authoring", package=name, path=str(authoring))
            return ContentRoot(ContentRootKind.AUTHORING, authoring, workspace_path, name)

        legacy = workspace_path / "docs"
        self.logger.debug("locator.legacy", package=name, path=str(legacy))
        return ContentRoot(ContentRootKind.LEGACY, legacy, workspace_path, name)

    def asset_dir(self, root: ContentRoot, asset: str) -> Path | None:
        """An asset folder for ``root``: authoring first, legacy second."""
        candidates = []
        authoring = self.authoring_dir(root.package_name)
        if authoring is not None:
            candidates.append(authoring / asset)
        candidates.append(root.workspace_path / "docs" / asset)

        for candidate in candidates:
            if candidate.is_dir():
                return candidate
        return None

    def locate_cwd_config(self, cwd: Path | None = None) -> DocgenConfig | None:
        """The invoking directory's own config, if it has one.

        This is the "local" config that names the ecosystems to aggregate and
        carries the sidebar block. A config that fails to load is logged and
        treated as absent.
        """
        cwd = Path(cwd or Path.cwd()).resolve()
        root = self.resolve(cwd)
        if not root.has_config:
            self.logger.debug("locator.no_local_config", path=str(cwd))
            return None
        try:
            return root.load_config()
        except ConfigLoadError as e:
            self.logger.warning("locator.local_config_invalid", **e.to_dict())
            return None


__all__ = ["ASSET_FOLDERS", "ContentRootKind", "ContentRoot", "SourceLocator"]
