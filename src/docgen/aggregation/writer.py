"""
Output tree writers.

Batch aggregation writes a self-contained ``dist`` tree that the site
generator imports later. Watch mode writes straight into the site
generator's own source tree so its dev server hot-reloads. Both trees hold
the same content; only the layout differs.

Architecture:
    ::

        ┌───────────────┬──────────────────────────────┬────────────────────────────────────┐
        │               │ DistWriter (<out>)           │ AstroWriter (<website>)            │
        ├───────────────┼──────────────────────────────┼────────────────────────────────────┤
        │ package doc   │ <pkg>/<file>                 │ src/content/docs/<pkg>/<file>      │
        │ collection    │ <collection>/<file>          │ src/content/<collection>/<file>    │
        │ assets        │ <unit>/<asset>/...           │ public/docs/<unit>/<asset>/...     │
        │ manifest      │ manifest.json                │ docgen-output/manifest.json        │
        └───────────────┴──────────────────────────────┴────────────────────────────────────┘

Every write creates its parent directories. Any ``OSError`` becomes a
``UnitWriteError`` so callers can skip the unit and carry on.

Tags:
    docgen, writer, output, astro
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from docgen.core.errors import UnitWriteError
from docgen.core.manifest import MANIFEST_FILENAME


class OutputWriter(ABC):
    """Layout of an output tree plus the writes shared by every layout."""

    root: Path

    @abstractmethod
    def doc_path(self, unit: str, filename: str) -> Path: ...

    @abstractmethod
    def collection_path(self, collection: str, filename: str) -> Path: ...

    @abstractmethod
    def asset_dir(self, unit: str, asset: str) -> Path: ...

    @property
    @abstractmethod
    def manifest_path(self) -> Path: ...

    # ── Writes ────────────────────────────────────────────────

    def _write(self, path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise UnitWriteError(f"failed to write {path}: {e}", cause=e).with_context(path=str(path))
        return path

    def write_doc(self, unit: str, filename: str, content: str) -> Path:
        return self._write(self.doc_path(unit, filename), content)

    def write_collection_doc(self, collection: str, filename: str, content: str) -> Path:
        return self._write(self.collection_path(collection, filename), content)

    def copy_asset_tree(self, unit: str, asset: str, source: Path) -> int:
        """Copy ``source`` recursively into the unit's ``asset`` folder.

        Returns the number of files copied.
        """
        dest = self.asset_dir(unit, asset)
        copied = 0
        try:
            for path in sorted(Path(source).rglob("*")):
                if not path.is_file():
                    continue
                target = dest / path.relative_to(source)
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, target)
                copied += 1
        except OSError as e:
            raise UnitWriteError(f"failed to copy {source} to {dest}: {e}", cause=e).with_context(
                path=str(source)
            )
        return copied

    def copy_asset_file(self, unit: str, asset: str, source: Path) -> Path:
        """Copy a single file into the unit's ``asset`` folder under its own name."""
        dest = self.asset_dir(unit, asset) / Path(source).name
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, dest)
        except OSError as e:
            raise UnitWriteError(f"failed to copy {source}: {e}", cause=e).with_context(
                path=str(source)
            )
        return dest


class DistWriter(OutputWriter):
    """Batch output: one directory per unit under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def doc_path(self, unit: str, filename: str) -> Path:
        return self.root / unit / filename

    def collection_path(self, collection: str, filename: str) -> Path:
        return self.root / collection / filename

    def asset_dir(self, unit: str, asset: str) -> Path:
        return self.root / unit / asset

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILENAME


class AstroWriter(OutputWriter):
    """Live output: the Astro website's content and public trees."""

    def __init__(self, website_dir: Path):
        self.root = Path(website_dir)

    def doc_path(self, unit: str, filename: str) -> Path:
        return self.root / "src" / "content" / "docs" / unit / filename

    def collection_path(self, collection: str, filename: str) -> Path:
        return self.root / "src" / "content" / collection / filename

    def asset_dir(self, unit: str, asset: str) -> Path:
        return self.root / "public" / "docs" / unit / asset

    @property
    def manifest_path(self) -> Path:
        return self.root / "docgen-output" / MANIFEST_FILENAME


__all__ = ["OutputWriter", "DistWriter", "AstroWriter"]
