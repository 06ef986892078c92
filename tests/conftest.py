"""
Shared pytest fixtures for docgen tests.

This module provides:
- Settings cache and ``DOCGEN_*`` environment isolation
- Logging context cleanup between tests
- ``EcosystemBuilder``: writes an ecosystem, its packages and an authoring
  notebook into ``tmp_path``

Usage:
    def test_something(ecosystem):
        ecosystem.package("flow", {"enabled": True, "sections": [...]},
                          docs={"overview.md": "# Flow"})
        result = ecosystem.aggregator().aggregate(ecosystem.tmp / "dist")
"""

import os
from pathlib import Path
from typing import Any

import pytest
import structlog
import yaml

from docgen.aggregation.aggregator import Aggregator
from docgen.core.logging import clear_context
from docgen.core.settings import clear_settings_cache
from docgen.workspace.discovery import DiscoveryService
from docgen.workspace.locator import SourceLocator


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark everything without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch, tmp_path):
    """Drop cached settings and any DOCGEN_* variables from the host."""
    for key in list(os.environ):
        if key.startswith("DOCGEN_"):
            monkeypatch.delenv(key, raising=False)
    # Keep a developer's .env out of the settings under test.
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Ecosystem Builder
# =============================================================================


def write_yaml(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def write_files(directory: Path, files: dict[str, str] | None) -> None:
    for name, content in (files or {}).items():
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def section(name: str, status: str | None = "production", order: int = 1, **extra: Any) -> dict[str, Any]:
    """A section entry for a ``docgen.config.yml``."""
    data: dict[str, Any] = {"name": name, "title": name.title(), "order": order, "output": f"{name}.md"}
    if status is not None:
        data["status"] = status
    data.update(extra)
    return data


class EcosystemBuilder:
    """Lays out ``<tmp>/eco`` (the ecosystem) and ``<tmp>/nb`` (the notebook)."""

    def __init__(self, tmp: Path, name: str = "grove"):
        self.tmp = tmp
        self.root = tmp / "eco"
        self.notebook = tmp / "nb"
        self.name = name
        write_yaml(self.root / "grove.yml", {"name": name, "workspaces": ["packages/*"]})

    def workspace(self, name: str) -> Path:
        path = self.root / "packages" / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def package(self, name: str, config: dict[str, Any], docs: dict[str, str] | None = None) -> Path:
        """A package using the legacy ``<workspace>/docs`` location."""
        docs_dir = self.workspace(name) / "docs"
        write_yaml(docs_dir / "docgen.config.yml", config)
        write_files(docs_dir, docs)
        return docs_dir

    def authoring(self, name: str, config: dict[str, Any], docs: dict[str, str] | None = None) -> Path:
        """A package using the notebook authoring location."""
        self.workspace(name)
        base = self.notebook / "workspaces" / name / "docgen"
        write_yaml(base / "docgen.config.yml", config)
        write_files(base / "docs", docs)
        return base

    def concept(self, package: str, concept_id: str, manifest: dict[str, Any], files: dict[str, str]) -> Path:
        directory = self.notebook / "workspaces" / package / "concepts" / concept_id
        write_yaml(directory / "concept-manifest.yml", manifest)
        write_files(directory, files)
        return directory

    def local_config(self, config: dict[str, Any]) -> Path:
        """The invoking directory's own config (ecosystems list, sidebar)."""
        return write_yaml(self.root / "docs" / "docgen.config.yml", config)

    def locator(self) -> SourceLocator:
        return SourceLocator(self.notebook)

    def discovery(self) -> DiscoveryService:
        return DiscoveryService([self.root])

    def aggregator(self, **kwargs: Any) -> Aggregator:
        options: dict[str, Any] = {
            "generators": {},
            "cwd": self.root,
            "version_lookup": lambda path: "v1.0.0",
            "repo_lookup": lambda path: "",
        }
        options.update(kwargs)
        return Aggregator(self.locator(), self.discovery(), **options)


@pytest.fixture
def ecosystem(tmp_path) -> EcosystemBuilder:
    return EcosystemBuilder(tmp_path)
