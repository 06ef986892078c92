"""Tests for docgen.core.config: models and YAML loaders."""

import pytest

from docgen.core.config import (
    ConceptManifest,
    DocgenConfig,
    SectionConfig,
    SidebarConfig,
    find_ecosystem_config,
    load_concept_manifest,
    load_docgen_config,
    load_ecosystem_config,
    load_yaml,
)
from docgen.core.errors import ConfigLoadError
from docgen.core.status import PublicationStatus


# ─── Loaders ─────────────────────────────────────────────────────────────


class TestLoadYaml:
    """Test raw YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_yaml(tmp_path / "nope.yml")
        assert exc_info.value.context.path == str(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("enabled: [true\n")
        with pytest.raises(ConfigLoadError):
            load_yaml(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigLoadError, match="expected a mapping"):
            load_yaml(path)

    def test_empty_file_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_yaml(path) == {}


class TestLoadDocgenConfig:
    """Test docgen.config.yml parsing."""

    def test_full_config(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text(
            "enabled: true\n"
            "title: Flow\n"
            "category: Tools\n"
            "model: gemini\n"
            "settings:\n"
            "  output_mode: package\n"
            "  ecosystems: [grove, extras]\n"
            "  regeneration_mode: scoped\n"
            "sections:\n"
            "  - name: overview\n"
            "    title: Overview\n"
            "    order: 1\n"
            "    status: dev\n"
            "    output: overview.md\n"
            "    agg_strip_lines: 2\n"
        )
        cfg = load_docgen_config(path)
        assert cfg.enabled is True
        assert cfg.title == "Flow"
        assert cfg.settings.ecosystems == ["grove", "extras"]
        assert not cfg.is_sections_mode
        assert cfg.sections[0].effective_status() is PublicationStatus.DEV
        assert cfg.sections[0].agg_strip_lines == 2

    def test_defaults(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text("title: Minimal\n")
        cfg = load_docgen_config(path)
        assert cfg.enabled is False
        assert cfg.sections == []
        assert cfg.sidebar is None

    def test_null_values_are_unset(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text("enabled: true\nsettings:\nsections:\n  - name: a\n    status:\n")
        cfg = load_docgen_config(path)
        assert cfg.settings.output_mode == "package"
        assert cfg.sections[0].effective_status() is PublicationStatus.DRAFT

    def test_sections_mode(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text("enabled: true\nsettings:\n  output_mode: sections\n")
        assert load_docgen_config(path).is_sections_mode

    def test_invalid_output_mode(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text("settings:\n  output_mode: pages\n")
        with pytest.raises(ConfigLoadError, match="invalid docgen.config.yml"):
            load_docgen_config(path)

    def test_negative_strip_lines_rejected(self, tmp_path):
        path = tmp_path / "docgen.config.yml"
        path.write_text("sections:\n  - name: a\n    agg_strip_lines: -1\n")
        with pytest.raises(ConfigLoadError):
            load_docgen_config(path)


# ─── Models ──────────────────────────────────────────────────────────────


class TestSectionConfig:
    def test_missing_status_is_draft(self):
        assert SectionConfig(name="x").effective_status() is PublicationStatus.DRAFT

    def test_numeric_title_coerced(self):
        assert SectionConfig.model_validate({"title": 2024}).title == "2024"


class TestSidebarConfig:
    """Test sidebar allow-list and package defaults."""

    def test_allowed_packages_union(self):
        sidebar = SidebarConfig.model_validate(
            {
                "categories": {
                    "Core": {"packages": ["flow", "grove"]},
                    "Tools": {"packages": ["nb", "flow"]},
                }
            }
        )
        assert sidebar.allowed_packages() == {"flow", "grove", "nb"}

    def test_empty_allow_list(self):
        assert SidebarConfig().allowed_packages() == set()

    def test_sidebar_package_defaults_to_production(self):
        sidebar = SidebarConfig.model_validate({"packages": {"flow": {"icon": "x"}, "nb": {"status": "draft"}}})
        assert sidebar.packages["flow"].effective_status() is PublicationStatus.PRODUCTION
        assert sidebar.packages["nb"].effective_status() is PublicationStatus.DRAFT


class TestConceptManifest:
    def test_publish_defaults_to_draft(self):
        assert ConceptManifest(id="x").publish_status() is PublicationStatus.DRAFT

    def test_load(self, tmp_path):
        path = tmp_path / "concept-manifest.yml"
        path.write_text("id: cli-output\ntitle: CLI Output\ndocgen_publish: dev\ndocgen_order: [b.md, a.md]\n")
        concept = load_concept_manifest(path)
        assert concept.publish_status() is PublicationStatus.DEV
        assert concept.docgen_order == ["b.md", "a.md"]


class TestEcosystemConfig:
    def test_find_prefers_grove_yml(self, tmp_path):
        (tmp_path / "grove.yaml").write_text("name: b\n")
        (tmp_path / "grove.yml").write_text("name: a\n")
        assert find_ecosystem_config(tmp_path) == tmp_path / "grove.yml"

    def test_find_none(self, tmp_path):
        assert find_ecosystem_config(tmp_path) is None

    def test_load(self, tmp_path):
        path = tmp_path / "grove.yml"
        path.write_text("name: grove\nversion: 1.2.0\nworkspaces:\n  - packages/*\n")
        cfg = load_ecosystem_config(path)
        assert cfg.name == "grove"
        assert cfg.workspaces == ["packages/*"]
        assert cfg.version == "1.2.0"


class TestDocgenConfigModel:
    def test_model_validate_ignores_unknown_keys(self):
        cfg = DocgenConfig.model_validate({"enabled": True, "readme": {"template": "x"}})
        assert cfg.enabled
