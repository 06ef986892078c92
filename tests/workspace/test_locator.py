"""Tests for docgen.workspace.locator: authoring vs legacy resolution."""

from structlog.testing import capture_logs

from conftest import write_yaml
from docgen.core.config import DocgenConfig, SettingsConfig
from docgen.workspace.locator import ContentRootKind, SourceLocator


class TestResolve:
    """Test which content root wins."""

    def test_authoring_wins_when_config_present(self, ecosystem):
        ecosystem.package("flow", {"enabled": True})
        base = ecosystem.authoring("flow", {"enabled": True})
        root = ecosystem.locator().resolve(ecosystem.workspace("flow"), "flow")
        assert root.kind is ContentRootKind.AUTHORING
        assert root.base_path == base
        assert root.has_config

    def test_authoring_dir_without_config_falls_back(self, ecosystem):
        (ecosystem.notebook / "workspaces" / "flow" / "docgen").mkdir(parents=True)
        docs = ecosystem.package("flow", {"enabled": True})
        root = ecosystem.locator().resolve(ecosystem.workspace("flow"), "flow")
        assert root.kind is ContentRootKind.LEGACY
        assert root.base_path == docs

    def test_no_notebook_root(self, ecosystem):
        locator = SourceLocator(None)
        assert locator.authoring_dir("flow") is None
        assert locator.concepts_dir("flow") is None
        root = locator.resolve(ecosystem.workspace("flow"))
        assert root.kind is ContentRootKind.LEGACY
        assert root.package_name == "flow"
        assert not root.has_config

    def test_resolution_is_not_cached(self, ecosystem):
        """An authoring config created later is picked up by the next resolve."""
        ecosystem.package("flow", {"enabled": True})
        locator = ecosystem.locator()
        assert locator.resolve(ecosystem.workspace("flow")).kind is ContentRootKind.LEGACY
        ecosystem.authoring("flow", {"enabled": True})
        assert locator.resolve(ecosystem.workspace("flow")).kind is ContentRootKind.AUTHORING


class TestDocsDir:
    def test_authoring_default(self, ecosystem):
        base = ecosystem.authoring("flow", {"enabled": True})
        root = ecosystem.locator().resolve(ecosystem.workspace("flow"))
        assert root.docs_dir() == base / "docs"
        assert root.prompts_dir == base / "prompts"

    def test_legacy_default(self, ecosystem):
        docs = ecosystem.package("flow", {"enabled": True})
        assert ecosystem.locator().resolve(ecosystem.workspace("flow")).docs_dir() == docs

    def test_output_dir_override(self, ecosystem):
        base = ecosystem.authoring("flow", {"enabled": True})
        root = ecosystem.locator().resolve(ecosystem.workspace("flow"))
        config = DocgenConfig(settings=SettingsConfig(output_dir="generated"))
        assert root.docs_dir(config) == base / "generated"


class TestAssetDir:
    """Test per-folder asset fallback."""

    def test_authoring_first_then_legacy(self, ecosystem):
        base = ecosystem.authoring("flow", {"enabled": True})
        (base / "images").mkdir()
        legacy_casts = ecosystem.workspace("flow") / "docs" / "asciicasts"
        legacy_casts.mkdir(parents=True)
        (ecosystem.workspace("flow") / "docs" / "images").mkdir()

        locator = ecosystem.locator()
        root = locator.resolve(ecosystem.workspace("flow"))
        assert locator.asset_dir(root, "images") == base / "images"
        assert locator.asset_dir(root, "asciicasts") == legacy_casts
        assert locator.asset_dir(root, "videos") is None


class TestLocateCwdConfig:
    def test_absent(self, tmp_path):
        assert SourceLocator(None).locate_cwd_config(tmp_path) is None

    def test_present(self, tmp_path):
        write_yaml(tmp_path / "docs" / "docgen.config.yml", {"settings": {"ecosystems": ["grove"]}})
        config = SourceLocator(None).locate_cwd_config(tmp_path)
        assert config.settings.ecosystems == ["grove"]

    def test_invalid_is_treated_as_absent(self, tmp_path):
        path = tmp_path / "docs" / "docgen.config.yml"
        path.parent.mkdir()
        path.write_text("sections: [\n")
        with capture_logs() as logs:
            assert SourceLocator(None).locate_cwd_config(tmp_path) is None
        assert any(log["event"] == "locator.local_config_invalid" for log in logs)
