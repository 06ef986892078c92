"""Tests for the watch engine: setup, event routing and the live loop."""

import threading
import time
from unittest.mock import MagicMock

import pytest
from watchdog.events import DirCreatedEvent, DirDeletedEvent, DirMovedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent

from conftest import section, write_yaml
from docgen.aggregation.writer import AstroWriter
from docgen.core.errors import InvalidModeError, TransientWatchError, WatcherInitError
from docgen.core.manifest import Manifest, PackageManifest
from docgen.watch.engine import WatchEngine
from docgen.watch.watcher import RecursiveWatcher, WatchMessage

BUILDER_OPTIONS = {
    "generators": {},
    "version_lookup": lambda path: "v1.0.0",
    "repo_lookup": lambda path: "",
}


def _engine(ecosystem, *, watcher=None, debounce_ms=60_000, mode="dev"):
    return WatchEngine(
        ecosystem.tmp / "site",
        mode,
        ecosystem.locator(),
        ecosystem.discovery(),
        debounce_ms=debounce_ms,
        watcher=watcher or RecursiveWatcher(observer=MagicMock()),
        cwd=ecosystem.root,
        **BUILDER_OPTIONS,
    )


# ─── Setup ───────────────────────────────────────────────────────────────


class TestSetup:
    """Test which packages get watched."""

    def test_watches_enabled_packages_and_concepts(self, ecosystem):
        flow_docs = ecosystem.package("flow", {"enabled": True, "sections": [section("overview")]})
        ecosystem.package("off", {"enabled": False})
        ecosystem.workspace("bare")
        concept = ecosystem.concept("flow", "basics", {"id": "basics"}, {"a.md": "# A"})

        engine = _engine(ecosystem)
        units = engine.setup()

        owner = str(flow_docs.resolve())
        assert list(units) == [owner]
        assert units[owner].package_name == "flow"
        assert units[owner].ecosystem == "grove"
        assert engine.watcher.find_owner(concept / "a.md") == owner
        engine.watcher.observer.start.assert_called_once()

    def test_legacy_package_watches_authoring_location(self, ecosystem):
        docs = ecosystem.package("flow", {"enabled": True, "sections": [section("overview")]})
        authoring = ecosystem.notebook / "workspaces" / "flow" / "docgen"
        (authoring / "docs").mkdir(parents=True)

        engine = _engine(ecosystem)
        engine.setup()

        owner = engine.handle_event(FileCreatedEvent(str(authoring / "docgen.config.yml")))
        assert owner == str(docs.resolve())
        engine.coalescer.cancel()

    def test_authoring_dir_created_after_setup(self, ecosystem):
        docs = ecosystem.package("flow", {"enabled": True, "sections": [section("overview")]})
        package_dir = ecosystem.notebook / "workspaces" / "flow"
        package_dir.mkdir(parents=True)
        engine = _engine(ecosystem)
        engine.setup()

        write_yaml(package_dir / "docgen" / "docgen.config.yml", {"enabled": True})
        assert engine.handle_event(DirCreatedEvent(str(package_dir / "docgen"))) is None

        message = engine.watcher.messages.get_nowait()
        assert engine.handle_event(message.event) == str(docs.resolve())
        engine.coalescer.cancel()

    def test_invalid_config_is_skipped(self, ecosystem):
        docs = ecosystem.package("broken", {"enabled": True})
        (docs / "docgen.config.yml").write_text("sections: [\n")
        ecosystem.package("flow", {"enabled": True})

        units = _engine(ecosystem).setup()
        assert [u.package_name for u in units.values()] == ["flow"]

    def test_allow_list_applies(self, ecosystem):
        ecosystem.local_config(
            {"settings": {"ecosystems": ["grove"]}, "sidebar": {"categories": {"Core": {"packages": ["nb"]}}}}
        )
        ecosystem.package("flow", {"enabled": True})
        ecosystem.package("nb", {"enabled": True})

        units = _engine(ecosystem).setup()
        assert [u.package_name for u in units.values()] == ["nb"]

    def test_nothing_to_watch_is_fatal(self, ecosystem):
        ecosystem.package("off", {"enabled": False})
        engine = _engine(ecosystem)
        with pytest.raises(WatcherInitError):
            engine.setup()
        engine.watcher.observer.start.assert_not_called()

    def test_invalid_mode(self, ecosystem):
        with pytest.raises(InvalidModeError):
            _engine(ecosystem, mode="live")


# ─── Event routing ───────────────────────────────────────────────────────


class TestHandleEvent:
    """Test the dispatcher's decisions."""

    @pytest.fixture
    def watched(self, ecosystem):
        docs = ecosystem.package("flow", {"enabled": True, "sections": [section("overview")]})
        engine = _engine(ecosystem)
        engine.setup()
        yield engine, docs
        engine.coalescer.cancel()

    def test_relevant_change_marks_owner(self, watched):
        engine, docs = watched
        owner = engine.handle_event(FileModifiedEvent(str(docs / "overview.md")))
        assert owner == str(docs.resolve())
        assert engine.coalescer.pending == {owner}

    def test_config_change_marks_owner(self, watched):
        engine, docs = watched
        assert engine.handle_event(FileModifiedEvent(str(docs / "docgen.config.yml"))) is not None

    def test_irrelevant_file_ignored(self, watched):
        engine, docs = watched
        assert engine.handle_event(FileModifiedEvent(str(docs / "notes.txt"))) is None
        assert engine.coalescer.pending == set()

    def test_deletes_ignored(self, watched):
        engine, docs = watched
        assert engine.handle_event(FileDeletedEvent(str(docs / "overview.md"))) is None

    def test_unwatched_path_ignored(self, watched, tmp_path):
        engine, docs = watched
        assert engine.handle_event(FileModifiedEvent(str(tmp_path / "elsewhere.md"))) is None

    def test_new_directory_extends_watch(self, watched):
        engine, docs = watched
        fresh = docs / "guides"
        fresh.mkdir()
        (fresh / "a.md").write_text("# A")

        assert engine.handle_event(DirCreatedEvent(str(fresh))) is None
        assert fresh.resolve() in engine.watcher.watched_dirs
        message = engine.watcher.messages.get_nowait()
        assert engine.handle_event(message.event) == str(docs.resolve())

    def test_deleted_directory_can_be_watched_again(self, watched):
        engine, docs = watched
        guides = docs / "guides"
        guides.mkdir()
        engine.handle_event(DirCreatedEvent(str(guides)))
        assert guides.resolve() in engine.watcher.watched_dirs

        assert engine.handle_event(DirDeletedEvent(str(guides))) is None
        assert guides.resolve() not in engine.watcher.watched_dirs

        engine.handle_event(DirCreatedEvent(str(guides)))
        assert guides.resolve() in engine.watcher.watched_dirs
        assert engine.watcher.observer.schedule.call_count == 3

    def test_moved_directory_follows_destination(self, watched):
        engine, docs = watched
        old = docs / "old"
        old.mkdir()
        engine.handle_event(DirCreatedEvent(str(old)))
        new = docs / "new"
        old.rename(new)

        engine.handle_event(DirMovedEvent(str(old), str(new)))
        watched_dirs = engine.watcher.watched_dirs
        assert new.resolve() in watched_dirs
        assert old.resolve() not in watched_dirs

    def test_watcher_error_is_logged_not_raised(self, watched):
        engine, docs = watched
        engine.dispatch(WatchMessage(error=TransientWatchError("queue overflow")))
        assert engine.coalescer.pending == set()


# ─── Loop lifecycle ──────────────────────────────────────────────────────


class TestRunLoop:
    """Test how the dispatcher loop ends."""

    def test_stop_before_run(self, ecosystem):
        ecosystem.package("flow", {"enabled": True})
        engine = _engine(ecosystem)
        engine.stop()
        engine.run()
        engine.watcher.observer.stop.assert_called_once()

    def test_dead_observer_ends_loop(self, ecosystem):
        ecosystem.package("flow", {"enabled": True})
        observer = MagicMock()
        observer.is_alive.return_value = False
        engine = _engine(ecosystem, watcher=RecursiveWatcher(observer=observer))
        engine.run()
        observer.start.assert_called_once()
        assert engine.coalescer.pending == set()


# ─── Live loop ───────────────────────────────────────────────────────────


@pytest.mark.slow
@pytest.mark.integration
class TestLiveLoop:
    """Test the full loop against the platform observer."""

    def test_edit_is_rebuilt_into_site(self, ecosystem):
        docs = ecosystem.package(
            "flow",
            {"enabled": True, "title": "Flow", "sections": [section("overview")]},
            {"overview.md": "# Before\n"},
        )
        site = AstroWriter(ecosystem.tmp / "site")
        Manifest(packages=[PackageManifest(name="flow")]).save(site.manifest_path)

        engine = _engine(ecosystem, watcher=RecursiveWatcher(), debounce_ms=50)
        engine.setup()
        loop = threading.Thread(target=engine.run, daemon=True)
        loop.start()
        try:
            write_yaml(
                docs / "docgen.config.yml",
                {"enabled": True, "title": "Flow", "sections": [section("overview"), section("usage", order=2)]},
            )
            (docs / "usage.md").write_text("# Usage\n")
            (docs / "overview.md").write_text("# After\n")

            target = site.doc_path("flow", "overview.md")
            deadline = time.monotonic() + 10
            while time.monotonic() < deadline:
                if target.is_file() and "# After" in target.read_text() and site.doc_path("flow", "usage.md").is_file():
                    break
                time.sleep(0.05)
            assert "# After" in target.read_text()

            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                sections = Manifest.load(site.manifest_path).packages[0].sections
                if [s.name for s in sections] == ["overview", "usage"]:
                    break
                time.sleep(0.05)
            assert [s.name for s in sections] == ["overview", "usage"]
        finally:
            engine.stop()
            loop.join(timeout=5)
        assert not loop.is_alive()
