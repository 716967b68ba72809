"""Unit tests for CacheStore rebuild, repair, backup and lookup."""

import logging
import os
import threading
from pathlib import Path

import pytest

from project_index.core.errors import ProjectNotFoundError
from project_index.core.fileutil import file_lock


@pytest.fixture
def populated(projects_root, descriptor):
    """Three projects, one nested two levels down."""
    descriptor(projects_root / "web", name="Web", workspace=2, tags=["frontend", "react"])
    descriptor(projects_root / "api", name="API", workspace=3, tags=["backend"])
    descriptor(projects_root / "clients" / "acme" / "portal", name="Portal")
    return projects_root


class TestScan:
    """Test descriptor discovery."""

    def test_scan_finds_nested_descriptors(self, store, populated):
        found = store.scan([populated])
        assert [p.parent.name for p in found] == ["api", "portal", "web"]

    def test_scan_ignores_other_filenames(self, store, populated, descriptor):
        descriptor(populated / "misc", name="Misc", filename="project.nix")
        assert len(store.scan([populated])) == 3

    def test_scan_skips_missing_directories(self, store, populated, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="project_index"):
            found = store.scan([tmp_path / "nope", populated])
        assert len(found) == 3
        assert "not found" in caplog.text


class TestRebuild:
    """Test full-table rebuild."""

    def test_rebuild_writes_sorted_canonical_rows(self, store, populated, config):
        count = store.rebuild([populated])

        lines = config.cache_file.read_text().splitlines()
        assert count == 3
        assert lines == sorted(lines)
        assert lines[0].startswith("API|3|backend|")
        assert lines[-1] == (
            f"Web|2|frontend,react|{populated / 'web'}|{populated / 'web' / '.project.nix'}"
        )

    def test_rebuild_is_deterministic(self, store, populated, config):
        store.rebuild([populated])
        first = config.cache_file.read_bytes()
        store.rebuild([populated])
        assert config.cache_file.read_bytes() == first

    def test_rebuild_empty_directory(self, store, projects_root, config):
        assert store.rebuild([projects_root]) == 0
        assert config.cache_file.exists()
        assert config.cache_file.read_text() == ""
        assert store.is_empty()

    def test_rebuild_replaces_removed_projects(self, store, populated, config):
        store.rebuild([populated])
        (populated / "api" / ".project.nix").unlink()

        assert store.rebuild([populated]) == 2
        assert "API|" not in config.cache_file.read_text()

    def test_rebuild_does_not_leave_temp_files(self, store, populated, config):
        store.rebuild([populated])
        leftovers = [p for p in config.cache_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_rebuild_replaces_file_atomically(self, store, populated, config):
        """Test the table is swapped by rename, never rewritten in place."""
        config.cache_file.parent.mkdir(parents=True, exist_ok=True)
        config.cache_file.write_text("old|1||/x|/x/.project.nix\n")
        old_inode = os.stat(config.cache_file).st_ino

        store.rebuild([populated])

        assert os.stat(config.cache_file).st_ino != old_inode

    def test_rebuild_waits_for_lock(self, store, populated, config):
        """Test a rebuild blocks while another writer holds the lock."""
        done = threading.Event()

        def run():
            store.rebuild([populated])
            done.set()

        with file_lock(config.lock_file):
            worker = threading.Thread(target=run)
            worker.start()
            assert not done.wait(0.2)
        worker.join(timeout=5)
        assert done.is_set()

    def test_duplicate_names_are_warned(self, store, projects_root, descriptor, caplog):
        descriptor(projects_root / "a", name="Same")
        descriptor(projects_root / "b", name="Same")

        with caplog.at_level(logging.WARNING, logger="project_index"):
            store.rebuild([projects_root])

        assert "'Same' appears 2 times" in caplog.text


class TestRepairSchema:
    """Test legacy row upgrade."""

    def test_repair_legacy_row(self, store, config):
        config.cache_file.parent.mkdir(parents=True)
        config.cache_file.write_text("Foo|2|/home/u/foo|/home/u/foo/.project|\n")

        assert store.repair_schema() == 1
        assert config.cache_file.read_text() == "Foo|2||/home/u/foo|/home/u/foo/.project\n"

    def test_repair_is_idempotent(self, store, config):
        config.cache_file.parent.mkdir(parents=True)
        config.cache_file.write_text(
            "Bar|1|/home/u/bar|/home/u/bar/.project.nix|cli,go\n"
            "Foo|2||/home/u/foo|/home/u/foo/.project.nix\n"
        )

        store.repair_schema()
        once = config.cache_file.read_text()
        assert store.repair_schema() == 0
        assert config.cache_file.read_text() == once

    def test_repair_leaves_canonical_table_untouched(self, store, populated, config):
        store.rebuild([populated])
        before = os.stat(config.cache_file).st_ino
        assert store.repair_schema() == 0
        assert os.stat(config.cache_file).st_ino == before

    def test_repair_without_table(self, store):
        assert store.repair_schema() == 0


class TestReaders:
    """Test lookup, records and ensure_built."""

    def test_lookup_returns_record(self, store, populated):
        store.rebuild([populated])
        record = store.lookup("Web")
        assert record.workspace == "2"
        assert record.tags == ("frontend", "react")

    def test_lookup_missing_raises(self, store, populated):
        store.rebuild([populated])
        with pytest.raises(ProjectNotFoundError) as exc_info:
            store.lookup("missing")
        assert exc_info.value.name == "missing"

    def test_lookup_first_match_wins(self, store, config):
        config.cache_file.parent.mkdir(parents=True)
        config.cache_file.write_text(
            "Same|1||/a|/a/.project.nix\n"
            "Same|2||/b|/b/.project.nix\n"
        )
        assert store.lookup("Same").directory == "/a"

    def test_lookup_reads_legacy_rows(self, store, config):
        config.cache_file.parent.mkdir(parents=True)
        config.cache_file.write_text("Foo|2|/home/u/foo|/home/u/foo/.project|web\n")
        record = store.lookup("Foo")
        assert record.directory == "/home/u/foo"
        assert record.tags == ("web",)

    def test_records_skip_malformed_rows(self, store, config):
        config.cache_file.parent.mkdir(parents=True)
        config.cache_file.write_text("broken\nOk|1||/ok|/ok/.project.nix\n")
        assert [r.name for r in store.records()] == ["Ok"]

    def test_ensure_built_only_when_empty(self, store, populated):
        assert store.ensure_built([populated]) is True
        assert store.ensure_built([populated]) is False


class TestBackup:
    """Test cache backup before manual repair."""

    def test_backup_copies_table(self, store, populated, config):
        store.rebuild([populated])
        backup = store.backup()

        assert backup is not None
        assert backup.name.startswith("projects.cache.backup-")
        assert backup.read_text() == config.cache_file.read_text()

    def test_backup_without_table(self, store):
        assert store.backup() is None
