"""
End-to-end tests for IndexingService with fake backends on a private PATH.
"""

import logging
import shutil
import sys
from pathlib import Path

import pytest

from tagscope.core.config import TagscopeConfig
from tagscope.core.errors import ConfigurationError
from tagscope.services.indexing_models import EXIT_DRIVER_FAILURE, EXIT_OK
from tagscope.services.indexing_service import IndexingService
from tests.support.fakes import (
    RecordingSniffer,
    install_fake_backend,
    read_args,
    read_listing,
    write_tree,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake backends are shell scripts")


@pytest.fixture
def env(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root, tmp_path / "bin", tmp_path / "rec"


def _service(bin_dir, config=None, sniffer=None):
    return IndexingService(
        config=config or TagscopeConfig(),
        content_sniffer=sniffer or RecordingSniffer(),
        search_path=str(bin_dir),
    )


class TestScenarios:
    def test_extension_and_content_detection(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"main.cpp": "int main() {}\n", "main.h": "int f();\n", "run": "#!/bin/sh\n"})
        install_fake_backend(bin_dir, "ctags", rec)

        service = _service(bin_dir)
        classified = {e.path: e.category.value for e in service.classify_directory(root)}
        result = service.index_directory(root)

        assert classified == {"main.cpp": "c++", "main.h": "c-header", "run": "shell"}
        assert result.exit_code == EXIT_OK
        assert read_listing(rec, "ctags") == ["main.cpp", "main.h", "run"]

    def test_vcs_directory_content_never_read(self, env):
        root, bin_dir, rec = env
        write_tree(root, {f".git/hooks/hook{i}": f"#!/bin/sh\n# GIT-{i}\n" for i in range(200)})
        write_tree(root, {"main.c": "int x;\n"})
        install_fake_backend(bin_dir, "ctags", rec)
        sniffer = RecordingSniffer()

        result = _service(bin_dir, sniffer=sniffer).index_directory(root)

        assert result.files == ["main.c"]
        assert not any(b"GIT-" in sample for sample in sniffer.samples)
        assert read_listing(rec, "ctags") == ["main.c"]

    def test_backup_files_excluded(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"notes.bak": "#!/bin/sh\n", "readme.txt~": "#!/bin/sh\n", "a.c": ""})
        install_fake_backend(bin_dir, "ctags", rec)

        result = _service(bin_dir).index_directory(root)

        assert result.files == ["a.c"]

    def test_single_backend_installed_reports_others_missing(self, env, caplog):
        root, bin_dir, rec = env
        write_tree(root, {"main.c": "int x;\n"})
        install_fake_backend(bin_dir, "ctags", rec)

        with caplog.at_level(logging.WARNING):
            result = _service(bin_dir).index_directory(root)

        assert [r.driver for r in result.results] == ["ctags"]
        assert result.missing == ["cscope", "gtags"]
        assert result.exit_code == EXIT_OK
        assert "cscope is not installed" in caplog.text

    def test_no_backend_aborts_before_reading_content(self, env):
        root, bin_dir, rec = env
        bin_dir.mkdir()
        write_tree(root, {"script": "#!/bin/sh\n", "main.c": ""})
        sniffer = RecordingSniffer()

        with pytest.raises(ConfigurationError):
            _service(bin_dir, sniffer=sniffer).index_directory(root)

        assert sniffer.samples == []
        assert not (root / "tags").exists()


class TestRunBehaviour:
    def test_ctags_and_cscope_both_run_for_c(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"src/main.c": "", "include/app.h": ""})
        for name in ("ctags", "cscope", "gtags"):
            install_fake_backend(bin_dir, name, rec)

        result = _service(bin_dir).index_directory(root)

        assert [r.driver for r in result.results] == ["ctags", "cscope"]
        assert result.missing == []
        assert read_listing(rec, "cscope") == ["include/app.h", "src/main.c"]
        assert not (rec / "gtags.stdin").exists()

    def test_idempotent_driver_input(self, env):
        root, bin_dir, rec = env
        write_tree(root, {f"d{i}/f{j}.c": "" for i in range(4) for j in range(6)})
        write_tree(root, {"tools/gen": "#!/usr/bin/env python\n"})
        install_fake_backend(bin_dir, "ctags", rec)

        _service(bin_dir).index_directory(root)
        first = (rec / "ctags.stdin").read_bytes()
        _service(bin_dir).index_directory(root)
        second = (rec / "ctags.stdin").read_bytes()

        assert first == second
        assert b"tags\n" not in first

    def test_worker_count_does_not_change_driver_input(self, env):
        root, bin_dir, rec = env
        write_tree(root, {f"pkg{i}/mod{j}.py": "" for i in range(5) for j in range(5)})
        install_fake_backend(bin_dir, "ctags", rec)

        listings = []
        for jobs in (1, 2, 7):
            config = TagscopeConfig()
            config.scan.jobs = jobs
            _service(bin_dir, config).index_directory(root)
            listings.append((rec / "ctags.stdin").read_bytes())

        assert listings[0] == listings[1] == listings[2]

    def test_databases_survive_moving_the_tree(self, env, tmp_path):
        """Recorded paths are root-relative, so a moved tree needs no reindex."""
        root, bin_dir, rec = env
        write_tree(root, {"src/a.c": "", "src/b.h": "", "tools/run": "#!/bin/sh\n"})
        install_fake_backend(bin_dir, "ctags", rec, listing_in_artifact=True)

        _service(bin_dir).index_directory(root)
        recorded = (root / "tags").read_text().splitlines()

        moved = tmp_path / "relocated" / "checkout"
        moved.parent.mkdir()
        shutil.move(str(root), str(moved))

        assert not root.exists()
        assert recorded == ["src/a.c", "src/b.h", "tools/run"]
        assert not any(Path(p).is_absolute() for p in recorded)
        assert all((moved / p).is_file() for p in recorded)
        assert not any(str(tmp_path) in arg for arg in read_args(rec, "ctags"))

        _service(bin_dir).index_directory(moved)

        assert (moved / "tags").read_text().splitlines() == recorded
        assert (rec / "ctags.cwd").read_text().strip() == str(moved.resolve())

    def test_pinned_driver(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"main.c": ""})
        for name in ("ctags", "cscope"):
            install_fake_backend(bin_dir, name, rec)
        config = TagscopeConfig()
        config.drivers.pinned = "cscope"

        result = _service(bin_dir, config).index_directory(root)

        assert [r.driver for r in result.results] == ["cscope"]
        assert result.missing == []

    def test_pinned_driver_missing(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"main.c": ""})
        install_fake_backend(bin_dir, "ctags", rec)
        config = TagscopeConfig()
        config.drivers.pinned = "gtags"

        with pytest.raises(ConfigurationError, match="gtags"):
            _service(bin_dir, config).index_directory(root)

    def test_partial_failure_with_require_all(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"main.c": ""})
        install_fake_backend(bin_dir, "ctags", rec)
        install_fake_backend(bin_dir, "cscope", rec, exit_code=1, stderr="broken")
        config = TagscopeConfig()
        config.drivers.require_all = True

        result = _service(bin_dir, config).index_directory(root)

        assert result.exit_code == EXIT_DRIVER_FAILURE
        assert [f.driver for f in result.failures] == ["cscope"]

    def test_nothing_to_index(self, env, caplog):
        root, bin_dir, rec = env
        write_tree(root, {"README": "hello\n"})
        install_fake_backend(bin_dir, "ctags", rec)

        with caplog.at_level(logging.WARNING):
            result = _service(bin_dir).index_directory(root)

        assert result.results == []
        assert result.exit_code == EXIT_OK
        assert not (rec / "ctags.stdin").exists()
        assert "No indexable files" in caplog.text

    def test_user_excludes(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"build/gen.c": "", "vendor/x.min.js": "", "src/a.c": ""})
        install_fake_backend(bin_dir, "ctags", rec)
        config = TagscopeConfig()
        config.scan.exclude_patterns = ["build/", "*.min.js"]

        result = _service(bin_dir, config).index_directory(root)

        assert result.files == ["src/a.c"]

    def test_invalid_exclude_pattern(self, env):
        root, bin_dir, rec = env
        install_fake_backend(bin_dir, "ctags", rec)
        config = TagscopeConfig()
        config.scan.exclude_patterns = ["/"]

        with pytest.raises(ConfigurationError, match="Invalid exclude pattern"):
            _service(bin_dir, config).index_directory(root)

    @pytest.mark.parametrize(
        "section, key, value, message",
        [
            ("scan", "jobs", -3, "max_workers must be at least 1"),
            ("classify", "sample_size", 0, "sample_size must be positive"),
        ],
    )
    def test_out_of_range_tuning_is_a_configuration_error(
        self, env, section, key, value, message
    ):
        root, bin_dir, rec = env
        write_tree(root, {"a.c": ""})
        install_fake_backend(bin_dir, "ctags", rec)
        config = TagscopeConfig()
        setattr(getattr(config, section), key, value)

        with pytest.raises(ConfigurationError, match=message):
            _service(bin_dir, config).index_directory(root)

        assert not (rec / "ctags.stdin").exists()

    def test_output_dir_databases_not_reindexed(self, env):
        root, bin_dir, rec = env
        write_tree(root, {"a.c": "", "db/tags": "stale\n", "src/tags": "#!/bin/sh\n"})
        install_fake_backend(bin_dir, "ctags", rec, output_dir="db")
        config = TagscopeConfig()
        config.drivers.output_dir = "db"

        result = _service(bin_dir, config).index_directory(root)

        assert result.ok
        assert result.files == ["a.c", "src/tags"]
        assert (root / "db" / "tags").exists()

    def test_output_dir_outside_root(self, env):
        root, bin_dir, rec = env
        install_fake_backend(bin_dir, "ctags", rec)
        config = TagscopeConfig()
        config.drivers.output_dir = "../elsewhere"

        with pytest.raises(ConfigurationError):
            _service(bin_dir, config).index_directory(root)

    def test_invalid_root(self, env):
        root, bin_dir, rec = env
        install_fake_backend(bin_dir, "ctags", rec)

        with pytest.raises(ConfigurationError, match="does not exist"):
            _service(bin_dir).index_directory(root / "missing")


class TestInspect:
    def test_inspect_needs_no_backend(self, env):
        root, bin_dir, rec = env
        bin_dir.mkdir()
        write_tree(root, {"a.c": "", "run": "#!/bin/sh\n", "notes": "text\n", "x.bak": ""})

        explained = _service(bin_dir).inspect_directory(root)

        assert [(e.path, c.method) for e, c in explained] == [
            ("a.c", "extension"),
            ("notes", None),
            ("run", "mime"),
        ]
