"""
Unit tests for the Invoker: process spawning, failure isolation and results.
"""

import sys

import pytest

from tagscope.core.errors import DriverFailure
from tagscope.core.file_scanner import Category, FileEntry
from tagscope.services.drivers import CSCOPE, CTAGS, GTAGS
from tagscope.services.indexing_models import (
    EXIT_DRIVER_FAILURE,
    EXIT_OK,
    DriverResult,
    IndexJob,
    RunResult,
)
from tagscope.services.invoker import Invoker
from tagscope.services.output_layout import OutputLayout
from tests.support.fakes import install_fake_backend, read_args, read_listing

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake backends are shell scripts")

FILES = tuple(
    FileEntry(path=p, size_bytes=1, category=Category.C, included=True)
    for p in ("lib/util.c", "main.c", "src/app.h")
)


def _job(root, drivers, executables, output_dir="."):
    return IndexJob(
        root=root,
        output_dir=output_dir,
        drivers=tuple(drivers),
        executables=executables,
        files=FILES,
    )


@pytest.fixture
def dirs(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    return root, tmp_path / "bin", tmp_path / "rec"


class TestInvoker:
    def test_feeds_sorted_relative_listing_on_stdin(self, dirs):
        root, bin_dir, rec = dirs
        ctags = install_fake_backend(bin_dir, "ctags", rec)

        result = Invoker(OutputLayout(root)).run(_job(root, [CTAGS], {"ctags": str(ctags)}))

        assert result.ok
        assert read_listing(rec, "ctags") == ["lib/util.c", "main.c", "src/app.h"]
        assert (rec / "ctags.stdin").read_bytes().endswith(b"\n")
        assert (rec / "ctags.cwd").read_text().strip() == str(root.resolve())
        assert (root / "tags").exists()

    def test_arguments_carry_no_absolute_paths(self, dirs):
        root, bin_dir, rec = dirs
        ctags = install_fake_backend(bin_dir, "ctags", rec)
        cscope = install_fake_backend(bin_dir, "cscope", rec)

        Invoker(OutputLayout(root)).run(
            _job(root, [CTAGS, CSCOPE], {"ctags": str(ctags), "cscope": str(cscope)})
        )

        for name in ("ctags", "cscope"):
            assert not any(arg.startswith("/") for arg in read_args(rec, name))
            assert all(not line.startswith("/") for line in read_listing(rec, name))

    def test_one_failure_does_not_stop_others(self, dirs):
        root, bin_dir, rec = dirs
        ctags = install_fake_backend(bin_dir, "ctags", rec)
        cscope = install_fake_backend(bin_dir, "cscope", rec, exit_code=3, stderr="cscope: boom")

        result = Invoker(OutputLayout(root)).run(
            _job(root, [CTAGS, CSCOPE], {"ctags": str(ctags), "cscope": str(cscope)})
        )

        assert [r.driver for r in result.results] == ["ctags", "cscope"]
        assert result.results[0].ok
        failure = result.results[1].failure
        assert isinstance(failure, DriverFailure)
        assert failure.driver == "cscope"
        assert failure.returncode == 3
        assert "boom" in failure.diagnostics
        assert result.ok
        assert result.exit_code == EXIT_OK
        assert (root / "tags").exists()

    def test_require_all_turns_partial_failure_into_error(self, dirs):
        root, bin_dir, rec = dirs
        ctags = install_fake_backend(bin_dir, "ctags", rec)
        cscope = install_fake_backend(bin_dir, "cscope", rec, exit_code=1)

        result = Invoker(OutputLayout(root), require_all=True).run(
            _job(root, [CTAGS, CSCOPE], {"ctags": str(ctags), "cscope": str(cscope)})
        )

        assert not result.ok
        assert result.exit_code == EXIT_DRIVER_FAILURE
        # The successful database is kept
        assert (root / "tags").exists()

    def test_all_failed(self, dirs):
        root, bin_dir, rec = dirs
        gtags = install_fake_backend(bin_dir, "gtags", rec, exit_code=2)

        result = Invoker(OutputLayout(root)).run(_job(root, [GTAGS], {"gtags": str(gtags)}))

        assert not result.ok
        assert result.exit_code == EXIT_DRIVER_FAILURE

    def test_spawn_failure_is_captured(self, dirs):
        root, bin_dir, rec = dirs
        ctags = install_fake_backend(bin_dir, "ctags", rec)

        result = Invoker(OutputLayout(root)).run(
            _job(
                root,
                [CTAGS, CSCOPE],
                {"ctags": str(ctags), "cscope": str(bin_dir / "no-such-cscope")},
            )
        )

        failure = result.results[1].failure
        assert failure is not None
        assert failure.returncode is None
        assert str(failure) == "cscope: failed to start"
        assert result.ok

    def test_output_dir_created_and_used(self, dirs):
        root, bin_dir, rec = dirs
        gtags = install_fake_backend(bin_dir, "gtags", rec, output_dir="db")

        result = Invoker(OutputLayout(root, "db")).run(
            _job(root, [GTAGS], {"gtags": str(gtags)}, output_dir="db")
        )

        assert result.ok
        assert read_args(rec, "gtags") == ["-f", "-", "db"]
        assert (root / "db" / "GTAGS").exists()
        assert result.results[0].artifacts == ["db/GTAGS", "db/GRTAGS", "db/GPATH"]


class TestRunResult:
    def test_empty_run_is_ok(self):
        assert RunResult().ok
        assert RunResult(require_all=True).exit_code == EXIT_OK

    def test_failures_and_succeeded(self):
        failure = DriverFailure("cscope", "bad", returncode=1)
        result = RunResult(
            results=[DriverResult(driver="ctags"), DriverResult(driver="cscope", failure=failure)]
        )
        assert [r.driver for r in result.succeeded] == ["ctags"]
        assert result.failures == [failure]
        assert str(failure) == "cscope: exited with status 1"
