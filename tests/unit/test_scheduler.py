"""
Unit tests for ClassificationScheduler fan-out and merge.
"""

import logging
import os
import threading
import time

import pytest

from tagscope.core.classifier import Classifier
from tagscope.core.file_scanner import Category, FileEntry, FileScanner
from tagscope.services.scheduler import ClassificationScheduler, default_worker_count
from tests.support.fakes import RecordingSniffer, write_tree

TREE = {
    "src/main.cpp": "int main() {}\n",
    "src/main.h": "#pragma once\n",
    "scripts/deploy": "#!/bin/sh\necho deploy\n",
    "scripts/tool": "#!/usr/bin/env python\nprint(1)\n",
    "README": "plain text\n",
    "data.bin": b"\x00\x01\x02",
    "lib/util.c": "int util;\n",
}


@pytest.fixture
def tree(tmp_path):
    write_tree(tmp_path, TREE)
    return tmp_path


def _classify(root, workers):
    scheduler = ClassificationScheduler(Classifier(RecordingSniffer()), max_workers=workers)
    return scheduler.classify_all(root, FileScanner().scan(root))


class TestClassifyAll:
    def test_drops_unsupported_and_sorts(self, tree):
        result = _classify(tree, 4)

        assert [e.path for e in result] == [
            "lib/util.c",
            "scripts/deploy",
            "scripts/tool",
            "src/main.cpp",
            "src/main.h",
        ]
        assert all(e.included for e in result)
        categories = {e.path: e.category for e in result}
        assert categories["scripts/deploy"] is Category.SHELL
        assert categories["scripts/tool"] is Category.PYTHON
        assert categories["src/main.h"] is Category.C_HEADER

    @pytest.mark.parametrize("workers", [1, 2, 3, 8])
    def test_worker_count_does_not_change_output(self, tree, workers):
        assert _classify(tree, workers) == _classify(tree, 1)

    def test_sorted_regardless_of_completion_order(self, tmp_path):
        entries = [FileEntry(path=f"f{i}.c", size_bytes=0, extension=".c") for i in range(10)]

        class SlowFirstClassifier(Classifier):
            def classify_entry(self, root, entry):
                # Earlier submissions finish last
                time.sleep(0.002 * (10 - int(entry.path[1:-2])))
                return super().classify_entry(root, entry)

        scheduler = ClassificationScheduler(SlowFirstClassifier(RecordingSniffer()), max_workers=4)
        result = scheduler.classify_all(tmp_path, reversed(entries))

        assert [e.path for e in result] == sorted(e.path for e in entries)

    def test_uses_multiple_threads(self, tree):
        seen = set()

        class ThreadRecordingClassifier(Classifier):
            def classify_entry(self, root, entry):
                seen.add(threading.current_thread().name)
                time.sleep(0.01)
                return super().classify_entry(root, entry)

        scheduler = ClassificationScheduler(
            ThreadRecordingClassifier(RecordingSniffer()), max_workers=4
        )
        scheduler.classify_all(tree, FileScanner().scan(tree))

        assert len(seen) > 1
        assert all(name.startswith("tagscope-classify") for name in seen)

    @pytest.mark.parametrize("workers", [1, 4])
    def test_per_file_errors_are_absorbed(self, tree, workers, caplog):
        class FailingClassifier(Classifier):
            def classify_entry(self, root, entry):
                if entry.path == "lib/util.c":
                    raise RuntimeError("boom")
                return super().classify_entry(root, entry)

        scheduler = ClassificationScheduler(
            FailingClassifier(RecordingSniffer()), max_workers=workers
        )
        with caplog.at_level(logging.ERROR):
            result = scheduler.classify_all(tree, FileScanner().scan(tree))

        assert "lib/util.c" not in [e.path for e in result]
        assert "src/main.cpp" in [e.path for e in result]
        assert "Failed to classify lib/util.c" in caplog.text

    def test_progress_callback(self, tree):
        calls = []
        scheduler = ClassificationScheduler(
            Classifier(RecordingSniffer()),
            max_workers=2,
            progress_callback=lambda done, total: calls.append((done, total)),
        )
        scheduler.classify_all(tree, FileScanner().scan(tree))

        assert calls[-1] == (len(TREE), len(TREE))


class TestExplainAll:
    def test_keeps_every_entry_with_reason(self, tree):
        scheduler = ClassificationScheduler(Classifier(RecordingSniffer()), max_workers=2)

        explained = scheduler.explain_all(tree, FileScanner().scan(tree))

        assert [entry.path for entry, _ in explained] == sorted(TREE)
        reasons = {entry.path: c for entry, c in explained}
        assert reasons["src/main.cpp"].method == "extension"
        assert reasons["scripts/deploy"].method == "mime"
        assert reasons["README"].method is None
        assert reasons["README"].mime_type == "text/plain"


class TestConstruction:
    def test_default_workers(self):
        scheduler = ClassificationScheduler(Classifier(RecordingSniffer()))
        assert scheduler.max_workers == default_worker_count() >= 1

    def test_rejects_negative_workers(self):
        with pytest.raises(ValueError):
            ClassificationScheduler(Classifier(RecordingSniffer()), max_workers=-1)

    def test_default_workers_follow_cpu_affinity(self, monkeypatch):
        monkeypatch.setattr(os, "sched_getaffinity", lambda pid: {0, 3, 5}, raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: 64)
        assert default_worker_count() == 3

    def test_default_workers_without_affinity_support(self, monkeypatch):
        monkeypatch.delattr(os, "sched_getaffinity", raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: None)
        assert default_worker_count() == 1
