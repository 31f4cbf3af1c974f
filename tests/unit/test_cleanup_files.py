"""
Unit tests for filesystem pruning.
"""

import os
import time
from datetime import timedelta

from newsagg.cleanup.files import expand_patterns, prune_directories, prune_files, truncate_to_newest_half


def _age(path, days=0, hours=0):
    stamp = time.time() - days * 86400 - hours * 3600
    os.utime(path, (stamp, stamp))


class TestExpandPatterns:

    def test_files_only_and_deduplicated(self, tmp_path):
        (tmp_path / "logs").mkdir()
        (tmp_path / "logs" / "app.log").write_text("x")
        (tmp_path / "logs" / "nested.log").mkdir()

        paths = list(expand_patterns(tmp_path, ["logs/*.log", "logs/app.log"]))
        assert paths == [tmp_path / "logs" / "app.log"]


class TestTruncate:

    def test_keeps_newest_half(self, tmp_path):
        path = tmp_path / "app.log"
        path.write_text("1\n2\n3\n4")
        assert truncate_to_newest_half(path) == 2
        assert path.read_text() == "3\n4"

    def test_single_line_is_left_unchanged(self, tmp_path):
        path = tmp_path / "app.log"
        path.write_text("only line")
        assert truncate_to_newest_half(path) == 1
        assert path.read_text() == "only line"


class TestPruneFiles:

    def test_deletes_old_and_truncates_oversized(self, tmp_path):
        logs = tmp_path / "logs"
        logs.mkdir()
        old = logs / "old.log"
        old.write_text("stale\n")
        _age(old, days=10)

        big = logs / "big.log"
        big.write_text("\n".join(f"line {i}" for i in range(100)))

        fresh = logs / "fresh.log"
        fresh.write_text("ok\n")

        result = prune_files(tmp_path, ["logs/*.log"], max_age=timedelta(days=7), max_size_bytes=100)

        assert result.deleted == 1
        assert result.truncated == 1
        assert result.failed == 0
        assert not old.exists()
        assert big.read_text().split("\n")[0] == "line 50"
        assert fresh.read_text() == "ok\n"

    def test_no_size_limit_never_truncates(self, tmp_path):
        path = tmp_path / "x.tmp"
        path.write_text("a" * 1000)
        result = prune_files(tmp_path, ["*.tmp"], max_age=timedelta(hours=24))
        assert result.truncated == 0
        assert path.exists()

    def test_no_matches(self, tmp_path):
        result = prune_files(tmp_path, ["logs/*.log"], max_age=timedelta(days=1))
        assert (result.deleted, result.truncated, result.failed) == (0, 0, 0)


class TestPruneDirectories:

    def test_recursive_expiry(self, tmp_path):
        nested = tmp_path / "cache" / "feeds"
        nested.mkdir(parents=True)
        expired = nested / "a.json"
        expired.write_text("{}")
        _age(expired, hours=30)
        current = tmp_path / "cache" / "b.json"
        current.write_text("{}")

        result = prune_directories(tmp_path, ["cache/"], max_age=timedelta(hours=24))

        assert result.deleted == 1
        assert not expired.exists()
        assert current.exists()
        assert nested.is_dir()
