"""
Unit tests for core/scanner.py
Verifies recursive aggregation, filters, depth limits, summary scopes,
per-entry error reporting, cancellation and the threaded walk.
"""
import errno
import os
from unittest import mock

import pytest

from extdu.core.classifier import PathClassifier
from extdu.core.models import Severity
from extdu.core.patterns import FilterSet
from extdu.core.scanner import DiskUsageScanner, scan
from extdu.core.walker import PosixDirectoryWalker


def full_scan(tree, **kwargs):
    return DiskUsageScanner(**kwargs).scan(str(tree["root"]))


class DocsRejectingWalker(PosixDirectoryWalker):
    """Treats any directory named docs as an invalid name."""

    @staticmethod
    def is_valid_path(path):
        return os.path.basename(path) != "docs"


# =============================================================================
# 1. AGGREGATION
# =============================================================================
class TestScanAggregation:
    """Every regular file below the root is counted once under its key."""

    def test_counts_and_sizes_per_extension(self, usage_tree):
        result = full_scan(usage_tree)

        assert not result.cancelled
        assert result.file_count == 10
        assert result.table.keys() == ["", "cfg", "md", "py", "txt"]
        assert result.table["txt"].count == 3
        assert result.table["txt"].file_size == 340
        assert result.table["py"].file_size == 500
        assert result.table[""].count == 2  # README and .git/HEAD
        assert result.table["cfg"].count == 1  # .hidden.cfg
        assert result.messages == []

    def test_total_matches_file_count(self, usage_tree):
        result = full_scan(usage_tree)
        total = result.table.total()
        assert total.count == result.file_count
        assert total.file_size == 1000

    def test_empty_directory(self, temp_dir):
        result = DiskUsageScanner().scan(str(temp_dir))
        assert result.file_count == 0
        assert result.table.is_empty()

    def test_module_level_scan(self, usage_tree):
        result = scan(str(usage_tree["root"]), filters=FilterSet.from_patterns(include_items=["*.txt"]))
        assert result.file_count == 3
        assert result.table.keys() == ["txt"]

    def test_custom_classifier(self, usage_tree):
        classifier = PathClassifier.from_strings([r".*\.(py|txt);text"])
        result = full_scan(usage_tree, classifier=classifier)
        assert result.table["text"].count == 6
        assert result.table[""].count == 4

    def test_file_listener_sees_every_counted_file(self, usage_tree):
        seen = []
        DiskUsageScanner(file_listener=seen.append).scan(str(usage_tree["root"]))
        assert len(seen) == 10
        assert str(usage_tree["src/deep/notes.txt"]) in seen

    def test_progress_reported_at_end(self, usage_tree):
        calls = []
        DiskUsageScanner().scan(str(usage_tree["root"]),
                                progress_callback=lambda *args: calls.append(args))
        assert calls[-1] == ("scanning", 10, None)


# =============================================================================
# 2. ROOT VARIANTS
# =============================================================================
class TestScanRoots:

    def test_single_file_root(self, usage_tree):
        result = DiskUsageScanner().scan(str(usage_tree["b.txt"]))
        assert result.file_count == 1
        assert result.table["txt"].file_size == 200

    def test_wildcard_root_expanded(self, usage_tree):
        result = DiskUsageScanner().scan(os.path.join(str(usage_tree["root"]), "*.txt"))
        assert result.file_count == 2
        assert result.table["txt"].file_size == 300

    def test_wildcard_root_matching_directories(self, usage_tree):
        result = DiskUsageScanner().scan(os.path.join(str(usage_tree["root"]), "s*"))
        assert result.file_count == 3

    def test_missing_root_is_reported_not_raised(self, temp_dir):
        missing = str(temp_dir / "nope")
        result = DiskUsageScanner().scan(missing)
        assert result.file_count == 0
        assert len(result.errors) == 1
        assert result.errors[0].path == missing
        assert result.errors[0].message.startswith("Cannot open directory")


# =============================================================================
# 3. FILTERS AND DEPTH
# =============================================================================
class TestScanFilters:

    def test_include_items_selects_files_in_all_directories(self, usage_tree):
        result = full_scan(usage_tree, filters=FilterSet.from_patterns(include_items=["*.py"]))
        assert result.file_count == 3

    def test_excluded_directory_name_is_pruned(self, usage_tree):
        result = full_scan(usage_tree, filters=FilterSet.from_patterns(exclude_items=[".git"]))
        assert result.file_count == 9
        assert result.table[""].count == 1

    def test_excluded_directory_path_is_pruned(self, usage_tree):
        result = full_scan(usage_tree, filters=FilterSet.from_patterns(exclude_paths=["*/src"]))
        assert result.file_count == 7
        assert "py" in result.table and result.table["py"].count == 1

    def test_include_path_filters_files(self, usage_tree):
        result = full_scan(usage_tree, filters=FilterSet.from_patterns(include_paths=["*/docs/*"]))
        assert result.file_count == 1
        assert result.table.keys() == ["md"]

    def test_depth_one_counts_root_files_only(self, usage_tree):
        result = full_scan(usage_tree, max_depth=1)
        assert result.file_count == 5

    def test_depth_two_stops_below_first_level(self, usage_tree):
        result = full_scan(usage_tree, max_depth=2)
        assert result.file_count == 9
        assert result.table["txt"].count == 2

    def test_hard_depth_ceiling_reports_warning(self, temp_dir, monkeypatch):
        monkeypatch.setattr("extdu.core.scanner.MAX_DIR_DEPTH", 2)
        deep = temp_dir / "a" / "b" / "c"
        deep.mkdir(parents=True)
        (temp_dir / "a" / "f1.txt").write_text("1")
        (temp_dir / "a" / "b" / "f2.txt").write_text("2")
        (deep / "f3.txt").write_text("3")

        result = DiskUsageScanner().scan(str(temp_dir))

        assert result.file_count == 2
        assert len(result.warnings) == 1
        assert result.warnings[0].path.endswith("c")
        assert "Exceeded max directory depth" in result.warnings[0].message

    def test_invalid_directory_name_reported(self, usage_tree):
        result = DiskUsageScanner(walker_factory=DocsRejectingWalker).scan(str(usage_tree["root"]))
        invalid = [m for m in result.errors if m.message == "Invalid file name"]
        assert [os.path.basename(m.path) for m in invalid] == ["docs"]
        assert result.file_count == 9


# =============================================================================
# 4. LINKS
# =============================================================================
class TestScanLinks:

    def test_hardlinks_counted_and_divided(self, usage_tree, requires_hardlinks):
        os.link(usage_tree["a.txt"], usage_tree["root"] / "src" / "a_copy.txt")

        plain = full_scan(usage_tree)
        assert plain.table["txt"].count == 4
        assert plain.table["txt"].hardlinks == 2
        assert plain.table["txt"].file_size == 440

        divided = full_scan(usage_tree, divide_by_hardlinks=True)
        assert divided.table["txt"].file_size == 340

    def test_symlinks_counted_without_size_and_not_followed(self, usage_tree, requires_symlinks):
        root = usage_tree["root"]
        (root / "alias.txt").symlink_to(usage_tree["a.txt"])
        (root / "srclink").symlink_to(root / "src", target_is_directory=True)

        result = full_scan(usage_tree)

        assert result.file_count == 12
        assert result.table["txt"].softlinks == 1
        assert result.table["txt"].file_size == 340
        assert result.table[""].softlinks == 1
        assert result.table["py"].count == 3


# =============================================================================
# 5. ERROR CHANNEL
# =============================================================================
class TestScanErrors:
    """Per-entry failures are reported and skipped; the walk continues."""

    def test_unreadable_directory_treated_as_empty(self, usage_tree):
        real_scandir = os.scandir
        blocked = str(usage_tree["root"] / "src")

        def fake_scandir(path):
            if str(path) == blocked:
                raise PermissionError(errno.EACCES, "Permission denied", path)
            return real_scandir(path)

        with mock.patch("os.scandir", side_effect=fake_scandir):
            result = full_scan(usage_tree)

        assert result.file_count == 7
        assert len(result.errors) == 1
        assert result.errors[0] == (Severity.ERROR, blocked, "Cannot open directory (Permission denied)")

    @pytest.mark.parametrize("err,message", [
        (errno.EACCES, "Special characters or no permission to"),
        (errno.ENOENT, "Special characters or no permission to"),
        (errno.EINVAL, "Invalid"),
        (errno.EIO, "Cannot stat (Input/output error)"),
    ])
    def test_stat_failure_skips_entry(self, usage_tree, err, message):
        real_lstat = os.lstat
        failing = str(usage_tree["a.txt"])

        def fake_lstat(path, *args, **kwargs):
            if str(path) == failing:
                raise OSError(err, os.strerror(err) if err == errno.EIO else "boom", path)
            return real_lstat(path, *args, **kwargs)

        with mock.patch("os.lstat", side_effect=fake_lstat):
            result = full_scan(usage_tree)

        assert result.file_count == 9
        assert result.table["txt"].count == 2
        assert [(m.path, m.message) for m in result.errors] == [(failing, message)]


# =============================================================================
# 6. SUMMARY SCOPES
# =============================================================================
class TestSummaryScopes:

    def test_summary_pattern_gets_own_table(self, usage_tree):
        result = full_scan(usage_tree, filters=FilterSet.from_patterns(summary_paths=["*/src"]))

        assert len(result.scopes) == 1
        scope = result.scopes[0]
        assert scope.path == str(usage_tree["root"] / "src")
        assert scope.table.total().count == 3
        assert scope.table["py"].count == 2
        assert scope.table["txt"].count == 1

        # Files inside the scope are not part of the root table
        assert result.table.total().count == 7
        assert result.file_count == 10

    def test_scope_with_include_path_counts_only_scoped_files(self, usage_tree):
        filters = FilterSet.from_patterns(summary_paths=["*/src"], include_paths=["*/src/*"])
        result = full_scan(usage_tree, filters=filters)

        assert result.table.is_empty()
        assert result.file_count == 3
        assert result.scopes[0].table.total().count == 3

    def test_summarize_top_level(self, usage_tree):
        result = full_scan(usage_tree, summarize_top_level=True)
        paths = sorted(os.path.basename(scope.path) for scope in result.scopes)
        assert paths == [".git", "docs", "src"]
        assert result.table.total().count == 5

    def test_nested_scopes_reported_separately(self, usage_tree):
        filters = FilterSet.from_patterns(summary_paths=["*/src", "*/deep"])
        result = full_scan(usage_tree, filters=filters)
        by_name = {os.path.basename(s.path): s for s in result.scopes}
        assert by_name["deep"].table.total().count == 1
        assert by_name["src"].table.total().count == 2


# =============================================================================
# 7. CANCELLATION
# =============================================================================
class TestCancellation:

    def test_cancelled_before_start(self, usage_tree):
        result = DiskUsageScanner().scan(str(usage_tree["root"]), stopped_flag=lambda: True)
        assert result.cancelled
        assert result.file_count == 0
        assert result.table.is_empty()
        assert result.scopes == []

    def test_cancelled_midway_discards_partial_totals(self, usage_tree):
        calls = {"n": 0}

        def stop_after_a_few():
            calls["n"] += 1
            return calls["n"] > 4

        result = DiskUsageScanner().scan(str(usage_tree["root"]), stopped_flag=stop_after_a_few)
        assert result.cancelled
        assert result.table.is_empty()
        assert result.file_count == 0

    def test_cancelled_threaded_scan(self, usage_tree):
        scanner = DiskUsageScanner(threads=3)
        result = scanner.scan(str(usage_tree["root"]), stopped_flag=lambda: True)
        assert result.cancelled
        assert result.table.is_empty()


# =============================================================================
# 8. THREADED WALK
# =============================================================================
class TestThreadedScan:

    def test_same_totals_as_sequential(self, usage_tree):
        sequential = full_scan(usage_tree)
        threaded = full_scan(usage_tree, threads=4)
        assert threaded.file_count == sequential.file_count
        assert threaded.table == sequential.table

    def test_threaded_with_scopes(self, usage_tree):
        result = full_scan(usage_tree, threads=2, summarize_top_level=True)
        assert sorted(os.path.basename(s.path) for s in result.scopes) == [".git", "docs", "src"]
        assert result.table.total().count == 5
        assert result.file_count == 10

    def test_threaded_with_depth_limit(self, usage_tree):
        result = full_scan(usage_tree, threads=2, max_depth=2)
        assert result.file_count == 9
