"""
Unit tests for core/models.py
Verifies ScanParams validation, table helpers and link outcome bookkeeping.
"""
import os

import pytest

from extdu.core.classifier import PathClassifier
from extdu.core.models import (
    ColumnField, EntryMetadata, LinkCounts, LinkOutcome, LinkResult, ScanMessage, ScanParams, ScanResult, Severity,
    SortField, UsageRecord, UsageTable)
from extdu.core.patterns import FilterSet


class TestScanParams:
    """Validation happens at construction time."""

    def test_valid_defaults(self):
        params = ScanParams(roots=["/tmp"])
        assert params.max_depth == 0
        assert params.threads == 1
        assert not params.divide_by_hardlinks

    @pytest.mark.parametrize("kwargs,message", [
        ({"roots": []}, "At least one root"),
        ({"roots": [""]}, "cannot be empty"),
        ({"roots": ["/tmp"], "max_depth": -1}, "depth"),
        ({"roots": ["/tmp"], "threads": 0}, "Thread"),
    ])
    def test_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            ScanParams(**kwargs)

    def test_user_home_expanded(self):
        params = ScanParams(roots=["~"])
        assert params.roots == [os.path.expanduser("~")]

    def test_build_filters(self):
        params = ScanParams(roots=["/tmp"], include_items=["*.py"], summary_patterns=["*/home/*"])
        filters = params.build_filters()
        assert isinstance(filters, FilterSet)
        assert filters.accepts_file("a.py", "/tmp/a.py")
        assert not filters.accepts_file("a.c", "/tmp/a.c")
        assert filters.is_summary_directory("/home/bob")

    def test_build_filters_rejects_bad_regex(self):
        params = ScanParams(roots=["/tmp"], exclude_items=["("], regex_mode=True)
        with pytest.raises(ValueError):
            params.build_filters()

    def test_build_classifier(self):
        classifier = ScanParams(roots=["/tmp"], pick_rules=[r".*;all"]).build_classifier()
        assert isinstance(classifier, PathClassifier)
        assert classifier.classify("x.y") == "all"

    def test_build_classifier_rejects_malformed_rule(self):
        with pytest.raises(ValueError):
            ScanParams(roots=["/tmp"], pick_rules=["missing-separator"]).build_classifier()


class TestUsageTable:

    def test_iterates_in_key_order(self):
        table = UsageTable({k: UsageRecord(key=k) for k in ("txt", "c", "py")})
        assert [r.key for r in table] == ["c", "py", "txt"]

    def test_total(self):
        table = UsageTable({
            "a": UsageRecord("a", count=2, file_size=40, disk_size=8192, hardlinks=1),
            "b": UsageRecord("b", count=1, file_size=20, disk_size=4096, softlinks=1),
        })
        total = table.total()
        assert total.key == "_Total"
        assert (total.count, total.file_size, total.disk_size) == (3, 60, 12288)
        assert (total.hardlinks, total.softlinks) == (1, 1)

    def test_merge_does_not_alias_records(self):
        source = UsageTable({"a": UsageRecord("a", count=1)})
        target = UsageTable()
        target.merge(source)
        target["a"].count = 10
        assert source["a"].count == 1

    def test_value_of(self):
        usage = UsageRecord("py", count=3, file_size=30, disk_size=40, hardlinks=1)
        assert usage.value_of(SortField.KEY) == "py"
        assert usage.value_of(SortField.DISK_SIZE) == 40


class TestScanResult:

    def test_errors_and_warnings_split_by_severity(self):
        result = ScanResult(root="/x", messages=[
            ScanMessage(Severity.ERROR, "/x/a", "Cannot open directory"),
            ScanMessage(Severity.WARNING, "/x/b", "Exceeded max directory depth 200"),
            ScanMessage(Severity.INFO, "/x/c", "note"),
        ])
        assert [m.path for m in result.errors] == ["/x/a"]
        assert [m.path for m in result.warnings] == ["/x/b"]


class TestLinkOutcome:

    @pytest.mark.parametrize("outcome", list(LinkOutcome))
    def test_every_outcome_is_described(self, outcome):
        assert outcome.display_name != outcome.value
        assert outcome.description

    def test_failure_and_residue_flags(self):
        assert not LinkOutcome.COMPLETED.is_failure
        assert not LinkOutcome.ALREADY_LINKED.is_failure
        assert LinkOutcome.FAILED_LINK.is_failure
        assert not LinkOutcome.FAILED_LINK.leaves_residue
        assert LinkOutcome.FAILED_DELETE_BACKUP.leaves_residue
        assert LinkOutcome.FAILED_RESTORE_BACKUP.leaves_residue

    def test_describe_flags_residue(self):
        result = LinkResult(LinkOutcome.FAILED_DELETE_BACKUP, "/m", "/d", error="busy")
        text = result.describe()
        assert "/m -> /d" in text
        assert "(busy)" in text
        assert result.backup_path == "/d_tmp"
        assert "/d_tmp" in text

    def test_counts(self):
        counts = LinkCounts()
        for outcome in (LinkOutcome.COMPLETED, LinkOutcome.COMPLETED, LinkOutcome.ALREADY_LINKED,
                        LinkOutcome.DRY_RUN, LinkOutcome.FAILED_BACKUP, LinkOutcome.FAILED_LINK):
            counts.update(outcome)
        assert (counts.completed, counts.already, counts.dry_run, counts.failed) == (2, 1, 1, 2)


class TestColumnField:

    def test_values_read_from_lstat(self, temp_dir):
        path = temp_dir / "f.bin"
        path.write_bytes(b"12345")
        st = os.lstat(path)
        assert ColumnField.SIZE.value_of(st) == 5
        assert ColumnField.LINKS.value_of(st) == st.st_nlink
        assert ColumnField.MODIFY.value_of(st) == st.st_mtime
        assert ColumnField.CREATE.value_of(st) == st.st_ctime

    def test_time_fields(self):
        assert [f for f in ColumnField if f.is_time] == [ColumnField.ACCESS, ColumnField.MODIFY, ColumnField.CREATE]


class TestEntryMetadata:

    @pytest.mark.parametrize("nlink,expected", [(0, False), (1, False), (2, True)])
    def test_is_hardlinked(self, nlink, expected):
        assert EntryMetadata(size=1, disk_size=1, nlink=nlink, mode=0o100644).is_hardlinked is expected
