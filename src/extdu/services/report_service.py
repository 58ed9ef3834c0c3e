"""
services/report_service.py
Turns finished usage tables into text lines for the console.

Four layouts:
- per-key rows for every root/scope followed by a _Total row
- summary: one row per root/scope
- table: one column per root, one row per key, chosen field as the value
- columns: one column per root, one row per file name, lstat value of ROOT/NAME
A grand total is kept across everything rendered by one builder.
"""
import os
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from extdu.core.models import ColumnField, ScanResult, SortField, UsageRecord, UsageTable
from extdu.core.sorter import SortKey, UsageSorter
from extdu.utils.convert_utils import ConvertUtils


@dataclass
class ReportOptions:
    sort_keys: Sequence[SortKey] = ()
    human: bool = False
    commas: bool = True
    summary: bool = False
    total_only: bool = False
    absolute_paths: bool = False
    key_width: int = 12


class ReportBuilder:
    """
    Stateful builder: render_result() for each root, then render_grand_total().
    """

    def __init__(self, options: Optional[ReportOptions] = None):
        self.options = options or ReportOptions()
        self.sorter = UsageSorter(self.options.sort_keys)
        self.grand_total = UsageRecord(key="_GTotal")
        self._summary_rows: List[UsageRecord] = []
        self._table_columns: List[str] = []
        self._table_rows: Dict[str, Dict[int, UsageRecord]] = {}
        self._cwd = os.getcwd() + os.sep

    # ----- per-key layout -----

    def header(self) -> str:
        w = self.options.key_width
        return f"{'Ext':>{w}}\t{'Count':>10}\t{'Size':>16}\t{'Disk':>16}\t{'Links':>8}"

    def format_row(self, record: UsageRecord, name: Optional[str] = None) -> str:
        w = self.options.key_width
        key = (name if name is not None else record.key)[:w]
        return (f"{key:>{w}}\t{self._count(record.count):>10}\t{self._size(record.file_size):>16}\t"
                f"{self._size(record.disk_size):>16}\t{self._count(record.hardlinks):>8}")

    def render_table_rows(self, path: str, table: UsageTable) -> List[str]:
        """Rows for one scope; also feeds the grand total and summary rows."""
        total = table.total("_Total")
        self.grand_total.add(total)

        if self.options.summary:
            row = total.copy()
            row.key = self._display_path(path)
            self._summary_rows.append(row)
            return []

        lines = ["", self._display_path(path)]
        if not self.options.total_only:
            lines.append(self.header())
            lines.extend(self.format_row(record) for record in self.sorter.sort(table.records.values()))
        lines.append(self.format_row(total))
        return lines

    def render_result(self, result: ScanResult) -> List[str]:
        lines = []
        for scope in result.scopes:
            lines.extend(self.render_table_rows(scope.path, scope.table))
        if not result.table.is_empty() or not result.scopes:
            lines.extend(self.render_table_rows(result.root, result.table))
        return lines

    def render_grand_total(self) -> List[str]:
        lines = []
        if self.options.summary:
            for row in self.sorter.sort(self._summary_rows):
                lines.append(self.format_summary(row))
            self._summary_rows = []
            lines.append(self.format_summary(self.grand_total))
        else:
            lines.append("")
            lines.append(self.format_row(self.grand_total))
        return lines

    def format_summary(self, record: UsageRecord) -> str:
        return (f"{self._size(record.file_size):>16} Files:{self._count(record.count):>8} "
                f"\t HardLinks:{self._count(record.hardlinks):>5}\t{record.key}")

    # ----- table layout -----

    @staticmethod
    def combined_table(result: ScanResult) -> UsageTable:
        """Root table plus every summary scope of the result."""
        table = UsageTable()
        table.merge(result.table)
        for scope in result.scopes:
            table.merge(scope.table)
        return table

    def add_table_column(self, path: str, table: UsageTable) -> None:
        column = len(self._table_columns)
        self._table_columns.append(path)
        for key, record in table.records.items():
            self._table_rows.setdefault(key, {})[column] = record

    def render_table(self, value_field: SortField) -> List[str]:
        columns = len(self._table_columns)
        totals = [0] * columns
        lines = [f"Table of {value_field.display_name}"]
        for key in sorted(self._table_rows):
            cells = []
            for column in range(columns):
                record = self._table_rows[key].get(column)
                value = record.value_of(value_field) if record else 0
                totals[column] += value
                cells.append(f"{self._value(value_field, value):>12}")
            lines.append(f"{key[:10]:>10}  " + "".join(cells))
        lines.append(f"{'_TOTAL':>10}  " + "".join(f"{self._value(value_field, t):>12}" for t in totals))
        lines.append("Paths:")
        lines.extend(self._table_columns)
        return lines

    # ----- side-by-side columns -----

    def render_columns(
            self,
            roots: Sequence[str],
            names: Iterable[str],
            column_field: ColumnField,
            lstat: Callable[[str], os.stat_result] = os.lstat,
    ) -> List[str]:
        """
        Compares same-named entries across roots.
        A name missing under a root shows as '--'.
        """
        lines = [f"{'Name':>15.15}\t" + "".join(f"{root[-15:]:>15}\t" for root in roots)]
        for name in sorted(set(names)):
            cells = []
            for root in roots:
                try:
                    st = lstat(os.path.join(root, name))
                except OSError:
                    cells.append(f"{'--':>15}\t")
                    continue
                cells.append(f"{self._column_value(column_field, st):>15}\t")
            lines.append(f"{name:>15.15}\t" + "".join(cells))
        return [line.rstrip() for line in lines]

    def _column_value(self, column_field: ColumnField, st: os.stat_result) -> str:
        value = column_field.value_of(st)
        if column_field.is_time:
            return ConvertUtils.timestamp_to_human(value, "%d-%b-%y %H:%M")
        if column_field is ColumnField.SIZE:
            return self._size(value)
        return self._count(value)

    # ----- formatting -----

    def _size(self, value: int) -> str:
        return ConvertUtils.format_number(value, human=self.options.human, commas=self.options.commas)

    def _count(self, value: int) -> str:
        return ConvertUtils.format_number(value, commas=self.options.commas)

    def _value(self, value_field: SortField, value: int) -> str:
        if value_field in (SortField.FILE_SIZE, SortField.DISK_SIZE):
            return self._size(value)
        return self._count(value)

    def _display_path(self, path: str) -> str:
        if not self.options.absolute_paths and path.startswith(self._cwd) and len(path) > len(self._cwd):
            return path[len(self._cwd):]
        return path
