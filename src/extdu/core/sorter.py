"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/sorter.py
Pure sorting logic for usage records, no dependencies outside core.
An ordered list of (field, direction) keys is collapsed into one comparator:
the first field that differs decides, ties fall through to the next field.
"""
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence

from extdu.core.models import SortField, UsageRecord


@dataclass(frozen=True)
class SortKey:
    field: SortField
    ascending: bool = True


DEFAULT_SORT = (SortKey(SortField.KEY, True),)


class UsageSorter:
    """
    Sorts usage records by a chain of keys.
    Records equal on every key keep their input order.
    """

    def __init__(self, keys: Optional[Sequence[SortKey]] = None):
        self.keys = tuple(keys) if keys else DEFAULT_SORT

    def compare(self, lhs: UsageRecord, rhs: UsageRecord) -> int:
        for key in self.keys:
            left = lhs.value_of(key.field)
            right = rhs.value_of(key.field)
            if left == right:
                continue
            cmp = -1 if left < right else 1
            return cmp if key.ascending else -cmp
        return 0

    def sort(self, records: Iterable[UsageRecord]) -> List[UsageRecord]:
        return sorted(records, key=cmp_to_key(self.compare))
