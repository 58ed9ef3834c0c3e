"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/patterns.py
Include/exclude pattern matching for file names and directory paths.

Patterns are DOS-style by default: '*' matches any run of characters, '?' one
character and '.' is literal. Everything else is passed to the regex engine
untouched, so alternations such as '*/.(git|vs)' keep working. With regex mode
the pattern text is compiled as-is. Matching is always against the whole
candidate string.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Pattern

logger = logging.getLogger(__name__)

PatternList = List[Pattern]


def glob_to_regex(pattern: str) -> str:
    """
    Translates the three DOS wildcard characters into regex syntax.

    Examples:
        "*.txt"   → ".*\\.txt"
        "file?.c" → "file.\\.c"
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == ".":
            parts.append("\\.")
        else:
            parts.append(char)
    return "".join(parts)


def compile_pattern(pattern: str, regex_mode: bool = False, ignore_case: bool = False) -> Pattern:
    """
    Compiles a single user pattern.
    Raises ValueError with the offending text when the pattern is invalid.
    """
    source = pattern if regex_mode else glob_to_regex(pattern)
    flags = re.IGNORECASE if ignore_case else 0
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ValueError(f"Invalid pattern '{pattern}': {e}") from e


def compile_patterns(patterns: Iterable[str], regex_mode: bool = False, ignore_case: bool = False) -> PatternList:
    return [compile_pattern(p, regex_mode, ignore_case) for p in patterns if p]


def matches(candidate: str, pattern_list: PatternList, empty_list_result: bool) -> bool:
    """
    True if candidate fully matches any pattern in the list.
    An empty list returns empty_list_result, so include lists default to
    "everything passes" and exclude lists to "nothing excluded".
    """
    if not pattern_list:
        return empty_list_result
    return any(pattern.fullmatch(candidate) for pattern in pattern_list)


@dataclass
class FilterSet:
    """
    The four independent checks applied during a walk:
    name include/exclude and full path include/exclude.
    Also carries the summary-directory patterns, which are path patterns too.
    """
    include_items: PatternList = field(default_factory=list)
    exclude_items: PatternList = field(default_factory=list)
    include_paths: PatternList = field(default_factory=list)
    exclude_paths: PatternList = field(default_factory=list)
    summary_paths: PatternList = field(default_factory=list)

    @classmethod
    def from_patterns(
            cls,
            include_items: Iterable[str] = (),
            exclude_items: Iterable[str] = (),
            include_paths: Iterable[str] = (),
            exclude_paths: Iterable[str] = (),
            summary_paths: Iterable[str] = (),
            regex_mode: bool = False,
            ignore_case: bool = False,
    ) -> "FilterSet":
        return cls(
            include_items=compile_patterns(include_items, regex_mode, ignore_case),
            exclude_items=compile_patterns(exclude_items, regex_mode, ignore_case),
            include_paths=compile_patterns(include_paths, regex_mode, ignore_case),
            exclude_paths=compile_patterns(exclude_paths, regex_mode, ignore_case),
            summary_paths=compile_patterns(summary_paths, regex_mode, ignore_case),
        )

    def accepts_file(self, name: str, full_path: str) -> bool:
        """A file is counted only if it passes all four checks."""
        if not name:
            return False
        return (not matches(full_path, self.exclude_paths, False)
                and matches(full_path, self.include_paths, True)
                and not matches(name, self.exclude_items, False)
                and matches(name, self.include_items, True))

    def accepts_directory(self, name: str, full_path: str) -> bool:
        """
        Directories are only pruned by the exclude lists.
        Include lists apply to the files found below them.
        """
        return (not matches(full_path, self.exclude_paths, False)
                and not matches(name, self.exclude_items, False))

    def is_summary_directory(self, full_path: str) -> bool:
        return matches(full_path, self.summary_paths, False)
