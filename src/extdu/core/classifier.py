"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/classifier.py
Derives the grouping key (usually the extension) for a file name.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)

# $1, ${1}, $& and $$ in replacement templates
_TEMPLATE_TOKEN = re.compile(r"\$(?:(\d+)|\{(\d+)\}|(&)|(\$))")


def _to_python_template(template: str) -> str:
    """Converts '$1' style group references into re's '\\g<1>' syntax."""
    def replace(match):
        group = match.group(1) or match.group(2)
        if group is not None:
            return f"\\g<{group}>"
        if match.group(3):
            return "\\g<0>"
        return "$"
    return _TEMPLATE_TOKEN.sub(replace, template)


@dataclass(frozen=True)
class PickRule:
    """Rewrites a whole file name into a classification key."""
    pattern: Pattern
    template: str

    @classmethod
    def parse(cls, text: str, ignore_case: bool = False) -> "PickRule":
        """
        Parses '<fromPattern>;<toTemplate>'.
        Raises ValueError if the text is not exactly two parts or the regex is invalid.
        """
        parts = text.split(";")
        if len(parts) != 2:
            raise ValueError(f"Pick rule must be '<pattern>;<replacement>': '{text}'")
        flags = re.IGNORECASE if ignore_case else 0
        try:
            pattern = re.compile(parts[0], flags)
        except re.error as e:
            raise ValueError(f"Invalid pick pattern '{parts[0]}': {e}") from e
        return cls(pattern=pattern, template=parts[1])

    def apply(self, filename: str) -> Optional[str]:
        """Returns the rewritten key, or None if the rule does not fully match."""
        match = self.pattern.fullmatch(filename)
        if match is None:
            return None
        try:
            return match.expand(_to_python_template(self.template))
        except (re.error, IndexError) as e:
            logger.debug(f"Template '{self.template}' could not be expanded: {e}")
            return self.template


class PathClassifier:
    """
    Maps a file name to its classification key.

    Without rules the key is the text after the last '.', or '' when the name
    has no dot. With rules, the first rule that fully matches decides; a name
    no rule matches gets '' (there is no extension fallback).
    """

    def __init__(self, rules: Optional[List[PickRule]] = None):
        self.rules = list(rules) if rules else []

    @classmethod
    def from_strings(cls, rules: Iterable[str], ignore_case: bool = False) -> "PathClassifier":
        return cls([PickRule.parse(text, ignore_case) for text in rules])

    def classify(self, filename: str) -> str:
        if not self.rules:
            return extension_of(filename)
        for rule in self.rules:
            key = rule.apply(filename)
            if key is not None:
                return key
        return ""


def extension_of(filename: str) -> str:
    """Text after the last '.', without the dot."""
    _, dot, ext = filename.rpartition(".")
    return ext if dot else ""


def classify(filename: str, pick_rules: Optional[List[PickRule]] = None) -> str:
    return PathClassifier(pick_rules).classify(filename)
