from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from .types import (
    DEFAULT_QUERY,
    DEFAULT_THRESHOLD_MB,
    CountByExtParams,
    Intent,
    IntentType,
    LargeFilesParams,
    TextSearchParams,
)


GUIDANCE_MESSAGE = (
    "Could not understand that request. Try being more specific, e.g. "
    "'find files >50MB', 'count files by extension' or 'search for \"TODO\" in .js files'."
)


_THRESHOLD_MB_RE = re.compile(r"(\d+(?:\.\d+)?)\s*mb", re.IGNORECASE)
_THRESHOLD_GT_RE = re.compile(r">\s*(\d+(?:\.\d+)?)")
_DEPTH_RE = re.compile(r"depth\s*(\d+)|level\s*(\d+)", re.IGNORECASE)
_QUOTED_RE = re.compile(r"\"([^\"]+)\"|'([^']+)'")
_QUERY_RES = [
    re.compile(r"search\s+for\s+(.+?)(?:\s+in|\s+depth|\s*$)", re.IGNORECASE),
    re.compile(r"find\s+(?:text|string)\s+(.+?)(?:\s+in|\s+depth|\s*$)", re.IGNORECASE),
    re.compile(r"containing\s+(.+?)(?:\s+in|\s+depth|\s*$)", re.IGNORECASE),
    re.compile(r"with\s+(.+?)(?:\s+in|\s+depth|\s*$)", re.IGNORECASE),
]
_EXTENSION_RE = re.compile(r"\.(\w+)(?=\s|,|$)")
_REGEX_WORDS_RE = re.compile(r"regex|regexp|pattern")
_REGEX_CHARS = ("*", "?", "[", "(")
_SIZE_FALLBACK_RE = re.compile(r"\d+\s*mb|\d+\s*gb|size", re.IGNORECASE)


def parse_threshold(goal: str) -> float:
    m = _THRESHOLD_MB_RE.search(goal) or _THRESHOLD_GT_RE.search(goal)
    if m:
        value = float(m.group(1))
        if value > 0:
            return value
    return DEFAULT_THRESHOLD_MB


def parse_max_depth(goal: str) -> Optional[int]:
    m = _DEPTH_RE.search(goal)
    if not m:
        return None
    return int(m.group(1) or m.group(2))


def parse_query(goal: str) -> str:
    m = _QUOTED_RE.search(goal)
    if m:
        return m.group(1) or m.group(2)
    for pattern in _QUERY_RES:
        m = pattern.search(goal)
        if m:
            q = m.group(1).strip()
            if q:
                return q
            break
    return DEFAULT_QUERY


def parse_extensions(goal: str) -> Optional[Tuple[str, ...]]:
    seen: List[str] = []
    for m in _EXTENSION_RE.finditer(goal):
        ext = m.group(1).lower()
        if ext not in seen:
            seen.append(ext)
    return tuple(seen) if seen else None


def parse_large_files_params(goal: str) -> LargeFilesParams:
    return LargeFilesParams(threshold=parse_threshold(goal), max_depth=parse_max_depth(goal))


def parse_count_by_ext_params(goal: str) -> CountByExtParams:
    return CountByExtParams(max_depth=parse_max_depth(goal))


def parse_text_search_params(goal: str) -> TextSearchParams:
    query = parse_query(goal)
    is_regex = bool(_REGEX_WORDS_RE.search(goal.lower())) or any(c in query for c in _REGEX_CHARS)
    return TextSearchParams(
        query=query,
        extensions=parse_extensions(goal),
        is_regex=is_regex,
        max_depth=parse_max_depth(goal),
    )


@dataclass(frozen=True)
class ClassifierRule:
    """
    One ordered classification rule: if any pattern matches the lowercased goal,
    the intent type wins and `extract` builds its params from the goal as typed.
    """

    rule_id: str
    intent_type: IntentType
    patterns: Tuple[Pattern[str], ...]
    extract: Callable[[str], object]

    def matches(self, goal_lower: str) -> bool:
        return any(p.search(goal_lower) for p in self.patterns)


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


# Priority order is significant: first match wins.
RULES: Tuple[ClassifierRule, ...] = (
    ClassifierRule(
        rule_id="large_files",
        intent_type=IntentType.LARGE_FILES,
        patterns=_compile(
            r"find.*large.*files?",
            r"files?.*larger?.*than",
            r"files?.*bigger?.*than",
            r"files?.*over",
            r"files?.*above",
            r"files?.*>\s*(\d+)(?:\s*mb)?",
            r"(\d+)\s*mb.*files?",
            r"big.*files?",
            r"huge.*files?",
        ),
        extract=parse_large_files_params,
    ),
    ClassifierRule(
        rule_id="count_by_ext",
        intent_type=IntentType.COUNT_BY_EXT,
        patterns=_compile(
            r"count.*by.*ext",
            r"count.*ext",
            r"group.*by.*ext",
            r"breakdown.*ext",
            r"files?.*by.*type",
            r"file.*types?",
            r"extension.*count",
            r"how.*many.*\.(js|py|txt|md|csv)",
        ),
        extract=parse_count_by_ext_params,
    ),
    ClassifierRule(
        rule_id="text_search",
        intent_type=IntentType.TEXT_SEARCH,
        patterns=_compile(
            r"search.*for",
            r"find.*text",
            r"find.*string",
            r"contains?",
            r"grep",
            r"look.*for",
            r"files?.*with",
            r"files?.*containing",
            r"text.*search",
        ),
        extract=parse_text_search_params,
    ),
)

SIZE_FALLBACK_RULE = ClassifierRule(
    rule_id="size_fallback",
    intent_type=IntentType.LARGE_FILES,
    patterns=(_SIZE_FALLBACK_RE,),
    extract=parse_large_files_params,
)


def matching_rule(goal: str, rules: Sequence[ClassifierRule] = RULES) -> Optional[ClassifierRule]:
    if not isinstance(goal, str):
        return None
    goal_lower = goal.strip().lower()
    if not goal_lower:
        return None
    for rule in rules:
        if rule.matches(goal_lower):
            return rule
    if SIZE_FALLBACK_RULE.matches(goal_lower):
        return SIZE_FALLBACK_RULE
    return None


def classify(goal: str, rules: Sequence[ClassifierRule] = RULES) -> Optional[Intent]:
    """
    Map a free-text goal to an Intent, or None when nothing matches.
    """
    rule = matching_rule(goal, rules)
    if rule is None:
        return None
    return Intent(type=rule.intent_type, params=rule.extract(goal.strip()))  # type: ignore[arg-type]
