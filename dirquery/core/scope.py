from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from dirquery.fs.handles import expand_user_path


def normalize_roots(roots: Iterable[str]) -> List[Path]:
    """
    Absolute, resolved forms of the configured roots; blank entries are ignored.
    """
    return [expand_user_path(r) for r in roots if isinstance(r, str) and r]


def is_within_any_root(path_str: str, roots: List[Path]) -> bool:
    p = expand_user_path(path_str)
    return any(p == root or root in p.parents for root in roots)
