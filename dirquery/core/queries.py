from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from dirquery.config import EngineConfig
from dirquery.fs.handles import DirectoryHandle
from dirquery.fs.text import resolve_file_handle, safe_read_text_file
from dirquery.fs.walk import walk

from .runtime_context import CancelToken
from .types import (
    NO_EXTENSION_LABEL,
    CountByExtParams,
    ExtensionAggregate,
    FileRecord,
    LargeFilesParams,
    TextSearchParams,
    WalkWarning,
)


logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


def find_large_files(
    root: DirectoryHandle,
    params: LargeFilesParams,
    config: EngineConfig,
    cancel: Optional[CancelToken] = None,
) -> Tuple[List[FileRecord], List[WalkWarning]]:
    threshold_bytes = params.threshold * BYTES_PER_MB
    walked = walk(root, params.max_depth, cancel=cancel)
    large = [r for r in walked.records if r.size >= threshold_bytes]
    # sorted() is stable: equal sizes keep walk order.
    return sorted(large, key=lambda r: r.size, reverse=True), walked.warnings


def count_by_extension(
    root: DirectoryHandle,
    params: CountByExtParams,
    config: EngineConfig,
    cancel: Optional[CancelToken] = None,
) -> Tuple[List[ExtensionAggregate], List[WalkWarning]]:
    walked = walk(root, params.max_depth, cancel=cancel)

    totals: Dict[str, List[int]] = {}
    for r in walked.records:
        acc = totals.setdefault(r.extension or NO_EXTENSION_LABEL, [0, 0])
        acc[0] += 1
        acc[1] += r.size

    rows = [ExtensionAggregate(extension=ext, count=c, total_size=s) for ext, (c, s) in totals.items()]
    return sorted(rows, key=lambda a: a.count, reverse=True), walked.warnings


def _compile_search(params: TextSearchParams) -> Optional[Pattern[str]]:
    if not params.is_regex:
        return None
    try:
        return re.compile(params.query, re.IGNORECASE)
    except re.error as e:
        logger.warning("Invalid regular expression %r, falling back to substring search: %s", params.query, e)
        return None


def search_text(
    root: DirectoryHandle,
    params: TextSearchParams,
    config: EngineConfig,
    cancel: Optional[CancelToken] = None,
) -> Tuple[List[FileRecord], List[WalkWarning]]:
    walked = walk(root, params.max_depth, cancel=cancel)
    warnings = list(walked.warnings)

    candidates = walked.records
    if params.extensions is not None:
        wanted = set(params.extensions)
        candidates = [r for r in candidates if r.extension in wanted]

    pattern = _compile_search(params)
    needle = params.query.lower()

    results: List[FileRecord] = []
    for record in candidates:
        if cancel is not None:
            cancel.raise_if_cancelled(record.path)
        handle = resolve_file_handle(root, record.path)
        if handle is None:
            warnings.append(WalkWarning(path=record.path, kind="resolve", error="file handle could not be resolved"))
            continue

        content = safe_read_text_file(handle, max_bytes=config.max_text_bytes, extensions=config.text_extensions)
        if content is None:
            continue

        if pattern is not None:
            matched = pattern.search(content) is not None
        else:
            matched = needle in content.lower()
        if matched:
            results.append(record.with_content(content[: config.preview_chars]))

    return results, warnings
