from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from dirquery.core.runtime_context import CancelToken
from dirquery.core.types import FileRecord, WalkResult, WalkWarning, get_file_extension

from .handles import DirectoryHandle


logger = logging.getLogger(__name__)


def _join(base: str, name: str) -> str:
    return f"{base}/{name}" if base else name


def walk(root: DirectoryHandle, max_depth: Optional[int] = None, *, cancel: Optional[CancelToken] = None) -> WalkResult:
    """
    Enumerate every file under `root` into flat FileRecords.

    - Root's direct children are depth 0.
    - max_depth is exclusive: a directory at depth == max_depth is never listed,
      so no record has depth >= max_depth. None means unbounded.
    - A failing listing, file stat or subdirectory costs only that entry (and its
      subtree); the fault is logged and returned in WalkResult.warnings.
    """
    if max_depth is not None and max_depth < 0:
        raise ValueError("walk: 'max_depth' must be a non-negative integer")

    result = WalkResult()

    # Explicit DFS stack of (directory, relative path, depth of its children).
    stack: List[Tuple[DirectoryHandle, str, int]] = [(root, "", 0)]
    while stack:
        cur, base, depth = stack.pop()
        if max_depth is not None and depth >= max_depth:
            continue
        if cancel is not None:
            cancel.raise_if_cancelled(base or "/")

        subdirs: List[Tuple[DirectoryHandle, str, int]] = []
        try:
            for name, handle in cur.entries():
                if cancel is not None:
                    cancel.raise_if_cancelled(_join(base, name))
                path = _join(base, name)
                if handle.kind == "directory":
                    subdirs.append((handle, path, depth + 1))
                elif handle.kind == "file":
                    try:
                        meta = handle.stat()
                    except Exception as e:  # noqa: BLE001
                        logger.warning("Failed to read file %s: %r", path, e)
                        result.warnings.append(WalkWarning(path=path, kind="file", error=repr(e)))
                        continue
                    result.records.append(
                        FileRecord(
                            path=path,
                            name=name,
                            size=int(meta.size),
                            extension=get_file_extension(name),
                            depth=depth,
                            last_modified=meta.last_modified,
                        )
                    )
        except Exception as e:  # noqa: BLE001
            if cancel is not None and cancel.cancelled:
                raise
            kind = "directory" if base else "listing"
            logger.warning("Failed to read directory %s: %r", base or "/", e)
            result.warnings.append(WalkWarning(path=base, kind=kind, error=repr(e)))

        # Push in reverse so children are visited in enumeration order.
        for item in reversed(subdirs):
            stack.append(item)

    return result


def walk_records(root: DirectoryHandle, max_depth: Optional[int] = None, *, cancel: Optional[CancelToken] = None) -> List[FileRecord]:
    return walk(root, max_depth, cancel=cancel).records
