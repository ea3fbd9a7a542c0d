from __future__ import annotations

import logging
from typing import Iterable, Optional

from dirquery.core.types import get_file_extension

from .handles import DirectoryHandle, FileHandle


logger = logging.getLogger(__name__)


MAX_TEXT_BYTES = 10 * 1024 * 1024

TEXT_EXTENSIONS = frozenset(
    [
        "txt", "md", "json", "js", "ts", "jsx", "tsx", "py", "java", "c", "cpp", "h",
        "css", "scss", "html", "xml", "yml", "yaml", "toml", "ini", "cfg", "conf",
        "log", "csv", "tsv", "sql", "sh", "bash", "zsh", "fish", "ps1", "bat",
        "php", "rb", "go", "rs", "swift", "kt", "scala", "clj", "elm", "hs",
        "r", "matlab", "pl", "pm", "tcl", "lua", "vim", "el", "lisp", "scm",
    ]
)


def safe_read_text_file(
    handle: FileHandle,
    *,
    max_bytes: int = MAX_TEXT_BYTES,
    extensions: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """
    Read a file's text, or None when the content is unavailable:
    over the size cap, extension not on the text allow-list, or a read error.
    """
    allowed = TEXT_EXTENSIONS if extensions is None else frozenset(extensions)
    try:
        meta = handle.stat()
        if meta.size > max_bytes:
            return None
        if get_file_extension(handle.name) not in allowed:
            return None
        return handle.read_text()
    except Exception as e:  # noqa: BLE001
        logger.warning("Failed to read text from file %s: %r", handle.name, e)
        return None


def resolve_file_handle(root: DirectoryHandle, path: str) -> Optional[FileHandle]:
    """
    Re-open a file by walking its slash-separated relative path from `root`.
    Returns None when any component cannot be opened.
    """
    parts = [p for p in path.split("/") if p]
    if not parts:
        return None
    try:
        cur = root
        for part in parts[:-1]:
            cur = cur.get_directory(part)
        handle = cur.get_file(parts[-1])
    except Exception as e:  # noqa: BLE001
        logger.warning("Failed to get file handle for path %s: %r", path, e)
        return None
    return handle if handle.kind == "file" else None
