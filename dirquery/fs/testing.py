from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple, Union

from .handles import FileMetadata


class MemoryFile:
    """
    In-memory file handle for tests/examples.

    `size` defaults to the UTF-8 length of `text`; pass it explicitly to fake large files
    without allocating them. `fail_stat` / `fail_read` inject read faults.
    """

    kind: Literal["file"] = "file"

    def __init__(
        self,
        name: str,
        text: str = "",
        *,
        size: Optional[int] = None,
        last_modified: Optional[datetime] = None,
        fail_stat: bool = False,
        fail_read: bool = False,
    ) -> None:
        self.name = name
        self.text = text
        self.size = len(text.encode("utf-8")) if size is None else size
        self.last_modified = last_modified
        self.fail_stat = fail_stat
        self.fail_read = fail_read
        self.reads = 0

    def stat(self) -> FileMetadata:
        if self.fail_stat:
            raise PermissionError(f"stat denied: {self.name}")
        return FileMetadata(size=self.size, last_modified=self.last_modified)

    def read_text(self) -> str:
        self.reads += 1
        if self.fail_read:
            raise PermissionError(f"read denied: {self.name}")
        return self.text


MemoryEntry = Union["MemoryDirectory", MemoryFile]


class MemoryDirectory:
    """
    In-memory directory handle. Children keep insertion order.

    Fault injection:
    - fail_listing: entries() raises
    - fail_open: the parent's get_directory() raises for this directory
    """

    kind: Literal["directory"] = "directory"

    def __init__(self, name: str = "", children: Optional[List[MemoryEntry]] = None, *, fail_listing: bool = False, fail_open: bool = False) -> None:
        self.name = name
        self.children: Dict[str, MemoryEntry] = {}
        self.fail_listing = fail_listing
        self.fail_open = fail_open
        for ch in children or []:
            self.add(ch)

    def add(self, entry: MemoryEntry) -> MemoryEntry:
        self.children[entry.name] = entry
        return entry

    def entries(self) -> Iterator[Tuple[str, MemoryEntry]]:
        if self.fail_listing:
            raise PermissionError(f"listing denied: {self.name or '/'}")
        for name, entry in list(self.children.items()):
            yield name, entry

    def get_directory(self, name: str) -> "MemoryDirectory":
        entry = self.children.get(name)
        if not isinstance(entry, MemoryDirectory):
            raise NotADirectoryError(name)
        if entry.fail_open:
            raise PermissionError(f"open denied: {name}")
        return entry

    def get_file(self, name: str) -> MemoryFile:
        entry = self.children.get(name)
        if not isinstance(entry, MemoryFile):
            raise FileNotFoundError(name)
        return entry


def memory_tree(layout: Dict[str, Any], name: str = "") -> MemoryDirectory:
    """
    Build a MemoryDirectory from a nested dict.

    Values: str (file text), int (file size, empty text), dict (subdirectory),
    or a ready-made MemoryFile / MemoryDirectory.
    """
    root = MemoryDirectory(name)
    for key, value in layout.items():
        if isinstance(value, (MemoryFile, MemoryDirectory)):
            value.name = key
            root.add(value)
        elif isinstance(value, dict):
            root.add(memory_tree(value, name=key))
        elif isinstance(value, int):
            root.add(MemoryFile(key, size=value))
        else:
            root.add(MemoryFile(key, str(value)))
    return root
