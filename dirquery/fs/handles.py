from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Literal, Optional, Protocol, Tuple, Union

from dirquery.core.errors import ValidationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMetadata:
    size: int
    last_modified: Optional[datetime] = None


class FileHandle(Protocol):
    kind: Literal["file"]
    name: str

    def stat(self) -> FileMetadata: ...

    def read_text(self) -> str: ...


class DirectoryHandle(Protocol):
    kind: Literal["directory"]
    name: str

    def entries(self) -> Iterable[Tuple[str, "Handle"]]: ...

    def get_directory(self, name: str) -> "DirectoryHandle": ...

    def get_file(self, name: str) -> FileHandle: ...


Handle = Union[DirectoryHandle, FileHandle]


def expand_user_path(p: str) -> Path:
    # Expand ~ and environment variables, then resolve to an absolute path.
    return Path(os.path.expandvars(os.path.expanduser(p))).resolve()


def _check_child_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"invalid entry name: {name!r}")


class LocalFileHandle:
    kind: Literal["file"] = "file"

    def __init__(self, path: Path):
        self._path = path
        self.name = path.name

    @property
    def path(self) -> Path:
        return self._path

    def stat(self) -> FileMetadata:
        st = self._path.stat()
        return FileMetadata(size=int(st.st_size), last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc))

    def read_text(self) -> str:
        return self._path.read_text(encoding="utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self._path)!r})"


class LocalDirectoryHandle:
    """
    Read-only directory handle over the local filesystem.

    Notes:
    - Children are listed sorted by name so traversal order is stable across runs.
    - Symlinked directories are not listed (no cycles).
    - Symlinked files are listed only when their target lies under the traversal root;
      `root` defaults to this directory and is inherited by subdirectories.
    - Entries that are neither regular files nor directories (sockets, fifos) are skipped.
    """

    kind: Literal["directory"] = "directory"

    def __init__(self, path: Path, root: Optional[Path] = None):
        self._path = path
        self._root = (root or path).resolve()
        self.name = path.name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def root(self) -> Path:
        return self._root

    def _target_inside_root(self, p: Path) -> bool:
        target = p.resolve()
        return target == self._root or self._root in target.parents

    def entries(self) -> Iterator[Tuple[str, Handle]]:
        children = sorted(self._path.iterdir(), key=lambda p: p.name)
        for ch in children:
            if ch.is_symlink():
                if ch.is_dir():
                    continue
                if not self._target_inside_root(ch):
                    logger.warning("Skipping symlink %s: target is outside %s", ch, self._root)
                    continue
            if ch.is_dir():
                yield ch.name, LocalDirectoryHandle(ch, self._root)
            elif ch.is_file():
                yield ch.name, LocalFileHandle(ch)

    def get_directory(self, name: str) -> "LocalDirectoryHandle":
        _check_child_name(name)
        p = self._path / name
        if p.is_symlink():
            raise PermissionError(f"symlinked directory: {p}")
        if not p.is_dir():
            raise NotADirectoryError(str(p))
        return LocalDirectoryHandle(p, self._root)

    def get_file(self, name: str) -> LocalFileHandle:
        _check_child_name(name)
        p = self._path / name
        if p.is_symlink() and not self._target_inside_root(p):
            raise PermissionError(f"symlink target is outside {self._root}: {p}")
        if not p.is_file():
            raise FileNotFoundError(str(p))
        return LocalFileHandle(p)

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self._path)!r})"


def open_local_root(path: str) -> LocalDirectoryHandle:
    if not isinstance(path, str) or not path:
        raise ValidationError(code="root.invalid", message="root must be a non-empty string")
    root = expand_user_path(path)
    if not root.exists():
        raise ValidationError(code="root.missing", message=f"Directory does not exist: {root}", data={"root": str(root)})
    if not root.is_dir():
        raise ValidationError(code="root.invalid", message=f"Not a directory: {root}", data={"root": str(root)})
    return LocalDirectoryHandle(root)
