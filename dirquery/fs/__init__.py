from .handles import DirectoryHandle, FileHandle, FileMetadata, LocalDirectoryHandle, LocalFileHandle, open_local_root
from .text import MAX_TEXT_BYTES, TEXT_EXTENSIONS, resolve_file_handle, safe_read_text_file
from .walk import walk, walk_records

__all__ = [
    "DirectoryHandle",
    "FileHandle",
    "FileMetadata",
    "LocalDirectoryHandle",
    "LocalFileHandle",
    "open_local_root",
    "MAX_TEXT_BYTES",
    "TEXT_EXTENSIONS",
    "resolve_file_handle",
    "safe_read_text_file",
    "walk",
    "walk_records",
]
