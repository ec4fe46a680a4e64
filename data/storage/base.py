"""
Storage Adapter Contract - Backend-agnostic filesystem operations

@.architecture
Incoming: data/storage/local.py, data/storage/factory.py, api/v1/endpoints/files.py --- {adapter implementations, FileInfo/DirEntry construction, ReadOptions/WriteOptions from HTTP requests}
Processing: StorageAdapter abstract operations, FileInfo.to_dict(), DirEntry.to_dict(), option validation --- {3 jobs: capability_definition, value_types, error_taxonomy}
Outgoing: api/v1/endpoints/files.py, api/middleware/error_handler.py --- {StorageAdapter interface, FileInfo/DirEntry snapshots, StorageError subclasses}

Every backend implements the same capability set:
- Directory operations: mkdir, rmdir, readdir
- File operations: stat, read_file, write_file, unlink, rename, chmod
- Lifecycle: close

All operations take logical paths, relative to the backend root.
"""

import stat as stat_module
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional, Union

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755

# Anything write_file can consume: raw bytes or a readable binary stream
ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]


# =============================================================================
# Errors
# =============================================================================

class StorageError(Exception):
    """Base class for all storage adapter failures."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class InvalidPathError(StorageError):
    """Path is empty, absolute, or escapes the backend root."""


class PathNotFoundError(StorageError):
    """Path does not exist."""


class NotDirectoryError(StorageError):
    """Directory operation applied to something that is not a directory."""


class IsDirectoryError(StorageError):
    """File operation applied to a directory."""


class AlreadyExistsError(StorageError):
    """Entry already exists and cannot be replaced by this operation."""


class StorageIOError(StorageError):
    """Underlying I/O failure (permission denied, disk full, ...)."""


class DirectoryNotEmptyError(StorageIOError):
    """rmdir on a directory that still has entries."""


# =============================================================================
# Value Types
# =============================================================================

@dataclass(frozen=True)
class FileInfo:
    """
    Metadata snapshot of a single entry.

    Built fresh on every stat/readdir call and never cached.
    `mode` carries the full platform mode bits; use `permissions`
    for the permission bits alone.
    """
    name: str
    size: int
    mode: int
    mod_time: datetime
    is_dir: bool

    @property
    def permissions(self) -> int:
        """Permission bits only (e.g. 0o644)."""
        return stat_module.S_IMODE(self.mode) & 0o777

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "mode": self.permissions,
            "mod_time": self.mod_time.isoformat(),
            "is_dir": self.is_dir,
        }


@dataclass(frozen=True)
class DirEntry:
    """Lightweight listing record for one direct child of a directory."""
    name: str
    is_dir: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "is_dir": self.is_dir}


@dataclass
class ReadOptions:
    """
    Options for a single read_file call.

    Attributes:
        offset: Byte position to start reading from
        length: Maximum number of bytes to return (0 means read to end of file)
    """
    offset: int = 0
    length: int = 0

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.length < 0:
            raise ValueError(f"length must be >= 0, got {self.length}")


@dataclass
class WriteOptions:
    """Options for a single write_file call (always truncate-and-replace)."""
    mode: Optional[int] = DEFAULT_FILE_MODE

    def __post_init__(self):
        if not self.mode:
            self.mode = DEFAULT_FILE_MODE


# =============================================================================
# Adapter Contract
# =============================================================================

class StorageAdapter(ABC):
    """
    Capability interface every storage backend must implement.

    Adapters hold no per-call state: every operation opens and releases
    its own handles. Callers provide their own concurrency; the adapter
    adds no locking on top of the backend's own guarantees.
    """

    @abstractmethod
    def mkdir(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        """
        Create a directory (and missing parents).

        Idempotent: an existing directory at `path` is not an error.
        """

    @abstractmethod
    def rmdir(self, path: str) -> None:
        """Remove an empty directory."""

    @abstractmethod
    def readdir(self, path: str) -> List[DirEntry]:
        """List the direct children of a directory, in backend order."""

    @abstractmethod
    def stat(self, path: str) -> FileInfo:
        """Return a metadata snapshot for `path`."""

    @abstractmethod
    def read_file(self, path: str, opts: Optional[ReadOptions] = None) -> BinaryIO:
        """
        Open `path` for reading.

        The returned stream starts at `opts.offset` and yields at most
        `opts.length` bytes when a length is given. An offset past the end
        of the file yields an empty stream. The caller owns the stream and
        must close it.
        """

    @abstractmethod
    def write_file(
        self,
        path: str,
        data: ByteSource,
        opts: Optional[WriteOptions] = None
    ) -> None:
        """Replace the contents of `path` with `data`, creating parents as needed."""

    @abstractmethod
    def unlink(self, path: str) -> None:
        """Remove a file. Directories must be removed with rmdir."""

    @abstractmethod
    def rename(self, old_path: str, new_path: str) -> None:
        """Move an entry, creating the parent directories of `new_path` as needed."""

    @abstractmethod
    def chmod(self, path: str, mode: int) -> None:
        """Update the permission bits of `path`."""

    @abstractmethod
    def close(self) -> None:
        """Release backend resources. Safe to call on an unused adapter."""

    def __enter__(self) -> "StorageAdapter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
