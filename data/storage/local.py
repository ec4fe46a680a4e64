"""
Local Storage Adapter - Sandboxed local filesystem backend

@.architecture
Incoming: data/storage/factory.py, api/v1/endpoints/files.py --- {base_path str at construction, logical path strs, ReadOptions/WriteOptions, byte sources}
Processing: _resolve(), _is_within(), mkdir(), rmdir(), readdir(), stat(), read_file(), write_file(), unlink(), rename(), chmod(), close() --- {5 jobs: path_containment, directory_management, ranged_reads, file_replacement, error_translation}
Outgoing: Local filesystem (os/shutil calls under base_path), api/v1/endpoints/files.py --- {FileInfo/DirEntry snapshots, BinaryIO read streams, StorageError subclasses}

Confines every operation to a single base directory:
- Logical paths are normalized lexically, then joined onto the base
- Any `..` segment, absolute path, or empty path is rejected up front
- The joined path is re-checked against the base as a string prefix
  (separator-aware, so base `/data` never matches `/data-private`)
- Symlinks are resolved and the real location checked as well

No handles are kept between calls.
"""

import errno
import io
import os
import re
import shutil
import stat as stat_module
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, List, Optional

from .base import (
    DEFAULT_DIR_MODE,
    AlreadyExistsError,
    ByteSource,
    DirectoryNotEmptyError,
    DirEntry,
    FileInfo,
    InvalidPathError,
    IsDirectoryError,
    NotDirectoryError,
    PathNotFoundError,
    ReadOptions,
    StorageAdapter,
    StorageError,
    StorageIOError,
    WriteOptions,
)

DEFAULT_CHUNK_SIZE = 64 * 1024

_SEPARATORS = "".join(sorted({"/", os.sep, os.altsep or "/"}))
_SEGMENT_SPLIT = re.compile(f"[{re.escape(_SEPARATORS)}]")


@contextmanager
def _translate_errors(path: str) -> Iterator[None]:
    """Map OSError subclasses onto the storage error taxonomy."""
    try:
        yield
    except StorageError:
        raise
    except FileNotFoundError as e:
        raise PathNotFoundError(f"path not found: {path}", path) from e
    except NotADirectoryError as e:
        raise NotDirectoryError(f"not a directory: {path}", path) from e
    except IsADirectoryError as e:
        raise IsDirectoryError(f"is a directory: {path}", path) from e
    except FileExistsError as e:
        raise AlreadyExistsError(f"already exists: {path}", path) from e
    except OSError as e:
        raise StorageIOError(f"{e.strerror or e}: {path}", path) from e


class LimitedReader(io.RawIOBase):
    """
    Read-only stream yielding at most `limit` bytes of the wrapped stream.

    Closing it closes the wrapped stream, even if reading failed.
    """

    def __init__(self, raw: BinaryIO, limit: int):
        super().__init__()
        self._raw = raw
        self._remaining = limit

    @property
    def remaining(self) -> int:
        return self._remaining

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._remaining <= 0:
            return 0
        view = memoryview(buffer).cast("B")[: self._remaining]
        n = self._raw.readinto(view) or 0
        self._remaining -= n
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.close()
        finally:
            super().close()


class LocalStorageAdapter(StorageAdapter):
    """
    StorageAdapter backed by a subtree of the local filesystem.

    Example:
        adapter = LocalStorageAdapter("/srv/fernfs")
        adapter.write_file("docs/readme.txt", b"hello")
        with adapter.read_file("docs/readme.txt", ReadOptions(offset=1, length=3)) as f:
            f.read()  # b"ell"
    """

    def __init__(self, base_path: Optional[str], chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize local storage adapter.

        Args:
            base_path: Directory all operations are confined to (created if missing)
            chunk_size: Copy buffer size used by write_file

        Raises:
            InvalidPathError: If base_path is empty or not a usable path
            StorageIOError: If the base directory cannot be created
        """
        if not base_path:
            raise InvalidPathError("base_path is required", base_path)

        base_path = str(base_path)
        try:
            absolute = os.path.abspath(base_path)
            os.makedirs(absolute, DEFAULT_DIR_MODE, exist_ok=True)
        except ValueError as e:
            raise InvalidPathError(f"invalid base_path: {base_path!r}", base_path) from e
        except OSError as e:
            raise StorageIOError(f"failed to create base directory: {e}", base_path) from e

        self._base_path = os.path.realpath(absolute)
        self._base_key = os.path.normcase(self._base_path)
        if self._base_key.endswith(os.sep):
            self._base_prefix = self._base_key
        else:
            self._base_prefix = self._base_key + os.sep
        self._chunk_size = chunk_size

    @property
    def base_path(self) -> str:
        """Absolute, symlink-resolved base directory."""
        return self._base_path

    # =========================================================================
    # PATH RESOLUTION
    # =========================================================================

    def _is_within(self, candidate: str) -> bool:
        key = os.path.normcase(candidate)
        return key == self._base_key or key.startswith(self._base_prefix)

    def _resolve(self, path: str) -> str:
        """
        Resolve a logical path to a real path inside the base directory.

        Args:
            path: Caller-supplied logical path

        Returns:
            Absolute path within the base directory

        Raises:
            InvalidPathError: If the path is empty, absolute, contains `..`,
                or lands outside the base directory
        """
        if not path:
            raise InvalidPathError("path cannot be empty", path)
        if "\x00" in path:
            raise InvalidPathError(f"invalid path: {path!r}", path)

        if ".." in _SEGMENT_SPLIT.split(path):
            raise InvalidPathError(f"path traversal not allowed: {path}", path)

        normalized = os.path.normpath(path)
        if os.path.isabs(normalized) or os.path.splitdrive(normalized)[0]:
            raise InvalidPathError(f"absolute paths not allowed: {path}", path)
        if normalized.split(os.sep)[0] == os.pardir:
            raise InvalidPathError(f"path traversal not allowed: {path}", path)

        if normalized == os.curdir:
            candidate = self._base_path
        else:
            candidate = os.path.normpath(os.path.join(self._base_path, normalized))

        if not self._is_within(candidate):
            raise InvalidPathError(f"path escapes base directory: {path}", path)

        # A symlink inside the tree may point anywhere; check where it really lands
        if not self._is_within(os.path.realpath(candidate)):
            raise InvalidPathError(f"path escapes base directory via symlink: {path}", path)

        return candidate

    def _resolve_entry(self, path: str) -> str:
        """Resolve a path that must name an entry below the base, not the base itself."""
        full_path = self._resolve(path)
        if os.path.normcase(full_path) == self._base_key:
            raise InvalidPathError(f"operation not allowed on base directory: {path}", path)
        return full_path

    # =========================================================================
    # DIRECTORY OPERATIONS
    # =========================================================================

    def mkdir(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        full_path = self._resolve(path)
        with _translate_errors(path):
            try:
                os.makedirs(full_path, mode)
            except FileExistsError:
                if os.path.isdir(full_path):
                    return
                raise
            # makedirs masks the leaf mode with the umask
            os.chmod(full_path, mode)

    def rmdir(self, path: str) -> None:
        full_path = self._resolve_entry(path)
        with _translate_errors(path):
            info = os.lstat(full_path)
            if not stat_module.S_ISDIR(info.st_mode):
                raise NotDirectoryError(f"not a directory: {path}", path)
            try:
                os.rmdir(full_path)
            except OSError as e:
                if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
                    raise DirectoryNotEmptyError(f"directory not empty: {path}", path) from e
                raise

    def readdir(self, path: str) -> List[DirEntry]:
        full_path = self._resolve(path)
        with _translate_errors(path):
            with os.scandir(full_path) as entries:
                return [DirEntry(name=entry.name, is_dir=entry.is_dir()) for entry in entries]

    # =========================================================================
    # FILE OPERATIONS
    # =========================================================================

    def stat(self, path: str) -> FileInfo:
        full_path = self._resolve(path)
        with _translate_errors(path):
            info = os.stat(full_path)
        return FileInfo(
            name=os.path.basename(full_path),
            size=info.st_size,
            mode=info.st_mode,
            mod_time=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
            is_dir=stat_module.S_ISDIR(info.st_mode),
        )

    def read_file(self, path: str, opts: Optional[ReadOptions] = None) -> BinaryIO:
        full_path = self._resolve(path)
        opts = opts or ReadOptions()

        with _translate_errors(path):
            handle = open(full_path, "rb")

        if opts.offset:
            try:
                past_end = opts.offset >= os.fstat(handle.fileno()).st_size
                if not past_end:
                    handle.seek(opts.offset)
            except (OSError, ValueError, OverflowError) as e:
                handle.close()
                raise StorageIOError(f"seek failed: {path}", path) from e
            if past_end:
                handle.close()
                return io.BytesIO(b"")

        if opts.length:
            return LimitedReader(handle, opts.length)
        return handle

    def write_file(
        self,
        path: str,
        data: ByteSource,
        opts: Optional[WriteOptions] = None
    ) -> None:
        full_path = self._resolve(path)
        opts = opts or WriteOptions()

        if isinstance(data, (bytes, bytearray, memoryview)):
            source = io.BytesIO(data)
        else:
            source = data

        with _translate_errors(path):
            # Parent of an already-contained path cannot leave the base directory
            os.makedirs(os.path.dirname(full_path), DEFAULT_DIR_MODE, exist_ok=True)
            with open(full_path, "wb") as handle:
                shutil.copyfileobj(source, handle, self._chunk_size)
            os.chmod(full_path, opts.mode)

    def unlink(self, path: str) -> None:
        full_path = self._resolve_entry(path)
        with _translate_errors(path):
            info = os.lstat(full_path)
            if stat_module.S_ISDIR(info.st_mode):
                raise IsDirectoryError(f"cannot unlink directory: {path}", path)
            os.remove(full_path)

    def rename(self, old_path: str, new_path: str) -> None:
        old_full_path = self._resolve_entry(old_path)
        new_full_path = self._resolve_entry(new_path)

        with _translate_errors(old_path):
            os.lstat(old_full_path)
        with _translate_errors(new_path):
            os.makedirs(os.path.dirname(new_full_path), DEFAULT_DIR_MODE, exist_ok=True)
        with _translate_errors(old_path):
            os.replace(old_full_path, new_full_path)

    def chmod(self, path: str, mode: int) -> None:
        full_path = self._resolve(path)
        with _translate_errors(path):
            os.chmod(full_path, mode)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """Nothing to release; every call closes its own handles."""
        return None

    def __repr__(self) -> str:
        return f"LocalStorageAdapter(base_path={self._base_path!r})"
