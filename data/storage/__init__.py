"""
Storage Layer - Backend-agnostic filesystem operations

Provides:
- StorageAdapter contract and shared value types
- LocalStorageAdapter, confined to one base directory
- Factory selecting the backend from configuration

The HTTP layer only talks to StorageAdapter; the filesystem itself
is the storage, no sidecar metadata is written.
"""

from .base import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    AlreadyExistsError,
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
from .local import LimitedReader, LocalStorageAdapter
from .factory import StorageConfig, available_adapters, create_storage_adapter, register_adapter

__all__ = [
    # Contract
    "StorageAdapter",
    "FileInfo",
    "DirEntry",
    "ReadOptions",
    "WriteOptions",
    "DEFAULT_DIR_MODE",
    "DEFAULT_FILE_MODE",

    # Errors
    "StorageError",
    "InvalidPathError",
    "PathNotFoundError",
    "NotDirectoryError",
    "IsDirectoryError",
    "AlreadyExistsError",
    "StorageIOError",
    "DirectoryNotEmptyError",

    # Local backend
    "LocalStorageAdapter",
    "LimitedReader",

    # Factory
    "StorageConfig",
    "create_storage_adapter",
    "register_adapter",
    "available_adapters",
]
