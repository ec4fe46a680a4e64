"""
Storage Adapter Factory

Builds the configured StorageAdapter variant. New backends register a
builder under their type name; call sites only ever see StorageAdapter.

@.architecture
Incoming: app.py, config/settings.py --- {StorageConfig (type, base_path, chunk_size)}
Processing: create_storage_adapter(), register_adapter() --- {2 jobs: backend_selection, adapter_construction}
Outgoing: app.py, api/dependencies.py --- {StorageAdapter instance}
"""

from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field

from .base import StorageAdapter
from .local import DEFAULT_CHUNK_SIZE, LocalStorageAdapter


class StorageConfig(BaseModel):
    """Backend selection plus the options common to all backends."""
    type: str = "local"
    base_path: Optional[str] = None
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)


AdapterBuilder = Callable[[StorageConfig], StorageAdapter]


def _build_local(config: StorageConfig) -> StorageAdapter:
    return LocalStorageAdapter(config.base_path, chunk_size=config.chunk_size)


_BUILDERS: Dict[str, AdapterBuilder] = {
    "local": _build_local,
}


def register_adapter(adapter_type: str, builder: AdapterBuilder) -> None:
    """Register a builder for an additional backend type."""
    _BUILDERS[adapter_type.lower()] = builder


def available_adapters() -> list:
    return sorted(_BUILDERS)


def create_storage_adapter(config: StorageConfig) -> StorageAdapter:
    """
    Create a storage adapter for the configured backend type.

    Args:
        config: Storage configuration

    Returns:
        StorageAdapter: Ready-to-use adapter

    Raises:
        ValueError: If the backend type is unknown
        StorageError: If the backend rejects its configuration
    """
    builder = _BUILDERS.get(config.type.lower())
    if builder is None:
        raise ValueError(
            f"Unknown storage type: {config.type}. Available: {available_adapters()}"
        )
    return builder(config)
