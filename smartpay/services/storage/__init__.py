"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local JSON document as the backend, but designed to
be swappable.
"""

from smartpay.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    WalletStoreInterface,
)
from smartpay.services.storage.json_file import (
    JsonFileWalletStore,
    JsonLinesAuditStorage,
)
from smartpay.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryWalletStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "WalletStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Local file implementation
    "JsonFileWalletStore",
    "JsonLinesAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryWalletStore",
]
