"""Services package."""

from smartpay.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryWalletStore,
    JsonFileWalletStore,
    JsonLinesAuditStorage,
    NotFoundError,
    StorageError,
    WalletStoreInterface,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryWalletStore",
    "JsonFileWalletStore",
    "JsonLinesAuditStorage",
    "NotFoundError",
    "StorageError",
    "WalletStoreInterface",
]
