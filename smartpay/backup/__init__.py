"""Backup / restore package."""

from smartpay.backup.codec import (
    BACKUP_VERSION,
    BackupDocument,
    BackupImportError,
    backup_filename,
    decode_cards,
    encode_cards,
    export_wallet,
    import_wallet,
)

__all__ = [
    "BACKUP_VERSION",
    "BackupDocument",
    "BackupImportError",
    "backup_filename",
    "decode_cards",
    "encode_cards",
    "export_wallet",
    "import_wallet",
]
