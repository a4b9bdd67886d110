"""
Local JSON File Storage Implementation

DESIGN DECISION: The wallet is stored as ONE versioned JSON document on the
user's machine, the same shape as an exported backup:
1. No database setup required
2. The user can copy the file to move their wallet
3. Export is literally "read the document"

TRADEOFFS:
- Every write rewrites the whole document (fine for a handful of cards)
- No transactions; writes go to a temp file and are renamed into place so a
  crash never leaves a half-written wallet

The implementation follows the abstract interface, so we can swap to
SQLite later without changing business logic.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from smartpay.backup.codec import BackupImportError, decode_cards, encode_cards
from smartpay.models.audit import AuditEvent
from smartpay.models.card import Card
from smartpay.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    WalletStoreInterface,
)


logger = structlog.get_logger(__name__)


def _atomic_write(path: Path, text: str) -> None:
    """Write text to path via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonFileWalletStore(WalletStoreInterface):
    """
    Wallet storage backed by a single JSON document.

    The file is created on the first write.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[Card]:
        if not self._path.exists():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read wallet file {self._path}: {e}")
        try:
            return decode_cards(text)
        except BackupImportError as e:
            raise StorageError(f"Wallet file {self._path} is corrupt: {e}")

    def _write(self, cards: list[Card]) -> None:
        try:
            _atomic_write(self._path, encode_cards(cards))
        except OSError as e:
            raise StorageError(f"Failed to write wallet file {self._path}: {e}")
        logger.debug("wallet_written", path=str(self._path), card_count=len(cards))

    async def list_cards(self) -> list[Card]:
        return self._read()

    async def get_card(self, card_id: str) -> Optional[Card]:
        for card in self._read():
            if card.id == card_id:
                return card
        return None

    async def add_card(self, card: Card) -> None:
        cards = self._read()
        if any(existing.id == card.id for existing in cards):
            raise DuplicateError(f"Card already stored: {card.id}")
        cards.append(card)
        self._write(cards)

    async def update_card(self, card: Card) -> None:
        cards = self._read()
        for idx, existing in enumerate(cards):
            if existing.id == card.id:
                cards[idx] = card
                self._write(cards)
                return
        raise NotFoundError(f"Card not found: {card.id}")

    async def delete_card(self, card_id: str) -> bool:
        cards = self._read()
        remaining = [card for card in cards if card.id != card_id]
        if len(remaining) == len(cards):
            return False
        self._write(remaining)
        return True

    async def replace_all(self, cards: list[Card]) -> None:
        self._write(list(cards))

    async def clear_all(self) -> None:
        self._write([])


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Audit log storage as one JSON object per line.

    Audit events are append-only.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            # Audit logging must not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events, newest first."""
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}")

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValueError:
                continue  # Skip malformed lines

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
