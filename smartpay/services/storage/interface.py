"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the wallet in a local JSON document today
2. Use in-memory storage for testing
3. Swap in a real database later without touching business logic

The interface is intentionally simple - the wallet is a handful of opaque
card records, not a relational model.
"""

from abc import ABC, abstractmethod
from typing import Optional

from smartpay.models.audit import AuditEvent
from smartpay.models.card import Card


class WalletStoreInterface(ABC):
    """
    Abstract interface for wallet persistence.

    Single-user, single-device: operations are invoked sequentially and
    there is no concurrent writer to guard against.
    """

    @abstractmethod
    async def list_cards(self) -> list[Card]:
        """
        Return every stored card in insertion order.

        Returns an empty list when nothing has been stored yet.
        """
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Optional[Card]:
        """Return the card with this id, or None."""
        pass

    @abstractmethod
    async def add_card(self, card: Card) -> None:
        """
        Store a new card.

        Raises:
            DuplicateError: If a card with the same id is already stored
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_card(self, card: Card) -> None:
        """
        Replace the stored card that has the same id.

        Raises:
            NotFoundError: If no card has this id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> bool:
        """
        Delete a card by id.

        Returns:
            True if a card was deleted, False if none had this id
        """
        pass

    @abstractmethod
    async def replace_all(self, cards: list[Card]) -> None:
        """
        Replace the whole wallet with these cards (used by restore).

        Either every card is written or the previous contents stay intact.
        """
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every stored card."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
