"""
In-Memory Storage Implementation

Used by tests and by storage-less runs. Nothing survives the process.
"""

from typing import Optional

from smartpay.models.audit import AuditEvent
from smartpay.models.card import Card
from smartpay.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    WalletStoreInterface,
)


class InMemoryWalletStore(WalletStoreInterface):
    """Wallet storage kept in a dict, in insertion order."""

    def __init__(self, cards: Optional[list[Card]] = None):
        self._cards: dict[str, Card] = {card.id: card for card in cards or ()}

    async def list_cards(self) -> list[Card]:
        return [card.model_copy(deep=True) for card in self._cards.values()]

    async def get_card(self, card_id: str) -> Optional[Card]:
        card = self._cards.get(card_id)
        return card.model_copy(deep=True) if card else None

    async def add_card(self, card: Card) -> None:
        if card.id in self._cards:
            raise DuplicateError(f"Card already stored: {card.id}")
        self._cards[card.id] = card.model_copy(deep=True)

    async def update_card(self, card: Card) -> None:
        if card.id not in self._cards:
            raise NotFoundError(f"Card not found: {card.id}")
        self._cards[card.id] = card.model_copy(deep=True)

    async def delete_card(self, card_id: str) -> bool:
        return self._cards.pop(card_id, None) is not None

    async def replace_all(self, cards: list[Card]) -> None:
        self._cards = {card.id: card.model_copy(deep=True) for card in cards}

    async def clear_all(self) -> None:
        self._cards = {}


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit events kept in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
