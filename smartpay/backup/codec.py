"""
Backup / Restore Codec

The whole wallet travels as one versioned JSON document:

    {"version": 1, "cards": [...], "lastUpdated": "<ISO-8601>"}

Documents attached to cards are stored as text (base64 data URLs), so a
backup reproduces them byte-for-byte.

WARNING: Restoring a backup REPLACES the entire wallet. It is a full
overwrite, not a merge: cards that are not in the backup are gone after
the import. (Editing a card, by contrast, never drops documents.)

A malformed backup is rejected with BackupImportError before anything is
changed.
"""

import json
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from smartpay.models.card import GENERIC_CARD_ID, Card
from smartpay.validation import CardValidationError
from smartpay.wallet.model import Wallet


BACKUP_VERSION = 1


class BackupImportError(ValueError):
    """The text is not a usable wallet backup."""
    pass


class BackupDocument(BaseModel):
    """The persisted / exported wallet document."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: int = BACKUP_VERSION
    cards: list[Card] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def encode_cards(cards: list[Card], now: Optional[datetime] = None) -> str:
    """Serialize cards into a backup document. Never fails for an empty list."""
    document = BackupDocument(
        cards=cards,
        last_updated=now or datetime.now(timezone.utc),
    )
    return document.model_dump_json(by_alias=True, indent=2)


def decode_cards(text: str) -> list[Card]:
    """
    Parse a backup document and return its cards.

    Only the presence of a "cards" array is required; the version number is
    not negotiated.

    Raises:
        BackupImportError: If the text is not JSON, has no "cards" array,
            or contains a card that cannot be read
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BackupImportError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("cards"), list):
        raise BackupImportError("Backup has no 'cards' array")

    cards = []
    for index, raw in enumerate(data["cards"]):
        try:
            card = Card.model_validate(raw)
        except ValidationError as e:
            raise BackupImportError(f"Card #{index + 1} in backup is invalid: {e}") from e
        if card.id == GENERIC_CARD_ID:
            raise BackupImportError(f"Card #{index + 1} uses the reserved Generic Card id")
        cards.append(card)

    seen = set()
    for card in cards:
        if card.id in seen:
            raise BackupImportError(f"Backup contains card id {card.id} twice")
        seen.add(card.id)

    return cards


def export_wallet(wallet: Wallet, now: Optional[datetime] = None) -> str:
    """Export the wallet as backup JSON text."""
    return encode_cards(wallet.cards, now=now)


def import_wallet(text: str, into: Optional[Wallet] = None) -> Wallet:
    """
    Restore a wallet from backup JSON text.

    Args:
        text: The backup document
        into: An existing wallet to OVERWRITE. Every card it holds is
              replaced by the backup's cards. If omitted, a new wallet
              is returned.

    Raises:
        BackupImportError: If the backup is malformed. The existing wallet
            is left untouched.
    """
    cards = decode_cards(text)
    try:
        if into is None:
            return Wallet(cards)
        into.replace_all(cards)
        return into
    except CardValidationError as e:
        raise BackupImportError(f"Backup contains an incomplete card: {e}") from e


def backup_filename(app_name: str, on: Optional[date] = None) -> str:
    """File name for an exported backup: <app-name>-backup-<YYYY-MM-DD>.json"""
    on = on or datetime.now(timezone.utc).date()
    return f"{app_name}-backup-{on.isoformat()}.json"
