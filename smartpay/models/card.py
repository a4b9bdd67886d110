"""
Card Data Models for AI Smart Pay

These models define the schemas for everything stored in the wallet.
They are designed to:
1. Enforce type safety at runtime
2. Keep the original camelCase JSON format for storage and backups
3. Separate in-progress drafts from complete, validated cards

DESIGN DECISION: A DraftCard (everything optional) is what the add-card and
preview flows work with. Only a Card (fully validated) may enter the wallet.
Partial data never flows into the wallet's invariant-checked operations.
"""

import base64
import binascii
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Shared config: snake_case in Python, camelCase on the wire
_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CardNetwork(str, Enum):
    """Payment networks a card can belong to."""
    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"
    OTHER = "OTHER"

    @classmethod
    def parse(
        cls,
        value: Optional[str],
        default: Optional["CardNetwork"] = None,
    ) -> Optional["CardNetwork"]:
        """
        Case-insensitive lookup of a network name, e.g. "Visa" or
        "American Express". Unknown or blank names give the default.
        """
        if not value:
            return default
        key = " ".join(str(value).split()).upper()
        key = _NETWORK_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return default


_NETWORK_ALIASES = {
    "AMERICAN EXPRESS": "AMEX",
    "MASTER CARD": "MASTERCARD",
    "DISCOVER CARD": "DISCOVER",
}


class DocumentType(str, Enum):
    """Type tag for an attached document."""
    PDF = "pdf"
    TEXT = "text"


# =============================================================================
# CARD PARTS
# =============================================================================

class RewardCategory(BaseModel):
    """
    One reward line of a card.

    The rate is free-form ("3x", "5%", "2 miles"). Only rates containing a
    percentage can be turned into a dollar estimate.
    """
    model_config = _WIRE_CONFIG

    category: str = ""
    rate: str = ""
    description: str = ""


class CardBenefit(BaseModel):
    """A free-text card benefit (purchase protection, lounge access, ...)."""
    model_config = _WIRE_CONFIG

    title: str = ""
    description: str = ""


class CardDocument(BaseModel):
    """
    A document attached to a card (policy PDF, pasted terms, ...).

    Content is kept as text (a base64 data URL for uploads) so the whole
    wallet serializes to a single JSON document.
    """
    model_config = _WIRE_CONFIG

    id: str = Field(default_factory=_new_id)
    filename: str = Field(..., min_length=1, alias="name")
    doc_type: DocumentType = Field(default=DocumentType.TEXT, alias="type")
    content: Optional[str] = None
    date_added: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_bytes(
        cls,
        filename: str,
        data: bytes,
        mime_type: str,
        max_size_bytes: Optional[int] = None,
    ) -> "CardDocument":
        """
        Build a document from an uploaded file.

        The bytes are stored as a data URL so they survive JSON round trips
        unchanged. PDFs are tagged "pdf", everything else "text".
        """
        if max_size_bytes is not None and len(data) > max_size_bytes:
            raise ValueError(
                f"Document {filename} is {len(data)} bytes; "
                f"the limit is {max_size_bytes} bytes"
            )
        encoded = base64.b64encode(data).decode("ascii")
        doc_type = DocumentType.PDF if "pdf" in mime_type.lower() else DocumentType.TEXT
        return cls(
            filename=filename,
            doc_type=doc_type,
            content=f"data:{mime_type};base64,{encoded}",
        )

    def decode_content(self) -> bytes:
        """
        Return the raw bytes of the document.

        Data URLs are base64-decoded; plain pasted text is returned UTF-8
        encoded.
        """
        if not self.content:
            return b""
        if self.content.startswith("data:") and ";base64," in self.content:
            payload = self.content.split(",", 1)[1]
            try:
                return base64.b64decode(payload, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Document {self.filename} has corrupt content: {e}")
        return self.content.encode("utf-8")


# =============================================================================
# CARDS
# =============================================================================

class Card(BaseModel):
    """
    A complete payment card as stored in the wallet.

    Identity is an opaque string generated once and never changed.
    Holder name and nickname are required before a card can be added.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=_new_id, min_length=1)
    bank_name: str = Field(..., min_length=1)
    card_name: str = Field(..., min_length=1)
    holder_name: str = Field(..., min_length=1)
    nick_name: str = Field(..., min_length=1)
    network: CardNetwork
    color_theme: str = "#333333"
    rewards: list[RewardCategory] = Field(default_factory=list)
    benefits: list[CardBenefit] = Field(default_factory=list)

    # Manual / custom data
    manual_details: Optional[str] = None
    documents: list[CardDocument] = Field(default_factory=list)

    # Metadata
    last_refreshed: Optional[datetime] = None

    @field_validator("holder_name")
    @classmethod
    def upper_case_holder(cls, v: str) -> str:
        """Holder names are printed upper-case, like on the card itself."""
        return v.upper()

    @property
    def display_name(self) -> str:
        return f"{self.bank_name} {self.card_name}"

    @property
    def is_generic(self) -> bool:
        """True for the non-persisted cash/debit sentinel."""
        return self.id == GENERIC_CARD_ID


class DraftCard(BaseModel):
    """
    An in-progress card from the add-card flow or an AI details lookup.

    Every field is optional and the network is kept as raw text, so the
    validator can report exactly what is missing or wrong.
    """
    model_config = _WIRE_CONFIG

    id: Optional[str] = None
    bank_name: Optional[str] = None
    card_name: Optional[str] = None
    holder_name: Optional[str] = None
    nick_name: Optional[str] = None
    network: Optional[str] = None
    color_theme: Optional[str] = None
    rewards: Optional[list[RewardCategory]] = None
    benefits: Optional[list[CardBenefit]] = None
    manual_details: Optional[str] = None
    documents: list[CardDocument] = Field(default_factory=list)
    last_refreshed: Optional[datetime] = None


class CardSummary(BaseModel):
    """
    The minimized projection of a card that is sent to the AI.

    Never carries manual notes or document content.
    """
    model_config = _WIRE_CONFIG

    id: str
    display_name: str
    rewards: list[RewardCategory] = Field(default_factory=list)
    benefits: list[CardBenefit] = Field(default_factory=list)

    @classmethod
    def from_card(cls, card: Card) -> "CardSummary":
        return cls(
            id=card.id,
            display_name=card.display_name,
            rewards=[r.model_copy() for r in card.rewards],
            benefits=[b.model_copy() for b in card.benefits],
        )


# =============================================================================
# GENERIC / FALLBACK CARD
# =============================================================================

# Wallet ids are uuid4 strings, so this can never collide with a real card.
GENERIC_CARD_ID = "generic-cash"

GENERIC_CARD = Card(
    id=GENERIC_CARD_ID,
    bank_name="Generic",
    card_name="Cash / Debit",
    holder_name="CASH",
    nick_name="CASH",
    network=CardNetwork.OTHER,
    color_theme="#64748b",
    rewards=[RewardCategory(category="General", rate="1%", description="Base rate")],
    benefits=[],
)


def generic_card() -> Card:
    """Return a fresh copy of the Generic Card sentinel."""
    return GENERIC_CARD.model_copy(deep=True)
