"""Shared fixtures for the AI Smart Pay tests."""

import pytest

from smartpay.models.card import (
    Card,
    CardBenefit,
    CardDocument,
    CardNetwork,
    DraftCard,
    RewardCategory,
)


def make_card(card_id: str = "A", **overrides) -> Card:
    """A complete card with sensible defaults."""
    data = dict(
        id=card_id,
        bank_name="Chase",
        card_name="Sapphire Preferred",
        holder_name="Jane Doe",
        nick_name="Travel",
        network=CardNetwork.VISA,
        color_theme="#1a2b3c",
        rewards=[RewardCategory(category="Dining", rate="3x", description="Restaurants")],
        benefits=[CardBenefit(title="Purchase Protection", description="120 days")],
    )
    data.update(overrides)
    return Card(**data)


def make_draft(**overrides) -> DraftCard:
    """A complete draft as the add-card flow produces it."""
    data = dict(
        bank_name="Citi",
        card_name="Double Cash",
        holder_name="jane doe",
        nick_name="Everyday",
        network="MASTERCARD",
        color_theme="#0055aa",
        rewards=[RewardCategory(category="Everything", rate="2%", description="1% + 1%")],
    )
    data.update(overrides)
    return DraftCard(**data)


@pytest.fixture
def card_a() -> Card:
    return make_card("A")


@pytest.fixture
def card_b() -> Card:
    return make_card(
        "B",
        bank_name="Amex",
        card_name="Gold Card",
        network=CardNetwork.AMEX,
        rewards=[RewardCategory(category="Groceries", rate="4x", description="US supermarkets")],
    )


@pytest.fixture
def pdf_document() -> CardDocument:
    return CardDocument.from_bytes(
        filename="terms.pdf",
        data=b"%PDF-1.4\x00\xff\xfe binary terms",
        mime_type="application/pdf",
    )
