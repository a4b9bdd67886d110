"""
Card Wallet Model

The in-memory wallet: the ordered collection of the user's cards.

RULES:
1. Only complete, validated cards enter the wallet
2. Card ids are unique; the Generic Card id is reserved
3. Editing a card NEVER drops documents attached earlier - new documents
   are appended to the existing ones
4. Removing an unknown id is a no-op
5. The summary sent to the AI never contains notes or document content
6. Cards go in and come out as copies; callers never hold the wallet's own
   objects, so editing a returned card changes nothing until update()

The wallet does no I/O. Persistence is the store's job (see
smartpay.services.storage) and the flows keep both in step.
"""

from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional, Union

from smartpay.models.card import Card, CardNetwork, CardSummary, DraftCard, generic_card
from smartpay.validation import CardValidationError, CardValidator, ValidationIssue, is_hex_color


class CardNotFoundError(KeyError):
    """No card in the wallet has the requested id."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(card_id)

    def __str__(self) -> str:
        return f"Card not found: {self.card_id}"


class Wallet:
    """
    The user's cards, in insertion order.

    Usage:
        wallet = Wallet()
        card = wallet.add(draft)
        wallet.update(card.model_copy(update={"manual_details": "..."}))
        wallet.remove(card.id)
    """

    def __init__(
        self,
        cards: Optional[Iterable[Card]] = None,
        validator: Optional[CardValidator] = None,
    ):
        self._validator = validator or CardValidator()
        self._cards: dict[str, Card] = {}
        for card in cards or ():
            self.add(card)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def cards(self) -> list[Card]:
        """Copies of the cards, in insertion order."""
        return [card.model_copy(deep=True) for card in self._cards.values()]

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    @property
    def is_empty(self) -> bool:
        return not self._cards

    def find_by_id(self, card_id: Optional[str]) -> Optional[Card]:
        """Return a copy of the card with this id, or None."""
        if card_id is None:
            return None
        card = self._cards.get(card_id)
        return card.model_copy(deep=True) if card is not None else None

    def candidates(self) -> list[Card]:
        """
        Cards the AI may choose from.

        An empty wallet yields the Generic Card so there is always at least
        one candidate.
        """
        return self.cards or [generic_card()]

    def summarize(self) -> list[CardSummary]:
        """The minimized projection of each card sent to the AI."""
        return [CardSummary.from_card(card) for card in self._cards.values()]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, card: Union[Card, DraftCard]) -> Card:
        """
        Add a card (or a complete draft) to the wallet.

        Raises:
            CardValidationError: If required fields are missing, the network
                is unknown, or the id is already taken or reserved
        """
        if isinstance(card, DraftCard):
            card = self._validator.build_card(card)
        else:
            self._validator.ensure_valid(card)

        if card.id in self._cards:
            raise CardValidationError([ValidationIssue(
                field="id",
                issue_type="duplicate",
                message=f"A card with id {card.id} is already in the wallet",
                severity="error",
            )])

        self._cards[card.id] = card.model_copy(deep=True)
        return card

    def update(self, card: Card) -> Card:
        """
        Replace the card with the same id.

        Every field is replaced except documents: documents already attached
        are kept, and any documents on the new card that are not already
        attached (by id) are appended after them.

        Raises:
            CardNotFoundError: If no card has this id
            CardValidationError: If the updated card is invalid
        """
        existing = self._cards.get(card.id)
        if existing is None:
            raise CardNotFoundError(card.id)

        self._validator.ensure_valid(card)

        known_ids = {doc.id for doc in existing.documents}
        appended = [doc for doc in card.documents if doc.id not in known_ids]
        merged = card.model_copy(
            update={"documents": [*existing.documents, *appended]},
            deep=True,
        )

        self._cards[card.id] = merged
        return merged.model_copy(deep=True)

    def refresh(
        self,
        card_id: str,
        details: DraftCard,
        refreshed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Overwrite a card's reward data with freshly fetched details.

        Network, colour, rewards and benefits come from the details when
        present and usable. A network name outside the known set, or a
        colour that is not #RRGGBB, keeps the current value. Holder name,
        nickname, notes and documents are kept.

        Raises:
            CardNotFoundError: If no card has this id
        """
        existing = self._cards.get(card_id)
        if existing is None:
            raise CardNotFoundError(card_id)

        candidate = DraftCard.model_validate(existing.model_dump(mode="json"))
        candidate.rewards = details.rewards or existing.rewards
        candidate.benefits = details.benefits or existing.benefits
        candidate.last_refreshed = refreshed_at or datetime.now(timezone.utc)
        network = CardNetwork.parse(details.network)
        if network is not None:
            candidate.network = network.value
        if is_hex_color(details.color_theme):
            candidate.color_theme = details.color_theme

        refreshed = self._validator.build_card(candidate)
        self._cards[card_id] = refreshed
        return refreshed.model_copy(deep=True)

    def remove(self, card_id: str) -> bool:
        """
        Remove a card. Removing an unknown id is a no-op.

        Returns:
            True if a card was removed
        """
        return self._cards.pop(card_id, None) is not None

    def replace_all(self, cards: Iterable[Card]) -> None:
        """
        Replace every card at once (restore from backup).

        This is a full overwrite, not a merge. The new cards are validated
        first; if any is rejected the wallet keeps its previous contents.
        """
        staged = Wallet(cards, validator=self._validator)
        self._cards = staged._cards

    def clear(self) -> int:
        """Remove every card. Returns how many were removed."""
        removed = len(self._cards)
        self._cards = {}
        return removed
