"""
Card Validation

DESIGN DECISION: Validation collects every problem before deciding.
A draft from the add-card flow is checked for:
- Required fields (bank, product, holder name, nickname)
- A network from the closed set
- The reserved Generic Card id
- A sane display colour (warning only)

IMPORTANT: Validation reports every issue so the caller can show it to
the user before the operation proceeds. It never fixes an error-level
issue. The one warning-level issue, a colour that is not #RRGGBB, is
reported by validate() and then replaced with the default colour when
build_card() builds the Card.
"""

import re
from typing import Optional, Union

from smartpay.models.card import GENERIC_CARD_ID, Card, CardNetwork, DraftCard
from smartpay.validation.models import ValidationIssue, ValidationResult


_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_hex_color(value: Optional[str]) -> bool:
    """True for a "#RRGGBB" colour."""
    return bool(value) and _HEX_COLOR.match(value) is not None

_REQUIRED_FIELDS = (
    ("bank_name", "Bank name", "Enter the issuing bank, e.g. Chase"),
    ("card_name", "Card name", "Enter the product name, e.g. Sapphire Preferred"),
    ("holder_name", "Cardholder name", "Enter the name printed on the card"),
    ("nick_name", "Nickname", "Give the card a nickname so you can tell cards apart"),
)


class CardValidationError(ValueError):
    """A card is incomplete or invalid and cannot enter the wallet."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = "; ".join(issue.message for issue in issues if issue.severity == "error")
        super().__init__(messages or "Card is invalid")


class CardValidator:
    """Validates drafts and cards before they enter the wallet."""

    def validate(self, card: Union[Card, DraftCard]) -> ValidationResult:
        """Check a draft or a card and return every issue found."""
        issues = []

        for field, label, fix in _REQUIRED_FIELDS:
            value = getattr(card, field, None)
            if value is None or not str(value).strip():
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{label} is required",
                    severity="error",
                    suggested_fix=fix,
                ))

        network = card.network.value if isinstance(card.network, CardNetwork) else card.network
        if network not in {n.value for n in CardNetwork}:
            issues.append(ValidationIssue(
                field="network",
                issue_type="invalid_value",
                message=f"Unknown card network: {network!r}",
                severity="error",
                suggested_fix=f"Use one of {', '.join(n.value for n in CardNetwork)}",
            ))

        if card.id == GENERIC_CARD_ID:
            issues.append(ValidationIssue(
                field="id",
                issue_type="reserved",
                message="The Generic Card cannot be stored in the wallet",
                severity="error",
            ))

        if card.color_theme and not is_hex_color(card.color_theme):
            issues.append(ValidationIssue(
                field="color_theme",
                issue_type="invalid_format",
                message=f"Colour {card.color_theme!r} is not a #RRGGBB value",
                severity="warning",
                suggested_fix="The default colour will be used for display",
            ))

        return ValidationResult(issues=issues)

    def ensure_valid(self, card: Union[Card, DraftCard]) -> ValidationResult:
        """Validate and raise CardValidationError if any error-level issue exists."""
        result = self.validate(card)
        if result.has_errors:
            raise CardValidationError(result.issues)
        return result

    def build_card(self, draft: DraftCard) -> Card:
        """
        Turn a complete draft into a Card.

        A colour that is not #RRGGBB (reported as a warning by validate)
        is replaced with the default card colour. Every other field is
        taken as-is.

        Raises:
            CardValidationError: If required fields are missing or invalid
        """
        self.ensure_valid(draft)

        data = draft.model_dump(exclude_none=True)
        if not data.get("id"):
            data.pop("id", None)
        if draft.color_theme and not is_hex_color(draft.color_theme):
            data.pop("color_theme", None)
        return Card(**data)
