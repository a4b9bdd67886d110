"""Card validation package."""

from smartpay.validation.models import ValidationIssue, ValidationResult
from smartpay.validation.validator import CardValidationError, CardValidator, is_hex_color

__all__ = [
    "CardValidationError",
    "CardValidator",
    "ValidationIssue",
    "ValidationResult",
    "is_hex_color",
]
