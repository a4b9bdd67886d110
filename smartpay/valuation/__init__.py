"""Reward valuation package."""

from smartpay.valuation.money import (
    HIGH_VALUE_PURCHASE_THRESHOLD,
    estimate_dollar_value,
    extract_percentage,
    is_high_value_purchase,
    parse_amount,
)

__all__ = [
    "HIGH_VALUE_PURCHASE_THRESHOLD",
    "estimate_dollar_value",
    "extract_percentage",
    "is_high_value_purchase",
    "parse_amount",
]
