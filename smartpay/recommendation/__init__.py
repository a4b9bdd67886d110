"""Recommendation reconciliation and stacking-offer detection."""

from smartpay.recommendation.offers import (
    AFFILIATE_LINKS,
    DEFAULT_VENDOR_PHRASES,
    affiliate_links_for,
    detect_offers,
)
from smartpay.recommendation.reconciler import reconcile

__all__ = [
    "AFFILIATE_LINKS",
    "DEFAULT_VENDOR_PHRASES",
    "affiliate_links_for",
    "detect_offers",
    "reconcile",
]
