"""
Stacking-Offer Detector

Finds mentions of third-party cashback portals in the AI's free text so the
matching quick-action links can be shown.

DESIGN DECISION: Detection is a plain case-insensitive substring search
over a table of (vendor, phrases). Adding a portal means adding a row to
the table, not touching the detection logic. There is no scoring or
ranking - a vendor is either mentioned or not.
"""

from collections.abc import Mapping, Sequence
from typing import Optional

from smartpay.models.recommendation import RecommendationResult, StackingVendor


# Phrases that identify each vendor (matched case-insensitively)
DEFAULT_VENDOR_PHRASES: Mapping[StackingVendor, Sequence[str]] = {
    StackingVendor.RAKUTEN: ("rakuten",),
    StackingVendor.PAYPAL: ("paypal",),
    StackingVendor.CAPITAL_ONE: ("capital one",),
}

# Fixed quick-action link for each vendor
AFFILIATE_LINKS: Mapping[StackingVendor, str] = {
    StackingVendor.RAKUTEN: "https://www.rakuten.com",
    StackingVendor.PAYPAL: "https://www.paypal.com",
    StackingVendor.CAPITAL_ONE: "https://capitaloneshopping.com",
}


def _texts_to_scan(result: RecommendationResult) -> list[str]:
    texts = []
    if result.stacking_info:
        texts.append(result.stacking_info)
    if result.optimization_analysis is not None:
        texts.extend(result.optimization_analysis.steps_to_maximize)
    return texts


def detect_offers(
    result: RecommendationResult,
    vendor_phrases: Optional[Mapping[StackingVendor, Sequence[str]]] = None,
) -> set[StackingVendor]:
    """
    Return the vendors mentioned in the stacking info or the optimization
    steps of a recommendation.

    Example:
        stacking_info="Use Rakuten for extra 2%"  ->  {StackingVendor.RAKUTEN}
    """
    phrases_by_vendor = vendor_phrases or DEFAULT_VENDOR_PHRASES
    haystack = [text.lower() for text in _texts_to_scan(result)]

    found = set()
    for vendor, phrases in phrases_by_vendor.items():
        needles = [phrase.lower() for phrase in phrases]
        if any(needle in text for text in haystack for needle in needles):
            found.add(vendor)
    return found


def affiliate_links_for(offers: set[StackingVendor]) -> dict[StackingVendor, str]:
    """The quick-action links to render for the detected vendors."""
    return {vendor: AFFILIATE_LINKS[vendor] for vendor in offers if vendor in AFFILIATE_LINKS}
