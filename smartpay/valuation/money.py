"""
Reward Valuation

Turns a free-form reward rate ("5% cashback", "Total ~8% Return") and a
user-typed purchase amount into a dollar estimate.

DESIGN DECISION: "Not enough information" is a normal state, not an error.
Every function here returns None instead of raising when the input does not
support an estimate, so None is distinguishable from a real $0.00.

Rounding is ROUND_HALF_UP on Decimal arithmetic, so "2.5% of 1.00" is
"0.03", not the binary-float "0.02".

The percentage is taken as-is, with no upper bound: "450%" is accepted.
The AI's rate text is trusted rather than second-guessed.

Amounts are plain ASCII numbers: an optional sign, digits with an optional
decimal point, and an optional exponent. Digit separators ("1,000",
"1_000") and non-ASCII digits are rejected.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional


# First "<digits>(.<digits>)?%" anywhere in the text
PERCENTAGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)%", re.ASCII)

AMOUNT_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

# Purchases strictly above this amount count as high value
HIGH_VALUE_PURCHASE_THRESHOLD = Decimal("500")

# Upper bound on the working precision of a dollar estimate
MAX_ESTIMATE_PRECISION = 1000

_CENTS = Decimal("0.01")


def parse_amount(amount_text: Optional[str]) -> Optional[Decimal]:
    """
    Parse a user-typed purchase amount.

    Returns None for blank, non-numeric, non-finite, zero or negative input.
    """
    if amount_text is None:
        return None
    text = str(amount_text).strip()
    if not text or AMOUNT_PATTERN.fullmatch(text) is None:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def extract_percentage(rate_text: Optional[str]) -> Optional[Decimal]:
    """Return the first percentage in the text, or None if there is none."""
    if not rate_text:
        return None
    match = PERCENTAGE_PATTERN.search(rate_text)
    if match is None:
        return None
    return Decimal(match.group(1))


def _estimate_precision(amount: Decimal, percentage: Decimal) -> int:
    # Enough significant digits to hold the product down to the cent
    digits = len(amount.as_tuple().digits) + len(percentage.as_tuple().digits)
    magnitude = max(amount.adjusted(), 0) + max(percentage.adjusted(), 0)
    return digits + magnitude + 4


def estimate_dollar_value(
    rate_text: Optional[str],
    amount_text: Optional[str],
) -> Optional[str]:
    """
    Estimate the dollar value of a reward rate on a purchase.

    Examples:
        estimate_dollar_value("5% cashback", "200")  -> "10.00"
        estimate_dollar_value("3x points", "200")    -> None
        estimate_dollar_value("5%", "-5")            -> None

    Returns:
        amount * percentage / 100 formatted with exactly two decimals,
        or None when either input is missing or unusable. Amounts too
        large to value to the cent are unusable.
    """
    amount = parse_amount(amount_text)
    if amount is None:
        return None

    percentage = extract_percentage(rate_text)
    if percentage is None:
        return None

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, min(_estimate_precision(amount, percentage), MAX_ESTIMATE_PRECISION))
        try:
            value = (amount * percentage / Decimal(100)).quantize(_CENTS, rounding=ROUND_HALF_UP)
        except ArithmeticError:
            return None
        return f"{value:.2f}"


def is_high_value_purchase(
    amount_text: Optional[str],
    threshold: Decimal = HIGH_VALUE_PURCHASE_THRESHOLD,
) -> bool:
    """True when the amount parses to a number strictly above the threshold."""
    amount = parse_amount(amount_text)
    return amount is not None and amount > threshold
