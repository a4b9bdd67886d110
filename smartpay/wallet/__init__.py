"""Card wallet package."""

from smartpay.wallet.model import CardNotFoundError, Wallet

__all__ = ["CardNotFoundError", "Wallet"]
