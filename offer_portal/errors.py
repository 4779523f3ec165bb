from __future__ import annotations


class OfferError(ValueError):
    """Base class for problems the service layer reports to callers."""


class ValidationError(OfferError):
    pass


class NotFoundError(OfferError):
    pass


class PricingUndefinedError(OfferError):
    """Raised when a margin amount cannot be turned into a markup percent.

    The conversion divides by the purchase price, so a zero purchase price has
    no defined markup.
    """
