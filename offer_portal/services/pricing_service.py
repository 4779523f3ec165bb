from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from offer_portal.errors import PricingUndefinedError, ValidationError

HUNDRED = Decimal('100')
ZERO = Decimal('0')
AMOUNT_PLACES = Decimal('0.0001')
QTY_PLACES = Decimal('0.001')


@dataclass(frozen=True)
class ByMarkup:
    percent: Decimal


@dataclass(frozen=True)
class ByMargin:
    amount: Decimal


@dataclass(frozen=True)
class Unchanged:
    pass


PriceInput = ByMarkup | ByMargin | Unchanged


@dataclass(frozen=True)
class StoredPricing:
    qty: Decimal
    purchase_price: Decimal
    markup_percent: Decimal
    margin_amount: Decimal


@dataclass(frozen=True)
class PricingPatch:
    qty: Decimal | None = None
    purchase_price: Decimal | None = None
    price_input: PriceInput = Unchanged()


@dataclass(frozen=True)
class ItemPricing:
    qty: Decimal
    purchase_price: Decimal
    markup_percent: Decimal
    margin_amount: Decimal
    unit_price: Decimal
    line_total: Decimal


def price_input_from_fields(*, markup_percent: Decimal | None, margin_amount: Decimal | None) -> PriceInput:
    # An explicit margin wins over an explicit markup when both are sent.
    if margin_amount is not None:
        return ByMargin(margin_amount)
    if markup_percent is not None:
        return ByMarkup(markup_percent)
    return Unchanged()


def _non_negative(value: Decimal, field: str) -> Decimal:
    if value < 0:
        raise ValidationError(f'{field} cannot be negative')
    return value


def markup_from_margin(purchase_price: Decimal, margin_amount: Decimal) -> Decimal:
    if purchase_price == 0:
        raise PricingUndefinedError('Markup percent is undefined for a purchase price of zero')
    return ((purchase_price + margin_amount) / purchase_price - 1) * HUNDRED


def margin_from_markup(purchase_price: Decimal, markup_percent: Decimal) -> Decimal:
    return purchase_price * (markup_percent / HUNDRED)


def _rounded(value: Decimal, places: Decimal = AMOUNT_PLACES) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def _finish(*, qty: Decimal, purchase_price: Decimal, markup_percent: Decimal, margin_amount: Decimal) -> ItemPricing:
    """Round to the scale the item columns store, then derive the dependent prices.

    Unit price and line total are computed from the rounded inputs, so the
    values held in memory equal what a reload from the database returns.
    """
    qty = _rounded(qty, QTY_PLACES)
    purchase_price = _rounded(purchase_price)
    margin_amount = _rounded(margin_amount)
    unit_price = purchase_price + margin_amount
    return ItemPricing(
        qty=qty,
        purchase_price=purchase_price,
        markup_percent=_rounded(markup_percent),
        margin_amount=margin_amount,
        unit_price=unit_price,
        line_total=_rounded(qty * unit_price),
    )


def compute_item_pricing(current: StoredPricing, patch: PricingPatch) -> ItemPricing:
    """Derive an existing item's monetary fields after a partial update.

    ``qty`` and ``purchase_price`` fall back to the stored values. The price
    input then decides which of markup and margin is authoritative; with
    ``Unchanged`` both stored values are kept as they are, even when the
    purchase price moved.
    """
    qty = _non_negative(patch.qty if patch.qty is not None else current.qty, 'Quantity')
    purchase_price = _non_negative(
        patch.purchase_price if patch.purchase_price is not None else current.purchase_price,
        'Purchase price',
    )

    price_input = patch.price_input
    if isinstance(price_input, ByMargin):
        margin_amount = _non_negative(price_input.amount, 'Margin amount')
        markup_percent = markup_from_margin(purchase_price, margin_amount)
    elif isinstance(price_input, ByMarkup):
        markup_percent = _non_negative(price_input.percent, 'Markup percent')
        margin_amount = margin_from_markup(purchase_price, markup_percent)
    else:
        markup_percent = current.markup_percent
        margin_amount = current.margin_amount

    return _finish(
        qty=qty,
        purchase_price=purchase_price,
        markup_percent=markup_percent,
        margin_amount=margin_amount,
    )


def compute_new_item_pricing(*, qty: Decimal, purchase_price: Decimal, price_input: PriceInput) -> ItemPricing:
    """Derive a new item's monetary fields. New items have no stored price to keep."""
    _non_negative(qty, 'Quantity')
    _non_negative(purchase_price, 'Purchase price')

    if isinstance(price_input, ByMarkup):
        markup_percent = _non_negative(price_input.percent, 'Markup percent')
        unit_price = purchase_price * (1 + markup_percent / HUNDRED)
        return _finish(
            qty=qty,
            purchase_price=purchase_price,
            markup_percent=markup_percent,
            margin_amount=unit_price - purchase_price,
        )
    if isinstance(price_input, ByMargin):
        margin_amount = _non_negative(price_input.amount, 'Margin amount')
        return _finish(
            qty=qty,
            purchase_price=purchase_price,
            markup_percent=markup_from_margin(purchase_price, margin_amount),
            margin_amount=margin_amount,
        )
    raise ValidationError('A new item needs a markup percent or a margin amount')
