from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Protocol

from offer_portal.models import OfferItemType

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')


class PricedItem(Protocol):
    type: OfferItemType
    purchase_price: Decimal
    margin_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class GroupTotals:
    material_cost: Decimal = ZERO
    labor_cost: Decimal = ZERO
    other_cost: Decimal = ZERO
    material_margin: Decimal = ZERO
    labor_margin: Decimal = ZERO
    other_margin: Decimal = ZERO
    total_net: Decimal = ZERO

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class OfferTotals:
    total_net: Decimal
    total_tax: Decimal
    total_gross: Decimal


GROUP_TOTAL_FIELDS = tuple(GroupTotals.__dataclass_fields__)


def _item_type(item: PricedItem) -> OfferItemType:
    return OfferItemType(item.type.value if hasattr(item.type, 'value') else item.type)


def recompute_group_totals(items: Iterable[PricedItem]) -> GroupTotals:
    buckets = {
        OfferItemType.MATERIAL: [ZERO, ZERO],
        OfferItemType.LABOR: [ZERO, ZERO],
        OfferItemType.OTHER: [ZERO, ZERO],
    }
    total_net = ZERO
    for item in items:
        bucket = buckets[_item_type(item)]
        bucket[0] += Decimal(item.purchase_price)
        bucket[1] += Decimal(item.margin_amount)
        total_net += Decimal(item.line_total)

    return GroupTotals(
        material_cost=buckets[OfferItemType.MATERIAL][0],
        labor_cost=buckets[OfferItemType.LABOR][0],
        other_cost=buckets[OfferItemType.OTHER][0],
        material_margin=buckets[OfferItemType.MATERIAL][1],
        labor_margin=buckets[OfferItemType.LABOR][1],
        other_margin=buckets[OfferItemType.OTHER][1],
        total_net=total_net,
    )


def apply_group_totals(group, totals: GroupTotals) -> None:
    for field, value in totals.as_dict().items():
        setattr(group, field, value)


def recompute_offer_totals(group_net_totals: Iterable[Decimal], tax_rate: Decimal) -> OfferTotals:
    total_net = sum((Decimal(value) for value in group_net_totals), ZERO)
    total_tax = total_net * Decimal(tax_rate) / HUNDRED
    return OfferTotals(total_net=total_net, total_tax=total_tax, total_gross=total_net + total_tax)


def find_group_drift(group, items: Iterable[PricedItem], *, tolerance: Decimal = Decimal('0.0001')) -> dict[str, tuple]:
    """Compare a group's stored aggregates with a fresh fold over its items.

    Returns ``{field: (stored, expected)}`` for every aggregate that is off by
    more than ``tolerance``; an empty dict means the cache is consistent.
    """
    expected = recompute_group_totals(items).as_dict()
    drift = {}
    for field in GROUP_TOTAL_FIELDS:
        stored = Decimal(getattr(group, field) or 0)
        if abs(stored - expected[field]) > tolerance:
            drift[field] = (stored, expected[field])
    if drift:
        logger.warning('Group %s aggregates drifted from item sums: %s', getattr(group, 'id', None), sorted(drift))
    return drift
