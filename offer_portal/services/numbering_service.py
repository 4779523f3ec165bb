from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from offer_portal.config import settings
from offer_portal.errors import ValidationError
from offer_portal.models import OfferGroup, OfferItem, OfferNumberSetting


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_item_subindex(position_index: str | None) -> int | None:
    """Return the number after the first dot of ``"<group>.<item>"``, or None."""
    _, dot, tail = (position_index or '').partition('.')
    if not dot:
        return None
    try:
        return int(tail.strip())
    except ValueError:
        return None


def next_position_from(group_index: int, existing_positions: Iterable[str]) -> str:
    subindexes = [value for value in (parse_item_subindex(pos) for pos in existing_positions) if value is not None]
    highest = max(subindexes, default=0)
    return f'{group_index}.{highest + 1}'


def next_group_index(db: Session, *, offer_id: int) -> int:
    highest = db.execute(select(func.max(OfferGroup.index)).where(OfferGroup.offer_id == offer_id)).scalar_one_or_none()
    return (highest or 0) + 1


def next_item_position(db: Session, *, group_id: int, group_index: int) -> str:
    # Compared numerically so that 1.10 sorts after 1.9.
    positions = db.execute(select(OfferItem.position_index).where(OfferItem.group_id == group_id)).scalars().all()
    return next_position_from(group_index, positions)


def get_or_create_offer_number_settings(db: Session) -> OfferNumberSetting:
    row = db.execute(select(OfferNumberSetting).where(OfferNumberSetting.id == 1).with_for_update()).scalar_one_or_none()
    if row:
        return row

    row = OfferNumberSetting(
        id=1,
        offer_prefix=settings.offer_number_prefix,
        offer_next_number=settings.offer_number_start,
    )
    db.add(row)
    db.flush()
    return row


def update_offer_number_settings(db: Session, *, offer_prefix: str | None, offer_next_number: int | None) -> OfferNumberSetting:
    row = get_or_create_offer_number_settings(db)
    if offer_prefix is not None:
        row.offer_prefix = offer_prefix.strip()
    if offer_next_number is not None:
        if offer_next_number < 1:
            raise ValidationError('Next offer number must be at least 1')
        row.offer_next_number = offer_next_number
    row.updated_at = _now()
    db.flush()
    return row


def allocate_offer_number(db: Session) -> str:
    row = get_or_create_offer_number_settings(db)
    number = f'{(row.offer_prefix or "").strip()}{row.offer_next_number}'
    row.offer_next_number += 1
    row.updated_at = _now()
    db.flush()
    return number
