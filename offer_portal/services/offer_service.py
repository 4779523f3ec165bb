from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from offer_portal.config import settings
from offer_portal.errors import NotFoundError, ValidationError
from offer_portal.models import (
    Customer,
    Offer,
    OfferGroup,
    OfferItem,
    OfferItemType,
    OfferStatus,
    OfferTemplateType,
    Project,
)
from offer_portal.services.aggregation_service import (
    GroupTotals,
    apply_group_totals,
    find_group_drift,
    recompute_group_totals,
    recompute_offer_totals,
)
from offer_portal.services.customer_service import customer_display_name
from offer_portal.services.numbering_service import allocate_offer_number, next_group_index, next_item_position
from offer_portal.services.pricing_service import (
    PricingPatch,
    StoredPricing,
    compute_item_pricing,
    compute_new_item_pricing,
    price_input_from_fields,
)
from offer_portal.services.row_utils import apply_changes, reject_nulls, row_to_dict
from offer_portal.services.template_service import get_default_templates

OFFER_FIELDS = {
    'title',
    'customer_id',
    'project_id',
    'offer_date',
    'status',
    'intro_salutation',
    'intro_body_html',
    'outro_body_html',
    'payment_due_days',
    'discount_percent',
    'discount_days',
    'tax_rate',
    'show_vat_for_labor',
}
REQUIRED_OFFER_FIELDS = {'title', 'offer_date', 'status', 'payment_due_days', 'tax_rate', 'show_vat_for_labor'}
ITEM_TEXT_FIELDS = {'type', 'name', 'description', 'unit'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _blank(value: str | None) -> bool:
    return not (value or '').strip()


def get_offer(db: Session, *, offer_id: int, lock: bool = False) -> Offer:
    query = select(Offer).where(Offer.id == offer_id)
    if lock:
        query = query.with_for_update()
    offer = db.execute(query).scalar_one_or_none()
    if not offer:
        raise NotFoundError('Offer not found')
    return offer


def get_group(db: Session, *, offer_id: int, group_id: int, lock: bool = False) -> OfferGroup:
    query = select(OfferGroup).where(OfferGroup.id == group_id, OfferGroup.offer_id == offer_id)
    if lock:
        query = query.with_for_update()
    group = db.execute(query).scalar_one_or_none()
    if not group:
        raise NotFoundError('Group not found')
    return group


def get_item(db: Session, *, group_id: int, item_id: int) -> OfferItem:
    item = db.execute(
        select(OfferItem).where(OfferItem.id == item_id, OfferItem.group_id == group_id)
    ).scalar_one_or_none()
    if not item:
        raise NotFoundError('Item not found')
    return item


def list_group_items(db: Session, *, group_id: int) -> list[OfferItem]:
    return db.execute(select(OfferItem).where(OfferItem.group_id == group_id).order_by(OfferItem.id.asc())).scalars().all()


def _lock_for_item_mutation(db: Session, *, offer_id: int, group_id: int) -> tuple[Offer, OfferGroup]:
    # Offer row first, then group row: every mutation of an offer's items is serialized.
    offer = get_offer(db, offer_id=offer_id, lock=True)
    group = get_group(db, offer_id=offer_id, group_id=group_id, lock=True)
    return offer, group


def _check_references(db: Session, *, customer_id: int | None, project_id: int | None) -> None:
    if customer_id is not None:
        exists = db.execute(select(Customer.id).where(Customer.id == customer_id)).scalar_one_or_none()
        if not exists:
            raise NotFoundError('Customer not found')
    if project_id is not None:
        project = db.execute(select(Project).where(Project.id == project_id)).scalar_one_or_none()
        if not project:
            raise NotFoundError('Project not found')
        if customer_id is not None and project.customer_id != customer_id:
            raise ValidationError('Project belongs to a different customer')


def refresh_group_totals(db: Session, *, group: OfferGroup) -> GroupTotals:
    """Re-read every item of the group and replace its cached aggregates."""
    db.flush()
    totals = recompute_group_totals(list_group_items(db, group_id=group.id))
    apply_group_totals(group, totals)
    group.updated_at = _now()
    db.flush()
    return totals


def refresh_offer_totals(db: Session, *, offer: Offer) -> None:
    db.flush()
    group_nets = db.execute(select(OfferGroup.total_net).where(OfferGroup.offer_id == offer.id)).scalars().all()
    totals = recompute_offer_totals(group_nets, offer.tax_rate)
    offer.total_net = totals.total_net
    offer.total_tax = totals.total_tax
    offer.total_gross = totals.total_gross
    offer.updated_at = _now()
    db.flush()


def check_offer_consistency(db: Session, *, offer_id: int) -> dict[int, dict]:
    get_offer(db, offer_id=offer_id)
    groups = db.execute(select(OfferGroup).where(OfferGroup.offer_id == offer_id)).scalars().all()
    report = {}
    for group in groups:
        drift = find_group_drift(group, list_group_items(db, group_id=group.id))
        if drift:
            report[group.id] = drift
    return report


def list_offers(db: Session, *, status: OfferStatus | None = None) -> list[dict]:
    query = (
        select(Offer, Customer, Project.title)
        .outerjoin(Customer, Customer.id == Offer.customer_id)
        .outerjoin(Project, Project.id == Offer.project_id)
        .order_by(Offer.created_at.desc(), Offer.id.desc())
    )
    if status is not None:
        query = query.where(Offer.status == status)
    rows = db.execute(query).all()
    return [
        {
            **row_to_dict(offer),
            'customer_name': customer_display_name(customer) if customer else None,
            'project_title': project_title,
        }
        for offer, customer, project_title in rows
    ]


def load_groups_with_items(db: Session, *, offer_id: int) -> list[dict]:
    groups = db.execute(
        select(OfferGroup).where(OfferGroup.offer_id == offer_id).order_by(OfferGroup.index.asc())
    ).scalars().all()
    items_by_group: dict[int, list[dict]] = {group.id: [] for group in groups}
    if groups:
        items = db.execute(
            select(OfferItem).where(OfferItem.group_id.in_(list(items_by_group))).order_by(OfferItem.id.asc())
        ).scalars().all()
        for item in items:
            items_by_group[item.group_id].append(row_to_dict(item))
    return [{**row_to_dict(group), 'items': items_by_group[group.id]} for group in groups]


def get_offer_tree(db: Session, *, offer_id: int) -> dict:
    offer = get_offer(db, offer_id=offer_id)
    return {**row_to_dict(offer), 'groups': load_groups_with_items(db, offer_id=offer.id)}


def create_offer(db: Session, *, fields: dict) -> Offer:
    fields = {key: value for key, value in fields.items() if value is not None}
    _check_references(db, customer_id=fields.get('customer_id'), project_id=fields.get('project_id'))

    offer = Offer(
        title=settings.offer_default_title,
        status=OfferStatus.DRAFT,
        payment_due_days=settings.offer_default_payment_due_days,
        tax_rate=settings.offer_default_tax_rate,
        show_vat_for_labor=False,
        total_net=Decimal('0'),
        total_tax=Decimal('0'),
        total_gross=Decimal('0'),
    )
    apply_changes(offer, fields, allowed=OFFER_FIELDS - {'status'})
    offer.offer_number = allocate_offer_number(db)

    defaults = get_default_templates(db)
    intro = defaults.get(OfferTemplateType.INTRO)
    outro = defaults.get(OfferTemplateType.OUTRO)
    if intro is not None:
        if _blank(offer.intro_salutation) and intro.salutation:
            offer.intro_salutation = intro.salutation
        if _blank(offer.intro_body_html) and intro.body_html:
            offer.intro_body_html = intro.body_html
    if outro is not None and _blank(offer.outro_body_html) and outro.body_html:
        offer.outro_body_html = outro.body_html

    db.add(offer)
    db.flush()
    db.add(OfferGroup(offer_id=offer.id, index=1, title=settings.offer_first_group_title))
    db.flush()
    return offer


def update_offer(db: Session, *, offer_id: int, changes: dict) -> Offer:
    offer = get_offer(db, offer_id=offer_id, lock=True)
    if 'title' in changes and _blank(changes['title']):
        raise ValidationError('Offer title is required')
    reject_nulls(changes, required=REQUIRED_OFFER_FIELDS)
    customer_id = changes.get('customer_id', offer.customer_id)
    project_id = changes.get('project_id', offer.project_id)
    if 'customer_id' in changes or 'project_id' in changes:
        _check_references(db, customer_id=customer_id, project_id=project_id)

    touched = apply_changes(offer, changes, allowed=OFFER_FIELDS)
    offer.updated_at = _now()
    db.flush()
    if 'tax_rate' in touched:
        refresh_offer_totals(db, offer=offer)
    return offer


def delete_offer(db: Session, *, offer_id: int) -> None:
    offer = get_offer(db, offer_id=offer_id, lock=True)
    group_ids = select(OfferGroup.id).where(OfferGroup.offer_id == offer.id)
    db.execute(delete(OfferItem).where(OfferItem.group_id.in_(group_ids)))
    db.execute(delete(OfferGroup).where(OfferGroup.offer_id == offer.id))
    db.delete(offer)
    db.flush()


def create_group(db: Session, *, offer_id: int, title: str) -> OfferGroup:
    offer = get_offer(db, offer_id=offer_id, lock=True)
    if _blank(title):
        raise ValidationError('Group title is required')
    group = OfferGroup(
        offer_id=offer.id,
        index=next_group_index(db, offer_id=offer.id),
        title=title.strip(),
    )
    apply_group_totals(group, GroupTotals())
    db.add(group)
    db.flush()
    return group


def update_group(db: Session, *, offer_id: int, group_id: int, changes: dict) -> OfferGroup:
    group = get_group(db, offer_id=offer_id, group_id=group_id)
    if 'title' in changes:
        if _blank(changes['title']):
            raise ValidationError('Group title is required')
        group.title = changes['title'].strip()
    group.updated_at = _now()
    db.flush()
    return group


def delete_group(db: Session, *, offer_id: int, group_id: int) -> None:
    offer, group = _lock_for_item_mutation(db, offer_id=offer_id, group_id=group_id)
    db.execute(delete(OfferItem).where(OfferItem.group_id == group.id))
    db.delete(group)
    refresh_offer_totals(db, offer=offer)


def duplicate_group(db: Session, *, offer_id: int, group_id: int) -> OfferGroup:
    offer, source = _lock_for_item_mutation(db, offer_id=offer_id, group_id=group_id)
    copy = OfferGroup(offer_id=offer.id, index=next_group_index(db, offer_id=offer.id), title=source.title)
    apply_group_totals(copy, GroupTotals())
    db.add(copy)
    db.flush()

    for position, item in enumerate(list_group_items(db, group_id=source.id), start=1):
        db.add(
            OfferItem(
                group_id=copy.id,
                type=item.type,
                position_index=f'{copy.index}.{position}',
                name=item.name,
                description=item.description,
                qty=item.qty,
                unit=item.unit,
                purchase_price=item.purchase_price,
                markup_percent=item.markup_percent,
                margin_amount=item.margin_amount,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
        )
    refresh_group_totals(db, group=copy)
    refresh_offer_totals(db, offer=offer)
    return copy


def create_item(
    db: Session,
    *,
    offer_id: int,
    group_id: int,
    item_type: OfferItemType,
    name: str,
    description: str | None,
    qty: Decimal,
    unit: str,
    purchase_price: Decimal,
    markup_percent: Decimal | None = None,
    margin_amount: Decimal | None = None,
) -> OfferItem:
    offer, group = _lock_for_item_mutation(db, offer_id=offer_id, group_id=group_id)
    if _blank(name):
        raise ValidationError('Item name is required')

    pricing = compute_new_item_pricing(
        qty=qty,
        purchase_price=purchase_price,
        price_input=price_input_from_fields(markup_percent=markup_percent, margin_amount=margin_amount),
    )
    item = OfferItem(
        group_id=group.id,
        type=item_type,
        position_index=next_item_position(db, group_id=group.id, group_index=group.index),
        name=name.strip(),
        description=description,
        unit=unit,
        qty=pricing.qty,
        purchase_price=pricing.purchase_price,
        markup_percent=pricing.markup_percent,
        margin_amount=pricing.margin_amount,
        unit_price=pricing.unit_price,
        line_total=pricing.line_total,
    )
    db.add(item)
    refresh_group_totals(db, group=group)
    refresh_offer_totals(db, offer=offer)
    return item


def update_item(db: Session, *, offer_id: int, group_id: int, item_id: int, changes: dict) -> OfferItem:
    offer, group = _lock_for_item_mutation(db, offer_id=offer_id, group_id=group_id)
    item = get_item(db, group_id=group.id, item_id=item_id)
    if 'name' in changes and _blank(changes['name']):
        raise ValidationError('Item name is required')

    pricing = compute_item_pricing(
        StoredPricing(
            qty=item.qty,
            purchase_price=item.purchase_price,
            markup_percent=item.markup_percent,
            margin_amount=item.margin_amount,
        ),
        PricingPatch(
            qty=changes.get('qty'),
            purchase_price=changes.get('purchase_price'),
            price_input=price_input_from_fields(
                markup_percent=changes.get('markup_percent'),
                margin_amount=changes.get('margin_amount'),
            ),
        ),
    )
    apply_changes(item, {key: value for key, value in changes.items() if value is not None}, allowed=ITEM_TEXT_FIELDS)
    if 'description' in changes:
        item.description = changes['description']
    item.qty = pricing.qty
    item.purchase_price = pricing.purchase_price
    item.markup_percent = pricing.markup_percent
    item.margin_amount = pricing.margin_amount
    item.unit_price = pricing.unit_price
    item.line_total = pricing.line_total
    item.updated_at = _now()

    refresh_group_totals(db, group=group)
    refresh_offer_totals(db, offer=offer)
    return item


def delete_item(db: Session, *, offer_id: int, group_id: int, item_id: int) -> None:
    offer, group = _lock_for_item_mutation(db, offer_id=offer_id, group_id=group_id)
    item = get_item(db, group_id=group.id, item_id=item_id)
    db.delete(item)
    refresh_group_totals(db, group=group)
    refresh_offer_totals(db, offer=offer)
