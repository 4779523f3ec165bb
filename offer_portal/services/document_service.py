from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from offer_portal.config import settings
from offer_portal.models import Customer, CustomerType, OfferItemType, Project
from offer_portal.services.company_profile_service import (
    DocumentFooter,
    document_footer,
    load_company_profile,
    sender_line,
)
from offer_portal.services.customer_service import customer_display_name, project_address_line
from offer_portal.services.offer_service import get_offer_tree
from offer_portal.services.pagination_service import PageView, build_page_views, paginate

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')
ZERO = Decimal('0')


@dataclass(frozen=True)
class DocumentTotals:
    net: Decimal
    tax_rate: Decimal
    tax: Decimal
    gross: Decimal
    discount_percent: Decimal | None = None
    discount_days: int | None = None
    discount_amount: Decimal | None = None
    discounted_gross: Decimal | None = None
    labor_net: Decimal | None = None
    labor_tax: Decimal | None = None


@dataclass(frozen=True)
class OfferDocument:
    offer: dict
    recipient_lines: list[str]
    project_title: str | None
    execution_location: str | None
    pages: list[PageView]
    totals: DocumentTotals
    sender_line: str | None = None
    footer: DocumentFooter | None = None


def recipient_lines(customer: Customer | None) -> list[str]:
    if customer is None:
        return []
    lines = []
    name = customer_display_name(customer)
    if name:
        lines.append(name)
    if CustomerType(customer.type) == CustomerType.COMPANY and customer.last_name:
        contact = ' '.join(part for part in (customer.salutation, customer.first_name, customer.last_name) if part)
        lines.append(contact)
    if customer.billing_address_extra:
        lines.append(customer.billing_address_extra)
    lines.append(f'{customer.billing_street} {customer.billing_house_number}'.strip())
    lines.append(f'{customer.billing_postal_code} {customer.billing_city}'.strip())
    return lines


def compute_document_totals(offer: dict, groups: list[dict]) -> DocumentTotals:
    """Totals block of the terminal page, summed live from the items."""
    net = ZERO
    labor_net = ZERO
    for group in groups:
        for item in group['items']:
            line_total = Decimal(item['line_total'] or 0)
            net += line_total
            if OfferItemType(item['type']) == OfferItemType.LABOR:
                labor_net += line_total

    tax_rate = Decimal(offer['tax_rate'] if offer['tax_rate'] is not None else settings.offer_default_tax_rate)
    tax = net * tax_rate / HUNDRED
    gross = net + tax
    totals = {'net': net, 'tax_rate': tax_rate, 'tax': tax, 'gross': gross}

    discount_percent = offer.get('discount_percent')
    discount_days = offer.get('discount_days')
    if discount_percent and discount_days:
        discount_amount = gross * Decimal(discount_percent) / HUNDRED
        totals.update(
            discount_percent=Decimal(discount_percent),
            discount_days=discount_days,
            discount_amount=discount_amount,
            discounted_gross=gross - discount_amount,
        )

    if offer.get('show_vat_for_labor'):
        totals.update(labor_net=labor_net, labor_tax=labor_net * tax_rate / HUNDRED)

    stored_net = offer.get('total_net')
    if stored_net is not None and abs(Decimal(stored_net) - net) > Decimal('0.0001'):
        logger.warning('Offer %s stored net total %s differs from item sum %s', offer.get('id'), stored_net, net)

    return DocumentTotals(**totals)


def build_offer_document(db: Session, *, offer_id: int) -> OfferDocument:
    offer = get_offer_tree(db, offer_id=offer_id)
    groups = offer['groups']

    customer = None
    if offer['customer_id'] is not None:
        customer = db.execute(select(Customer).where(Customer.id == offer['customer_id'])).scalar_one_or_none()
    project = None
    if offer['project_id'] is not None:
        project = db.execute(select(Project).where(Project.id == offer['project_id'])).scalar_one_or_none()

    profile = load_company_profile(db)

    pages = paginate(
        groups,
        first_page_slots=settings.document_first_page_slots,
        other_page_slots=settings.document_other_page_slots,
    )
    return OfferDocument(
        offer=offer,
        recipient_lines=recipient_lines(customer),
        project_title=project.title if project else None,
        execution_location=project_address_line(project) if project else None,
        pages=build_page_views(pages),
        totals=compute_document_totals(offer, groups),
        sender_line=sender_line(profile),
        footer=document_footer(profile),
    )
