from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from offer_portal.models import CompanyProfile, FooterMode
from offer_portal.services.row_utils import apply_changes, reject_nulls

WS_RE = re.compile(r'\s+')

PROFILE_FIELDS = {
    'sender_line_enabled',
    'footer_enabled',
    'footer_mode',
    'footer_custom_html',
    'company_name',
    'street',
    'house_number',
    'address_extra',
    'postal_code',
    'city',
    'tax_number',
    'vat_id',
    'bank_account_holder',
    'bank_name',
    'iban',
    'bic',
    'website',
    'email',
    'phone',
    'mobile',
    'legal_form',
    'owner_name',
    'register_court',
    'register_number',
}
REQUIRED_PROFILE_FIELDS = {'sender_line_enabled', 'footer_enabled', 'footer_mode'}


@dataclass(frozen=True)
class DocumentFooter:
    custom_html: str | None = None
    address: list[str] = field(default_factory=list)
    bank: list[str] = field(default_factory=list)
    contact: list[str] = field(default_factory=list)
    legal: list[str] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _joined(*parts: str | None) -> str:
    return WS_RE.sub(' ', ' '.join(part or '' for part in parts)).strip()


def _present(*values: str | None) -> list[str]:
    return [value.strip() for value in values if value and value.strip()]


def load_company_profile(db: Session) -> CompanyProfile | None:
    return db.execute(select(CompanyProfile).where(CompanyProfile.id == 1)).scalar_one_or_none()


def get_or_create_company_profile(db: Session) -> CompanyProfile:
    row = db.execute(select(CompanyProfile).where(CompanyProfile.id == 1).with_for_update()).scalar_one_or_none()
    if row:
        return row

    row = CompanyProfile(id=1, sender_line_enabled=True, footer_enabled=True, footer_mode=FooterMode.STANDARD)
    db.add(row)
    db.flush()
    return row


def update_company_profile(db: Session, *, changes: dict) -> CompanyProfile:
    reject_nulls(changes, required=REQUIRED_PROFILE_FIELDS)
    row = get_or_create_company_profile(db)
    apply_changes(row, changes, allowed=PROFILE_FIELDS)
    row.updated_at = _now()
    db.flush()
    return row


def sender_line(profile: CompanyProfile | None) -> str | None:
    """Single-line return address printed above the recipient block."""
    if profile is None or not profile.sender_line_enabled:
        return None
    parts = _present(
        profile.company_name,
        _joined(profile.street, profile.house_number),
        _joined(profile.postal_code, profile.city),
    )
    return ' · '.join(parts) or None


def document_footer(profile: CompanyProfile | None) -> DocumentFooter | None:
    if profile is None or not profile.footer_enabled:
        return None
    if FooterMode(profile.footer_mode) == FooterMode.CUSTOM and profile.footer_custom_html:
        return DocumentFooter(custom_html=profile.footer_custom_html)

    legal = _present(profile.legal_form, profile.owner_name, profile.register_court, profile.register_number)
    if profile.tax_number:
        legal.append(f'Tax no. {profile.tax_number}')
    if profile.vat_id:
        legal.append(f'VAT ID {profile.vat_id}')

    return DocumentFooter(
        address=_present(
            profile.company_name,
            _joined(profile.street, profile.house_number),
            profile.address_extra,
            _joined(profile.postal_code, profile.city),
        ),
        bank=_present(profile.bank_account_holder, profile.bank_name, profile.iban, profile.bic),
        contact=_present(profile.website, profile.email, profile.phone, profile.mobile),
        legal=legal,
    )
