from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from offer_portal.errors import NotFoundError
from offer_portal.models import OfferTemplate, OfferTemplateType
from offer_portal.services.row_utils import apply_changes, reject_nulls

TEMPLATE_FIELDS = {'type', 'name', 'salutation', 'body_html', 'is_default'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _clear_default(db: Session, *, template_type: OfferTemplateType, keep_id: int | None = None) -> None:
    query = (
        update(OfferTemplate)
        .where(OfferTemplate.type == template_type, OfferTemplate.is_default.is_(True))
        .values(is_default=False, updated_at=_now())
        .execution_options(synchronize_session='fetch')
    )
    if keep_id is not None:
        query = query.where(OfferTemplate.id != keep_id)
    db.execute(query)


def list_templates(db: Session, *, template_type: OfferTemplateType | None = None) -> list[OfferTemplate]:
    query = select(OfferTemplate).order_by(OfferTemplate.name.asc(), OfferTemplate.id.asc())
    if template_type is not None:
        query = query.where(OfferTemplate.type == template_type)
    return db.execute(query).scalars().all()


def get_template(db: Session, *, template_id: int) -> OfferTemplate:
    template = db.execute(select(OfferTemplate).where(OfferTemplate.id == template_id)).scalar_one_or_none()
    if not template:
        raise NotFoundError('Template not found')
    return template


def get_default_templates(db: Session) -> dict[OfferTemplateType, OfferTemplate]:
    rows = db.execute(
        select(OfferTemplate).where(OfferTemplate.is_default.is_(True)).order_by(OfferTemplate.id.asc())
    ).scalars().all()
    return {OfferTemplateType(row.type): row for row in rows}


def create_template(db: Session, *, fields: dict) -> OfferTemplate:
    template = OfferTemplate(is_default=False)
    apply_changes(template, fields, allowed=TEMPLATE_FIELDS)
    if template.is_default:
        _clear_default(db, template_type=OfferTemplateType(template.type))
    db.add(template)
    db.flush()
    return template


def update_template(db: Session, *, template_id: int, changes: dict) -> OfferTemplate:
    template = get_template(db, template_id=template_id)
    reject_nulls(changes, required={'name', 'body_html', 'is_default'})
    apply_changes(template, changes, allowed=TEMPLATE_FIELDS - {'type'})
    if changes.get('is_default'):
        _clear_default(db, template_type=OfferTemplateType(template.type), keep_id=template.id)
    template.updated_at = _now()
    db.flush()
    return template


def delete_template(db: Session, *, template_id: int) -> None:
    template = get_template(db, template_id=template_id)
    db.delete(template)
    db.flush()
