from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from offer_portal.db import get_db
from offer_portal.dependencies import http_error
from offer_portal.models import OfferTemplateType
from offer_portal.schemas import (
    CompanyProfileOut,
    CompanyProfilePatch,
    OfferNumberSettingsIn,
    OfferNumberSettingsOut,
    OfferTemplateIn,
    OfferTemplateOut,
    OfferTemplatePatch,
)
from offer_portal.services.company_profile_service import get_or_create_company_profile, update_company_profile
from offer_portal.services.numbering_service import get_or_create_offer_number_settings, update_offer_number_settings
from offer_portal.services.template_service import create_template, delete_template, list_templates, update_template

router = APIRouter(prefix='/api', tags=['settings'])


@router.get('/offer-templates', response_model=list[OfferTemplateOut])
def templates_list(type: OfferTemplateType | None = None, db: Session = Depends(get_db)):
    return list_templates(db, template_type=type)


@router.post('/offer-templates', response_model=OfferTemplateOut, status_code=201)
def templates_create(payload: OfferTemplateIn, db: Session = Depends(get_db)):
    template = create_template(db, fields=payload.model_dump())
    db.commit()
    return template


@router.patch('/offer-templates/{template_id}', response_model=OfferTemplateOut)
def templates_update(template_id: int, payload: OfferTemplatePatch, db: Session = Depends(get_db)):
    try:
        template = update_template(db, template_id=template_id, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return template


@router.delete('/offer-templates/{template_id}', status_code=204)
def templates_delete(template_id: int, db: Session = Depends(get_db)):
    try:
        delete_template(db, template_id=template_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return Response(status_code=204)


@router.get('/settings/offer-numbers', response_model=OfferNumberSettingsOut)
def offer_numbers_detail(db: Session = Depends(get_db)):
    row = get_or_create_offer_number_settings(db)
    db.commit()
    return row


@router.put('/settings/offer-numbers', response_model=OfferNumberSettingsOut)
def offer_numbers_update(payload: OfferNumberSettingsIn, db: Session = Depends(get_db)):
    try:
        row = update_offer_number_settings(
            db,
            offer_prefix=payload.offer_prefix,
            offer_next_number=payload.offer_next_number,
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return row


@router.get('/settings/company-profile', response_model=CompanyProfileOut)
def company_profile_detail(db: Session = Depends(get_db)):
    row = get_or_create_company_profile(db)
    db.commit()
    return row


@router.patch('/settings/company-profile', response_model=CompanyProfileOut)
def company_profile_update(payload: CompanyProfilePatch, db: Session = Depends(get_db)):
    try:
        row = update_company_profile(db, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return row
