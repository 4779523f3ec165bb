from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from offer_portal.db import get_db
from offer_portal.dependencies import get_templates, http_error
from offer_portal.services.document_service import build_offer_document

router = APIRouter(prefix='/offers', tags=['documents'])


@router.get('/{offer_id}/document')
def offer_document(
    offer_id: int,
    request: Request,
    db: Session = Depends(get_db),
    templates: Jinja2Templates = Depends(get_templates),
):
    try:
        document = build_offer_document(db, offer_id=offer_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return templates.TemplateResponse(
        request,
        'offer_document.html',
        {
            'offer': document.offer,
            'recipient_lines': document.recipient_lines,
            'project_title': document.project_title,
            'execution_location': document.execution_location,
            'pages': document.pages,
            'page_count': len(document.pages),
            'totals': document.totals,
            'sender_line': document.sender_line,
            'footer': document.footer,
        },
    )
