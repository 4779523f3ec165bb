from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from offer_portal.db import get_db
from offer_portal.dependencies import get_client_ip, http_error
from offer_portal.models import OfferStatus
from offer_portal.schemas import (
    GroupIn,
    GroupOut,
    GroupPatch,
    ItemIn,
    ItemOut,
    ItemPatch,
    OfferIn,
    OfferOut,
    OfferPatch,
    OfferSummaryOut,
    PageGroupOut,
    PageOut,
)
from offer_portal.services.audit_service import log_audit
from offer_portal.services.document_service import build_offer_document
from offer_portal.services.offer_service import (
    check_offer_consistency,
    create_group,
    create_item,
    create_offer,
    delete_group,
    delete_item,
    delete_offer,
    duplicate_group,
    get_offer_tree,
    list_group_items,
    list_offers,
    update_group,
    update_item,
    update_offer,
)
from offer_portal.services.row_utils import row_to_dict

router = APIRouter(prefix='/api/offers', tags=['offers'])


def _group_out(db: Session, group) -> GroupOut:
    items = [row_to_dict(item) for item in list_group_items(db, group_id=group.id)]
    return GroupOut.model_validate({**row_to_dict(group), 'items': items})


@router.get('', response_model=list[OfferSummaryOut])
def offers_list(status: OfferStatus | None = None, db: Session = Depends(get_db)):
    return list_offers(db, status=status)


@router.post('', response_model=OfferOut, status_code=201)
def offers_create(payload: OfferIn, request: Request, db: Session = Depends(get_db)):
    try:
        offer = create_offer(db, fields=payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_CREATED',
        offer_id=offer.id,
        ip=get_client_ip(request),
        metadata={'offer_number': offer.offer_number},
    )
    db.commit()
    return get_offer_tree(db, offer_id=offer.id)


@router.get('/{offer_id}', response_model=OfferOut)
def offers_detail(offer_id: int, db: Session = Depends(get_db)):
    try:
        return get_offer_tree(db, offer_id=offer_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.patch('/{offer_id}', response_model=OfferOut)
def offers_update(offer_id: int, payload: OfferPatch, request: Request, db: Session = Depends(get_db)):
    changes = payload.changes()
    try:
        update_offer(db, offer_id=offer_id, changes=changes)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_UPDATED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'fields': sorted(changes)},
    )
    db.commit()
    return get_offer_tree(db, offer_id=offer_id)


@router.delete('/{offer_id}', status_code=204)
def offers_delete(offer_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        delete_offer(db, offer_id=offer_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(db, action='OFFER_DELETED', offer_id=offer_id, ip=get_client_ip(request))
    db.commit()
    return Response(status_code=204)


@router.get('/{offer_id}/consistency')
def offers_consistency(offer_id: int, db: Session = Depends(get_db)):
    try:
        report = check_offer_consistency(db, offer_id=offer_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {
        'consistent': not report,
        'groups': {
            str(group_id): {field: {'stored': float(stored), 'expected': float(expected)} for field, (stored, expected) in drift.items()}
            for group_id, drift in report.items()
        },
    }


@router.get('/{offer_id}/pages', response_model=list[PageOut])
def offers_pages(offer_id: int, db: Session = Depends(get_db)):
    try:
        document = build_offer_document(db, offer_id=offer_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return [
        PageOut(
            number=page.number,
            is_last=page.is_last,
            page_net=page.page_net,
            running_net=page.running_net,
            groups=[
                PageGroupOut(
                    id=group.id,
                    index=group.index,
                    title=group.title,
                    is_continuation=group.is_continuation,
                    items=[ItemOut.model_validate(item) for item in group.items],
                )
                for group in page.groups
            ],
        )
        for page in document.pages
    ]


@router.post('/{offer_id}/groups', response_model=GroupOut, status_code=201)
def groups_create(offer_id: int, payload: GroupIn, request: Request, db: Session = Depends(get_db)):
    try:
        group = create_group(db, offer_id=offer_id, title=payload.title)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_GROUP_CREATED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'group_id': group.id, 'index': group.index},
    )
    db.commit()
    return _group_out(db, group)


@router.patch('/{offer_id}/groups/{group_id}', response_model=GroupOut)
def groups_update(offer_id: int, group_id: int, payload: GroupPatch, db: Session = Depends(get_db)):
    try:
        group = update_group(db, offer_id=offer_id, group_id=group_id, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return _group_out(db, group)


@router.delete('/{offer_id}/groups/{group_id}', status_code=204)
def groups_delete(offer_id: int, group_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        delete_group(db, offer_id=offer_id, group_id=group_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_GROUP_DELETED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'group_id': group_id},
    )
    db.commit()
    return Response(status_code=204)


@router.post('/{offer_id}/groups/{group_id}/duplicate', response_model=GroupOut, status_code=201)
def groups_duplicate(offer_id: int, group_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        group = duplicate_group(db, offer_id=offer_id, group_id=group_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_GROUP_DUPLICATED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'source_group_id': group_id, 'group_id': group.id},
    )
    db.commit()
    return _group_out(db, group)


@router.post('/{offer_id}/groups/{group_id}/items', response_model=ItemOut, status_code=201)
def items_create(offer_id: int, group_id: int, payload: ItemIn, request: Request, db: Session = Depends(get_db)):
    try:
        item = create_item(
            db,
            offer_id=offer_id,
            group_id=group_id,
            item_type=payload.type,
            name=payload.name,
            description=payload.description,
            qty=payload.qty,
            unit=payload.unit,
            purchase_price=payload.purchase_price,
            markup_percent=payload.markup_percent,
            margin_amount=payload.margin_amount,
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_ITEM_CREATED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'group_id': group_id, 'item_id': item.id, 'position_index': item.position_index},
    )
    db.commit()
    return item


@router.patch('/{offer_id}/groups/{group_id}/items/{item_id}', response_model=ItemOut)
def items_update(
    offer_id: int,
    group_id: int,
    item_id: int,
    payload: ItemPatch,
    request: Request,
    db: Session = Depends(get_db),
):
    changes = payload.changes()
    if not changes:
        raise HTTPException(status_code=400, detail='Nothing to update')
    try:
        item = update_item(db, offer_id=offer_id, group_id=group_id, item_id=item_id, changes=changes)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_ITEM_UPDATED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'group_id': group_id, 'item_id': item_id, 'fields': sorted(changes)},
    )
    db.commit()
    return item


@router.delete('/{offer_id}/groups/{group_id}/items/{item_id}', status_code=204)
def items_delete(offer_id: int, group_id: int, item_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        delete_item(db, offer_id=offer_id, group_id=group_id, item_id=item_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    log_audit(
        db,
        action='OFFER_ITEM_DELETED',
        offer_id=offer_id,
        ip=get_client_ip(request),
        metadata={'group_id': group_id, 'item_id': item_id},
    )
    db.commit()
    return Response(status_code=204)
