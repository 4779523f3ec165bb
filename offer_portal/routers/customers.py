from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from offer_portal.db import get_db
from offer_portal.dependencies import http_error
from offer_portal.schemas import (
    ContactIn,
    ContactOut,
    ContactPatch,
    CustomerIn,
    CustomerOut,
    CustomerPatch,
    ProjectIn,
    ProjectOut,
    ProjectPatch,
)
from offer_portal.services.customer_service import (
    create_contact,
    create_customer,
    create_project,
    customer_to_dict,
    delete_contact,
    delete_customer,
    delete_project,
    get_customer,
    get_project,
    list_contacts,
    list_customers,
    list_projects,
    update_contact,
    update_customer,
    update_project,
)

router = APIRouter(prefix='/api', tags=['customers'])


@router.get('/customers', response_model=list[CustomerOut])
def customers_list(db: Session = Depends(get_db)):
    return list_customers(db)


@router.post('/customers', response_model=CustomerOut, status_code=201)
def customers_create(payload: CustomerIn, db: Session = Depends(get_db)):
    try:
        customer = create_customer(db, fields=payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return customer_to_dict(customer)


@router.get('/customers/{customer_id}', response_model=CustomerOut)
def customers_detail(customer_id: int, db: Session = Depends(get_db)):
    try:
        return customer_to_dict(get_customer(db, customer_id=customer_id))
    except ValueError as exc:
        raise http_error(exc) from exc


@router.patch('/customers/{customer_id}', response_model=CustomerOut)
def customers_update(customer_id: int, payload: CustomerPatch, db: Session = Depends(get_db)):
    try:
        customer = update_customer(db, customer_id=customer_id, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return customer_to_dict(customer)


@router.delete('/customers/{customer_id}', status_code=204)
def customers_delete(customer_id: int, db: Session = Depends(get_db)):
    try:
        delete_customer(db, customer_id=customer_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return Response(status_code=204)


@router.get('/customers/{customer_id}/projects', response_model=list[ProjectOut])
def customer_projects(customer_id: int, db: Session = Depends(get_db)):
    try:
        return list_projects(db, customer_id=customer_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.get('/customers/{customer_id}/contacts', response_model=list[ContactOut])
def customer_contacts(customer_id: int, db: Session = Depends(get_db)):
    try:
        return list_contacts(db, customer_id=customer_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('/customers/{customer_id}/contacts', response_model=ContactOut, status_code=201)
def customer_contacts_create(customer_id: int, payload: ContactIn, db: Session = Depends(get_db)):
    try:
        contact = create_contact(db, customer_id=customer_id, fields=payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return contact


@router.patch('/customers/{customer_id}/contacts/{contact_id}', response_model=ContactOut)
def customer_contacts_update(customer_id: int, contact_id: int, payload: ContactPatch, db: Session = Depends(get_db)):
    try:
        contact = update_contact(db, customer_id=customer_id, contact_id=contact_id, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return contact


@router.delete('/customers/{customer_id}/contacts/{contact_id}', status_code=204)
def customer_contacts_delete(customer_id: int, contact_id: int, db: Session = Depends(get_db)):
    try:
        delete_contact(db, customer_id=customer_id, contact_id=contact_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return Response(status_code=204)


@router.get('/projects', response_model=list[ProjectOut])
def projects_list(db: Session = Depends(get_db)):
    return list_projects(db)


@router.post('/projects', response_model=ProjectOut, status_code=201)
def projects_create(payload: ProjectIn, db: Session = Depends(get_db)):
    fields = payload.model_dump(exclude={'customer_id'})
    try:
        project = create_project(db, customer_id=payload.customer_id, fields=fields)
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return project


@router.get('/projects/{project_id}', response_model=ProjectOut)
def projects_detail(project_id: int, db: Session = Depends(get_db)):
    try:
        return get_project(db, project_id=project_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.patch('/projects/{project_id}', response_model=ProjectOut)
def projects_update(project_id: int, payload: ProjectPatch, db: Session = Depends(get_db)):
    try:
        project = update_project(db, project_id=project_id, changes=payload.changes())
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return project


@router.delete('/projects/{project_id}', status_code=204)
def projects_delete(project_id: int, db: Session = Depends(get_db)):
    try:
        delete_project(db, project_id=project_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    db.commit()
    return Response(status_code=204)
