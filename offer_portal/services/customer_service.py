from __future__ import annotations

import re
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from offer_portal.errors import NotFoundError, ValidationError
from offer_portal.models import Customer, CustomerContact, CustomerType, Offer, Project
from offer_portal.services.row_utils import apply_changes, reject_nulls, row_to_dict

WS_RE = re.compile(r'\s+')

CUSTOMER_FIELDS = {
    'type',
    'company_name',
    'salutation',
    'first_name',
    'last_name',
    'customer_number',
    'vat_id',
    'billing_street',
    'billing_house_number',
    'billing_address_extra',
    'billing_postal_code',
    'billing_city',
}
REQUIRED_CUSTOMER_FIELDS = {'type', 'billing_street', 'billing_house_number', 'billing_postal_code', 'billing_city'}
PROJECT_FIELDS = {
    'title',
    'project_number',
    'received_at',
    'description',
    'status',
    'street',
    'house_number',
    'address_extra',
    'postal_code',
    'city',
}
REQUIRED_PROJECT_FIELDS = {'title', 'received_at', 'status'}
CONTACT_FIELDS = {'contact_name', 'phone_landline', 'phone_mobile', 'email'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def customer_display_name(customer) -> str:
    customer_type = CustomerType(customer.type)
    if customer_type == CustomerType.COMPANY:
        return (customer.company_name or '').strip()
    parts = [customer.salutation, customer.first_name, customer.last_name]
    return WS_RE.sub(' ', ' '.join(part or '' for part in parts)).strip()


def _validate_customer(customer: Customer) -> None:
    if CustomerType(customer.type) == CustomerType.COMPANY and not (customer.company_name or '').strip():
        raise ValidationError('Company customers need a company name')
    if CustomerType(customer.type) == CustomerType.PRIVATE and not (customer.last_name or '').strip():
        raise ValidationError('Private customers need a last name')


def customer_to_dict(customer: Customer) -> dict:
    data = row_to_dict(customer)
    data['display_name'] = customer_display_name(customer)
    return data


def get_customer(db: Session, *, customer_id: int) -> Customer:
    customer = db.execute(select(Customer).where(Customer.id == customer_id)).scalar_one_or_none()
    if not customer:
        raise NotFoundError('Customer not found')
    return customer


def list_customers(db: Session) -> list[dict]:
    customers = db.execute(select(Customer)).scalars().all()
    rows = [customer_to_dict(customer) for customer in customers]
    return sorted(rows, key=lambda row: (row['display_name'].lower(), row['id']))


def create_customer(db: Session, *, fields: dict) -> Customer:
    customer = Customer()
    apply_changes(customer, fields, allowed=CUSTOMER_FIELDS)
    _validate_customer(customer)
    db.add(customer)
    db.flush()
    return customer


def update_customer(db: Session, *, customer_id: int, changes: dict) -> Customer:
    customer = get_customer(db, customer_id=customer_id)
    reject_nulls(changes, required=REQUIRED_CUSTOMER_FIELDS)
    apply_changes(customer, changes, allowed=CUSTOMER_FIELDS)
    _validate_customer(customer)
    customer.updated_at = _now()
    db.flush()
    return customer


def delete_customer(db: Session, *, customer_id: int) -> None:
    customer = get_customer(db, customer_id=customer_id)
    project_ids = db.execute(select(Project.id).where(Project.customer_id == customer.id)).scalars().all()
    db.execute(update(Offer).where(Offer.customer_id == customer.id).values(customer_id=None))
    if project_ids:
        db.execute(update(Offer).where(Offer.project_id.in_(project_ids)).values(project_id=None))
        for project in db.execute(select(Project).where(Project.id.in_(project_ids))).scalars():
            db.delete(project)
    db.execute(delete(CustomerContact).where(CustomerContact.customer_id == customer.id))
    db.delete(customer)
    db.flush()


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


def list_contacts(db: Session, *, customer_id: int) -> list[CustomerContact]:
    get_customer(db, customer_id=customer_id)
    return db.execute(
        select(CustomerContact)
        .where(CustomerContact.customer_id == customer_id)
        .order_by(CustomerContact.created_at.desc(), CustomerContact.id.desc())
    ).scalars().all()


def get_contact(db: Session, *, customer_id: int, contact_id: int) -> CustomerContact:
    contact = db.execute(
        select(CustomerContact).where(CustomerContact.id == contact_id, CustomerContact.customer_id == customer_id)
    ).scalar_one_or_none()
    if not contact:
        raise NotFoundError('Contact not found')
    return contact


def create_contact(db: Session, *, customer_id: int, fields: dict) -> CustomerContact:
    get_customer(db, customer_id=customer_id)
    contact = CustomerContact(customer_id=customer_id)
    apply_changes(contact, {key: _blank_to_none(value) for key, value in fields.items()}, allowed=CONTACT_FIELDS)
    db.add(contact)
    db.flush()
    return contact


def update_contact(db: Session, *, customer_id: int, contact_id: int, changes: dict) -> CustomerContact:
    contact = get_contact(db, customer_id=customer_id, contact_id=contact_id)
    apply_changes(contact, {key: _blank_to_none(value) for key, value in changes.items()}, allowed=CONTACT_FIELDS)
    contact.updated_at = _now()
    db.flush()
    return contact


def delete_contact(db: Session, *, customer_id: int, contact_id: int) -> None:
    contact = get_contact(db, customer_id=customer_id, contact_id=contact_id)
    db.delete(contact)
    db.flush()


def get_project(db: Session, *, project_id: int) -> Project:
    project = db.execute(select(Project).where(Project.id == project_id)).scalar_one_or_none()
    if not project:
        raise NotFoundError('Project not found')
    return project


def list_projects(db: Session, *, customer_id: int | None = None) -> list[Project]:
    query = select(Project).order_by(Project.received_at.desc(), Project.id.desc())
    if customer_id is not None:
        get_customer(db, customer_id=customer_id)
        query = query.where(Project.customer_id == customer_id)
    return db.execute(query).scalars().all()


def create_project(db: Session, *, customer_id: int, fields: dict) -> Project:
    get_customer(db, customer_id=customer_id)
    project = Project(customer_id=customer_id)
    apply_changes(project, fields, allowed=PROJECT_FIELDS)
    db.add(project)
    db.flush()
    return project


def update_project(db: Session, *, project_id: int, changes: dict) -> Project:
    project = get_project(db, project_id=project_id)
    reject_nulls(changes, required=REQUIRED_PROJECT_FIELDS)
    apply_changes(project, changes, allowed=PROJECT_FIELDS)
    project.updated_at = _now()
    db.flush()
    return project


def delete_project(db: Session, *, project_id: int) -> None:
    project = get_project(db, project_id=project_id)
    db.execute(update(Offer).where(Offer.project_id == project.id).values(project_id=None))
    db.delete(project)
    db.flush()


def project_address_line(project) -> str | None:
    street = WS_RE.sub(' ', f'{project.street or ""} {project.house_number or ""}').strip()
    extra = (project.address_extra or '').strip()
    city = WS_RE.sub(' ', f'{project.postal_code or ""} {project.city or ""}').strip()
    line = ', '.join(part for part in (street, extra, city) if part)
    return line or None
