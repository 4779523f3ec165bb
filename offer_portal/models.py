from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER primary keys.
BigId = BigInteger().with_variant(Integer(), 'sqlite')


class Base(DeclarativeBase):
    pass


class CustomerType(str, Enum):
    PRIVATE = 'private'
    COMPANY = 'company'


class ProjectStatus(str, Enum):
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    DONE = 'done'
    CANCELLED = 'cancelled'


class OfferStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'


class OfferItemType(str, Enum):
    MATERIAL = 'material'
    LABOR = 'labor'
    OTHER = 'other'


class OfferTemplateType(str, Enum):
    INTRO = 'intro'
    OUTRO = 'outro'


class FooterMode(str, Enum):
    STANDARD = 'standard'
    CUSTOM = 'custom'


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    type: Mapped[CustomerType] = mapped_column(SQLEnum(CustomerType, name='customer_type'), nullable=False)
    company_name: Mapped[str | None] = mapped_column(Text)
    salutation: Mapped[str | None] = mapped_column(Text)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    customer_number: Mapped[str | None] = mapped_column(Text)
    vat_id: Mapped[str | None] = mapped_column(Text)
    billing_street: Mapped[str] = mapped_column(Text, nullable=False)
    billing_house_number: Mapped[str] = mapped_column(Text, nullable=False)
    billing_address_extra: Mapped[str | None] = mapped_column(Text)
    billing_postal_code: Mapped[str] = mapped_column(Text, nullable=False)
    billing_city: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CustomerContact(Base):
    __tablename__ = 'customer_contacts'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    customer_id: Mapped[int] = mapped_column(BigId, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    contact_name: Mapped[str | None] = mapped_column(Text)
    phone_landline: Mapped[str | None] = mapped_column(Text)
    phone_mobile: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Project(Base):
    __tablename__ = 'projects'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    customer_id: Mapped[int] = mapped_column(BigId, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    project_number: Mapped[str | None] = mapped_column(Text)
    received_at: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ProjectStatus] = mapped_column(
        SQLEnum(ProjectStatus, name='project_status'), nullable=False, default=ProjectStatus.OPEN, server_default='OPEN'
    )
    street: Mapped[str | None] = mapped_column(Text)
    house_number: Mapped[str | None] = mapped_column(Text)
    address_extra: Mapped[str | None] = mapped_column(Text)
    postal_code: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OfferTemplate(Base):
    __tablename__ = 'offer_templates'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    type: Mapped[OfferTemplateType] = mapped_column(SQLEnum(OfferTemplateType, name='offer_template_type'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    salutation: Mapped[str | None] = mapped_column(Text)
    body_html: Mapped[str] = mapped_column(Text, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OfferNumberSetting(Base):
    __tablename__ = 'offer_number_settings'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    offer_prefix: Mapped[str] = mapped_column(Text, nullable=False)
    offer_next_number: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CompanyProfile(Base):
    __tablename__ = 'company_profile'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sender_line_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    footer_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    footer_mode: Mapped[FooterMode] = mapped_column(
        SQLEnum(FooterMode, name='footer_mode'), nullable=False, default=FooterMode.STANDARD, server_default='STANDARD'
    )
    footer_custom_html: Mapped[str | None] = mapped_column(Text)
    company_name: Mapped[str | None] = mapped_column(Text)
    street: Mapped[str | None] = mapped_column(Text)
    house_number: Mapped[str | None] = mapped_column(Text)
    address_extra: Mapped[str | None] = mapped_column(Text)
    postal_code: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    tax_number: Mapped[str | None] = mapped_column(Text)
    vat_id: Mapped[str | None] = mapped_column(Text)
    bank_account_holder: Mapped[str | None] = mapped_column(Text)
    bank_name: Mapped[str | None] = mapped_column(Text)
    iban: Mapped[str | None] = mapped_column(Text)
    bic: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    mobile: Mapped[str | None] = mapped_column(Text)
    legal_form: Mapped[str | None] = mapped_column(Text)
    owner_name: Mapped[str | None] = mapped_column(Text)
    register_court: Mapped[str | None] = mapped_column(Text)
    register_number: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Offer(Base):
    __tablename__ = 'offers'
    __table_args__ = (
        UniqueConstraint('offer_number', name='offers_offer_number_key'),
        CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='offers_tax_rate_ck'),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    customer_id: Mapped[int | None] = mapped_column(BigId, ForeignKey('customers.id', ondelete='SET NULL'))
    project_id: Mapped[int | None] = mapped_column(BigId, ForeignKey('projects.id', ondelete='SET NULL'))
    title: Mapped[str] = mapped_column(Text, nullable=False)
    offer_date: Mapped[date] = mapped_column(Date, nullable=False)
    offer_number: Mapped[str | None] = mapped_column(Text)
    status: Mapped[OfferStatus] = mapped_column(
        SQLEnum(OfferStatus, name='offer_status'), nullable=False, default=OfferStatus.DRAFT, server_default='DRAFT'
    )
    intro_salutation: Mapped[str | None] = mapped_column(Text)
    intro_body_html: Mapped[str | None] = mapped_column(Text)
    outro_body_html: Mapped[str | None] = mapped_column(Text)
    payment_due_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7, server_default='7')
    discount_percent: Mapped[Decimal | None] = mapped_column(Numeric(7, 4))
    discount_days: Mapped[int | None] = mapped_column(Integer)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=Decimal('19'), server_default='19')
    show_vat_for_labor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    total_tax: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    total_gross: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OfferGroup(Base):
    __tablename__ = 'offer_groups'
    __table_args__ = (
        UniqueConstraint('offer_id', 'index', name='offer_groups_offer_index_key'),
        CheckConstraint('"index" >= 1', name='offer_groups_index_ck'),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    offer_id: Mapped[int] = mapped_column(BigId, ForeignKey('offers.id', ondelete='CASCADE'), nullable=False)
    index: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    material_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    labor_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    other_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    material_margin: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    labor_margin: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    other_margin: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal('0'), server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OfferItem(Base):
    __tablename__ = 'offer_items'
    __table_args__ = (
        CheckConstraint('qty >= 0', name='offer_items_qty_non_negative_ck'),
        CheckConstraint('purchase_price >= 0', name='offer_items_purchase_price_non_negative_ck'),
        CheckConstraint('markup_percent >= 0', name='offer_items_markup_non_negative_ck'),
        CheckConstraint('margin_amount >= 0', name='offer_items_margin_non_negative_ck'),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    group_id: Mapped[int] = mapped_column(BigId, ForeignKey('offer_groups.id', ondelete='CASCADE'), nullable=False)
    type: Mapped[OfferItemType] = mapped_column(SQLEnum(OfferItemType, name='offer_item_type'), nullable=False)
    position_index: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    markup_percent: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    margin_amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(16, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    offer_id: Mapped[int | None] = mapped_column(BigId)
    ip: Mapped[str | None] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict, server_default='{}')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
