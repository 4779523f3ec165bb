"""Request and response models for the JSON API."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer

from offer_portal.models import CustomerType, FooterMode, OfferItemType, OfferStatus, OfferTemplateType, ProjectStatus

# Amounts travel as JSON numbers.
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used='json')]
Percent = Annotated[Decimal, Field(ge=0, le=100)]


class PatchModel(BaseModel):
    model_config = ConfigDict(extra='forbid')

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CustomerIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    type: CustomerType
    company_name: str | None = None
    salutation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    customer_number: str | None = None
    vat_id: str | None = None
    billing_street: str = Field(min_length=1)
    billing_house_number: str = Field(min_length=1)
    billing_address_extra: str | None = None
    billing_postal_code: str = Field(min_length=1)
    billing_city: str = Field(min_length=1)


class CustomerPatch(PatchModel):
    type: CustomerType | None = None
    company_name: str | None = None
    salutation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    customer_number: str | None = None
    vat_id: str | None = None
    billing_street: str | None = Field(default=None, min_length=1)
    billing_house_number: str | None = Field(default=None, min_length=1)
    billing_address_extra: str | None = None
    billing_postal_code: str | None = Field(default=None, min_length=1)
    billing_city: str | None = Field(default=None, min_length=1)


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: CustomerType
    display_name: str
    company_name: str | None
    salutation: str | None
    first_name: str | None
    last_name: str | None
    customer_number: str | None
    vat_id: str | None
    billing_street: str
    billing_house_number: str
    billing_address_extra: str | None
    billing_postal_code: str
    billing_city: str


class ContactIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    contact_name: str | None = None
    phone_landline: str | None = None
    phone_mobile: str | None = None
    email: EmailStr | None = None


class ContactPatch(PatchModel):
    contact_name: str | None = None
    phone_landline: str | None = None
    phone_mobile: str | None = None
    email: EmailStr | None = None


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    contact_name: str | None
    phone_landline: str | None
    phone_mobile: str | None
    email: str | None


class ProjectIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    customer_id: int
    title: str = Field(min_length=1)
    project_number: str | None = None
    received_at: date
    description: str | None = None
    status: ProjectStatus = ProjectStatus.OPEN
    street: str | None = None
    house_number: str | None = None
    address_extra: str | None = None
    postal_code: str | None = None
    city: str | None = None


class ProjectPatch(PatchModel):
    title: str | None = Field(default=None, min_length=1)
    project_number: str | None = None
    received_at: date | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    street: str | None = None
    house_number: str | None = None
    address_extra: str | None = None
    postal_code: str | None = None
    city: str | None = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    title: str
    project_number: str | None
    received_at: date
    description: str | None
    status: ProjectStatus
    street: str | None
    house_number: str | None
    address_extra: str | None
    postal_code: str | None
    city: str | None


class OfferTemplateIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    type: OfferTemplateType
    name: str = Field(min_length=1)
    salutation: str | None = None
    body_html: str
    is_default: bool = False


class OfferTemplatePatch(PatchModel):
    name: str | None = Field(default=None, min_length=1)
    salutation: str | None = None
    body_html: str | None = None
    is_default: bool | None = None


class OfferTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: OfferTemplateType
    name: str
    salutation: str | None
    body_html: str
    is_default: bool


class OfferNumberSettingsIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    offer_prefix: str | None = None
    offer_next_number: int | None = Field(default=None, ge=1)


class OfferNumberSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_prefix: str
    offer_next_number: int


class CompanyProfilePatch(PatchModel):
    sender_line_enabled: bool | None = None
    footer_enabled: bool | None = None
    footer_mode: FooterMode | None = None
    footer_custom_html: str | None = None
    company_name: str | None = None
    street: str | None = None
    house_number: str | None = None
    address_extra: str | None = None
    postal_code: str | None = None
    city: str | None = None
    tax_number: str | None = None
    vat_id: str | None = None
    bank_account_holder: str | None = None
    bank_name: str | None = None
    iban: str | None = None
    bic: str | None = None
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    legal_form: str | None = None
    owner_name: str | None = None
    register_court: str | None = None
    register_number: str | None = None


class CompanyProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sender_line_enabled: bool
    footer_enabled: bool
    footer_mode: FooterMode
    footer_custom_html: str | None
    company_name: str | None
    street: str | None
    house_number: str | None
    address_extra: str | None
    postal_code: str | None
    city: str | None
    tax_number: str | None
    vat_id: str | None
    bank_account_holder: str | None
    bank_name: str | None
    iban: str | None
    bic: str | None
    website: str | None
    email: str | None
    phone: str | None
    mobile: str | None
    legal_form: str | None
    owner_name: str | None
    register_court: str | None
    register_number: str | None


class ItemIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    type: OfferItemType
    name: str = Field(min_length=1)
    description: str | None = None
    qty: Decimal = Field(ge=0)
    unit: str
    purchase_price: Decimal = Field(ge=0)
    markup_percent: Decimal | None = Field(default=None, ge=0)
    margin_amount: Decimal | None = Field(default=None, ge=0)


class ItemPatch(PatchModel):
    type: OfferItemType | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    qty: Decimal | None = Field(default=None, ge=0)
    unit: str | None = None
    purchase_price: Decimal | None = Field(default=None, ge=0)
    markup_percent: Decimal | None = Field(default=None, ge=0)
    margin_amount: Decimal | None = Field(default=None, ge=0)


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    type: OfferItemType
    position_index: str
    name: str
    description: str | None
    qty: Amount
    unit: str
    purchase_price: Amount
    markup_percent: Amount
    margin_amount: Amount
    unit_price: Amount
    line_total: Amount


class GroupIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str = Field(min_length=1)


class GroupPatch(PatchModel):
    title: str | None = Field(default=None, min_length=1)


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    offer_id: int
    index: int
    title: str
    material_cost: Amount
    labor_cost: Amount
    other_cost: Amount
    material_margin: Amount
    labor_margin: Amount
    other_margin: Amount
    total_net: Amount
    items: list[ItemOut] = Field(default_factory=list)


class OfferIn(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str = Field(min_length=1)
    customer_id: int | None = None
    project_id: int | None = None
    offer_date: date
    intro_salutation: str | None = None
    intro_body_html: str | None = None
    outro_body_html: str | None = None
    payment_due_days: int | None = Field(default=None, ge=0)
    discount_percent: Percent | None = None
    discount_days: int | None = Field(default=None, ge=0)
    tax_rate: Percent | None = None
    show_vat_for_labor: bool | None = None


class OfferPatch(PatchModel):
    title: str | None = Field(default=None, min_length=1)
    customer_id: int | None = None
    project_id: int | None = None
    offer_date: date | None = None
    status: OfferStatus | None = None
    intro_salutation: str | None = None
    intro_body_html: str | None = None
    outro_body_html: str | None = None
    payment_due_days: int | None = Field(default=None, ge=0)
    discount_percent: Percent | None = None
    discount_days: int | None = Field(default=None, ge=0)
    tax_rate: Percent | None = None
    show_vat_for_labor: bool | None = None


class OfferSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    offer_number: str | None
    offer_date: date
    status: OfferStatus
    customer_id: int | None
    customer_name: str | None = None
    project_id: int | None
    project_title: str | None = None
    total_net: Amount
    total_gross: Amount


class OfferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int | None
    project_id: int | None
    title: str
    offer_date: date
    offer_number: str | None
    status: OfferStatus
    intro_salutation: str | None
    intro_body_html: str | None
    outro_body_html: str | None
    payment_due_days: int
    discount_percent: Amount | None
    discount_days: int | None
    tax_rate: Amount
    show_vat_for_labor: bool
    total_net: Amount
    total_tax: Amount
    total_gross: Amount
    groups: list[GroupOut] = Field(default_factory=list)


class PageGroupOut(BaseModel):
    id: int
    index: int
    title: str
    is_continuation: bool
    items: list[ItemOut]


class PageOut(BaseModel):
    number: int
    is_last: bool
    page_net: Amount
    running_net: Amount
    groups: list[PageGroupOut]
