from datetime import date
from decimal import Decimal

from sqlalchemy import select

from offer_portal.db import SessionLocal, engine
from offer_portal.models import Base, Customer, CustomerType, Offer, OfferGroup, OfferItemType, OfferTemplate, OfferTemplateType
from offer_portal.services.offer_service import create_group, create_item, create_offer


def seed() -> None:
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        customer = db.execute(select(Customer).where(Customer.company_name == 'Muster Bau GmbH')).scalar_one_or_none()
        if not customer:
            customer = Customer(
                type=CustomerType.COMPANY,
                company_name='Muster Bau GmbH',
                billing_street='Hauptstrasse',
                billing_house_number='1',
                billing_postal_code='10115',
                billing_city='Berlin',
            )
            db.add(customer)
            db.flush()

        for template_type, name, salutation, body in (
            (OfferTemplateType.INTRO, 'Standard intro', 'Dear Sir or Madam,', '<p>Thank you for your enquiry.</p>'),
            (OfferTemplateType.OUTRO, 'Standard outro', None, '<p>We look forward to your order.</p>'),
        ):
            existing = db.execute(
                select(OfferTemplate).where(OfferTemplate.type == template_type, OfferTemplate.is_default.is_(True))
            ).scalar_one_or_none()
            if not existing:
                db.add(
                    OfferTemplate(type=template_type, name=name, salutation=salutation, body_html=body, is_default=True)
                )
        db.flush()

        demo = db.execute(select(Offer).where(Offer.title == 'Demo bathroom renovation')).scalar_one_or_none()
        if not demo:
            demo = create_offer(
                db,
                fields={'title': 'Demo bathroom renovation', 'customer_id': customer.id, 'offer_date': date.today()},
            )
            first_group = db.execute(select(OfferGroup).where(OfferGroup.offer_id == demo.id)).scalars().first()
            create_item(
                db,
                offer_id=demo.id,
                group_id=first_group.id,
                item_type=OfferItemType.MATERIAL,
                name='Wall tiles',
                description='30 x 60 cm, white',
                qty=Decimal('24'),
                unit='m2',
                purchase_price=Decimal('18.50'),
                markup_percent=Decimal('25'),
            )
            create_item(
                db,
                offer_id=demo.id,
                group_id=first_group.id,
                item_type=OfferItemType.LABOR,
                name='Tiling',
                description=None,
                qty=Decimal('16'),
                unit='h',
                purchase_price=Decimal('38'),
                margin_amount=Decimal('14'),
            )
            cleanup = create_group(db, offer_id=demo.id, title='Cleanup')
            create_item(
                db,
                offer_id=demo.id,
                group_id=cleanup.id,
                item_type=OfferItemType.OTHER,
                name='Waste disposal',
                description=None,
                qty=Decimal('1'),
                unit='flat',
                purchase_price=Decimal('120'),
                markup_percent=Decimal('10'),
            )

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
