from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from db_support import make_session
from offer_portal.errors import NotFoundError, PricingUndefinedError, ValidationError
from offer_portal.models import CustomerContact, CustomerType, OfferGroup, OfferItem, OfferItemType, OfferTemplateType
from offer_portal.services.customer_service import (
    create_contact,
    create_customer,
    create_project,
    delete_customer,
    list_contacts,
)
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
    update_item,
    update_offer,
)
from offer_portal.services.template_service import create_template, get_default_templates


class OfferServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.offer = create_offer(self.db, fields={'title': 'Bathroom', 'offer_date': date(2026, 1, 5)})
        self.group = self.db.execute(select(OfferGroup).where(OfferGroup.offer_id == self.offer.id)).scalar_one()

    def tearDown(self) -> None:
        self.db.close()

    def add_item(self, group=None, *, item_type=OfferItemType.MATERIAL, qty='3', purchase_price='100', **pricing):
        group = group or self.group
        if not pricing:
            pricing = {'markup_percent': Decimal('20')}
        return create_item(
            self.db,
            offer_id=self.offer.id,
            group_id=group.id,
            item_type=item_type,
            name='Tiles',
            description=None,
            qty=Decimal(qty),
            unit='pcs',
            purchase_price=Decimal(purchase_price),
            **pricing,
        )

    def test_new_offer_gets_number_defaults_and_first_group(self) -> None:
        self.assertEqual(self.offer.offer_number, 'A-1')
        self.assertEqual(self.offer.tax_rate, Decimal('19'))
        self.assertEqual(self.offer.payment_due_days, 7)
        self.assertEqual(self.group.index, 1)
        self.assertEqual(self.group.title, 'Leistungen')
        self.assertEqual(self.group.total_net, Decimal('0'))

        second = create_offer(self.db, fields={'title': 'Kitchen', 'offer_date': date(2026, 1, 6)})
        self.assertEqual(second.offer_number, 'A-2')

    def test_default_templates_fill_blank_texts_only(self) -> None:
        create_template(
            self.db,
            fields={
                'type': OfferTemplateType.INTRO,
                'name': 'Intro',
                'salutation': 'Hello,',
                'body_html': '<p>Intro</p>',
                'is_default': True,
            },
        )
        create_template(
            self.db,
            fields={'type': OfferTemplateType.OUTRO, 'name': 'Outro', 'body_html': '<p>Outro</p>', 'is_default': True},
        )
        offer = create_offer(
            self.db,
            fields={'title': 'Garden', 'offer_date': date(2026, 2, 1), 'intro_body_html': '<p>Custom</p>'},
        )
        self.assertEqual(offer.intro_salutation, 'Hello,')
        self.assertEqual(offer.intro_body_html, '<p>Custom</p>')
        self.assertEqual(offer.outro_body_html, '<p>Outro</p>')

    def test_only_one_default_template_per_type(self) -> None:
        first = create_template(
            self.db,
            fields={'type': OfferTemplateType.INTRO, 'name': 'Old', 'body_html': '<p>Old</p>', 'is_default': True},
        )
        second = create_template(
            self.db,
            fields={'type': OfferTemplateType.INTRO, 'name': 'New', 'body_html': '<p>New</p>', 'is_default': True},
        )
        self.assertFalse(first.is_default)
        self.assertEqual(get_default_templates(self.db)[OfferTemplateType.INTRO].id, second.id)

    def test_items_get_sequential_positions_and_update_totals(self) -> None:
        first = self.add_item()
        second = self.add_item(item_type=OfferItemType.LABOR, qty='2', purchase_price='40', margin_amount=Decimal('10'))

        self.assertEqual(first.position_index, '1.1')
        self.assertEqual(second.position_index, '1.2')
        self.assertEqual(first.line_total, Decimal('360'))
        self.assertEqual(second.markup_percent, Decimal('25'))
        self.assertEqual(second.line_total, Decimal('100'))

        self.assertEqual(self.group.material_cost, Decimal('100'))
        self.assertEqual(self.group.material_margin, Decimal('20'))
        self.assertEqual(self.group.labor_cost, Decimal('40'))
        self.assertEqual(self.group.labor_margin, Decimal('10'))
        self.assertEqual(self.group.total_net, Decimal('460'))

        self.assertEqual(self.offer.total_net, Decimal('460'))
        self.assertEqual(self.offer.total_tax, Decimal('87.4'))
        self.assertEqual(self.offer.total_gross, Decimal('547.4'))

    def test_new_item_without_price_input_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.add_item(markup_percent=None, margin_amount=None)

    def test_update_item_by_margin(self) -> None:
        item = self.add_item()
        update_item(
            self.db,
            offer_id=self.offer.id,
            group_id=self.group.id,
            item_id=item.id,
            changes={'margin_amount': Decimal('50')},
        )
        self.assertEqual(item.markup_percent, Decimal('50'))
        self.assertEqual(item.unit_price, Decimal('150'))
        self.assertEqual(item.line_total, Decimal('450'))
        self.assertEqual(self.group.total_net, Decimal('450'))
        self.assertEqual(self.offer.total_net, Decimal('450'))

    def test_update_item_type_moves_aggregates(self) -> None:
        item = self.add_item()
        update_item(
            self.db,
            offer_id=self.offer.id,
            group_id=self.group.id,
            item_id=item.id,
            changes={'type': OfferItemType.OTHER, 'name': 'Disposal'},
        )
        self.assertEqual(item.name, 'Disposal')
        self.assertEqual(self.group.material_cost, Decimal('0'))
        self.assertEqual(self.group.other_cost, Decimal('100'))
        self.assertEqual(self.group.other_margin, Decimal('20'))

    def test_margin_on_free_item_is_undefined(self) -> None:
        item = self.add_item(purchase_price='0', markup_percent=Decimal('0'))
        self.assertEqual(item.line_total, Decimal('0'))
        with self.assertRaises(PricingUndefinedError):
            update_item(
                self.db,
                offer_id=self.offer.id,
                group_id=self.group.id,
                item_id=item.id,
                changes={'margin_amount': Decimal('5')},
            )

    def test_deleting_the_only_item_zeroes_the_group(self) -> None:
        solo = create_group(self.db, offer_id=self.offer.id, title='Solo')
        self.add_item()
        item = self.add_item(solo, qty='1', purchase_price='30', markup_percent=Decimal('10'))
        self.assertEqual(solo.total_net, Decimal('33'))

        delete_item(self.db, offer_id=self.offer.id, group_id=solo.id, item_id=item.id)
        self.assertTrue(all(getattr(solo, field) == 0 for field in ('material_cost', 'material_margin', 'total_net')))
        self.assertEqual(self.offer.total_net, Decimal('360'))

    def test_item_must_belong_to_the_group(self) -> None:
        other = create_group(self.db, offer_id=self.offer.id, title='Other')
        item = self.add_item()
        with self.assertRaises(NotFoundError):
            delete_item(self.db, offer_id=self.offer.id, group_id=other.id, item_id=item.id)

    def test_delete_group_removes_items_and_updates_offer(self) -> None:
        extra = create_group(self.db, offer_id=self.offer.id, title='Extra')
        self.add_item()
        self.add_item(extra)
        self.assertEqual(self.offer.total_net, Decimal('720'))

        delete_group(self.db, offer_id=self.offer.id, group_id=extra.id)
        remaining = self.db.execute(select(OfferItem)).scalars().all()
        self.assertEqual(len(remaining), 1)
        self.assertEqual(self.offer.total_net, Decimal('360'))

    def test_duplicate_group_copies_items_with_new_positions(self) -> None:
        self.add_item()
        self.add_item(item_type=OfferItemType.LABOR, qty='1', purchase_price='50', markup_percent=Decimal('10'))
        create_group(self.db, offer_id=self.offer.id, title='Between')

        copy = duplicate_group(self.db, offer_id=self.offer.id, group_id=self.group.id)
        self.assertEqual(copy.index, 3)
        self.assertEqual(copy.title, self.group.title)
        items = list_group_items(self.db, group_id=copy.id)
        self.assertEqual([item.position_index for item in items], ['3.1', '3.2'])
        self.assertEqual(copy.total_net, self.group.total_net)
        self.assertEqual(copy.labor_cost, Decimal('50'))
        self.assertEqual(self.offer.total_net, Decimal('830'))

    def test_tax_rate_change_recomputes_offer_totals(self) -> None:
        self.add_item()
        update_offer(self.db, offer_id=self.offer.id, changes={'tax_rate': Decimal('7')})
        self.assertEqual(self.offer.total_net, Decimal('360'))
        self.assertEqual(self.offer.total_tax, Decimal('25.2'))
        self.assertEqual(self.offer.total_gross, Decimal('385.2'))

    def test_blank_title_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            update_offer(self.db, offer_id=self.offer.id, changes={'title': '  '})
        with self.assertRaises(ValidationError):
            create_group(self.db, offer_id=self.offer.id, title='')

    def test_project_must_belong_to_customer(self) -> None:
        owner = create_customer(
            self.db,
            fields={
                'type': CustomerType.COMPANY,
                'company_name': 'Owner GmbH',
                'billing_street': 'Main',
                'billing_house_number': '1',
                'billing_postal_code': '10115',
                'billing_city': 'Berlin',
            },
        )
        stranger = create_customer(
            self.db,
            fields={
                'type': CustomerType.PRIVATE,
                'last_name': 'Stranger',
                'billing_street': 'Side',
                'billing_house_number': '2',
                'billing_postal_code': '20095',
                'billing_city': 'Hamburg',
            },
        )
        project = create_project(
            self.db,
            customer_id=owner.id,
            fields={'title': 'Roof', 'received_at': date(2026, 1, 2)},
        )
        with self.assertRaises(ValidationError):
            create_offer(
                self.db,
                fields={
                    'title': 'Roof',
                    'offer_date': date(2026, 1, 3),
                    'customer_id': stranger.id,
                    'project_id': project.id,
                },
            )

        offer = create_offer(
            self.db,
            fields={'title': 'Roof', 'offer_date': date(2026, 1, 3), 'customer_id': owner.id, 'project_id': project.id},
        )
        summary = next(row for row in list_offers(self.db) if row['id'] == offer.id)
        self.assertEqual(summary['customer_name'], 'Owner GmbH')
        self.assertEqual(summary['project_title'], 'Roof')

        delete_customer(self.db, customer_id=owner.id)
        self.db.refresh(offer)
        self.assertIsNone(offer.customer_id)
        self.assertIsNone(offer.project_id)

    def test_customer_contacts_follow_their_customer(self) -> None:
        owner = create_customer(
            self.db,
            fields={
                'type': CustomerType.PRIVATE,
                'last_name': 'Doe',
                'billing_street': 'Main',
                'billing_house_number': '1',
                'billing_postal_code': '10115',
                'billing_city': 'Berlin',
            },
        )
        contact = create_contact(self.db, customer_id=owner.id, fields={'contact_name': '  Jo  ', 'email': ' '})
        self.assertEqual(contact.contact_name, 'Jo')
        self.assertIsNone(contact.email)
        self.assertEqual([row.id for row in list_contacts(self.db, customer_id=owner.id)], [contact.id])

        delete_customer(self.db, customer_id=owner.id)
        remaining = self.db.execute(select(CustomerContact).where(CustomerContact.customer_id == owner.id)).scalars().all()
        self.assertEqual(remaining, [])
        with self.assertRaises(NotFoundError):
            list_contacts(self.db, customer_id=owner.id)

    def test_clearing_required_fields_is_rejected(self) -> None:
        for field in ('offer_date', 'status', 'payment_due_days', 'show_vat_for_labor', 'tax_rate'):
            with self.subTest(field=field), self.assertRaises(ValidationError):
                update_offer(self.db, offer_id=self.offer.id, changes={field: None})
        self.assertEqual(self.offer.offer_date, date(2026, 1, 5))
        self.assertEqual(self.offer.payment_due_days, 7)

    def test_offer_tree_lists_groups_by_index(self) -> None:
        create_group(self.db, offer_id=self.offer.id, title='Second')
        self.add_item()
        tree = get_offer_tree(self.db, offer_id=self.offer.id)
        self.assertEqual([group['index'] for group in tree['groups']], [1, 2])
        self.assertEqual(len(tree['groups'][0]['items']), 1)
        self.assertEqual(tree['groups'][1]['items'], [])

    def test_consistency_check_reports_drift(self) -> None:
        self.add_item()
        self.assertEqual(check_offer_consistency(self.db, offer_id=self.offer.id), {})

        self.group.total_net = Decimal('1')
        self.db.flush()
        with self.assertLogs('offer_portal.services.aggregation_service', level='WARNING'):
            report = check_offer_consistency(self.db, offer_id=self.offer.id)
        self.assertEqual(list(report), [self.group.id])
        self.assertIn('total_net', report[self.group.id])

    def test_delete_offer_removes_groups_and_items(self) -> None:
        self.add_item()
        delete_offer(self.db, offer_id=self.offer.id)
        self.assertEqual(self.db.execute(select(OfferGroup)).scalars().all(), [])
        self.assertEqual(self.db.execute(select(OfferItem)).scalars().all(), [])
        with self.assertRaises(NotFoundError):
            get_offer_tree(self.db, offer_id=self.offer.id)


if __name__ == '__main__':
    unittest.main()
