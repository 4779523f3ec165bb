from __future__ import annotations

import unittest
from decimal import Decimal

from offer_portal.errors import PricingUndefinedError, ValidationError
from offer_portal.services.pricing_service import (
    ByMargin,
    ByMarkup,
    PricingPatch,
    StoredPricing,
    Unchanged,
    compute_item_pricing,
    compute_new_item_pricing,
    markup_from_margin,
    margin_from_markup,
    price_input_from_fields,
)


def stored(**overrides) -> StoredPricing:
    values = {
        'qty': Decimal('3'),
        'purchase_price': Decimal('100'),
        'markup_percent': Decimal('20'),
        'margin_amount': Decimal('20'),
    }
    values.update(overrides)
    return StoredPricing(**values)


class PricingServiceTests(unittest.TestCase):
    def test_markup_sets_margin_unit_price_and_line_total(self) -> None:
        result = compute_item_pricing(
            stored(markup_percent=Decimal('0'), margin_amount=Decimal('0')),
            PricingPatch(price_input=ByMarkup(Decimal('20'))),
        )
        self.assertEqual(result.markup_percent, Decimal('20'))
        self.assertEqual(result.margin_amount, Decimal('20'))
        self.assertEqual(result.unit_price, Decimal('120'))
        self.assertEqual(result.line_total, Decimal('360'))

    def test_margin_sets_markup(self) -> None:
        result = compute_item_pricing(stored(qty=Decimal('1')), PricingPatch(price_input=ByMargin(Decimal('50'))))
        self.assertEqual(result.markup_percent, Decimal('50'))
        self.assertEqual(result.unit_price, Decimal('150'))
        self.assertEqual(result.line_total, Decimal('150'))

    def test_unchanged_keeps_stored_markup_and_margin(self) -> None:
        result = compute_item_pricing(stored(), PricingPatch(qty=Decimal('5')))
        self.assertEqual(result.markup_percent, Decimal('20'))
        self.assertEqual(result.margin_amount, Decimal('20'))
        self.assertEqual(result.unit_price, Decimal('120'))
        self.assertEqual(result.line_total, Decimal('600'))

    def test_purchase_price_change_keeps_margin_when_unchanged(self) -> None:
        result = compute_item_pricing(stored(), PricingPatch(purchase_price=Decimal('200')))
        self.assertEqual(result.margin_amount, Decimal('20'))
        self.assertEqual(result.markup_percent, Decimal('20'))
        self.assertEqual(result.unit_price, Decimal('220'))
        self.assertEqual(result.line_total, Decimal('660'))

    def test_purchase_price_and_markup_change_together(self) -> None:
        result = compute_item_pricing(
            stored(),
            PricingPatch(purchase_price=Decimal('50'), price_input=ByMarkup(Decimal('10'))),
        )
        self.assertEqual(result.margin_amount, Decimal('5'))
        self.assertEqual(result.unit_price, Decimal('55'))

    def test_margin_wins_when_both_fields_are_sent(self) -> None:
        price_input = price_input_from_fields(markup_percent=Decimal('10'), margin_amount=Decimal('30'))
        self.assertEqual(price_input, ByMargin(Decimal('30')))
        self.assertEqual(price_input_from_fields(markup_percent=Decimal('10'), margin_amount=None), ByMarkup(Decimal('10')))
        self.assertIsInstance(price_input_from_fields(markup_percent=None, margin_amount=None), Unchanged)

    def test_margin_to_markup_round_trip_is_stable(self) -> None:
        purchase_price = Decimal('3')
        margin = Decimal('1')
        markup = markup_from_margin(purchase_price, margin)
        self.assertLess(abs(margin_from_markup(purchase_price, markup) - margin), Decimal('1e-9'))

    def test_margin_with_zero_purchase_price_is_undefined(self) -> None:
        with self.assertRaises(PricingUndefinedError):
            compute_item_pricing(
                stored(purchase_price=Decimal('0')),
                PricingPatch(price_input=ByMargin(Decimal('5'))),
            )

    def test_markup_with_zero_purchase_price_gives_zero_margin(self) -> None:
        result = compute_item_pricing(
            stored(purchase_price=Decimal('0'), margin_amount=Decimal('0')),
            PricingPatch(price_input=ByMarkup(Decimal('40'))),
        )
        self.assertEqual(result.margin_amount, Decimal('0'))
        self.assertEqual(result.unit_price, Decimal('0'))
        self.assertEqual(result.line_total, Decimal('0'))

    def test_negative_inputs_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            compute_item_pricing(stored(), PricingPatch(qty=Decimal('-1')))
        with self.assertRaises(ValidationError):
            compute_item_pricing(stored(), PricingPatch(price_input=ByMarkup(Decimal('-5'))))
        with self.assertRaises(ValidationError):
            compute_new_item_pricing(
                qty=Decimal('1'),
                purchase_price=Decimal('-10'),
                price_input=ByMarkup(Decimal('5')),
            )

    def test_new_item_by_markup(self) -> None:
        result = compute_new_item_pricing(
            qty=Decimal('3'),
            purchase_price=Decimal('100'),
            price_input=ByMarkup(Decimal('20')),
        )
        self.assertEqual(result.margin_amount, Decimal('20'))
        self.assertEqual(result.unit_price, Decimal('120'))
        self.assertEqual(result.line_total, Decimal('360'))

    def test_new_item_by_margin(self) -> None:
        result = compute_new_item_pricing(
            qty=Decimal('2'),
            purchase_price=Decimal('80'),
            price_input=ByMargin(Decimal('20')),
        )
        self.assertEqual(result.markup_percent, Decimal('25'))
        self.assertEqual(result.line_total, Decimal('200'))

    def test_stored_fields_are_rounded_to_column_scale(self) -> None:
        result = compute_new_item_pricing(
            qty=Decimal('1'),
            purchase_price=Decimal('3'),
            price_input=ByMargin(Decimal('1')),
        )
        self.assertEqual(result.markup_percent, Decimal('33.3333'))
        self.assertEqual(result.margin_amount, Decimal('1'))
        self.assertEqual(result.unit_price, Decimal('4'))

        result = compute_new_item_pricing(
            qty=Decimal('3'),
            purchase_price=Decimal('0.3333'),
            price_input=ByMarkup(Decimal('10')),
        )
        self.assertEqual(result.margin_amount, Decimal('0.0333'))
        self.assertEqual(result.unit_price, Decimal('0.3666'))
        self.assertEqual(result.line_total, Decimal('1.0998'))
        self.assertEqual(result.line_total, result.qty * result.unit_price)

    def test_new_item_needs_a_price_input(self) -> None:
        with self.assertRaises(ValidationError):
            compute_new_item_pricing(qty=Decimal('1'), purchase_price=Decimal('10'), price_input=Unchanged())


if __name__ == '__main__':
    unittest.main()
