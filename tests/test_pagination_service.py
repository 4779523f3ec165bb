from __future__ import annotations

import unittest
from decimal import Decimal

from offer_portal.services.pagination_service import (
    FIRST_PAGE_SLOTS,
    GROUP_HEADER_SLOTS,
    OTHER_PAGE_SLOTS,
    build_page_views,
    paginate,
)


def group(group_id: int, index: int, item_count: int, *, price: str = '10') -> dict:
    return {
        'id': group_id,
        'index': index,
        'title': f'Group {index}',
        'items': [{'id': group_id * 1000 + n, 'line_total': Decimal(price)} for n in range(item_count)],
    }


def slots_used(page) -> int:
    return sum(len(slice_.items) + (0 if slice_.is_continuation else GROUP_HEADER_SLOTS) for slice_ in page)


class PaginationServiceTests(unittest.TestCase):
    def test_long_group_continues_on_next_page_without_header(self) -> None:
        pages = paginate([group(1, 1, 20)])
        self.assertEqual(len(pages), 2)
        self.assertEqual(len(pages[0]), 1)
        self.assertEqual(len(pages[0][0].items), 16)
        self.assertFalse(pages[0][0].is_continuation)
        self.assertEqual(len(pages[1][0].items), 4)
        self.assertTrue(pages[1][0].is_continuation)
        self.assertEqual(pages[1][0].id, 1)

    def test_continued_group_does_not_pay_header_again(self) -> None:
        pages = paginate([group(1, 1, 20), group(2, 2, 22)])
        self.assertEqual(len(pages), 3)
        second = pages[1]
        self.assertEqual([len(slice_.items) for slice_ in second], [4, 20])
        self.assertFalse(second[1].is_continuation)
        self.assertEqual(len(pages[2][0].items), 2)
        self.assertTrue(pages[2][0].is_continuation)

    def test_small_groups_share_a_page(self) -> None:
        pages = paginate([group(1, 1, 3), group(2, 2, 4)])
        self.assertEqual(len(pages), 1)
        self.assertEqual([slice_.index for slice_ in pages[0]], [1, 2])

    def test_group_that_fills_the_page_exactly_starts_a_new_page(self) -> None:
        pages = paginate([group(1, 1, 16), group(2, 2, 1)])
        self.assertEqual(len(pages), 2)
        self.assertEqual(len(pages[0][0].items), 16)
        self.assertEqual(pages[1][0].id, 2)
        self.assertFalse(pages[1][0].is_continuation)

    def test_header_is_never_orphaned_at_page_end(self) -> None:
        # 2 + 14 leaves exactly room for a header but not for an item.
        pages = paginate([group(1, 1, 14), group(2, 2, 1)])
        self.assertEqual(len(pages), 2)
        self.assertEqual([slice_.id for slice_ in pages[0]], [1])
        self.assertEqual([slice_.id for slice_ in pages[1]], [2])

    def test_groups_are_laid_out_by_index(self) -> None:
        pages = paginate([group(5, 2, 1), group(9, 1, 1)])
        self.assertEqual([slice_.index for slice_ in pages[0]], [1, 2])

    def test_empty_offer_yields_one_empty_page(self) -> None:
        self.assertEqual(paginate([]), [[]])
        self.assertEqual(paginate(None), [[]])
        self.assertEqual(paginate([group(1, 1, 0)]), [[]])

    def test_every_item_is_placed_once_in_order(self) -> None:
        groups = [group(1, 1, 5), group(2, 2, 30), group(3, 3, 0), group(4, 4, 12), group(5, 5, 40)]
        pages = paginate(groups)

        placed = [item['id'] for page in pages for slice_ in page for item in slice_.items]
        expected = [item['id'] for g in groups for item in g['items']]
        self.assertEqual(placed, expected)

        self.assertLessEqual(slots_used(pages[0]), FIRST_PAGE_SLOTS)
        for page in pages[1:]:
            self.assertLessEqual(slots_used(page), OTHER_PAGE_SLOTS)
        for page in pages:
            self.assertTrue(all(slice_.items for slice_ in page))

    def test_custom_capacities(self) -> None:
        pages = paginate([group(1, 1, 10)], first_page_slots=6, other_page_slots=4)
        self.assertEqual([len(page[0].items) for page in pages], [4, 4, 2])

    def test_capacity_must_fit_a_header_and_an_item(self) -> None:
        with self.assertRaises(ValueError):
            paginate([group(1, 1, 1)], first_page_slots=GROUP_HEADER_SLOTS)

    def test_page_views_carry_running_totals(self) -> None:
        views = build_page_views(paginate([group(1, 1, 20)]))
        self.assertEqual([view.number for view in views], [1, 2])
        self.assertTrue(views[0].is_first)
        self.assertFalse(views[0].is_last)
        self.assertEqual(views[0].page_net, Decimal('160'))
        self.assertEqual(views[0].running_net, Decimal('160'))
        self.assertTrue(views[1].is_last)
        self.assertEqual(views[1].page_net, Decimal('40'))
        self.assertEqual(views[1].running_net, Decimal('200'))

    def test_single_empty_page_is_first_and_last(self) -> None:
        views = build_page_views(paginate([]))
        self.assertEqual(len(views), 1)
        self.assertTrue(views[0].is_first)
        self.assertTrue(views[0].is_last)
        self.assertEqual(views[0].running_net, Decimal('0'))


if __name__ == '__main__':
    unittest.main()
