from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

FIRST_PAGE_SLOTS = 18
OTHER_PAGE_SLOTS = 26
GROUP_HEADER_SLOTS = 2  # title row + column-header row
ITEM_SLOTS = 1


@dataclass
class GroupSlice:
    id: int
    index: int
    title: str
    items: list[Any] = field(default_factory=list)
    is_continuation: bool = False

    def as_dict(self) -> dict:
        return {'id': self.id, 'index': self.index, 'title': self.title, 'items': list(self.items)}


Page = list[GroupSlice]


@dataclass(frozen=True)
class PageView:
    number: int
    is_first: bool
    is_last: bool
    groups: Page
    page_net: Decimal
    running_net: Decimal


def _group_value(group, name: str, default=None):
    if isinstance(group, dict):
        return group.get(name, default)
    return getattr(group, name, default)


def _line_total(item) -> Decimal:
    value = item.get('line_total') if isinstance(item, dict) else getattr(item, 'line_total', None)
    return Decimal(value or 0)


def paginate(
    groups: Iterable | None,
    *,
    first_page_slots: int = FIRST_PAGE_SLOTS,
    other_page_slots: int = OTHER_PAGE_SLOTS,
) -> list[Page]:
    """Lay out offer groups and their items on fixed-capacity pages.

    Groups are placed in ascending ``index`` order and items in the order
    given. The header of a group costs ``GROUP_HEADER_SLOTS`` on the page where
    the group starts; a group continued onto the next page carries on without
    a header. An offer without groups still yields one empty page.
    """
    if min(first_page_slots, other_page_slots) <= GROUP_HEADER_SLOTS:
        raise ValueError('Page capacity must leave room for a group header and one item')

    pages: list[Page] = []
    current: Page = []
    on_page: dict[Any, GroupSlice] = {}
    remaining = first_page_slots

    def flush() -> None:
        nonlocal current, on_page, remaining
        if current:
            pages.append(current)
        current = []
        on_page = {}
        remaining = other_page_slots

    ordered = sorted(groups or [], key=lambda g: _group_value(g, 'index', 0))
    for group in ordered:
        group_id = _group_value(group, 'id')
        items = list(_group_value(group, 'items') or [])
        offset = 0

        while offset < len(items):
            existing = on_page.get(group_id)
            header = GROUP_HEADER_SLOTS if offset == 0 and existing is None else 0
            available = remaining - header
            if available <= 0:
                flush()
                continue

            take = min(available // ITEM_SLOTS, len(items) - offset)
            chunk = items[offset : offset + take]
            if existing is not None:
                existing.items.extend(chunk)
            else:
                existing = GroupSlice(
                    id=group_id,
                    index=_group_value(group, 'index'),
                    title=_group_value(group, 'title', ''),
                    items=chunk,
                    is_continuation=offset > 0,
                )
                current.append(existing)
                on_page[group_id] = existing
            offset += take
            remaining -= header + take * ITEM_SLOTS

            if remaining <= 0 and offset < len(items):
                flush()

        if remaining <= 0:
            flush()

    if current:
        pages.append(current)
    if not pages:
        pages.append([])
    return pages


def page_net(page: Sequence[GroupSlice]) -> Decimal:
    return sum((_line_total(item) for group in page for item in group.items), Decimal('0'))


def build_page_views(pages: Sequence[Page]) -> list[PageView]:
    views: list[PageView] = []
    running = Decimal('0')
    last = len(pages) - 1
    for idx, page in enumerate(pages):
        net = page_net(page)
        running += net
        views.append(
            PageView(
                number=idx + 1,
                is_first=idx == 0,
                is_last=idx == last,
                groups=page,
                page_net=net,
                running_net=running,
            )
        )
    return views
