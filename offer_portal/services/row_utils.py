from __future__ import annotations

from sqlalchemy import inspect as sa_inspect

from offer_portal.errors import ValidationError


def row_to_dict(row) -> dict:
    """Column values of an ORM instance, keyed by attribute name."""
    return {attr.key: getattr(row, attr.key) for attr in sa_inspect(row).mapper.column_attrs}


def reject_nulls(changes: dict, *, required: set[str]) -> None:
    # A partial update may omit a NOT NULL column but never clear it.
    cleared = sorted(key for key in required if key in changes and changes[key] is None)
    if cleared:
        raise ValidationError(f'{", ".join(cleared)} cannot be empty')


def apply_changes(row, changes: dict, *, allowed: set[str]) -> list[str]:
    touched = []
    for key, value in changes.items():
        if key not in allowed:
            continue
        setattr(row, key, value)
        touched.append(key)
    return touched
