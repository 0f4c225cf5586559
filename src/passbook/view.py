"""Search and sort pipeline that turns the stored records into a listing.

Everything here is a pure function of its arguments: no I/O, no state.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from .models import CredentialRecord, DisplayRecord, SortField, SortOrder

_SEARCHABLE = ("title", "username", "website", "email")


def matches(record: CredentialRecord, term: str) -> bool:
    """True if *term* occurs, ignoring case, in a searchable field of *record*."""
    if not term:
        return True
    needle = term.lower()
    for name in _SEARCHABLE:
        value = getattr(record, name)
        if value and needle in value.lower():
            return True
    return False


def filter_records(records: Iterable[CredentialRecord], term: str) -> list[CredentialRecord]:
    return [r for r in records if matches(r, term)]


def _timestamp_key(value: str) -> tuple:
    """Sort key for a stored timestamp.

    Unparseable values sort after every valid one in ascending order and tie
    with each other.
    """
    try:
        stamp = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return (1,)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return (0, stamp)


_SORT_KEYS: dict[SortField, Callable[[CredentialRecord], Any]] = {
    SortField.TITLE: lambda r: r.title.lower(),
    SortField.USERNAME: lambda r: r.username.lower(),
    SortField.CREATED_AT: lambda r: _timestamp_key(r.created_at),
    SortField.UPDATED_AT: lambda r: _timestamp_key(r.updated_at),
}


def sort_records(
    records: Iterable[CredentialRecord],
    field: SortField,
    order: SortOrder,
) -> list[CredentialRecord]:
    """Stable sort on *field*; records with equal keys keep their input order."""
    # sorted() with reverse=True is still stable for equal keys.
    return sorted(records, key=_SORT_KEYS[SortField(field)], reverse=SortOrder(order) is SortOrder.DESC)


def derive_view(
    records: Sequence[CredentialRecord],
    search_term: str,
    sort_field: SortField,
    sort_order: SortOrder,
    visible: Optional[Iterable[str]] = None,
) -> list[DisplayRecord]:
    """Filter, sort and decorate *records* for display.

    *visible* holds the ids whose password is currently revealed.
    """
    shown = frozenset(visible or ())
    ordered = sort_records(filter_records(records, search_term), sort_field, sort_order)
    return [
        DisplayRecord(**r.model_dump(), password_visible=r.id in shown)
        for r in ordered
    ]


def next_sort(current_field: SortField, current_order: SortOrder, clicked: SortField) -> tuple[SortField, SortOrder]:
    """Sort state after the user picks *clicked*.

    Picking the current field flips the order; a new field starts ascending.
    """
    if clicked == current_field:
        return current_field, current_order.flipped()
    return clicked, SortOrder.ASC
