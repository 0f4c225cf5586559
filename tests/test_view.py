"""Tests for passbook.view."""

import pytest

from passbook.models import CredentialRecord, SortField, SortOrder
from passbook.view import derive_view, filter_records, matches, next_sort, sort_records


def _record(id, title="t", username="u", website=None, email=None,
            created_at="2024-01-01T00:00:00+00:00", updated_at=None) -> CredentialRecord:
    return CredentialRecord(
        id=id,
        title=title,
        username=username,
        password="pw",
        website=website,
        email=email,
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


@pytest.fixture
def records():
    return [
        _record("1", title="GitHub", username="octo", website="github.com",
                created_at="2024-02-01T00:00:00+00:00", updated_at="2024-05-01T00:00:00+00:00"),
        _record("2", title="bank", username="Alice", email="alice@bank.example",
                created_at="2024-03-01T00:00:00+00:00"),
        _record("3", title="Apple", username="bob",
                created_at="2024-01-01T00:00:00+00:00", updated_at="2024-04-01T00:00:00+00:00"),
    ]


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


def test_empty_term_keeps_everything_in_order(records):
    assert filter_records(records, "") == records


@pytest.mark.parametrize(
    "term, expected",
    [
        ("git", ["1"]),
        ("GITHUB.COM", ["1"]),
        ("alice", ["2"]),
        ("bank.example", ["2"]),
        ("bo", ["3"]),
        ("b", ["1", "2", "3"]),
        ("zzz", []),
    ],
)
def test_filter_is_case_insensitive_over_searchable_fields(records, term, expected):
    assert [r.id for r in filter_records(records, term)] == expected


def test_password_is_not_searched():
    assert not matches(_record("1", title="a", username="b"), "pw")


def test_absent_optional_fields_never_match():
    r = _record("1", title="a", username="b", website=None, email=None)
    assert not matches(r, "none")
    assert matches(r, "")


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------


def test_title_sort_ignores_case(records):
    ordered = sort_records(records, SortField.TITLE, SortOrder.ASC)
    assert [r.title for r in ordered] == ["Apple", "bank", "GitHub"]


def test_username_sort_descending(records):
    ordered = sort_records(records, SortField.USERNAME, SortOrder.DESC)
    assert [r.username for r in ordered] == ["octo", "bob", "Alice"]


def test_created_at_sort_is_chronological(records):
    ordered = sort_records(records, SortField.CREATED_AT, SortOrder.ASC)
    assert [r.id for r in ordered] == ["3", "1", "2"]


def test_updated_at_sort_is_chronological(records):
    ordered = sort_records(records, SortField.UPDATED_AT, SortOrder.DESC)
    assert [r.id for r in ordered] == ["1", "3", "2"]


def test_timestamps_compare_as_instants_not_strings():
    # 01:00+02:00 is 23:00 UTC the previous day.
    early = _record("early", created_at="2024-01-02T01:00:00+02:00")
    late = _record("late", created_at="2024-01-01T23:30:00+00:00")
    ordered = sort_records([late, early], SortField.CREATED_AT, SortOrder.ASC)
    assert [r.id for r in ordered] == ["early", "late"]


@pytest.mark.parametrize("order", [SortOrder.ASC, SortOrder.DESC])
@pytest.mark.parametrize("field", list(SortField))
def test_ties_keep_input_order(field, order):
    tied = [_record(str(i), title="Same", username="same") for i in range(5)]
    assert [r.id for r in sort_records(tied, field, order)] == ["0", "1", "2", "3", "4"]


@pytest.mark.parametrize("field", list(SortField))
def test_sorting_twice_is_idempotent(records, field):
    once = sort_records(records, field, SortOrder.ASC)
    assert sort_records(once, field, SortOrder.ASC) == once


def test_descending_is_reverse_of_ascending_without_ties(records):
    asc = sort_records(records, SortField.TITLE, SortOrder.ASC)
    desc = sort_records(records, SortField.TITLE, SortOrder.DESC)
    assert desc == list(reversed(asc))


def test_sort_accepts_plain_strings(records):
    ordered = sort_records(records, "title", "desc")
    assert [r.id for r in ordered] == ["1", "2", "3"]


# ---------------------------------------------------------------------------
# derive_view / next_sort
# ---------------------------------------------------------------------------


def test_derive_view_filters_sorts_and_marks_visibility(records):
    view = derive_view(records, "b", SortField.TITLE, SortOrder.ASC, visible={"3", "gone"})
    assert [(r.id, r.password_visible) for r in view] == [("3", True), ("2", False), ("1", False)]


def test_derive_view_does_not_touch_input(records):
    snapshot = list(records)
    derive_view(records, "", SortField.TITLE, SortOrder.DESC)
    assert records == snapshot


def test_next_sort_new_field_starts_ascending():
    assert next_sort(SortField.CREATED_AT, SortOrder.DESC, SortField.TITLE) == (SortField.TITLE, SortOrder.ASC)


def test_next_sort_same_field_flips():
    assert next_sort(SortField.TITLE, SortOrder.ASC, SortField.TITLE) == (SortField.TITLE, SortOrder.DESC)
    assert next_sort(SortField.TITLE, SortOrder.DESC, SortField.TITLE) == (SortField.TITLE, SortOrder.ASC)


def test_unparseable_timestamps_sort_last_without_raising():
    good_late = _record("late", created_at="2024-03-01T00:00:00+00:00")
    bad_a = _record("bad-a", created_at="Mon Jan 01 2024")
    good_early = _record("early", created_at="2024-01-01T00:00:00+00:00")
    bad_b = _record("bad-b", created_at="")

    records = [bad_a, good_late, bad_b, good_early]
    asc = sort_records(records, SortField.CREATED_AT, SortOrder.ASC)
    assert [r.id for r in asc] == ["early", "late", "bad-a", "bad-b"]

    desc = sort_records(records, SortField.CREATED_AT, SortOrder.DESC)
    assert [r.id for r in desc] == ["bad-a", "bad-b", "late", "early"]


def test_session_view_survives_bad_stored_timestamp(session, client):
    client.execute(
        "INSERT INTO password_entries VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        ("odd", "Legacy", "bob", "x", "", "", "Mon Jan 01 2024", "Mon Jan 01 2024"),
    )
    session.refresh()
    assert [r.id for r in session.view()] == ["odd"]
