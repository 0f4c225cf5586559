"""Create / edit / delete form session over a :class:`RecordRepository`.

Exactly one form interaction is active at a time; its state is one of
:class:`Idle`, :class:`Creating`, :class:`Editing` or
:class:`ConfirmingDelete`. Writes go through the repository, which reloads
its snapshot afterwards, and the listing is re-derived from that snapshot.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import (
    ConfirmingDelete,
    Creating,
    CredentialRecord,
    DisplayRecord,
    Editing,
    FormState,
    Idle,
    RecordDraft,
    SortField,
    SortOrder,
)
from .passwords import generate_password
from .providers import Clock, IdProvider, UtcClock, UuidProvider
from .store import RecordRepository
from .view import derive_view, next_sort

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Raised when an action is not allowed in the current form state."""


class RecordNotFoundError(LookupError):
    """Raised when an edit or delete names an id missing from the snapshot."""


class FormSession:
    """Interaction state for one user: form state, search, sort, visibility."""

    def __init__(
        self,
        repository: RecordRepository,
        ids: Optional[IdProvider] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.repository = repository
        self.ids = ids or UuidProvider()
        self.clock = clock or UtcClock()
        self.state: FormState = Idle()
        self.search_term = ""
        self.sort_field = SortField.CREATED_AT
        self.sort_order = SortOrder.DESC
        self._visible: set[str] = set()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[CredentialRecord, ...]:
        return self.repository.records

    def refresh(self) -> tuple[CredentialRecord, ...]:
        """Reload from the database and forget visibility of vanished ids."""
        records = self.repository.load_all()
        self._prune_visible()
        return records

    def view(self) -> list[DisplayRecord]:
        return derive_view(
            self.records,
            self.search_term,
            self.sort_field,
            self.sort_order,
            visible=self._visible,
        )

    def set_search(self, term: str) -> None:
        self.search_term = term

    def sort_by(self, field: SortField) -> None:
        self.sort_field, self.sort_order = next_sort(self.sort_field, self.sort_order, SortField(field))

    def toggle_visibility(self, record_id: str) -> bool:
        """Flip whether *record_id*'s password is shown; returns the new flag."""
        if record_id in self._visible:
            self._visible.discard(record_id)
            return False
        self._visible.add(record_id)
        return True

    def is_visible(self, record_id: str) -> bool:
        return record_id in self._visible

    # ------------------------------------------------------------------
    # Create / edit
    # ------------------------------------------------------------------

    def begin_create(self) -> Creating:
        self._require(Idle, "start a new entry")
        self.state = Creating()
        return self.state

    def begin_edit(self, record_id: str) -> Editing:
        self._require(Idle, "edit an entry")
        record = self._existing(record_id)
        self.state = Editing(record_id=record_id, draft=RecordDraft.from_record(record))
        return self.state

    @property
    def draft(self) -> RecordDraft:
        state = self._require((Creating, Editing), "read the form")
        return state.draft

    def update_draft(self, **fields: str) -> RecordDraft:
        """Set form fields; unknown names raise :class:`ValueError`."""
        state = self._require((Creating, Editing), "edit the form")
        unknown = set(fields) - set(RecordDraft.model_fields)
        if unknown:
            raise ValueError(f"Unknown form field(s): {', '.join(sorted(unknown))}")
        draft = RecordDraft.model_validate({**state.draft.model_dump(), **fields})
        self.state = state.model_copy(update={"draft": draft})
        return draft

    def fill_generated_password(self) -> str:
        """Put a fresh random password in the form. Nothing is saved until submit."""
        password = generate_password()
        self.update_draft(password=password)
        return password

    def cancel(self) -> None:
        self._require((Creating, Editing), "cancel the form")
        self.state = Idle()

    def submit(self) -> Optional[CredentialRecord]:
        """Write the form to the database and return to :class:`Idle`.

        Returns the stored record as reloaded, or ``None`` if an edited
        record vanished in the meantime. If the write fails the form stays
        open. Once the write has committed the form is closed, so a failing
        reload raises :class:`StorageError` with the previous snapshot kept.
        """
        state = self._require((Creating, Editing), "submit the form")
        draft = state.draft

        if isinstance(state, Creating):
            record_id = self.ids.new_id()
            now = self.clock.now()
            record = CredentialRecord(
                id=record_id,
                created_at=now,
                updated_at=now,
                **draft.model_dump(),
            )
            self.repository.create(record, reload=False)
            logger.info("Created entry %r", draft.title)
        else:
            record_id = state.record_id
            now = self.clock.now()
            self.repository.update(record_id, draft.model_dump(), now, reload=False)
            logger.info("Updated entry %r", draft.title)

        self.state = Idle()
        self.refresh()
        return self.repository.get(record_id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def request_delete(self, record_id: str) -> ConfirmingDelete:
        self._require(Idle, "delete an entry")
        self._existing(record_id)
        self.state = ConfirmingDelete(record_id=record_id)
        return self.state

    def cancel_delete(self) -> None:
        self._require(ConfirmingDelete, "cancel a delete")
        self.state = Idle()

    def confirm_delete(self) -> str:
        """Delete the pending record and reload; returns its id."""
        state = self._require(ConfirmingDelete, "confirm a delete")
        self.repository.delete(state.record_id, reload=False)
        self._visible.discard(state.record_id)
        self.state = Idle()
        logger.info("Deleted entry %s", state.record_id)
        self.refresh()
        return state.record_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, allowed, action: str):
        if not isinstance(self.state, allowed):
            raise SessionStateError(f"Cannot {action} while {self.state.kind.replace('_', ' ')}.")
        return self.state

    def _existing(self, record_id: str) -> CredentialRecord:
        record = self.repository.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No entry with id {record_id!r}.")
        return record

    def _prune_visible(self) -> None:
        live = {r.id for r in self.records}
        self._visible &= live
