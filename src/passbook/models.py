"""Domain models for passbook."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Columns of the ``password_entries`` table, in storage order.
COLUMNS = (
    "id",
    "title",
    "username",
    "password",
    "website",
    "email",
    "created_at",
    "updated_at",
)

# Form fields a user may edit; ``id`` and the timestamps are never among them.
MUTABLE_FIELDS = ("title", "username", "password", "website", "email")


class SortField(str, Enum):
    TITLE = "title"
    USERNAME = "username"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortOrder:
        return SortOrder.DESC if self is SortOrder.ASC else SortOrder.ASC


class CredentialRecord(BaseModel):
    """A single stored credential, exactly as the database holds it."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    username: str
    password: str
    website: Optional[str] = None
    email: Optional[str] = None
    created_at: str
    updated_at: str

    @field_validator("website", "email", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: Optional[str]) -> Optional[str]:
        # The table stores an absent optional field as ''.
        return value or None

    def to_row(self) -> tuple[str, ...]:
        """Return the positional parameters for an INSERT, in column order."""
        return (
            self.id,
            self.title,
            self.username,
            self.password,
            self.website or "",
            self.email or "",
            self.created_at,
            self.updated_at,
        )


class RecordDraft(BaseModel):
    """The editable field set of a create/edit form."""

    title: str = ""
    username: str = ""
    password: str = ""
    website: str = ""
    email: str = ""

    @classmethod
    def from_record(cls, record: CredentialRecord) -> RecordDraft:
        """Pre-populate a draft with the current values of *record*."""
        return cls(
            title=record.title,
            username=record.username,
            password=record.password,
            website=record.website or "",
            email=record.email or "",
        )


class DisplayRecord(CredentialRecord):
    """A record as the presentation layer shows it."""

    password_visible: bool = False

    @property
    def masked_password(self) -> str:
        return self.password if self.password_visible else "••••••••"


# ---------------------------------------------------------------------------
# Form session states
# ---------------------------------------------------------------------------


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["idle"] = "idle"


class Creating(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["creating"] = "creating"
    draft: RecordDraft = Field(default_factory=RecordDraft)


class Editing(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["editing"] = "editing"
    record_id: str
    draft: RecordDraft


class ConfirmingDelete(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["confirming_delete"] = "confirming_delete"
    record_id: str


FormState = Union[Idle, Creating, Editing, ConfirmingDelete]
