"""Domain models for memorial drafts."""

import json
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"

PRIVACY_PUBLIC = "public"
PRIVACY_PRIVATE = "private"
PRIVACY_PASSWORD = "password_protected"
PRIVACY_MODES = (PRIVACY_PUBLIC, PRIVACY_PRIVATE, PRIVACY_PASSWORD)


class MemorialPhoto(BaseModel):
    """Photo reference attached to a memorial."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    url: str
    thumbnail_url: str | None = None
    caption: str | None = None
    order: int = 0


class MemorialDraft(BaseModel):
    """Client-editable snapshot of a memorial.

    Dates stay as raw strings so half-typed form input survives a round trip;
    `validate_memorial` reports anything unparsable.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    id: UUID | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    nickname: str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    title: str | None = None
    headline: str | None = None
    obituary: str | None = None
    biography: str | None = None
    profile_photo_url: str | None = None
    cover_photo_url: str | None = None
    photos: list[MemorialPhoto] | None = None
    privacy: str = PRIVACY_PRIVATE
    password: str | None = None
    custom_url: str | None = None

    def content(self) -> dict[str, object]:
        """Return the persisted content fields, keyed by column name."""
        return self.model_dump(mode="json", exclude={"id"})

    def changes(self) -> dict[str, object]:
        """Return only the content fields the caller explicitly set."""
        return self.model_dump(mode="json", exclude={"id"}, exclude_unset=True)

    def stable_serialization(self) -> str:
        """Serialize content deterministically for change detection."""
        return json.dumps(self.content(), sort_keys=True, separators=(",", ":"))

    def merged(self, updates: dict[str, object]) -> "MemorialDraft":
        """Return a new draft with the given fields (snake or camel case) applied."""
        data = self.model_dump(by_alias=False)
        for key, value in updates.items():
            data[_field_name(key)] = value
        return MemorialDraft.model_validate(data)


def _field_name(key: str) -> str:
    for name, field in MemorialDraft.model_fields.items():
        if key in {name, field.alias}:
            return name
    raise KeyError(f"Unknown memorial field: {key}")


def form_key(key: str) -> str:
    """Return the camelCase key the client form uses for a field."""
    return MemorialDraft.model_fields[_field_name(key)].alias or key


def display_name(draft: MemorialDraft) -> str:
    """Join the name parts that are present."""
    parts = [draft.first_name, draft.middle_name, draft.last_name]
    return " ".join(part.strip() for part in parts if part and part.strip())


@dataclass(frozen=True)
class Account:
    """Authenticated account as reported by the auth provider."""

    id: UUID
    email: str | None = None


@dataclass(frozen=True)
class ContributorPermissions:
    """Permission flags granted to a contributor on a memorial."""

    can_edit: bool = False
    can_upload_photos: bool = False
    can_invite_others: bool = False
    can_delete: bool = False


@dataclass(frozen=True)
class MemorialRecord:
    """Persisted memorial row."""

    id: UUID
    user_id: UUID
    draft: MemorialDraft
    status: str
    payment_status: str
    stripe_session_id: str | None
    published_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    last_saved_at: datetime | None

    @property
    def is_published(self) -> bool:
        return self.status == STATUS_PUBLISHED


@dataclass(frozen=True)
class DraftSummary:
    """Resumable draft listed for an account."""

    id: UUID
    name: str
    headline: str | None
    updated_at: datetime | None
