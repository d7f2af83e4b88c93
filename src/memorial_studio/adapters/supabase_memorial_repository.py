"""Supabase-backed memorial repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from memorial_studio.domain.memorials import (
    STATUS_DRAFT,
    ContributorPermissions,
    MemorialDraft,
    MemorialRecord,
)
from memorial_studio.domain.payments import PAYMENT_UNPAID
from memorial_studio.domain.validation import parse_iso_date
from memorial_studio.services.memorials import MemorialRepository

_COLUMNS = (
    "id, user_id, first_name, middle_name, last_name, nickname, birth_date, "
    "death_date, title, headline, obituary, biography, profile_photo_url, "
    "cover_photo_url, photos, privacy, password, custom_url, status, "
    "payment_status, stripe_session_id, published_at, created_at, updated_at, "
    "last_saved_at"
)
_DATE_COLUMNS = ("birth_date", "death_date")
_LIFECYCLE_COLUMNS = {
    "status",
    "payment_status",
    "stripe_session_id",
    "stripe_payment_id",
    "published_at",
}


@dataclass
class SupabaseMemorialRepository(MemorialRepository):
    """Supabase implementation for memorial drafts."""

    client: Client

    def create_memorial(
        self, user_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        """Insert a draft row and return it."""
        now = datetime.now(tz=UTC).isoformat()
        payload = {
            **_to_row(content),
            "user_id": str(user_id),
            "status": STATUS_DRAFT,
            "payment_status": PAYMENT_UNPAID,
            "created_at": now,
            "updated_at": now,
            "last_saved_at": now,
        }
        response = self.client.table("memorials").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create memorial")
        return _to_record(response.data[0])

    def update_memorial(
        self, memorial_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        """Update content columns and return the row."""
        now = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table("memorials")
            .update({**_to_row(content), "updated_at": now, "last_saved_at": now})
            .eq("id", str(memorial_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update memorial")
        return _to_record(response.data[0])

    def get_memorial(self, memorial_id: UUID) -> MemorialRecord | None:
        """Return a memorial by id, if present."""
        response = (
            self.client.table("memorials")
            .select(_COLUMNS)
            .eq("id", str(memorial_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def find_id_by_custom_url(self, custom_url: str) -> UUID | None:
        """Return the memorial id holding a custom URL, if any."""
        response = (
            self.client.table("memorials")
            .select("id")
            .eq("custom_url", custom_url)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UUID(response.data[0]["id"])

    def list_drafts(self, user_id: UUID, limit: int) -> list[MemorialRecord]:
        """Return the most recently updated drafts for an account."""
        response = (
            self.client.table("memorials")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("status", STATUS_DRAFT)
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_to_record(row) for row in response.data or []]

    def get_contributor_permissions(
        self, memorial_id: UUID, account_id: UUID
    ) -> ContributorPermissions | None:
        """Return permissions for an accepted contributor, if any."""
        response = (
            self.client.table("memorial_contributors")
            .select("permissions, accepted_at")
            .eq("memorial_id", str(memorial_id))
            .eq("user_id", str(account_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        if not row.get("accepted_at"):
            return None
        permissions = row.get("permissions") or {}
        return ContributorPermissions(
            can_edit=bool(permissions.get("canEdit")),
            can_upload_photos=bool(permissions.get("canUploadPhotos")),
            can_invite_others=bool(permissions.get("canInviteOthers")),
            can_delete=bool(permissions.get("canDelete")),
        )

    def update_lifecycle(self, memorial_id: UUID, changes: dict[str, object]) -> None:
        """Update status, payment and publish columns."""
        unknown = set(changes) - _LIFECYCLE_COLUMNS
        if unknown:
            raise ValueError(f"Not lifecycle columns: {sorted(unknown)}")
        self.client.table("memorials").update(
            {**changes, "updated_at": datetime.now(tz=UTC).isoformat()}
        ).eq("id", str(memorial_id)).execute()


def _to_row(content: dict[str, object]) -> dict[str, object]:
    row = dict(content)
    for column in _DATE_COLUMNS:
        if column in row:
            row[column] = _date_or_none(row[column])
    if "custom_url" in row and not row["custom_url"]:
        row["custom_url"] = None
    return row


def _to_record(row: dict[str, object]) -> MemorialRecord:
    return MemorialRecord(
        id=UUID(row["id"]),
        user_id=UUID(row["user_id"]),
        draft=MemorialDraft.model_validate({**row, "photos": row.get("photos")}),
        status=row.get("status") or STATUS_DRAFT,
        payment_status=row.get("payment_status") or PAYMENT_UNPAID,
        stripe_session_id=row.get("stripe_session_id"),
        published_at=_parse_timestamp(row.get("published_at")),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
        last_saved_at=_parse_timestamp(row.get("last_saved_at")),
    )


def _date_or_none(value: object) -> str | None:
    parsed = parse_iso_date(value)
    return parsed.isoformat() if parsed is not None else None


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
