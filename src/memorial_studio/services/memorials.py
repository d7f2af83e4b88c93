"""Memorial draft lifecycle: create-or-update, access checks, autosave."""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from memorial_studio.domain.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    PasswordRequiredError,
    RateLimitedError,
    ValidationFailedError,
)
from memorial_studio.domain.memorials import (
    PRIVACY_MODES,
    PRIVACY_PASSWORD,
    PRIVACY_PRIVATE,
    Account,
    ContributorPermissions,
    DraftSummary,
    MemorialDraft,
    MemorialRecord,
    display_name,
)
from memorial_studio.domain.validation import custom_url_errors
from memorial_studio.services.rate_limit import RateLimiter

_logger = logging.getLogger(__name__)


class MemorialRepository(Protocol):
    """Persistence interface for memorial rows."""

    def create_memorial(
        self, user_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        """Insert a draft row and return it."""

    def update_memorial(
        self, memorial_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        """Update content columns and return the row."""

    def get_memorial(self, memorial_id: UUID) -> MemorialRecord | None:
        """Return a memorial by id, if present."""

    def find_id_by_custom_url(self, custom_url: str) -> UUID | None:
        """Return the memorial id holding a custom URL, if any."""

    def list_drafts(self, user_id: UUID, limit: int) -> list[MemorialRecord]:
        """Return the most recently updated drafts for an account."""

    def get_contributor_permissions(
        self, memorial_id: UUID, account_id: UUID
    ) -> ContributorPermissions | None:
        """Return contributor permissions granted to an account, if any."""

    def update_lifecycle(self, memorial_id: UUID, changes: dict[str, object]) -> None:
        """Update status, payment and publish columns."""


@dataclass(frozen=True)
class UrlAvailability:
    """Result of a custom URL availability check."""

    available: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MemorialView:
    """A memorial as one viewer may see it."""

    record: MemorialRecord
    is_owner: bool
    can_edit: bool


@dataclass(frozen=True)
class SaveStatusReport:
    """Last-saved information for the studio header."""

    last_saved_at: datetime | None
    display: str


@dataclass
class MemorialService:
    """Application service for memorial drafts."""

    repository: MemorialRepository
    autosave_limiter: RateLimiter

    def save_draft(
        self,
        account: Account,
        draft: MemorialDraft,
        memorial_id: UUID | None = None,
    ) -> MemorialRecord:
        """Create a draft when no id is given, otherwise update it."""
        _check_draft_fields(draft)
        if memorial_id is None:
            self._ensure_url_available(draft.custom_url, exclude_id=None)
            record = self.repository.create_memorial(account.id, draft.content())
            _logger.info(
                "Memorial draft created: memorial_id=%s user_id=%s",
                record.id,
                account.id,
            )
            return record
        self._load_editable(account, memorial_id)
        self._ensure_url_available(draft.custom_url, exclude_id=memorial_id)
        return self.repository.update_memorial(memorial_id, draft.changes())

    def get_draft(self, account: Account, memorial_id: UUID) -> MemorialRecord:
        """Return a memorial the account may edit."""
        return self._load_editable(account, memorial_id)

    def get_memorial_view(
        self,
        memorial_id: UUID,
        viewer: Account | None,
        password: str | None = None,
    ) -> MemorialView:
        """Return the editor view to owners and editors, else the public view."""
        if viewer is not None:
            record = self.repository.get_memorial(memorial_id)
            if record is not None and self._can_edit(viewer, record):
                return MemorialView(
                    record=record,
                    is_owner=viewer.id == record.user_id,
                    can_edit=True,
                )
        record, is_owner = self.get_public_memorial(memorial_id, viewer, password)
        return MemorialView(record=record, is_owner=is_owner, can_edit=is_owner)

    def get_public_memorial(
        self,
        memorial_id: UUID,
        viewer: Account | None,
        password: str | None = None,
    ) -> tuple[MemorialRecord, bool]:
        """Return a memorial for display and whether the viewer owns it."""
        record = self.repository.get_memorial(memorial_id)
        if record is None:
            raise NotFoundError
        if viewer is not None and viewer.id == record.user_id:
            return record, True
        return _public_record(record, password), False

    def list_drafts(self, account: Account, limit: int = 5) -> list[DraftSummary]:
        """Return drafts the account can continue."""
        return [
            DraftSummary(
                id=record.id,
                name=display_name(record.draft) or "Untitled Memorial",
                headline=record.draft.headline,
                updated_at=record.updated_at,
            )
            for record in self.repository.list_drafts(account.id, limit)
        ]

    def check_url_availability(
        self, custom_url: str, exclude_id: UUID | None = None
    ) -> UrlAvailability:
        """Check format rules, then whether another memorial holds the URL."""
        errors = custom_url_errors(custom_url)
        if errors:
            return UrlAvailability(available=False, errors=errors)
        holder = self.repository.find_id_by_custom_url(custom_url)
        return UrlAvailability(available=holder is None or holder == exclude_id)

    def autosave(
        self, account: Account, memorial_id: UUID, draft: MemorialDraft
    ) -> MemorialRecord:
        """Persist wizard progress for an unpublished draft."""
        if not self.autosave_limiter.check(f"{account.id}-{memorial_id}"):
            raise RateLimitedError("Rate limited - please wait before saving again")
        record = self._load_editable(account, memorial_id)
        if record.is_published:
            raise ConflictError(
                "already_published",
                "Cannot auto-save published memorials. Use the edit function instead.",
            )
        _check_draft_fields(draft)
        self._ensure_url_available(draft.custom_url, exclude_id=memorial_id)
        return self.repository.update_memorial(memorial_id, draft.changes())

    def save_status(
        self, account: Account, memorial_id: UUID, now: datetime | None = None
    ) -> SaveStatusReport:
        """Describe how long ago the draft was last saved."""
        record = self._load_editable(account, memorial_id)
        current = now or datetime.now(tz=UTC)
        return SaveStatusReport(
            last_saved_at=record.last_saved_at,
            display=format_last_saved(record.last_saved_at, current),
        )

    def _load_editable(self, account: Account, memorial_id: UUID) -> MemorialRecord:
        record = self.repository.get_memorial(memorial_id)
        if record is None:
            raise NotFoundError
        if not self._can_edit(account, record):
            raise AccessDeniedError("You do not have permission to edit this memorial.")
        return record

    def _can_edit(self, account: Account, record: MemorialRecord) -> bool:
        if record.user_id == account.id:
            return True
        permissions = self.repository.get_contributor_permissions(
            record.id, account.id
        )
        return permissions is not None and permissions.can_edit

    def _ensure_url_available(
        self, custom_url: str | None, exclude_id: UUID | None
    ) -> None:
        if not custom_url:
            return
        holder = self.repository.find_id_by_custom_url(custom_url)
        if holder is not None and holder != exclude_id:
            raise ConflictError("url_taken", "Custom URL already taken")


def format_last_saved(last_saved_at: datetime | None, now: datetime) -> str:
    """Format a last-saved timestamp relative to now."""
    if last_saved_at is None:
        return "Not saved yet"
    seconds = int((now - last_saved_at).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    if seconds < 10:
        return "Just saved"
    if seconds < 60:
        return f"{seconds} seconds ago"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return last_saved_at.date().isoformat()


def _check_draft_fields(draft: MemorialDraft) -> None:
    errors: dict[str, str] = {}
    if draft.privacy not in PRIVACY_MODES:
        errors["privacy"] = "Choose public, private, or password protected"
    url_errors = custom_url_errors(draft.custom_url)
    if url_errors:
        errors["customUrl"] = " ".join(url_errors)
    if errors:
        raise ValidationFailedError(errors, "Invalid data")


def _without_secrets(record: MemorialRecord) -> MemorialRecord:
    return MemorialRecord(
        id=record.id,
        user_id=record.user_id,
        draft=record.draft.model_copy(update={"password": None}),
        status=record.status,
        payment_status=record.payment_status,
        stripe_session_id=None,
        published_at=record.published_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
        last_saved_at=None,
    )


def _public_record(record: MemorialRecord, password: str | None) -> MemorialRecord:
    if not record.is_published:
        raise AccessDeniedError("This memorial is not yet published.")
    if record.draft.privacy == PRIVACY_PRIVATE:
        raise AccessDeniedError("This memorial is private.")
    if record.draft.privacy == PRIVACY_PASSWORD:
        stored = record.draft.password or ""
        if not password or not secrets.compare_digest(password, stored):
            raise PasswordRequiredError
    return _without_secrets(record)
