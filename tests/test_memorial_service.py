"""Tests for the memorial draft service."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from memorial_studio.domain.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    PasswordRequiredError,
    RateLimitedError,
    ValidationFailedError,
)
from memorial_studio.domain.memorials import (
    STATUS_PUBLISHED,
    ContributorPermissions,
    MemorialDraft,
)
from memorial_studio.services.memorials import MemorialService, format_last_saved
from memorial_studio.services.rate_limit import InMemoryRateLimiter
from tests.conftest import OTHER, OWNER, InMemoryMemorialRepository, complete_draft


@pytest.fixture
def service(memorial_repository: InMemoryMemorialRepository) -> MemorialService:
    return MemorialService(
        repository=memorial_repository,
        autosave_limiter=InMemoryRateLimiter(max_requests=1, window_seconds=60),
    )


def test_create_then_fetch_round_trips_fields(service: MemorialService) -> None:
    draft = complete_draft(nickname="Mimi", custom_url="mary-doe", privacy="public")

    created = service.save_draft(OWNER, draft)
    fetched = service.get_draft(OWNER, created.id)

    assert fetched.user_id == OWNER.id
    assert fetched.draft.content() == draft.content()
    assert fetched.draft.id == created.id


def test_update_only_writes_fields_sent(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft(headline="Forever loved"))

    service.save_draft(
        OWNER, MemorialDraft.model_validate({"title": "Grandmother"}), record.id
    )

    stored = memorial_repository.get_memorial(record.id)
    assert stored.draft.title == "Grandmother"
    assert stored.draft.headline == "Forever loved"


def test_update_rejects_non_owner(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft())

    with pytest.raises(AccessDeniedError):
        service.save_draft(OTHER, MemorialDraft(title="Hijack"), record.id)


def test_contributor_with_edit_permission_can_update(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft())
    memorial_repository.contributors[(record.id, OTHER.id)] = ContributorPermissions(
        can_edit=True
    )

    updated = service.save_draft(OTHER, MemorialDraft(headline="Shared"), record.id)

    assert updated.draft.headline == "Shared"
    assert updated.user_id == OWNER.id


def test_update_missing_memorial_is_not_found(service: MemorialService) -> None:
    with pytest.raises(NotFoundError):
        service.save_draft(OWNER, MemorialDraft(title="x"), uuid4())


def test_custom_url_taken_by_another_memorial(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    memorial_repository.add(OTHER, complete_draft(custom_url="mary-doe"))

    with pytest.raises(ConflictError) as excinfo:
        service.save_draft(OWNER, complete_draft(custom_url="mary-doe"))

    assert excinfo.value.code == "url_taken"


def test_invalid_privacy_and_url_rejected(service: MemorialService) -> None:
    with pytest.raises(ValidationFailedError) as excinfo:
        service.save_draft(OWNER, MemorialDraft(privacy="secret", custom_url="AB"))

    assert set(excinfo.value.errors) == {"privacy", "customUrl"}


def test_check_url_availability(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft(custom_url="mary-doe"))

    assert not service.check_url_availability("mary-doe").available
    assert service.check_url_availability("mary-doe", exclude_id=record.id).available
    assert service.check_url_availability("john-smith-123").available
    invalid = service.check_url_availability("ab")
    assert not invalid.available
    assert invalid.errors


def test_public_view_rules(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    draft_record = memorial_repository.add(OWNER, complete_draft(privacy="public"))
    private_record = memorial_repository.add(
        OWNER, complete_draft(privacy="private"), status=STATUS_PUBLISHED
    )
    protected_record = memorial_repository.add(
        OWNER,
        complete_draft(privacy="password_protected", password="rosary"),
        status=STATUS_PUBLISHED,
    )

    with pytest.raises(AccessDeniedError):
        service.get_public_memorial(draft_record.id, OTHER)
    with pytest.raises(AccessDeniedError):
        service.get_public_memorial(private_record.id, None)
    with pytest.raises(PasswordRequiredError):
        service.get_public_memorial(protected_record.id, None, "wrong")

    record, is_owner = service.get_public_memorial(
        protected_record.id, None, "rosary"
    )
    assert not is_owner
    assert record.draft.password is None

    record, is_owner = service.get_public_memorial(draft_record.id, OWNER)
    assert is_owner


def test_list_drafts_uses_display_name(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    memorial_repository.add(OWNER, MemorialDraft())
    memorial_repository.add(OWNER, complete_draft(middle_name="Ann"))
    memorial_repository.add(OWNER, complete_draft(), status=STATUS_PUBLISHED)
    memorial_repository.add(OTHER, complete_draft())

    names = sorted(summary.name for summary in service.list_drafts(OWNER))

    assert names == ["Mary Ann Doe", "Untitled Memorial"]


def test_autosave_is_rate_limited_per_memorial(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft())

    service.autosave(OWNER, record.id, MemorialDraft(headline="One"))
    with pytest.raises(RateLimitedError):
        service.autosave(OWNER, record.id, MemorialDraft(headline="Two"))

    assert memorial_repository.get_memorial(record.id).draft.headline == "One"


def test_autosave_refuses_published_memorial(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(
        OWNER, complete_draft(), status=STATUS_PUBLISHED
    )

    with pytest.raises(ConflictError) as excinfo:
        service.autosave(OWNER, record.id, MemorialDraft(headline="Late"))

    assert excinfo.value.code == "already_published"


def test_format_last_saved_buckets() -> None:
    now = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    assert format_last_saved(None, now) == "Not saved yet"
    assert format_last_saved(now - timedelta(seconds=3), now) == "Just saved"
    assert format_last_saved(now - timedelta(seconds=30), now) == "30 seconds ago"
    assert format_last_saved(now - timedelta(minutes=1), now) == "1 minute ago"
    assert format_last_saved(now - timedelta(hours=5), now) == "5 hours ago"
    assert format_last_saved(now - timedelta(days=3), now) == "2024-05-29"


def test_save_status_reports_display(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft())

    report = service.save_status(
        OWNER, record.id, now=record.last_saved_at + timedelta(seconds=20)
    )

    assert report.display == "20 seconds ago"


def test_memorial_view_gives_editors_the_draft(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(OWNER, complete_draft())
    memorial_repository.contributors[(record.id, OTHER.id)] = ContributorPermissions(
        can_edit=True
    )

    owner_view = service.get_memorial_view(record.id, OWNER)
    editor_view = service.get_memorial_view(record.id, OTHER)

    assert owner_view.is_owner and owner_view.can_edit
    assert not editor_view.is_owner
    assert editor_view.can_edit
    assert editor_view.record.id == record.id
    with pytest.raises(AccessDeniedError):
        service.get_memorial_view(record.id, None)


def test_memorial_view_falls_back_to_public_rules(
    service: MemorialService, memorial_repository: InMemoryMemorialRepository
) -> None:
    record = memorial_repository.add(
        OWNER, complete_draft(privacy="public"), status=STATUS_PUBLISHED
    )
    memorial_repository.contributors[(record.id, OTHER.id)] = ContributorPermissions(
        can_edit=False
    )

    view = service.get_memorial_view(record.id, OTHER)

    assert not view.can_edit
    assert not view.is_owner
    assert view.record.stripe_session_id is None
    with pytest.raises(NotFoundError):
        service.get_memorial_view(uuid4(), OTHER)
