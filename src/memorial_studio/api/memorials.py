"""Memorial draft endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, status

from memorial_studio.api.dependencies import (
    current_account,
    get_container,
    optional_account,
)
from memorial_studio.api.models import (
    AutosaveRequest,
    draft_summary_payload,
    memorial_payload,
)
from memorial_studio.containers import AppContainer
from memorial_studio.domain.memorials import Account, MemorialDraft

router = APIRouter(prefix="/memorials", tags=["memorials"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_memorial(
    draft: MemorialDraft,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Create a draft owned by the caller."""
    record = container.memorial_service.save_draft(account, draft)
    return {"memorial": memorial_payload(record, is_owner=True)}


@router.get("/drafts")
async def list_drafts(
    limit: int = 5,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return drafts the caller can resume."""
    drafts = container.memorial_service.list_drafts(account, limit=min(limit, 50))
    return {"drafts": [draft_summary_payload(summary) for summary in drafts]}


@router.get("/check-url")
async def check_url(
    url: str,
    exclude_id: UUID | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Report whether a custom URL is well-formed and free."""
    result = container.memorial_service.check_url_availability(
        url.strip(), exclude_id=exclude_id
    )
    return {"available": result.available, "errors": result.errors}


@router.get("/{memorial_id}")
async def get_memorial(
    memorial_id: UUID,
    x_memorial_password: str | None = Header(default=None),
    viewer: Account | None = Depends(optional_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the editor view, or the public view when access rules allow."""
    view = container.memorial_service.get_memorial_view(
        memorial_id, viewer, x_memorial_password
    )
    return {
        "memorial": memorial_payload(
            view.record, is_owner=view.is_owner, can_edit=view.can_edit
        )
    }


@router.patch("/{memorial_id}")
async def update_memorial(
    memorial_id: UUID,
    draft: MemorialDraft,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Update the fields present in the body."""
    record = container.memorial_service.save_draft(account, draft, memorial_id)
    return {
        "memorial": memorial_payload(
            record, is_owner=record.user_id == account.id, can_edit=True
        )
    }


@router.post("/{memorial_id}/autosave")
async def autosave(
    memorial_id: UUID,
    body: AutosaveRequest,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Persist wizard progress for an unpublished draft."""
    record = container.memorial_service.autosave(account, memorial_id, body.data)
    return {
        "success": True,
        "message": "Changes saved",
        "savedAt": record.last_saved_at.isoformat() if record.last_saved_at else None,
    }


@router.get("/{memorial_id}/autosave")
async def autosave_status(
    memorial_id: UUID,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Describe when the draft was last saved."""
    report = container.memorial_service.save_status(account, memorial_id)
    return {
        "lastSavedAt": (
            report.last_saved_at.isoformat() if report.last_saved_at else None
        ),
        "displayText": report.display,
    }
