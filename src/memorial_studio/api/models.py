"""Request bodies and response shaping for the HTTP API."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memorial_studio.domain.memorials import (
    DraftSummary,
    MemorialDraft,
    MemorialRecord,
)
from memorial_studio.domain.payments import CheckoutSession, VerificationResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AutosaveRequest(CamelModel):
    data: MemorialDraft


class CheckoutRequest(CamelModel):
    memorial_id: UUID


class VerifyPaymentRequest(CamelModel):
    session_id: str = Field(min_length=1)
    memorial_id: UUID


class UploadSignatureRequest(CamelModel):
    folder: str
    memorial_id: UUID | None = None


def memorial_payload(
    record: MemorialRecord, is_owner: bool, can_edit: bool = False
) -> dict[str, object]:
    """Serialize a memorial for the client; non-owners never see secrets."""
    can_edit = can_edit or is_owner
    exclude = {"id"} if is_owner else {"id", "password"}
    payload: dict[str, object] = record.draft.model_dump(
        mode="json", by_alias=True, exclude=exclude
    )
    payload.update(
        {
            "id": str(record.id),
            "status": record.status,
            "publishedAt": _iso(record.published_at),
            "createdAt": _iso(record.created_at),
            "updatedAt": _iso(record.updated_at),
            "isOwner": is_owner,
            "canEdit": can_edit,
        }
    )
    if can_edit:
        payload["lastSavedAt"] = _iso(record.last_saved_at)
    if is_owner:
        payload.update(
            {
                "userId": str(record.user_id),
                "paymentStatus": record.payment_status,
            }
        )
    return payload


def draft_summary_payload(summary: DraftSummary) -> dict[str, object]:
    return {
        "id": str(summary.id),
        "name": summary.name,
        "headline": summary.headline,
        "updatedAt": _iso(summary.updated_at),
    }


def session_status_payload(session: CheckoutSession) -> dict[str, object]:
    return {
        "status": session.payment_status,
        "memorialId": session.memorial_id,
        "customerEmail": session.customer_email,
        "amountTotal": session.amount_total,
        "currency": session.currency,
    }


def verification_payload(result: VerificationResult) -> dict[str, object]:
    return {
        "verified": True,
        "memorial": {
            "id": str(result.memorial_id),
            "status": result.status,
            "publishedAt": _iso(result.published_at),
        },
    }


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None
