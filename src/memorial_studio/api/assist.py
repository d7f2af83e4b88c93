"""AI writing assistance and media upload endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from memorial_studio.api.dependencies import current_account, get_container
from memorial_studio.api.models import UploadSignatureRequest
from memorial_studio.containers import AppContainer
from memorial_studio.domain.memorials import Account
from memorial_studio.services.obituary import ObituaryRequest

ai_router = APIRouter(prefix="/ai", tags=["ai"])
uploads_router = APIRouter(prefix="/uploads", tags=["uploads"])


@ai_router.post("/obituary")
async def generate_obituary(
    body: ObituaryRequest,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Draft an obituary from the supplied facts."""
    draft = await container.obituary_service.generate(account, body)
    return {"content": draft.content, "suggestions": draft.suggestions}


@uploads_router.post("/signature")
async def upload_signature(
    body: UploadSignatureRequest,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Sign a direct browser upload."""
    signature = container.media_service.sign_upload(
        account, body.folder, memorial_id=body.memorial_id
    )
    return {
        "signature": signature.signature,
        "timestamp": signature.timestamp,
        "cloudName": signature.cloud_name,
        "apiKey": signature.api_key,
        "folder": signature.folder,
    }


@uploads_router.delete("/{public_id:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_upload(
    public_id: str,
    memorial_id: UUID,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> None:
    """Delete an uploaded asset from one of the caller's memorials."""
    await container.media_service.delete_asset(account, memorial_id, public_id)
