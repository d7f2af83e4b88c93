"""Signed media uploads, renditions and deletion."""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from memorial_studio.domain.errors import (
    AccessDeniedError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from memorial_studio.domain.memorials import Account
from memorial_studio.services.memorials import MemorialRepository

_logger = logging.getLogger(__name__)

UPLOAD_FOLDERS = {
    "profile_photos": "memorials/profile_photos",
    "gallery": "memorials/gallery",
    "cover_photos": "memorials/cover_photos",
}

RENDITIONS = {
    "thumbnail": "c_fill,g_face,h_150,q_auto:good,w_150/f_auto",
    "gallery": "c_limit,h_600,q_auto:good,w_800/f_auto",
    "hero": "c_fill,e_improve,g_center,h_600,q_auto:best,w_1920/f_auto",
    "profile": "c_fill,g_face,h_400,q_auto:best,r_max,w_400/f_auto",
}


def sign_params(params: dict[str, object], api_secret: str) -> str:
    """Sign request params the way the media CDN expects (SHA-1, sorted)."""
    to_sign = "&".join(
        f"{key}={value}"
        for key, value in sorted(params.items())
        if value not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()  # noqa: S324


class MediaClient(Protocol):
    """Interface for media hosting operations."""

    async def destroy(self, public_id: str) -> None:
        """Delete an uploaded asset."""


@dataclass(frozen=True)
class UploadSignature:
    """Parameters a browser needs for a direct signed upload."""

    cloud_name: str
    api_key: str
    folder: str
    timestamp: int
    signature: str


@dataclass
class MediaService:
    """Media operations scoped to memorials an account owns."""

    memorial_repository: MemorialRepository
    client: MediaClient | None
    cloud_name: str | None
    api_key: str | None
    api_secret: str | None

    def sign_upload(
        self,
        account: Account,
        folder: str,
        memorial_id: UUID | None = None,
        timestamp: int | None = None,
    ) -> UploadSignature:
        """Sign a direct upload into one of the memorial folders."""
        cloud_name, api_key, api_secret = self._require_config()
        if folder not in UPLOAD_FOLDERS:
            raise ValidationFailedError({"folder": "Unknown upload folder"})
        if memorial_id is not None:
            self._require_owner(account, memorial_id)
        resolved_folder = UPLOAD_FOLDERS[folder]
        resolved_timestamp = timestamp or int(time.time())
        signature = sign_params(
            {"folder": resolved_folder, "timestamp": resolved_timestamp}, api_secret
        )
        return UploadSignature(
            cloud_name=cloud_name,
            api_key=api_key,
            folder=resolved_folder,
            timestamp=resolved_timestamp,
            signature=signature,
        )

    def rendition_url(self, public_id: str, context: str) -> str:
        """Return the derived image URL for a display context."""
        cloud_name, _, _ = self._require_config()
        transformation = RENDITIONS.get(context, RENDITIONS["gallery"])
        return (
            f"https://res.cloudinary.com/{cloud_name}/image/upload/"
            f"{transformation}/{public_id}"
        )

    async def delete_asset(
        self, account: Account, memorial_id: UUID, public_id: str
    ) -> None:
        """Delete an asset that belongs to one of the account's memorials."""
        self._require_config()
        self._require_owner(account, memorial_id)
        if not public_id.startswith("memorials/"):
            raise AccessDeniedError("Asset is not a memorial upload")
        await self.client.destroy(public_id)
        _logger.info(
            "Media deleted: memorial_id=%s public_id=%s", memorial_id, public_id
        )

    def _require_owner(self, account: Account, memorial_id: UUID) -> None:
        record = self.memorial_repository.get_memorial(memorial_id)
        if record is None:
            raise NotFoundError
        if record.user_id != account.id:
            raise AccessDeniedError("Unauthorized to upload to this memorial")

    def _require_config(self) -> tuple[str, str, str]:
        if (
            self.client is None
            or not self.cloud_name
            or not self.api_key
            or not self.api_secret
        ):
            raise ServiceUnavailableError("Media upload service is not configured")
        return self.cloud_name, self.api_key, self.api_secret
