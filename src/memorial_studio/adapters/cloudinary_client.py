"""Cloudinary admin API client."""

import time
from dataclasses import dataclass

import httpx

from memorial_studio.services.media import MediaClient, sign_params


@dataclass
class HttpxCloudinaryClient(MediaClient):
    """HTTPX-backed Cloudinary client for signed admin calls."""

    cloud_name: str
    api_key: str
    api_secret: str
    http_client: httpx.AsyncClient
    base_url: str = "https://api.cloudinary.com/v1_1"

    @classmethod
    def create(
        cls, cloud_name: str, api_key: str, api_secret: str
    ) -> "HttpxCloudinaryClient":
        """Create a Cloudinary client with a managed httpx session."""
        return cls(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            http_client=httpx.AsyncClient(),
        )

    async def destroy(self, public_id: str) -> None:
        """Delete an uploaded image by public id."""
        params: dict[str, object] = {
            "public_id": public_id,
            "timestamp": int(time.time()),
        }
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        response = await self.http_client.post(
            f"{self.base_url}/{self.cloud_name}/image/destroy",
            data=params,
            timeout=15,
        )
        response.raise_for_status()
        result = response.json().get("result")
        if result not in {"ok", "not found"}:
            raise RuntimeError(f"Failed to delete media asset: {result}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
