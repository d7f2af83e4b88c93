"""HTTP client the studio uses to reach the memorial API."""

from dataclasses import dataclass
from uuid import UUID

import httpx

from memorial_studio.domain.errors import AuthenticationRequiredError, RemoteApiError
from memorial_studio.domain.memorials import MemorialDraft
from memorial_studio.domain.payments import CheckoutStart
from memorial_studio.studio.autosave import DraftSaver
from memorial_studio.studio.orchestrator import CheckoutStarter


@dataclass
class HttpxMemorialApiClient(DraftSaver, CheckoutStarter):
    """HTTPX-backed draft saver and checkout starter.

    Cancelling the awaiting task aborts the request in flight.
    """

    base_url: str
    access_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, access_token: str) -> "HttpxMemorialApiClient":
        """Create an API client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=access_token,
            http_client=httpx.AsyncClient(),
        )

    async def save(self, draft: MemorialDraft, memorial_id: UUID | None) -> UUID:
        """Create the draft when no id is known, otherwise update it."""
        body = draft.model_dump(mode="json", by_alias=True, exclude={"id"})
        if memorial_id is None:
            response = await self.http_client.post(
                f"{self.base_url}/memorials",
                json=body,
                headers=self._headers(),
                timeout=15,
            )
        else:
            response = await self.http_client.patch(
                f"{self.base_url}/memorials/{memorial_id}",
                json=body,
                headers=self._headers(),
                timeout=15,
            )
        _raise_for_error(response)
        return UUID(response.json()["memorial"]["id"])

    async def begin_checkout(self, memorial_id: UUID) -> CheckoutStart:
        """Start checkout for a saved draft."""
        response = await self.http_client.post(
            f"{self.base_url}/stripe/checkout",
            json={"memorialId": str(memorial_id)},
            headers=self._headers(),
            timeout=15,
        )
        _raise_for_error(response)
        payload = response.json()
        return CheckoutStart(
            checkout_url=payload["checkoutUrl"], session_id=payload["sessionId"]
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if response.status_code == 401 and payload.get("code") in {None, "auth_required"}:
        raise AuthenticationRequiredError(payload.get("error"))
    raise RemoteApiError(
        response.status_code,
        str(payload.get("code") or "http_error"),
        payload.get("error") or response.reason_phrase,
    )
