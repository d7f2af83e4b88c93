"""Checkout, webhook and payment verification endpoints."""

import logging

from fastapi import APIRouter, Depends, Header, Request

from memorial_studio.api.dependencies import current_account, get_container
from memorial_studio.api.models import (
    CheckoutRequest,
    VerifyPaymentRequest,
    session_status_payload,
    verification_payload,
)
from memorial_studio.containers import AppContainer
from memorial_studio.domain.memorials import Account

_logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["payments"])


@router.post("/checkout")
async def begin_checkout(
    body: CheckoutRequest,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Start a hosted checkout for an owned draft."""
    start = await container.payment_service.begin_checkout(account, body.memorial_id)
    return {"checkoutUrl": start.checkout_url, "sessionId": start.session_id}


@router.get("/checkout")
async def checkout_status(
    session_id: str,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return the status of the caller's checkout session."""
    session = await container.payment_service.get_session_status(account, session_id)
    return session_status_payload(session)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Apply a signed provider notification."""
    payload = await request.body()
    event_type = container.payment_service.handle_event(payload, stripe_signature)
    _logger.info("Payment webhook processed: type=%s", event_type)
    return {"received": True}


@router.post("/verify-payment")
async def verify_payment(
    body: VerifyPaymentRequest,
    account: Account = Depends(current_account),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Reconcile a returning checkout with the stored draft."""
    result = await container.payment_service.verify_payment(
        account, body.session_id, body.memorial_id
    )
    return verification_payload(result)
