"""Publish/payment handoff between drafts, checkout sessions and stored rows."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from memorial_studio.domain.errors import (
    AccessDeniedError,
    AlreadyPaidError,
    NotFoundError,
    PaymentNotCompletedError,
    PaymentNotConfiguredError,
    SessionMismatchError,
    ValidationFailedError,
)
from memorial_studio.domain.memorials import (
    STATUS_PUBLISHED,
    Account,
    MemorialRecord,
    display_name,
)
from memorial_studio.domain.payments import (
    PAYMENT_PAID,
    PAYMENT_PENDING,
    PAYMENT_UNPAID,
    PROVIDER_EXPIRED,
    PROVIDER_FAILED,
    PROVIDER_PAID,
    CheckoutSession,
    CheckoutStart,
    PaymentRecord,
    VerificationResult,
    checkout_session_from_payload,
    reconcile,
)
from memorial_studio.domain.validation import validate_memorial
from memorial_studio.services.memorials import MemorialRepository

_logger = logging.getLogger(__name__)

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_CHECKOUT_EXPIRED = "checkout.session.expired"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"


class CheckoutGateway(Protocol):
    """Interface for the hosted payment provider."""

    async def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: str | None,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Create a hosted checkout session."""

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """Fetch the current state of a checkout session."""

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """Verify a signed notification and return the event payload."""


class PaymentRepository(Protocol):
    """Persistence interface for payment records."""

    def get_payment_by_session(self, stripe_session_id: str) -> PaymentRecord | None:
        """Return the payment recorded for a checkout session, if any."""

    def record_payment_if_absent(self, payment: dict[str, object]) -> bool:
        """Insert a payment keyed by session id; return False when it exists."""


@dataclass
class PaymentService:
    """Moves a draft from unpaid through checkout to paid and published."""

    memorial_repository: MemorialRepository
    payment_repository: PaymentRepository
    gateway: CheckoutGateway | None
    app_url: str
    price_id: str
    default_amount: int = 14900
    default_currency: str = "usd"

    async def begin_checkout(
        self, account: Account, memorial_id: UUID
    ) -> CheckoutStart:
        """Create a checkout session for an owned, unpaid, publishable draft."""
        gateway = self._require_gateway()
        record = self.memorial_repository.get_memorial(memorial_id)
        if record is None or record.user_id != account.id:
            raise NotFoundError("Memorial not found or access denied")
        if record.payment_status == PAYMENT_PAID:
            raise AlreadyPaidError
        validation = validate_memorial(record.draft)
        if not validation.is_valid:
            raise ValidationFailedError(validation.errors)

        base_url = self.app_url.rstrip("/")
        session = await gateway.create_checkout_session(
            price_id=self.price_id,
            success_url=(
                f"{base_url}/memorials/{memorial_id}/success"
                "?session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=f"{base_url}/memorials/{memorial_id}/edit",
            customer_email=account.email,
            metadata={
                "memorial_id": str(memorial_id),
                "user_id": str(account.id),
                "deceased_name": display_name(record.draft),
            },
        )
        self.memorial_repository.update_lifecycle(
            memorial_id,
            {"payment_status": PAYMENT_PENDING, "stripe_session_id": session.id},
        )
        _logger.info(
            "Checkout started: memorial_id=%s session_id=%s", memorial_id, session.id
        )
        return CheckoutStart(checkout_url=session.url or "", session_id=session.id)

    def handle_event(self, payload: bytes, signature: str | None) -> str:
        """Apply a signed provider notification; return the event type."""
        gateway = self._require_gateway()
        event = gateway.construct_event(payload, signature)
        event_type = str(event.get("type", ""))
        data_object = (event.get("data") or {}).get("object") or {}

        if event_type == EVENT_CHECKOUT_COMPLETED:
            session = checkout_session_from_payload(data_object)
            record = self._record_for_metadata(session.metadata)
            if record is None:
                _logger.error(
                    "Checkout session without a known memorial: session_id=%s",
                    session.id,
                )
                return event_type
            self._apply_paid(session, record)
        elif event_type == EVENT_CHECKOUT_EXPIRED:
            session = checkout_session_from_payload(data_object)
            record = self._record_for_metadata(session.metadata)
            if record is not None and record.stripe_session_id in {None, session.id}:
                self._apply_provider_status(record, PROVIDER_EXPIRED)
        elif event_type == EVENT_PAYMENT_FAILED:
            record = self._record_for_metadata(data_object.get("metadata") or {})
            if record is not None:
                self._apply_provider_status(record, PROVIDER_FAILED)
        else:
            _logger.info("Unhandled payment event type: %s", event_type)
        return event_type

    async def verify_payment(
        self, account: Account, session_id: str, memorial_id: UUID
    ) -> VerificationResult:
        """Re-query the provider and publish if the webhook has not yet."""
        gateway = self._require_gateway()
        session = await gateway.retrieve_checkout_session(session_id)
        if session.payment_status != PROVIDER_PAID:
            raise PaymentNotCompletedError
        if session.memorial_id != str(memorial_id):
            raise SessionMismatchError
        record = self.memorial_repository.get_memorial(memorial_id)
        if record is None or record.user_id != account.id:
            raise NotFoundError
        published_at = self._apply_paid(session, record)
        return VerificationResult(
            memorial_id=memorial_id,
            status=STATUS_PUBLISHED,
            published_at=published_at,
        )

    async def get_session_status(
        self, account: Account, session_id: str
    ) -> CheckoutSession:
        """Return a checkout session owned by the account."""
        gateway = self._require_gateway()
        session = await gateway.retrieve_checkout_session(session_id)
        if session.user_id != str(account.id):
            raise AccessDeniedError
        return session

    def _apply_paid(
        self, session: CheckoutSession, record: MemorialRecord
    ) -> datetime | None:
        changes: dict[str, object] = {}
        next_status = reconcile(PROVIDER_PAID, record.payment_status)
        if next_status != record.payment_status:
            changes["payment_status"] = next_status
        published_at = record.published_at
        if not record.is_published:
            published_at = datetime.now(tz=UTC)
            changes["status"] = STATUS_PUBLISHED
            changes["published_at"] = published_at.isoformat()
        if changes:
            if session.payment_intent:
                changes["stripe_payment_id"] = session.payment_intent
            self.memorial_repository.update_lifecycle(record.id, changes)
            _logger.info(
                "Memorial published: memorial_id=%s session_id=%s",
                record.id,
                session.id,
            )

        if self.payment_repository.get_payment_by_session(session.id) is not None:
            _logger.info("Payment already recorded: session_id=%s", session.id)
            return published_at
        created = self.payment_repository.record_payment_if_absent(
            {
                "memorial_id": str(record.id),
                "user_id": session.user_id or str(record.user_id),
                "stripe_session_id": session.id,
                "stripe_payment_intent": session.payment_intent,
                "amount": session.amount_total or self.default_amount,
                "currency": session.currency or self.default_currency,
                "status": "completed",
                "customer_email": session.customer_email,
            }
        )
        if not created:
            _logger.info("Payment already recorded: session_id=%s", session.id)
        return published_at

    def _apply_provider_status(self, record: MemorialRecord, provider: str) -> None:
        next_status = reconcile(provider, record.payment_status)
        if next_status == record.payment_status:
            return
        changes: dict[str, object] = {"payment_status": next_status}
        if next_status == PAYMENT_UNPAID:
            changes["stripe_session_id"] = None
        self.memorial_repository.update_lifecycle(record.id, changes)
        _logger.info(
            "Payment status changed: memorial_id=%s %s -> %s",
            record.id,
            record.payment_status,
            next_status,
        )

    def _record_for_metadata(self, metadata: dict) -> MemorialRecord | None:
        raw_id = metadata.get("memorial_id")
        if not raw_id:
            return None
        try:
            memorial_id = UUID(str(raw_id))
        except ValueError:
            return None
        record = self.memorial_repository.get_memorial(memorial_id)
        if record is not None and metadata.get("user_id") != str(record.user_id):
            _logger.error(
                "Payment event owner does not match memorial: memorial_id=%s",
                memorial_id,
            )
            return None
        return record

    def _require_gateway(self) -> CheckoutGateway:
        if self.gateway is None:
            raise PaymentNotConfiguredError
        return self.gateway
