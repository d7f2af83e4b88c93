"""Payment domain models and the reconciliation rule."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

PAYMENT_UNPAID = "unpaid"
PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"

PROVIDER_PAID = "paid"
PROVIDER_UNPAID = "unpaid"
PROVIDER_EXPIRED = "expired"
PROVIDER_FAILED = "failed"


def reconcile(provider_status: str, stored_status: str | None) -> str:
    """Return the stored payment status that agrees with the provider.

    Shared by the webhook and verification paths so both converge the same
    way. `paid` is terminal: late expiry or failure notices never undo it.
    """
    current = stored_status or PAYMENT_UNPAID
    if current == PAYMENT_PAID:
        return PAYMENT_PAID
    if provider_status == PROVIDER_PAID:
        return PAYMENT_PAID
    if provider_status == PROVIDER_EXPIRED:
        return PAYMENT_UNPAID
    if provider_status == PROVIDER_FAILED:
        return PAYMENT_FAILED
    return current


@dataclass(frozen=True)
class CheckoutSession:
    """Provider-side checkout session."""

    id: str
    url: str | None
    payment_status: str
    status: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    customer_email: str | None = None

    @property
    def memorial_id(self) -> str | None:
        return self.metadata.get("memorial_id")

    @property
    def user_id(self) -> str | None:
        return self.metadata.get("user_id")


def checkout_session_from_payload(payload: dict[str, object]) -> CheckoutSession:
    """Build a session from the provider's JSON object."""
    metadata = payload.get("metadata") or {}
    payment_intent = payload.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")
    return CheckoutSession(
        id=str(payload["id"]),
        url=payload.get("url"),
        payment_status=str(payload.get("payment_status") or PROVIDER_UNPAID),
        status=payload.get("status"),
        metadata={str(key): str(value) for key, value in dict(metadata).items()},
        payment_intent=payment_intent,
        amount_total=payload.get("amount_total"),
        currency=payload.get("currency"),
        customer_email=payload.get("customer_email")
        or (payload.get("customer_details") or {}).get("email"),
    )


@dataclass(frozen=True)
class PaymentRecord:
    """Immutable record of a completed payment."""

    id: UUID
    memorial_id: UUID
    user_id: UUID | None
    stripe_session_id: str
    stripe_payment_intent: str | None
    amount: int
    currency: str
    status: str
    customer_email: str | None
    created_at: datetime | None


@dataclass(frozen=True)
class CheckoutStart:
    """Redirect target returned when checkout begins."""

    checkout_url: str
    session_id: str


@dataclass(frozen=True)
class VerificationResult:
    """Reconciled publish state returned to the success page."""

    memorial_id: UUID
    status: str
    published_at: datetime | None
