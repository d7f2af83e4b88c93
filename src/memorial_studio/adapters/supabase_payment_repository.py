"""Supabase-backed payment repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from memorial_studio.domain.payments import PaymentRecord
from memorial_studio.services.payments import PaymentRepository

_COLUMNS = (
    "id, memorial_id, user_id, stripe_session_id, stripe_payment_intent, amount, "
    "currency, status, customer_email, created_at"
)


@dataclass
class SupabasePaymentRepository(PaymentRepository):
    """Supabase implementation for completed payments."""

    client: Client

    def get_payment_by_session(self, stripe_session_id: str) -> PaymentRecord | None:
        """Return the payment recorded for a checkout session, if any."""
        response = (
            self.client.table("payments")
            .select(_COLUMNS)
            .eq("stripe_session_id", stripe_session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return PaymentRecord(
            id=UUID(row["id"]),
            memorial_id=UUID(row["memorial_id"]),
            user_id=UUID(row["user_id"]) if row.get("user_id") else None,
            stripe_session_id=row["stripe_session_id"],
            stripe_payment_intent=row.get("stripe_payment_intent"),
            amount=int(row["amount"]),
            currency=row["currency"],
            status=row["status"],
            customer_email=row.get("customer_email"),
            created_at=(
                datetime.fromisoformat(row["created_at"])
                if row.get("created_at")
                else None
            ),
        )

    def record_payment_if_absent(self, payment: dict[str, object]) -> bool:
        """Insert a payment keyed by session id; return False when it exists.

        The unique index on stripe_session_id makes concurrent deliveries of
        the same notification collapse into one row.
        """
        response = (
            self.client.table("payments")
            .upsert(
                payment,
                on_conflict="stripe_session_id",
                ignore_duplicates=True,
            )
            .execute()
        )
        return bool(response.data)
