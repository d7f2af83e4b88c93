"""Shared test fixtures."""

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from memorial_studio.config import Settings
from memorial_studio.containers import AppContainer
from memorial_studio.domain.errors import InvalidSignatureError
from memorial_studio.domain.memorials import (
    STATUS_DRAFT,
    Account,
    ContributorPermissions,
    MemorialDraft,
    MemorialRecord,
)
from memorial_studio.domain.payments import (
    PAYMENT_UNPAID,
    CheckoutSession,
    PaymentRecord,
)
from memorial_studio.services.accounts import AccountService, AuthGateway
from memorial_studio.services.media import MediaClient, MediaService
from memorial_studio.services.memorials import MemorialRepository, MemorialService
from memorial_studio.services.obituary import ObituaryService, TextGenerationClient
from memorial_studio.services.payments import (
    CheckoutGateway,
    PaymentRepository,
    PaymentService,
)
from memorial_studio.services.rate_limit import InMemoryRateLimiter

OWNER = Account(
    id=UUID("11111111-1111-1111-1111-111111111111"), email="owner@example.com"
)
OTHER = Account(
    id=UUID("22222222-2222-2222-2222-222222222222"), email="other@example.com"
)
OWNER_HEADERS = {"Authorization": "Bearer owner-token"}
OTHER_HEADERS = {"Authorization": "Bearer other-token"}


def complete_draft(**overrides: object) -> MemorialDraft:
    """Return a draft that passes every publish rule."""
    values: dict[str, object] = {
        "first_name": "Mary",
        "last_name": "Doe",
        "birth_date": "1940-03-25",
        "death_date": "2020-08-15",
        "title": "Beloved Mother",
    }
    values.update(overrides)
    return MemorialDraft(**values)


@dataclass
class InMemoryMemorialRepository(MemorialRepository):
    """In-memory memorial repository for tests."""

    records: dict[UUID, MemorialRecord] = field(default_factory=dict)
    contributors: dict[tuple[UUID, UUID], ContributorPermissions] = field(
        default_factory=dict
    )
    lifecycle_updates: list[tuple[UUID, dict[str, object]]] = field(
        default_factory=list
    )
    payment_ids: dict[UUID, str] = field(default_factory=dict)
    writes: int = 0

    def add(
        self,
        owner: Account,
        draft: MemorialDraft,
        **lifecycle: object,
    ) -> MemorialRecord:
        record = self.create_memorial(owner.id, draft.content())
        self.writes -= 1
        record = replace(record, **lifecycle)
        self.records[record.id] = record
        return record

    def create_memorial(
        self, user_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        self.writes += 1
        now = datetime.now(tz=UTC)
        memorial_id = uuid4()
        record = MemorialRecord(
            id=memorial_id,
            user_id=user_id,
            draft=MemorialDraft.model_validate({**content, "id": memorial_id}),
            status=STATUS_DRAFT,
            payment_status=PAYMENT_UNPAID,
            stripe_session_id=None,
            published_at=None,
            created_at=now,
            updated_at=now,
            last_saved_at=now,
        )
        self.records[memorial_id] = record
        return record

    def update_memorial(
        self, memorial_id: UUID, content: dict[str, object]
    ) -> MemorialRecord:
        self.writes += 1
        record = self.records[memorial_id]
        now = datetime.now(tz=UTC)
        record = replace(
            record,
            draft=record.draft.merged(content),
            updated_at=now,
            last_saved_at=now,
        )
        self.records[memorial_id] = record
        return record

    def get_memorial(self, memorial_id: UUID) -> MemorialRecord | None:
        return self.records.get(memorial_id)

    def find_id_by_custom_url(self, custom_url: str) -> UUID | None:
        for record in self.records.values():
            if record.draft.custom_url == custom_url:
                return record.id
        return None

    def list_drafts(self, user_id: UUID, limit: int) -> list[MemorialRecord]:
        drafts = [
            record
            for record in self.records.values()
            if record.user_id == user_id and record.status == STATUS_DRAFT
        ]
        drafts.sort(key=lambda record: record.updated_at, reverse=True)
        return drafts[:limit]

    def get_contributor_permissions(
        self, memorial_id: UUID, account_id: UUID
    ) -> ContributorPermissions | None:
        return self.contributors.get((memorial_id, account_id))

    def update_lifecycle(self, memorial_id: UUID, changes: dict[str, object]) -> None:
        self.lifecycle_updates.append((memorial_id, dict(changes)))
        values = dict(changes)
        payment_id = values.pop("stripe_payment_id", None)
        if payment_id:
            self.payment_ids[memorial_id] = payment_id
        if isinstance(values.get("published_at"), str):
            values["published_at"] = datetime.fromisoformat(values["published_at"])
        self.records[memorial_id] = replace(self.records[memorial_id], **values)


@dataclass
class InMemoryPaymentRepository(PaymentRepository):
    """In-memory payment repository for tests."""

    payments: dict[str, PaymentRecord] = field(default_factory=dict)
    insert_attempts: int = 0

    def get_payment_by_session(self, stripe_session_id: str) -> PaymentRecord | None:
        return self.payments.get(stripe_session_id)

    def record_payment_if_absent(self, payment: dict[str, object]) -> bool:
        self.insert_attempts += 1
        session_id = str(payment["stripe_session_id"])
        if session_id in self.payments:
            return False
        self.payments[session_id] = PaymentRecord(
            id=uuid4(),
            memorial_id=UUID(str(payment["memorial_id"])),
            user_id=UUID(str(payment["user_id"])) if payment.get("user_id") else None,
            stripe_session_id=session_id,
            stripe_payment_intent=payment.get("stripe_payment_intent"),
            amount=int(payment["amount"]),
            currency=str(payment["currency"]),
            status=str(payment["status"]),
            customer_email=payment.get("customer_email"),
            created_at=datetime.now(tz=UTC),
        )
        return True


@dataclass
class FakeAuthGateway(AuthGateway):
    """Maps fixed tokens to accounts."""

    tokens: dict[str, Account] = field(
        default_factory=lambda: {"owner-token": OWNER, "other-token": OTHER}
    )

    def get_account(self, access_token: str) -> Account | None:
        return self.tokens.get(access_token)


@dataclass
class FakeCheckoutGateway(CheckoutGateway):
    """Records created sessions and serves lookups from memory."""

    sessions: dict[str, CheckoutSession] = field(default_factory=dict)
    created: list[dict[str, object]] = field(default_factory=list)
    failure: Exception | None = None

    async def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: str | None,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        if self.failure is not None:
            raise self.failure
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(
            {
                "price_id": price_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
                "metadata": metadata,
            }
        )
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status="unpaid",
            status="open",
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        if self.failure is not None:
            raise self.failure
        return self.sessions[session_id]

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        if signature != "valid-signature":
            raise InvalidSignatureError
        return json.loads(payload)

    def mark_paid(self, session_id: str, payment_intent: str = "pi_test_1") -> None:
        self.sessions[session_id] = replace(
            self.sessions[session_id],
            payment_status="paid",
            status="complete",
            payment_intent=payment_intent,
            amount_total=14900,
            currency="usd",
        )


@dataclass
class FakeTextClient(TextGenerationClient):
    """Returns canned text and records prompts."""

    output: str = "Mary Doe lived a life of faith.\n\n\n\nCall 555-123-4567."
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate(
        self, *, model: str, instructions: str, prompt: str, store: bool
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "instructions": instructions,
                "prompt": prompt,
                "store": store,
            }
        )
        return self.output


@dataclass
class FakeMediaClient(MediaClient):
    destroyed: list[str] = field(default_factory=list)

    async def destroy(self, public_id: str) -> None:
        self.destroyed.append(public_id)


def signed_event(event_type: str, data_object: dict[str, object]) -> bytes:
    return json.dumps({"type": event_type, "data": {"object": data_object}}).encode()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        app_url="https://memorials.example.com",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="cloud-key",
        cloudinary_api_secret="cloud-secret",
    )


@pytest.fixture
def memorial_repository() -> InMemoryMemorialRepository:
    return InMemoryMemorialRepository()


@pytest.fixture
def payment_repository() -> InMemoryPaymentRepository:
    return InMemoryPaymentRepository()


@pytest.fixture
def checkout_gateway() -> FakeCheckoutGateway:
    return FakeCheckoutGateway()


@pytest.fixture
def text_client() -> FakeTextClient:
    return FakeTextClient()


@pytest.fixture
def media_client() -> FakeMediaClient:
    return FakeMediaClient()


@pytest.fixture
def payment_service(
    settings: Settings,
    memorial_repository: InMemoryMemorialRepository,
    payment_repository: InMemoryPaymentRepository,
    checkout_gateway: FakeCheckoutGateway,
) -> PaymentService:
    return PaymentService(
        memorial_repository=memorial_repository,
        payment_repository=payment_repository,
        gateway=checkout_gateway,
        app_url=settings.app_url,
        price_id=settings.stripe_price_id,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    memorial_repository: InMemoryMemorialRepository,
    payment_service: PaymentService,
    text_client: FakeTextClient,
    media_client: FakeMediaClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        account_service=AccountService(FakeAuthGateway()),
        memorial_service=MemorialService(
            repository=memorial_repository,
            autosave_limiter=InMemoryRateLimiter(max_requests=1, window_seconds=60),
        ),
        payment_service=payment_service,
        obituary_service=ObituaryService(
            client=text_client,
            model=settings.openai_model,
            store=settings.openai_store,
            rate_limiter=InMemoryRateLimiter(max_requests=5, window_seconds=60),
        ),
        media_service=MediaService(
            memorial_repository=memorial_repository,
            client=media_client,
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        ),
        close_resources=close_resources,
    )
