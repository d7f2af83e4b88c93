"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from memorial_studio.adapters.cloudinary_client import HttpxCloudinaryClient
from memorial_studio.adapters.openai_text_client import OpenAITextClient
from memorial_studio.adapters.stripe_gateway import StripeCheckoutGateway
from memorial_studio.adapters.supabase_auth_gateway import SupabaseAuthGateway
from memorial_studio.adapters.supabase_memorial_repository import (
    SupabaseMemorialRepository,
)
from memorial_studio.adapters.supabase_payment_repository import (
    SupabasePaymentRepository,
)
from memorial_studio.config import Settings, is_placeholder_key
from memorial_studio.services.accounts import AccountService
from memorial_studio.services.media import MediaService
from memorial_studio.services.memorials import MemorialService
from memorial_studio.services.obituary import ObituaryService
from memorial_studio.services.payments import PaymentService
from memorial_studio.services.rate_limit import InMemoryRateLimiter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    account_service: AccountService
    memorial_service: MemorialService
    payment_service: PaymentService
    obituary_service: ObituaryService
    media_service: MediaService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Payment, AI and media integrations stay unset when their keys are
    missing; the matching endpoints then report "not configured".
    """
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    memorial_repository = SupabaseMemorialRepository(supabase_client)
    payment_repository = SupabasePaymentRepository(supabase_client)

    checkout_gateway = None
    if not is_placeholder_key(resolved_settings.stripe_secret_key):
        checkout_gateway = StripeCheckoutGateway.create(
            resolved_settings.stripe_secret_key,
            resolved_settings.stripe_webhook_secret,
        )
    text_client = None
    if not is_placeholder_key(resolved_settings.openai_api_key):
        text_client = OpenAITextClient.create(resolved_settings.openai_api_key)
    media_client = None
    if (
        resolved_settings.cloudinary_cloud_name
        and resolved_settings.cloudinary_api_key
        and resolved_settings.cloudinary_api_secret
    ):
        media_client = HttpxCloudinaryClient.create(
            cloud_name=resolved_settings.cloudinary_cloud_name,
            api_key=resolved_settings.cloudinary_api_key,
            api_secret=resolved_settings.cloudinary_api_secret,
        )

    account_service = AccountService(SupabaseAuthGateway(supabase_client))
    memorial_service = MemorialService(
        repository=memorial_repository,
        autosave_limiter=InMemoryRateLimiter(
            max_requests=1,
            window_seconds=resolved_settings.autosave_min_interval_seconds,
        ),
    )
    payment_service = PaymentService(
        memorial_repository=memorial_repository,
        payment_repository=payment_repository,
        gateway=checkout_gateway,
        app_url=resolved_settings.app_url,
        price_id=resolved_settings.stripe_price_id,
        default_amount=resolved_settings.memorial_price_cents,
        default_currency=resolved_settings.memorial_currency,
    )
    obituary_service = ObituaryService(
        client=text_client,
        model=resolved_settings.openai_model,
        store=resolved_settings.openai_store,
        rate_limiter=InMemoryRateLimiter(
            max_requests=resolved_settings.obituary_requests_per_minute,
            window_seconds=60,
        ),
    )
    media_service = MediaService(
        memorial_repository=memorial_repository,
        client=media_client,
        cloud_name=resolved_settings.cloudinary_cloud_name,
        api_key=resolved_settings.cloudinary_api_key,
        api_secret=resolved_settings.cloudinary_api_secret,
    )

    async def close_resources() -> None:
        if checkout_gateway is not None:
            await checkout_gateway.close()
        if text_client is not None:
            await text_client.close()
        if media_client is not None:
            await media_client.close()

    return AppContainer(
        settings=resolved_settings,
        account_service=account_service,
        memorial_service=memorial_service,
        payment_service=payment_service,
        obituary_service=obituary_service,
        media_service=media_service,
        close_resources=close_resources,
    )
