"""Studio session: single source of truth for the draft being edited."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from memorial_studio.domain.errors import MemorialError
from memorial_studio.domain.memorials import MemorialDraft, form_key
from memorial_studio.domain.payments import CheckoutStart
from memorial_studio.domain.validation import validate_memorial
from memorial_studio.studio.autosave import (
    AUTOSAVE_DELAY_SECONDS,
    AutosavePipeline,
    DraftSaver,
    SaveStatus,
)
from memorial_studio.studio.preview import (
    PreviewPage,
    PreviewRefresher,
    ThemePreference,
    resolve_theme,
)

_logger = logging.getLogger(__name__)

MODE_CREATE = "create"
MODE_EDIT = "edit"
TAB_EDIT = "edit"
TAB_PREVIEW = "preview"
LAYOUT_SPLIT = "split"
LAYOUT_TABBED = "tabbed"
DESKTOP_MIN_WIDTH = 1024


class CheckoutStarter(Protocol):
    """Hands a saved draft off to the payment flow."""

    async def begin_checkout(self, memorial_id: UUID) -> CheckoutStart:
        """Start checkout and return the redirect target."""


@dataclass(frozen=True)
class Layout:
    kind: str
    show_preview_shortcut: bool


@dataclass(frozen=True)
class PublishAttempt:
    """What happened when the user pressed publish."""

    ok: bool
    errors: dict[str, str] = field(default_factory=dict)
    focus_field: str | None = None
    memorial_id: UUID | None = None
    checkout_url: str | None = None
    error: Exception | None = None


def layout(
    width: int, active_tab: str = TAB_EDIT, first_name: str | None = None
) -> Layout:
    """Pick split or tabbed layout from the viewport width."""
    if width >= DESKTOP_MIN_WIDTH:
        return Layout(kind=LAYOUT_SPLIT, show_preview_shortcut=False)
    has_name = bool(first_name and first_name.strip())
    return Layout(
        kind=LAYOUT_TABBED,
        show_preview_shortcut=active_tab == TAB_EDIT and has_name,
    )


def save_status_text(  # noqa: PLR0911
    is_saving: bool,
    last_saved_at: datetime | None,
    has_error: bool,
    mode: str,
    now: datetime,
) -> str:
    """Header text for the save indicator."""
    if is_saving:
        return "Saving…"
    if has_error:
        return "Failed to save"
    if last_saved_at is not None:
        seconds = int((now - last_saved_at).total_seconds())
        if seconds < 5:
            return "Saved"
        if seconds < 60:
            return f"Saved {seconds}s ago"
        minutes = seconds // 60
        if minutes < 60:
            return f"Saved {minutes}m ago"
        return "Saved"
    return "Draft" if mode == MODE_CREATE else ""


class StudioSession:
    """Fans draft edits out to validation, autosave and the preview."""

    def __init__(  # noqa: PLR0913
        self,
        saver: DraftSaver,
        checkout: CheckoutStarter,
        theme_preference: ThemePreference,
        initial: MemorialDraft | None = None,
        width: int = DESKTOP_MIN_WIDTH,
        on_created: Callable[[UUID], None] | None = None,
        on_save_error: Callable[[Exception], None] | None = None,
        on_render: Callable[[PreviewPage], None] | None = None,
        autosave_delay: float = AUTOSAVE_DELAY_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.draft = initial or MemorialDraft()
        self.mode = MODE_EDIT if self.draft.id is not None else MODE_CREATE
        self.errors: dict[str, str] = {}
        self.focus_field: str | None = None
        self.active_tab = TAB_EDIT
        self.width = width
        self._checkout = checkout
        self._theme_preference = theme_preference
        self.theme = theme_preference.load()
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._on_created = on_created
        self.autosave = AutosavePipeline(
            saver,
            persisted=self.draft if self.draft.id is not None else None,
            delay=autosave_delay,
            on_created=self._adopt_id,
            on_error=on_save_error,
            clock=self._clock,
        )
        self.preview = PreviewRefresher(
            on_render or (lambda _: None), mobile=self.is_narrow
        )
        self.preview.render_now(self.draft, self.theme)

    @property
    def is_narrow(self) -> bool:
        return self.width < DESKTOP_MIN_WIDTH

    @property
    def autosave_enabled(self) -> bool:
        if self.mode == MODE_EDIT:
            return True
        return bool(self.draft.first_name and self.draft.first_name.strip())

    @property
    def layout(self) -> Layout:
        return layout(self.width, self.active_tab, self.draft.first_name)

    def status_text(self, now: datetime | None = None) -> str:
        return save_status_text(
            is_saving=self.autosave.status == SaveStatus.SAVING,
            last_saved_at=self.autosave.last_saved_at,
            has_error=self.autosave.status == SaveStatus.ERROR,
            mode=self.mode,
            now=now or self._clock(),
        )

    def on_field_change(self, field_name: str, value: object) -> None:
        """Merge one field, clear its error and schedule downstream work."""
        self.draft = self.draft.merged({field_name: value})
        self.errors.pop(form_key(field_name), None)
        self._fan_out()

    def on_bulk_update(self, updates: dict[str, object]) -> None:
        """Merge several fields at once (e.g. after an upload completes)."""
        self.draft = self.draft.merged(updates)
        for key in updates:
            self.errors.pop(form_key(key), None)
        self._fan_out()

    def set_viewport(self, width: int) -> None:
        self.width = width
        self.preview.set_mobile(self.is_narrow)

    def select_tab(self, tab: str) -> None:
        if tab not in (TAB_EDIT, TAB_PREVIEW):
            raise ValueError(f"Unknown tab: {tab}")
        self.active_tab = tab

    def set_theme(self, theme: str) -> None:
        """Switch preview theme without touching the draft."""
        self.theme = self._theme_preference.save(resolve_theme(theme).name)
        self.preview.refresh(self.draft, self.theme)

    async def on_publish(self, today: date | None = None) -> PublishAttempt:
        """Validate, flush the draft and hand off to checkout."""
        result = validate_memorial(self.draft, now=today)
        if not result.is_valid:
            self.errors = dict(result.errors)
            self.focus_field = result.first_error_field
            if self.is_narrow:
                self.active_tab = TAB_EDIT
            return PublishAttempt(
                ok=False, errors=self.errors, focus_field=self.focus_field
            )

        self.errors = {}
        self.focus_field = None
        outcome = await self.autosave.force_save(self.draft)
        if not outcome.ok or outcome.memorial_id is None:
            return PublishAttempt(
                ok=False, memorial_id=outcome.memorial_id, error=outcome.error
            )
        try:
            start = await self._checkout.begin_checkout(outcome.memorial_id)
        except MemorialError as exc:
            _logger.warning(
                "Checkout could not start: memorial_id=%s code=%s",
                outcome.memorial_id,
                exc.code,
            )
            return PublishAttempt(ok=False, memorial_id=outcome.memorial_id, error=exc)
        return PublishAttempt(
            ok=True, memorial_id=outcome.memorial_id, checkout_url=start.checkout_url
        )

    async def close(self) -> None:
        self.preview.cancel()
        await self.autosave.close()

    def _fan_out(self) -> None:
        if self.autosave_enabled:
            self.autosave.schedule(self.draft)
        self.preview.refresh(self.draft, self.theme)

    def _adopt_id(self, memorial_id: UUID) -> None:
        self.draft = self.draft.model_copy(update={"id": memorial_id})
        self.mode = MODE_EDIT
        if self._on_created is not None:
            self._on_created(memorial_id)
