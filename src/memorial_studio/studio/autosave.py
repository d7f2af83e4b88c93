"""Debounced, cancellable draft persistence for the studio."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from memorial_studio.domain.errors import SaveAbortedError
from memorial_studio.domain.memorials import MemorialDraft
from memorial_studio.studio.debounce import Debouncer

_logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_SECONDS = 2.0


class SaveStatus(Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a save handed back to the caller."""

    memorial_id: UUID | None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def aborted(self) -> bool:
        return isinstance(self.error, SaveAbortedError)


class DraftSaver(Protocol):
    """Create-or-update transport for drafts."""

    async def save(self, draft: MemorialDraft, memorial_id: UUID | None) -> UUID:
        """Create the draft when `memorial_id` is None, else update it."""


class AutosavePipeline:
    """Turns a stream of draft snapshots into a bounded rate of saves.

    Status moves `idle -> saving -> saved | error` and re-enters `saving` on
    new input. A newer save cancels the in-flight one; cancelled or stale
    saves never touch the status.
    """

    def __init__(  # noqa: PLR0913
        self,
        saver: DraftSaver,
        persisted: MemorialDraft | None = None,
        delay: float = AUTOSAVE_DELAY_SECONDS,
        on_created: Callable[[UUID], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._saver = saver
        self._on_created = on_created
        self._on_error = on_error
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._debouncer: Debouncer[MemorialDraft] = Debouncer(delay, self._on_timer)
        self._task: asyncio.Task[SaveOutcome] | None = None
        self._generation = 0
        self._created_reported = False

        self.memorial_id = persisted.id if persisted is not None else None
        self._last_persisted = (
            persisted.stable_serialization()
            if persisted is not None and persisted.id is not None
            else None
        )
        self.status = SaveStatus.SAVED if self.memorial_id else SaveStatus.IDLE
        self.last_saved_at: datetime | None = None
        self.last_error: Exception | None = None

    @property
    def is_saving(self) -> bool:
        return self.status == SaveStatus.SAVING

    def schedule(self, draft: MemorialDraft) -> None:
        """Restart the delay timer with the latest snapshot."""
        self._debouncer.call(draft)

    async def force_save(self, draft: MemorialDraft) -> SaveOutcome:
        """Save immediately, bypassing the delay timer."""
        self._debouncer.cancel()
        task = self._start(draft, draft.stable_serialization())
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            return SaveOutcome(
                memorial_id=self.memorial_id,
                error=SaveAbortedError("Superseded by a newer save"),
            )

    async def wait_idle(self) -> None:
        """Wait for the pending timer and any in-flight save to settle."""
        while True:
            await self._debouncer.wait()
            task = self._task
            if task is not None and not task.done():
                await asyncio.wait({task})
                continue
            if not self._debouncer.pending:
                return

    async def close(self) -> None:
        """Drop the pending timer and cancel the in-flight save."""
        self._debouncer.cancel()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})

    def _on_timer(self, draft: MemorialDraft, _: int) -> None:
        serialization = draft.stable_serialization()
        if serialization == self._last_persisted:
            return
        self._start(draft, serialization)

    def _start(
        self, draft: MemorialDraft, serialization: str
    ) -> asyncio.Task[SaveOutcome]:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._generation += 1
        self.status = SaveStatus.SAVING
        self._task = asyncio.get_running_loop().create_task(
            self._run(draft, serialization, self._generation)
        )
        return self._task

    async def _run(
        self, draft: MemorialDraft, serialization: str, generation: int
    ) -> SaveOutcome:
        try:
            memorial_id = await self._saver.save(draft, self.memorial_id)
        except SaveAbortedError as exc:
            if generation == self._generation:
                self.status = (
                    SaveStatus.SAVED if self._last_persisted else SaveStatus.IDLE
                )
            return SaveOutcome(memorial_id=self.memorial_id, error=exc)
        except Exception as exc:
            if generation == self._generation:
                self._fail(exc)
            return SaveOutcome(memorial_id=self.memorial_id, error=exc)

        if generation != self._generation:
            return SaveOutcome(memorial_id=memorial_id)
        created = self.memorial_id is None
        self.memorial_id = memorial_id
        self._last_persisted = serialization
        self.last_saved_at = self._clock()
        self.last_error = None
        self.status = SaveStatus.SAVED
        if created and not self._created_reported:
            self._created_reported = True
            if self._on_created is not None:
                self._on_created(memorial_id)
        return SaveOutcome(memorial_id=memorial_id)

    def _fail(self, exc: Exception) -> None:
        self.last_error = exc
        self.status = SaveStatus.ERROR
        _logger.warning(
            "Draft save failed: memorial_id=%s error=%s", self.memorial_id, exc
        )
        if self._on_error is not None:
            self._on_error(exc)
