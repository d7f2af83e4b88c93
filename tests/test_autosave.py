"""Tests for the debounced autosave pipeline."""

import asyncio
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from memorial_studio.domain.errors import SaveAbortedError
from memorial_studio.domain.memorials import MemorialDraft
from memorial_studio.studio.autosave import AutosavePipeline, SaveStatus
from memorial_studio.studio.debounce import Debouncer


@dataclass
class RecordingSaver:
    """Draft saver with adjustable latency that records completed writes."""

    latency: float = 0.0
    fail_with: Exception | None = None
    new_id: UUID = field(default_factory=uuid4)
    started: list[MemorialDraft] = field(default_factory=list)
    saved: list[tuple[MemorialDraft, UUID | None]] = field(default_factory=list)
    cancelled: int = 0

    async def save(self, draft: MemorialDraft, memorial_id: UUID | None) -> UUID:
        self.started.append(draft)
        try:
            await asyncio.sleep(self.latency)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if self.fail_with is not None:
            raise self.fail_with
        self.saved.append((draft, memorial_id))
        return memorial_id or self.new_id


def test_identical_snapshot_is_written_once() -> None:
    saver = RecordingSaver()

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, delay=0.01)
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.wait_idle()
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert len(saver.saved) == 1
    assert pipeline.status == SaveStatus.SAVED


def test_rapid_edits_collapse_into_latest_snapshot() -> None:
    saver = RecordingSaver()

    async def scenario() -> None:
        pipeline = AutosavePipeline(saver, delay=0.05)
        pipeline.schedule(MemorialDraft(first_name="M"))
        pipeline.schedule(MemorialDraft(first_name="Ma"))
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.wait_idle()

    asyncio.run(scenario())

    assert [draft.first_name for draft, _ in saver.saved] == ["Mary"]
    assert len(saver.started) == 1


def test_newer_save_aborts_in_flight_save_without_error() -> None:
    saver = RecordingSaver(latency=0.2)
    errors: list[Exception] = []

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, delay=0.01, on_error=errors.append)
        pipeline.schedule(MemorialDraft(first_name="A"))
        await asyncio.sleep(0.05)
        assert pipeline.status == SaveStatus.SAVING
        pipeline.schedule(MemorialDraft(first_name="B"))
        await asyncio.sleep(0.05)
        assert pipeline.status == SaveStatus.SAVING
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert [draft.first_name for draft, _ in saver.saved] == ["B"]
    assert saver.cancelled == 1
    assert errors == []
    assert pipeline.status == SaveStatus.SAVED


def test_first_create_surfaces_id_once_then_updates() -> None:
    saver = RecordingSaver()
    created: list[UUID] = []

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, delay=0.01, on_created=created.append)
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.wait_idle()
        pipeline.schedule(MemorialDraft(first_name="Mary", last_name="Doe"))
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert created == [saver.new_id]
    assert [memorial_id for _, memorial_id in saver.saved] == [None, saver.new_id]
    assert pipeline.memorial_id == saver.new_id
    assert pipeline.last_saved_at is not None


def test_failed_save_reports_error_and_retries_same_content() -> None:
    saver = RecordingSaver(fail_with=RuntimeError("network down"))
    errors: list[Exception] = []

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, delay=0.01, on_error=errors.append)
        draft = MemorialDraft(first_name="Mary")
        pipeline.schedule(draft)
        await pipeline.wait_idle()
        assert pipeline.status == SaveStatus.ERROR
        saver.fail_with = None
        pipeline.schedule(draft)
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert len(errors) == 1
    assert str(errors[0]) == "network down"
    assert len(saver.started) == 2
    assert len(saver.saved) == 1
    assert pipeline.status == SaveStatus.SAVED
    assert pipeline.last_error is None


def test_transport_abort_is_not_an_error() -> None:
    saver = RecordingSaver(fail_with=SaveAbortedError("aborted"))
    errors: list[Exception] = []

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, delay=0.01, on_error=errors.append)
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert errors == []
    assert pipeline.status == SaveStatus.IDLE


def test_force_save_bypasses_timer() -> None:
    saver = RecordingSaver()

    async def scenario():  # type: ignore[no-untyped-def]
        pipeline = AutosavePipeline(saver, delay=30)
        draft = MemorialDraft(first_name="Mary")
        pipeline.schedule(draft)
        outcome = await pipeline.force_save(draft)
        await pipeline.wait_idle()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.ok
    assert outcome.memorial_id == saver.new_id
    assert len(saver.saved) == 1


def test_force_save_returns_failure_to_caller() -> None:
    saver = RecordingSaver(fail_with=RuntimeError("boom"))

    outcome = asyncio.run(
        AutosavePipeline(saver).force_save(MemorialDraft(first_name="Mary"))
    )

    assert not outcome.ok
    assert not outcome.aborted
    assert str(outcome.error) == "boom"


def test_force_save_superseded_reports_abort() -> None:
    saver = RecordingSaver(latency=0.2)

    async def scenario():  # type: ignore[no-untyped-def]
        pipeline = AutosavePipeline(saver, delay=0.01)
        forced = asyncio.create_task(pipeline.force_save(MemorialDraft(first_name="A")))
        await asyncio.sleep(0.02)
        pipeline.schedule(MemorialDraft(first_name="B"))
        outcome = await forced
        await pipeline.wait_idle()
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.aborted
    assert [draft.first_name for draft, _ in saver.saved] == ["B"]


def test_persisted_draft_seeds_saved_state() -> None:
    saver = RecordingSaver()
    persisted = MemorialDraft(id=uuid4(), first_name="Mary")

    async def scenario() -> AutosavePipeline:
        pipeline = AutosavePipeline(saver, persisted=persisted, delay=0.01)
        pipeline.schedule(persisted.model_copy())
        await pipeline.wait_idle()
        return pipeline

    pipeline = asyncio.run(scenario())

    assert pipeline.status == SaveStatus.SAVED
    assert saver.started == []


def test_close_drops_pending_save() -> None:
    saver = RecordingSaver()

    async def scenario() -> None:
        pipeline = AutosavePipeline(saver, delay=0.05)
        pipeline.schedule(MemorialDraft(first_name="Mary"))
        await pipeline.close()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert saver.started == []


def test_debouncer_keeps_single_timer_and_counts_generations() -> None:
    fired: list[tuple[str, int]] = []

    async def scenario() -> Debouncer[str]:
        debouncer: Debouncer[str] = Debouncer(
            0.01, lambda value, generation: fired.append((value, generation))
        )
        debouncer.call("a")
        debouncer.call("b")
        assert debouncer.pending
        await debouncer.wait()
        return debouncer

    debouncer = asyncio.run(scenario())

    assert fired == [("b", 2)]
    assert not debouncer.pending
