"""Upload pipeline state machine tests."""

from __future__ import annotations

import pytest

from doctable.config.models import DocumentSettings, NotificationSettings, UploadSettings
from doctable.notifications import NotificationBus
from doctable.scheduling import VirtualScheduler
from doctable.state import DocumentRepository, InvalidInputError, NewDocumentInput, Tag
from doctable.upload import (
    ConcurrentUploadRejected,
    FileSelection,
    SimulatedTransport,
    UploadPipeline,
    UploadStateError,
)

TICK_MS = 300
DELAY_MS = 500


def _pipeline(
    transport: SimulatedTransport | None = None,
    **settings: object,
) -> tuple[UploadPipeline, DocumentRepository, NotificationBus, VirtualScheduler]:
    """Build a pipeline wired to a virtual clock.

    Args:
        transport: Optional transport; defaults to one that never fails.
        settings: Overrides for ``UploadSettings``.

    Returns:
        tuple: Pipeline, repository, notification bus and scheduler.
    """
    scheduler = VirtualScheduler()
    repository = DocumentRepository(DocumentSettings())
    bus = NotificationBus(scheduler, NotificationSettings(auto_hide_ms=0))
    upload_settings = UploadSettings(
        **{"tick_interval_ms": TICK_MS, "completion_delay_ms": DELAY_MS, **settings}
    )
    pipeline = UploadPipeline(
        repository, bus, scheduler, upload_settings, transport=transport or SimulatedTransport()
    )
    return pipeline, repository, bus, scheduler


def _selection(name: str = "spec.pdf", size: int = 9216) -> FileSelection:
    return FileSelection(file_name=name, size_bytes=size)


def test_twenty_ticks_then_complete() -> None:
    pipeline, repository, bus, scheduler = _pipeline()

    session = pipeline.start(_selection())
    assert pipeline.state.kind == "uploading"

    scheduler.advance(20 * TICK_MS)
    assert pipeline.state.kind == "uploading"
    assert pipeline.state.progress == 100
    assert len(repository) == 0

    scheduler.advance(DELAY_MS)
    assert pipeline.state.kind == "complete"
    assert session.progress_log == list(range(0, 101, 5))

    document = repository.get(pipeline.state.document_id)
    assert document.type == "PDF"
    assert document.size == "9kb"
    assert bus.current is not None
    assert bus.current.severity == "success"
    assert bus.current.message == '"spec.pdf" has been added'


def test_cancel_at_tick_ten_discards_session() -> None:
    pipeline, repository, _, scheduler = _pipeline()
    pipeline.start(_selection())

    scheduler.advance(10 * TICK_MS)
    assert pipeline.state.progress == 50
    pipeline.cancel()

    assert pipeline.state.kind == "idle"
    assert pipeline.session is None
    scheduler.run_until_idle()
    assert pipeline.state.kind == "idle"
    assert len(repository) == 0


def test_cancel_during_completion_delay_stores_nothing() -> None:
    pipeline, repository, _, scheduler = _pipeline()
    pipeline.start(_selection())

    scheduler.advance(20 * TICK_MS + DELAY_MS // 2)
    pipeline.cancel()
    scheduler.run_until_idle()

    assert pipeline.state.kind == "idle"
    assert len(repository) == 0


def test_progress_is_monotonic_and_visits_100_once() -> None:
    pipeline, _, _, scheduler = _pipeline(progress_step=7)
    session = pipeline.start(_selection())

    scheduler.run_until_idle()

    log = session.progress_log
    assert log == sorted(log)
    assert log.count(100) == 1
    assert log[-1] == 100
    assert pipeline.state.kind == "complete"


def test_step_and_cadence_come_from_settings() -> None:
    pipeline, _, _, scheduler = _pipeline(progress_step=25, tick_interval_ms=100)

    pipeline.start(_selection())
    scheduler.advance(200)

    assert pipeline.state.progress == 50


def test_starting_while_uploading_is_rejected() -> None:
    pipeline, _, _, scheduler = _pipeline()
    first = pipeline.start(_selection("first.pdf"))
    scheduler.advance(TICK_MS)

    with pytest.raises(ConcurrentUploadRejected):
        pipeline.start(_selection("second.pdf"))

    assert pipeline.session is first
    assert pipeline.state.progress == 5


@pytest.mark.parametrize("selection", [_selection(size=0), _selection(name="  ")])
def test_empty_files_are_invalid(selection: FileSelection) -> None:
    pipeline, _, _, _ = _pipeline()

    with pytest.raises(InvalidInputError):
        pipeline.start(selection)

    assert pipeline.state.kind == "idle"


def test_transport_failure_enters_error_and_retry_restarts() -> None:
    transport = SimulatedTransport(fail_at=30, reason="socket closed")
    pipeline, repository, bus, scheduler = _pipeline(transport)
    session = pipeline.start(_selection())

    scheduler.run_until_idle()

    assert pipeline.state.kind == "error"
    assert pipeline.state.reason == "socket closed"
    assert session.progress == 25
    assert bus.current is not None and bus.current.severity == "error"
    assert "socket closed" in pipeline.status_line()
    assert len(repository) == 0

    pipeline.retry()
    assert pipeline.state.kind == "uploading"
    assert pipeline.state.progress == 0
    scheduler.run_until_idle()

    assert pipeline.state.kind == "complete"
    assert len(repository) == 1


def test_error_is_not_retried_automatically() -> None:
    pipeline, _, _, scheduler = _pipeline(SimulatedTransport(fail_at=10))
    pipeline.start(_selection())
    scheduler.run_until_idle()

    assert pipeline.state.kind == "error"
    assert scheduler.pending == 0


def test_cancel_from_error_returns_to_idle() -> None:
    pipeline, _, _, scheduler = _pipeline(SimulatedTransport(fail_at=10))
    pipeline.start(_selection())
    scheduler.run_until_idle()

    pipeline.cancel()

    assert pipeline.state.kind == "idle"


def test_retry_outside_error_is_rejected() -> None:
    pipeline, _, _, _ = _pipeline()
    pipeline.start(_selection())

    with pytest.raises(UploadStateError):
        pipeline.retry()


def test_out_of_band_failure() -> None:
    pipeline, _, _, scheduler = _pipeline()
    pipeline.start(_selection())
    scheduler.advance(3 * TICK_MS)

    assert pipeline.fail("remote rejected file") is True
    scheduler.run_until_idle()

    assert pipeline.state.kind == "error"
    assert pipeline.session is not None and pipeline.session.progress == 15
    assert pipeline.fail("late failure") is False


def test_stale_ticks_cannot_resurrect_a_discarded_session() -> None:
    pipeline, repository, _, scheduler = _pipeline()
    pipeline.start(_selection("old.pdf"))
    scheduler.advance(TICK_MS)
    pipeline.cancel()

    fresh = pipeline.start(_selection("fresh.pdf"))
    scheduler.advance(TICK_MS)

    assert fresh.progress_log == [0, 5]
    scheduler.run_until_idle()
    assert [document.name for document in repository.list()] == ["fresh.pdf"]


def test_reset_and_submit_from_complete() -> None:
    pipeline, repository, _, scheduler = _pipeline()
    pipeline.start(_selection())
    scheduler.run_until_idle()

    document = pipeline.submit()

    assert pipeline.state.kind == "idle"
    assert repository.get(document.id) == document

    pipeline.start(_selection("again.pdf"))
    scheduler.run_until_idle()
    pipeline.reset()
    assert pipeline.state.kind == "idle"
    assert len(repository) == 2


def test_submit_before_completion_is_rejected() -> None:
    pipeline, _, _, scheduler = _pipeline()
    pipeline.start(_selection())
    scheduler.advance(TICK_MS)

    with pytest.raises(UploadStateError):
        pipeline.submit()


def test_edit_upload_patches_existing_document() -> None:
    pipeline, repository, bus, scheduler = _pipeline()
    original = repository.add(
        NewDocumentInput(
            file_name="old.pdf", size_bytes=1024, tags=[Tag(label="Brand", value="HAL")]
        )
    )

    pipeline.start(_selection("new.docx", 4096), edit_target=original.id, description="v2")
    scheduler.run_until_idle()

    updated = repository.get(original.id)
    assert len(repository) == 1
    assert updated.name == "new.docx"
    assert updated.type == "DOCX"
    assert updated.size == "4kb"
    assert updated.description == "v2"
    assert updated.tags == original.tags
    assert bus.current is not None
    assert bus.current.message == '"old.pdf" has been updated'


def test_edit_target_deleted_mid_upload_ends_in_error() -> None:
    pipeline, repository, bus, scheduler = _pipeline()
    original = repository.add(NewDocumentInput(file_name="old.pdf", size_bytes=1024))
    pipeline.start(_selection(), edit_target=original.id)
    scheduler.advance(TICK_MS)

    repository.remove(original.id)
    scheduler.run_until_idle()

    assert pipeline.state.kind == "error"
    assert len(repository) == 0
    assert bus.current is not None and bus.current.severity == "error"


def test_describe_sets_metadata_used_on_commit() -> None:
    pipeline, repository, _, scheduler = _pipeline()
    pipeline.start(_selection())
    pipeline.describe("Quarterly report", [Tag(label="Brand", value="ACME")])
    scheduler.run_until_idle()

    document = repository.list()[0]
    assert document.description == "Quarterly report"
    assert [(tag.label, tag.value) for tag in document.tags] == [("Brand", "ACME")]


def test_describe_without_session_is_rejected() -> None:
    pipeline, _, _, _ = _pipeline()

    with pytest.raises(UploadStateError):
        pipeline.describe("nothing chosen")


def test_soft_limits_only_warn() -> None:
    pipeline, _, bus, scheduler = _pipeline(max_file_size_mb=1)

    pipeline.start(_selection("big.pdf", 2 * 1024 * 1024))

    assert bus.current is not None and bus.current.severity == "warning"
    scheduler.run_until_idle()
    assert pipeline.state.kind == "complete"


def test_unsupported_extension_warns() -> None:
    pipeline, _, bus, _ = _pipeline()

    pipeline.start(_selection("photo.png", 2048))

    assert bus.current is not None
    assert bus.current.severity == "warning"
    assert "not a supported file type" in bus.current.message


def test_status_line_tracks_state() -> None:
    pipeline, _, _, scheduler = _pipeline()
    assert pipeline.status_line() == "Click or drop file to upload"

    pipeline.start(_selection("big.pdf", 9_196_000))
    scheduler.advance(9 * TICK_MS)
    assert pipeline.status_line() == "45% Uploading · 8.77 MB"

    scheduler.run_until_idle()
    assert pipeline.status_line() == "Upload complete"


def test_listeners_observe_every_transition() -> None:
    pipeline, _, _, scheduler = _pipeline(progress_step=50)
    seen: list[str] = []
    pipeline.subscribe(lambda state: seen.append(state.kind))

    pipeline.start(_selection())
    scheduler.run_until_idle()
    pipeline.reset()

    assert seen == ["uploading", "uploading", "uploading", "complete", "idle"]


class _RefusingScheduler(VirtualScheduler):
    """Virtual scheduler whose next ``call_later`` raises."""

    def __init__(self) -> None:
        super().__init__()
        self.refuse_next = False

    def call_later(self, delay_ms, callback):
        if self.refuse_next:
            self.refuse_next = False
            raise RuntimeError("no running event loop")
        return super().call_later(delay_ms, callback)


def test_start_that_cannot_schedule_leaves_pipeline_idle() -> None:
    scheduler = _RefusingScheduler()
    repository = DocumentRepository(DocumentSettings())
    bus = NotificationBus(scheduler, NotificationSettings(auto_hide_ms=0))
    pipeline = UploadPipeline(repository, bus, scheduler, UploadSettings())

    scheduler.refuse_next = True
    with pytest.raises(RuntimeError):
        pipeline.start(_selection())

    assert pipeline.state.kind == "idle"
    assert pipeline.session is None

    pipeline.start(_selection())
    scheduler.run_until_idle()
    assert pipeline.state.kind == "complete"


def test_retry_that_cannot_schedule_stays_in_error() -> None:
    scheduler = _RefusingScheduler()
    repository = DocumentRepository(DocumentSettings())
    bus = NotificationBus(scheduler, NotificationSettings(auto_hide_ms=0))
    pipeline = UploadPipeline(
        repository, bus, scheduler, UploadSettings(), transport=SimulatedTransport(fail_at=10)
    )
    pipeline.start(_selection())
    scheduler.run_until_idle()

    scheduler.refuse_next = True
    with pytest.raises(RuntimeError):
        pipeline.retry()

    assert pipeline.state.kind == "error"
    pipeline.retry()
    scheduler.run_until_idle()
    assert pipeline.state.kind == "complete"
