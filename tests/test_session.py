"""Document session tests."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from doctable.config.models import DocTableConfig, NotificationSettings
from doctable.scheduling import VirtualScheduler
from doctable.state import Document, DocumentNotFoundError, InvalidInputError, Tag
from doctable.session import DocumentSession
from doctable.table import RowIntent, SelectionStatus
from doctable.upload import ConcurrentUploadRejected, FileSelection, SimulatedTransport


def _document(document_id: str, brand: str, category: str, expandable: bool = True) -> Document:
    return Document(
        id=document_id,
        name=f"{document_id}.pdf",
        type="PDF",
        size="4kb",
        last_modified="02/26/2025, 09:00:00 AM",
        tags=[Tag(label="Brand", value=brand), Tag(label="Category", value=category)],
        is_expandable=expandable,
    )


def _session(**kwargs: object) -> tuple[DocumentSession, VirtualScheduler]:
    """Return a session seeded with three documents on a virtual clock."""
    scheduler = VirtualScheduler()

    async def sync_fn() -> None:
        return None

    session = DocumentSession(
        DocTableConfig(),
        scheduler=scheduler,
        sync_fn=sync_fn,
        clock=lambda: datetime(2025, 2, 26, 14, 30, 5),
        documents=[
            _document("doc-a", "HAL", "Medical"),
            _document("doc-b", "HAL", "Finance"),
            _document("doc-c", "HAL", "Medical"),
        ],
        **kwargs,
    )
    return session, scheduler


def test_default_filter_shows_matching_documents_in_order() -> None:
    session, _ = _session()

    assert [row.document.id for row in session.rows()] == ["doc-a", "doc-c"]
    assert session.header().row_count == 2


def test_set_filters_accepts_mapping() -> None:
    session, _ = _session()

    session.set_filters({"brand": "HAL"})

    assert [document.id for document in session.visible_documents()] == [
        "doc-a",
        "doc-b",
        "doc-c",
    ]


def test_malformed_filter_leaves_filters_unchanged() -> None:
    session, _ = _session()
    before = session.filters

    with pytest.raises(InvalidInputError):
        session.set_filters({"category": "Medical"})

    assert session.filters == before
    assert session.notifications.current is not None
    assert session.notifications.current.severity == "error"


def test_header_tracks_selection_of_visible_rows() -> None:
    session, _ = _session()

    session.toggle_select_all(True)
    header = session.header()
    assert header.status is SelectionStatus.ALL
    assert header.checked and not header.indeterminate

    session.dispatch(RowIntent("select", "doc-a"))
    header = session.header()
    assert header.status is SelectionStatus.SOME
    assert header.indeterminate and not header.checked

    session.toggle_select_all(False)
    assert session.header().status is SelectionStatus.NONE


def test_row_handlers_route_by_document_id() -> None:
    session, _ = _session()
    rows = session.rows()

    session.dispatch(rows[1].handlers.on_toggle_expand)
    session.dispatch(rows[1].handlers.on_select)

    refreshed = {row.document.id: row for row in session.rows()}
    assert refreshed["doc-c"].is_expanded and refreshed["doc-c"].is_selected
    assert not refreshed["doc-a"].is_expanded and not refreshed["doc-a"].is_selected
    assert refreshed["doc-c"].expanded_content is not None


def test_unknown_intent_is_rejected() -> None:
    session, _ = _session()

    with pytest.raises(ValueError):
        session.dispatch(RowIntent("archive", "doc-a"))  # type: ignore[arg-type]


def test_delete_evicts_selection_and_expansion() -> None:
    session, _ = _session()
    session.toggle_select_all(True)
    session.dispatch(RowIntent("toggle_expand", "doc-a"))
    session.dispatch(RowIntent("view", "doc-a"))

    removed = session.dispatch(RowIntent("delete", "doc-a"))

    assert removed is not None and removed.id == "doc-a"
    assert session.selection.selected_ids == ["doc-c"]
    assert session.expansion.expanded_ids == []
    assert session.viewing is None
    assert session.notifications.current is not None
    assert session.notifications.current.message == '"doc-a.pdf" has been deleted'


def test_deleting_missing_document_is_a_no_op() -> None:
    session, _ = _session()

    assert session.delete("doc-missing") is None
    assert len(session.repository) == 3
    assert session.notifications.current is None


def test_view_missing_document_reports_not_found() -> None:
    session, _ = _session()

    with pytest.raises(DocumentNotFoundError):
        session.view("doc-missing")

    assert session.notifications.current is not None
    assert session.notifications.current.severity == "error"


def test_add_workflow_commits_after_upload_completes() -> None:
    session, scheduler = _session()
    session.open_uploader()

    session.choose_file(FileSelection(file_name="report.xlsx", size_bytes=2560))
    scheduler.advance(20 * 300 + 500)
    document = session.submit_upload()

    assert document.type == "XLSX"
    assert document.size == "3kb"
    assert session.uploader_open is False
    assert session.uploader.state.kind == "idle"
    assert document.id in session.repository


def test_edit_workflow_replaces_document_in_place() -> None:
    session, scheduler = _session()

    session.dispatch(RowIntent("edit", "doc-b"))
    assert session.editing is not None and session.editing.id == "doc-b"
    session.choose_file(FileSelection(file_name="budget.csv", size_bytes=1024))
    scheduler.run_until_idle()
    session.submit_upload()

    updated = session.repository.get("doc-b")
    assert updated.name == "budget.csv"
    assert updated.type == "CSV"
    assert [document.id for document in session.repository.list()] == ["doc-a", "doc-b", "doc-c"]
    assert session.editing is None


def test_edit_of_missing_document_is_reported() -> None:
    session, _ = _session()

    with pytest.raises(DocumentNotFoundError):
        session.open_uploader(edit_id="doc-missing")

    assert session.uploader_open is False


def test_closing_uploader_cancels_unfinished_upload() -> None:
    session, scheduler = _session()
    session.choose_file(FileSelection(file_name="draft.docx", size_bytes=4096))
    scheduler.advance(10 * 300)

    session.close_uploader()
    scheduler.run_until_idle()

    assert session.uploader.state.kind == "idle"
    assert len(session.repository) == 3


def test_second_file_while_uploading_is_rejected_and_reported() -> None:
    session, scheduler = _session()
    session.choose_file(FileSelection(file_name="one.pdf", size_bytes=4096))
    scheduler.advance(300)

    with pytest.raises(ConcurrentUploadRejected):
        session.choose_file(FileSelection(file_name="two.pdf", size_bytes=4096))

    assert session.notifications.current is not None
    assert session.notifications.current.severity == "error"
    assert session.uploader.session is not None
    assert session.uploader.session.file_name == "one.pdf"


def test_zero_byte_file_is_reported() -> None:
    session, _ = _session()

    with pytest.raises(InvalidInputError):
        session.choose_file(FileSelection(file_name="empty.txt", size_bytes=0))

    assert session.notifications.current is not None
    assert "zero-byte" in session.notifications.current.message


def test_failed_upload_leaves_repository_untouched() -> None:
    session, scheduler = _session(transport=SimulatedTransport(fail_at=50))
    session.choose_file(FileSelection(file_name="scan.pdf", size_bytes=4096))

    scheduler.advance(10 * 300)

    assert session.uploader.state.kind == "error"
    assert len(session.repository) == 3


def test_add_multiple_is_announced() -> None:
    session, _ = _session()

    session.add_multiple()

    assert session.notifications.current is not None
    assert session.notifications.current.message == "This feature is coming soon!"
    assert session.notifications.current.severity == "info"


def test_sync_publishes_success() -> None:
    session, _ = _session()

    assert asyncio.run(session.sync()) is True
    assert session.notifications.current is not None
    assert session.notifications.current.severity == "success"


def test_teardown_resets_session_state() -> None:
    session, scheduler = _session()
    session.toggle_select_all(True)
    session.dispatch(RowIntent("toggle_expand", "doc-a"))
    session.choose_file(FileSelection(file_name="late.pdf", size_bytes=4096))

    session.teardown()
    scheduler.run_until_idle()

    assert session.selection.selected_ids == []
    assert session.expansion.expanded_ids == []
    assert session.uploader.state.kind == "idle"
    assert session.uploader_open is False
    assert session.notifications.current is None
    assert len(session.repository) == 3


def test_uploads_stay_visible_under_the_default_filter() -> None:
    scheduler = VirtualScheduler()
    session = DocumentSession(scheduler=scheduler, clock=lambda: datetime(2025, 2, 26, 14, 30, 5))

    session.choose_file(FileSelection(file_name="spec.pdf", size_bytes=9216))
    scheduler.run_until_idle()
    document = session.submit_upload()

    assert [row.document.id for row in session.rows()] == [document.id]
    assert [(tag.label, tag.value) for tag in document.tags] == [
        ("Year", "2025"),
        ("Team", "Medical"),
        ("Brand", "HAL"),
        ("Category", "Medical"),
    ]


def test_uploads_follow_the_active_filter() -> None:
    session, scheduler = _session()
    session.set_filters({"brand": "ACME", "category": ""})

    session.choose_file(FileSelection(file_name="plan.docx", size_bytes=4096))
    scheduler.run_until_idle()
    document = session.submit_upload()

    assert [row.document.id for row in session.rows()] == [document.id]


def test_session_without_scheduler_needs_an_event_loop() -> None:
    with pytest.raises(RuntimeError):
        DocumentSession()


def test_session_created_inside_a_loop_runs_live_timers() -> None:
    async def scenario() -> tuple[bool, bool]:
        config = DocTableConfig(notifications=NotificationSettings(auto_hide_ms=10))
        session = DocumentSession(config)
        session.add_multiple()
        shown = session.notifications.current is not None
        await asyncio.sleep(0.05)
        return shown, session.notifications.current is None

    assert asyncio.run(scenario()) == (True, True)
