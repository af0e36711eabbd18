"""Command line interface for doctable."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from doctable.config import ConfigError, ConfigManager, DocTableConfig, resolve_with_precedence
from doctable.log import configure_logging
from doctable.notifications import Notification
from doctable.scheduling import VirtualScheduler
from doctable.session import DocumentSession
from doctable.state import Document, StateError, load_seed_file
from doctable.table import RowIntent, RowView
from doctable.upload import FileSelection, SimulatedTransport, UploadError, UploadState

console = Console()

_SEVERITY_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Whether JSON mode is active.
        details: Optional structured details for the JSON payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: In JSON mode, after printing the error payload.
        click.ClickException: Otherwise.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _load_config() -> DocTableConfig:
    """Load the effective configuration and configure logging from it."""
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging)
    return config


def _load_documents(seed: Optional[str], *, json_output: bool) -> list[Document]:
    if seed is None:
        return []
    try:
        return load_seed_file(Path(seed))
    except StateError as exc:
        _handle_cli_error(str(exc), code="invalid_seed", json_output=json_output, original=exc)


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at a dotted path inside ``target``.

    Raises:
        ConfigError: If a non-mapping value is found along the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = child
    node[path[-1]] = value


def _format_tags(document: Document) -> str:
    return ", ".join(f"{tag.label}: {tag.value}" for tag in document.tags)


def _row_payload(row: RowView) -> dict[str, Any]:
    return {
        "document": row.document.model_dump(mode="json"),
        "selected": row.is_selected,
        "expanded": row.is_expanded,
        "downloads": [
            {"name": entry.name, "size": entry.size, "last_modified": entry.last_modified}
            for entry in row.expanded_content or []
        ],
    }


def _render_table(session: DocumentSession) -> Table:
    header = session.header()
    marker = "x" if header.checked else "-" if header.indeterminate else ""
    table = Table(title=f"Documents ({header.row_count} shown)")
    table.add_column(marker, no_wrap=True)
    table.add_column("", no_wrap=True)
    table.add_column("DOCUMENT NAME")
    table.add_column("TYPE")
    table.add_column("SIZE", justify="right")
    table.add_column("LAST MODIFIED")
    table.add_column("TAGS")

    for row in session.rows():
        document = row.document
        toggle = ""
        if document.is_expandable:
            toggle = "v" if row.is_expanded else ">"
        table.add_row(
            "x" if row.is_selected else "",
            toggle,
            document.name,
            document.type,
            document.size,
            document.last_modified,
            _format_tags(document),
        )
        for entry in row.expanded_content or []:
            table.add_row("", "", f"  [dim]{entry.name}[/dim]", "", entry.size or "", entry.last_modified, "")
    return table


def _print_notification(notification: Notification) -> None:
    style = _SEVERITY_STYLES[notification.severity]
    console.print(f"[{style}]{notification.message}[/{style}]")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="doctable")
def cli() -> None:
    """doctable manages a filterable, selectable table of documents."""


@cli.command("table")
@click.argument("seed", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--brand", type=str, help="Only show documents tagged with this brand.")
@click.option("--category", type=str, help="Only show documents tagged with this category.")
@click.option("--select", "select_ids", multiple=True, help="Select a document id (repeatable).")
@click.option("--expand", "expand_ids", multiple=True, help="Expand a document id (repeatable).")
@click.option("--json", "json_output", is_flag=True, help="Emit the rendered rows as JSON.")
def table_command(
    seed: str,
    brand: Optional[str],
    category: Optional[str],
    select_ids: tuple[str, ...],
    expand_ids: tuple[str, ...],
    json_output: bool,
) -> None:
    """Render the documents in SEED through the current filter.

    SEED is a YAML or JSON file listing documents.
    """
    config = _load_config()
    documents = _load_documents(seed, json_output=json_output)
    session = DocumentSession(config, scheduler=VirtualScheduler(), documents=documents)

    if brand is not None or category is not None:
        requested = {
            "brand": brand if brand is not None else session.filters.brand,
            "category": category if category is not None else session.filters.category,
        }
        try:
            session.set_filters(requested)
        except StateError as exc:
            _handle_cli_error(str(exc), code="invalid_filter", json_output=json_output, original=exc)

    for document_id in select_ids:
        session.dispatch(RowIntent("select", document_id))
    for document_id in expand_ids:
        session.dispatch(RowIntent("toggle_expand", document_id))

    if json_output:
        header = session.header()
        console.print_json(
            data={
                "filters": session.filters.model_dump(),
                "header": {
                    "status": header.status.value,
                    "checked": header.checked,
                    "indeterminate": header.indeterminate,
                },
                "rows": [_row_payload(row) for row in session.rows()],
            }
        )
        return

    console.print(_render_table(session))


@cli.command("upload")
@click.argument("file_name")
@click.option("--size", "size_bytes", type=int, required=True, help="File size in bytes.")
@click.option("--seed", type=click.Path(exists=True, dir_okay=False, path_type=str), help="Seed documents.")
@click.option("--edit", "edit_id", type=str, help="Replace this document instead of adding one.")
@click.option("--fail-at", type=click.IntRange(0, 100), help="Simulate a transport failure at this percent.")
@click.option("--cancel-after", type=click.IntRange(0), help="Cancel after this many progress ticks.")
@click.option("--retry", is_flag=True, help="Retry once if the transport fails.")
@click.option("--json", "json_output", is_flag=True, help="Emit the upload outcome as JSON.")
def upload_command(
    file_name: str,
    size_bytes: int,
    seed: Optional[str],
    edit_id: Optional[str],
    fail_at: Optional[int],
    cancel_after: Optional[int],
    retry: bool,
    json_output: bool,
) -> None:
    """Simulate uploading FILE_NAME on a virtual clock and report the outcome."""
    config = _load_config()
    documents = _load_documents(seed, json_output=json_output)
    scheduler = VirtualScheduler()
    session = DocumentSession(
        config,
        scheduler=scheduler,
        transport=SimulatedTransport(fail_at=fail_at),
        documents=documents,
    )

    timeline: list[dict[str, Any]] = []
    notifications: list[Notification] = []

    def _record_state(state: UploadState) -> None:
        if state.kind == "idle":
            return
        timeline.append(
            {"at_ms": scheduler.now_ms, "state": state.kind, "status": session.uploader.status_line()}
        )

    def _record_notification(notification: Optional[Notification]) -> None:
        if notification is not None:
            notifications.append(notification)

    session.uploader.subscribe(_record_state)
    session.notifications.subscribe(_record_notification)

    try:
        session.open_uploader(edit_id)
        session.choose_file(FileSelection(file_name=file_name, size_bytes=size_bytes))
    except (StateError, UploadError) as exc:
        _handle_cli_error(str(exc), code="upload_rejected", json_output=json_output, original=exc)

    if cancel_after is not None:
        scheduler.advance(cancel_after * config.upload.tick_interval_ms)
        if session.uploader.is_uploading:
            session.close_uploader()
    if session.uploader.is_uploading:
        scheduler.run_until_idle()
    if session.uploader.state.kind == "error" and retry:
        session.uploader.retry()
        scheduler.run_until_idle()

    final_state = session.uploader.state
    document: Optional[Document] = None
    if final_state.kind == "complete":
        document = session.submit_upload()

    payload = {
        "state": final_state.kind,
        "timeline": timeline,
        "notifications": [
            {"message": item.message, "severity": item.severity} for item in notifications
        ],
        "document": document.model_dump(mode="json") if document else None,
        "documents": len(session.repository),
    }

    if final_state.kind == "error":
        _handle_cli_error(
            final_state.reason,
            code="transport_failure",
            json_output=json_output,
            details=payload,
        )

    if json_output:
        console.print_json(data=payload)
        return

    for entry in timeline:
        console.print(f"[dim]{entry['at_ms']:>6}ms[/dim] {entry['status']}")
    for notification in notifications:
        _print_notification(notification)
    if document is None:
        console.print("[yellow]Upload cancelled; no document was stored.[/yellow]")
        return
    console.print(_render_table(session))


@cli.group()
def config() -> None:
    """Manage doctable configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value at the dotted path KEY.

    VALUE is parsed as YAML, so ``--value 10`` stores an integer.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'upload.progress_step'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    file_data = manager.load_file_overrides()
    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=DocTableConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The timestamp line always changes; only report real edits.
    diff = list(
        difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
    )
    changed = [
        line
        for line in diff
        if line[:1] in "+-" and not line.startswith(("+++", "---")) and "Last updated:" not in line
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an editor and validate the result."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=DocTableConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
