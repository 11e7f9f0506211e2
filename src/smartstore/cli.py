"""Command line interface for smartstore."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from smartstore.classification import format_size
from smartstore.config import ConfigError, ConfigManager, SmartstoreConfig, resolve_with_precedence
from smartstore.history import HISTORY_FILENAME, BatchSummary, HistoryLedger, JsonHistoryStore
from smartstore.intents import resolve_intent_to_rule
from smartstore.logging_setup import configure_logging
from smartstore.organization.errors import OrganizationError
from smartstore.organization.executor import ExecutorKind, create_executor
from smartstore.organization.lifecycle import ApplyResult, PlanSession
from smartstore.organization.models import (
    DateGranularity,
    OrganizationPlan,
    OrganizationRule,
    RuleOptions,
    parse_rule,
)
from smartstore.organization.presentation import (
    build_preview_tree,
    compute_stats,
    group_by_folder,
)
from smartstore.snapshot import FileNode, SnapshotScanner

console = Console()


@dataclass(slots=True)
class _Invocation:
    """Resolved settings shared by the collection commands."""

    config: SmartstoreConfig
    root: Path
    json_output: bool
    quiet: bool
    summary_only: bool

    @property
    def state_dir(self) -> Path:
        return self.root / self.config.history.state_dirname

    def emit(self, message: Any, mode: str = "detail") -> None:
        _emit_message(message, mode=mode, quiet=self.quiet, summary_only=self.summary_only)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message`` unless quiet/summary settings suppress its mode."""

    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _run_guarded(json_output: bool, action: str, body: Callable[[], None]) -> None:
    """Run a command body and translate failures into CLI errors."""

    try:
        body()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except OrganizationError as exc:
        _handle_cli_error(str(exc), code="plan_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while {action}: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


def _prepare(
    ctx: click.Context,
    path: str,
    *,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
    log_to_state: bool,
) -> _Invocation:
    config = ConfigManager().load()

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        quiet_enabled = False
        summary_only = False
    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )

    invocation = _Invocation(
        config=config,
        root=Path(path).expanduser().resolve(),
        json_output=json_output,
        quiet=quiet_enabled,
        summary_only=summary_only,
    )
    configure_logging(config.logging, invocation.state_dir if log_to_state else None)
    return invocation


def _build_session(invocation: _Invocation, kind: ExecutorKind) -> PlanSession:
    scanning = invocation.config.scanning
    scanner = SnapshotScanner(
        recursive=scanning.recursive,
        include_hidden=scanning.include_hidden,
        follow_symlinks=scanning.follow_symlinks,
        exclude_names=(invocation.config.history.state_dirname,),
    )
    root = invocation.root

    def snapshot() -> list[FileNode]:
        return scanner.scan(root)

    executor = create_executor(
        kind,
        root_path=root.as_posix(),
        snapshot=snapshot() if kind == "simulated" else (),
    )
    ledger = HistoryLedger(
        JsonHistoryStore(invocation.state_dir / HISTORY_FILENAME),
        restorer=executor.revert,
    )
    ledger.load()
    return PlanSession(snapshot, executor, ledger, root_path=root.as_posix())


def _resolve_rule(
    config: SmartstoreConfig,
    rule: Optional[str],
    intent: Optional[str],
    granularity: Optional[str],
) -> tuple[OrganizationRule, RuleOptions]:
    if rule and intent:
        raise click.ClickException("--rule and --intent cannot be combined.")

    options = config.organization.rule_options()
    if intent:
        resolved = resolve_intent_to_rule(intent, options)
        if resolved is None:
            raise click.ClickException(f"Could not find an organize request in: {intent!r}")
        selected, options = resolved
    else:
        selected = parse_rule(rule) if rule else config.organization.rule

    if granularity:
        options = options.model_copy(update={"date_granularity": DateGranularity(granularity)})
    return selected, options


def _relative(path: str, root: Path) -> str:
    prefix = f"{root.as_posix().rstrip('/')}/"
    return path[len(prefix) :] if path.startswith(prefix) else path


def _plan_payload(plan: OrganizationPlan, root: Path) -> dict[str, Any]:
    stats = compute_stats(plan)
    return {
        "id": plan.id,
        "name": plan.name,
        "rule": plan.rule.value,
        "status": plan.status.value,
        "affected_files": plan.affected_files,
        "new_folders": plan.new_folders,
        "operations": [
            {
                "id": op.id,
                "source": _relative(op.source_path, root),
                "destination": _relative(op.destination_path, root),
                "folder": op.destination_folder,
                "size_bytes": op.source_file.size_bytes,
                "status": op.status.value,
                "error": op.error,
            }
            for op in plan.operations
        ],
        "stats": {
            "total_files": stats.total_files,
            "total_size_bytes": stats.total_size_bytes,
            "per_folder_count": stats.per_folder_count,
        },
    }


def _render_plan(invocation: _Invocation, plan: OrganizationPlan) -> None:
    stats = compute_stats(plan)
    table = Table(title=plan.name, show_lines=False)
    table.add_column("Folder", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for folder, operations in group_by_folder(plan).items():
        size = sum(op.source_file.size_bytes for op in operations)
        table.add_row(folder, str(len(operations)), format_size(size))
    invocation.emit(table)

    tree = Tree(f"[bold]{invocation.root.name or invocation.root}[/bold]")
    _add_tree_nodes(tree, build_preview_tree(plan))
    invocation.emit(tree)
    invocation.emit(
        f"[cyan]{stats.total_files} file(s), {format_size(stats.total_size_bytes)} "
        f"into {len(plan.new_folders)} folder(s).[/cyan]"
    )


def _add_tree_nodes(branch: Tree, nodes: list[FileNode]) -> None:
    for node in nodes:
        if node.is_folder:
            _add_tree_nodes(branch.add(f"[blue]{node.name}/[/blue]"), node.children)
        else:
            branch.add(f"{node.name} [dim]({format_size(node.size_bytes)})[/dim]")


def _summary_payload(summary: BatchSummary) -> dict[str, Any]:
    return summary.model_dump(mode="json")


def _output_options(command: Callable[..., Any]) -> Callable[..., Any]:
    command = click.option("--quiet", is_flag=True, help="Suppress non-error output.")(command)
    command = click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")(
        command
    )
    command = click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")(command)
    return command


def _rule_options(command: Callable[..., Any]) -> Callable[..., Any]:
    command = click.option(
        "--granularity",
        type=click.Choice([value.value for value in DateGranularity]),
        help="Folder depth for the date rule.",
    )(command)
    command = click.option("--intent", type=str, help='Describe the organization, e.g. "sort by date".')(
        command
    )
    command = click.option(
        "--rule",
        type=str,
        help="Rule: byType, byDate, bySize, byExtension, flatten or custom.",
    )(command)
    return command


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="smartstore")
def cli() -> None:
    """smartstore organizes your files with previewable, undoable plans."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@_rule_options
@_output_options
@click.pass_context
def preview(
    ctx: click.Context,
    path: str,
    rule: Optional[str],
    intent: Optional[str],
    granularity: Optional[str],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Show the moves a rule would make under PATH without touching files."""

    def body() -> None:
        invocation = _prepare(
            ctx, path, json_output=json_output, summary_mode=summary_mode, quiet=quiet, log_to_state=False
        )
        selected, options = _resolve_rule(invocation.config, rule, intent, granularity)
        session = _build_session(invocation, "simulated")
        plan = session.generate_preview(selected, options)

        if invocation.json_output:
            console.print_json(
                data={"context": {"root": str(invocation.root)}, "plan": _plan_payload(plan, invocation.root)}
            )
            return
        if plan.is_empty:
            invocation.emit("[green]Nothing to organize; every file is already in place.[/green]")
        else:
            _render_plan(invocation, plan)
        invocation.emit(
            _format_summary_line(
                "Preview",
                invocation.root,
                {"rule": plan.rule.value, "files": plan.affected_files, "folders": len(plan.new_folders)},
            ),
            mode="summary",
        )

    _run_guarded(json_output, "building the preview", body)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@_rule_options
@_output_options
@click.pass_context
def apply(
    ctx: click.Context,
    path: str,
    rule: Optional[str],
    intent: Optional[str],
    granularity: Optional[str],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Organize PATH by moving files and record the change for undo."""

    def body() -> None:
        invocation = _prepare(
            ctx, path, json_output=json_output, summary_mode=summary_mode, quiet=quiet, log_to_state=True
        )
        selected, options = _resolve_rule(invocation.config, rule, intent, granularity)
        session = _build_session(invocation, "filesystem")
        plan = session.generate_preview(selected, options)

        if plan.is_empty:
            session.cancel()
            if invocation.json_output:
                console.print_json(data={"context": {"root": str(invocation.root)}, "plan": None})
                return
            invocation.emit("[green]Nothing to organize; every file is already in place.[/green]")
            return

        result = session.apply()
        session.ledger.prune(invocation.config.history.keep_count)
        _report_apply(invocation, result, session.ledger.persistence_failures)

    _run_guarded(json_output, "applying the plan", body)


def _report_apply(invocation: _Invocation, result: ApplyResult, persistence_failures: int) -> None:
    plan = result.plan
    if invocation.json_output:
        console.print_json(
            data={
                "context": {"root": str(invocation.root)},
                "plan": _plan_payload(plan, invocation.root),
                "batch_id": result.batch.id if result.batch else None,
                "counts": {"applied": result.applied, "failed": result.failed},
                "history_persisted": persistence_failures == 0,
            }
        )
        return

    invocation.emit(f"[green]Moved {result.applied} file(s) under {invocation.root}.[/green]")
    if result.is_partial:
        invocation.emit(
            f"[yellow]Plan partially applied: {result.failed} move(s) failed and were left in place.[/yellow]",
            mode="warning",
        )
        for op in plan.failed_operations:
            invocation.emit(
                f"  - {_relative(op.source_path, invocation.root)}: {op.error}", mode="warning"
            )
    if persistence_failures:
        invocation.emit(
            "[yellow]History could not be saved; undo is unavailable after this run.[/yellow]",
            mode="warning",
        )
    metrics: dict[str, Any] = {
        "status": plan.status.value,
        "applied": result.applied,
        "failed": result.failed,
    }
    if result.batch is not None:
        metrics["batch"] = result.batch.id
    invocation.emit(_format_summary_line("Apply", invocation.root, metrics), mode="summary")


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--batch", "batch_id", type=str, help="Undo this batch instead of the latest one.")
@_output_options
@click.pass_context
def undo(
    ctx: click.Context,
    path: str,
    batch_id: Optional[str],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Move files back for the latest (or a given) history batch under PATH."""

    def body() -> None:
        invocation = _prepare(
            ctx, path, json_output=json_output, summary_mode=summary_mode, quiet=quiet, log_to_state=True
        )
        session = _build_session(invocation, "filesystem")
        ledger = session.ledger
        target = ledger.get(batch_id) if batch_id else ledger.last_batch
        failures_before = ledger.persistence_failures
        undone = session.undo_batch(target.id) if target is not None else False
        not_restored = [
            _relative(entry.destination_path or entry.source_path, invocation.root)
            for entry in ledger.last_restore_failures
        ]
        restored = len(target.entries) - len(not_restored) if undone and target else 0
        history_persisted = ledger.persistence_failures == failures_before

        if invocation.json_output:
            summary = ledger.get(target.id) if target is not None else None
            console.print_json(
                data={
                    "context": {"root": str(invocation.root), "batch": batch_id},
                    "undone": undone,
                    "batch": _summary_payload(BatchSummary.from_batch(summary)) if summary else None,
                    "counts": {"restored": restored, "not_restored": len(not_restored)},
                    "not_restored": not_restored,
                    "history_persisted": history_persisted,
                }
            )
            return

        if not undone or target is None:
            reason = "already undone or unknown" if batch_id else "no batch left to undo"
            invocation.emit(f"[yellow]Nothing undone: {reason}.[/yellow]", mode="warning")
            return
        invocation.emit(f"[green]Undid '{target.name}' ({restored} file(s) restored).[/green]")
        if not_restored:
            invocation.emit(
                f"[yellow]{len(not_restored)} file(s) could not be moved back:[/yellow]",
                mode="warning",
            )
            for relative in not_restored:
                invocation.emit(f"  - {relative}", mode="warning")
        if not history_persisted:
            invocation.emit(
                "[yellow]History could not be saved; this batch may be offered for undo again."
                "[/yellow]",
                mode="warning",
            )
        invocation.emit(
            _format_summary_line(
                "Undo",
                invocation.root,
                {"batch": target.id, "restored": restored, "not_restored": len(not_restored)},
            ),
            mode="summary",
        )

    _run_guarded(json_output, "undoing changes", body)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--limit", type=click.IntRange(min=0), help="Maximum number of batches to list.")
@click.option("--prune", "keep_count", type=click.IntRange(min=0), help="Keep only the N most recent batches.")
@click.option("--clear", is_flag=True, help="Delete all history for PATH.")
@_output_options
@click.pass_context
def history(
    ctx: click.Context,
    path: str,
    limit: Optional[int],
    keep_count: Optional[int],
    clear: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """List, prune or clear the history batches recorded for PATH."""

    def body() -> None:
        invocation = _prepare(
            ctx, path, json_output=json_output, summary_mode=summary_mode, quiet=quiet, log_to_state=False
        )
        ledger = HistoryLedger(JsonHistoryStore(invocation.state_dir / HISTORY_FILENAME))
        ledger.load()
        if clear:
            ledger.clear()
        elif keep_count is not None:
            ledger.prune(keep_count)

        summaries = ledger.display_history(
            limit if limit is not None else invocation.config.cli.history_limit
        )
        if invocation.json_output:
            console.print_json(
                data={
                    "context": {"root": str(invocation.root)},
                    "batches": [_summary_payload(summary) for summary in summaries],
                    "counts": {"total": len(ledger.batches), "undoable": ledger.undo_count},
                }
            )
            return

        if not ledger.batches:
            invocation.emit("[yellow]No history recorded.[/yellow]")
        else:
            table = Table(title="History (newest first)")
            table.add_column("Batch")
            table.add_column("Name")
            table.add_column("When")
            table.add_column("Files", justify="right")
            table.add_column("Undone")
            for summary in summaries:
                table.add_row(
                    summary.id,
                    summary.name,
                    summary.timestamp.isoformat(timespec="seconds"),
                    str(summary.file_count),
                    "yes" if summary.is_undone else "no",
                )
            invocation.emit(table)
        invocation.emit(
            _format_summary_line(
                "History",
                invocation.root,
                {"batches": len(ledger.batches), "undoable": ledger.undo_count},
            ),
            mode="summary",
        )

    _run_guarded(json_output, "reading history", body)


@cli.group()
def config() -> None:
    """Inspect and edit the smartstore configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides.")
def config_view(no_env: bool) -> None:
    """Print the effective configuration as YAML."""

    try:
        effective = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    rendered = yaml.safe_dump(effective.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(rendered, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY (parsed as YAML).")
def config_set(key: str, value: str) -> None:
    """Persist a dotted KEY such as ``history.keep_count``."""

    manager = ConfigManager()
    try:
        manager.ensure_exists()
        overrides = manager.load_file_overrides()
        try:
            parsed: Any = yaml.safe_load(value)
        except yaml.YAMLError:
            parsed = value
        node = overrides
        segments = key.split(".")
        for segment in segments[:-1]:
            existing = node.setdefault(segment, {})
            if not isinstance(existing, dict):
                raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping.")
            node = existing
        node[segments[-1]] = parsed
        resolve_with_precedence(defaults=SmartstoreConfig(), file_overrides=overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(overrides)
    console.print(f"[green]Updated {key}.[/green]")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
