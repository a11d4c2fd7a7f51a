"""CLI entrypoint for workflow-sync.

Thin presentation layer over ``SyncEngine``: it picks the workflows,
prints per-workflow results as they arrive, and prompts for conflict
strategies when none was forced.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import click

from workflow_sync.config import settings
from workflow_sync.errors import WorkflowSyncError
from workflow_sync.logs import LogTail, RuleLog, WorkflowRule, select_rules
from workflow_sync.remote import HttpRemoteClient, RemoteClient
from workflow_sync.sync.conflict import ConflictStrategy
from workflow_sync.sync.engine import StatusEntry, SyncEngine, SyncOutcome, SyncResult
from workflow_sync.sync.state import BaselineStore
from workflow_sync.sync.status import WorkflowStatus
from workflow_sync.sync.watcher import WorkflowWatcher
from workflow_sync.workspace import Workspace

_STRATEGY_CHOICES = [s.value for s in ConflictStrategy]

_STATUS_SYMBOLS: dict[WorkflowStatus, tuple[str, str]] = {
    WorkflowStatus.SYNCED: ("✓", "green"),
    WorkflowStatus.MODIFIED: ("↑", "yellow"),
    WorkflowStatus.OUTDATED: ("↓", "blue"),
    WorkflowStatus.CONFLICT: ("!", "red"),
    WorkflowStatus.MISSING: ("?", "magenta"),
    WorkflowStatus.NEW: ("+", "cyan"),
    WorkflowStatus.UNKNOWN: ("-", "white"),
}

_SUMMARY_LABELS: list[tuple[WorkflowStatus, str]] = [
    (WorkflowStatus.SYNCED, "synced"),
    (WorkflowStatus.MODIFIED, "modified"),
    (WorkflowStatus.OUTDATED, "outdated"),
    (WorkflowStatus.CONFLICT, "conflicts"),
    (WorkflowStatus.MISSING, "missing"),
    (WorkflowStatus.NEW, "new"),
    (WorkflowStatus.UNKNOWN, "unknown"),
]

_OUTCOME_STYLES: dict[SyncOutcome, tuple[str, str]] = {
    SyncOutcome.PUSHED: ("✓", "green"),
    SyncOutcome.PULLED: ("✓", "green"),
    SyncOutcome.SYNCED: ("✓", "green"),
    SyncOutcome.REPORTED: ("⚠", "yellow"),
    SyncOutcome.SKIPPED: ("⚠", "yellow"),
    SyncOutcome.FAILED: ("✗", "red"),
}


@asynccontextmanager
async def _open_remote() -> AsyncIterator[HttpRemoteClient]:
    try:
        settings.validate()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    async with HttpRemoteClient() as remote:
        yield remote


def _build_engine(remote: RemoteClient) -> SyncEngine:
    """Construct a SyncEngine for the configured project directory."""
    return SyncEngine(
        remote=remote,
        workspace=Workspace(settings.project_root),
        baseline_store=BaselineStore(settings.baseline_path),
    )


def _print_result(result: SyncResult, index: int | None = None) -> None:
    symbol, color = _OUTCOME_STYLES[result.outcome]
    click.secho(f"{symbol} {result.workflow}: {result.message}", fg=color)


async def _prompt_strategy(
    workflow: str, file_statuses: dict[str, WorkflowStatus]
) -> ConflictStrategy:
    click.secho(f"! {workflow}: Conflict", fg="red")
    for name, status in file_statuses.items():
        if status is not WorkflowStatus.SYNCED:
            symbol, color = _STATUS_SYMBOLS[status]
            click.secho(f"   {symbol} {name}: {status.description}", fg=color)
    choice = click.prompt(
        "Select action for workflow",
        type=click.Choice(_STRATEGY_CHOICES),
        default=ConflictStrategy.SKIP.value,
    )
    return ConflictStrategy(choice)


def _watch_strategy(force: str | None) -> ConflictStrategy:
    """Conflict strategy for watch-triggered syncs.

    A watch pass is triggered by a local save, so unless forced otherwise
    the local copy wins and the saved edit is uploaded.
    """
    return ConflictStrategy(force) if force else ConflictStrategy.PUSH


def _exit_on_failures(results: list[SyncResult]) -> None:
    failures = sum(1 for r in results if not r.success)
    if failures:
        click.echo(f"\n{failures} workflow(s) failed to sync.", err=True)
        sys.exit(failures)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Keep local workflow directories in sync with the remote tracker."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("workflows", nargs=-1)
def status(workflows: tuple[str, ...]) -> None:
    """Show the sync status of tracked workflows."""

    async def run() -> list[StatusEntry]:
        async with _open_remote() as remote:
            engine = _build_engine(remote)
            return await engine.check_status(list(workflows) or None)

    entries = asyncio.run(run())
    if not entries:
        click.echo("No workflows in this project.")
        return
    for entry in entries:
        if entry.status is None:
            click.secho(f"✗ {entry.workflow}: {entry.description}", fg="red")
            continue
        symbol, color = _STATUS_SYMBOLS[entry.status]
        click.secho(f"{symbol} {entry.workflow}: {entry.description}", fg=color)

    counts = Counter(entry.status for entry in entries)
    parts = [
        click.style(f"{counts[s]} {label}", fg=_STATUS_SYMBOLS[s][1])
        for s, label in _SUMMARY_LABELS
        if counts[s]
    ]
    if counts[None]:
        parts.append(click.style(f"{counts[None]} failed", fg="red"))
    click.echo(f"\nSummary: {len(entries)} total workflows ({', '.join(parts)})")
    if counts[None]:
        sys.exit(counts[None])


@cli.command()
@click.argument("workflows", nargs=-1)
@click.option(
    "--force",
    type=click.Choice(_STRATEGY_CHOICES),
    default=None,
    help="Resolve conflicts with this strategy instead of prompting.",
)
@click.option("--watch", is_flag=True, help="Keep watching for local changes.")
@click.option(
    "--debounce",
    type=int,
    default=None,
    help="Watch debounce in milliseconds.",
)
def sync(
    workflows: tuple[str, ...], force: str | None, watch: bool, debounce: int | None
) -> None:
    """Sync workflows in both directions."""
    try:
        results = asyncio.run(_sync(list(workflows), force, watch, debounce))
    except KeyboardInterrupt:
        click.echo("\nStopping watch mode...")
        return
    _exit_on_failures(results)


async def _sync(
    workflows: list[str], force: str | None, watch: bool, debounce: int | None
) -> list[SyncResult]:
    async with _open_remote() as remote:
        engine = _build_engine(remote)
        names = workflows or engine.tracked_workflows()
        if not names:
            click.echo("No workflows to sync")
            return []

        strategy = ConflictStrategy(force) if force else _prompt_strategy
        results = await engine.sync_workflows(names, strategy, on_result=_print_result)

        if not watch:
            return results
        if any(r.outcome in (SyncOutcome.FAILED, SyncOutcome.SKIPPED) for r in results):
            click.echo(
                "\nCannot start watch mode with failed or skipped workflows. "
                "Resolve conflicts first."
            )
            return results

        watch_strategy = _watch_strategy(force)

        async def on_change(name: str) -> None:
            _print_result(await engine.sync_workflow(name, watch_strategy))

        watcher = WorkflowWatcher(
            engine.workspace.root,
            names,
            on_change,
            cache=engine.cache,
            debounce=(debounce if debounce is not None else settings.debounce_ms) / 1000,
        )
        click.echo("\nStarting watch mode. Press Ctrl+C to exit.")
        watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            watcher.stop()
        return results


@cli.command()
@click.argument("workflows", nargs=-1, required=True)
def push(workflows: tuple[str, ...]) -> None:
    """Upload workflows, overwriting the remote copy."""
    _run_transfer(workflows, ConflictStrategy.PUSH)


@cli.command()
@click.argument("workflows", nargs=-1, required=True)
def pull(workflows: tuple[str, ...]) -> None:
    """Download workflows, overwriting the local copy."""
    _run_transfer(workflows, ConflictStrategy.PULL)


def _run_transfer(workflows: tuple[str, ...], strategy: ConflictStrategy) -> None:
    async def run() -> list[SyncResult]:
        async with _open_remote() as remote:
            engine = _build_engine(remote)
            results: list[SyncResult] = []
            for name in workflows:
                try:
                    if strategy is ConflictStrategy.PUSH:
                        await engine.push(name)
                        result = SyncResult(
                            workflow=name, outcome=SyncOutcome.PUSHED, message="Pushed to remote"
                        )
                    else:
                        await engine.pull(name)
                        result = SyncResult(
                            workflow=name, outcome=SyncOutcome.PULLED, message="Pulled from remote"
                        )
                except Exception as exc:
                    result = SyncResult(workflow=name, outcome=SyncOutcome.FAILED, message=str(exc))
                _print_result(result)
                results.append(result)
            return results

    _exit_on_failures(asyncio.run(run()))


@cli.command(name="list")
def list_workflows() -> None:
    """List remote workflows not yet added to this project."""

    async def run() -> list[str]:
        async with _open_remote() as remote:
            return await _build_engine(remote).available_workflows()

    names = asyncio.run(run())
    if not names:
        click.echo("No workflows available.")
    for name in names:
        click.echo(name)


@cli.command()
@click.argument("workflows", nargs=-1, required=True)
def add(workflows: tuple[str, ...]) -> None:
    """Add remote workflows to this project."""

    async def run() -> list[str]:
        async with _open_remote() as remote:
            return await _build_engine(remote).add_workflows(workflows)

    for name in asyncio.run(run()):
        click.secho(f"✓ {name}: Added", fg="green")


@cli.command()
@click.argument("workflows", nargs=-1, required=True)
@click.option("--delete", "delete_files", is_flag=True, help="Also delete local files.")
def remove(workflows: tuple[str, ...], delete_files: bool) -> None:
    """Stop tracking workflows."""

    async def run() -> list[str]:
        async with _open_remote() as remote:
            return await _build_engine(remote).remove_workflows(workflows, delete_files)

    for name in asyncio.run(run()):
        click.secho(f"✓ {name}: Removed", fg="green")


_LOG_LEVEL_COLORS: dict[str, str] = {
    "INFO": "cyan",
    "ERROR": "red",
    "WARNING": "yellow",
    "DEBUG": "green",
}


def _print_logs(rule: WorkflowRule, entries: list[RuleLog]) -> None:
    for entry in entries:
        level = entry.level or "INFO"
        stamp = (
            datetime.fromtimestamp(entry.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
            if entry.timestamp
            else "--"
        )
        click.echo(
            f"[{stamp}] {click.style(rule.workflow_name, fg='magenta')}:"
            f"{click.style(rule.rule_name, fg='blue')} "
            f"[{click.style(level, fg=_LOG_LEVEL_COLORS.get(level))}]"
        )
        click.echo(entry.message or "")
        if entry.stacktrace:
            click.secho(entry.stacktrace, dim=True)


def _print_log_error(rule: WorkflowRule, exc: Exception) -> None:
    click.secho(f"✗ {rule.label}: {exc}", fg="red", err=True)


@cli.command()
@click.argument("workflows", nargs=-1)
@click.option("--top", type=int, default=10, show_default=True, help="Entries per rule.")
@click.option("--watch", is_flag=True, help="Keep polling for new entries.")
@click.option(
    "--interval",
    type=int,
    default=5000,
    show_default=True,
    help="Poll interval in milliseconds.",
)
def logs(workflows: tuple[str, ...], top: int, watch: bool, interval: int) -> None:
    """Show execution logs of workflow rules."""
    try:
        asyncio.run(_logs(list(workflows), top, watch, interval))
    except KeyboardInterrupt:
        click.echo("\nStopped watching logs")


async def _logs(workflows: list[str], top: int, watch: bool, interval: int) -> None:
    async with _open_remote() as remote:
        try:
            rules = await select_rules(remote, Workspace(settings.project_root), workflows)
        except WorkflowSyncError as exc:
            raise click.ClickException(str(exc)) from exc
        if not rules:
            click.echo("No workflow rules found.")
            return

        tail = LogTail(remote)
        for rule, entries in await tail.fetch_all(rules, top):
            _print_logs(rule, entries)

        if not watch:
            return
        click.echo("\nWatching logs for:")
        for rule in rules:
            click.echo(f"  - {rule.label}")
        click.echo("Press Ctrl+C to stop watching\n")
        await tail.follow(
            rules, _print_logs, on_error=_print_log_error, interval=interval / 1000
        )


if __name__ == "__main__":
    cli()
