"""Filesystem watch mode for tracked workflows.

Raw filesystem events arrive on a ``watchdog`` observer thread and are
handed to the asyncio loop.  Per workflow, events are debounced and then
drive a small state machine:

``IDLE``
    A debounce timer may be pending.  Each event restarts it; when it
    fires the workflow moves to ``SYNCING``.
``SYNCING``
    A sync pass is running.  A new event moves to
    ``SYNCING_WITH_PENDING``.
``SYNCING_WITH_PENDING``
    A sync pass is running and another one is owed.  Further events are
    absorbed.  When the running pass ends, exactly one more pass starts.

Before each pass the workflow's cached state is invalidated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from workflow_sync.sync.cache import StateCache

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.0

SyncCallback = Callable[[str], Awaitable[object]]


class WatchState(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCING_WITH_PENDING = "syncing_with_pending"


class _WorkflowEventHandler(FileSystemEventHandler):
    """Maps watchdog events to workflow names and forwards them."""

    def __init__(self, watcher: WorkflowWatcher) -> None:
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in ("created", "modified", "deleted", "moved"):
            return
        if event.is_directory:
            return
        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)
        for raw in paths:
            workflow = self._watcher.workflow_for_path(raw)
            if workflow is not None:
                self._watcher.notify_threadsafe(workflow)


class WorkflowWatcher:
    """Watches workflow directories and triggers debounced re-syncs.

    Args:
        root: Project root holding one directory per workflow.
        workflows: Names of the workflows to watch.
        on_change: Coroutine function run for each sync pass.  Its
            exceptions are logged and do not stop the watcher.
        cache: State cache invalidated before each pass.
        debounce: Quiet period in seconds before a burst triggers a pass.
        observer_factory: Builds the watchdog observer; defaults to the
            platform observer.
    """

    def __init__(
        self,
        root: Path | str,
        workflows: Iterable[str],
        on_change: SyncCallback,
        cache: StateCache | None = None,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._root = Path(root).resolve()
        self._workflows = set(workflows)
        self._on_change = on_change
        self._cache = cache
        self._debounce = debounce
        self._observer_factory = observer_factory
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: BaseObserver | None = None
        self._states: dict[str, WatchState] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start observing.  Must be called from inside the event loop."""
        if not self._workflows:
            raise ValueError("No workflows to watch")
        self._loop = asyncio.get_running_loop()
        self._stopped = False

        observer = self._observer_factory()
        handler = _WorkflowEventHandler(self)
        for name in sorted(self._workflows):
            path = self._root / name
            if path.is_dir():
                observer.schedule(handler, str(path), recursive=True)
            else:
                logger.warning("Not watching %s: directory %s does not exist", name, path)
        observer.start()
        self._observer = observer
        logger.info("Watching %d workflow(s) under %s", len(self._workflows), self._root)

    def stop(self) -> None:
        """Release all watch handles and cancel pending timers.

        Returns after the observer thread has exited.  No callback fires
        after this returns; a sync pass already running is left to
        finish but no pending pass is started after it.
        """
        self._stopped = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        logger.info("Stopped watching %s", self._root)

    async def wait_idle(self) -> None:
        """Wait until no sync pass is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def state(self, workflow: str) -> WatchState:
        return self._states.get(workflow, WatchState.IDLE)

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def workflow_for_path(self, raw_path: str | bytes) -> str | None:
        """Return the tracked workflow a path belongs to, if any.

        Scoped names such as ``@scope/name`` span two path components, so
        the longest tracked name the path lies under wins.  Paths with any
        dotfile component are ignored.
        """
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode()
        try:
            relative = Path(raw_path).resolve().relative_to(self._root)
        except ValueError:
            return None
        if any(part.startswith(".") for part in relative.parts):
            return None
        matches = [
            name
            for name in self._workflows
            if len(relative.parts) > len(Path(name).parts) and relative.is_relative_to(name)
        ]
        if not matches:
            if len(relative.parts) >= 2:
                logger.warning("Ignoring change in untracked workflow %s", relative.parent)
            return None
        return max(matches, key=lambda name: len(Path(name).parts))

    def notify_threadsafe(self, workflow: str) -> None:
        """Hand an event from the observer thread to the loop."""
        if self._stopped or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self.notify, workflow)

    def notify(self, workflow: str) -> None:
        """Record one change event for *workflow*.  Loop thread only."""
        if self._stopped:
            return
        state = self.state(workflow)
        if state is WatchState.SYNCING:
            self._states[workflow] = WatchState.SYNCING_WITH_PENDING
            return
        if state is WatchState.SYNCING_WITH_PENDING:
            return

        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        timer = self._timers.pop(workflow, None)
        if timer is not None:
            timer.cancel()
        self._timers[workflow] = loop.call_later(self._debounce, self._fire, workflow)

    # ------------------------------------------------------------------
    # Sync passes
    # ------------------------------------------------------------------

    def _fire(self, workflow: str) -> None:
        self._timers.pop(workflow, None)
        if self._stopped:
            return
        self._states[workflow] = WatchState.SYNCING
        self._tasks[workflow] = asyncio.get_running_loop().create_task(self._run(workflow))

    async def _run(self, workflow: str) -> None:
        try:
            while True:
                await self._sync_once(workflow)
                if self._stopped or self.state(workflow) is not WatchState.SYNCING_WITH_PENDING:
                    break
                self._states[workflow] = WatchState.SYNCING
        finally:
            self._states[workflow] = WatchState.IDLE
            self._tasks.pop(workflow, None)

    async def _sync_once(self, workflow: str) -> None:
        logger.info("Detected changes in workflow %s", workflow)
        if self._cache is not None:
            self._cache.invalidate(workflow)
        try:
            await self._on_change(workflow)
        except Exception:
            logger.exception("Watch sync of %s failed", workflow)
