"""Watch-driven incremental rebuilds.

Each watched asset gets its own polling watcher. A detected change fires the
``changed`` callback synchronously, then rebuilds that asset and the
bootstrap payload in an independent task. Rapid successive changes are not
coalesced: every detection starts its own rebuild, and overlapping rebuilds
of one asset finish in no particular order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from cachebust.globbing import select_files
from cachebust.models import AssetDescriptor
from cachebust.pipeline import Pipeline

DEFAULT_POLL_INTERVAL = 0.5

FileState = tuple[int, int]


class ChangeType(StrEnum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class FileChangeEvent:
    asset: str
    path: Path
    change_type: ChangeType


@dataclass(slots=True)
class WatchCallbacks:
    error: Callable[[BaseException], None] | None = None
    changed: Callable[[list[FileChangeEvent]], None] | None = None
    complete: Callable[[list[FileChangeEvent]], None] | None = None


class PollingWatcher:
    """Diffs ``(mtime_ns, size)`` snapshots of the files matching ``patterns``."""

    def __init__(self, name: str, patterns: Sequence[str], *, base_dir: Path) -> None:
        self.name = name
        self.patterns = tuple(patterns)
        self.base_dir = base_dir
        self._snapshot: dict[Path, FileState] = {}

    def scan(self) -> dict[Path, FileState]:
        state: dict[Path, FileState] = {}
        for path in select_files(self.patterns, self.base_dir):
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            state[path] = (stat.st_mtime_ns, stat.st_size)
        return state

    def initialize(self) -> None:
        self._snapshot = self.scan()

    def poll_once(self) -> list[FileChangeEvent]:
        current = self.scan()
        events: list[FileChangeEvent] = []
        for path, state in current.items():
            previous = self._snapshot.get(path)
            if previous is None:
                events.append(FileChangeEvent(self.name, path, ChangeType.CREATED))
            elif previous != state:
                events.append(FileChangeEvent(self.name, path, ChangeType.MODIFIED))
        for path in self._snapshot.keys() - current.keys():
            events.append(FileChangeEvent(self.name, path, ChangeType.DELETED))
        self._snapshot = current
        return sorted(events, key=lambda event: event.path.as_posix())


class WatchSession:
    def __init__(
        self,
        pipeline: Pipeline,
        callbacks: WatchCallbacks | None = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.pipeline = pipeline
        self.callbacks = callbacks or WatchCallbacks()
        self.poll_interval = poll_interval
        self._watchers: dict[str, tuple[AssetDescriptor, PollingWatcher]] = {}
        self._rebuilds: set[asyncio.Task[None]] = set()
        self._stopped = asyncio.Event()

    @property
    def watched(self) -> list[str]:
        return list(self._watchers)

    async def start(self) -> None:
        options = self.pipeline.options
        for asset in options.assets:
            if not asset.watchable:
                continue
            watcher = PollingWatcher(asset.name, asset.watch, base_dir=options.base_dir)
            await asyncio.to_thread(watcher.initialize)
            self._watchers[asset.name] = (asset, watcher)
            self.pipeline.log("watching", asset=asset.name)

    async def poll_once(self) -> list[asyncio.Task[None]]:
        started: list[asyncio.Task[None]] = []
        for asset, watcher in list(self._watchers.values()):
            events = await asyncio.to_thread(watcher.poll_once)
            if events:
                started.append(self._trigger(asset, events))
        return started

    async def run(self) -> None:
        if not self._watchers:
            await self.start()
        while not self._stopped.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.poll_interval)
            except TimeoutError:
                continue

    def stop(self) -> None:
        self._stopped.set()

    async def wait_idle(self) -> None:
        while self._rebuilds:
            await asyncio.gather(*self._rebuilds, return_exceptions=True)

    def _trigger(self, asset: AssetDescriptor, events: list[FileChangeEvent]) -> asyncio.Task[None]:
        self.pipeline.log(f"changed ({len(events)} files)", asset=asset.name)
        if self.callbacks.changed is not None:
            self.callbacks.changed(events)
        task = asyncio.create_task(self._rebuild(asset, events), name=f"watch:{asset.name}")
        self._rebuilds.add(task)
        task.add_done_callback(self._rebuilds.discard)
        return task

    async def _rebuild(self, asset: AssetDescriptor, events: list[FileChangeEvent]) -> None:
        try:
            await self.pipeline.rebuild(asset)
        except Exception as exc:
            self.pipeline.log(f"rebuild failed {exc!r}", asset=asset.name, level="error")
            if self.callbacks.error is not None:
                self.callbacks.error(exc)
            return
        self.pipeline.log("rebuild complete", asset=asset.name)
        if self.callbacks.complete is not None:
            self.callbacks.complete(events)
