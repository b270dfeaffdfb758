"""Build session: dispatches declared assets to their builders.

All declared assets build concurrently on one event loop. The first builder
exception is reported to the caller right away; builders still in flight
are not cancelled and may keep registering manifest entries after the
manifest has been written and the completion reported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from cachebust.bootstrap import BootstrapBuilder
from cachebust.builders import (
    AssetBuilder,
    BuildContext,
    BundleAssetBuilder,
    FileAssetBuilder,
    FolderAssetBuilder,
    PackageAssetBuilder,
    UrlAssetBuilder,
)
from cachebust.bundler import Bundler, ModuleBundler
from cachebust.config import load_config
from cachebust.errors import BuildError
from cachebust.manifest import Manifest
from cachebust.models import AssetDescriptor, AssetType, BuildCompletion, BuildOptions
from cachebust.observability import StructuredLogger
from cachebust.transforms import TransformFactory

CompletionCallback = Callable[[BaseException | None, BuildCompletion], None]


class Pipeline:
    def __init__(
        self,
        options: BuildOptions,
        *,
        bundler: Bundler | None = None,
        transforms: Mapping[str, TransformFactory] | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._bundler = bundler if bundler is not None else ModuleBundler()
        self._transforms = transforms
        self._logger = logger
        self._in_flight: set[asyncio.Task[None]] = set()
        self.set_options(options)

    @classmethod
    def from_config(cls, path: str | Path, **kwargs: Any) -> Pipeline:
        return cls(load_config(path), **kwargs)

    def set_options(self, options: BuildOptions) -> None:
        """Replace the options wholesale; the manifest starts over empty."""
        self.options = options
        self.manifest = Manifest(options.dest_dir, name=options.name, base_url=options.base_url)
        logger = self._logger or StructuredLogger(silent=options.silent)
        self.context = BuildContext(
            options=options,
            manifest=self.manifest,
            logger=logger,
            bundler=self._bundler,
            transforms=self._transforms,
        )
        self._builders: dict[AssetType, AssetBuilder] = {
            AssetType.FILE: FileAssetBuilder(self.context),
            AssetType.FOLDER: FolderAssetBuilder(self.context),
            AssetType.BUNDLE: BundleAssetBuilder(self.context),
            AssetType.URL: UrlAssetBuilder(self.context),
            AssetType.PACKAGE: PackageAssetBuilder(self.context),
        }
        self._bootstrap = BootstrapBuilder(self.context)

    @property
    def logger(self) -> StructuredLogger:
        return self.context.logger

    @property
    def bootstrap_payload(self) -> dict[str, Any] | None:
        return self._bootstrap.payload

    @property
    def in_flight(self) -> frozenset[asyncio.Task[None]]:
        return frozenset(self._in_flight)

    def get_manifest_file_path(self) -> Path:
        return self.manifest.file_path

    def log(self, message: str, *, asset: str | None = None, level: str = "info") -> None:
        self.logger.log(
            operation="pipeline",
            asset=asset,
            builder=None,
            message=message,
            level=level,
        )

    async def build_asset(self, asset: AssetDescriptor) -> None:
        builder = self._builders[asset.type]
        self.context.log(builder.name, asset.name, "start")
        try:
            await builder.build(asset)
        except OSError as exc:
            raise BuildError(
                "Asset build failed.",
                hint=str(exc),
                context={"asset": asset.name, "builder": builder.name},
            ) from exc
        self.context.log(builder.name, asset.name, "done")

    async def build_bootstrap(self) -> dict[str, Any]:
        return await self._bootstrap.build()

    async def rebuild(self, asset: AssetDescriptor) -> None:
        """Single-asset rebuild followed by a fresh bootstrap payload."""
        await self.build_asset(asset)
        await self.build_bootstrap()
        self.manifest.write()

    async def build_assets(self, done: CompletionCallback | None = None) -> BuildCompletion:
        self.context.errors.clear()
        tasks = [
            asyncio.create_task(self.build_asset(asset), name=f"build:{asset.name}")
            for asset in self.options.assets
        ]

        error: BaseException | None = None
        if tasks:
            finished, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            failures = [
                task.exception()
                for task in tasks
                if task in finished and not task.cancelled() and task.exception() is not None
            ]
            if failures:
                error = failures[0]
            for task in pending:
                self._track(task)
        if error is not None:
            self.log(f"error {error!r}", level="error")

        try:
            await self.build_bootstrap()
            self.manifest.write()
        except Exception as exc:
            self.log(f"error {exc!r}", level="error")
            if error is None:
                error = exc
        self.log("done")

        errors: list[Exception] = list(self.context.errors)
        if isinstance(error, Exception):
            errors.append(error)
        completion = BuildCompletion(
            config=self.options,
            manifest=self.manifest.to_dict(),
            errors=errors,
        )
        if done is not None:
            done(error, completion)
        return completion

    async def drain(self) -> None:
        """Wait for builders left running after an early aggregate error."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def build(self, done: CompletionCallback | None = None) -> BuildCompletion:
        async def run() -> BuildCompletion:
            completion = await self.build_assets(done)
            await self.drain()
            return completion

        return asyncio.run(run())

    def _track(self, task: asyncio.Task[None]) -> None:
        self._in_flight.add(task)
        task.add_done_callback(self._settle)

    def _settle(self, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            asset = task.get_name().removeprefix("build:")
            self.log(f"late error {exc!r}", asset=asset, level="error")
