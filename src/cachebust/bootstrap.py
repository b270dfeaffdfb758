"""Bootstrap payload: runtime bundle plus a loader carrying the manifest.

The loader cannot fetch a manifest that lists the loader itself, so its
embedded copy is a snapshot of the live manifest with the loader and the
aggregate package removed. The snapshot is taken first and stripped second;
the live manifest keeps both entries.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from cachebust.builders.base import BuildContext
from cachebust.builders.bundle import BundleAssetBuilder
from cachebust.builders.file import FileAssetBuilder
from cachebust.models import AssetDescriptor, AssetType, RequireSpec, TransformSpec
from cachebust.version import __version__

BOOTSTRAP_PACKAGE = "cachebust"
RUNTIME_BUNDLE = "cachebust-runtime.js"
RUNTIME_MODULE = "cachebust/assets"
LOADER_FILE = "cachebust-loader.js"
PLACEHOLDER = "__CACHEBUST_BOOTSTRAP__"

STATIC_DIR = Path(__file__).resolve().parent / "static"


def runtime_asset() -> AssetDescriptor:
    return AssetDescriptor(
        type=AssetType.BUNDLE,
        name=RUNTIME_BUNDLE,
        require=(RequireSpec(location=STATIC_DIR / "runtime.js", expose=RUNTIME_MODULE),),
        transform=(TransformSpec(fn="uglify"),),
    )


def loader_asset(payload: dict[str, Any]) -> AssetDescriptor:
    def embed(contents: bytes, path: Path) -> bytes:
        return embed_payload(contents.decode("utf-8"), payload).encode("utf-8")

    return AssetDescriptor(
        type=AssetType.FILE,
        name=LOADER_FILE,
        files=((STATIC_DIR / "loader.js").as_posix(),),
        transform=(TransformSpec(fn=embed), TransformSpec(fn="uglify")),
        skip_hash=True,
    )


def bootstrap_payload(snapshot: dict[str, Any], *, version: str = __version__) -> dict[str, Any]:
    """Strip self-referential entries from an already detached snapshot."""
    assets = snapshot.get("assets", {})
    assets.pop(LOADER_FILE, None)
    assets.pop(BOOTSTRAP_PACKAGE, None)
    return {"version": version, "manifest": snapshot}


def embed_payload(source: str, payload: dict[str, Any]) -> str:
    return source.replace(PLACEHOLDER, json.dumps(payload, sort_keys=True))


class BootstrapBuilder:
    """Runs the fixed package -> runtime bundle -> loader sequence."""

    name = "bootstrap"

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.payload: dict[str, Any] | None = None
        self._bundles = BundleAssetBuilder(context)
        self._files = FileAssetBuilder(context)

    async def build(self) -> dict[str, Any]:
        manifest = self.context.manifest
        manifest.add_asset(AssetType.PACKAGE, BOOTSTRAP_PACKAGE, (RUNTIME_BUNDLE, LOADER_FILE))

        await self._bundles.build(runtime_asset())

        payload = bootstrap_payload(manifest.snapshot())
        await self._files.build(loader_asset(payload))

        self.payload = payload
        self.context.log(self.name, LOADER_FILE, "bootstrap payload embedded")
        return payload
