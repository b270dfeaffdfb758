"""Shared context and contracts for per-type asset builders."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from cachebust.bundler import Bundler
from cachebust.hashing import content_digest, hashed_filename
from cachebust.manifest import Manifest
from cachebust.models import AssetDescriptor, BuildOptions, ManifestEntry, resolve_skip_hash
from cachebust.observability import StructuredLogger
from cachebust.transforms import TransformContext, TransformFactory


@dataclass(slots=True)
class BuildContext:
    """Everything a builder reads or mutates during one session."""

    options: BuildOptions
    manifest: Manifest
    logger: StructuredLogger
    bundler: Bundler
    transforms: Mapping[str, TransformFactory] | None = None
    errors: list[Exception] = field(default_factory=list)

    def skip_hash(self, asset: AssetDescriptor) -> bool:
        return resolve_skip_hash(self.options.skip_hash, asset.skip_hash)

    def public_path(self, output_path: Path) -> str:
        return posixpath.join(self.options.base_url, output_path.name)

    def register(self, asset: AssetDescriptor, output_path: Path) -> ManifestEntry:
        return self.manifest.add_asset(
            asset.type,
            asset.name,
            self.public_path(output_path),
            output_path,
        )

    def transform_context(self, asset: AssetDescriptor) -> TransformContext:
        return TransformContext(
            asset=asset.name,
            output_name=asset.name,
            production=self.options.production,
            logger=self.logger,
        )

    def log(
        self,
        builder: str,
        asset: str | None,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.logger.log(
            operation="build",
            asset=asset,
            builder=builder,
            message=message,
            level=level,
            extra=extra,
        )


class AssetBuilder(Protocol):
    name: str

    async def build(self, asset: AssetDescriptor) -> None:
        """Build one asset and register its manifest entry."""


def write_output(dest_dir: Path, name: str, contents: bytes, *, skip_hash: bool) -> Path:
    """Write ``contents`` as ``name`` (hash-suffixed unless skipped) under ``dest_dir``."""
    filename = name if skip_hash else hashed_filename(name, content_digest(contents))
    output_path = dest_dir / Path(filename).name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(contents)
    return output_path
