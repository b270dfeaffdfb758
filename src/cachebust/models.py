"""Core typed dataclasses for asset declarations, options and manifest entries."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

ExternalKind = Literal["bundle", "module"]
ManifestValue = str | tuple[str, ...]

BINARY_EXTENSIONS = frozenset(
    {
        ".bmp",
        ".eot",
        ".gif",
        ".ico",
        ".jpeg",
        ".jpg",
        ".otf",
        ".png",
        ".ttf",
        ".webp",
        ".woff",
        ".woff2",
    }
)


class AssetType(StrEnum):
    FILE = "file"
    FOLDER = "folder"
    BUNDLE = "bundle"
    URL = "url"
    PACKAGE = "package"


@dataclass(frozen=True, slots=True)
class TransformSpec:
    """One pipeline stage: a registry name or a raw content-mapping callable."""

    fn: str | Callable[..., Any]
    options: Mapping[str, Any] = field(default_factory=dict)
    args: Any = None

    @property
    def is_named(self) -> bool:
        return isinstance(self.fn, str)


@dataclass(frozen=True, slots=True)
class RequireSpec:
    location: Path
    expose: str


@dataclass(frozen=True, slots=True)
class ExternalSpec:
    kind: ExternalKind
    name: str


@dataclass(frozen=True, slots=True)
class AssetDescriptor:
    type: AssetType
    name: str
    files: tuple[str, ...] = ()
    folder: Path | None = None
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    entries: tuple[Path, ...] = ()
    transform: tuple[TransformSpec, ...] = ()
    require: tuple[RequireSpec, ...] = ()
    external: tuple[ExternalSpec, ...] = ()
    url: str | None = None
    asset_names: tuple[str, ...] = ()
    watch: tuple[str, ...] = ()
    skip_hash: bool | None = None

    @property
    def watchable(self) -> bool:
        return bool(self.watch) and self.type in (
            AssetType.FILE,
            AssetType.FOLDER,
            AssetType.BUNDLE,
        )


@dataclass(frozen=True, slots=True)
class BuildOptions:
    base_dir: Path
    dest_dir: Path
    name: str = "assets"
    base_url: str = "/"
    env: str = "development"
    skip: tuple[str, ...] = ()
    silent: bool = False
    skip_hash: bool | None = None
    assets: tuple[AssetDescriptor, ...] = ()

    @property
    def production(self) -> bool:
        return self.env == "production"

    def asset(self, name: str) -> AssetDescriptor | None:
        # Duplicate names resolve to the first declaration, like a list index lookup.
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    type: AssetType
    value: ManifestValue
    source_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type.value,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
        }
        if self.source_path is not None:
            payload["sourcePath"] = self.source_path
        return payload


@dataclass(slots=True)
class BuildCompletion:
    """What a full build hands back to its caller."""

    config: BuildOptions
    manifest: dict[str, Any]
    errors: list[Exception] = field(default_factory=list)


def resolve_skip_hash(global_skip: bool | None, asset_skip: bool | None) -> bool:
    """Apply the tri-state hashing policy.

    A global ``True`` disables hashing everywhere, a global ``False`` forces it
    everywhere, and an unset global defers to the asset's own flag.
    """
    if global_skip is True:
        return True
    if global_skip is None:
        return bool(asset_skip)
    return False
