"""Manifest store and its persisted JSON form."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

from cachebust.errors import ManifestError
from cachebust.models import AssetType, ManifestEntry, ManifestValue

MANIFEST_FILENAME = "manifest.json"


class Manifest:
    """In-memory name -> descriptor mapping, persisted once per build pass.

    Entries are only ever inserted or overwritten by name; a later
    registration under an existing name replaces the earlier one.
    """

    def __init__(self, dest_dir: str | Path, *, name: str = "", base_url: str = "/") -> None:
        self.dest_dir = Path(dest_dir)
        self.name = name
        self.base_url = base_url
        self._assets: dict[str, ManifestEntry] = {}

    @property
    def file_path(self) -> Path:
        return self.dest_dir / MANIFEST_FILENAME

    def set_value(self, key: str, value: str) -> None:
        if key == "name":
            self.name = value
        elif key == "baseUrl":
            self.base_url = value
        else:
            raise ManifestError(
                "Unknown manifest field.",
                hint="Only `name` and `baseUrl` can be set directly.",
                context={"field": key},
            )

    def add_asset(
        self,
        asset_type: AssetType | str,
        name: str,
        value: ManifestValue | list[str],
        source_path: str | Path | None = None,
    ) -> ManifestEntry:
        if isinstance(value, list):
            value = tuple(value)
        entry = ManifestEntry(
            type=AssetType(asset_type),
            value=value,
            source_path=str(source_path) if source_path is not None else None,
        )
        self._assets[name] = entry
        return entry

    def get_asset(self, name: str) -> ManifestEntry | None:
        return self._assets.get(name)

    def get_asset_names(self) -> list[str]:
        return list(self._assets)

    def __contains__(self, name: object) -> bool:
        return name in self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "baseUrl": self.base_url,
            "assets": {name: entry.to_dict() for name, entry in self._assets.items()},
        }

    def snapshot(self) -> dict[str, Any]:
        """Detached copy; mutating it never touches the store."""
        return copy.deepcopy(self.to_dict())

    def write(self) -> Path:
        return write_manifest(self, self.file_path)


def serialize_manifest(manifest: Manifest) -> str:
    return json.dumps(manifest.to_dict(), indent=2, sort_keys=True) + "\n"


def parse_manifest(raw: str, *, dest_dir: str | Path) -> Manifest:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError("Invalid manifest JSON.", hint=str(exc)) from exc

    if not isinstance(payload, dict):
        raise ManifestError("Invalid manifest payload type.")

    manifest = Manifest(
        dest_dir,
        name=_required_str(payload, "name", allow_empty=True),
        base_url=_required_str(payload, "baseUrl", allow_empty=True),
    )
    assets = payload.get("assets", {})
    if not isinstance(assets, dict):
        raise ManifestError("Invalid manifest `assets` value.")
    for asset_name, item in assets.items():
        _parse_entry(manifest, asset_name, item)
    return manifest


def read_manifest(path: str | Path) -> Manifest:
    manifest_path = Path(path)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(
            "Manifest does not exist.",
            hint="Run a full build before reading the manifest.",
            context={"path": str(manifest_path)},
        ) from exc
    return parse_manifest(raw, dest_dir=manifest_path.parent)


def write_manifest(manifest: Manifest, path: str | Path) -> Path:
    manifest_path = Path(path)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text(serialize_manifest(manifest), encoding="utf-8")
    return manifest_path


def _parse_entry(manifest: Manifest, name: str, item: Any) -> None:
    if not isinstance(item, dict):
        raise ManifestError("Invalid asset entry in manifest.", context={"asset": name})
    raw_type = _required_str(item, "type")
    try:
        asset_type = AssetType(raw_type)
    except ValueError as exc:
        raise ManifestError(
            f"Unknown asset type `{raw_type}` in manifest.",
            context={"asset": name},
        ) from exc
    value = item.get("value")
    if isinstance(value, list) and all(isinstance(member, str) for member in value):
        parsed_value: ManifestValue = tuple(value)
    elif isinstance(value, str):
        parsed_value = value
    else:
        raise ManifestError("Invalid manifest asset `value`.", context={"asset": name})
    source_path = item.get("sourcePath")
    if source_path is not None and not isinstance(source_path, str):
        raise ManifestError("Invalid manifest asset `sourcePath`.", context={"asset": name})
    manifest.add_asset(asset_type, name, parsed_value, source_path)


def _required_str(payload: dict[str, Any], key: str, *, allow_empty: bool = False) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or (not value and not allow_empty):
        raise ManifestError(f"Invalid manifest `{key}` value.")
    return value
