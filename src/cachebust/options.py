"""Normalization of raw build and asset declarations.

Raw declarations use the camelCase keys of the JSON config file. The parsed
dataclasses are immutable; changing options means parsing a new set.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from cachebust.errors import ValidationError
from cachebust.models import (
    AssetDescriptor,
    AssetType,
    BuildOptions,
    ExternalSpec,
    RequireSpec,
    TransformSpec,
)

DEFAULT_NAME = "assets"
DEFAULT_DEST_DIR = "dist"
DEFAULT_BASE_URL = "/"
DEFAULT_ENV = "development"


def parse_build_options(
    raw: Mapping[str, Any], *, base_dir: str | Path | None = None
) -> BuildOptions:
    if not isinstance(raw, Mapping):
        raise ValidationError("Build options must be a mapping.")

    anchor = Path(base_dir) if base_dir is not None else Path.cwd()
    resolved_base = _resolve(anchor, _optional_str(raw, "baseDir") or ".").resolve()
    dest_dir = _resolve(resolved_base, _optional_str(raw, "destDir") or DEFAULT_DEST_DIR)

    raw_assets = raw.get("assets", [])
    if not isinstance(raw_assets, Sequence) or isinstance(raw_assets, (str, bytes)):
        raise ValidationError("`assets` must be a list of asset declarations.")
    asset_names = [item.get("name") for item in raw_assets if isinstance(item, Mapping)]
    assets = tuple(
        parse_asset_options(item, base_dir=resolved_base, asset_names=asset_names)
        for item in raw_assets
    )

    return BuildOptions(
        name=_optional_str(raw, "name") or DEFAULT_NAME,
        base_dir=resolved_base,
        dest_dir=dest_dir,
        base_url=_optional_str(raw, "baseUrl") or DEFAULT_BASE_URL,
        env=_optional_str(raw, "env") or DEFAULT_ENV,
        skip=_str_tuple(raw, "skip"),
        silent=_optional_bool(raw, "silent") or False,
        skip_hash=_optional_bool(raw, "skipHash"),
        assets=assets,
    )


def parse_asset_options(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    asset_names: Sequence[str | None] = (),
) -> AssetDescriptor:
    if not isinstance(raw, Mapping):
        raise ValidationError("Asset declarations must be mappings.")
    name = _required_str(raw, "name", owner="asset")
    context = {"asset": name}
    raw_type = _required_str(raw, "type", owner="asset", context=context)
    try:
        asset_type = AssetType(raw_type)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown asset type `{raw_type}`.",
            hint="Use one of: " + ", ".join(item.value for item in AssetType),
            context=context,
        ) from exc

    fields: dict[str, Any] = {
        "type": asset_type,
        "name": name,
        "transform": _parse_transforms(raw.get("transform", ()), context),
        "watch": tuple(
            _resolve_pattern(base_dir, pattern) for pattern in _str_tuple(raw, "watch", context)
        ),
        "skip_hash": _optional_bool(raw, "skipHash", context),
    }

    if asset_type is AssetType.FILE:
        files = _str_tuple(raw, "files", context)
        if not files:
            raise ValidationError("File assets require `files`.", context=context)
        fields["files"] = tuple(_resolve_pattern(base_dir, pattern) for pattern in files)
    elif asset_type is AssetType.FOLDER:
        folder = _required_str(raw, "folder", owner="folder asset", context=context)
        fields["folder"] = _resolve(base_dir, folder)
        fields["include"] = _str_tuple(raw, "include", context)
        fields["exclude"] = _str_tuple(raw, "exclude", context)
    elif asset_type is AssetType.BUNDLE:
        entries = _str_tuple(raw, "entries", context)
        fields["entries"] = tuple(_resolve(base_dir, entry) for entry in entries)
        fields["require"] = _parse_requires(raw.get("require", ()), base_dir, context)
        fields["external"] = _parse_externals(raw.get("external", ()), asset_names, context)
    elif asset_type is AssetType.URL:
        fields["url"] = _required_str(raw, "url", owner="url asset", context=context)
    elif asset_type is AssetType.PACKAGE:
        if "assetNames" not in raw:
            raise ValidationError("Package assets require `assetNames`.", context=context)
        fields["asset_names"] = _str_tuple(raw, "assetNames", context)

    return AssetDescriptor(**fields)


def _parse_transforms(raw: Any, context: dict[str, str]) -> tuple[TransformSpec, ...]:
    items = _as_list(raw, "transform", context)
    specs: list[TransformSpec] = []
    for item in items:
        if isinstance(item, str) or callable(item):
            specs.append(TransformSpec(fn=item))
        elif isinstance(item, Mapping):
            fn = item.get("fn")
            if not (isinstance(fn, str) or callable(fn)):
                raise ValidationError("Transform entries require `fn`.", context=context)
            options = item.get("options") or {}
            if not isinstance(options, Mapping):
                raise ValidationError("Transform `options` must be a mapping.", context=context)
            specs.append(TransformSpec(fn=fn, options=dict(options), args=item.get("args")))
        else:
            raise ValidationError("Invalid transform entry.", context=context)
    return tuple(specs)


def _parse_requires(raw: Any, base_dir: Path, context: dict[str, str]) -> tuple[RequireSpec, ...]:
    specs: list[RequireSpec] = []
    for item in _as_list(raw, "require", context):
        if isinstance(item, str):
            specs.append(RequireSpec(location=_resolve(base_dir, item), expose=item))
        elif isinstance(item, Mapping):
            location = _required_str(item, "location", owner="require entry", context=context)
            expose = item.get("expose") or item.get("name") or location
            if not isinstance(expose, str):
                raise ValidationError("Require `expose` must be a string.", context=context)
            specs.append(RequireSpec(location=_resolve(base_dir, location), expose=expose))
        else:
            raise ValidationError("Invalid require entry.", context=context)
    return tuple(specs)


def _parse_externals(
    raw: Any,
    asset_names: Sequence[str | None],
    context: dict[str, str],
) -> tuple[ExternalSpec, ...]:
    specs: list[ExternalSpec] = []
    for item in _as_list(raw, "external", context):
        if isinstance(item, str):
            kind = "bundle" if item in asset_names else "module"
            specs.append(ExternalSpec(kind=kind, name=item))
        elif isinstance(item, Mapping):
            kind = item.get("type", "module")
            if kind not in ("bundle", "module"):
                raise ValidationError(
                    f"Unknown external type `{kind}`.",
                    hint="Use `bundle` or `module`.",
                    context=context,
                )
            name = _required_str(item, "name", owner="external entry", context=context)
            specs.append(ExternalSpec(kind=kind, name=name))
        else:
            raise ValidationError("Invalid external entry.", context=context)
    return tuple(specs)


def _resolve(base_dir: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else base_dir / path


def _resolve_pattern(base_dir: Path, pattern: str) -> str:
    if pattern.startswith("!"):
        return "!" + _resolve(base_dir, pattern[1:]).as_posix()
    return _resolve(base_dir, pattern).as_posix()


def _as_list(raw: Any, key: str, context: dict[str, str]) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (str, Mapping)) or callable(raw):
        return [raw]
    if not isinstance(raw, Sequence):
        raise ValidationError(f"Invalid `{key}` value.", context=context)
    return list(raw)


def _required_str(
    payload: Mapping[str, Any],
    key: str,
    *,
    owner: str,
    context: dict[str, str] | None = None,
) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(
            f"{owner.capitalize()} requires a non-empty `{key}`.", context=context
        )
    return value


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid `{key}` value.")
    return value


def _optional_bool(
    payload: Mapping[str, Any],
    key: str,
    context: dict[str, str] | None = None,
) -> bool | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(f"`{key}` must be true, false or unset.", context=context)
    return value


def _str_tuple(
    payload: Mapping[str, Any],
    key: str,
    context: dict[str, str] | None = None,
) -> tuple[str, ...]:
    value = payload.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, Sequence) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"`{key}` must be a list of strings.", context=context)
    return tuple(value)

