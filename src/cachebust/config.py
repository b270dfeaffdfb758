"""Config file loading."""

from __future__ import annotations

import json
from pathlib import Path

from cachebust.errors import ValidationError
from cachebust.models import BuildOptions
from cachebust.options import parse_build_options

DEFAULT_CONFIG_FILENAME = "cachebust.json"


def load_config(path: str | Path) -> BuildOptions:
    """Read a JSON config; a relative ``baseDir`` is anchored at the file's directory."""
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ValidationError(
            "Config file does not exist.",
            hint=f"Create {DEFAULT_CONFIG_FILENAME} or pass --config.",
            context={"path": str(config_path)},
        ) from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            "Invalid config JSON.",
            hint=str(exc),
            context={"path": str(config_path)},
        ) from exc
    if not isinstance(payload, dict):
        raise ValidationError("Invalid config payload type.", context={"path": str(config_path)})
    return parse_build_options(payload, base_dir=config_path.resolve().parent)
