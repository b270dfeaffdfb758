"""Structured logging helpers."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO


@dataclass(slots=True)
class StructuredLogger:
    silent: bool = False
    stream: TextIO | None = None
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        asset: str | None,
        builder: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "asset": asset,
            "builder": builder,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if not self.silent:
            self._echo(record)

    def records_for_asset(self, asset: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("asset") == asset]

    def records_at_level(self, level: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("level") == level]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True, default=str) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path

    def _echo(self, record: dict[str, Any]) -> None:
        stream = self.stream if self.stream is not None else sys.stderr
        parts = [f"[{record['level']}]", record["operation"]]
        if record["asset"]:
            parts.append(record["asset"])
        parts.append(record["message"])
        print(" ".join(parts), file=stream)
