"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from cachebust.models import BuildOptions
from cachebust.options import parse_build_options

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"

OptionsFactory = Callable[..., BuildOptions]


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small source tree with styles, scripts, images and fonts."""
    base = tmp_path / "project"
    _write(base / "css" / "a.css", "a {\n  color: red;\n}\n")
    _write(base / "css" / "b.css", "/* theme */\nb {\n  user-select: none;\n}\n")
    _write(base / "js" / "main.js", "// entry\nvar lib = require('lib');\nlib.run();\n")
    _write(base / "js" / "lib.js", "module.exports = { run: function () {} };\n")
    (base / "img").mkdir(parents=True)
    (base / "img" / "a.png").write_bytes(PNG_BYTES + b"a")
    (base / "img" / "b.png").write_bytes(PNG_BYTES + b"bb")
    _write(base / "fonts" / "one.woff", "font-one")
    _write(base / "fonts" / "two.woff", "font-two")
    _write(base / "fonts" / "nested" / "three.svg", "<svg/>")
    return base


@pytest.fixture
def make_options(project: Path) -> OptionsFactory:
    def factory(assets: list[dict[str, Any]], **overrides: Any) -> BuildOptions:
        raw: dict[str, Any] = {"silent": True, "assets": assets}
        raw.update(overrides)
        return parse_build_options(raw, base_dir=project)

    return factory


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
