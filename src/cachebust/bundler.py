"""Default module-bundling capability.

The bundler does not resolve ``require()`` calls inside module sources: a
bundle contains exactly its entry file plus the explicitly required and
exposed modules, minus the excluded names. Exposed modules are published
on a page-wide registry so later bundles can use them as externals.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from cachebust.errors import BundleError, CachebustError
from cachebust.models import RequireSpec
from cachebust.transforms import SourceFile, Stage, run_pipeline

PRELUDE = """(function (modules, entries) {
var root = typeof window !== "undefined" ? window : this;
var registry = root.__cachebustModules = root.__cachebustModules || {};
var cache = root.__cachebustCache = root.__cachebustCache || {};
function require(name) {
if (cache[name]) { return cache[name].exports; }
var factory = modules[name] || registry[name];
if (!factory) { throw new Error("Cannot find module '" + name + "'"); }
var module = cache[name] = { exports: {} };
factory.call(module.exports, require, module, module.exports);
return module.exports;
}
for (var key in modules) { registry[key] = modules[key]; }
for (var i = 0; i < entries.length; i++) { require(entries[i]); }
})"""


@dataclass(frozen=True, slots=True)
class BundleRequest:
    asset: str
    base_dir: Path
    entry: Path | None = None
    transforms: Sequence[Stage] = ()
    require: Sequence[RequireSpec] = ()
    external: Sequence[str] = ()
    debug: bool = False


@dataclass(frozen=True, slots=True)
class BundledModule:
    id: str
    path: Path
    source: str
    entry: bool = False


class Bundler(Protocol):
    def bundle(self, request: BundleRequest) -> bytes:
        """Produce one bundle, raising ``BundleError`` on failure."""


@dataclass(slots=True)
class ModuleBundler:
    bundled: list[str] = field(default_factory=list)

    def bundle(self, request: BundleRequest) -> bytes:
        excluded = list(dict.fromkeys(request.external))
        modules: list[BundledModule] = []
        for req in request.require:
            if req.expose in excluded:
                continue
            modules.append(self._load(request, req.location, req.expose, entry=False))
        if request.entry is not None:
            entry_id = _entry_id(request.entry, request.base_dir)
            modules.append(self._load(request, request.entry, entry_id, entry=True))

        self.bundled.extend(module.id for module in modules)
        return _render(modules, excluded, debug=request.debug)

    def _load(
        self, request: BundleRequest, path: Path, module_id: str, *, entry: bool
    ) -> BundledModule:
        if not path.is_file():
            raise BundleError(
                "Cannot find module source.",
                hint="Check the bundle's entries and require locations.",
                context={"asset": request.asset, "module": module_id, "path": str(path)},
            )
        source = SourceFile(path=path, contents=path.read_bytes())
        try:
            transformed = run_pipeline([source], request.transforms, asset=request.asset)
            text = b"\n".join(item.contents for item in transformed).decode("utf-8")
        except (CachebustError, UnicodeDecodeError) as exc:
            raise BundleError(
                "Module transform failed.",
                hint=str(exc),
                context={"asset": request.asset, "module": module_id, "path": str(path)},
            ) from exc
        return BundledModule(id=module_id, path=path, source=text, entry=entry)


def _entry_id(entry: Path, base_dir: Path) -> str:
    try:
        return "./" + entry.relative_to(base_dir).as_posix()
    except ValueError:
        return entry.as_posix()


def _render(modules: list[BundledModule], excluded: list[str], *, debug: bool) -> bytes:
    lines: list[str] = []
    if excluded:
        lines.append("/* externals: " + ", ".join(excluded) + " */")
    lines.append(PRELUDE + "({")
    for index, module in enumerate(modules):
        lines.append(f"{json.dumps(module.id)}: function (require, module, exports) {{")
        lines.append(module.source.rstrip("\n"))
        if debug:
            lines.append(f"//# sourceURL={module.path.as_posix()}")
        lines.append("}" + ("," if index < len(modules) - 1 else ""))
    entries = [module.id for module in modules if module.entry]
    lines.append("}, " + json.dumps(entries) + ");")
    return ("\n".join(lines) + "\n").encode("utf-8")
