"""Built-in content transforms and the name -> factory registry.

A stage maps a list of in-flight files to a new list. Named stages come from
``TRANSFORMS``; raw callables declared on an asset map each file's content.
Names missing from the registry resolve to no stage at all.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from cachebust.errors import CachebustError, TransformError
from cachebust.models import TransformSpec
from cachebust.observability import StructuredLogger


@dataclass(frozen=True, slots=True)
class SourceFile:
    path: Path
    contents: bytes

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8")

    def with_contents(self, contents: bytes | str) -> SourceFile:
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        return replace(self, contents=contents)


@dataclass(frozen=True, slots=True)
class TransformContext:
    asset: str
    output_name: str
    production: bool = False
    logger: StructuredLogger | None = None


Stage = Callable[[list[SourceFile]], list[SourceFile]]
TransformFactory = Callable[[Any, TransformContext], Stage]


def concat(output_name: str, context: TransformContext) -> Stage:
    def stage(files: list[SourceFile]) -> list[SourceFile]:
        if not files:
            return []
        joined = b"\n".join(item.contents for item in files)
        return [SourceFile(path=files[0].path.with_name(Path(output_name).name), contents=joined)]

    return stage


_CSS_COMMENT = re.compile(r"/\*(?!!).*?\*/", re.S)
_CSS_SPACE = re.compile(r"\s+")
_CSS_PUNCT = re.compile(r"\s*([{};:,>])\s*")


def minify_css(source: str) -> str:
    source = _CSS_COMMENT.sub("", source)
    source = _CSS_SPACE.sub(" ", source)
    source = _CSS_PUNCT.sub(r"\1", source)
    return source.replace(";}", "}").strip()


def clean_css(args: Any, context: TransformContext) -> Stage:
    return _map_text(minify_css)


PREFIXES: Mapping[str, tuple[str, ...]] = {
    "appearance": ("-webkit-", "-moz-"),
    "backdrop-filter": ("-webkit-",),
    "hyphens": ("-webkit-", "-ms-"),
    "text-size-adjust": ("-webkit-", "-moz-", "-ms-"),
    "user-select": ("-webkit-", "-moz-", "-ms-"),
}

_DECLARATION = re.compile(
    r"(?P<indent>(?:^|(?<=[{;]))[ \t]*)(?P<prop>" + "|".join(map(re.escape, PREFIXES)) + r")"
    r"\s*:\s*(?P<value>[^;{}]+)(?P<end>;?)",
    re.M,
)


def add_vendor_prefixes(source: str) -> str:
    def expand(match: re.Match[str]) -> str:
        indent, prop, value = match["indent"], match["prop"], match["value"].strip()
        lines = [f"{indent}{prefix}{prop}: {value};" for prefix in PREFIXES[prop]]
        lines.append(f"{indent}{prop}: {value}{match['end']}")
        separator = "\n" if "\n" in match.string else ""
        return separator.join(lines)

    return _DECLARATION.sub(expand, source)


def autoprefixer(args: Any, context: TransformContext) -> Stage:
    return _map_text(add_vendor_prefixes)


_JS_BLOCK_COMMENT = re.compile(r"/\*(?!!).*?\*/", re.S)
_JS_LINE_COMMENT = re.compile(r"^\s*//(?![#@]).*$", re.M)


def minify_js(source: str) -> str:
    source = _JS_BLOCK_COMMENT.sub("", source)
    source = _JS_LINE_COMMENT.sub("", source)
    lines = [line.strip() for line in source.splitlines()]
    return "\n".join(line for line in lines if line)


def uglify(args: Any, context: TransformContext) -> Stage:
    return _map_text(minify_js)


def debug(args: Any, context: TransformContext) -> Stage:
    def stage(files: list[SourceFile]) -> list[SourceFile]:
        if context.logger is not None:
            for item in files:
                context.logger.log(
                    operation="transform",
                    asset=context.asset,
                    builder="debug",
                    message=f"{item.path.name} ({len(item.contents)} bytes)",
                    level="debug",
                )
        return files

    return stage


TRANSFORMS: dict[str, TransformFactory] = {
    "concat": concat,
    "clean-css": clean_css,
    "autoprefixer": autoprefixer,
    "uglify": uglify,
    "debug": debug,
}


def register_transform(name: str, factory: TransformFactory) -> None:
    TRANSFORMS[name] = factory


def build_stage(
    spec: TransformSpec,
    context: TransformContext,
    registry: Mapping[str, TransformFactory] | None = None,
) -> Stage | None:
    if not isinstance(spec.fn, str):
        return _map_raw(spec.fn, context)
    factory = (TRANSFORMS if registry is None else registry).get(spec.fn)
    if factory is None:
        return None
    # concat always writes the asset's own output name.
    args = context.output_name if spec.fn == "concat" else spec.args
    return factory(args, context)


def build_stages(
    specs: Sequence[TransformSpec],
    context: TransformContext,
    registry: Mapping[str, TransformFactory] | None = None,
) -> list[Stage]:
    stages: list[Stage] = []
    for spec in specs:
        stage = build_stage(spec, context, registry)
        if stage is None:
            if context.logger is not None:
                context.logger.log(
                    operation="transform",
                    asset=context.asset,
                    builder=None,
                    message=f"unknown transform `{spec.fn}` skipped",
                    level="warning",
                )
            continue
        stages.append(stage)
    return stages


def run_pipeline(
    files: list[SourceFile], stages: Sequence[Stage], *, asset: str
) -> list[SourceFile]:
    for stage in stages:
        try:
            files = stage(files)
        except CachebustError:
            raise
        except Exception as exc:
            raise TransformError(
                "Transform stage failed.",
                hint=str(exc),
                context={"asset": asset, "stage": getattr(stage, "__qualname__", repr(stage))},
            ) from exc
    return files


def _map_text(fn: Callable[[str], str]) -> Stage:
    def stage(files: list[SourceFile]) -> list[SourceFile]:
        return [item.with_contents(fn(item.text)) for item in files]

    return stage


def _map_raw(fn: Callable[..., Any], context: TransformContext) -> Stage:
    def stage(files: list[SourceFile]) -> list[SourceFile]:
        return [item.with_contents(fn(item.contents, item.path)) for item in files]

    stage.__qualname__ = getattr(fn, "__qualname__", "raw")
    return stage
