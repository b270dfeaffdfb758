"""Command line entrypoint: ``cachebust build`` and ``cachebust watch``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from cachebust.config import DEFAULT_CONFIG_FILENAME, load_config
from cachebust.errors import CachebustError
from cachebust.models import BuildOptions
from cachebust.pipeline import Pipeline
from cachebust.watch import DEFAULT_POLL_INTERVAL, WatchCallbacks, WatchSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cachebust", description="Content-addressed asset builds")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_FILENAME),
        help=f"config file (default: {DEFAULT_CONFIG_FILENAME})",
    )
    parser.add_argument("--silent", action="store_true", help="suppress build logs")
    hashing = parser.add_mutually_exclusive_group()
    hashing.add_argument(
        "--skip-hash",
        dest="skip_hash",
        action="store_const",
        const=True,
        help="never fingerprint output names",
    )
    hashing.add_argument(
        "--hash",
        dest="skip_hash",
        action="store_const",
        const=False,
        help="always fingerprint output names",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("build", help="build every declared asset once")
    watch = sub.add_parser("watch", help="build, then rebuild assets as their sources change")
    watch.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"poll interval in seconds (default: {DEFAULT_POLL_INTERVAL})",
    )
    return parser


def cmd_build(options: BuildOptions) -> int:
    completion = Pipeline(options).build()
    print(json.dumps(completion.manifest, indent=2, sort_keys=True))
    return 1 if completion.errors else 0


def cmd_watch(options: BuildOptions, interval: float) -> int:
    pipeline = Pipeline(options)

    def on_error(exc: BaseException) -> None:
        print(f"rebuild failed: {exc}", file=sys.stderr)

    session = WatchSession(pipeline, WatchCallbacks(error=on_error), poll_interval=interval)

    async def run() -> None:
        await pipeline.build_assets()
        await session.run()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        session.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        options = load_config(args.config)
        overrides: dict[str, object] = {}
        if args.silent:
            overrides["silent"] = True
        if args.skip_hash is not None:
            overrides["skip_hash"] = args.skip_hash
        options = replace(options, **overrides)  # type: ignore[arg-type]
        if args.command == "watch":
            return cmd_watch(options, args.interval)
        return cmd_build(options)
    except CachebustError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
