import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from cachebust.bootstrap import BOOTSTRAP_PACKAGE, LOADER_FILE, PLACEHOLDER, RUNTIME_BUNDLE
from cachebust.bundler import BundleRequest, ModuleBundler
from cachebust.errors import BundleError, TransformError
from cachebust.models import BuildCompletion, BuildOptions
from cachebust.pipeline import Pipeline
from cachebust.version import __version__

OptionsFactory = Callable[..., BuildOptions]

SITE_ASSETS: list[dict[str, Any]] = [
    {"type": "file", "name": "app.css", "files": ["css/*.css"], "transform": ["clean-css"]},
    {"type": "folder", "name": "fonts", "folder": "fonts"},
    {
        "type": "bundle",
        "name": "app.js",
        "entries": ["js/main.js"],
        "require": [{"location": "js/lib.js", "expose": "lib"}],
    },
    {"type": "url", "name": "jquery", "url": "https://cdn.example.com/jquery.js"},
    {"type": "package", "name": "site", "assetNames": ["app.css", "app.js", "jquery"]},
]


def test_build_registers_every_asset_and_writes_manifest(make_options: OptionsFactory) -> None:
    options = make_options(SITE_ASSETS)
    calls: list[tuple[BaseException | None, BuildCompletion]] = []

    completion = Pipeline(options).build(lambda error, result: calls.append((error, result)))

    assert len(calls) == 1
    error, reported = calls[0]
    assert error is None
    assert reported is completion
    assert completion.errors == []
    assert completion.config is options

    on_disk = json.loads((options.dest_dir / "manifest.json").read_text(encoding="utf-8"))
    assert on_disk == completion.manifest
    assert on_disk["name"] == "assets"
    assert on_disk["baseUrl"] == "/"
    assert set(on_disk["assets"]) == {
        "app.css",
        "fonts",
        "app.js",
        "jquery",
        "site",
        BOOTSTRAP_PACKAGE,
        RUNTIME_BUNDLE,
        LOADER_FILE,
    }
    assert on_disk["assets"][BOOTSTRAP_PACKAGE] == {
        "type": "package",
        "value": [RUNTIME_BUNDLE, LOADER_FILE],
    }
    assert on_disk["assets"][LOADER_FILE]["value"] == "/" + LOADER_FILE
    for name, entry in on_disk["assets"].items():
        if entry["type"] in ("file", "folder", "bundle"):
            assert Path(entry["sourcePath"]).exists(), name


def test_global_skip_hash_disables_fingerprints(make_options: OptionsFactory) -> None:
    options = make_options(SITE_ASSETS, skipHash=True)

    assets = Pipeline(options).build().manifest["assets"]

    assert assets["app.css"]["value"] == "/app.css"
    assert assets["fonts"]["value"] == "/fonts"
    assert assets["app.js"]["value"] == "/app.js"
    assert assets[RUNTIME_BUNDLE]["value"] == "/" + RUNTIME_BUNDLE


def test_global_hash_overrides_asset_skip_hash(make_options: OptionsFactory) -> None:
    options = make_options(
        [{"type": "file", "name": "app.css", "files": ["css/a.css"], "skipHash": True}],
        skipHash=False,
    )

    assets = Pipeline(options).build().manifest["assets"]

    assert assets["app.css"]["value"] != "/app.css"
    assert assets["app.css"]["value"].startswith("/app.")
    assert assets[LOADER_FILE]["value"].startswith("/cachebust-loader.")
    assert assets[LOADER_FILE]["value"] != "/" + LOADER_FILE


def test_bundle_error_does_not_block_other_assets(make_options: OptionsFactory) -> None:
    options = make_options(
        [
            {"type": "bundle", "name": "app.js", "entries": ["js/gone.js"]},
            {"type": "file", "name": "app.css", "files": ["css/a.css"]},
        ]
    )
    calls: list[BaseException | None] = []

    completion = Pipeline(options).build(lambda error, result: calls.append(error))

    assert calls == [None]
    assert "app.js" not in completion.manifest["assets"]
    assert "app.css" in completion.manifest["assets"]
    assert len(completion.errors) == 1
    assert isinstance(completion.errors[0], BundleError)


def test_first_failure_reports_before_slow_builders_finish(make_options: OptionsFactory) -> None:
    gate = threading.Event()
    bundler = GatedBundler(gate, slow="slow.js")
    options = make_options(
        [
            {"type": "bundle", "name": "slow.js", "entries": ["js/main.js"]},
            {"type": "file", "name": "broken.css", "files": ["css/a.css"], "transform": [_explode]},
        ]
    )
    pipeline = Pipeline(options, bundler=bundler)
    seen: dict[str, Any] = {}

    def done(error: BaseException | None, completion: BuildCompletion) -> None:
        seen["error"] = error
        seen["assets"] = set(completion.manifest["assets"])
        seen["errors"] = list(completion.errors)
        gate.set()

    pipeline.build(done)

    assert isinstance(seen["error"], TransformError)
    assert seen["errors"] == [seen["error"]]
    assert "slow.js" not in seen["assets"]
    assert "broken.css" not in seen["assets"]
    # The straggler keeps running and lands in the live manifest only.
    assert "slow.js" in pipeline.manifest
    on_disk = json.loads(pipeline.get_manifest_file_path().read_text(encoding="utf-8"))
    assert "slow.js" not in on_disk["assets"]
    assert pipeline.in_flight == frozenset()


def test_late_failures_are_logged(make_options: OptionsFactory) -> None:
    gate = threading.Event()
    bundler = GatedBundler(gate, slow="slow.js", fail_slow=True)
    options = make_options(
        [
            {"type": "bundle", "name": "slow.js", "entries": ["js/main.js"]},
            {"type": "file", "name": "broken.css", "files": ["css/a.css"], "transform": [_explode]},
        ]
    )
    pipeline = Pipeline(options, bundler=bundler)

    pipeline.build(lambda error, completion: gate.set())

    late = [
        record
        for record in pipeline.logger.records_at_level("error")
        if record["message"].startswith("late error")
    ]
    assert [record["asset"] for record in late] == ["slow.js"]


def test_bootstrap_payload_excludes_self_references(make_options: OptionsFactory) -> None:
    options = make_options(SITE_ASSETS)
    pipeline = Pipeline(options)

    completion = pipeline.build()

    payload = pipeline.bootstrap_payload
    assert payload is not None
    assert payload["version"] == __version__
    embedded = payload["manifest"]["assets"]
    assert LOADER_FILE not in embedded
    assert BOOTSTRAP_PACKAGE not in embedded
    assert RUNTIME_BUNDLE in embedded
    assert embedded["app.css"] == completion.manifest["assets"]["app.css"]
    assert LOADER_FILE in completion.manifest["assets"]
    assert BOOTSTRAP_PACKAGE in completion.manifest["assets"]


def test_loader_embeds_payload_and_runtime_exposes_module(make_options: OptionsFactory) -> None:
    options = make_options(SITE_ASSETS)
    pipeline = Pipeline(options)

    assets = pipeline.build().manifest["assets"]

    loader = (options.dest_dir / LOADER_FILE).read_text(encoding="utf-8")
    assert PLACEHOLDER not in loader
    assert json.dumps(pipeline.bootstrap_payload, sort_keys=True) in loader
    runtime = Path(assets[RUNTIME_BUNDLE]["sourcePath"]).read_text(encoding="utf-8")
    assert '"cachebust/assets": function (require, module, exports) {' in runtime


def test_set_options_starts_a_fresh_manifest(make_options: OptionsFactory) -> None:
    pipeline = Pipeline(make_options(SITE_ASSETS))
    pipeline.build()
    assert "app.css" in pipeline.manifest

    replacement = make_options(
        [{"type": "url", "name": "cdn", "url": "https://cdn.example.com/"}],
        destDir="public",
        name="other",
    )
    pipeline.set_options(replacement)

    assert len(pipeline.manifest) == 0
    assert pipeline.manifest.name == "other"
    assert pipeline.get_manifest_file_path() == replacement.dest_dir / "manifest.json"
    assert pipeline.bootstrap_payload is None


def test_pipeline_from_config_file(project: Path) -> None:
    config = project / "cachebust.json"
    config.write_text(
        json.dumps(
            {
                "silent": True,
                "baseUrl": "/static/",
                "assets": [{"type": "file", "name": "app.js", "files": ["js/*.js"]}],
            }
        ),
        encoding="utf-8",
    )

    pipeline = Pipeline.from_config(config)
    completion = pipeline.build()

    assert pipeline.options.base_dir == project.resolve()
    assert completion.manifest["assets"]["app.js"]["value"].startswith("/static/app.")
    assert (project / "dist" / "manifest.json").is_file()


class GatedBundler:
    """Holds one asset's bundle until ``gate`` opens."""

    def __init__(self, gate: threading.Event, *, slow: str, fail_slow: bool = False) -> None:
        self.gate = gate
        self.slow = slow
        self.fail_slow = fail_slow
        self.inner = ModuleBundler()

    def bundle(self, request: BundleRequest) -> bytes:
        if request.asset == self.slow:
            assert self.gate.wait(timeout=10)
            if self.fail_slow:
                raise RuntimeError("bundler crashed")
        return self.inner.bundle(request)


def _explode(contents: bytes, path: Path) -> bytes:
    raise ValueError(f"cannot process {path.name}")
