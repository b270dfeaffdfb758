import json
from pathlib import Path

import pytest

from cachebust.errors import ManifestError
from cachebust.manifest import Manifest, parse_manifest, read_manifest
from cachebust.models import AssetType


def test_add_asset_overwrites_by_name(tmp_path: Path) -> None:
    manifest = Manifest(tmp_path, name="site", base_url="/static/")
    manifest.add_asset("file", "app.css", "/static/app.1.css")
    manifest.add_asset(AssetType.FILE, "app.css", "/static/app.2.css")

    assert manifest.get_asset_names() == ["app.css"]
    entry = manifest.get_asset("app.css")
    assert entry is not None
    assert entry.value == "/static/app.2.css"


def test_snapshot_is_detached_from_store(tmp_path: Path) -> None:
    manifest = Manifest(tmp_path)
    manifest.add_asset("package", "bundle", ["a", "b"])

    snapshot = manifest.snapshot()
    snapshot["assets"].pop("bundle")

    assert "bundle" in manifest
    assert manifest.to_dict()["assets"]["bundle"] == {"type": "package", "value": ["a", "b"]}


def test_manifest_round_trips_through_disk(tmp_path: Path) -> None:
    manifest = Manifest(tmp_path / "dist", name="site", base_url="/")
    manifest.add_asset("file", "app.css", "/app.abc.css", tmp_path / "dist" / "app.abc.css")
    manifest.add_asset("url", "cdn", "https://cdn.example.com/lib.js")
    manifest.add_asset("package", "all", ["app.css", "cdn"])

    path = manifest.write()
    assert path == tmp_path / "dist" / "manifest.json"

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["name"] == "site"
    assert raw["baseUrl"] == "/"
    assert "sourcePath" not in raw["assets"]["cdn"]
    assert raw["assets"]["app.css"]["sourcePath"].endswith("app.abc.css")

    loaded = read_manifest(path)
    assert loaded.to_dict() == manifest.to_dict()
    package = loaded.get_asset("all")
    assert package is not None
    assert package.value == ("app.css", "cdn")


def test_read_manifest_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ManifestError) as exc_info:
        read_manifest(tmp_path / "manifest.json")
    assert exc_info.value.hint is not None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[]",
        '{"name": "x", "baseUrl": "/", "assets": []}',
        '{"name": "x", "baseUrl": "/", "assets": {"a": {"type": "nope", "value": "/a"}}}',
        '{"name": "x", "baseUrl": "/", "assets": {"a": {"type": "file", "value": 3}}}',
    ],
)
def test_parse_manifest_rejects_malformed_payloads(tmp_path: Path, raw: str) -> None:
    with pytest.raises(ManifestError):
        parse_manifest(raw, dest_dir=tmp_path)


def test_set_value_only_accepts_known_fields(tmp_path: Path) -> None:
    manifest = Manifest(tmp_path)
    manifest.set_value("name", "site")
    manifest.set_value("baseUrl", "/assets/")

    assert manifest.to_dict()["name"] == "site"
    assert manifest.to_dict()["baseUrl"] == "/assets/"
    with pytest.raises(ManifestError):
        manifest.set_value("version", "1")
