"""Public package entrypoint for cachebust."""

from .bootstrap import BootstrapBuilder
from .config import load_config
from .errors import (
    BuildError,
    BundleError,
    CachebustError,
    ManifestError,
    TransformError,
    ValidationError,
)
from .hashing import ContentHasher
from .manifest import Manifest, read_manifest
from .models import (
    AssetDescriptor,
    AssetType,
    BuildCompletion,
    BuildOptions,
    ManifestEntry,
    resolve_skip_hash,
)
from .options import parse_asset_options, parse_build_options
from .pipeline import Pipeline
from .transforms import register_transform
from .version import __version__
from .watch import WatchCallbacks, WatchSession

__all__ = [
    "AssetDescriptor",
    "AssetType",
    "BootstrapBuilder",
    "BuildCompletion",
    "BuildError",
    "BuildOptions",
    "BundleError",
    "CachebustError",
    "ContentHasher",
    "Manifest",
    "ManifestEntry",
    "ManifestError",
    "Pipeline",
    "TransformError",
    "ValidationError",
    "WatchCallbacks",
    "WatchSession",
    "__version__",
    "load_config",
    "parse_asset_options",
    "parse_build_options",
    "read_manifest",
    "register_transform",
    "resolve_skip_hash",
]
