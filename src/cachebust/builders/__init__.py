"""Per-type asset builders."""

from .base import AssetBuilder, BuildContext, write_output
from .bundle import BundleAssetBuilder, resolve_externals
from .file import FileAssetBuilder
from .folder import FolderAssetBuilder
from .package import PackageAssetBuilder
from .url import UrlAssetBuilder

__all__ = [
    "AssetBuilder",
    "BuildContext",
    "BundleAssetBuilder",
    "FileAssetBuilder",
    "FolderAssetBuilder",
    "PackageAssetBuilder",
    "UrlAssetBuilder",
    "resolve_externals",
    "write_output",
]
