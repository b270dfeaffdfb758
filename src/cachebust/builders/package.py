"""Package assets: a declarative list of member asset names.

Members are recorded by name, never resolved to paths here; the runtime
loader follows the indirection.
"""

from __future__ import annotations

from cachebust.builders.base import BuildContext
from cachebust.models import AssetDescriptor


class PackageAssetBuilder:
    name = "package"

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    async def build(self, asset: AssetDescriptor) -> None:
        self.context.manifest.add_asset(asset.type, asset.name, asset.asset_names)
