"""URL assets: no build step, the manifest value is the URL itself."""

from __future__ import annotations

from cachebust.builders.base import BuildContext
from cachebust.errors import BuildError
from cachebust.models import AssetDescriptor


class UrlAssetBuilder:
    name = "url"

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    async def build(self, asset: AssetDescriptor) -> None:
        if asset.url is None:
            raise BuildError(
                "URL asset has no `url`.",
                hint="Declare url assets through parse_asset_options.",
                context={"asset": asset.name, "builder": self.name},
            )
        self.context.manifest.add_asset(asset.type, asset.name, asset.url)
