"""Bundle assets: entries plus exposed modules through the bundling capability."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from cachebust.builders.base import BuildContext, write_output
from cachebust.bundler import BundleRequest
from cachebust.errors import BundleError
from cachebust.models import AssetDescriptor, BuildOptions
from cachebust.transforms import build_stages


def resolve_externals(asset: AssetDescriptor, options: BuildOptions) -> list[str]:
    """Names to exclude from ``asset``'s bundle.

    A ``bundle`` external contributes the sibling's own exposed require names,
    and nothing from the sibling's externals. Undeclared siblings are ignored.
    """
    external: list[str] = []
    for ext in asset.external:
        if ext.kind == "bundle":
            sibling = options.asset(ext.name)
            if sibling is None:
                continue
            external.extend(req.expose for req in sibling.require)
        elif ext.kind == "module":
            external.append(ext.name)
    return external


class BundleAssetBuilder:
    name = "bundle"

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    async def build(self, asset: AssetDescriptor) -> None:
        options = self.context.options
        if asset.name in options.skip:
            self.context.log(self.name, asset.name, "listed in skip, not built")
            return

        stages = build_stages(
            asset.transform,
            self.context.transform_context(asset),
            self.context.transforms,
        )
        base = BundleRequest(
            asset=asset.name,
            base_dir=options.base_dir,
            transforms=stages,
            require=asset.require,
            external=resolve_externals(asset, options),
            debug=not options.production,
        )
        entries = asset.entries or (None,)

        chunks: list[bytes] = []
        for entry in entries:
            request = replace(base, entry=entry)
            try:
                chunks.append(await asyncio.to_thread(self.context.bundler.bundle, request))
            except BundleError as exc:
                # The first bundling error ends this asset; siblings keep going.
                self.context.errors.append(exc)
                self.context.log(
                    self.name,
                    asset.name,
                    "error bundle",
                    level="error",
                    extra=exc.to_dict(),
                )
                return

        output_path = await asyncio.to_thread(
            write_output,
            options.dest_dir,
            asset.name,
            b"\n".join(chunks),
            skip_hash=self.context.skip_hash(asset),
        )
        self.context.register(asset, output_path)
