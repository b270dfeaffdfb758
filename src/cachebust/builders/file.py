"""File assets: glob, transform pipeline, concatenate, fingerprint."""

from __future__ import annotations

import asyncio
from pathlib import Path

from cachebust.builders.base import BuildContext, write_output
from cachebust.globbing import select_files
from cachebust.models import BINARY_EXTENSIONS, AssetDescriptor
from cachebust.transforms import SourceFile, build_stages, concat, run_pipeline


class FileAssetBuilder:
    name = "file"

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    async def build(self, asset: AssetDescriptor) -> None:
        outputs = await asyncio.to_thread(self.render, asset)
        if not outputs:
            self.context.log(self.name, asset.name, "no source files matched")
            return
        skip_hash = self.context.skip_hash(asset)
        for output in outputs:
            output_path = await asyncio.to_thread(
                write_output,
                self.context.options.dest_dir,
                output.path.name,
                output.contents,
                skip_hash=skip_hash,
            )
            self.context.register(asset, output_path)

    def render(self, asset: AssetDescriptor) -> list[SourceFile]:
        """Run the asset's pipeline and merge its files into the final output(s)."""
        files = [
            SourceFile(path=path, contents=path.read_bytes())
            for path in select_files(asset.files, self.context.options.base_dir)
        ]
        if not files:
            return []
        transform_context = self.context.transform_context(asset)
        stages = build_stages(asset.transform, transform_context, self.context.transforms)
        files = run_pipeline(files, stages, asset=asset.name)

        if Path(asset.name).suffix.lower() in BINARY_EXTENSIONS:
            # binary outputs are renamed, never concatenated
            return [
                SourceFile(path=item.path.with_name(Path(asset.name).name), contents=item.contents)
                for item in files
            ]
        return concat(asset.name, transform_context)(files)
