"""Folder assets: staged copy fingerprinted by member content."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
import threading
from pathlib import Path

from cachebust.builders.base import BuildContext
from cachebust.globbing import select_folder_files
from cachebust.hashing import ContentHasher, hashed_dirname
from cachebust.models import AssetDescriptor

STAGING_PREFIX = "_temp_"


class FolderAssetBuilder:
    name = "folder"

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self._swap_lock = threading.Lock()

    async def build(self, asset: AssetDescriptor) -> None:
        folder = asset.folder
        if folder is None or not folder.is_dir():
            self.context.log(self.name, asset.name, "source folder missing, nothing to build")
            return
        target = await asyncio.to_thread(self.stage, asset, folder)
        self.context.register(asset, target)

    def stage(self, asset: AssetDescriptor, folder: Path) -> Path:
        """Copy and fingerprint ``folder``, then swap the staging dir into place.

        The digest covers every member file in enumeration order, so the same
        contents enumerated in a different order produce a different suffix.
        Every run stages into its own directory; overlapping runs of one asset
        only serialize on the final swap, and the last swap wins.
        """
        dest_dir = self.context.options.dest_dir
        dest_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{asset.name}.", dir=dest_dir))
        try:
            shutil.copymode(folder, staging)
            hasher = ContentHasher.create()
            for path in select_folder_files(folder, asset.include, asset.exclude):
                contents = path.read_bytes()
                hasher.update(contents)
                target = staging / path.relative_to(folder)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(contents)
                shutil.copystat(path, target)

            if self.context.skip_hash(asset):
                final = dest_dir / asset.name
            else:
                final = dest_dir / hashed_dirname(asset.name, hasher.digest())
            with self._swap_lock:
                if final.exists():
                    shutil.rmtree(final)
                staging.rename(final)
            return final
        finally:
            if staging.exists():
                shutil.rmtree(staging)
