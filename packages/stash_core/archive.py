"""Tar export of stashed entries.

Execution Context:
    Library module - imported by stash_core.executor

Dependencies:
    - tarfile: Archive writing (stdlib)

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import io
import json
import logging
import tarfile
import time
from pathlib import Path
from typing import Sequence

from stash_core.models import StashEntry

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def _compression_mode(
        output_path: Path,
) -> str:
    suffixes = "".join(output_path.suffixes[-2:])
    if suffixes.endswith((".tar.gz", ".tgz")):
        return "w:gz"
    if suffixes.endswith(".tar.bz2"):
        return "w:bz2"
    if suffixes.endswith(".tar.xz"):
        return "w:xz"
    return "w"


def write_archive(
        entries: Sequence[StashEntry],
        entry_dirs: Sequence[Path],
        output_path: Path,
) -> int:
    """Write entries into a single tar archive.

    Each entry becomes a top-level directory named after the entry,
    holding its stored items and a manifest.json of its metadata.
    Compression follows the output suffix (.tar.gz/.tgz, .tar.bz2, .tar.xz).

    Args:
        entries: Entries to export.
        entry_dirs: Storage directory of each entry, same order as entries.
        output_path: Archive file to create.

    Returns:
        Number of stored items written.
    """
    written = 0
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with tarfile.open(output_path, _compression_mode(output_path)) as archive:
        for entry, entry_dir in zip(entries, entry_dirs):
            manifest = json.dumps(entry.to_dict(), indent=2).encode("utf-8")
            info = tarfile.TarInfo(f"{entry.name}/{MANIFEST_NAME}")
            info.size = len(manifest)
            info.mtime = int(time.time())
            archive.addfile(info, io.BytesIO(manifest))

            for item in entry.items:
                source = entry_dir / item.stored_path
                archive.add(str(source), arcname=f"{entry.name}/{item.stored_path}")
                written += 1

            logger.debug(f"Archived entry '{entry.name}' ({entry.item_count} items)")

    return written
