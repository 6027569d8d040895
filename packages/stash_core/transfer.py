"""Filesystem transfer primitives.

Moves, copies, links, and removes paths for the executor. Symlinks are
never followed: a stashed symlink is stored and restored as a symlink.

Execution Context:
    Library module - imported by stash_core.executor

Dependencies:
    - shutil: Recursive copy and cross-device move

Metadata:
    Version: 0.1.0
    Author: Stash Team
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from stash_core.models import ItemKind

logger = logging.getLogger(__name__)


# ---- Inspection ---------------------------------------------------------------------------------------------


def path_exists(
        path: Path,
) -> bool:
    """Check whether a path exists, counting broken symlinks.

    Args:
        path: Path to check.

    Returns:
        True if anything occupies the path.
    """
    return os.path.lexists(path)


def item_kind(
        path: Path,
) -> ItemKind:
    """Classify a path without following symlinks.

    Args:
        path: Existing path.

    Returns:
        ItemKind of the path.
    """
    if path.is_symlink():
        return ItemKind.SYMLINK
    if path.is_dir():
        return ItemKind.DIR
    return ItemKind.FILE


def path_size(
        path: Path,
) -> int:
    """Size of a path in bytes.

    Directories report the recursive sum of their regular files;
    symlinks report zero.

    Args:
        path: Existing path.

    Returns:
        Size in bytes.
    """
    if path.is_symlink():
        return 0
    if path.is_file():
        return path.stat().st_size

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for filename in filenames:
            file_path = Path(dirpath) / filename
            if not file_path.is_symlink():
                total += file_path.stat().st_size
    return total


# ---- Transfers ----------------------------------------------------------------------------------------------


def move_path(
        src: Path,
        dest: Path,
) -> None:
    """Move a path, falling back to copy and delete across devices."""
    logger.debug(f"move {src} -> {dest}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest))


def copy_path(
        src: Path,
        dest: Path,
) -> None:
    """Copy a path recursively, preserving symlinks and metadata."""
    logger.debug(f"copy {src} -> {dest}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_symlink():
        os.symlink(os.readlink(src), dest)
    elif src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)


def link_path(
        target: Path,
        link: Path,
) -> None:
    """Create a symlink at link pointing to target."""
    logger.debug(f"link {link} -> {target}")
    os.symlink(target, link, target_is_directory=target.is_dir())


def remove_path(
        path: Path,
) -> None:
    """Remove a file, symlink, or directory tree."""
    logger.debug(f"remove {path}")
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


def is_link_to(
        link: Path,
        target: Path,
) -> bool:
    """Check whether link is a symlink pointing at target.

    Args:
        link: Candidate symlink.
        target: Expected symlink destination.

    Returns:
        True if link resolves to target.
    """
    if not link.is_symlink():
        return False
    destination = Path(os.readlink(link))
    if not destination.is_absolute():
        destination = link.parent / destination
    return os.path.abspath(destination) == os.path.abspath(target)
