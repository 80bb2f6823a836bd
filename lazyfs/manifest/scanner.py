from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from lazyfs.errors import FilesystemError


@dataclass(frozen=True)
class ScannedFile:
    rel_path: str
    abs_path: Path
    size: int


def _is_excluded(name: str, st: os.stat_result) -> bool:
    if name.startswith("."):
        return True
    return stat.S_ISLNK(st.st_mode)


def _sorted_entries(dir_path: Path, *, rel_dir: str) -> list[os.DirEntry]:
    try:
        with os.scandir(dir_path) as it:
            entries = list(it)
    except OSError as e:
        raise FilesystemError(f"cannot list directory {rel_dir or '.'}: {e}") from e
    # Byte-wise ordering of names, same as a sorted directory walk.
    return sorted(entries, key=lambda e: os.fsencode(e.name))


def _walk(dir_path: Path, *, rel_dir: str) -> Iterator[ScannedFile]:
    for entry in _sorted_entries(dir_path, rel_dir=rel_dir):
        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError as e:
            raise FilesystemError(f"cannot stat {rel_path}: {e}") from e

        if _is_excluded(entry.name, st):
            continue
        if stat.S_ISDIR(st.st_mode):
            yield from _walk(Path(entry.path), rel_dir=rel_path)
            continue
        if not stat.S_ISREG(st.st_mode):
            continue

        yield ScannedFile(rel_path=rel_path, abs_path=Path(entry.path), size=int(st.st_size))


def iter_tree(root: Path) -> Iterator[ScannedFile]:
    """Yield every retained regular file under ``root`` in walk order.

    Directories are descended into but never yielded. Entries whose name starts
    with ``.`` are dropped (a hidden directory drops its whole subtree), and
    symlinks are neither yielded nor followed. ``rel_path`` always uses forward
    slashes.
    """
    yield from _walk(Path(root), rel_dir="")
