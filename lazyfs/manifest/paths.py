from __future__ import annotations

import os
from typing import Iterable, Optional


def to_slash(path: str) -> str:
    """Convert OS-native separators to forward slashes."""
    out = path.replace("\\", "/")
    if os.sep != "/":
        out = out.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        out = out.replace(os.altsep, "/")
    return out


def normalize_prefetch_paths(paths: Optional[Iterable[str]]) -> list[str]:
    """Trim, convert to forward slashes and drop empty entries, keeping order."""
    normalized: list[str] = []
    for p in paths or ():
        p = p.strip()
        if not p:
            continue
        normalized.append(to_slash(p))
    return normalized
