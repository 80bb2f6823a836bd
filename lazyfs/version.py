"""Version of the manifest generator.

``lazyfs/VERSION`` ships as package data and is also the distribution version
at build time, so a source checkout and an installed ``lazyfsctl`` report the
same value.
"""

from __future__ import annotations

import re
from pathlib import Path

_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

VERSION_FILE = Path(__file__).resolve().with_name("VERSION")


def read_version(*, path: Path = VERSION_FILE) -> str:
    if not path.is_file():
        raise FileNotFoundError(f"lazyfs VERSION file not found: {path}")
    version = path.read_text(encoding="utf-8").strip()
    if not version:
        raise ValueError(f"lazyfs VERSION file is empty: {path}")
    if _SEMVER_RE.match(version) is None:
        raise ValueError(f"lazyfs version is not valid SemVer: {version}")
    return version
