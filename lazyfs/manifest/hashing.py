from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Union

from lazyfs.errors import HashError


DEFAULT_CHUNK_BYTES = 1024 * 1024


def sha256_file(path: Union[str, Path], *, chunk_size: int = DEFAULT_CHUNK_BYTES) -> str:
    """Return the lowercase hex SHA-256 of a file, reading it in chunks.

    Artifacts can be multi-gigabyte weight files, so the content is never
    loaded whole.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    file_path = Path(path)
    digest = hashlib.sha256()
    try:
        with file_path.open("rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise HashError(f"cannot read {file_path.as_posix()}: {e}") from e
    return digest.hexdigest()
