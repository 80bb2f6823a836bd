from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence


COMPRESSION_NONE = "none"


@dataclass(frozen=True)
class ManifestFile:
    path: str
    url: str
    size: int
    sha256: str
    compression: str = COMPRESSION_NONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "url": self.url,
            "size": self.size,
            "sha256": self.sha256,
            "compression": self.compression,
        }


@dataclass(frozen=True)
class Manifest:
    """Content-addressed description of a directory tree.

    Consumed by the lazy-loading filesystem: each entry of ``files`` becomes an
    inode whose bytes are fetched from ``url`` on demand and cached by
    ``sha256``.
    """

    artifact_id: str
    version: str
    mount_path: str
    prefetch: Sequence[str] = field(default_factory=tuple)
    files: Sequence[ManifestFile] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "version": self.version,
            "mount_path": self.mount_path,
            "prefetch": list(self.prefetch),
            "files": [f.to_dict() for f in self.files],
        }
