from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from lazyfs.errors import HashError
from lazyfs.manifest.hashing import DEFAULT_CHUNK_BYTES, sha256_file
from lazyfs.manifest.model import Manifest
from lazyfs.manifest.scanner import iter_tree
from lazyfs.observability.tracing import manifest_span, record_file_totals


@dataclass(frozen=True)
class ManifestVerification:
    files_checked: int
    errors: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors


def _confined(root: Path, rel_path: str) -> Optional[Path]:
    """Location of ``rel_path`` under ``root``, or None if it would leave ``root``."""
    rel = PurePosixPath(rel_path)
    if not rel_path or rel.is_absolute() or Path(rel_path).is_absolute():
        return None
    if any(part in ("", ".", "..") for part in rel_path.split("/")):
        return None
    candidate = root / rel_path
    try:
        candidate.resolve().relative_to(root)
    except ValueError:
        return None
    return candidate


def verify_manifest(
    *, root: Path, manifest: Manifest, chunk_size: int = DEFAULT_CHUNK_BYTES
) -> ManifestVerification:
    """Compare a directory on disk against a manifest.

    Listed files must exist with the recorded size and digest; retained files on
    disk that the manifest does not list are reported as unlisted. Paths that
    are absolute, contain ``.``/``..`` segments or resolve outside ``root`` are
    reported as invalid and never opened.
    """
    errors: list[str] = []
    files_checked = 0
    listed: set[str] = set()
    root_resolved = Path(root).resolve()

    with manifest_span(
        "manifest.verify",
        artifact_id=manifest.artifact_id,
        version=manifest.version,
        root=root_resolved.as_posix(),
    ) as span:
        for f in manifest.files:
            listed.add(f.path)
            files_checked += 1
            p = _confined(root_resolved, f.path)
            if p is None:
                errors.append(f"invalid path: {f.path}")
                continue
            if not p.is_file():
                errors.append(f"missing: {f.path}")
                continue
            size = p.stat().st_size
            if size != f.size:
                errors.append(f"size mismatch: {f.path}: {size} != {f.size}")
                continue
            try:
                digest = sha256_file(p, chunk_size=chunk_size)
            except HashError as e:
                errors.append(f"unreadable: {f.path}: {e}")
                continue
            if digest != f.sha256:
                errors.append(f"sha256 mismatch: {f.path}: {digest} != {f.sha256}")

        for scanned in iter_tree(root_resolved):
            if scanned.rel_path not in listed:
                errors.append(f"unlisted: {scanned.rel_path}")

        record_file_totals(span, file_count=files_checked, total_bytes=sum(f.size for f in manifest.files))
        span.set_attribute("lazyfs.error_count", len(errors))

    return ManifestVerification(files_checked=files_checked, errors=errors)
