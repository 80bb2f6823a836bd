from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from lazyfs.config import GeneratorConfig
from lazyfs.errors import FilesystemError, HashError, ValidationError
from lazyfs.manifest.hashing import sha256_file
from lazyfs.manifest.model import COMPRESSION_NONE, Manifest, ManifestFile
from lazyfs.manifest.paths import normalize_prefetch_paths
from lazyfs.manifest.scanner import iter_tree
from lazyfs.observability import metrics as prom_metrics
from lazyfs.observability.file_observability_log import (
    FileObservabilityLogger,
    build_observability_event,
)
from lazyfs.observability.tracing import manifest_span, record_file_totals


_URL_SCHEMES = ("http://", "https://")


def canonical_url_prefix(url_prefix: str) -> str:
    if url_prefix.endswith("/"):
        return url_prefix[:-1]
    return url_prefix


def _validate_inputs(*, root: Path, artifact_id: str, version: str, url_prefix: str) -> None:
    if not artifact_id or not version:
        raise ValidationError("id and version are required")

    try:
        is_dir = root.is_dir()
        exists = is_dir or root.exists()
    except OSError as e:
        raise FilesystemError(f"cannot access directory {root}: {e}") from e
    if not exists:
        raise FilesystemError(f"cannot access directory: {root} does not exist")
    if not is_dir:
        raise FilesystemError(f"path is not a directory: {root}")

    if not url_prefix.startswith(_URL_SCHEMES):
        raise ValidationError("url-prefix must start with http:// or https://")


def _collect_files(*, root: Path, url_prefix: str, chunk_size: int) -> list[ManifestFile]:
    files: list[ManifestFile] = []
    for scanned in iter_tree(root):
        rel_path = scanned.rel_path
        try:
            digest = sha256_file(scanned.abs_path, chunk_size=chunk_size)
        except HashError as e:
            raise HashError(f"failed to hash file {rel_path}: {e}") from e

        files.append(
            ManifestFile(
                path=rel_path,
                url=f"{url_prefix}/{rel_path}",
                size=scanned.size,
                sha256=digest,
                compression=COMPRESSION_NONE,
            )
        )
        prom_metrics.inc_file(size_bytes=scanned.size)
    return files


def generate_manifest(
    *,
    root: Union[str, Path],
    artifact_id: str,
    version: str,
    url_prefix: str,
    prefetch: Optional[Iterable[str]] = None,
    config: Optional[GeneratorConfig] = None,
    obs_logger: Optional[FileObservabilityLogger] = None,
) -> Manifest:
    """Scan ``root`` and describe every retained file.

    Inputs are checked before any digest is computed: empty ``artifact_id`` or
    ``version`` and a non-HTTP(S) ``url_prefix`` raise ``ValidationError``, a
    missing root or a root that is not a directory raises ``FilesystemError``.
    Each file gets ``url = url_prefix + "/" + path`` with a single trailing
    slash of the prefix dropped first.

    Generation is all-or-nothing: a traversal or hashing failure propagates and
    no manifest is returned.
    """
    cfg = config or GeneratorConfig()
    root_path = Path(root)

    _validate_inputs(root=root_path, artifact_id=artifact_id, version=version, url_prefix=url_prefix)
    prefix = canonical_url_prefix(url_prefix)

    run_id = str(uuid.uuid4())
    t0 = time.perf_counter()
    status = "OK"
    files: list[ManifestFile] = []
    with manifest_span(
        "manifest.generate",
        artifact_id=artifact_id,
        version=version,
        url_prefix=prefix,
        root=root_path.as_posix(),
    ) as span:
        try:
            files = _collect_files(root=root_path, url_prefix=prefix, chunk_size=cfg.hash_chunk_bytes)
            record_file_totals(span, file_count=len(files), total_bytes=sum(f.size for f in files))
        except FilesystemError as e:
            status = "FAILED"
            raise FilesystemError(f"failed to walk directory: {e}") from e
        except Exception:
            status = "FAILED"
            raise
        finally:
            # Still inside the span so the event carries its trace and span IDs.
            duration_ms = int((time.perf_counter() - t0) * 1000)
            prom_metrics.inc_generation(status=status)
            prom_metrics.observe_stage(stage="GENERATE", duration_ms=duration_ms, status=status)
            if obs_logger is not None:
                obs_logger.append(
                    build_observability_event(
                        event_type="STAGE_COMPLETE" if status == "OK" else "STAGE_FAILED",
                        stage="GENERATE",
                        artifact_id=artifact_id,
                        version=version,
                        run_id=run_id,
                        occurred_at=datetime.now(timezone.utc),
                        duration_ms=duration_ms,
                        status=status,
                        fields={
                            "root": root_path.as_posix(),
                            "file_count": len(files),
                            "total_bytes": sum(f.size for f in files),
                        },
                    )
                )

    return Manifest(
        artifact_id=artifact_id,
        version=version,
        mount_path=cfg.mount_path,
        prefetch=tuple(normalize_prefetch_paths(prefetch)),
        files=tuple(files),
    )
