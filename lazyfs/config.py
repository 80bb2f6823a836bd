from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from lazyfs.manifest.hashing import DEFAULT_CHUNK_BYTES


DEFAULT_MOUNT_PATH = "/mnt/mlmodel"


def _require_dict(obj: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{path} must be a mapping")
    return obj


def _require_str(obj: Any, *, path: str) -> str:
    if not isinstance(obj, str) or not obj:
        raise ValueError(f"{path} must be a non-empty string")
    return obj


def _require_int(obj: Any, *, path: str) -> int:
    if isinstance(obj, bool) or not isinstance(obj, int):
        raise ValueError(f"{path} must be an integer")
    return obj


def _require_bool(obj: Any, *, path: str) -> bool:
    if not isinstance(obj, bool):
        raise ValueError(f"{path} must be a boolean")
    return obj


@dataclass(frozen=True)
class GeneratorConfig:
    mount_path: str = DEFAULT_MOUNT_PATH
    hash_chunk_bytes: int = DEFAULT_CHUNK_BYTES


@dataclass(frozen=True)
class ObservabilityConfig:
    metrics_enabled: bool = False
    tracing_enabled: bool = False
    metrics_file: Optional[str] = None
    events_dir: Optional[str] = None


def _load_doc(path: Path) -> dict[str, Any]:
    try:
        import yaml
    except Exception as e:  # pragma: no cover
        raise RuntimeError(f"PyYAML dependency unavailable: {e}") from e

    doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    if doc is None:
        return {}
    return _require_dict(doc, path="config")


def load_generator_config(*, path: Path) -> GeneratorConfig:
    doc = _load_doc(path)
    gen = doc.get("generator") or {}
    gen = _require_dict(gen, path="generator")

    mount_path = _require_str(gen.get("mount_path", DEFAULT_MOUNT_PATH), path="generator.mount_path")
    if not mount_path.startswith("/"):
        raise ValueError("generator.mount_path must be an absolute path")

    chunk = _require_int(
        gen.get("hash_chunk_bytes", DEFAULT_CHUNK_BYTES), path="generator.hash_chunk_bytes"
    )
    if chunk <= 0:
        raise ValueError("generator.hash_chunk_bytes must be > 0")

    return GeneratorConfig(mount_path=mount_path, hash_chunk_bytes=chunk)


def load_observability_config(*, path: Path) -> ObservabilityConfig:
    doc = _load_doc(path)
    obs = doc.get("observability") or {}
    obs = _require_dict(obs, path="observability")

    metrics_file = obs.get("metrics_file")
    if metrics_file is not None:
        metrics_file = _require_str(metrics_file, path="observability.metrics_file")
    events_dir = obs.get("events_dir")
    if events_dir is not None:
        events_dir = _require_str(events_dir, path="observability.events_dir")

    return ObservabilityConfig(
        metrics_enabled=_require_bool(
            obs.get("metrics_enabled", False), path="observability.metrics_enabled"
        ),
        tracing_enabled=_require_bool(
            obs.get("tracing_enabled", False), path="observability.tracing_enabled"
        ),
        metrics_file=metrics_file,
        events_dir=events_dir,
    )


def validate_config_file(*, path: Path) -> None:
    _ = load_generator_config(path=path)
    _ = load_observability_config(path=path)
