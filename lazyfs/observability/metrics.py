from __future__ import annotations

from pathlib import Path


try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        REGISTRY,
        Counter,
        Histogram,
        generate_latest,
        write_to_textfile,
    )
except Exception as e:  # pragma: no cover
    raise RuntimeError("prometheus_client is required (pyproject.toml dependencies)") from e


manifest_generations_total = Counter(
    "manifest_generations_total",
    "Manifest generation runs by final status.",
    labelnames=("status",),
)

manifest_files_total = Counter(
    "manifest_files_total",
    "Total files recorded in generated manifests.",
)

manifest_bytes_hashed_total = Counter(
    "manifest_bytes_hashed_total",
    "Total bytes streamed through the content digest.",
)

stage_latency_ms = Histogram(
    "stage_latency_ms",
    "Manifest pipeline stage latency in milliseconds.",
    labelnames=("stage", "status"),
    buckets=(
        10,
        50,
        100,
        500,
        1000,
        5000,
        10000,
        60000,
        300000,
        1800000,
    ),
)


def observe_stage(*, stage: str, duration_ms: int, status: str) -> None:
    if duration_ms < 0:
        return
    stage_latency_ms.labels(stage=stage, status=status).observe(duration_ms)


def inc_generation(*, status: str) -> None:
    manifest_generations_total.labels(status=status).inc()


def inc_file(*, size_bytes: int) -> None:
    manifest_files_total.inc()
    if size_bytes > 0:
        manifest_bytes_hashed_total.inc(size_bytes)


def render_prometheus() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST


def write_textfile(path: Path) -> None:
    """Write the registry in the node_exporter textfile collector format."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
