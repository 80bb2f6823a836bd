from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional


try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.trace import Span, SpanKind
except Exception as e:  # pragma: no cover
    raise RuntimeError("opentelemetry-sdk is required (pyproject.toml dependencies)") from e


_TRACER_NAME = "lazyfs.manifest"
_ATTR_PREFIX = "lazyfs."

_initialized = False
_enabled = False


@dataclass(frozen=True)
class TraceIds:
    trace_id_hex: str
    span_id_hex: str


def init_tracing(*, enabled: bool, service_name: str = "lazyfs") -> None:
    global _initialized, _enabled
    if _initialized and (_enabled or not enabled):
        return

    _initialized = True
    if not enabled:
        _enabled = False
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _enabled = True


def current_trace_ids() -> Optional[TraceIds]:
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return TraceIds(trace_id_hex=f"{int(ctx.trace_id):032x}", span_id_hex=f"{int(ctx.span_id):016x}")


def manifest_attributes(*, artifact_id: str, version: str, **extra: Any) -> dict[str, Any]:
    """Span attributes for one manifest, keys namespaced under ``lazyfs.``.

    ``None`` values are left out; OpenTelemetry rejects them.
    """
    attrs: dict[str, Any] = {
        _ATTR_PREFIX + "artifact_id": artifact_id,
        _ATTR_PREFIX + "version": version,
    }
    for k, v in extra.items():
        if v is not None:
            attrs[_ATTR_PREFIX + k] = v
    return attrs


@contextmanager
def manifest_span(name: str, *, artifact_id: str, version: str, **extra: Any) -> Iterator[Span]:
    tracer = trace.get_tracer(_TRACER_NAME)
    attrs = manifest_attributes(artifact_id=artifact_id, version=version, **extra)
    with tracer.start_as_current_span(name, kind=SpanKind.INTERNAL, attributes=attrs) as span:
        yield span


def record_file_totals(span: Span, *, file_count: int, total_bytes: int) -> None:
    span.set_attribute(_ATTR_PREFIX + "file_count", file_count)
    span.set_attribute(_ATTR_PREFIX + "total_bytes", total_bytes)


def reset_tracing_for_tests() -> None:
    global _initialized, _enabled
    _initialized = False
    _enabled = False
