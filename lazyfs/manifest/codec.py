from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Union

import jsonschema

from lazyfs.errors import SerializationError
from lazyfs.manifest.model import Manifest, ManifestFile


_SCHEMA_PATH = Path(__file__).resolve().with_name("manifest.schema.json")


def encode_manifest(manifest: Manifest) -> bytes:
    """Pretty-printed JSON, two-space indent, fields in declaration order.

    Manifests are committed to version control, so the layout must not depend
    on dict ordering or platform.
    """
    return json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False).encode("utf-8") + b"\n"


def _field(obj: dict[str, Any], key: str, expected: type, default: Any, *, path: str) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    if expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise SerializationError(f"{path}.{key}: expected {expected.__name__}, got {type(value).__name__}")
    return value


def _decode_file(obj: Any, *, path: str) -> ManifestFile:
    if not isinstance(obj, dict):
        raise SerializationError(f"{path}: expected object")
    return ManifestFile(
        path=_field(obj, "path", str, "", path=path),
        url=_field(obj, "url", str, "", path=path),
        size=_field(obj, "size", int, 0, path=path),
        sha256=_field(obj, "sha256", str, "", path=path),
        compression=_field(obj, "compression", str, "", path=path),
    )


def manifest_from_dict(doc: Any) -> Manifest:
    if not isinstance(doc, dict):
        raise SerializationError("manifest: expected a JSON object")

    prefetch = _field(doc, "prefetch", list, [], path="manifest")
    for idx, p in enumerate(prefetch):
        if not isinstance(p, str):
            raise SerializationError(f"manifest.prefetch[{idx}]: expected str")

    files = _field(doc, "files", list, [], path="manifest")

    return Manifest(
        artifact_id=_field(doc, "artifact_id", str, "", path="manifest"),
        version=_field(doc, "version", str, "", path="manifest"),
        mount_path=_field(doc, "mount_path", str, "", path="manifest"),
        prefetch=tuple(prefetch),
        files=tuple(_decode_file(f, path=f"manifest.files[{idx}]") for idx, f in enumerate(files)),
    )


def decode_manifest(data: Union[bytes, str]) -> Manifest:
    """Parse manifest JSON.

    Structural only: missing fields take their zero value and unknown keys are
    ignored. Use ``validate_manifest_document`` for semantic checks.
    """
    try:
        doc = json.loads(data)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"invalid manifest json: {e}") from e
    return manifest_from_dict(doc)


def load_manifest(path: Path) -> Manifest:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SerializationError(f"cannot read manifest {path}: {e}") from e
    try:
        return decode_manifest(data)
    except SerializationError as e:
        raise SerializationError(f"{path}: {e}") from e


def write_manifest(path: Path, manifest: Manifest) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(encode_manifest(manifest))
    tmp.replace(path)


@lru_cache(maxsize=1)
def _manifest_schema() -> dict:
    schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
    jsonschema.Draft202012Validator.check_schema(schema)
    return schema


def validate_manifest_document(doc: Any) -> list[str]:
    """Semantic checks for a parsed manifest document; empty list means valid."""
    validator = jsonschema.Draft202012Validator(_manifest_schema())
    errors: list[str] = []
    for err in sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.path]):
        loc = "/".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{loc}: {err.message}")
    if errors:
        return errors

    seen: set[str] = set()
    for idx, f in enumerate(doc.get("files", [])):
        p = f["path"]
        if p in seen:
            errors.append(f"files/{idx}/path: duplicate path {p}")
        seen.add(p)
    return errors
