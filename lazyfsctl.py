#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from lazyfs.config import (
    GeneratorConfig,
    ObservabilityConfig,
    load_generator_config,
    load_observability_config,
    validate_config_file,
)
from lazyfs.errors import (
    FilesystemError,
    HashError,
    ManifestError,
    SerializationError,
    ValidationError,
)
from lazyfs.manifest.builder import generate_manifest
from lazyfs.manifest.codec import (
    encode_manifest,
    load_manifest,
    validate_manifest_document,
    write_manifest,
)
from lazyfs.manifest.verify import verify_manifest
from lazyfs.observability import metrics as prom_metrics
from lazyfs.observability.file_observability_log import FileObservabilityLogger
from lazyfs.observability.tracing import init_tracing
from lazyfs.version import read_version


def _exit_code_for(err: ManifestError) -> int:
    if isinstance(err, ValidationError):
        return 10
    if isinstance(err, (FilesystemError, HashError)):
        return 20
    if isinstance(err, SerializationError):
        return 30
    return 40


def _split_prefetch(values: Optional[list[str]]) -> list[str]:
    out: list[str] = []
    for v in values or []:
        out.extend(v.split(","))
    return out


def _load_configs(config: Optional[str]) -> tuple[GeneratorConfig, ObservabilityConfig]:
    if config is None:
        return GeneratorConfig(), ObservabilityConfig()
    path = Path(config)
    return load_generator_config(path=path), load_observability_config(path=path)


def cmd_generate(args: argparse.Namespace) -> int:
    try:
        gen_cfg, obs_cfg = _load_configs(args.config)
    except Exception as e:
        print(f"CONFIG_VALIDATE_FAILED: {e}")
        return 60

    init_tracing(enabled=obs_cfg.tracing_enabled)
    events_dir = args.events_dir or obs_cfg.events_dir
    obs_logger = FileObservabilityLogger(base_dir=Path(events_dir)) if events_dir else None

    try:
        manifest = generate_manifest(
            root=Path(args.dir),
            artifact_id=args.id,
            version=args.version,
            url_prefix=args.url_prefix,
            prefetch=_split_prefetch(args.prefetch),
            config=gen_cfg,
            obs_logger=obs_logger,
        )
    except ManifestError as e:
        print(f"GENERATE_FAILED: {e}")
        return _exit_code_for(e)
    finally:
        if obs_cfg.metrics_enabled and obs_cfg.metrics_file:
            prom_metrics.write_textfile(Path(obs_cfg.metrics_file))

    if args.output:
        try:
            write_manifest(Path(args.output), manifest)
        except OSError as e:
            print(f"GENERATE_FAILED: cannot write {args.output}: {e}")
            return 20
        print(f"GENERATE_OK: {len(manifest.files)} files")
        return 0

    sys.stdout.write(encode_manifest(manifest).decode("utf-8"))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    path = Path(args.manifest)
    try:
        _ = load_manifest(path)
    except SerializationError as e:
        print(f"MANIFEST_INVALID: {e}")
        return _exit_code_for(e)

    doc = json.loads(path.read_text(encoding="utf-8"))
    errors = validate_manifest_document(doc)
    if errors:
        print("MANIFEST_INVALID")
        for e in errors[:200]:
            print(e)
        return 1

    print("MANIFEST_VALID")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    root = Path(args.dir)
    if not root.is_dir():
        print(f"VERIFY_FAILED: not a directory: {root}")
        return 20

    try:
        gen_cfg, _ = _load_configs(args.config)
    except Exception as e:
        print(f"CONFIG_VALIDATE_FAILED: {e}")
        return 60

    try:
        manifest = load_manifest(Path(args.manifest))
        result = verify_manifest(root=root, manifest=manifest, chunk_size=gen_cfg.hash_chunk_bytes)
    except ManifestError as e:
        print(f"VERIFY_FAILED: {e}")
        return _exit_code_for(e)

    if not result.ok:
        print("VERIFY_FAILED")
        for e in result.errors[:200]:
            print(e)
        return 1

    print(f"VERIFY_OK: {result.files_checked}")
    return 0


def cmd_config_validate(args: argparse.Namespace) -> int:
    try:
        validate_config_file(path=Path(args.config))
    except Exception as e:
        print(f"CONFIG_VALIDATE_FAILED: {e}")
        return 60
    print("CONFIG_VALIDATE_OK")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    try:
        version = read_version()
    except Exception as e:
        print(f"VERSION_FAILED: {e}")
        return 60
    print(version)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="lazyfsctl")
    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version")
    version.set_defaults(func=cmd_version)

    generate = sub.add_parser("generate", help="Scan a directory and print its manifest.")
    generate.add_argument("--dir", required=True, help="Local directory to scan.")
    generate.add_argument("--id", required=True, help="Artifact identifier (e.g. llama-7b).")
    generate.add_argument("--version", required=True, help="Artifact version (e.g. v1.0).")
    generate.add_argument(
        "--url-prefix",
        required=True,
        help="Base URL under which files are served (http:// or https://).",
    )
    generate.add_argument(
        "--prefetch",
        action="append",
        default=None,
        help="Path to fetch eagerly at mount time. Repeatable; comma-separated lists accepted.",
    )
    generate.add_argument("--config", default=None, help="Optional YAML config file.")
    generate.add_argument(
        "--output",
        default=None,
        help="Write the manifest to this file instead of standard output.",
    )
    generate.add_argument(
        "--events-dir",
        default=None,
        help="Optional directory for JSONL observability events (overrides config).",
    )
    generate.set_defaults(func=cmd_generate)

    validate = sub.add_parser("validate", help="Check a manifest file against the schema.")
    validate.add_argument("--manifest", required=True)
    validate.set_defaults(func=cmd_validate)

    verify = sub.add_parser("verify", help="Check a directory against a manifest file.")
    verify.add_argument("--manifest", required=True)
    verify.add_argument("--dir", required=True)
    verify.add_argument("--config", default=None, help="Optional YAML config file.")
    verify.set_defaults(func=cmd_verify)

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_command", required=True)

    cfg_validate = config_sub.add_parser("validate")
    cfg_validate.add_argument(
        "--config",
        default="configs/default.yaml",
        help="Config file, relative to the current directory unless absolute.",
    )
    cfg_validate.set_defaults(func=cmd_config_validate)

    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
