import contextlib
import io
import json
import os
import tempfile
import unittest
from pathlib import Path

import lazyfsctl


def _run(argv: list[str]) -> tuple[int, str]:
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        rc = lazyfsctl.main(argv)
    return rc, buf.getvalue()


class TestGenerateCli(unittest.TestCase):
    def test_generate_prints_manifest_to_stdout(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "config.json").write_bytes(b"{}")
            (root / "tokenizer.json").write_bytes(b"{}")

            rc, out = _run(
                [
                    "generate",
                    "--dir",
                    str(root),
                    "--id",
                    "llama-7b",
                    "--version",
                    "v1.0",
                    "--url-prefix",
                    "https://bucket.s3.amazonaws.com/models/v1/",
                    "--prefetch",
                    " config.json , tokenizer.json",
                    "--prefetch",
                    "",
                ]
            )

        self.assertEqual(rc, 0)
        doc = json.loads(out)
        self.assertEqual(doc["artifact_id"], "llama-7b")
        self.assertEqual(doc["mount_path"], "/mnt/mlmodel")
        self.assertEqual(doc["prefetch"], ["config.json", "tokenizer.json"])
        self.assertEqual(
            [f["url"] for f in doc["files"]],
            [
                "https://bucket.s3.amazonaws.com/models/v1/config.json",
                "https://bucket.s3.amazonaws.com/models/v1/tokenizer.json",
            ],
        )

    def test_generate_rejects_bad_url_prefix(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            rc, out = _run(
                ["generate", "--dir", td, "--id", "x", "--version", "v1", "--url-prefix", "s3://b/p"]
            )
        self.assertEqual(rc, 10)
        self.assertTrue(out.startswith("GENERATE_FAILED:"))

    def test_generate_rejects_missing_dir(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            rc, out = _run(
                [
                    "generate",
                    "--dir",
                    str(Path(td) / "missing"),
                    "--id",
                    "x",
                    "--version",
                    "v1",
                    "--url-prefix",
                    "https://example.com",
                ]
            )
        self.assertEqual(rc, 20)
        self.assertIn("GENERATE_FAILED", out)

    def test_generate_output_validate_and_verify(self) -> None:
        with tempfile.TemporaryDirectory() as td, tempfile.TemporaryDirectory() as out_dir:
            root = Path(td)
            (root / "weights").mkdir()
            (root / "weights" / "shard-0.bin").write_bytes(b"\x00" * 1024)
            manifest_path = Path(out_dir) / "manifest.json"

            rc, out = _run(
                [
                    "generate",
                    "--dir",
                    str(root),
                    "--id",
                    "model",
                    "--version",
                    "v2",
                    "--url-prefix",
                    "http://localhost:9000/bucket",
                    "--output",
                    str(manifest_path),
                    "--events-dir",
                    out_dir,
                ]
            )
            self.assertEqual(rc, 0)
            self.assertEqual(out.strip(), "GENERATE_OK: 1 files")
            self.assertTrue(list((Path(out_dir) / "observability" / "model").glob("*.jsonl")))

            rc, out = _run(["validate", "--manifest", str(manifest_path)])
            self.assertEqual(rc, 0)
            self.assertEqual(out.strip(), "MANIFEST_VALID")

            rc, out = _run(["verify", "--manifest", str(manifest_path), "--dir", str(root)])
            self.assertEqual(rc, 0)
            self.assertEqual(out.strip(), "VERIFY_OK: 1")

            (root / "weights" / "shard-0.bin").write_bytes(b"\x01" * 1024)
            rc, out = _run(["verify", "--manifest", str(manifest_path), "--dir", str(root)])
            self.assertEqual(rc, 1)
            self.assertIn("sha256 mismatch: weights/shard-0.bin", out)

    def test_generate_reports_unwritable_output(self) -> None:
        with tempfile.TemporaryDirectory() as td, tempfile.TemporaryDirectory() as out_dir:
            root = Path(td)
            (root / "a.bin").write_bytes(b"abc")
            blocker = Path(out_dir) / "not-a-dir"
            blocker.write_bytes(b"")

            rc, out = _run(
                [
                    "generate",
                    "--dir",
                    str(root),
                    "--id",
                    "model",
                    "--version",
                    "v1",
                    "--url-prefix",
                    "https://example.com",
                    "--output",
                    str(blocker / "manifest.json"),
                ]
            )

            self.assertEqual(rc, 20)
            self.assertTrue(out.startswith("GENERATE_FAILED: cannot write"))
            self.assertFalse((blocker / "manifest.json").exists())


class TestValidateCli(unittest.TestCase):
    def test_malformed_manifest(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "manifest.json"
            path.write_text("{not json", encoding="utf-8")
            rc, out = _run(["validate", "--manifest", str(path)])
        self.assertEqual(rc, 30)
        self.assertTrue(out.startswith("MANIFEST_INVALID:"))

    def test_semantically_invalid_manifest(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "manifest.json"
            path.write_text(json.dumps({"artifact_id": "", "version": "v1"}), encoding="utf-8")
            rc, out = _run(["validate", "--manifest", str(path)])
        self.assertEqual(rc, 1)
        self.assertTrue(out.startswith("MANIFEST_INVALID\n"))


class TestConfigAndVersionCli(unittest.TestCase):
    def test_config_validate_default(self) -> None:
        path = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"
        rc, out = _run(["config", "validate", "--config", str(path)])
        self.assertEqual(rc, 0)
        self.assertEqual(out.strip(), "CONFIG_VALIDATE_OK")

    def test_relative_config_resolves_against_working_directory(self) -> None:
        cwd = os.getcwd()
        with tempfile.TemporaryDirectory() as td:
            (Path(td) / "local.yaml").write_text(
                "generator:\n  mount_path: /mnt/local\n", encoding="utf-8"
            )
            (Path(td) / "data").mkdir()
            (Path(td) / "data" / "a.bin").write_bytes(b"abc")
            os.chdir(td)
            try:
                rc, out = _run(["config", "validate", "--config", "local.yaml"])
                self.assertEqual(rc, 0)
                self.assertEqual(out.strip(), "CONFIG_VALIDATE_OK")

                rc, out = _run(
                    [
                        "generate",
                        "--dir",
                        "data",
                        "--id",
                        "model",
                        "--version",
                        "v1",
                        "--url-prefix",
                        "https://example.com",
                        "--config",
                        "local.yaml",
                    ]
                )
            finally:
                os.chdir(cwd)

        self.assertEqual(rc, 0)
        self.assertEqual(json.loads(out)["mount_path"], "/mnt/local")

    def test_config_validate_invalid(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "bad.yaml"
            path.write_text("generator:\n  hash_chunk_bytes: -1\n", encoding="utf-8")
            rc, out = _run(["config", "validate", "--config", str(path)])
        self.assertEqual(rc, 60)
        self.assertIn("CONFIG_VALIDATE_FAILED", out)

    def test_version(self) -> None:
        root = Path(__file__).resolve().parents[1]
        rc, out = _run(["version"])
        self.assertEqual(rc, 0)
        self.assertEqual(out.strip(), (root / "lazyfs" / "VERSION").read_text(encoding="utf-8").strip())


if __name__ == "__main__":
    unittest.main()
