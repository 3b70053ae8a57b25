import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from typing import List, Tuple

from forbiddenapis.cli.main import main as cli_main
from forbiddenapis.engine.loading import ENGINE_ENV_VAR
from forbiddenapis.logging_utils import configure_logging

CLASS_BYTES = b"\xca\xfe\xba\xbe\x00\x00\x00\x37"
ENGINE = "forbiddenapis.engine.testing:RecordingEngine"


class TestCliMain(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)
        self.classes = self.root / "out" / "classes"
        self.classes.mkdir(parents=True)
        (self.classes / "A.class").write_bytes(CLASS_BYTES)
        self.sigs = self.root / "sigs.txt"
        self.sigs.write_text("java.lang.System#exit(int)\n", encoding="utf-8")
        self._old_engine = os.environ.pop(ENGINE_ENV_VAR, None)

    def tearDown(self) -> None:
        if self._old_engine is None:
            os.environ.pop(ENGINE_ENV_VAR, None)
        else:
            os.environ[ENGINE_ENV_VAR] = self._old_engine
        self._td.cleanup()

    def _run(self, argv: List[str]) -> Tuple[int, str]:
        err = io.StringIO()
        with redirect_stderr(err), redirect_stdout(io.StringIO()):
            rc = cli_main(argv)
        return rc, err.getvalue()

    def _args(self, *extra: str, engine: str = ENGINE) -> List[str]:
        return ["-d", str(self.classes), "-f", str(self.sigs), "--engine", engine, *extra]

    def test_clean_run_exits_zero(self) -> None:
        rc, _ = self._run(self._args())
        self.assertEqual(rc, 0)

    def test_violation_exits_one(self) -> None:
        rc, err = self._run(self._args(engine="forbiddenapis.engine.testing:ViolatingEngine"))
        self.assertEqual(rc, 1)
        self.assertIn("Check for forbidden API calls failed", err)

    def test_missing_dir_option_exits_two(self) -> None:
        rc, _ = self._run(["-f", str(self.sigs), "--engine", ENGINE])
        self.assertEqual(rc, 2)

    def test_unknown_option_exits_two(self) -> None:
        rc, _ = self._run(self._args("--no-such-flag"))
        self.assertEqual(rc, 2)

    def test_no_signature_sources_exits_two(self) -> None:
        rc, err = self._run(["-d", str(self.classes), "--engine", ENGINE])
        self.assertEqual(rc, 2)
        self.assertIn("No API signatures found", err)

    def test_no_signatures_loaded_exits_two(self) -> None:
        rc, _ = self._run(self._args(engine="forbiddenapis.engine.testing:NoSignaturesEngine"))
        self.assertEqual(rc, 2)

    def test_unsupported_runtime_exits_three(self) -> None:
        rc, err = self._run(self._args(engine="forbiddenapis.engine.testing:UnsupportedRuntimeEngine"))
        self.assertEqual(rc, 3)
        self.assertIn("not supported", err)

    def test_unsupported_runtime_checked_before_classes_directory(self) -> None:
        rc, err = self._run(
            [
                "-d",
                str(self.root / "missing"),
                "-f",
                str(self.sigs),
                "--engine",
                "forbiddenapis.engine.testing:UnsupportedRuntimeEngine",
            ]
        )
        self.assertEqual(rc, 3)
        self.assertIn("not supported", err)

    def test_nonexistent_signatures_file_exits_four_with_path(self) -> None:
        missing = self.root / "does-not-exist.txt"
        rc, err = self._run(["-d", str(self.classes), "-f", str(missing), "--engine", ENGINE])
        self.assertEqual(rc, 4)
        self.assertIn(str(missing), err)

    def test_missing_classes_directory_exits_four(self) -> None:
        rc, err = self._run(["-d", str(self.root / "missing"), "-f", str(self.sigs), "--engine", ENGINE])
        self.assertEqual(rc, 4)
        self.assertIn("does not exist", err)

    def test_no_classes_found_exits_four(self) -> None:
        rc, err = self._run(self._args("-i", "**/*.nothing"))
        self.assertEqual(rc, 4)
        self.assertIn("No classes found in directory", err)

    def test_invalid_class_file_exits_four(self) -> None:
        (self.classes / "Broken.class").write_bytes(b"not a class")
        rc, _ = self._run(self._args())
        self.assertEqual(rc, 4)

    def test_engine_from_environment(self) -> None:
        os.environ[ENGINE_ENV_VAR] = ENGINE
        rc, _ = self._run(["-d", str(self.classes), "-b", "jdk-unsafe-1.8,jdk-deprecated-1.8"])
        self.assertEqual(rc, 0)

    def test_missing_engine_exits_two(self) -> None:
        rc, err = self._run(["-d", str(self.classes), "-f", str(self.sigs)])
        self.assertEqual(rc, 2)
        self.assertIn(ENGINE_ENV_VAR, err)

    def test_version_exits_zero(self) -> None:
        rc, _ = self._run(["--version"])
        self.assertEqual(rc, 0)

    def test_verbose_errors_include_code(self) -> None:
        rc, err = self._run(["-d", str(self.classes), "--engine", ENGINE, "-v"])
        self.assertEqual(rc, 2)
        self.assertIn("signatures.none", err)

    def test_trace_written(self) -> None:
        trace_path = self.root / "trace.jsonl"
        rc, _ = self._run(self._args("--trace", str(trace_path), "--run-id", "cli_1"))
        self.assertEqual(rc, 0)
        events = [json.loads(l) for l in trace_path.read_text(encoding="utf-8").splitlines() if l.strip()]
        self.assertEqual(events[0]["data"]["front_end"], "cli")
        self.assertEqual(events[-1]["data"]["status"], "passed")
        self.assertTrue(all(e["run_id"] == "cli_1" for e in events))
        self.assertEqual(events[0]["data"]["meta"], {"engine": ENGINE})

    def test_log_file_receives_log_output(self) -> None:
        log_path = self.root / "logs" / "forbiddenapis.log"
        self.addCleanup(configure_logging)
        rc, _ = self._run(self._args("--log-file", str(log_path)))
        self.assertEqual(rc, 0)
        text = log_path.read_text(encoding="utf-8")
        self.assertIn("Scanned 1 class file(s)", text)
        self.assertIn("| INFO | forbiddenapis.cli.main |", text)


if __name__ == "__main__":
    unittest.main()
