from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple

from forbiddenapis.core.classpath import ClassLoadingContext
from forbiddenapis.core.errors import SignatureParseError, ViolationError
from forbiddenapis.core.runtime_context import PolicyFlags


_SIGNATURE_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$*][\w$*]*)*(#[\w$<>]+(\([\w$.,\[\] ]*\))?)?(\s*@\s*.*)?$")
_VERSIONED_RE = re.compile(r"-\d+(\.\d+)?$")

BUNDLED_NAMES = (
    "jdk-unsafe",
    "jdk-deprecated",
    "jdk-internal",
    "jdk-non-portable",
    "jdk-system-out",
    "jdk-reflection",
    "commons-io-unsafe",
)

CLASS_MAGIC = b"\xca\xfe\xba\xbe"


class RecordingEngine:
    """
    Deterministic engine for tests/examples.

    It records every call, counts signature lines (comments and `@` directives excluded),
    never finds violations, and fails `execute()` for registered files that do not start
    with the class-file magic number.
    """

    runtime_supported = True

    def __init__(self, context: ClassLoadingContext, policy: PolicyFlags, logger: Optional[logging.Logger] = None, **_kwargs: Any) -> None:
        self.context = context
        self.policy = policy
        self.log = logger or logging.getLogger(__name__)
        self.calls: List[Tuple[str, Any]] = []
        self.signature_count = 0
        self.class_files: List[Path] = []

    def is_runtime_supported(self) -> bool:
        self.calls.append(("is_runtime_supported", None))
        return self.runtime_supported

    def register_suppress_annotation(self, pattern: str) -> None:
        self.calls.append(("register_suppress_annotation", pattern))

    def load_bundled_signatures(self, name: str, version_hint: Optional[str]) -> None:
        self.calls.append(("load_bundled_signatures", (name, version_hint)))
        base = _VERSIONED_RE.sub("", name)
        if base not in BUNDLED_NAMES:
            raise SignatureParseError(code="signatures.invalid", message=f"Invalid bundled signature reference: {name}")
        if base.startswith("jdk-") and base == name and not version_hint:
            raise SignatureParseError(
                code="signatures.invalid",
                message=f"Bundled signatures '{name}' need a target version; use e.g. '{name}-1.8'",
            )
        self.signature_count += 1

    def load_inline_signatures(self, text: str) -> None:
        self.calls.append(("load_inline_signatures", text))
        self._parse(text, origin="inline signatures")

    def load_signature_file(self, path: Path) -> None:
        self.calls.append(("load_signature_file", path))
        self._parse(Path(path).read_text(encoding="utf-8"), origin=str(path))

    def _parse(self, text: str, *, origin: str) -> None:
        for i, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#") or line.startswith("@"):
                continue
            if not _SIGNATURE_RE.match(line):
                raise SignatureParseError(
                    code="signatures.invalid",
                    message=f"Invalid signature in {origin} (line {i}): {line}",
                )
            self.signature_count += 1

    def has_any_signatures_loaded(self) -> bool:
        self.calls.append(("has_any_signatures_loaded", None))
        return self.signature_count > 0 or self.policy.internal_runtime_forbidden

    def register_class_file(self, path: Path) -> None:
        self.calls.append(("register_class_file", path))
        Path(path).read_bytes()
        self.class_files.append(Path(path))

    def execute(self) -> None:
        self.calls.append(("execute", None))
        for f in self.class_files:
            if not f.read_bytes().startswith(CLASS_MAGIC):
                raise ValueError(f"Invalid class file format: {f}")

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


class ViolatingEngine(RecordingEngine):
    """
    Reports one violation per registered class file.
    """

    def execute(self) -> None:
        super().execute()
        if not self.class_files:
            return
        for f in self.class_files:
            self.log.error("Forbidden method invocation: java.lang.System#exit(int) [in %s]", f.name)
        n = len(self.class_files)
        raise ViolationError(
            code="violation",
            message=f"Check for forbidden API calls failed, see log ({n} error{'s' if n != 1 else ''}).",
            data={"errors": n},
        )


class UnsupportedRuntimeEngine(RecordingEngine):
    runtime_supported = False


class NoSignaturesEngine(RecordingEngine):
    """
    Accepts every signature source but resolves none of them.
    """

    def has_any_signatures_loaded(self) -> bool:
        self.calls.append(("has_any_signatures_loaded", None))
        return False


class FaultyEngine(RecordingEngine):
    def execute(self) -> None:
        self.calls.append(("execute", None))
        raise RuntimeError("engine crashed while scanning")
