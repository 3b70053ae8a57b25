from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple, Union


@dataclass(frozen=True)
class BundledSignatures:
    name: str
    version_hint: Optional[str] = None


@dataclass(frozen=True)
class InlineSignatures:
    text: str


@dataclass(frozen=True)
class SignaturesFile:
    path: Path


SignatureSource = Union[BundledSignatures, InlineSignatures, SignaturesFile]


@dataclass(frozen=True)
class PolicyFlags:
    fail_on_violation: bool = False
    fail_on_missing_classes: bool = False
    fail_on_unresolvable_signatures: bool = False
    internal_runtime_forbidden: bool = False
    disable_classloading_cache: bool = False
    fail_on_unsupported_runtime: bool = False


@dataclass(frozen=True)
class RunConfiguration:
    """
    Canonical, front-end independent description of one audit run.

    Hard rules:
    - Immutable once resolved; the driver only reads it.
    - The classes directory is appended to the effective classpath, never merged with user entries.
    """

    classes_directory: Path
    classpath_entries: Tuple[Path, ...] = ()
    include_patterns: Tuple[str, ...] = ("**/*.class",)
    exclude_patterns: Tuple[str, ...] = ()
    suppress_annotation_patterns: Tuple[str, ...] = ()
    signature_sources: Tuple[SignatureSource, ...] = ()
    policy: PolicyFlags = PolicyFlags()
    missing_version_hint: bool = False


@dataclass(frozen=True)
class RuntimeContext:
    """
    Per-invocation settings owned by the front end rather than by the audit.
    """

    run_id: str
    front_end: str = "cli"
    skip_when_no_classes: bool = False
    skip_when_no_signatures: bool = False
    trace_path: Optional[Path] = None
    meta: dict[str, Any] = field(default_factory=dict)


class RunStatus(str, Enum):
    PASSED = "passed"
    VIOLATIONS = "violations"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RunOutcome:
    status: RunStatus
    message: Optional[str] = None
    files_checked: int = 0

    @property
    def failed(self) -> bool:
        return self.status == RunStatus.VIOLATIONS
