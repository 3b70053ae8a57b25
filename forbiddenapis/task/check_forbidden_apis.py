from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from forbiddenapis.core.driver import NO_SIGNATURES_SKIP
from forbiddenapis.core.errors import (
    ConfigurationError,
    ForbiddenApisError,
    ResourceError,
    SignatureParseError,
)
from forbiddenapis.core.fileset import DEFAULT_INCLUDE, resolve_file_set
from forbiddenapis.core.kernel import Kernel
from forbiddenapis.core.resolver import resolve_task_configuration
from forbiddenapis.core.runtime_context import RunOutcome, RunStatus, RuntimeContext
from forbiddenapis.engine.base import EngineFactory
from forbiddenapis.engine.loading import load_engine_factory, resolve_engine_spec

from .errors import InvalidUserDataError, ResourceFailure, TaskExecutionError, TaskFailure


log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

MISSING_TARGET_WARNING = (
    "The 'target_compatibility' project or task property is missing. "
    "Trying to read bundled JDK signatures without compiler target. "
    "You have to explicitly specify the version in the resource name."
)


class CheckForbiddenApis:
    """
    Build task that checks compiled class files for forbidden API usage.

    Property defaults follow the build-task conventions: every policy switch is off,
    except that violations fail the build unless `ignore_failures` is set.

    Cooperative skips (log and return normally):
    - no class files matched
    - unsupported runtime while `fail_on_unsupported_java` is off
    - no API signatures while `fail_on_unresolvable_signatures` is off
    """

    def __init__(self, name: str = "forbiddenApis", *, project_dir: Optional[PathLike] = None):
        self.name = name
        self.project_dir = Path(project_dir) if project_dir is not None else Path.cwd()

        self.classes_dir: Optional[PathLike] = None
        self.classpath: Optional[List[PathLike]] = None
        self.signatures_files: List[PathLike] = []
        self.signatures: List[str] = []
        self.bundled_signatures: List[str] = []
        self.target_compatibility: Optional[str] = None

        self.internal_runtime_forbidden = False
        self.fail_on_unsupported_java = False
        self.fail_on_missing_classes = False
        self.fail_on_unresolvable_signatures = False
        self.ignore_failures = False
        self.disable_classloading_cache = False

        self.suppress_annotations: List[str] = []
        self.includes: List[str] = [DEFAULT_INCLUDE]
        self.excludes: List[str] = []

        self.engine: Optional[str] = None
        self.trace_path: Optional[Path] = None

    def __repr__(self) -> str:
        return f"CheckForbiddenApis(name={self.name!r}, classes_dir={self.classes_dir!r})"

    # Pattern filtering

    def include(self, *patterns: str) -> "CheckForbiddenApis":
        for p in patterns:
            if p not in self.includes:
                self.includes.append(p)
        return self

    def exclude(self, *patterns: str) -> "CheckForbiddenApis":
        for p in patterns:
            if p not in self.excludes:
                self.excludes.append(p)
        return self

    def set_includes(self, patterns: Iterable[str]) -> "CheckForbiddenApis":
        self.includes = list(dict.fromkeys(patterns))
        return self

    def set_excludes(self, patterns: Iterable[str]) -> "CheckForbiddenApis":
        self.excludes = list(dict.fromkeys(patterns))
        return self

    def _project_path(self, p: PathLike) -> Path:
        path = Path(os.path.expanduser(os.fspath(p)))
        return path if path.is_absolute() else self.project_dir / path

    def class_files(self) -> Tuple[str, ...]:
        """Class files to check, relative to `classes_dir`."""
        if self.classes_dir is None:
            return ()
        return resolve_file_set(self._project_path(self.classes_dir), self.includes, self.excludes)

    def to_properties(self) -> Dict[str, Any]:
        return {
            "classes_dir": str(self._project_path(self.classes_dir)) if self.classes_dir is not None else None,
            "classpath": [str(self._project_path(p)) for p in (self.classpath or [])],
            "signatures_files": [str(self._project_path(p)) for p in self.signatures_files],
            "signatures": list(self.signatures),
            "bundled_signatures": list(self.bundled_signatures),
            "target_compatibility": self.target_compatibility,
            "internal_runtime_forbidden": self.internal_runtime_forbidden,
            "fail_on_unsupported_java": self.fail_on_unsupported_java,
            "fail_on_missing_classes": self.fail_on_missing_classes,
            "fail_on_unresolvable_signatures": self.fail_on_unresolvable_signatures,
            "ignore_failures": self.ignore_failures,
            "disable_classloading_cache": self.disable_classloading_cache,
            "suppress_annotations": list(self.suppress_annotations),
            "includes": list(self.includes),
            "excludes": list(self.excludes),
        }

    def check_forbidden(self, engine_factory: Optional[EngineFactory] = None) -> RunOutcome:
        """
        Task action. Returns the outcome on success or cooperative skip, raises a TaskFailure otherwise.
        """
        if self.classes_dir is None or self.classpath is None:
            raise InvalidUserDataError(
                task=self.name,
                message="Missing 'classes_dir' or 'classpath' property.",
                code="config.invalid",
            )

        try:
            config = resolve_task_configuration(self.to_properties())
        except ConfigurationError as e:
            if e.code == "signatures.none" and not self.fail_on_unresolvable_signatures:
                log.info(NO_SIGNATURES_SKIP)
                return RunOutcome(status=RunStatus.SKIPPED, message=NO_SIGNATURES_SKIP)
            raise self._translate(e) from e

        if config.missing_version_hint:
            log.warning(MISSING_TARGET_WARNING)

        ctx = RuntimeContext(
            run_id=self.name,
            front_end="task",
            skip_when_no_classes=True,
            skip_when_no_signatures=not config.policy.fail_on_unresolvable_signatures,
            trace_path=self.trace_path,
            meta={"task": self.name, "project_dir": str(self.project_dir)},
        )
        try:
            if engine_factory is None:
                engine_factory = load_engine_factory(resolve_engine_spec(self.engine))
            outcome = Kernel(engine_factory).run(ctx, config)
        except ForbiddenApisError as e:
            raise self._translate(e) from e

        if outcome.failed:
            raise TaskExecutionError(task=self.name, message=outcome.message or "Forbidden API usage detected", code="violation")
        return outcome

    def _translate(self, e: ForbiddenApisError) -> TaskFailure:
        if isinstance(e, (ConfigurationError, SignatureParseError)):
            return InvalidUserDataError(task=self.name, message=e.message, code=e.code)
        if isinstance(e, ResourceError):
            return ResourceFailure(task=self.name, message=e.message, code=e.code)
        return TaskExecutionError(task=self.name, message=e.message, code=e.code)
