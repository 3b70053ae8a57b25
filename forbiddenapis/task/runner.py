from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from forbiddenapis.contract_store import ContractStore
from forbiddenapis.core.errors import ConfigurationError
from forbiddenapis.core.runtime_context import RunStatus
from forbiddenapis.logging_utils import configure_logging
from forbiddenapis.resources import contracts_schemas_dir

from .check_forbidden_apis import CheckForbiddenApis
from .errors import TaskFailure


log = logging.getLogger(__name__)

BUILD_FILE_SCHEMA = "task_file.schema.json"

_LIST_PROPERTIES = (
    "signatures_files",
    "signatures",
    "bundled_signatures",
    "suppress_annotations",
    "excludes",
)
_BOOL_PROPERTIES = (
    "internal_runtime_forbidden",
    "fail_on_unsupported_java",
    "fail_on_missing_classes",
    "fail_on_unresolvable_signatures",
    "ignore_failures",
    "disable_classloading_cache",
)


@dataclass(frozen=True)
class TaskResult:
    name: str
    status: str  # passed|violations_ignored|skipped|failed
    message: Optional[str] = None


def _contracts() -> ContractStore:
    store = ContractStore(contracts_schemas_dir())
    store.load()
    return store


def load_build_file(path: Path) -> Dict[str, Any]:
    """
    Read and validate a YAML build file. Raises ConfigurationError on any problem.
    """
    if not path.is_file():
        raise ConfigurationError(code="build_file.not_found", message=f"Build file not found: {path}")
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(code="build_file.invalid", message=f"Build file is not valid YAML: {path}: {e}") from e
    errors = _contracts().validate(BUILD_FILE_SCHEMA, doc)
    if errors:
        raise ConfigurationError(
            code="build_file.schema_invalid",
            message="Build file does not validate against {}: {}".format(BUILD_FILE_SCHEMA, "; ".join(errors)),
            data={"errors": errors},
        )
    return doc


def tasks_from_build_file(path: Path, doc: Dict[str, Any], *, trace_path: Optional[Path] = None) -> List[CheckForbiddenApis]:
    project = doc.get("project") or {}
    project_dir = Path(project["dir"]) if project.get("dir") else Path(".")
    if not project_dir.is_absolute():
        project_dir = path.resolve().parent / project_dir

    tasks: List[CheckForbiddenApis] = []
    for name, block in doc["tasks"].items():
        task = CheckForbiddenApis(name, project_dir=project_dir)
        task.classes_dir = block["classes_dir"]
        task.classpath = list(block.get("classpath", []))
        for key in _LIST_PROPERTIES:
            if key in block:
                setattr(task, key, list(block[key]))
        for key in _BOOL_PROPERTIES:
            if key in block:
                setattr(task, key, bool(block[key]))
        if "includes" in block:
            task.set_includes(block["includes"])
        task.target_compatibility = block.get("target_compatibility", project.get("target_compatibility"))
        task.engine = block.get("engine") or project.get("engine")
        task.trace_path = trace_path
        tasks.append(task)
    return tasks


def run_tasks(tasks: Sequence[CheckForbiddenApis], *, keep_going: bool = False) -> List[TaskResult]:
    results: List[TaskResult] = []
    for task in tasks:
        log.info("> Task :%s", task.name)
        try:
            outcome = task.check_forbidden()
        except TaskFailure as e:
            log.error("Execution failed for task ':%s': %s", task.name, e.message)
            results.append(TaskResult(name=task.name, status="failed", message=e.message))
            if not keep_going:
                break
            continue
        if outcome.status == RunStatus.SKIPPED:
            results.append(TaskResult(name=task.name, status="skipped", message=outcome.message))
        elif outcome.message:
            results.append(TaskResult(name=task.name, status="violations_ignored", message=outcome.message))
        else:
            results.append(TaskResult(name=task.name, status="passed"))
    return results


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="forbiddenapis-task", description="Run forbidden API check tasks from a YAML build file")
    parser.add_argument("--build-file", default="forbiddenapis.yml", help="Path to the YAML build file (default: forbiddenapis.yml)")
    parser.add_argument("--task", action="append", default=[], help="Run only this task (repeatable; default: all tasks in file order)")
    parser.add_argument("--continue", dest="keep_going", action="store_true", help="Keep running remaining tasks after a failure")
    parser.add_argument("--trace", help="Write a JSONL trace of all task runs to this path")
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    try:
        ns = parser.parse_args(argv)
    except SystemExit as e:
        return 0 if e.code in (None, 0) else 2

    configure_logging(logging.DEBUG if ns.verbose else logging.INFO, log_file=Path(ns.log_file) if ns.log_file else None)

    build_file = Path(ns.build_file)
    try:
        doc = load_build_file(build_file)
        tasks = tasks_from_build_file(build_file, doc, trace_path=Path(ns.trace) if ns.trace else None)
    except ConfigurationError as e:
        print("ERROR: {}".format(e.message), file=sys.stderr)
        return 2

    if ns.task:
        by_name = {t.name: t for t in tasks}
        unknown = [n for n in ns.task if n not in by_name]
        if unknown:
            print("ERROR: Unknown task(s): {}".format(", ".join(unknown)), file=sys.stderr)
            return 2
        tasks = [by_name[n] for n in ns.task]

    results = run_tasks(tasks, keep_going=ns.keep_going)
    failed = [r for r in results if r.status == "failed"]
    if failed:
        print("BUILD FAILED: {} task(s) failed".format(len(failed)), file=sys.stderr)
        return 1
    log.info("BUILD SUCCESSFUL: %d task(s) executed", len(results))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
