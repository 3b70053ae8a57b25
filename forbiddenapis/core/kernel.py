from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

from forbiddenapis.trace.trace_emitter import TraceEmitter
from forbiddenapis.trace.trace_store_jsonl import TraceStoreJSONL

from .classpath import build_classpath
from .driver import NO_SIGNATURES_MESSAGE, NO_SIGNATURES_SKIP, ExecutionDriver
from .errors import ConfigurationError, ForbiddenApisError
from .fileset import resolve_file_set
from .runtime_context import RunConfiguration, RunOutcome, RunStatus, RuntimeContext

if TYPE_CHECKING:
    from forbiddenapis.engine.base import EngineFactory


log = logging.getLogger(__name__)


class Kernel:
    """
    Minimal orchestration: RunConfiguration -> classpath + class files -> engine -> outcome.

    Hard rules:
    - a run without signature sources is rejected before any classloading resource is acquired.
    - an empty class-file set is a cooperative skip when the front end tolerates it, decided up front.
    - one engine and one classloading context per run; nothing is shared between runs.
    - trace every step when a trace path is configured.
    """

    def __init__(self, engine_factory: EngineFactory):
        self._engine_factory = engine_factory

    def run(self, ctx: RuntimeContext, config: RunConfiguration) -> RunOutcome:
        store = TraceStoreJSONL(ctx.trace_path) if ctx.trace_path is not None else None
        trace = TraceEmitter(store=store, run_id=ctx.run_id)

        trace.emit(
            "run_started",
            message="Audit run started",
            data={"front_end": ctx.front_end, "classes_directory": str(config.classes_directory), "meta": dict(ctx.meta)},
        )
        try:
            outcome = self._run(ctx, config, trace)
        except ForbiddenApisError as e:
            trace.emit("error", message=e.message, data={"code": e.code})
            raise
        trace.emit(
            "run_finished",
            message=outcome.message,
            data={"status": outcome.status.value, "files_checked": outcome.files_checked},
        )
        return outcome

    def _run(self, ctx: RuntimeContext, config: RunConfiguration, trace: TraceEmitter) -> RunOutcome:
        if not config.signature_sources and not config.policy.internal_runtime_forbidden:
            if ctx.skip_when_no_signatures:
                log.info(NO_SIGNATURES_SKIP)
                trace.emit("run_skipped", step="signatures", message=NO_SIGNATURES_SKIP)
                return RunOutcome(status=RunStatus.SKIPPED, message=NO_SIGNATURES_SKIP)
            raise ConfigurationError(code="signatures.none", message=NO_SIGNATURES_MESSAGE)

        classpath = build_classpath(config.classpath_entries, config.classes_directory)
        driver = ExecutionDriver(self._engine_factory, trace)

        if ctx.skip_when_no_classes:
            files = self._class_files(ctx, config, trace)
            if not files:
                msg = self._no_classes_message(config)
                log.info("Skipping execution: %s", msg)
                trace.emit("run_skipped", step="files", message=msg)
                return RunOutcome(status=RunStatus.SKIPPED, message=msg)
            return driver.execute(ctx, config, classpath, lambda: files)

        return driver.execute(ctx, config, classpath, lambda: self._class_files(ctx, config, trace))

    @staticmethod
    def _no_classes_message(config: RunConfiguration) -> str:
        return "No classes found in directory {} (includes={}, excludes={}).".format(
            config.classes_directory, list(config.include_patterns), list(config.exclude_patterns)
        )

    def _class_files(self, ctx: RuntimeContext, config: RunConfiguration, trace: TraceEmitter) -> Tuple[str, ...]:
        log.info("Scanning for classes to check...")
        classes_dir = config.classes_directory
        if not classes_dir.is_dir() and not ctx.skip_when_no_classes:
            raise ConfigurationError(
                code="classes.dir_not_found",
                message=f"Directory with class files does not exist: {classes_dir}",
                data={"classes_directory": str(classes_dir)},
            )

        files = resolve_file_set(classes_dir, config.include_patterns, config.exclude_patterns)
        trace.emit("files_resolved", step="files", data={"count": len(files)})
        if not files and not ctx.skip_when_no_classes:
            raise ConfigurationError(code="classes.none_found", message=self._no_classes_message(config))
        return files
