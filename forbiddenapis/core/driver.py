from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from forbiddenapis.trace.trace_emitter import TraceEmitter

from .classpath import ClassLoadingContext
from .errors import (
    ConfigurationError,
    EngineFault,
    ForbiddenApisError,
    ResourceError,
    UnsupportedRuntimeError,
    ViolationError,
)
from .runtime_context import (
    BundledSignatures,
    InlineSignatures,
    RunConfiguration,
    RunOutcome,
    RunStatus,
    RuntimeContext,
    SignaturesFile,
)

if TYPE_CHECKING:
    # Type-only: the engine package imports core modules at runtime.
    from forbiddenapis.engine.base import Engine, EngineFactory


log = logging.getLogger(__name__)
engine_log = logging.getLogger("forbiddenapis.engine")

UNSUPPORTED_RUNTIME_MESSAGE = (
    "Your runtime is not supported by the scanning engine. Please run the checks with a supported runtime!"
)
NO_SIGNATURES_MESSAGE = "No API signatures found; configure signature sources or forbid internal runtime classes!"
NO_SIGNATURES_SKIP = "Skipping execution because no API signatures are available."


class ExecutionDriver:
    """
    Drives the scanning engine through one audit run.

    Hard rules:
    - strictly sequential, no retries: any failing step aborts the remaining ones
    - the classloading context is released on every exit path
    - a violation is an outcome, not a fault
    - anything an engine call raises that is not a ForbiddenApisError becomes an EngineFault
    - class files are resolved after the capability check, so an unsupported runtime wins
    """

    def __init__(self, engine_factory: EngineFactory, trace: TraceEmitter):
        self._engine_factory = engine_factory
        self._trace = trace

    def execute(
        self,
        ctx: RuntimeContext,
        config: RunConfiguration,
        classpath: Sequence[Path],
        resolve_files: Callable[[], Sequence[str]],
    ) -> RunOutcome:
        policy = config.policy
        loader = ClassLoadingContext(classpath, use_cache=not policy.disable_classloading_cache)
        self._trace.emit("classloader_acquired", step="acquire", data={"classpath": [str(p) for p in classpath]})
        try:
            with loader:
                engine = self._engine_call("create the scanning engine", self._engine_factory, loader, policy, engine_log)
                return self._drive(ctx, config, engine, resolve_files)
        finally:
            self._trace.emit("classloader_released", step="release")

    @staticmethod
    def _engine_call(
        what: str,
        fn: Callable[..., Any],
        *args: Any,
        on_os_error: Optional[Callable[[OSError], ForbiddenApisError]] = None,
    ) -> Any:
        try:
            return fn(*args)
        except ForbiddenApisError:
            raise
        except OSError as e:
            if on_os_error is None:
                raise EngineFault(code="engine.fault", message=f"Scanning engine failed to {what}: {e}") from e
            raise on_os_error(e) from e
        except Exception as e:  # noqa: BLE001
            raise EngineFault(code="engine.fault", message=f"Scanning engine failed to {what}: {e}") from e

    def _drive(
        self,
        ctx: RuntimeContext,
        config: RunConfiguration,
        engine: Engine,
        resolve_files: Callable[[], Sequence[str]],
    ) -> RunOutcome:
        policy = config.policy
        call = self._engine_call

        if not call("check runtime support", engine.is_runtime_supported):
            if policy.fail_on_unsupported_runtime:
                raise UnsupportedRuntimeError(code="runtime.unsupported", message=UNSUPPORTED_RUNTIME_MESSAGE)
            log.warning(UNSUPPORTED_RUNTIME_MESSAGE)
            self._trace.emit("run_skipped", step="capability", message=UNSUPPORTED_RUNTIME_MESSAGE)
            return RunOutcome(status=RunStatus.SKIPPED, message=UNSUPPORTED_RUNTIME_MESSAGE)
        self._trace.emit("runtime_checked", step="capability", data={"supported": True})

        for pattern in config.suppress_annotation_patterns:
            call("register suppress annotation", engine.register_suppress_annotation, pattern)
        if config.suppress_annotation_patterns:
            self._trace.emit(
                "suppress_annotations_registered",
                step="suppress",
                data={"patterns": list(config.suppress_annotation_patterns)},
            )

        files = resolve_files()

        self._load_signatures(engine, config)

        if not policy.internal_runtime_forbidden and not call("report loaded signatures", engine.has_any_signatures_loaded):
            if ctx.skip_when_no_signatures:
                log.info(NO_SIGNATURES_SKIP)
                self._trace.emit("run_skipped", step="signatures", message=NO_SIGNATURES_SKIP)
                return RunOutcome(status=RunStatus.SKIPPED, message=NO_SIGNATURES_SKIP)
            raise ConfigurationError(code="signatures.none_loaded", message=NO_SIGNATURES_MESSAGE)

        log.info("Loading classes to check...")
        for rel in files:
            path = config.classes_directory / rel
            call(
                "register class file",
                engine.register_class_file,
                path,
                on_os_error=lambda e, path=path: ResourceError(
                    code="classes.load_failed",
                    message=f"Failed to load one of the given class files: {path}: {e}",
                    data={"path": str(path)},
                ),
            )
        self._trace.emit("classes_registered", step="classes", data={"count": len(files)})

        log.info("Scanning for API signatures and dependencies...")
        try:
            engine.execute()
        except ViolationError as e:
            self._trace.emit("violations_found", step="scan", message=e.message, data=e.data)
            if policy.fail_on_violation:
                return RunOutcome(status=RunStatus.VIOLATIONS, message=e.message, files_checked=len(files))
            log.warning("Forbidden API usage found, failures are ignored: %s", e.message)
            return RunOutcome(status=RunStatus.PASSED, message=e.message, files_checked=len(files))
        except ForbiddenApisError:
            raise
        except Exception as e:  # noqa: BLE001
            raise EngineFault(code="engine.fault", message=f"Scanning for forbidden API usage failed: {e}") from e

        self._trace.emit("scan_finished", step="scan", data={"files_checked": len(files)})
        return RunOutcome(status=RunStatus.PASSED, files_checked=len(files))

    def _load_signatures(self, engine: Engine, config: RunConfiguration) -> None:
        for source in config.signature_sources:
            try:
                if isinstance(source, BundledSignatures):
                    log.info("Reading bundled API signatures: %s", source.name)
                    engine.load_bundled_signatures(source.name, source.version_hint)
                    described = source.name
                elif isinstance(source, InlineSignatures):
                    log.info("Reading inline API signatures...")
                    engine.load_inline_signatures(source.text)
                    described = "<inline>"
                elif isinstance(source, SignaturesFile):
                    log.info("Reading API signatures: %s", source.path)
                    if not source.path.is_file():
                        raise FileNotFoundError(f"Signatures file does not exist: {source.path}")
                    engine.load_signature_file(source.path)
                    described = str(source.path)
                else:
                    raise ConfigurationError(code="signatures.invalid", message=f"Unknown signature source: {source!r}")
            except OSError as e:
                raise ResourceError(
                    code="signatures.io_error",
                    message=f"IO problem while reading files with API signatures: {e}",
                ) from e
            except ForbiddenApisError:
                raise
            except Exception as e:  # noqa: BLE001
                raise EngineFault(code="engine.fault", message=f"Loading API signatures failed: {e}") from e
            self._trace.emit("signatures_loaded", step="signatures", data={"source": described})
