from __future__ import annotations

import importlib
import inspect
import logging
import os
from typing import Any, Optional

from forbiddenapis.core.classpath import ClassLoadingContext
from forbiddenapis.core.errors import ConfigurationError
from forbiddenapis.core.runtime_context import PolicyFlags

from .base import ENGINE_METHODS, Engine, EngineFactory


ENGINE_ENV_VAR = "FORBIDDENAPIS_ENGINE"


def _import_object(spec: str) -> Any:
    """
    Import by "module:attr" spec.
    """
    if ":" not in spec:
        raise ConfigurationError(code="engine.invalid", message="engine spec must be 'module:object'", data={"engine": spec})
    mod_name, attr = spec.split(":", 1)
    if not mod_name or not attr:
        raise ConfigurationError(code="engine.invalid", message="engine spec must be 'module:object'", data={"engine": spec})
    try:
        mod = importlib.import_module(mod_name)
    except Exception as e:  # noqa: BLE001
        raise ConfigurationError(code="engine.not_found", message=f"Failed to import engine module: {mod_name}", data={"module": mod_name}) from e
    obj: Any = mod
    for part in attr.split("."):
        if not hasattr(obj, part):
            raise ConfigurationError(
                code="engine.not_found",
                message=f"Engine object not found in module: {spec}",
                data={"module": mod_name, "attr": attr},
            )
        obj = getattr(obj, part)
    return obj


def _check_engine(inst: Any, spec: str) -> Engine:
    missing = [m for m in ENGINE_METHODS if not callable(getattr(inst, m, None))]
    if missing:
        raise ConfigurationError(
            code="engine.invalid",
            message=f"Engine does not implement: {', '.join(missing)}",
            data={"engine": spec, "missing": missing},
        )
    return inst


def load_engine_factory(spec: str) -> EngineFactory:
    """
    Resolve an engine from a "module:Class" or "module:factory" spec.

    The object is called as `obj(context, policy, logger)`; the result must implement the Engine protocol.
    """
    if not isinstance(spec, str) or not spec.strip():
        raise ConfigurationError(code="engine.invalid", message="engine must be a non-empty 'module:object' spec")
    spec = spec.strip()
    obj = _import_object(spec)
    if not callable(obj) and not inspect.isclass(obj):
        raise ConfigurationError(code="engine.invalid", message=f"Engine object is not callable: {spec}", data={"engine": spec})

    def factory(context: ClassLoadingContext, policy: PolicyFlags, logger: logging.Logger) -> Engine:
        try:
            inst = obj(context, policy, logger)
        except TypeError as e:
            raise ConfigurationError(
                code="engine.invalid",
                message=f"Engine could not be constructed with (context, policy, logger): {spec}",
                data={"engine": spec},
            ) from e
        return _check_engine(inst, spec)

    return factory


def resolve_engine_spec(explicit: Optional[str] = None) -> str:
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip()
    env = os.environ.get(ENGINE_ENV_VAR, "").strip()
    if env:
        return env
    raise ConfigurationError(
        code="engine.missing",
        message=f"No scanning engine configured; pass --engine module:object or set {ENGINE_ENV_VAR}",
    )
