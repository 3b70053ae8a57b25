from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from .classpath import split_classpath, to_classpath_entry
from .errors import ConfigurationError
from .fileset import DEFAULT_INCLUDE
from .runtime_context import PolicyFlags, RunConfiguration
from .signatures import SignatureSourceAggregator


def _string_list(raw: Mapping[str, Any], key: str, *, separator: Optional[str] = None) -> List[str]:
    v = raw.get(key)
    if v is None:
        return []
    if isinstance(v, (str, os.PathLike)):
        v = [v]
    if not isinstance(v, (list, tuple, set, frozenset)):
        raise ConfigurationError(code="config.invalid", message=f"'{key}' must be a list of strings", data={"key": key})
    out: List[str] = []
    for item in v:
        if isinstance(item, os.PathLike):
            item = os.fspath(item)
        if not isinstance(item, str):
            raise ConfigurationError(code="config.invalid", message=f"'{key}' must contain only strings", data={"key": key})
        parts = item.split(separator) if separator else [item]
        out.extend(p.strip() for p in parts if p.strip())
    return out


def _flag(raw: Mapping[str, Any], key: str, default: bool = False) -> bool:
    v = raw.get(key, default)
    if v is None:
        return default
    if not isinstance(v, bool):
        raise ConfigurationError(code="config.invalid", message=f"'{key}' must be a boolean", data={"key": key})
    return v


def _ordered_set(values: List[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _classes_directory(raw: Mapping[str, Any], key: str) -> Path:
    v = raw.get(key)
    if isinstance(v, os.PathLike):
        v = os.fspath(v)
    if not isinstance(v, str) or not v.strip():
        raise ConfigurationError(code="classes.dir_missing", message=f"Missing '{key}' property: directory with class files is required")
    return Path(os.path.abspath(os.path.expandvars(os.path.expanduser(v))))


def _require_signatures(aggregator: SignatureSourceAggregator, policy: PolicyFlags, hint: str) -> None:
    if len(aggregator) == 0 and not policy.internal_runtime_forbidden:
        raise ConfigurationError(code="signatures.none", message=f"No API signatures found; use {hint} to define those!")


def _build(
    *,
    classes_directory: Path,
    classpath: List[str],
    includes: List[str],
    excludes: List[str],
    suppress: List[str],
    aggregator: SignatureSourceAggregator,
    policy: PolicyFlags,
) -> RunConfiguration:
    return RunConfiguration(
        classes_directory=classes_directory,
        classpath_entries=tuple(to_classpath_entry(e) for e in classpath),
        include_patterns=_ordered_set(includes) or (DEFAULT_INCLUDE,),
        exclude_patterns=_ordered_set(excludes),
        suppress_annotation_patterns=_ordered_set(suppress),
        signature_sources=aggregator.sources(),
        policy=policy,
        missing_version_hint=aggregator.missing_version_hint,
    )


def resolve_cli_configuration(raw: Mapping[str, Any]) -> RunConfiguration:
    """
    Normalize command-line values into a RunConfiguration.

    CLI defaults:
    - violations always fail the run
    - missing classes and unresolvable signatures fail unless explicitly allowed
    - an unsupported runtime is fatal
    """
    classes_directory = _classes_directory(raw, "dir")

    policy = PolicyFlags(
        fail_on_violation=True,
        fail_on_missing_classes=not _flag(raw, "allow_missing_classes"),
        fail_on_unresolvable_signatures=not _flag(raw, "allow_unresolvable_signatures"),
        internal_runtime_forbidden=_flag(raw, "internal_runtime_forbidden"),
        disable_classloading_cache=False,
        fail_on_unsupported_runtime=True,
    )

    aggregator = SignatureSourceAggregator()
    for name in _string_list(raw, "bundled_signatures", separator=","):
        aggregator.add_bundled(name, None)
    for path in _string_list(raw, "signatures_files"):
        aggregator.add_file(path)
    _require_signatures(aggregator, policy, "parameters '--bundledsignatures', '--signaturesfile', and/or '--internalruntimeforbidden'")

    return _build(
        classes_directory=classes_directory,
        classpath=split_classpath(_string_list(raw, "classpath")),
        includes=_string_list(raw, "includes", separator=","),
        excludes=_string_list(raw, "excludes", separator=","),
        suppress=_string_list(raw, "suppress_annotations", separator=","),
        aggregator=aggregator,
        policy=policy,
    )


def resolve_task_configuration(raw: Mapping[str, Any]) -> RunConfiguration:
    """
    Normalize build-task properties into a RunConfiguration.

    Every policy flag defaults to off; `ignore_failures` (default false) is the inverse of
    fail-on-violation, so an unconfigured task fails the build on violations.
    """
    classes_directory = _classes_directory(raw, "classes_dir")

    policy = PolicyFlags(
        fail_on_violation=not _flag(raw, "ignore_failures"),
        fail_on_missing_classes=_flag(raw, "fail_on_missing_classes"),
        fail_on_unresolvable_signatures=_flag(raw, "fail_on_unresolvable_signatures"),
        internal_runtime_forbidden=_flag(raw, "internal_runtime_forbidden"),
        disable_classloading_cache=_flag(raw, "disable_classloading_cache"),
        fail_on_unsupported_runtime=_flag(raw, "fail_on_unsupported_java"),
    )

    target = raw.get("target_compatibility")
    if target is not None and not isinstance(target, str):
        target = str(target)

    aggregator = SignatureSourceAggregator()
    inline = _string_list(raw, "signatures")
    if inline:
        aggregator.add_inline("".join(line + "\n" for line in inline))
    for name in _string_list(raw, "bundled_signatures"):
        aggregator.add_bundled(name, target)
    for path in _string_list(raw, "signatures_files"):
        aggregator.add_file(path)
    _require_signatures(aggregator, policy, "parameters 'signatures', 'bundled_signatures', and/or 'signatures_files'")

    return _build(
        classes_directory=classes_directory,
        classpath=_string_list(raw, "classpath"),
        includes=_string_list(raw, "includes"),
        excludes=_string_list(raw, "excludes"),
        suppress=_string_list(raw, "suppress_annotations"),
        aggregator=aggregator,
        policy=policy,
    )
