from .errors import (
    ConfigurationError,
    EngineFault,
    ForbiddenApisError,
    ResourceError,
    SignatureParseError,
    UnsupportedRuntimeError,
    ViolationError,
)
from .runtime_context import (
    BundledSignatures,
    InlineSignatures,
    PolicyFlags,
    RunConfiguration,
    RunOutcome,
    RunStatus,
    RuntimeContext,
    SignaturesFile,
)
from .fileset import GlobPattern, resolve_file_set
from .classpath import ClassLoadingContext, build_classpath
from .signatures import SignatureSourceAggregator
from .resolver import resolve_cli_configuration, resolve_task_configuration
from .driver import ExecutionDriver
from .kernel import Kernel

__all__ = [
  "ConfigurationError",
  "EngineFault",
  "ForbiddenApisError",
  "ResourceError",
  "SignatureParseError",
  "UnsupportedRuntimeError",
  "ViolationError",
  "BundledSignatures",
  "InlineSignatures",
  "PolicyFlags",
  "RunConfiguration",
  "RunOutcome",
  "RunStatus",
  "RuntimeContext",
  "SignaturesFile",
  "GlobPattern",
  "resolve_file_set",
  "ClassLoadingContext",
  "build_classpath",
  "SignatureSourceAggregator",
  "resolve_cli_configuration",
  "resolve_task_configuration",
  "ExecutionDriver",
  "Kernel",
]
