from __future__ import annotations

import argparse
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Dict, List, Optional

from forbiddenapis.core.errors import (
    ConfigurationError,
    ForbiddenApisError,
    UnsupportedRuntimeError,
)
from forbiddenapis.core.kernel import Kernel
from forbiddenapis.core.resolver import resolve_cli_configuration
from forbiddenapis.core.runtime_context import RuntimeContext
from forbiddenapis.engine.loading import ENGINE_ENV_VAR, load_engine_factory, resolve_engine_spec
from forbiddenapis.logging_utils import configure_logging


log = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VIOLATION = 1
EXIT_ERR_CMDLINE = 2
EXIT_UNSUPPORTED_JDK = 3
EXIT_ERR_OTHER = 4

# Configuration problems that concern the filesystem rather than the command line itself.
_FILESYSTEM_CONFIG_CODES = frozenset({"classes.dir_not_found", "classes.none_found", "classpath.invalid"})


def _version() -> str:
    try:
        return version("forbiddenapis")
    except PackageNotFoundError:
        return "unknown"


def exit_code_for(e: Exception) -> int:
    if isinstance(e, UnsupportedRuntimeError):
        return EXIT_UNSUPPORTED_JDK
    if isinstance(e, ConfigurationError):
        return EXIT_ERR_OTHER if e.code in _FILESYSTEM_CONFIG_CODES else EXIT_ERR_CMDLINE
    return EXIT_ERR_OTHER


def _format_cli_error(e: Exception, *, verbose: bool = False) -> str:
    """
    Single-line message by default; with --verbose the error code and data payload are appended.
    """
    if not isinstance(e, ForbiddenApisError):
        return str(e) or repr(e)
    if not verbose:
        return e.message
    out = str(e)
    if isinstance(e.data, dict) and e.data:
        out += "\n" + json.dumps(e.data, ensure_ascii=False, indent=2, default=str)
    return out


def _raw_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "dir": args.dir,
        "classpath": args.classpath,
        "includes": args.includes,
        "excludes": args.excludes,
        "signatures_files": args.signaturesfile,
        "bundled_signatures": args.bundledsignatures,
        "suppress_annotations": args.suppressannotation,
        "internal_runtime_forbidden": args.internalruntimeforbidden,
        "allow_missing_classes": args.allowmissingclasses,
        "allow_unresolvable_signatures": args.allowunresolvablesignatures,
    }


def cmd_check(args: argparse.Namespace) -> int:
    config = resolve_cli_configuration(_raw_from_args(args))
    engine_spec = resolve_engine_spec(args.engine)
    engine_factory = load_engine_factory(engine_spec)

    ctx = RuntimeContext(
        run_id=args.run_id,
        front_end="cli",
        trace_path=Path(args.trace) if args.trace else None,
        meta={"engine": engine_spec},
    )
    outcome = Kernel(engine_factory).run(ctx, config)
    if outcome.failed:
        print("ERROR: {}".format(outcome.message or "Forbidden API usage detected"), file=sys.stderr)
        return EXIT_VIOLATION
    log.info("Scanned %d class file(s) for forbidden API invocations.", outcome.files_checked)
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forbiddenapis",
        description="Scans a set of class files for forbidden API usage.",
        epilog=(
            "Exit codes: {} = SUCCESS, {} = forbidden API detected, {} = invalid command line, "
            "{} = unsupported runtime, {} = other error (I/O,...)"
        ).format(EXIT_SUCCESS, EXIT_VIOLATION, EXIT_ERR_CMDLINE, EXIT_UNSUPPORTED_JDK, EXIT_ERR_OTHER),
    )
    parser.add_argument("-V", "--version", action="version", version="%(prog)s " + _version())
    parser.add_argument(
        "-d",
        "--dir",
        required=True,
        metavar="directory",
        help="Directory with class files to check for forbidden API usage; this directory is also added to classpath",
    )
    parser.add_argument(
        "-c",
        "--classpath",
        action="append",
        default=[],
        metavar="path",
        help="Class search path of directories and zip/jar files (path-separator separated; repeatable)",
    )
    parser.add_argument(
        "-i",
        "--includes",
        action="append",
        default=[],
        metavar="pattern",
        help="Ant-style pattern to select class files (comma separated; repeatable; default: '**/*.class')",
    )
    parser.add_argument(
        "-e",
        "--excludes",
        action="append",
        default=[],
        metavar="pattern",
        help="Ant-style pattern to exclude some files from checks (comma separated; repeatable)",
    )
    parser.add_argument(
        "-f",
        "--signaturesfile",
        action="append",
        default=[],
        metavar="file",
        help="Path to a file containing signatures (repeatable)",
    )
    parser.add_argument(
        "-b",
        "--bundledsignatures",
        action="append",
        default=[],
        metavar="name",
        help="Name of a bundled signatures definition (comma separated; repeatable)",
    )
    parser.add_argument(
        "--suppressannotation",
        action="append",
        default=[],
        metavar="classname",
        help="Class name or glob pattern of an annotation that suppresses error reporting (comma separated; repeatable)",
    )
    parser.add_argument(
        "--internalruntimeforbidden",
        action="store_true",
        help="Forbid calls to classes from the internal runtime (like sun.misc.Unsafe)",
    )
    parser.add_argument("--allowmissingclasses", action="store_true", help="Don't fail if a referenced class is missing on classpath")
    parser.add_argument("--allowunresolvablesignatures", action="store_true", help="Don't fail if a signature is not resolving")
    parser.add_argument("--engine", help=f"Scanning engine as 'module:object' (default: ${ENGINE_ENV_VAR})")
    parser.add_argument("--trace", help="Write a JSONL trace of the run to this path")
    parser.add_argument("--run-id", default="run_cli", help="Run ID for trace correlation")
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging and error details")
    parser.set_defaults(func=cmd_check)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        ns = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors and 0 for --help/--version.
        return EXIT_SUCCESS if e.code in (None, 0) else EXIT_ERR_CMDLINE

    configure_logging(logging.DEBUG if ns.verbose else logging.INFO, log_file=Path(ns.log_file) if ns.log_file else None)
    try:
        return int(ns.func(ns))
    except ForbiddenApisError as e:
        print("ERROR: " + _format_cli_error(e, verbose=ns.verbose), file=sys.stderr)
        return exit_code_for(e)
    except Exception as e:  # noqa: BLE001
        log.debug("Unexpected failure", exc_info=True)
        print("ERROR: " + _format_cli_error(e), file=sys.stderr)
        return EXIT_ERR_OTHER


if __name__ == "__main__":
    raise SystemExit(main())
