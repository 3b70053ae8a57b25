from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import yaml  # noqa: E402

from forbiddenapis.contract_store import ContractStore  # noqa: E402


def main() -> int:
    contracts = ROOT / "forbiddenapis" / "contracts"
    schemas_dir = contracts / "schemas"
    examples_dir = contracts / "examples"

    store = ContractStore(schemas_dir)
    store.load()

    schema_errors = store.check_schemas()
    if schema_errors:
        print("Schema validation failed:")
        for name, err in schema_errors:
            print("- {}: {}".format(name, err))
        return 1

    failures = []
    try:
        failures.append(("build.example.yml", store.validate_yaml_file("task_file.schema.json", examples_dir / "build.example.yml")))
    except yaml.YAMLError as e:
        failures.append(("build.example.yml", [repr(e)]))
    failures.append(
        ("trace.sample.jsonl", store.validate_jsonl_file("trace_event.schema.json", examples_dir / "trace.sample.jsonl"))
    )

    ok = True
    for name, errs in failures:
        if errs:
            ok = False
            print("Example {} failed validation:".format(name))
            for e in errs:
                print("  - {}".format(e))

    if not ok:
        return 1

    print("Contracts OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
