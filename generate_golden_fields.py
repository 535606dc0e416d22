#!/usr/bin/env python3
"""Fill expected fields of a golden YAML record from an actual run.

Runs the record's `program` with its `in_stdin` and `config`, then writes
out_stdout, out_memory, out_code_hex, ticks and (on a fault) error/error_ip
into its `expect` block.

Usage: python generate_golden_fields.py path/to/golden.yaml
"""

from __future__ import annotations

import io
import sys
from parser import ProgramError, parse_program
from pathlib import Path
from typing import Any

import yaml
from config import ConfigError
from isa import IntcodeError, disassemble
from processor import Processor


def fill_expectations(doc: dict[str, Any]) -> dict[str, Any]:
    """Run `doc['program']` and store what it produced under `doc['expect']`."""
    src = doc.get("program")
    if src is None:
        msg = "No 'program' found in golden record"
        raise ProgramError(msg)
    program = parse_program(src) if isinstance(src, str) else [int(v) for v in src]

    stdout = io.StringIO()
    proc = Processor.initialize(program, io.StringIO(doc.get("in_stdin") or ""), stdout, doc.get("config"))
    target = doc.setdefault("expect", {})
    target.pop("error", None)
    target.pop("error_ip", None)
    try:
        proc.run()
    except IntcodeError as e:
        target["error"] = type(e).__name__
        target["error_ip"] = e.ip

    target["out_stdout"] = stdout.getvalue()
    target["out_memory"] = ",".join(str(c) for c in proc.memory)
    target["out_code_hex"] = "\n".join(disassemble(program))
    target["ticks"] = proc.dp.tick
    return doc


def main(path: str) -> int:
    p = Path(path)
    if not p.exists():
        print("File not found:", path)
        return 2

    with p.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}

    try:
        fill_expectations(doc)
    except (ProgramError, ConfigError) as e:
        print("Cannot run golden record:", e)
        return 2

    with p.open("w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    print(f"Updated {path} with out_stdout, out_memory, out_code_hex and ticks.")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: generate_golden_fields.py path/to/golden.yaml")
        sys.exit(1)
    sys.exit(main(sys.argv[1]))
