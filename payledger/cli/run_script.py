#!/usr/bin/env python3
"""
payledger.cli.run_script — apply a YAML/JSON scenario to a fresh in-memory ledger.

This CLI:
  1) Loads a scenario file (YAML or JSON; JSON is valid YAML)
  2) Creates a PayLedger with every signature granted
  3) Runs each step, comparing the outcome with `expect_error` when given
  4) Prints per-step results and the final balances of `report` addresses

Scenario format:

    ledger: payledger          # optional ledger address
    sequence: 0                # optional starting sequence
    report: [A, B, C]          # addresses to show at the end
    steps:
      - op: initialize
        args: {admin: admin, name: Pay, symbol: PAY, decimals: 7}
      - op: mint
        args: {admin: admin, to: A, amount: 1000}
      - advance: 10            # move the ledger clock
      - op: release_escrow
        args: {caller: C, index: 1}
        expect_error: ALREADY_FINALIZED

Usage:
    python -m payledger.cli.run_script scenario.yaml [--json] [--log-level DEBUG]

Exit status: 0 when every step matched its expectation, 1 otherwise, 2 on a
malformed scenario file.
"""

from __future__ import annotations

import argparse
import enum
import inspect
import json
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .. import logging as plog
from ..errors import LedgerError, error_to_result
from ..ledger import OPERATIONS, PayLedger
from ..runtime.auth import MockAuthorizer
from ..runtime.env import LedgerClock
from ..version import __version__

log = plog.get_logger(__name__)


class ScenarioError(ValueError):
    pass


def _plain(x: Any) -> Any:
    """Dataclasses → dict, enums → value, tuples → lists."""
    if isinstance(x, enum.Enum):
        return x.value
    if is_dataclass(x) and not isinstance(x, type):
        return {k: _plain(v) for k, v in asdict(x).items()}
    if isinstance(x, Mapping):
        return {str(k): _plain(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_plain(v) for v in x]
    return x


def load_scenario(path: Path) -> Dict[str, Any]:
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ScenarioError(f"cannot parse {path}: {exc}") from exc
    if isinstance(doc, list):
        doc = {"steps": doc}
    if not isinstance(doc, dict) or not isinstance(doc.get("steps"), list):
        raise ScenarioError("scenario must be a list of steps or a mapping with a 'steps' list")
    return doc


def _kwargs(args: Any) -> Dict[str, Any]:
    if args is None:
        return {}
    if not isinstance(args, Mapping):
        raise ScenarioError("step 'args' must be a mapping")
    # `from` is a Python keyword
    return {("from_" if k == "from" else str(k)): v for k, v in args.items()}


def run_step(ledger: PayLedger, step: Mapping[str, Any]) -> Dict[str, Any]:
    if "advance" in step and "op" not in step:
        return {"op": "advance", "status": "OK", "sequence": ledger.advance(int(step["advance"]))}

    op = step.get("op")
    if op not in OPERATIONS:
        raise ScenarioError(f"unknown op: {op!r}")
    if "advance" in step:
        ledger.advance(int(step["advance"]))
    expect = step.get("expect_error")

    fn = getattr(ledger, op)
    kwargs = _kwargs(step.get("args"))
    try:
        inspect.signature(fn).bind(**kwargs)
    except TypeError as exc:
        raise ScenarioError(f"bad args for {op}: {exc}") from exc

    out: Dict[str, Any] = {"op": op, "sequence": ledger.sequence}
    try:
        result = fn(**kwargs)
    except LedgerError as err:
        out.update(error_to_result(err))
        out["matched"] = expect is not None and err.code == str(expect).upper()
        return out
    out.update({"status": "OK", "result": _plain(result)})
    out["matched"] = expect is None
    return out


def run(doc: Mapping[str, Any]) -> Dict[str, Any]:
    ledger = PayLedger(
        str(doc.get("ledger", "payledger")),
        authorizer=MockAuthorizer(allow_all=True),
        clock=LedgerClock(int(doc.get("sequence", 0))),
    )
    steps: List[Dict[str, Any]] = []
    with plog.trace_scope():
        for i, step in enumerate(doc["steps"], start=1):
            if not isinstance(step, Mapping):
                raise ScenarioError(f"step {i} must be a mapping")
            res = run_step(ledger, step)
            res["step"] = i
            steps.append(res)

    report = [str(a) for a in doc.get("report", [])]
    return {
        "version": __version__,
        "steps": steps,
        "balances": ledger.balances(report) if report else {},
        "total_supply": ledger.total_supply(),
        "sequence": ledger.sequence,
        "events": len(ledger.events()),
        "ok": all(s.get("matched", True) for s in steps),
    }


def _print_text(summary: Mapping[str, Any]) -> None:
    for s in summary["steps"]:
        mark = "ok " if s.get("matched", True) else "!! "
        if s["status"] == "OK":
            detail = "" if s.get("result") is None else f" -> {s['result']}"
            print(f"{mark}[{s['step']}] {s['op']} @{s['sequence']}{detail}")
        else:
            print(f"{mark}[{s['step']}] {s['op']} @{s['sequence']} error {s['error']['code']}: {s['error']['message']}")
    print(f"sequence={summary['sequence']} total_supply={summary['total_supply']} events={summary['events']}")
    for addr, bal in summary["balances"].items():
        print(f"  {addr}: {bal}")


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run a payment ledger scenario against a fresh in-memory ledger.")
    p.add_argument("scenario", type=Path, help="YAML or JSON scenario file")
    p.add_argument("--json", action="store_true", help="Print the full JSON summary")
    p.add_argument("--log-level", default=None, help="Log level (default: WARNING)")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    ns = _parse_args(sys.argv[1:] if argv is None else argv)
    plog.configure(json=False, level=ns.log_level or "WARNING")

    if not ns.scenario.exists():
        print(f"[run_script] scenario not found: {ns.scenario}", file=sys.stderr)
        return 2
    try:
        summary = run(load_scenario(ns.scenario))
    except ScenarioError as exc:
        print(f"[run_script] {exc}", file=sys.stderr)
        return 2

    if ns.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        _print_text(summary)
    if not summary["ok"]:
        log.warning("scenario finished with unexpected outcomes")
    return 0 if summary["ok"] else 1


if __name__ == "__main__":
    sys.exit(main())
