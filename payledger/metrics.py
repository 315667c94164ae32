"""
payledger.metrics — Prometheus counters & histograms for ledger invocations.

All metrics live on a module registry (see `get_registry` / `set_registry`) so
an embedding service can expose them next to its own, and tests can swap in a
fresh registry.

Exposed metrics (names are prefixed with `payledger_`):
  - op_total{op,result}            : Counter — invocations by outcome
  - op_seconds{op}                 : Histogram — wall time per invocation
  - events_emitted_total{op}       : Counter — events published on commit

Labels:
  - op     : public entry point name ('transfer', 'create_escrow', ...)
  - result : 'ok', or the lowercase LedgerError code ('frozen', 'not_yet_due', ...),
             or 'internal' for non-ledger exceptions
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_PREFIX = "payledger_"


def _buckets_from_env(name: str, default: Iterable[float]) -> Tuple[float, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    out = []
    for tok in raw.split(","):
        tok = tok.strip()
        if not tok:
            continue
        try:
            out.append(float(tok))
        except ValueError:
            continue
    return tuple(out) or tuple(default)


_OP_SECONDS_BUCKETS = _buckets_from_env(
    "PAYLEDGER_METRICS_OP_SECONDS_BUCKETS",
    # 50us .. 1s; ledger ops are in-process dictionary work
    (0.00005, 0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0),
)


# ------------------------------ registry & ctor ------------------------------

_registry: Optional[CollectorRegistry] = None

# Metric singletons (bound during _build_metrics)
OP_TOTAL: Counter
OP_SECONDS: Histogram
EVENTS_EMITTED: Counter


def set_registry(registry: CollectorRegistry) -> None:
    """
    Rebind all metrics to `registry`. Counters restart from zero on the new
    registry.
    """
    global _registry
    _registry = registry
    _build_metrics(registry)


def get_registry() -> CollectorRegistry:
    """Return the metrics registry, creating one on first use."""
    if _registry is None:
        set_registry(CollectorRegistry())
    assert _registry is not None
    return _registry


def _build_metrics(reg: CollectorRegistry) -> None:
    global OP_TOTAL, OP_SECONDS, EVENTS_EMITTED

    OP_TOTAL = Counter(
        _PREFIX + "op_total",
        "Ledger invocations (by op and result).",
        labelnames=("op", "result"),
        registry=reg,
    )
    OP_SECONDS = Histogram(
        _PREFIX + "op_seconds",
        "Wall time per ledger invocation.",
        labelnames=("op",),
        buckets=_OP_SECONDS_BUCKETS,
        registry=reg,
    )
    EVENTS_EMITTED = Counter(
        _PREFIX + "events_emitted_total",
        "Events published by committed invocations.",
        labelnames=("op",),
        registry=reg,
    )


# ------------------------------ helpers -------------------------------------


def _norm_result(code: Optional[str]) -> str:
    s = (code or "").strip().lower()
    return s or "ok"


def observe_op(*, op: str, result: Optional[str] = None, events: int = 0) -> None:
    """
    Record the outcome of a single invocation.

    Args:
        op:     entry point name
        result: None/'ok' on commit, else the error code (normalized to lowercase)
        events: number of events published (only meaningful on commit)
    """
    get_registry()
    OP_TOTAL.labels(op=op, result=_norm_result(result)).inc()
    if events > 0:
        EVENTS_EMITTED.labels(op=op).inc(events)


@dataclass
class _TimerCtx:
    h: Histogram
    op: str
    t0: float

    def stop(self) -> float:
        dt = max(0.0, time.perf_counter() - self.t0)
        self.h.labels(op=self.op).observe(dt)
        return dt

    def __enter__(self) -> "_TimerCtx":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def time_op(op: str) -> _TimerCtx:
    """
    Context manager timing one invocation.

        with time_op("transfer"):
            ...
    """
    get_registry()
    return _TimerCtx(h=OP_SECONDS, op=op, t0=time.perf_counter())


def generate_latest_text() -> str:
    """Prometheus exposition text for the current registry."""
    return generate_latest(get_registry()).decode("utf-8")


__all__ = [
    "get_registry",
    "set_registry",
    "observe_op",
    "time_op",
    "generate_latest_text",
]
