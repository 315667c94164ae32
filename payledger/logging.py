"""
payledger.logging
-----------------

Structured logging for the ledger host:
- JSON or one-line text output
- Context-local fields via `contextvars` (trace_id, op, sequence, caller, ...)
- Safe value coercion (bytes → hex, dataclasses → dict, enums → value)

Usage
-----
    from payledger import logging as plog

    plog.configure(json=False, level="DEBUG")
    log = plog.get_logger(__name__)

    with plog.trace_scope():
        plog.bind(op="transfer", sequence=120)
        log.info("op committed", extra={"events": 1})

The executor opens a trace scope per invocation and binds the op context,
so contract code only needs a module logger.
"""

from __future__ import annotations

import datetime as _dt
import enum
import json as _json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import IO, Any, Dict, Iterator, Optional

ROOT_LOGGER = "payledger"

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_PAYLEDGER_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = (
    "trace_id",
    "op",
    "sequence",
    "caller",
    "ledger",
)

# LogRecord attributes that are never treated as structured extras.
_RESERVED = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message", "asctime",
    )
)


def context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """
    Ensure a trace_id for the duration of the scope and restore the prior
    context on exit, including any fields bound inside the scope.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or short_uuid()
    try:
        bind(trace_id=tid)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, enum.Enum):
        return _coerce_value(v.value)
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, Path):
        return str(v)
    if isinstance(v, _dt.datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=_dt.timezone.utc)
        return v.isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return {k: _coerce_value(x) for k, x in asdict(v).items()}
    if isinstance(v, dict):
        return {str(k): _coerce_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set, frozenset)):
        return [_coerce_value(x) for x in v]
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RESERVED
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return _json.dumps(payload, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2026-01-05T12:34:56.789+00:00 | INFO  | payledger.executor | trace_id=ab12 op=transfer | code=FROZEN | op aborted
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_s = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        line = f"{_utcnow_iso()} | {record.levelname:<5} | {record.name}"
        if ctx_s:
            line += f" | {ctx_s}"
        if extras:
            line += f" | {extras}"
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int | None = None,
    stream: Optional[IO[str]] = None,
    file_path: Optional[Path | str] = None,
) -> None:
    """
    Configure the `payledger` logger tree.

    Parameters
    ----------
    json : bool | None
        If None, decided by PAYLEDGER_LOG_FORMAT=(json|text), else JSON when
        the stream is not a TTY.
    level : str | int | None
        Minimum level. Defaults to PAYLEDGER_LOG_LEVEL or INFO.
    stream : TextIO | None
        Console stream (default: the current sys.stderr).
    file_path : Path | str | None
        Optional file that additionally receives JSON lines.
    """
    lvl = _coerce_level(level if level is not None else os.environ.get("PAYLEDGER_LOG_LEVEL", "INFO"))
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    out = stream if stream is not None else sys.stderr
    console = logging.StreamHandler(out)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if _decide_json(json, out) else TextFormatter())
    root.addHandler(console)

    if file_path:
        p = Path(file_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the `payledger` tree."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# ----------------------------
# Internals
# ----------------------------


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _decide_json(json_flag: Optional[bool], stream: IO[str]) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("PAYLEDGER_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    isatty = getattr(stream, "isatty", None)
    return not (callable(isatty) and isatty())


__all__ = [
    "bind",
    "clear_context",
    "context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "get_logger",
]
