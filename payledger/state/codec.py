"""
payledger.state.codec — canonical CBOR for storage keys and records.

Everything persisted by the ledger goes through `dumps`/`loads`. Canonical
mode sorts map keys and picks minimal integer encodings, so the same logical
record always produces the same bytes.
"""

from __future__ import annotations

from typing import Any

import cbor2


def dumps(obj: Any) -> bytes:
    return cbor2.dumps(obj, canonical=True)


def loads(data: bytes) -> Any:
    return cbor2.loads(data)


__all__ = ["dumps", "loads"]
