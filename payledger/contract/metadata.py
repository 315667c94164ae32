"""Token metadata (name, symbol, decimals). Written once by `initialize`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..errors import InvalidAmount, InvalidArgument, NotInitialized
from ..runtime.env import Context
from ..state.keys import DataKey

MAX_NAME_LEN = 64
MAX_SYMBOL_LEN = 16


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "symbol": self.symbol, "decimals": self.decimals}


def _require_text(value: Any, field_name: str, max_len: int) -> str:
    if not isinstance(value, str) or not value.strip() or len(value) > max_len:
        raise InvalidArgument(f"invalid {field_name}", data={field_name: repr(value)})
    return value


def write_metadata(ctx: Context, name: str, symbol: str, decimals: int) -> TokenMetadata:
    if not isinstance(decimals, int) or isinstance(decimals, bool) or not 0 <= decimals <= ctx.config.max_decimals:
        raise InvalidAmount("decimals out of range", field_name="decimals", value=decimals)
    meta = TokenMetadata(
        name=_require_text(name, "name", MAX_NAME_LEN),
        symbol=_require_text(symbol, "symbol", MAX_SYMBOL_LEN),
        decimals=decimals,
    )
    ctx.save(DataKey.metadata(), meta.to_record())
    return meta


def read_metadata(ctx: Context) -> TokenMetadata:
    rec = ctx.load(DataKey.metadata())
    if rec is None:
        raise NotInitialized()
    return TokenMetadata(name=rec["name"], symbol=rec["symbol"], decimals=int(rec["decimals"]))
