"""
payledger.config — ledger timing constants, storage leases and numeric caps.

Configuration precedence:
  1) Environment variables (PAYLEDGER_*)
  2) Hardcoded defaults below

Key env vars:
  - PAYLEDGER_DAY_IN_LEDGERS      (int)  default: 17_280  (ticks per day at 5s/tick)
  - PAYLEDGER_CONFIG_BUMP_DAYS    (int)  default: 30      (lease for config-tier entries)
  - PAYLEDGER_RECORD_BUMP_DAYS    (int)  default: 7       (lease for record-tier entries)
  - PAYLEDGER_MAX_DECIMALS        (int)  default: 18
  - PAYLEDGER_AMOUNT_BITS         (int)  default: 127     (amounts live in [0, 2**bits - 1])
  - PAYLEDGER_MAX_RECIPIENTS      (int)  default: 64
  - PAYLEDGER_MAX_REASON_BYTES    (int)  default: 64
  - PAYLEDGER_MAX_KEY_BYTES       (int)  default: 256
  - PAYLEDGER_MAX_VALUE_BYTES     (int)  default: 65_536
  - PAYLEDGER_LOG_FORMAT          (json|text)  read by payledger.logging
  - PAYLEDGER_LOG_LEVEL           (str)  default: INFO

Lease thresholds are always one day shorter than the bump amount: an entry is
renewed once less than `bump - day` ticks of its lease remain. The config tier
always holds the longer lease: an environment record bump above the config
bump is capped to it.

Usage:
    from payledger.config import load_config
    cfg = load_config()
    cfg.record_bump_amount
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Tuple

DAY_IN_LEDGERS = 17_280
BASIS_POINTS_TOTAL = 10_000


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip(), 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    # Ledger timing & storage leases
    day_in_ledgers: int = DAY_IN_LEDGERS
    config_bump_days: int = 30
    record_bump_days: int = 7

    # Token & payment limits
    max_decimals: int = 18
    amount_bits: int = 127
    basis_points_total: int = BASIS_POINTS_TOTAL
    max_recipients: int = 64
    max_reason_bytes: int = 64

    # Storage caps (encoded sizes)
    max_key_bytes: int = 256
    max_value_bytes: int = 65_536

    @property
    def config_bump_amount(self) -> int:
        return self.config_bump_days * self.day_in_ledgers

    @property
    def config_threshold(self) -> int:
        return self.config_bump_amount - self.day_in_ledgers

    @property
    def record_bump_amount(self) -> int:
        return self.record_bump_days * self.day_in_ledgers

    @property
    def record_threshold(self) -> int:
        return self.record_bump_amount - self.day_in_ledgers

    @property
    def max_amount(self) -> int:
        return (1 << self.amount_bits) - 1

    def lease_for(self, tier: str) -> Tuple[int, int]:
        """Return (threshold, bump_amount) for a retention tier name."""
        if tier == "config":
            return self.config_threshold, self.config_bump_amount
        if tier == "record":
            return self.record_threshold, self.record_bump_amount
        raise ValueError(f"unknown retention tier: {tier!r}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "day_in_ledgers": self.day_in_ledgers,
            "config_bump_days": self.config_bump_days,
            "record_bump_days": self.record_bump_days,
            "max_decimals": self.max_decimals,
            "amount_bits": self.amount_bits,
            "basis_points_total": self.basis_points_total,
            "max_recipients": self.max_recipients,
            "max_reason_bytes": self.max_reason_bytes,
            "max_key_bytes": self.max_key_bytes,
            "max_value_bytes": self.max_value_bytes,
        }


@lru_cache(maxsize=1)
def load_config() -> LedgerConfig:
    """Build and cache a LedgerConfig from the environment and defaults."""
    # Bumps must stay at least two days so the thresholds are positive.
    config_days = _env_int("PAYLEDGER_CONFIG_BUMP_DAYS", 30, min_v=2, max_v=3_650)
    record_days = _env_int("PAYLEDGER_RECORD_BUMP_DAYS", 7, min_v=2, max_v=3_650)
    return LedgerConfig(
        day_in_ledgers=_env_int("PAYLEDGER_DAY_IN_LEDGERS", DAY_IN_LEDGERS, min_v=1, max_v=1_000_000),
        config_bump_days=config_days,
        record_bump_days=min(record_days, config_days),
        max_decimals=_env_int("PAYLEDGER_MAX_DECIMALS", 18, min_v=0, max_v=38),
        amount_bits=_env_int("PAYLEDGER_AMOUNT_BITS", 127, min_v=63, max_v=255),
        max_recipients=_env_int("PAYLEDGER_MAX_RECIPIENTS", 64, min_v=1, max_v=1_024),
        max_reason_bytes=_env_int("PAYLEDGER_MAX_REASON_BYTES", 64, min_v=1, max_v=4_096),
        max_key_bytes=_env_int("PAYLEDGER_MAX_KEY_BYTES", 256, min_v=64, max_v=4_096),
        max_value_bytes=_env_int("PAYLEDGER_MAX_VALUE_BYTES", 65_536, min_v=1_024, max_v=8_388_608),
    )


__all__ = ["LedgerConfig", "load_config", "DAY_IN_LEDGERS", "BASIS_POINTS_TOTAL"]
