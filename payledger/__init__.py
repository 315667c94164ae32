"""
payledger — deterministic payment ledger.

Token accounting core (mint/burn/transfer/allowances, admin and freeze guards)
plus four payment primitives built on top of it: escrow, recurring payments,
proportional splits and dispute resolution.

Only version metadata is exported at import time. The public entry point is
`payledger.ledger.PayLedger`.
"""

from .version import __version__, git_describe

__all__ = ["__version__", "git_describe"]
