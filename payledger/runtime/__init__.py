"""
payledger.runtime — host interface: ledger clock, authorization, the
per-invocation context and the atomic executor.
"""

from .auth import Authorizer, MockAuthorizer, require_auth
from .env import Context, LedgerClock
from .executor import Executor

__all__ = ["Authorizer", "MockAuthorizer", "require_auth", "Context", "LedgerClock", "Executor"]
