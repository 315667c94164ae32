"""
payledger.runtime.executor — run one ledger operation atomically.

    ex = Executor(storage=TieredStorage(), clock=LedgerClock(), authorizer=auth,
                  contract="ledger", config=load_config())
    ex.invoke("transfer", lambda ctx: token.transfer(ctx, a, b, 10), caller=a)

For every invocation the executor:
  1) opens a journal checkpoint and builds a fresh `Context`
  2) runs the operation
  3) on return: commits, publishes buffered events, records metrics
  4) on any exception: reverts, records metrics, logs, re-raises

Invocations are serialized by a lock and must not nest. There is no partial
success: either all staged writes and events land or none do.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, TypeVar

from .. import metrics
from ..config import LedgerConfig
from ..errors import LedgerError
from ..logging import bind, get_logger, trace_scope
from ..state.events import EventSink, LedgerEvent, NullEventSink
from ..state.journal import Journal
from ..state.storage import LeasePolicy, TieredStorage
from .auth import Authorizer
from .env import Context, LedgerClock

T = TypeVar("T")

log = get_logger(__name__)


class Executor:
    def __init__(
        self,
        *,
        storage: TieredStorage,
        clock: LedgerClock,
        authorizer: Authorizer,
        contract: str,
        config: LedgerConfig,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.authorizer = authorizer
        self.contract = contract
        self.config = config
        self.sink: EventSink = sink if sink is not None else NullEventSink()
        self.journal = Journal(storage, LeasePolicy(config))
        self.invocations = 0
        self._lock = threading.RLock()

    def invoke(self, op: str, fn: Callable[[Context], T], *, caller: Optional[str] = None) -> T:
        with self._lock, trace_scope():
            if self.journal.depth() != 0:
                raise RuntimeError("nested invocation")
            ctx = Context(
                journal=self.journal,
                sequence=self.clock.sequence,
                contract=self.contract,
                auth=self.authorizer,
                config=self.config,
                op=op,
            )
            bind(op=op, sequence=ctx.sequence, caller=caller, ledger=self.contract)
            marker = self.journal.begin()
            with metrics.time_op(op):
                try:
                    result = fn(ctx)
                except LedgerError as err:
                    self.journal.revert_to(marker)
                    metrics.observe_op(op=op, result=err.code)
                    log.info("op aborted", extra={"code": err.code, "detail": err.message})
                    raise
                except Exception:
                    self.journal.revert_to(marker)
                    metrics.observe_op(op=op, result="internal")
                    log.exception("op failed")
                    raise
                self.journal.commit_to(marker)
                self.invocations += 1
                for i, (topic, data) in enumerate(ctx.events):
                    self.sink.append(
                        LedgerEvent(
                            invocation=self.invocations,
                            index=i,
                            sequence=ctx.sequence,
                            op=op,
                            topic=topic,
                            data=data,
                        )
                    )
                metrics.observe_op(op=op, events=len(ctx.events))
            log.debug("op committed", extra={"events": len(ctx.events)})
            return result


__all__ = ["Executor"]
