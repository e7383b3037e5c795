"""All-or-nothing execution of a single pool operation."""
from __future__ import annotations

import logging
from copy import deepcopy
from typing import Callable, Iterable, Optional

from .events import EventLog, ProtocolEvent

logger = logging.getLogger(__name__)


class Transaction:
    """Snapshot objects on entry; restore them if the body raises.

    Events emitted inside the transaction are buffered and only published
    to the event log on a clean exit. ``on_exit`` always runs (commit or
    rollback) and is where transient permissions are dropped.

    Rollback restores the listed objects in place but swaps in the
    snapshot's copies of everything they contain. A nested object (a
    position, a balance) fetched before the transaction keeps any change
    made to it inside the transaction and is no longer the live one.
    """

    def __init__(
        self,
        objects: Iterable[object],
        event_log: EventLog,
        name: Optional[str] = None,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        self.objects = list(objects)
        self.name = name or "tx"
        self._event_log = event_log
        self._on_exit = on_exit
        self._snapshots: dict[int, object] = {}
        self._pending: list[ProtocolEvent] = []

    def emit(self, event: ProtocolEvent) -> None:
        self._pending.append(event)

    def __enter__(self) -> "Transaction":
        self._snapshots = {id(obj): deepcopy(obj) for obj in self.objects}
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                self._rollback()
                logger.debug("Transaction %s rolled back: %s", self.name, exc_type.__name__)
                return False
            for event in self._pending:
                self._event_log.publish(event)
            return False
        finally:
            self._pending = []
            if self._on_exit:
                self._on_exit()

    def _rollback(self) -> None:
        for obj in self.objects:
            snap = self._snapshots.get(id(obj))
            if snap is not None:
                obj.__dict__.clear()
                obj.__dict__.update(vars(snap))
