"""Protocol events: plaintext metadata only, never amounts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtocolEvent:
    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Supply(ProtocolEvent):
    asset: str
    user: str


@dataclass(frozen=True)
class Withdraw(ProtocolEvent):
    asset: str
    user: str


@dataclass(frozen=True)
class Borrow(ProtocolEvent):
    asset: str
    user: str


@dataclass(frozen=True)
class Repay(ProtocolEvent):
    asset: str
    user: str


@dataclass(frozen=True)
class UserCollateralChanged(ProtocolEvent):
    user: str
    asset: str
    enabled: bool


@dataclass(frozen=True)
class ProtocolPaused(ProtocolEvent):
    account: str


@dataclass(frozen=True)
class ProtocolUnpaused(ProtocolEvent):
    account: str


@dataclass(frozen=True)
class CollateralAssetSet(ProtocolEvent):
    asset: str


@dataclass(frozen=True)
class ConfiguratorUpdated(ProtocolEvent):
    configurator: str


@dataclass(frozen=True)
class PriceOracleUpdated(ProtocolEvent):
    oracle: str


@dataclass(frozen=True)
class ReserveInitialized(ProtocolEvent):
    asset: str


@dataclass(frozen=True)
class ReserveConfigUpdated(ProtocolEvent):
    asset: str


# ---------------------------------------------------------------------------
# Configurator events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LendingPoolUpdated(ProtocolEvent):
    pool: str


@dataclass(frozen=True)
class ReserveActiveChanged(ProtocolEvent):
    asset: str
    active: bool


@dataclass(frozen=True)
class ReserveBorrowingChanged(ProtocolEvent):
    asset: str
    enabled: bool


@dataclass(frozen=True)
class ReserveCollateralChanged(ProtocolEvent):
    asset: str
    enabled: bool


@dataclass(frozen=True)
class CollateralFactorUpdated(ProtocolEvent):
    asset: str
    collateral_factor: int


@dataclass(frozen=True)
class SupplyCapUpdated(ProtocolEvent):
    asset: str
    cap: int


@dataclass(frozen=True)
class BorrowCapUpdated(ProtocolEvent):
    asset: str
    cap: int


@dataclass(frozen=True)
class ReservePauseChanged(ProtocolEvent):
    asset: str
    paused: bool


Subscriber = Callable[[ProtocolEvent], None]


class EventLog:
    """Append-only record of committed events with optional subscribers."""

    def __init__(self) -> None:
        self._events: list[ProtocolEvent] = []
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def publish(self, event: ProtocolEvent) -> None:
        self._events.append(event)
        logger.debug("Event %s %s", event.name, event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error("Event subscriber failed on %s: %s", event.name, e)

    @property
    def events(self) -> tuple[ProtocolEvent, ...]:
        return tuple(self._events)

    def of_type(self, kind: type[ProtocolEvent]) -> list[ProtocolEvent]:
        return [e for e in self._events if isinstance(e, kind)]

    def __len__(self) -> int:
        return len(self._events)
