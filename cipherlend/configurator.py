"""Reserve configurator: the only writer of reserve configuration on the pool."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from . import events
from .addresses import is_zero_address, normalize
from .errors import (
    InvalidCollateralFactor,
    LendingPoolNotSet,
    OnlyPoolAdmin,
    OnlyRiskAdmin,
    ReserveAlreadyInitialized,
    ReserveNotInitialized,
    ZeroAddress,
)
from .fhe import UINT64_MAX
from .interfaces import AccessControl
from .models import ReserveSettings

if TYPE_CHECKING:
    from .pool import ConfidentialLendingPool

logger = logging.getLogger(__name__)

PERCENT_PRECISION = 10_000


class PoolConfigurator:
    """Validates reserve parameters and syncs the full settings to the pool.

    Structural flags (active, borrowing, collateral) belong to pool admins;
    risk parameters (collateral factor, caps, reserve pause) to risk admins.
    """

    def __init__(self, acl: AccessControl, address: str) -> None:
        if acl is None:
            raise ZeroAddress("acl")
        if is_zero_address(address):
            raise ZeroAddress("configurator")
        self.acl = acl
        self.address = normalize(address)
        self.lending_pool: Optional["ConfidentialLendingPool"] = None
        self.event_log = events.EventLog()
        self._settings: dict[str, ReserveSettings] = {}

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _only_pool_admin(self, caller: str) -> None:
        if not self.acl.is_pool_admin(caller):
            raise OnlyPoolAdmin("Only pool admin")

    def _only_risk_admin(self, caller: str) -> None:
        if not self.acl.is_risk_admin(caller):
            raise OnlyRiskAdmin("Only risk admin")

    def _pool(self) -> "ConfidentialLendingPool":
        if self.lending_pool is None:
            raise LendingPoolNotSet("Lending pool not set")
        return self.lending_pool

    def _existing(self, asset: str) -> ReserveSettings:
        settings = self._settings.get(normalize(asset))
        if settings is None:
            raise ReserveNotInitialized(asset)
        return settings

    @staticmethod
    def _check_collateral_factor(is_collateral: bool, factor: int) -> None:
        if is_collateral:
            if not 0 < factor <= PERCENT_PRECISION:
                raise InvalidCollateralFactor("Invalid collateral factor for collateral asset")
        elif factor != 0:
            raise InvalidCollateralFactor("Collateral factor must be 0 for non-collateral asset")

    @staticmethod
    def _check_cap(cap: int) -> None:
        if not 0 <= cap <= UINT64_MAX:
            raise ValueError(f"Cap {cap} does not fit in 64 bits")

    def _apply(self, caller: str, asset: str, event: events.ProtocolEvent, **changes) -> ReserveSettings:
        pool = self._pool()
        settings = replace(self._existing(asset), **changes)
        pool.update_reserve_config(self.address, settings)
        self._settings[settings.underlying_asset] = settings
        self.event_log.publish(event)
        logger.info("Reserve %s updated by %s: %s", asset, caller, changes)
        return settings

    # ------------------------------------------------------------------
    # Pool admin
    # ------------------------------------------------------------------

    def set_lending_pool(self, caller: str, pool: "ConfidentialLendingPool") -> None:
        self._only_pool_admin(caller)
        if pool is None:
            raise ZeroAddress("pool")
        self.lending_pool = pool
        self.event_log.publish(events.LendingPoolUpdated(pool.address))
        logger.info("Lending pool set to %s", pool.address)

    def init_reserve(
        self,
        caller: str,
        asset: str,
        borrowing_enabled: bool,
        is_collateral: bool,
        collateral_factor: int,
    ) -> ReserveSettings:
        self._only_pool_admin(caller)
        pool = self._pool()
        if is_zero_address(asset):
            raise ZeroAddress("asset")
        asset = normalize(asset)
        if asset in self._settings:
            raise ReserveAlreadyInitialized("Reserve already initialized")
        self._check_collateral_factor(is_collateral, collateral_factor)

        settings = ReserveSettings(
            underlying_asset=asset,
            active=True,
            borrowing_enabled=borrowing_enabled,
            is_collateral=is_collateral,
            collateral_factor=collateral_factor,
        )
        pool.init_reserve(self.address, settings)
        self._settings[asset] = settings
        self.event_log.publish(events.ReserveInitialized(asset))
        logger.info(
            "Reserve %s initialised (borrowing=%s, collateral=%s, cf=%d)",
            asset, borrowing_enabled, is_collateral, collateral_factor,
        )
        return settings

    def set_reserve_active(self, caller: str, asset: str, active: bool) -> ReserveSettings:
        self._only_pool_admin(caller)
        return self._apply(
            caller, asset, events.ReserveActiveChanged(normalize(asset), active), active=active
        )

    def set_reserve_borrowing(self, caller: str, asset: str, enabled: bool) -> ReserveSettings:
        self._only_pool_admin(caller)
        return self._apply(
            caller, asset, events.ReserveBorrowingChanged(normalize(asset), enabled),
            borrowing_enabled=enabled,
        )

    def set_reserve_collateral(self, caller: str, asset: str, enabled: bool) -> ReserveSettings:
        self._only_pool_admin(caller)
        return self._apply(
            caller, asset, events.ReserveCollateralChanged(normalize(asset), enabled),
            is_collateral=enabled,
        )

    # ------------------------------------------------------------------
    # Risk admin
    # ------------------------------------------------------------------

    def set_collateral_factor(self, caller: str, asset: str, factor: int) -> ReserveSettings:
        self._only_risk_admin(caller)
        if not 0 <= factor <= PERCENT_PRECISION:
            raise InvalidCollateralFactor("Invalid collateral factor")
        return self._apply(
            caller, asset, events.CollateralFactorUpdated(normalize(asset), factor),
            collateral_factor=factor,
        )

    def set_supply_cap(self, caller: str, asset: str, cap: int) -> ReserveSettings:
        self._only_risk_admin(caller)
        self._check_cap(cap)
        return self._apply(
            caller, asset, events.SupplyCapUpdated(normalize(asset), cap), supply_cap=cap
        )

    def set_borrow_cap(self, caller: str, asset: str, cap: int) -> ReserveSettings:
        self._only_risk_admin(caller)
        self._check_cap(cap)
        return self._apply(
            caller, asset, events.BorrowCapUpdated(normalize(asset), cap), borrow_cap=cap
        )

    def pause_reserve(self, caller: str, asset: str) -> ReserveSettings:
        """Idempotent: pausing a paused reserve succeeds."""
        self._only_risk_admin(caller)
        return self._apply(
            caller, asset, events.ReservePauseChanged(normalize(asset), True), paused=True
        )

    def unpause_reserve(self, caller: str, asset: str) -> ReserveSettings:
        self._only_risk_admin(caller)
        return self._apply(
            caller, asset, events.ReservePauseChanged(normalize(asset), False), paused=False
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_reserve_config(self, asset: str) -> ReserveSettings:
        return self._settings.get(normalize(asset), ReserveSettings())
