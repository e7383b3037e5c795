"""Confidential lending pool: the single entry point for users and admins.

The pool owns all protocol state. Every public mutation runs inside a
:class:`~cipherlend.transaction.Transaction` behind a reentrancy guard, so an
operation either commits completely (state, then buffered events) or leaves
no trace. Plaintext policy is checked up front; everything that depends on an
encrypted quantity is resolved by clamping inside the encrypted domain.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from . import events, fhe
from .addresses import is_zero_address, normalize
from .configurator import PERCENT_PRECISION
from .errors import (
    InvalidDebtRepayment,
    MultipleDebtsNotAllowed,
    NoCollateralEnabled,
    NotTheDesignatedCollateral,
    OnlyEmergencyAdmin,
    OnlyPoolAdmin,
    OnlyPoolConfigurator,
    OraclePriceZero,
    ProtocolAlreadyPaused,
    ProtocolNotPaused,
    ProtocolPaused,
    ReentrantCall,
    ReserveAlreadyInitialized,
    ReserveNotActive,
    ReserveNotCollateral,
    ReserveNotInitialized,
    ZeroAddress,
)
from .fhe import UINT64_MAX, Euint, FheRuntime
from .interfaces import AccessControl, PriceOracle
from .logic import execute_borrow, execute_repay, execute_supply, execute_withdraw
from .logic.common import validate_reserve
from .models import ReserveData, ReserveSettings, UserPositionData
from .safe_ops import cap, safe_sub
from .state import ProtocolState, Reserve
from .token import AssetRegistry, ConfidentialToken
from .transaction import Transaction

logger = logging.getLogger(__name__)

# Width used for value products (amount * price * factor) so they cannot wrap.
WIDE_BITS = 256


class ConfidentialLendingPool:
    """Orchestrates supply, withdraw, borrow and repay over encrypted balances."""

    def __init__(
        self,
        acl: AccessControl,
        configurator: str,
        price_oracle: PriceOracle,
        runtime: FheRuntime,
        assets: AssetRegistry,
        address: str,
    ) -> None:
        if acl is None:
            raise ZeroAddress("acl")
        if is_zero_address(configurator):
            raise ZeroAddress("configurator")
        if price_oracle is None:
            raise ZeroAddress("price_oracle")
        if runtime is None:
            raise ZeroAddress("runtime")
        if is_zero_address(address):
            raise ZeroAddress("pool")
        self.acl = acl
        self.configurator = normalize(configurator)
        self.price_oracle = price_oracle
        self.fhe = runtime
        self.assets = assets
        self.address = normalize(address)
        self.state = ProtocolState(fhe=runtime)
        self.event_log = events.EventLog()
        self._entered = False

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, name: str) -> Iterator[Transaction]:
        if self._entered:
            raise ReentrantCall(name)
        self._entered = True
        try:
            with Transaction(
                [self.state], self.event_log, name=name, on_exit=self.fhe.clear_transient
            ) as tx:
                yield tx
        finally:
            self._entered = False

    def _require_not_paused(self) -> None:
        if self.state.paused:
            raise ProtocolPaused("Protocol is paused")

    def _only_pool_admin(self, caller: str) -> None:
        if not self.acl.is_pool_admin(caller):
            raise OnlyPoolAdmin("Only pool admin")

    def _only_emergency_admin(self, caller: str) -> None:
        if not self.acl.is_emergency_admin(caller):
            raise OnlyEmergencyAdmin("Only emergency admin")

    def _only_configurator(self, caller: str) -> None:
        if normalize(caller) != self.configurator:
            raise OnlyPoolConfigurator("Only pool configurator")

    def _decode(self, caller: str, handle: int, proof: str) -> Euint:
        return self.fhe.from_external(handle, proof, self.address, caller)

    def _prices(self, collateral_asset: str, debt_asset: str) -> tuple[int, int]:
        collateral_price = self.price_oracle.get_price(collateral_asset)
        debt_price = self.price_oracle.get_price(debt_asset)
        if collateral_price == 0 or debt_price == 0:
            raise OraclePriceZero(f"No price for {collateral_asset} or {debt_asset}")
        return collateral_price, debt_price

    def _supplied(self, user: str, asset: str) -> Euint:
        balance = self.state.peek_balance(user, asset)
        return self.fhe.as_euint(0) if balance is None else balance.supplied

    def _borrowed(self, user: str, asset: str) -> Euint:
        balance = self.state.peek_balance(user, asset)
        return self.fhe.as_euint(0) if balance is None else balance.borrowed

    def _effective_collateral_factor(self, asset: str) -> int:
        reserve = self.state.reserves[asset]
        return reserve.collateral_factor if reserve.is_collateral else 0

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def pause(self, caller: str) -> None:
        with self._transaction("pause") as tx:
            self._only_emergency_admin(caller)
            if self.state.paused:
                raise ProtocolAlreadyPaused("Protocol already paused")
            self.state.paused = True
            tx.emit(events.ProtocolPaused(normalize(caller)))
        logger.warning("Protocol paused by %s", caller)

    def unpause(self, caller: str) -> None:
        with self._transaction("unpause") as tx:
            self._only_emergency_admin(caller)
            if not self.state.paused:
                raise ProtocolNotPaused("Protocol not paused")
            self.state.paused = False
            tx.emit(events.ProtocolUnpaused(normalize(caller)))
        logger.info("Protocol unpaused by %s", caller)

    def set_configurator(self, caller: str, configurator: str) -> None:
        with self._transaction("set_configurator") as tx:
            self._only_pool_admin(caller)
            if is_zero_address(configurator):
                raise ZeroAddress("configurator")
            self.configurator = normalize(configurator)
            tx.emit(events.ConfiguratorUpdated(self.configurator))
        logger.info("Configurator set to %s", configurator)

    def set_price_oracle(self, caller: str, oracle: PriceOracle) -> None:
        with self._transaction("set_price_oracle") as tx:
            self._only_pool_admin(caller)
            if oracle is None:
                raise ZeroAddress("price_oracle")
            self.price_oracle = oracle
            tx.emit(events.PriceOracleUpdated(getattr(oracle, "address", type(oracle).__name__)))
        logger.info("Price oracle replaced by %s", caller)

    def set_collateral_asset(self, caller: str, asset: str) -> None:
        with self._transaction("set_collateral_asset") as tx:
            self._only_pool_admin(caller)
            if is_zero_address(asset):
                raise ZeroAddress("asset")
            asset = normalize(asset)
            reserve = self.state.get_reserve(asset)
            if reserve is None:
                raise ReserveNotInitialized(asset)
            if not reserve.is_collateral:
                raise ReserveNotCollateral(asset)
            self.state.collateral_asset = asset
            tx.emit(events.CollateralAssetSet(asset))
        logger.info("Designated collateral asset: %s", asset)

    def init_reserve(self, caller: str, settings: ReserveSettings) -> None:
        """Create a reserve from configurator-validated settings."""
        with self._transaction("init_reserve") as tx:
            self._only_configurator(caller)
            if is_zero_address(settings.underlying_asset):
                raise ZeroAddress("asset")
            asset = normalize(settings.underlying_asset)
            if asset in self.state.reserves:
                raise ReserveAlreadyInitialized(asset)
            token = self.assets.get(asset)

            totals = [self.fhe.as_euint(0) for _ in range(3)]
            for ct in totals:
                self.fhe.allow(ct, self.address)
                self.fhe.make_publicly_decryptable(ct)
            reserve = Reserve(
                underlying_asset=asset,
                total_supplied=totals[0],
                total_borrowed=totals[1],
                available_liquidity=totals[2],
                decimals=token.decimals,
            )
            self._apply_settings(reserve, settings)
            self.state.reserves[asset] = reserve
            self.state.reserve_list.append(asset)
            tx.emit(events.ReserveInitialized(asset))
        logger.info("Reserve initialised: %s (%s)", token.symbol, asset)

    def update_reserve_config(self, caller: str, settings: ReserveSettings) -> None:
        with self._transaction("update_reserve_config") as tx:
            self._only_configurator(caller)
            asset = normalize(settings.underlying_asset)
            reserve = self.state.get_reserve(asset)
            if reserve is None:
                raise ReserveNotInitialized(asset)
            self._apply_settings(reserve, settings)
            tx.emit(events.ReserveConfigUpdated(asset))
        logger.debug("Reserve config synced: %s", asset)

    @staticmethod
    def _apply_settings(reserve: Reserve, settings: ReserveSettings) -> None:
        reserve.active = settings.active
        reserve.borrowing_enabled = settings.borrowing_enabled
        reserve.is_collateral = settings.is_collateral
        reserve.paused = settings.paused
        reserve.collateral_factor = settings.collateral_factor
        reserve.supply_cap = settings.supply_cap
        reserve.borrow_cap = settings.borrow_cap

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    def supply(self, caller: str, asset: str, handle: int, proof: str) -> Euint:
        """Deposit an encrypted amount; returns the caller's new supplied balance."""
        with self._transaction("supply") as tx:
            self._require_not_paused()
            caller, asset = normalize(caller), normalize(asset)
            validate_reserve(self.state, asset)
            token = self.assets.get(asset)
            amount = self._decode(caller, handle, proof)

            new_balance = execute_supply(
                self.state, self.fhe, token, asset, amount, caller, self.address
            )
            tx.emit(events.Supply(asset, caller))
        logger.info("Supply: %s -> %s", caller, token.symbol)
        return new_balance

    def withdraw(self, caller: str, asset: str, handle: int, proof: str) -> Euint:
        """Withdraw up to the caller's balance.

        Withdrawing the designated collateral while in debt is all-or-nothing:
        if what would remain no longer covers the debt the amount becomes zero.
        """
        with self._transaction("withdraw") as tx:
            self._require_not_paused()
            caller, asset = normalize(caller), normalize(asset)
            validate_reserve(self.state, asset)
            token = self.assets.get(asset)

            position = self.state.positions.get(caller)
            debt_asset = position.current_debt_asset if position else None
            gated = (
                asset == self.state.collateral_asset
                and position is not None
                and position.collateral_enabled
                and debt_asset is not None
            )
            prices = self._prices(asset, debt_asset) if gated else None
            amount = self._decode(caller, handle, proof)
            if prices is not None:
                amount = self._solvent_withdrawal(caller, asset, debt_asset, amount, *prices)

            new_balance = execute_withdraw(
                self.state, self.fhe, token, asset, amount, caller, self.address
            )
            tx.emit(events.Withdraw(asset, caller))
        logger.info("Withdraw: %s <- %s", caller, token.symbol)
        return new_balance

    def _solvent_withdrawal(
        self,
        user: str,
        collateral_asset: str,
        debt_asset: str,
        amount: Euint,
        collateral_price: int,
        debt_price: int,
    ) -> Euint:
        """``capped`` if the remaining collateral still covers the debt, else zero.

        Compares ``remaining * P_c * CF >= debt * P_d * 10000`` so no division
        rounds in the user's favour.
        """
        supplied = self._supplied(user, collateral_asset)
        capped = cap(amount, supplied)
        remaining = safe_sub(supplied, capped)

        collateral_value = fhe.mul(
            fhe.mul(fhe.cast(remaining, WIDE_BITS), collateral_price),
            self._effective_collateral_factor(collateral_asset),
        )
        debt_value = fhe.mul(
            fhe.mul(fhe.cast(self._borrowed(user, debt_asset), WIDE_BITS), debt_price),
            PERCENT_PRECISION,
        )
        return fhe.select(fhe.ge(collateral_value, debt_value), capped, 0)

    def borrow(self, caller: str, asset: str, handle: int, proof: str) -> Euint:
        """Borrow against the designated collateral; returns the new debt."""
        with self._transaction("borrow") as tx:
            self._require_not_paused()
            caller, asset = normalize(caller), normalize(asset)
            validate_reserve(self.state, asset, require_borrowing=True)
            token = self.assets.get(asset)

            collateral_asset = self.state.collateral_asset
            position = self.state.positions.get(caller)
            if collateral_asset is None or position is None or not position.collateral_enabled:
                raise NoCollateralEnabled(caller)
            if position.current_debt_asset not in (None, asset):
                raise MultipleDebtsNotAllowed(
                    f"{caller} already owes {position.current_debt_asset}"
                )
            collateral_price, debt_price = self._prices(collateral_asset, asset)
            amount = self._decode(caller, handle, proof)
            amount = cap(
                amount,
                self._borrowing_power(caller, collateral_asset, asset, collateral_price, debt_price),
            )

            new_debt = execute_borrow(
                self.state, self.fhe, token, asset, amount, caller, self.address
            )
            position.current_debt_asset = asset
            tx.emit(events.Borrow(asset, caller))
        logger.info("Borrow: %s <- %s", caller, token.symbol)
        return new_debt

    def _borrowing_power(
        self,
        user: str,
        collateral_asset: str,
        debt_asset: str,
        collateral_price: int,
        debt_price: int,
    ) -> Euint:
        """Further debt (in ``debt_asset`` units) the user's collateral supports."""
        collateral_value = fhe.div(
            fhe.mul(
                fhe.mul(fhe.cast(self._supplied(user, collateral_asset), WIDE_BITS), collateral_price),
                self._effective_collateral_factor(collateral_asset),
            ),
            PERCENT_PRECISION,
        )
        debt_value = fhe.mul(fhe.cast(self._borrowed(user, debt_asset), WIDE_BITS), debt_price)
        headroom = fhe.div(safe_sub(collateral_value, debt_value), debt_price)
        return fhe.cast(fhe.min_(headroom, UINT64_MAX), 64)

    def repay(
        self,
        caller: str,
        asset: str,
        handle: int,
        proof: str,
        is_repaying_all: bool = False,
    ) -> Euint:
        """Repay debt in ``asset``; returns the remaining debt.

        The amount is capped to the outstanding debt so liquidity is only
        credited with what the debt absorbed. ``is_repaying_all`` is the
        caller's plaintext claim that the debt is settled and frees the debt
        slot for another asset.
        """
        with self._transaction("repay") as tx:
            self._require_not_paused()
            caller, asset = normalize(caller), normalize(asset)
            validate_reserve(self.state, asset, require_unpaused=False)
            token = self.assets.get(asset)

            position = self.state.positions.get(caller)
            debt_asset = position.current_debt_asset if position else None
            if debt_asset is not None and debt_asset != asset:
                raise InvalidDebtRepayment(f"{caller} owes {debt_asset}, not {asset}")
            amount = self._decode(caller, handle, proof)
            amount = cap(amount, self._borrowed(caller, asset))

            new_debt = execute_repay(
                self.state, self.fhe, token, asset, amount, caller, self.address
            )
            if is_repaying_all and position is not None:
                position.current_debt_asset = None
            tx.emit(events.Repay(asset, caller))
        logger.info("Repay: %s -> %s (all=%s)", caller, token.symbol, is_repaying_all)
        return new_debt

    def set_user_use_reserve_as_collateral(self, caller: str, asset: str, enabled: bool) -> None:
        """Toggle the caller's use of the designated collateral asset.

        A reserve-level pause does not block the toggle.
        """
        with self._transaction("set_user_use_reserve_as_collateral") as tx:
            self._require_not_paused()
            caller, asset = normalize(caller), normalize(asset)
            reserve = self.state.get_reserve(asset)
            if reserve is None or not reserve.active:
                raise ReserveNotActive(asset)
            if self.state.collateral_asset is None or asset != self.state.collateral_asset:
                raise NotTheDesignatedCollateral(asset)
            if not reserve.is_collateral:
                raise ReserveNotCollateral(asset)

            position = self.state.initialize_position(caller)
            position.collateral_enabled = enabled
            tx.emit(events.UserCollateralChanged(caller, asset, enabled))
        logger.info("Collateral %s for %s", "enabled" if enabled else "disabled", caller)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def collateral_asset(self) -> Optional[str]:
        return self.state.collateral_asset

    def get_reserve_data(self, asset: str) -> ReserveData:
        reserve = self.state.get_reserve(normalize(asset))
        return ReserveData() if reserve is None else ReserveData.from_reserve(reserve)

    def get_reserve_list(self) -> list[str]:
        return list(self.state.reserve_list)

    def get_user_position(self, user: str) -> UserPositionData:
        position = self.state.positions.get(normalize(user))
        return UserPositionData() if position is None else UserPositionData.from_position(position)

    def get_user_supplied_balance(self, user: str, asset: str) -> Optional[Euint]:
        balance = self.state.peek_balance(normalize(user), normalize(asset))
        return None if balance is None else balance.supplied

    def get_user_borrowed_balance(self, user: str, asset: str) -> Optional[Euint]:
        balance = self.state.peek_balance(normalize(user), normalize(asset))
        return None if balance is None else balance.borrowed

    def user_collateral_enabled(self, user: str, asset: str) -> bool:
        asset = normalize(asset)
        if asset != self.state.collateral_asset:
            return False
        position = self.state.positions.get(normalize(user))
        return position is not None and position.collateral_enabled

    def settlement_token(self, asset: str) -> ConfidentialToken:
        return self.assets.get(asset)
