"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .addresses import ZERO_ADDRESS
from .fhe import Euint
from .state import Reserve, UserPosition


@dataclass(frozen=True)
class ReserveSettings:
    """Plaintext reserve configuration pushed from the configurator to the pool.

    The defaults describe a reserve that was never initialised.
    """

    underlying_asset: str = ZERO_ADDRESS
    active: bool = False
    borrowing_enabled: bool = False
    is_collateral: bool = False
    paused: bool = False
    collateral_factor: int = 0
    supply_cap: int = 0
    borrow_cap: int = 0


@dataclass(frozen=True)
class ReserveData:
    """Read-only snapshot of a reserve as returned by the pool views."""

    underlying_asset: str = ZERO_ADDRESS
    decimals: int = 0
    active: bool = False
    borrowing_enabled: bool = False
    is_collateral: bool = False
    paused: bool = False
    collateral_factor: int = 0
    supply_cap: int = 0
    borrow_cap: int = 0
    total_supplied: Optional[Euint] = None
    total_borrowed: Optional[Euint] = None
    available_liquidity: Optional[Euint] = None

    @classmethod
    def from_reserve(cls, reserve: Reserve) -> "ReserveData":
        return cls(
            underlying_asset=reserve.underlying_asset,
            decimals=reserve.decimals,
            active=reserve.active,
            borrowing_enabled=reserve.borrowing_enabled,
            is_collateral=reserve.is_collateral,
            paused=reserve.paused,
            collateral_factor=reserve.collateral_factor,
            supply_cap=reserve.supply_cap,
            borrow_cap=reserve.borrow_cap,
            total_supplied=reserve.total_supplied,
            total_borrowed=reserve.total_borrowed,
            available_liquidity=reserve.available_liquidity,
        )

    @property
    def initialized(self) -> bool:
        return self.total_supplied is not None


@dataclass(frozen=True)
class UserPositionData:
    """Plaintext part of a user position."""

    initialized: bool = False
    collateral_enabled: bool = False
    current_debt_asset: Optional[str] = None

    @classmethod
    def from_position(cls, position: UserPosition) -> "UserPositionData":
        return cls(
            initialized=position.initialized,
            collateral_enabled=position.collateral_enabled,
            current_debt_asset=position.current_debt_asset,
        )
