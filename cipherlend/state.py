"""Mutable protocol state: reserves, positions and per-user balances."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field

from .fhe import Euint, FheRuntime


@dataclass
class Reserve:
    """Per-asset configuration (plaintext) and aggregate accounting (encrypted)."""

    underlying_asset: str
    total_supplied: Euint
    total_borrowed: Euint
    available_liquidity: Euint
    decimals: int = 6
    active: bool = True
    borrowing_enabled: bool = False
    is_collateral: bool = False
    paused: bool = False
    collateral_factor: int = 0
    supply_cap: int = 0
    borrow_cap: int = 0


@dataclass
class UserPosition:
    initialized: bool = False
    collateral_enabled: bool = False
    current_debt_asset: str | None = None


@dataclass
class UserBalance:
    supplied: Euint
    borrowed: Euint


@dataclass
class ProtocolState:
    """Everything the pool mutates, kept in one snapshot-able object.

    Positions and balances are created lazily on first write and never
    removed; reserves are never removed either.
    """

    fhe: FheRuntime = field(repr=False, compare=False)
    paused: bool = False
    collateral_asset: str | None = None
    reserves: dict[str, Reserve] = field(default_factory=dict)
    reserve_list: list[str] = field(default_factory=list)
    positions: dict[str, UserPosition] = field(default_factory=dict)
    balances: dict[tuple[str, str], UserBalance] = field(default_factory=dict)

    def __deepcopy__(self, memo: dict) -> "ProtocolState":
        clone = ProtocolState(fhe=self.fhe)
        for name in ("paused", "collateral_asset", "reserves", "reserve_list",
                     "positions", "balances"):
            setattr(clone, name, deepcopy(getattr(self, name), memo))
        return clone

    def get_reserve(self, asset: str) -> Reserve | None:
        return self.reserves.get(asset)

    def position(self, user: str) -> UserPosition:
        """Return the user's position, materialising it on first touch."""
        pos = self.positions.get(user)
        if pos is None:
            pos = UserPosition()
            self.positions[user] = pos
        return pos

    def balance(self, user: str, asset: str) -> UserBalance:
        """Return the (user, asset) balance, materialising it on first touch."""
        key = (user, asset)
        bal = self.balances.get(key)
        if bal is None:
            bal = UserBalance(
                supplied=self.fhe.as_euint(0),
                borrowed=self.fhe.as_euint(0),
            )
            self.fhe.allow(bal.supplied, user)
            self.fhe.allow(bal.borrowed, user)
            self.balances[key] = bal
        return bal

    def peek_balance(self, user: str, asset: str) -> UserBalance | None:
        return self.balances.get((user, asset))

    def initialize_position(self, user: str) -> UserPosition:
        pos = self.position(user)
        pos.initialized = True
        return pos
