"""Shared plaintext validation and permission plumbing for the engines."""
from __future__ import annotations

from ..addresses import is_zero_address
from ..errors import (
    BorrowingNotEnabled,
    ReserveNotActive,
    ReserveNotInitialized,
    ReservePaused,
    ZeroAddress,
)
from ..fhe import Euint, FheRuntime
from ..state import ProtocolState, Reserve


def validate_reserve(
    state: ProtocolState,
    asset: str,
    *,
    require_unpaused: bool = True,
    require_borrowing: bool = False,
) -> Reserve:
    """Run the plaintext reserve checks; raise before anything is mutated."""
    if is_zero_address(asset):
        raise ZeroAddress("asset")
    reserve = state.get_reserve(asset)
    if reserve is None:
        raise ReserveNotInitialized(asset)
    if not reserve.active:
        raise ReserveNotActive(asset)
    if require_borrowing and not reserve.borrowing_enabled:
        raise BorrowingNotEnabled(asset)
    if require_unpaused and reserve.paused:
        raise ReservePaused(asset)
    return reserve


def grant_access(
    fhe: FheRuntime,
    user: str,
    pool_address: str,
    balance: Euint,
    reserve_totals: tuple[Euint, ...],
) -> None:
    """Let the user and the pool view every mutated value.

    Reserve totals are aggregate figures and become publicly decryptable;
    only per-user balances stay private.
    """
    for ct in (balance, *reserve_totals):
        fhe.allow(ct, user)
        fhe.allow(ct, pool_address)
    for ct in reserve_totals:
        fhe.make_publicly_decryptable(ct)
