"""Supply/withdraw engine: per-user, per-reserve deposit accounting."""
from __future__ import annotations

import logging

from ..fhe import Euint, FheRuntime
from ..interfaces.settlement import SettlementToken
from ..safe_ops import cap, cap_to_headroom, safe_add, safe_sub
from ..state import ProtocolState
from .common import grant_access, validate_reserve

logger = logging.getLogger(__name__)


def execute_supply(
    state: ProtocolState,
    fhe: FheRuntime,
    token: SettlementToken,
    asset: str,
    amount: Euint,
    user: str,
    pool_address: str,
) -> Euint:
    """Credit ``amount`` (clamped to the remaining supply cap) to ``user``.

    Returns the user's new encrypted supplied balance. Whether clamping
    happened is not observable.
    """
    reserve = validate_reserve(state, asset)

    capped = cap_to_headroom(amount, reserve.supply_cap, reserve.total_supplied)

    balance = state.balance(user, asset)
    balance.supplied = safe_add(balance.supplied, capped)
    reserve.total_supplied = safe_add(reserve.total_supplied, capped)
    reserve.available_liquidity = safe_add(reserve.available_liquidity, capped)
    state.initialize_position(user)

    grant_access(
        fhe, user, pool_address, balance.supplied,
        (reserve.total_supplied, reserve.available_liquidity),
    )

    # State is final; only now hand the funds over to the token.
    fhe.allow_transient(capped, token.address)
    token.confidential_transfer_from(pool_address, user, pool_address, capped)

    logger.debug("Supply executed: %s -> %s", user, asset)
    return balance.supplied


def execute_withdraw(
    state: ProtocolState,
    fhe: FheRuntime,
    token: SettlementToken,
    asset: str,
    amount: Euint,
    user: str,
    pool_address: str,
) -> Euint:
    """Debit ``amount`` (clamped to the user's own balance) from ``user``."""
    reserve = validate_reserve(state, asset)

    balance = state.balance(user, asset)
    capped = cap(amount, balance.supplied)

    balance.supplied = safe_sub(balance.supplied, capped)
    reserve.total_supplied = safe_sub(reserve.total_supplied, capped)
    reserve.available_liquidity = safe_sub(reserve.available_liquidity, capped)

    grant_access(
        fhe, user, pool_address, balance.supplied,
        (reserve.total_supplied, reserve.available_liquidity),
    )

    fhe.allow_transient(capped, token.address)
    token.confidential_transfer(pool_address, user, capped)

    logger.debug("Withdraw executed: %s <- %s", user, asset)
    return balance.supplied
