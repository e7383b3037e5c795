"""Borrow/repay engine: per-user, per-reserve debt accounting."""
from __future__ import annotations

import logging

from ..fhe import Euint, FheRuntime
from ..interfaces.settlement import SettlementToken
from ..safe_ops import cap, cap_to_headroom, safe_add, safe_sub
from ..state import ProtocolState
from .common import grant_access, validate_reserve

logger = logging.getLogger(__name__)


def execute_borrow(
    state: ProtocolState,
    fhe: FheRuntime,
    token: SettlementToken,
    asset: str,
    amount: Euint,
    borrower: str,
    pool_address: str,
) -> Euint:
    """Open or grow ``borrower``'s debt and return the new encrypted debt.

    Liquidity is clamped before the borrow cap: liquidity is the physical
    ceiling, the cap a policy ceiling applied on top of it.
    """
    reserve = validate_reserve(state, asset, require_borrowing=True)

    within_liquidity = cap(amount, reserve.available_liquidity)
    capped = cap_to_headroom(within_liquidity, reserve.borrow_cap, reserve.total_borrowed)

    balance = state.balance(borrower, asset)
    balance.borrowed = safe_add(balance.borrowed, capped)
    reserve.total_borrowed = safe_add(reserve.total_borrowed, capped)
    reserve.available_liquidity = safe_sub(reserve.available_liquidity, capped)
    state.initialize_position(borrower)

    grant_access(
        fhe, borrower, pool_address, balance.borrowed,
        (reserve.total_borrowed, reserve.available_liquidity),
    )

    fhe.allow_transient(capped, token.address)
    token.confidential_transfer(pool_address, borrower, capped)

    logger.debug("Borrow executed: %s <- %s", borrower, asset)
    return balance.borrowed


def execute_repay(
    state: ProtocolState,
    fhe: FheRuntime,
    token: SettlementToken,
    asset: str,
    amount: Euint,
    payer: str,
    pool_address: str,
) -> Euint:
    """Reduce ``payer``'s debt by ``amount`` and return the new encrypted debt.

    Repayment is always permitted on an active reserve: neither the
    borrowing flag nor the reserve pause is consulted. The amount is applied
    as given; any pre-capping is the caller's job. Overpaying floors the debt
    at zero while the full amount is credited back to liquidity.
    """
    reserve = validate_reserve(state, asset, require_unpaused=False)

    balance = state.balance(payer, asset)
    balance.borrowed = safe_sub(balance.borrowed, amount)
    reserve.total_borrowed = safe_sub(reserve.total_borrowed, amount)
    reserve.available_liquidity = safe_add(reserve.available_liquidity, amount)

    grant_access(
        fhe, payer, pool_address, balance.borrowed,
        (reserve.total_borrowed, reserve.available_liquidity),
    )

    fhe.allow_transient(amount, token.address)
    token.confidential_transfer_from(pool_address, payer, pool_address, amount)

    logger.debug("Repay executed: %s -> %s", payer, asset)
    return balance.borrowed
