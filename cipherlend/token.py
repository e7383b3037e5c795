"""Confidential fungible token used to settle pool flows.

Balances are encrypted. A transfer that exceeds the sender's balance moves
nothing instead of failing, so insufficient funds are never observable.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from . import fhe
from .addresses import is_zero_address, normalize
from .errors import (
    AmountNotAllowed,
    UnauthorizedAccount,
    UnauthorizedSpender,
    UnknownAsset,
    ZeroAddress,
)
from .fhe import Euint, FheRuntime
from .safe_ops import safe_add, safe_sub

logger = logging.getLogger(__name__)


class ConfidentialToken:
    """Encrypted-balance token with time-bounded operators."""

    def __init__(
        self,
        runtime: FheRuntime,
        address: str,
        name: str,
        symbol: str,
        decimals: int,
        owner: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if is_zero_address(address):
            raise ZeroAddress("token")
        if is_zero_address(owner):
            raise ZeroAddress("owner")
        self._fhe = runtime
        self._address = normalize(address)
        self.name = name
        self.symbol = symbol
        self._decimals = decimals
        self.owner = normalize(owner)
        self.clock = clock
        self._balances: dict[str, Euint] = {}
        self._operators: dict[tuple[str, str], float] = {}
        self._total_supply = runtime.as_euint(0)

    @property
    def address(self) -> str:
        return self._address

    @property
    def decimals(self) -> int:
        return self._decimals

    def __repr__(self) -> str:
        return f"ConfidentialToken({self.symbol} @ {self._address})"

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def confidential_balance_of(self, account: str) -> Euint | None:
        return self._balances.get(normalize(account))

    def confidential_total_supply(self) -> Euint:
        return self._total_supply

    def _balance_or_zero(self, account: str) -> Euint:
        balance = self._balances.get(account)
        return self._fhe.as_euint(0) if balance is None else balance

    def _set_balance(self, account: str, value: Euint) -> None:
        self._balances[account] = value
        self._fhe.allow(value, account)
        self._fhe.allow(value, self._address)

    def mint(self, caller: str, to: str, amount: int) -> Euint:
        """Owner-only issuance of a plaintext amount."""
        if normalize(caller) != self.owner:
            raise UnauthorizedAccount(f"{caller} is not the {self.symbol} owner")
        if is_zero_address(to):
            raise ZeroAddress("recipient")
        to = normalize(to)
        minted = self._fhe.as_euint(amount)
        self._set_balance(to, safe_add(self._balance_or_zero(to), minted))
        self._total_supply = safe_add(self._total_supply, minted)
        self._fhe.make_publicly_decryptable(self._total_supply)
        logger.info("Minted %s to %s", self.symbol, to)
        return self._balances[to]

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def set_operator(self, holder: str, operator: str, until: float) -> None:
        """Let ``operator`` move ``holder``'s funds until the ``until`` timestamp."""
        if is_zero_address(operator):
            raise ZeroAddress("operator")
        self._operators[(normalize(holder), normalize(operator))] = until
        logger.info("Operator %s set for %s on %s", operator, holder, self.symbol)

    def is_operator(self, holder: str, spender: str) -> bool:
        holder, spender = normalize(holder), normalize(spender)
        if holder == spender:
            return True
        return self._operators.get((holder, spender), 0) > self.clock()

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def confidential_transfer(self, caller: str, recipient: str, amount: Euint) -> Euint:
        return self.confidential_transfer_from(caller, caller, recipient, amount)

    def confidential_transfer_from(
        self, caller: str, sender: str, recipient: str, amount: Euint
    ) -> Euint:
        """Move ``amount`` from ``sender`` to ``recipient``; return what moved.

        ``caller`` must be the sender or one of its live operators, and the
        amount handle must have been allowed to this token.
        """
        if is_zero_address(recipient):
            raise ZeroAddress("recipient")
        if not self.is_operator(sender, caller):
            raise UnauthorizedSpender(f"{caller} is not an operator of {sender}")
        if not self._fhe.is_allowed(amount, self._address):
            raise AmountNotAllowed(f"{self.symbol} holds no permission on {amount!r}")

        sender, recipient = normalize(sender), normalize(recipient)
        sender_balance = self._balance_or_zero(sender)

        transferred = fhe.select(fhe.le(amount, sender_balance), amount, 0)
        self._set_balance(sender, safe_sub(sender_balance, transferred))
        self._set_balance(recipient, safe_add(self._balance_or_zero(recipient), transferred))

        for account in (caller, sender, recipient):
            self._fhe.allow(transferred, account)
        logger.debug("%s transfer %s -> %s", self.symbol, sender, recipient)
        return transferred


class AssetRegistry:
    """Registered settlement tokens, keyed by address."""

    def __init__(self) -> None:
        self._tokens: dict[str, ConfidentialToken] = {}

    def register(self, token: ConfidentialToken) -> None:
        self._tokens[token.address] = token

    def get(self, asset: str) -> ConfidentialToken:
        token = self._tokens.get(normalize(asset))
        if token is None:
            raise UnknownAsset(asset)
        return token

    def by_symbol(self, symbol: str) -> ConfidentialToken:
        for token in self._tokens.values():
            if token.symbol == symbol:
                return token
        raise UnknownAsset(symbol)

    def __contains__(self, asset: object) -> bool:
        return isinstance(asset, str) and normalize(asset) in self._tokens

    def __iter__(self):
        return iter(self._tokens.values())

    def __len__(self) -> int:
        return len(self._tokens)
