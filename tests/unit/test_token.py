"""Unit tests for the confidential settlement token and asset registry."""
from __future__ import annotations

import pytest

from cipherlend.addresses import ZERO_ADDRESS
from cipherlend.errors import (
    AmountNotAllowed,
    UnauthorizedAccount,
    UnauthorizedSpender,
    UnknownAsset,
    ZeroAddress,
)
from cipherlend.fhe import FheRuntime
from cipherlend.token import AssetRegistry, ConfidentialToken

from tests.conftest import ADMIN, ALICE, BOB, POOL, USDC, WETH


@pytest.fixture()
def clock() -> list[float]:
    return [1_000.0]


@pytest.fixture()
def token(fhe: FheRuntime, clock: list[float]) -> ConfidentialToken:
    return ConfidentialToken(
        fhe, USDC, "Confidential USDC", "cUSDC", 6, owner=ADMIN, clock=lambda: clock[0]
    )


def _balance(fhe: FheRuntime, token: ConfidentialToken, account: str) -> int:
    ct = token.confidential_balance_of(account)
    return 0 if ct is None else fhe.decrypt(ct, account)


def _pool_amount(fhe: FheRuntime, token: ConfidentialToken, value: int):
    amount = fhe.as_euint(value)
    fhe.allow(amount, token.address)
    return amount


class TestMint:
    def test_owner_mints(self, fhe: FheRuntime, token: ConfidentialToken) -> None:
        token.mint(ADMIN, ALICE, 500)
        token.mint(ADMIN, ALICE, 250)
        assert _balance(fhe, token, ALICE) == 750
        assert fhe.public_decrypt(token.confidential_total_supply()) == 750

    def test_non_owner_rejected(self, token: ConfidentialToken) -> None:
        with pytest.raises(UnauthorizedAccount):
            token.mint(ALICE, ALICE, 1)

    def test_zero_recipient_rejected(self, token: ConfidentialToken) -> None:
        with pytest.raises(ZeroAddress):
            token.mint(ADMIN, ZERO_ADDRESS, 1)

    def test_balance_private_to_holder(self, fhe: FheRuntime, token: ConfidentialToken) -> None:
        balance = token.mint(ADMIN, ALICE, 1)
        assert fhe.is_allowed(balance, ALICE)
        assert fhe.is_allowed(balance, USDC)
        assert not fhe.is_allowed(balance, BOB)


class TestOperators:
    def test_holder_is_own_operator(self, token: ConfidentialToken) -> None:
        assert token.is_operator(ALICE, ALICE)

    def test_operator_expires(self, token: ConfidentialToken, clock: list[float]) -> None:
        token.set_operator(ALICE, POOL, clock[0] + 10)
        assert token.is_operator(ALICE, POOL)
        clock[0] += 10
        assert not token.is_operator(ALICE, POOL)

    def test_zero_operator_rejected(self, token: ConfidentialToken) -> None:
        with pytest.raises(ZeroAddress):
            token.set_operator(ALICE, ZERO_ADDRESS, 1e12)


class TestTransfers:
    def test_operator_moves_funds(
        self, fhe: FheRuntime, token: ConfidentialToken, clock: list[float]
    ) -> None:
        token.mint(ADMIN, ALICE, 100)
        token.set_operator(ALICE, POOL, clock[0] + 60)
        moved = token.confidential_transfer_from(POOL, ALICE, POOL, _pool_amount(fhe, token, 40))
        assert fhe.decrypt(moved, POOL) == 40
        assert _balance(fhe, token, ALICE) == 60
        assert _balance(fhe, token, POOL) == 40

    def test_insufficient_balance_moves_nothing(
        self, fhe: FheRuntime, token: ConfidentialToken
    ) -> None:
        token.mint(ADMIN, POOL, 10)
        moved = token.confidential_transfer(POOL, ALICE, _pool_amount(fhe, token, 11))
        assert fhe.decrypt(moved, ALICE) == 0
        assert _balance(fhe, token, POOL) == 10
        assert _balance(fhe, token, ALICE) == 0

    def test_non_operator_rejected(self, fhe: FheRuntime, token: ConfidentialToken) -> None:
        token.mint(ADMIN, ALICE, 100)
        with pytest.raises(UnauthorizedSpender):
            token.confidential_transfer_from(POOL, ALICE, POOL, _pool_amount(fhe, token, 1))

    def test_amount_must_be_allowed_to_token(
        self, fhe: FheRuntime, token: ConfidentialToken
    ) -> None:
        token.mint(ADMIN, POOL, 10)
        with pytest.raises(AmountNotAllowed):
            token.confidential_transfer(POOL, ALICE, fhe.as_euint(1))

    def test_zero_recipient_rejected(self, fhe: FheRuntime, token: ConfidentialToken) -> None:
        with pytest.raises(ZeroAddress):
            token.confidential_transfer(POOL, ZERO_ADDRESS, _pool_amount(fhe, token, 1))


class TestAssetRegistry:
    def test_lookup(self, token: ConfidentialToken) -> None:
        registry = AssetRegistry()
        registry.register(token)
        assert registry.get(USDC.upper().replace("0X", "0x")) is token
        assert registry.by_symbol("cUSDC") is token
        assert USDC in registry
        assert WETH not in registry
        assert list(registry) == [token]
        assert len(registry) == 1

    def test_unknown_asset(self) -> None:
        registry = AssetRegistry()
        with pytest.raises(UnknownAsset):
            registry.get(WETH)
        with pytest.raises(UnknownAsset):
            registry.by_symbol("cWETH")

    def test_token_metadata(self, token: ConfidentialToken) -> None:
        assert token.address == USDC
        assert token.decimals == 6
        assert "cUSDC" in repr(token)
