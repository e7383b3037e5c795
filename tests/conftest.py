"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from cipherlend.config import (
    AppConfig,
    PriceFeedConfig,
    ProtocolConfig,
    PythConfig,
    ReserveConfig,
    TokenConfig,
)
from cipherlend.fhe import Euint, FheRuntime
from cipherlend.services import ProtocolStack, build_protocol

ADMIN = "0x1000000000000000000000000000000000000001"
POOL_ADMIN = "0x1000000000000000000000000000000000000002"
EMERGENCY_ADMIN = "0x1000000000000000000000000000000000000003"
RISK_ADMIN = "0x1000000000000000000000000000000000000004"
POOL = "0x00000000000000000000000000000000000000a1"
CONFIGURATOR = "0x00000000000000000000000000000000000000a2"
FEEDER = "0x00000000000000000000000000000000000000f1"

WETH = "0x2000000000000000000000000000000000000001"
USDC = "0x2000000000000000000000000000000000000002"
DAI = "0x2000000000000000000000000000000000000003"

ALICE = "0x3000000000000000000000000000000000000001"
BOB = "0x3000000000000000000000000000000000000002"
CAROL = "0x3000000000000000000000000000000000000003"

# 1 WETH and 1 USDC in 6-decimal base units
ONE = 1_000_000


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        admin=ADMIN,
        pool_admin=POOL_ADMIN,
        emergency_admin=EMERGENCY_ADMIN,
        risk_admin=RISK_ADMIN,
        pool_address=POOL,
        configurator_address=CONFIGURATOR,
        collateral_asset="cWETH",
    )


@pytest.fixture()
def sample_tokens() -> tuple[TokenConfig, ...]:
    return (
        TokenConfig(
            symbol="cWETH",
            name="Confidential WETH",
            address=WETH,
            decimals=6,
            price=2000.0,
            reserve=ReserveConfig(is_collateral=True, collateral_factor=7500),
        ),
        TokenConfig(
            symbol="cUSDC",
            name="Confidential USDC",
            address=USDC,
            decimals=6,
            price=1.0,
            reserve=ReserveConfig(borrowing_enabled=True),
        ),
        TokenConfig(
            symbol="cDAI",
            name="Confidential DAI",
            address=DAI,
            decimals=6,
            price=1.0,
            reserve=ReserveConfig(borrowing_enabled=True),
        ),
    )


@pytest.fixture()
def sample_app_config(
    sample_protocol_config: ProtocolConfig,
    sample_tokens: tuple[TokenConfig, ...],
) -> AppConfig:
    return AppConfig(
        protocol=sample_protocol_config,
        tokens=sample_tokens,
        price_feed=PriceFeedConfig(
            provider="static",
            feeder=FEEDER,
            pyth=PythConfig(
                hermes_url="https://hermes.example.com/v2/updates/price/latest",
                feeds={"cWETH": "aaa111", "cUSDC": "bbb222"},
            ),
        ),
    )


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config.yaml and return its path."""
    content = textwrap.dedent(f"""\
        protocol:
          admin: "{ADMIN}"
          pool_admin: "{POOL_ADMIN}"
          emergency_admin: "{EMERGENCY_ADMIN}"
          risk_admin: "{RISK_ADMIN}"
          pool_address: "{POOL}"
          configurator_address: "{CONFIGURATOR}"
          collateral_asset: cWETH
        tokens:
          - symbol: cWETH
            name: Confidential WETH
            address: "{WETH}"
            decimals: 6
            price: 2000.0
            reserve:
              is_collateral: true
              collateral_factor: 7500
          - symbol: cUSDC
            address: "{USDC}"
            price: 1.0
            reserve:
              borrowing_enabled: true
              supply_cap: 5000000000
        price_feed:
          provider: static
          feeder: "{FEEDER}"
    """)
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


# ---------------------------------------------------------------------------
# Protocol fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fhe() -> FheRuntime:
    return FheRuntime(secret=b"test-secret")


@pytest.fixture()
def clock() -> list[float]:
    """Mutable fake time: tests advance it with ``clock[0] += n``."""
    return [1_700_000_000.0]


@pytest.fixture()
def stack(sample_app_config: AppConfig, fhe: FheRuntime, clock: list[float]) -> ProtocolStack:
    return build_protocol(sample_app_config, runtime=fhe, clock=lambda: clock[0])


class LendingDriver:
    """Client-side helper: encrypts amounts and decrypts results as the user."""

    def __init__(self, stack: ProtocolStack) -> None:
        self.stack = stack
        self.pool = stack.pool
        self.fhe = stack.fhe

    def enc(self, user: str, amount: int):
        return self.fhe.encrypt_input(amount, self.pool.address, user)

    def fund(self, user: str, asset: str, amount: int, approve: bool = True) -> None:
        token = self.stack.assets.get(asset)
        token.mint(ADMIN, user, amount)
        if approve:
            token.set_operator(user, self.pool.address, token.clock() + 3600)

    def supply(self, user: str, asset: str, amount: int) -> Euint:
        e = self.enc(user, amount)
        return self.pool.supply(user, asset, e.handle, e.proof)

    def withdraw(self, user: str, asset: str, amount: int) -> Euint:
        e = self.enc(user, amount)
        return self.pool.withdraw(user, asset, e.handle, e.proof)

    def borrow(self, user: str, asset: str, amount: int) -> Euint:
        e = self.enc(user, amount)
        return self.pool.borrow(user, asset, e.handle, e.proof)

    def repay(self, user: str, asset: str, amount: int, repay_all: bool = False) -> Euint:
        e = self.enc(user, amount)
        return self.pool.repay(user, asset, e.handle, e.proof, is_repaying_all=repay_all)

    def enable_collateral(self, user: str, asset: str = WETH) -> None:
        self.pool.set_user_use_reserve_as_collateral(user, asset, True)

    def supplied(self, user: str, asset: str) -> int:
        ct = self.pool.get_user_supplied_balance(user, asset)
        return 0 if ct is None else self.fhe.decrypt(ct, user)

    def borrowed(self, user: str, asset: str) -> int:
        ct = self.pool.get_user_borrowed_balance(user, asset)
        return 0 if ct is None else self.fhe.decrypt(ct, user)

    def wallet(self, user: str, asset: str) -> int:
        ct = self.stack.assets.get(asset).confidential_balance_of(user)
        return 0 if ct is None else self.fhe.decrypt(ct, user)

    def reserve_totals(self, asset: str) -> tuple[int, int, int]:
        data = self.pool.get_reserve_data(asset)
        return (
            self.fhe.public_decrypt(data.total_supplied),
            self.fhe.public_decrypt(data.total_borrowed),
            self.fhe.public_decrypt(data.available_liquidity),
        )


@pytest.fixture()
def driver(stack: ProtocolStack) -> LendingDriver:
    return LendingDriver(stack)


@pytest.fixture()
def borrower(driver: LendingDriver) -> LendingDriver:
    """BOB has supplied 10,000 cUSDC; ALICE has 1 cWETH supplied as collateral."""
    driver.fund(BOB, USDC, 10_000 * ONE)
    driver.supply(BOB, USDC, 10_000 * ONE)
    driver.fund(ALICE, WETH, ONE)
    driver.supply(ALICE, WETH, ONE)
    driver.enable_collateral(ALICE)
    return driver
