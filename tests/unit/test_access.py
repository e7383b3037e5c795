"""Unit tests for the role store and the plaintext price oracle."""
from __future__ import annotations

import pytest

from cipherlend.acl import (
    DEFAULT_ADMIN_ROLE,
    EMERGENCY_ADMIN_ROLE,
    POOL_ADMIN_ROLE,
    RISK_ADMIN_ROLE,
    ACLManager,
)
from cipherlend.addresses import ZERO_ADDRESS
from cipherlend.errors import OnlyPriceFeed, UnauthorizedAccount, ZeroAddress
from cipherlend.oracle import PRICE_PRECISION, SimplePriceOracle

from tests.conftest import ADMIN, ALICE, BOB, FEEDER, USDC


class TestACLManager:
    def test_zero_admin_rejected(self) -> None:
        with pytest.raises(ZeroAddress):
            ACLManager(ZERO_ADDRESS)

    def test_admin_holds_default_role(self) -> None:
        acl = ACLManager(ADMIN)
        assert acl.has_role(DEFAULT_ADMIN_ROLE, ADMIN)
        assert not acl.is_pool_admin(ADMIN)

    def test_grant_and_revoke(self) -> None:
        acl = ACLManager(ADMIN)
        acl.grant_role(ADMIN, POOL_ADMIN_ROLE, ALICE)
        acl.grant_role(ADMIN, EMERGENCY_ADMIN_ROLE, ALICE)
        acl.grant_role(ADMIN, RISK_ADMIN_ROLE, BOB)
        assert acl.is_pool_admin(ALICE)
        assert acl.is_emergency_admin(ALICE)
        assert acl.is_risk_admin(BOB)
        assert not acl.is_risk_admin(ALICE)

        acl.revoke_role(ADMIN, POOL_ADMIN_ROLE, ALICE)
        assert not acl.is_pool_admin(ALICE)

    def test_roles_ignore_address_case(self) -> None:
        acl = ACLManager(ADMIN)
        acl.grant_role(ADMIN.upper().replace("0X", "0x"), POOL_ADMIN_ROLE, ALICE.upper())
        assert acl.is_pool_admin(ALICE)

    def test_only_admin_may_grant(self) -> None:
        acl = ACLManager(ADMIN)
        with pytest.raises(UnauthorizedAccount):
            acl.grant_role(ALICE, POOL_ADMIN_ROLE, ALICE)
        with pytest.raises(UnauthorizedAccount):
            acl.revoke_role(ALICE, POOL_ADMIN_ROLE, ADMIN)

    def test_cannot_grant_to_zero_address(self) -> None:
        with pytest.raises(ZeroAddress):
            ACLManager(ADMIN).grant_role(ADMIN, RISK_ADMIN_ROLE, ZERO_ADDRESS)


class TestSimplePriceOracle:
    def test_unset_price_reads_zero(self) -> None:
        assert SimplePriceOracle(ADMIN).get_price(USDC) == 0

    def test_owner_sets_price(self) -> None:
        oracle = SimplePriceOracle(ADMIN)
        oracle.set_price(ADMIN, USDC, PRICE_PRECISION)
        assert oracle.get_price(USDC.upper().replace("0X", "0x")) == PRICE_PRECISION

    def test_non_owner_rejected(self) -> None:
        with pytest.raises(UnauthorizedAccount):
            SimplePriceOracle(ADMIN).set_price(ALICE, USDC, 1)

    def test_negative_price_rejected(self) -> None:
        with pytest.raises(ValueError):
            SimplePriceOracle(ADMIN).set_price(ADMIN, USDC, -1)

    def test_feed_lifecycle(self) -> None:
        oracle = SimplePriceOracle(ADMIN)
        with pytest.raises(OnlyPriceFeed):
            oracle.update_price(FEEDER, USDC, 5)

        oracle.add_price_feed(ADMIN, FEEDER)
        assert oracle.is_price_feed(FEEDER)
        oracle.update_price(FEEDER, USDC, 5)
        assert oracle.get_price(USDC) == 5

        oracle.remove_price_feed(ADMIN, FEEDER)
        with pytest.raises(OnlyPriceFeed):
            oracle.update_price(FEEDER, USDC, 6)
        assert oracle.get_price(USDC) == 5

    def test_only_owner_manages_feeds(self) -> None:
        oracle = SimplePriceOracle(ADMIN)
        with pytest.raises(UnauthorizedAccount):
            oracle.add_price_feed(ALICE, FEEDER)
        with pytest.raises(ZeroAddress):
            oracle.add_price_feed(ADMIN, ZERO_ADDRESS)
