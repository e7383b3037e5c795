"""Wire a complete protocol deployment from an :class:`AppConfig`."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..acl import EMERGENCY_ADMIN_ROLE, POOL_ADMIN_ROLE, RISK_ADMIN_ROLE, ACLManager
from ..config import AppConfig
from ..configurator import PoolConfigurator
from ..fhe import FheRuntime
from ..oracle import SimplePriceOracle
from ..oracles.pyth import PythPriceFeed, to_fixed_point
from ..pool import ConfidentialLendingPool
from ..token import AssetRegistry, ConfidentialToken

logger = logging.getLogger(__name__)


@dataclass
class ProtocolStack:
    """Every deployed component, addressable by the CLI and scenario runner."""

    config: AppConfig
    fhe: FheRuntime
    acl: ACLManager
    oracle: SimplePriceOracle
    assets: AssetRegistry
    configurator: PoolConfigurator
    pool: ConfidentialLendingPool
    tokens: dict[str, ConfidentialToken] = field(default_factory=dict)
    price_feed: Optional[PythPriceFeed] = None

    def token(self, symbol: str) -> ConfidentialToken:
        try:
            return self.tokens[symbol]
        except KeyError:
            raise KeyError(f"Unknown token symbol '{symbol}'") from None

    async def refresh_prices(self) -> dict[str, int]:
        """Pull live prices when a Pyth feed is configured; no-op otherwise."""
        if self.price_feed is None:
            return {}
        return await self.price_feed.refresh()


def build_protocol(
    config: AppConfig,
    runtime: FheRuntime | None = None,
    clock: Callable[[], float] = time.time,
) -> ProtocolStack:
    """Deploy roles, oracle, tokens, configurator and pool, then list reserves."""
    proto = config.protocol
    fhe = runtime or FheRuntime()

    acl = ACLManager(proto.admin)
    acl.grant_role(proto.admin, POOL_ADMIN_ROLE, proto.pool_admin)
    acl.grant_role(proto.admin, EMERGENCY_ADMIN_ROLE, proto.emergency_admin)
    acl.grant_role(proto.admin, RISK_ADMIN_ROLE, proto.risk_admin)

    oracle = SimplePriceOracle(proto.admin)
    oracle.add_price_feed(proto.admin, config.price_feed.feeder)

    assets = AssetRegistry()
    tokens: dict[str, ConfidentialToken] = {}
    for token_cfg in config.tokens:
        token = ConfidentialToken(
            fhe,
            token_cfg.address,
            token_cfg.name,
            token_cfg.symbol,
            token_cfg.decimals,
            owner=proto.admin,
            clock=clock,
        )
        assets.register(token)
        tokens[token_cfg.symbol] = token
        if token_cfg.price > 0:
            oracle.set_price(proto.admin, token.address, to_fixed_point(token_cfg.price))

    configurator = PoolConfigurator(acl, proto.configurator_address)
    pool = ConfidentialLendingPool(
        acl, configurator.address, oracle, fhe, assets, proto.pool_address
    )
    configurator.set_lending_pool(proto.pool_admin, pool)

    for token_cfg in config.tokens:
        reserve = token_cfg.reserve
        address = tokens[token_cfg.symbol].address
        configurator.init_reserve(
            proto.pool_admin,
            address,
            reserve.borrowing_enabled,
            reserve.is_collateral,
            reserve.collateral_factor,
        )
        if reserve.supply_cap:
            configurator.set_supply_cap(proto.risk_admin, address, reserve.supply_cap)
        if reserve.borrow_cap:
            configurator.set_borrow_cap(proto.risk_admin, address, reserve.borrow_cap)

    if proto.collateral_asset:
        pool.set_collateral_asset(proto.pool_admin, tokens[proto.collateral_asset].address)

    price_feed = None
    if config.price_feed.provider == "pyth":
        price_feed = PythPriceFeed(
            config.price_feed.pyth,
            oracle=oracle,
            feeder=config.price_feed.feeder,
            asset_addresses={symbol: token.address for symbol, token in tokens.items()},
        )

    logger.info(
        "Protocol deployed: %d reserve(s), collateral=%s, prices=%s",
        len(tokens), proto.collateral_asset or "-", config.price_feed.provider,
    )
    return ProtocolStack(
        config=config,
        fhe=fhe,
        acl=acl,
        oracle=oracle,
        assets=assets,
        configurator=configurator,
        pool=pool,
        tokens=tokens,
        price_feed=price_feed,
    )
