"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PRICE_PROVIDERS = ("static", "pyth")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProtocolConfig:
    admin: str = ""
    pool_admin: str = ""
    emergency_admin: str = ""
    risk_admin: str = ""
    pool_address: str = "0x00000000000000000000000000000000000000a1"
    configurator_address: str = "0x00000000000000000000000000000000000000a2"
    collateral_asset: str = ""


@dataclass(frozen=True)
class ReserveConfig:
    borrowing_enabled: bool = False
    is_collateral: bool = False
    collateral_factor: int = 0
    supply_cap: int = 0
    borrow_cap: int = 0


@dataclass(frozen=True)
class TokenConfig:
    symbol: str = ""
    name: str = ""
    address: str = ""
    decimals: int = 6
    price: float = 0.0
    reserve: ReserveConfig = field(default_factory=ReserveConfig)


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceFeedConfig:
    provider: str = "static"
    feeder: str = "0x00000000000000000000000000000000000000f1"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    tokens: tuple[TokenConfig, ...] = ()
    price_feed: PriceFeedConfig = field(default_factory=PriceFeedConfig)

    def token(self, symbol: str) -> TokenConfig:
        for token in self.tokens:
            if token.symbol == symbol:
                return token
        raise KeyError(symbol)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    admin = str(raw.get("admin", ""))
    return ProtocolConfig(
        admin=admin,
        pool_admin=str(raw.get("pool_admin", admin)),
        emergency_admin=str(raw.get("emergency_admin", admin)),
        risk_admin=str(raw.get("risk_admin", admin)),
        pool_address=str(raw.get("pool_address", ProtocolConfig.pool_address)),
        configurator_address=str(
            raw.get("configurator_address", ProtocolConfig.configurator_address)
        ),
        collateral_asset=str(raw.get("collateral_asset", "")),
    )


def _build_reserve(raw: dict[str, Any]) -> ReserveConfig:
    return ReserveConfig(
        borrowing_enabled=bool(raw.get("borrowing_enabled", False)),
        is_collateral=bool(raw.get("is_collateral", False)),
        collateral_factor=int(raw.get("collateral_factor", 0)),
        supply_cap=int(raw.get("supply_cap", 0)),
        borrow_cap=int(raw.get("borrow_cap", 0)),
    )


def _build_tokens(raw: list[dict[str, Any]]) -> tuple[TokenConfig, ...]:
    tokens: list[TokenConfig] = []
    for t in raw:
        symbol = t.get("symbol", "")
        tokens.append(
            TokenConfig(
                symbol=symbol,
                name=t.get("name", symbol),
                address=str(t.get("address", "")),
                decimals=int(t.get("decimals", 6)),
                price=float(t.get("price", 0.0)),
                reserve=_build_reserve(t.get("reserve", {})),
            )
        )
    return tuple(tokens)


def _build_price_feed(raw: dict[str, Any]) -> PriceFeedConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceFeedConfig(
        provider=raw.get("provider", "static"),
        feeder=str(raw.get("feeder", PriceFeedConfig.feeder)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        protocol=_build_protocol(raw.get("protocol", {})),
        tokens=_build_tokens(raw.get("tokens", [])),
        price_feed=_build_price_feed(raw.get("price_feed", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.protocol.admin:
        raise ValueError("protocol.admin must be set")
    if not cfg.tokens:
        raise ValueError("At least one token must be configured")

    symbols: set[str] = set()
    addresses: set[str] = set()
    for token in cfg.tokens:
        if not token.symbol:
            raise ValueError("Every token needs a symbol")
        if not token.address:
            raise ValueError(f"Token '{token.symbol}' has no address")
        if token.symbol in symbols:
            raise ValueError(f"Duplicate token symbol '{token.symbol}'")
        if token.address.lower() in addresses:
            raise ValueError(f"Duplicate token address '{token.address}'")
        symbols.add(token.symbol)
        addresses.add(token.address.lower())
        if token.price < 0:
            raise ValueError(f"Token '{token.symbol}' has a negative price")
        if not 0 <= token.reserve.collateral_factor <= 10_000:
            raise ValueError(
                f"Token '{token.symbol}' collateral_factor must be within 0..10000"
            )

    collateral = cfg.protocol.collateral_asset
    if collateral:
        if collateral not in symbols:
            raise ValueError(f"Collateral asset '{collateral}' is not a configured token")
        if not cfg.token(collateral).reserve.is_collateral:
            raise ValueError(f"Collateral asset '{collateral}' is not a collateral reserve")

    if cfg.price_feed.provider not in PRICE_PROVIDERS:
        raise ValueError(
            f"Unknown price provider '{cfg.price_feed.provider}' "
            f"(expected one of {', '.join(PRICE_PROVIDERS)})"
        )
    for symbol in cfg.price_feed.pyth.feeds:
        if symbol not in symbols:
            raise ValueError(f"Pyth feed configured for unknown token '{symbol}'")
