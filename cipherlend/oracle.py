"""Owner-managed plaintext price oracle with registered price feeds."""
from __future__ import annotations

import logging

from .addresses import is_zero_address, normalize
from .errors import OnlyPriceFeed, UnauthorizedAccount, ZeroAddress

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 6
PRICE_PRECISION = 10**PRICE_DECIMALS


class SimplePriceOracle:
    """Prices are integers with 6 decimals; an unset asset reads as 0."""

    def __init__(self, owner: str) -> None:
        if is_zero_address(owner):
            raise ZeroAddress("owner")
        self.owner = normalize(owner)
        self._prices: dict[str, int] = {}
        self._feeds: set[str] = set()

    def _require_owner(self, caller: str) -> None:
        if normalize(caller) != self.owner:
            raise UnauthorizedAccount(f"{caller} is not the oracle owner")

    @staticmethod
    def _check_price(price: int) -> None:
        if price < 0:
            raise ValueError(f"Price must be non-negative, got {price}")

    def get_price(self, asset: str) -> int:
        return self._prices.get(normalize(asset), 0)

    def set_price(self, caller: str, asset: str, price: int) -> None:
        self._require_owner(caller)
        self._check_price(price)
        self._prices[normalize(asset)] = int(price)
        logger.info("Price set for %s: %d", asset, price)

    def add_price_feed(self, caller: str, feed: str) -> None:
        self._require_owner(caller)
        if is_zero_address(feed):
            raise ZeroAddress("feed")
        self._feeds.add(normalize(feed))
        logger.info("Price feed added: %s", feed)

    def remove_price_feed(self, caller: str, feed: str) -> None:
        self._require_owner(caller)
        self._feeds.discard(normalize(feed))
        logger.info("Price feed removed: %s", feed)

    def is_price_feed(self, account: str) -> bool:
        return normalize(account) in self._feeds

    def update_price(self, caller: str, asset: str, price: int) -> None:
        """Price push from a registered feed."""
        if not self.is_price_feed(caller):
            raise OnlyPriceFeed(f"{caller} is not a registered price feed")
        self._check_price(price)
        self._prices[normalize(asset)] = int(price)
        logger.debug("Price updated by feed %s for %s: %d", caller, asset, price)
