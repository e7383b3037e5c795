"""Pyth Network price feed pushing into the on-ledger oracle."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..oracle import PRICE_PRECISION, SimplePriceOracle

logger = logging.getLogger(__name__)


def to_fixed_point(price: float) -> int:
    """USD float price -> integer with the oracle's 6 decimals."""
    return int(round(price * PRICE_PRECISION))


class PythPriceFeed:
    """Fetch prices from Pyth Hermes and push them through a registered feeder."""

    def __init__(
        self,
        config: PythConfig,
        oracle: SimplePriceOracle | None = None,
        feeder: str = "",
        asset_addresses: dict[str, str] | None = None,
    ) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self.oracle = oracle
        self.feeder = feeder
        self.asset_addresses = dict(asset_addresses or {})

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices from Pyth Network.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.
        """
        prices: dict[str, float] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Hermes may return ids with or without the 0x prefix
                    id_to_symbols: dict[str, list[str]] = {}
                    for symbol, feed_id in feeds.items():
                        id_to_symbols.setdefault(_strip_0x(feed_id), []).append(symbol)

                    for item in parsed:
                        feed_id = _strip_0x(item.get("id", ""))
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        price = price_raw * (10**expo)

                        for symbol in id_to_symbols.get(feed_id, []):
                            prices[symbol] = price

                    logger.info("Fetched prices from Pyth Network:")
                    for symbol, price in sorted(prices.items()):
                        logger.info("  %s: $%.4f", symbol, price)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices

    def push_prices(self, prices: dict[str, float]) -> dict[str, int]:
        """Write fetched prices into the oracle; returns what was pushed per symbol."""
        if self.oracle is None:
            raise RuntimeError("PythPriceFeed has no oracle to push into")

        pushed: dict[str, int] = {}
        for symbol, price in sorted(prices.items()):
            asset = self.asset_addresses.get(symbol)
            if asset is None:
                logger.warning("No asset address for %s, skipping", symbol)
                continue
            fixed = to_fixed_point(price)
            if fixed <= 0:
                logger.warning("Ignoring non-positive price for %s: %s", symbol, price)
                continue
            self.oracle.update_price(self.feeder, asset, fixed)
            pushed[symbol] = fixed
        logger.info("Pushed %d price(s) to the oracle", len(pushed))
        return pushed

    async def refresh(self, symbols: list[str] | None = None) -> dict[str, int]:
        prices = await self.fetch_prices(symbols)
        return self.push_prices(prices)


def _strip_0x(feed_id: str) -> str:
    return feed_id[2:] if feed_id.startswith("0x") else feed_id
