"""Price protocol consumed by the lending pool."""
from typing import Protocol


class PriceOracle(Protocol):
    """Plaintext price per asset, 6 decimals; zero means unavailable."""

    def get_price(self, asset: str) -> int: ...
