"""Off-ledger price sources."""
from .pyth import PythPriceFeed

__all__ = ["PythPriceFeed"]
