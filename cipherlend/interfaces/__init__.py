"""Collaborator interfaces consumed by the lending core."""
from .access_control import AccessControl
from .price_oracle import PriceOracle
from .settlement import SettlementToken

__all__ = ["AccessControl", "PriceOracle", "SettlementToken"]
