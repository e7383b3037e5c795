"""Confidential lending: encrypted balances, plaintext policy."""
from .pool import ConfidentialLendingPool

__version__ = "0.1.0"

__all__ = ["ConfidentialLendingPool", "__version__"]
