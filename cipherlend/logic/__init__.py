"""Accounting engines delegated to by the lending pool."""
from .borrow import execute_borrow, execute_repay
from .supply import execute_supply, execute_withdraw

__all__ = ["execute_borrow", "execute_repay", "execute_supply", "execute_withdraw"]
