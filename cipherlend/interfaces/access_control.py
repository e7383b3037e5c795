"""Access control protocol: role store abstraction."""
from typing import Protocol


class AccessControl(Protocol):
    """Answers whether an account holds a role."""

    def has_role(self, role: str, account: str) -> bool: ...

    def is_pool_admin(self, account: str) -> bool: ...

    def is_emergency_admin(self, account: str) -> bool: ...

    def is_risk_admin(self, account: str) -> bool: ...
