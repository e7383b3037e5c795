"""Role store consulted by the pool, configurator and bootstrap."""
from __future__ import annotations

import logging
from collections import defaultdict

from .addresses import is_zero_address, normalize
from .errors import UnauthorizedAccount, ZeroAddress

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN"
POOL_ADMIN_ROLE = "POOL_ADMIN"
EMERGENCY_ADMIN_ROLE = "EMERGENCY_ADMIN"
RISK_ADMIN_ROLE = "RISK_ADMIN"


class ACLManager:
    """Role-based access control; the default admin administers every role."""

    def __init__(self, admin: str) -> None:
        if is_zero_address(admin):
            raise ZeroAddress("admin")
        self._members: dict[str, set[str]] = defaultdict(set)
        self._members[DEFAULT_ADMIN_ROLE].add(normalize(admin))

    def has_role(self, role: str, account: str) -> bool:
        return normalize(account) in self._members.get(role, ())

    def _require_admin(self, caller: str) -> None:
        if not self.has_role(DEFAULT_ADMIN_ROLE, caller):
            raise UnauthorizedAccount(f"{caller} lacks {DEFAULT_ADMIN_ROLE}")

    def grant_role(self, caller: str, role: str, account: str) -> None:
        self._require_admin(caller)
        if is_zero_address(account):
            raise ZeroAddress("account")
        self._members[role].add(normalize(account))
        logger.info("Role %s granted to %s", role, account)

    def revoke_role(self, caller: str, role: str, account: str) -> None:
        self._require_admin(caller)
        self._members[role].discard(normalize(account))
        logger.info("Role %s revoked from %s", role, account)

    def is_pool_admin(self, account: str) -> bool:
        return self.has_role(POOL_ADMIN_ROLE, account)

    def is_emergency_admin(self, account: str) -> bool:
        return self.has_role(EMERGENCY_ADMIN_ROLE, account)

    def is_risk_admin(self, account: str) -> bool:
        return self.has_role(RISK_ADMIN_ROLE, account)
