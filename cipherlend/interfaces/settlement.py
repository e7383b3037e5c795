"""Settlement protocol: confidential token transfers."""
from typing import Protocol

from ..fhe import Euint


class SettlementToken(Protocol):
    """Encrypted-balance token the pool settles supply/borrow flows with."""

    @property
    def address(self) -> str: ...

    @property
    def decimals(self) -> int: ...

    def confidential_transfer_from(
        self, caller: str, sender: str, recipient: str, amount: Euint
    ) -> Euint: ...

    def confidential_transfer(self, caller: str, recipient: str, amount: Euint) -> Euint: ...

    def confidential_balance_of(self, account: str) -> Euint | None: ...
