"""Account/asset address helpers."""
from __future__ import annotations

ZERO_ADDRESS = "0x" + "0" * 40


def normalize(address: str) -> str:
    """Addresses compare case-insensitively; store them lower-cased."""
    return address.lower()


def is_zero_address(address: str | None) -> bool:
    return not address or address.lower() == ZERO_ADDRESS
