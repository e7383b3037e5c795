"""Branch-free overflow/underflow-safe arithmetic on encrypted integers.

Every decision is an encrypted comparison feeding ``fhe.select``; nothing
here ever learns whether a clamp happened.
"""
from __future__ import annotations

from . import fhe
from .fhe import Euint, Operand


def safe_add(a: Euint, b: Operand) -> Euint:
    """``a + b``, or encrypted zero when the sum wraps past the domain."""
    total = fhe.add(a, b)
    overflowed = fhe.lt(total, a)
    return fhe.select(overflowed, 0, total)


def safe_sub(a: Operand, b: Operand) -> Euint:
    """``a - b``, or encrypted zero when ``b > a``."""
    difference = fhe.sub(a, b)
    underflowed = fhe.gt(b, a)
    return fhe.select(underflowed, 0, difference)


def cap(requested: Euint, limit: Operand) -> Euint:
    """Homomorphic ``min(requested, limit)``.

    Callers treat a plaintext limit of ``0`` as "no ceiling" and skip this
    call entirely; encrypted infinity is not representable.
    """
    return fhe.min_(requested, limit)


def cap_to_headroom(requested: Euint, ceiling: int, used: Euint) -> Euint:
    """Clamp ``requested`` to what is left under a plaintext ``ceiling``.

    A ``ceiling`` of zero means unlimited and returns ``requested`` untouched.
    An exhausted ceiling resolves to encrypted zero.
    """
    if ceiling == 0:
        return requested
    return cap(requested, safe_sub(ceiling, used))
