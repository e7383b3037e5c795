"""Opaque ciphertext handles.

A ciphertext is only a handle into the :class:`~cipherlend.fhe.runtime.FheRuntime`
that produced it. It carries no plaintext and refuses every conversion that
would let a secret drive host-language control flow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .runtime import FheRuntime

SUPPORTED_BITS: tuple[int, ...] = (8, 16, 32, 64, 128, 256)


@dataclass(frozen=True, eq=False)
class Ciphertext:
    handle: int
    bits: int
    runtime: "FheRuntime" = field(repr=False, compare=False)

    @property
    def type_name(self) -> str:
        return f"euint{self.bits}"

    def hex(self) -> str:
        return f"0x{self.handle:064x}"

    # Handles are immutable, so copies share identity.
    def __copy__(self) -> "Ciphertext":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "Ciphertext":
        return self

    def __bool__(self) -> bool:
        raise TypeError(
            f"{self.type_name} cannot be used as a plaintext condition; use select()"
        )

    def __int__(self) -> int:
        raise TypeError(f"{self.type_name} has no plaintext value; decrypt it instead")

    __index__ = __int__

    def __lt__(self, other: object) -> bool:
        raise TypeError("use fhe.lt() for encrypted comparison")

    __le__ = __gt__ = __ge__ = __lt__

    def __repr__(self) -> str:
        return f"<{self.type_name} {self.hex()}>"


class Euint(Ciphertext):
    """Encrypted unsigned integer of ``bits`` width."""


class Ebool(Ciphertext):
    """Encrypted boolean."""

    @property
    def type_name(self) -> str:
        return "ebool"
