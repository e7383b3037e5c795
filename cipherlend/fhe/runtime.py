"""In-process model of an encrypted-integer co-processor.

The runtime keeps the plaintext behind every handle and evaluates the
homomorphic operations. Callers only ever hold handles; reading a value back
requires an ACL grant (:meth:`FheRuntime.decrypt`).
"""
from __future__ import annotations

import hashlib
import hmac
import itertools
import logging
import secrets
import weakref
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, TypeVar, Union

from ..errors import DecryptionNotAllowed, InvalidInputProof
from .types import SUPPORTED_BITS, Ciphertext, Ebool, Euint

logger = logging.getLogger(__name__)

Operand = Union[Euint, int]
C = TypeVar("C", bound=Ciphertext)


@dataclass(frozen=True)
class EncryptedInput:
    """Client-side encrypted amount: a handle plus the proof binding it."""

    handle: int
    proof: str


def _normalize(account: str) -> str:
    return account.lower()


class FheRuntime:
    """Handle store, homomorphic evaluator and access-control list.

    Plaintexts and ACL entries live only as long as some caller still holds
    the ciphertext object, so throwaway intermediates from ``cap`` or
    ``select`` are dropped as soon as they go out of scope. Client inputs
    from :meth:`encrypt_input` are pinned for the life of the runtime.
    """

    def __init__(self, secret: bytes | None = None) -> None:
        self._secret = secret or secrets.token_bytes(32)
        self._handles = itertools.count(1)
        self._plaintexts: dict[int, int] = {}
        self._ciphertexts: weakref.WeakValueDictionary[int, Ciphertext] = (
            weakref.WeakValueDictionary()
        )
        self._inputs: dict[int, Euint] = {}
        self._acl: dict[int, set[str]] = defaultdict(set)
        self._transient: dict[int, set[str]] = defaultdict(set)
        self._public: set[int] = set()

    # ------------------------------------------------------------------
    # Handle management
    # ------------------------------------------------------------------

    def _new(self, cls: type[C], bits: int, value: int) -> C:
        handle = next(self._handles)
        self._plaintexts[handle] = value % (1 << bits)
        ct = cls(handle=handle, bits=bits, runtime=self)
        self._ciphertexts[handle] = ct
        weakref.finalize(ct, self._release, handle).atexit = False
        return ct

    def _release(self, handle: int) -> None:
        self._plaintexts.pop(handle, None)
        self._acl.pop(handle, None)
        self._transient.pop(handle, None)
        self._public.discard(handle)

    @property
    def live_handles(self) -> int:
        return len(self._plaintexts)

    def _value(self, ct: Ciphertext) -> int:
        if ct.runtime is not self:
            raise ValueError(f"{ct!r} belongs to a different runtime")
        return self._plaintexts[ct.handle]

    @staticmethod
    def _check_bits(bits: int) -> None:
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported ciphertext width: {bits}")

    def as_euint(self, value: int, bits: int = 64) -> Euint:
        """Trivially encrypt a plaintext constant."""
        self._check_bits(bits)
        if value < 0 or value >= (1 << bits):
            raise ValueError(f"{value} does not fit in euint{bits}")
        return self._new(Euint, bits, value)

    def as_ebool(self, value: bool) -> Ebool:
        return self._new(Ebool, 1, int(bool(value)))

    # ------------------------------------------------------------------
    # External inputs
    # ------------------------------------------------------------------

    def _proof_for(self, handle: int, contract: str, user: str) -> str:
        message = f"{handle}:{_normalize(contract)}:{_normalize(user)}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def encrypt_input(
        self, value: int, contract: str, user: str, bits: int = 64
    ) -> EncryptedInput:
        """Encrypt ``value`` for use by ``user`` when calling ``contract``."""
        ct = self.as_euint(value, bits)
        self._inputs[ct.handle] = ct
        return EncryptedInput(handle=ct.handle, proof=self._proof_for(ct.handle, contract, user))

    def from_external(
        self, handle: int, proof: str, contract: str, caller: str
    ) -> Euint:
        """Authenticate an encrypted input and return its ciphertext."""
        expected = self._proof_for(handle, contract, caller)
        if not hmac.compare_digest(expected, proof or ""):
            logger.debug("Rejected input proof for handle %#x (caller %s)", handle, caller)
            raise InvalidInputProof(f"Input proof rejected for handle {handle:#x}")
        ct = self._ciphertexts.get(handle)
        if not isinstance(ct, Euint) or ct.bits != 64:
            raise InvalidInputProof(f"Handle {handle:#x} is not an external euint64")
        return ct

    # ------------------------------------------------------------------
    # Homomorphic evaluation
    # ------------------------------------------------------------------

    def _operand(self, x: Operand, bits: int) -> int:
        if isinstance(x, Ciphertext):
            if x.bits != bits:
                raise TypeError(f"Width mismatch: euint{bits} vs {x.type_name}")
            return self._value(x)
        if isinstance(x, bool) or not isinstance(x, int):
            raise TypeError(f"Unsupported operand: {x!r}")
        if x < 0 or x >= (1 << bits):
            raise ValueError(f"Scalar {x} does not fit in euint{bits}")
        return x

    @staticmethod
    def _width(a: Operand, b: Operand) -> int:
        for x in (a, b):
            if isinstance(x, Euint):
                return x.bits
        raise TypeError("At least one operand must be an encrypted integer")

    def _arith(self, a: Operand, b: Operand, fn: Callable[[int, int], int]) -> Euint:
        bits = self._width(a, b)
        return self._new(Euint, bits, fn(self._operand(a, bits), self._operand(b, bits)))

    def _compare(self, a: Operand, b: Operand, fn: Callable[[int, int], bool]) -> Ebool:
        bits = self._width(a, b)
        return self._new(Ebool, 1, int(fn(self._operand(a, bits), self._operand(b, bits))))

    def add(self, a: Operand, b: Operand) -> Euint:
        return self._arith(a, b, lambda x, y: x + y)

    def sub(self, a: Operand, b: Operand) -> Euint:
        return self._arith(a, b, lambda x, y: x - y)

    def mul(self, a: Operand, b: Operand) -> Euint:
        return self._arith(a, b, lambda x, y: x * y)

    def div(self, a: Euint, divisor: int) -> Euint:
        """Division by a plaintext divisor."""
        if isinstance(divisor, Ciphertext):
            raise TypeError("Encrypted divisors are not supported")
        if divisor == 0:
            raise ZeroDivisionError("division of a ciphertext by zero")
        return self._arith(a, divisor, lambda x, y: x // y)

    def min(self, a: Operand, b: Operand) -> Euint:
        return self._arith(a, b, min)

    def max(self, a: Operand, b: Operand) -> Euint:
        return self._arith(a, b, max)

    def eq(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x == y)

    def ne(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x != y)

    def lt(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x < y)

    def le(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x <= y)

    def gt(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x > y)

    def ge(self, a: Operand, b: Operand) -> Ebool:
        return self._compare(a, b, lambda x, y: x >= y)

    def and_(self, a: Ebool, b: Ebool) -> Ebool:
        return self._new(Ebool, 1, self._value(a) & self._value(b))

    def or_(self, a: Ebool, b: Ebool) -> Ebool:
        return self._new(Ebool, 1, self._value(a) | self._value(b))

    def not_(self, a: Ebool) -> Ebool:
        return self._new(Ebool, 1, 1 - self._value(a))

    def select(self, cond: Ebool, a: Operand, b: Operand) -> Euint:
        """``cond ? a : b`` evaluated without revealing ``cond``."""
        if not isinstance(cond, Ebool):
            raise TypeError("select() needs an encrypted boolean condition")
        bits = self._width(a, b)
        when_true, when_false = self._operand(a, bits), self._operand(b, bits)
        return self._new(Euint, bits, when_true if self._value(cond) else when_false)

    def cast(self, a: Euint, bits: int) -> Euint:
        """Re-encrypt at another width; narrowing truncates."""
        self._check_bits(bits)
        return self._new(Euint, bits, self._value(a))

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def allow(self, ct: Ciphertext, account: str) -> None:
        self._acl[ct.handle].add(_normalize(account))

    def allow_transient(self, ct: Ciphertext, account: str) -> None:
        self._transient[ct.handle].add(_normalize(account))

    def clear_transient(self) -> None:
        self._transient.clear()

    def make_publicly_decryptable(self, ct: Ciphertext) -> None:
        self._public.add(ct.handle)

    def is_publicly_decryptable(self, ct: Ciphertext) -> bool:
        return ct.handle in self._public

    def is_allowed(self, ct: Ciphertext, account: str) -> bool:
        account = _normalize(account)
        return account in self._acl.get(ct.handle, ()) or account in self._transient.get(
            ct.handle, ()
        )

    # ------------------------------------------------------------------
    # Decryption
    # ------------------------------------------------------------------

    def decrypt(self, ct: Ciphertext, requester: str) -> int:
        """Re-encrypt for ``requester`` and reveal the value to them."""
        if not (self.is_allowed(ct, requester) or self.is_publicly_decryptable(ct)):
            raise DecryptionNotAllowed(f"{requester} may not decrypt {ct!r}")
        return self._value(ct)

    def public_decrypt(self, ct: Ciphertext) -> int:
        if not self.is_publicly_decryptable(ct):
            raise DecryptionNotAllowed(f"{ct!r} is not publicly decryptable")
        return self._value(ct)
