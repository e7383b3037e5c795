"""Encrypted-integer primitives.

Module-level helpers mirror the homomorphic operation set and dispatch to the
runtime that owns the first ciphertext operand, so call sites read as
``fhe.select(fhe.lt(a, b), a, b)``.
"""
from __future__ import annotations

from .runtime import EncryptedInput, FheRuntime, Operand
from .types import Ciphertext, Ebool, Euint

UINT64_MAX = (1 << 64) - 1


def _rt(*operands: object) -> FheRuntime:
    for x in operands:
        if isinstance(x, Ciphertext):
            return x.runtime
    raise TypeError("At least one operand must be a ciphertext")


def add(a: Operand, b: Operand) -> Euint:
    return _rt(a, b).add(a, b)


def sub(a: Operand, b: Operand) -> Euint:
    return _rt(a, b).sub(a, b)


def mul(a: Operand, b: Operand) -> Euint:
    return _rt(a, b).mul(a, b)


def div(a: Euint, divisor: int) -> Euint:
    return _rt(a).div(a, divisor)


def min_(a: Operand, b: Operand) -> Euint:
    return _rt(a, b).min(a, b)


def max_(a: Operand, b: Operand) -> Euint:
    return _rt(a, b).max(a, b)


def eq(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).eq(a, b)


def ne(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).ne(a, b)


def lt(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).lt(a, b)


def le(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).le(a, b)


def gt(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).gt(a, b)


def ge(a: Operand, b: Operand) -> Ebool:
    return _rt(a, b).ge(a, b)


def and_(a: Ebool, b: Ebool) -> Ebool:
    return _rt(a, b).and_(a, b)


def or_(a: Ebool, b: Ebool) -> Ebool:
    return _rt(a, b).or_(a, b)


def not_(a: Ebool) -> Ebool:
    return _rt(a).not_(a)


def select(cond: Ebool, a: Operand, b: Operand) -> Euint:
    return _rt(cond).select(cond, a, b)


def cast(a: Euint, bits: int) -> Euint:
    return _rt(a).cast(a, bits)


__all__ = [
    "Ciphertext",
    "Ebool",
    "EncryptedInput",
    "Euint",
    "FheRuntime",
    "UINT64_MAX",
    "add",
    "and_",
    "cast",
    "div",
    "eq",
    "ge",
    "gt",
    "le",
    "lt",
    "max_",
    "min_",
    "mul",
    "ne",
    "not_",
    "or_",
    "select",
    "sub",
]
