"""Exception hierarchy.

Structural errors are plaintext-observable and raised before any state is
touched. Value limits (caps, liquidity, balances, debt, solvency) are never
errors: they are clamped inside the encrypted domain.
"""
from __future__ import annotations


class LendingError(Exception):
    """Root of every protocol error."""


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------


class StructuralError(LendingError):
    """Plaintext precondition failure; the whole operation is aborted."""


class ZeroAddress(StructuralError):
    pass


class UnknownAsset(StructuralError):
    pass


class ReserveNotActive(StructuralError):
    pass


class ReservePaused(StructuralError):
    pass


class ReserveNotInitialized(StructuralError):
    pass


class ReserveAlreadyInitialized(StructuralError):
    pass


class ReserveNotCollateral(StructuralError):
    pass


class BorrowingNotEnabled(StructuralError):
    pass


class ProtocolPaused(StructuralError):
    pass


class ProtocolAlreadyPaused(StructuralError):
    pass


class ProtocolNotPaused(StructuralError):
    pass


class OnlyPoolAdmin(StructuralError):
    pass


class OnlyEmergencyAdmin(StructuralError):
    pass


class OnlyRiskAdmin(StructuralError):
    pass


class OnlyPoolConfigurator(StructuralError):
    pass


class UnauthorizedAccount(StructuralError):
    """Caller lacks the role required to administer roles."""


class OnlyPriceFeed(StructuralError):
    pass


class NoCollateralEnabled(StructuralError):
    pass


class OraclePriceZero(StructuralError):
    pass


class MultipleDebtsNotAllowed(StructuralError):
    pass


class NotTheDesignatedCollateral(StructuralError):
    pass


class InvalidDebtRepayment(StructuralError):
    pass


class InvalidCollateralFactor(StructuralError):
    pass


class LendingPoolNotSet(StructuralError):
    pass


class ReentrantCall(StructuralError):
    pass


# ---------------------------------------------------------------------------
# Confidentiality errors
# ---------------------------------------------------------------------------


class ConfidentialityError(LendingError):
    """Ciphertext access or authentication failure."""


class InvalidInputProof(ConfidentialityError):
    pass


class DecryptionNotAllowed(ConfidentialityError):
    pass


class AmountNotAllowed(ConfidentialityError):
    """A ciphertext was handed to a contract that holds no permission on it."""


class UnauthorizedSpender(ConfidentialityError):
    pass
