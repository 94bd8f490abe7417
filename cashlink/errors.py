"""Errors raised while building cash link transactions.

Precondition errors are raised before any instruction is built so callers
never receive a half-formed instruction list.
"""

from typing import Optional


class CashLinkError(Exception):
    """Base class for every error raised by this package."""

    message = "Cash link error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class AccountNotFound(CashLinkError):
    message = "Failed to find account"


class InvalidOwner(CashLinkError):
    message = "Invalid account owner"


class InvalidState(CashLinkError):
    message = "Invalid account state"


class AccountAlreadyCanceled(InvalidState):
    message = "Account already canceled"


class AccountAlreadySettled(InvalidState):
    message = "Account already settled"


class AccountNotCanceled(InvalidState):
    message = "Account not canceled"


class AccountHasRedemptions(InvalidState):
    message = "Account has redemptions"


class AccountAlreadyExists(InvalidState):
    message = "Account already exists"


class MaxRedemptionsReached(InvalidState):
    message = "Max redemptions reached"


class FingerprintAlreadyUsed(InvalidState):
    message = "Fingerprint already redeemed"


class MissingRequiredInput(CashLinkError):
    message = "Missing required input"


class FingerprintRequired(MissingRequiredInput):
    message = "Fingerprint required"


class ReferrerRequired(MissingRequiredInput):
    message = "Referrer required"


class WeightRequired(MissingRequiredInput):
    message = "Weight required"


class InvalidInput(CashLinkError, ValueError):
    message = "Invalid input"


class InvalidAmount(InvalidInput):
    message = "Invalid amount"


class AmountOverflow(InvalidInput):
    message = "Amount overflow"


class InvalidSignature(CashLinkError):
    message = "Invalid signature"


class TransactionSendError(CashLinkError):
    message = "Transaction send error"
