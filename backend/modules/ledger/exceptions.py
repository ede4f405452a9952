"""
Ledger module exceptions.
"""

from decimal import Decimal

from shared.exceptions import NotFoundError, ValidationError


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction does not exist."""

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Transaction not found: {transaction_id}",
            code="TRANSACTION_NOT_FOUND",
            details={"transaction_id": transaction_id},
        )


class InvalidAmountError(ValidationError):
    """Raised when a transaction amount is invalid."""

    def __init__(self, amount: Decimal, reason: str):
        super().__init__(
            f"Invalid amount: {amount}. {reason}",
            code="INVALID_AMOUNT",
            details={"amount": str(amount), "reason": reason},
        )
