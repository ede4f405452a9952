"""
Tokens module exceptions.
"""

from typing import Optional

from shared.exceptions import (
    ExternalServiceError,
    PermanentError,
    TransientError,
    ValidationError,
)


class BlockchainUnavailableError(TransientError):
    """The RPC node could not be reached or did not answer in time."""

    def __init__(
        self,
        operation: str,
        reason: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ):
        details = {"operation": operation}
        if tx_hash:
            details["tx_hash"] = tx_hash
        super().__init__(
            f"Blockchain call {operation} failed: {reason or 'unavailable'}",
            service="blockchain",
            code="BLOCKCHAIN_UNAVAILABLE",
            details=details,
        )


class TransactionPendingError(ExternalServiceError):
    """
    A transaction was sent but never confirmed.

    It may still be mined, so repeating the call could act twice. Not
    retryable: the transaction hash has to be reconciled first.
    """

    def __init__(self, operation: str, tx_hash: str):
        super().__init__(
            f"Blockchain call {operation} sent as {tx_hash} but not confirmed",
            service="blockchain",
            code="TRANSACTION_PENDING",
            details={"operation": operation, "tx_hash": tx_hash},
        )
        self.tx_hash = tx_hash


class ContractRevertError(PermanentError):
    """The lease token contract rejected the call."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        super().__init__(
            f"Lease token contract rejected {operation}: {reason or 'reverted'}",
            service="blockchain",
            code="CONTRACT_REVERT",
            details={"operation": operation, "reason": reason},
        )


class TransactionRejectedError(PermanentError):
    """The node refused the signed transaction (funds, gas, nonce)."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Node rejected {operation} transaction: {reason}",
            service="blockchain",
            code="TRANSACTION_REJECTED",
            details={"operation": operation, "reason": reason},
        )


class WalletRequiredError(ValidationError):
    """A lease token needs wallet addresses for both parties."""

    def __init__(self, user_id: str, role: str):
        super().__init__(
            f"The {role} must link a wallet before a lease token can be issued",
            code="WALLET_REQUIRED",
            details={"user_id": user_id, "role": role},
        )
