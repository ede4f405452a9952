"""
Lease token contract clients.

Web3LeaseTokenClient talks to the deployed lease-token contract over
JSON-RPC. InMemoryLeaseTokenClient applies the same contract rules without a
chain and backs tests and local development.
"""

import asyncio
import logging
import secrets
from typing import Any, Awaitable, Callable, Optional

from eth_account import Account
from eth_utils import is_address, to_checksum_address
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError
from web3.logs import DISCARD
from web3.providers.rpc import AsyncHTTPProvider

from shared.config import Settings, get_settings
from shared.exceptions import TransientError

from .interfaces import ILeaseTokenClient
from .models import IssuedToken, LeaseTokenRequest
from .exceptions import (
    BlockchainUnavailableError,
    ContractRevertError,
    TransactionPendingError,
    TransactionRejectedError,
)

logger = logging.getLogger(__name__)

# Address the first contract deployed on a fresh local dev chain receives
LOCAL_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"

LEASE_TOKEN_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "mintLeaseToken",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "domainName", "type": "string"},
            {"name": "lessor", "type": "address"},
            {"name": "lessee", "type": "address"},
            {"name": "startDate", "type": "uint256"},
            {"name": "endDate", "type": "uint256"},
            {"name": "price", "type": "uint256"},
            {"name": "restrictions", "type": "string"},
            {"name": "agreementHash", "type": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "terminateLease",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "LeaseTokenMinted",
        "anonymous": False,
        "inputs": [
            {"name": "tokenId", "type": "uint256", "indexed": True},
            {"name": "domainName", "type": "string", "indexed": False},
            {"name": "lessee", "type": "address", "indexed": True},
        ],
    },
]


class Web3LeaseTokenClient(ILeaseTokenClient):
    """
    Lease token client backed by a JSON-RPC node.

    Transactions are signed locally with the platform key. Network failures
    are retried with exponential backoff; reverts and node rejections are
    not. A transaction that was sent but never confirmed surfaces as
    TransactionPendingError carrying its hash.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        wait: Optional[wait_base] = None,
    ):
        settings = settings or get_settings()
        self._timeout = settings.blockchain_timeout_seconds
        self._max_attempts = settings.blockchain_max_attempts
        self._wait = wait or wait_exponential(multiplier=1, min=1, max=10)

        self._w3 = AsyncWeb3(
            AsyncHTTPProvider(
                settings.blockchain_rpc_url,
                request_kwargs={"timeout": self._timeout},
            )
        )
        self._account = Account.from_key(settings.blockchain_private_key)
        self._contract = self._w3.eth.contract(
            address=to_checksum_address(settings.lease_token_contract_address),
            abi=LEASE_TOKEN_ABI,
        )

    @property
    def contract_address(self) -> str:
        return self._contract.address

    async def issue_lease_token(self, request: LeaseTokenRequest) -> IssuedToken:
        call = self._contract.functions.mintLeaseToken(
            request.domain_name,
            to_checksum_address(request.lessor_address),
            to_checksum_address(request.lessee_address),
            int(request.start_date.timestamp()),
            int(request.end_date.timestamp()),
            request.price_wei,
            request.restrictions,
            Web3.to_bytes(hexstr=request.agreement_hash),
        )
        receipt, tx_hash = await self._transact("mintLeaseToken", call)

        events = self._contract.events.LeaseTokenMinted().process_receipt(
            receipt, errors=DISCARD
        )
        if not events:
            raise ContractRevertError("mintLeaseToken", "no LeaseTokenMinted event in receipt")

        token_id = str(events[0]["args"]["tokenId"])
        logger.info(f"Minted lease token {token_id} for {request.domain_name} in {tx_hash}")
        return IssuedToken(
            contract_address=self.contract_address,
            token_id=token_id,
            tx_hash=tx_hash,
        )

    async def terminate_lease_token(self, contract_address: str, token_id: str) -> str:
        if to_checksum_address(contract_address) != self.contract_address:
            raise ContractRevertError(
                "terminateLease", f"token belongs to unknown contract {contract_address}"
            )
        call = self._contract.functions.terminateLease(int(token_id))
        _, tx_hash = await self._transact("terminateLease", call)
        logger.info(f"Terminated lease token {token_id} in {tx_hash}")
        return tx_hash

    async def _with_retry(
        self, operation: str, send: Callable[[], Awaitable[Any]]
    ) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(TransientError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await send()

    async def _transact(self, operation: str, call: Any) -> tuple[Any, str]:
        """
        Sign, broadcast and confirm one contract transaction.

        Only signing is retried from scratch. Once the transaction may have
        reached the node, the client sticks to that one signed payload and
        its hash, so a call mints or terminates at most once.

        Returns:
            The receipt and the 0x-prefixed transaction hash
        """
        signed = await self._with_retry(operation, lambda: self._sign(operation, call))
        tx_hash = await self._broadcast(operation, signed)
        receipt = await self._await_receipt(operation, tx_hash)
        if receipt["status"] != 1:
            raise ContractRevertError(operation, f"transaction {tx_hash} reverted")
        return receipt, tx_hash

    async def _sign(self, operation: str, call: Any) -> Any:
        try:
            nonce = await self._w3.eth.get_transaction_count(self._account.address, "pending")
            tx = await call.build_transaction(
                {"from": self._account.address, "nonce": nonce}
            )
        except ContractLogicError as e:
            raise ContractRevertError(operation, str(e)) from e
        except (asyncio.TimeoutError, OSError) as e:
            raise BlockchainUnavailableError(operation, str(e)) from e
        return self._account.sign_transaction(tx)

    async def _broadcast(self, operation: str, signed: Any) -> str:
        """Send one signed transaction, resending the same bytes on network errors."""
        tx_hash = Web3.to_hex(signed.hash)
        maybe_sent = False

        async def send() -> None:
            nonlocal maybe_sent
            try:
                await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            except Web3RPCError as e:
                if not maybe_sent:
                    raise TransactionRejectedError(operation, str(e)) from e
                # The timed-out send reached the node after all ("already known")
                logger.warning(f"Resend of {tx_hash} rejected, waiting for it instead: {e}")
            except asyncio.TimeoutError as e:
                maybe_sent = True
                raise BlockchainUnavailableError(operation, str(e), tx_hash=tx_hash) from e
            except OSError as e:
                raise BlockchainUnavailableError(operation, str(e)) from e

        try:
            await self._with_retry(operation, send)
        except BlockchainUnavailableError as e:
            if maybe_sent:
                logger.error(f"{operation} transaction {tx_hash} may be on-chain: {e.message}")
                raise TransactionPendingError(operation, tx_hash) from e
            raise
        return tx_hash

    async def _await_receipt(self, operation: str, tx_hash: str) -> Any:
        """Poll for the receipt of an already broadcast transaction."""

        async def poll() -> Any:
            try:
                return await self._w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self._timeout
                )
            except (TimeExhausted, asyncio.TimeoutError, OSError) as e:
                raise BlockchainUnavailableError(operation, str(e), tx_hash=tx_hash) from e

        try:
            return await self._with_retry(operation, poll)
        except BlockchainUnavailableError as e:
            logger.error(f"{operation} transaction {tx_hash} sent but unconfirmed: {e.message}")
            raise TransactionPendingError(operation, tx_hash) from e


class InMemoryLeaseTokenClient(ILeaseTokenClient):
    """Contract double enforcing the lease token contract's rules."""

    def __init__(self, contract_address: str = LOCAL_CONTRACT_ADDRESS):
        self._contract_address = contract_address
        self._next_token_id = 1
        # token_id -> domain name, for tokens not yet terminated
        self._active: dict[str, str] = {}

    @property
    def contract_address(self) -> str:
        return self._contract_address

    @property
    def active_tokens(self) -> dict[str, str]:
        return dict(self._active)

    async def issue_lease_token(self, request: LeaseTokenRequest) -> IssuedToken:
        if request.domain_name in self._active.values():
            raise ContractRevertError("mintLeaseToken", "domain already has a lease token")
        if request.end_date <= request.start_date:
            raise ContractRevertError("mintLeaseToken", "end date must be after start date")
        if not is_address(request.lessee_address):
            raise ContractRevertError("mintLeaseToken", "invalid lessee address")

        token_id = str(self._next_token_id)
        self._next_token_id += 1
        self._active[token_id] = request.domain_name
        return IssuedToken(
            contract_address=self._contract_address,
            token_id=token_id,
            tx_hash=f"0x{secrets.token_hex(32)}",
        )

    async def terminate_lease_token(self, contract_address: str, token_id: str) -> str:
        if contract_address != self._contract_address or token_id not in self._active:
            raise ContractRevertError("terminateLease", f"no active lease token {token_id}")
        del self._active[token_id]
        return f"0x{secrets.token_hex(32)}"
