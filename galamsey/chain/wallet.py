"""
Wallet adapter for on-chain report recording
Submits report fingerprints to the registry contract and reads rewards back
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from galamsey.chain.config import ChainConfig
from galamsey.core.constants import REPORT_REGISTRY_ABI

logger = logging.getLogger(__name__)


class WalletError(Exception):
    """Base class for wallet and chain failures."""


class WalletNotConnectedError(WalletError):
    """No signer is available."""


class NetworkSwitchRejectedError(WalletError):
    """The wallet could not be moved onto the expected network."""


class DuplicateReportHashError(WalletError):
    """The registry already holds this report hash."""


class ChainTimeoutError(WalletError):
    """The transaction was sent but no receipt arrived in time."""


class ChainDecodeError(WalletError):
    """A contract read returned a value of the wrong type."""


@dataclass(frozen=True)
class ChainReceipt:
    """Confirmed registry transaction."""
    tx_hash: str
    block_number: Optional[int] = None


@dataclass(frozen=True)
class Rewards:
    """Rewards accumulated by a reporter address."""
    amount_wei: int
    report_count: int

    @property
    def amount(self) -> Decimal:
        return Web3.from_wei(self.amount_wei, "ether")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount_wei": str(self.amount_wei),
            "amount": str(self.amount),
            "report_count": self.report_count,
        }


def hash_report_data(report_id: str, date: str, location: str, timestamp: int) -> str:
    """
    Fingerprint of the non-personal report fields.

    The description and photos are never part of the hashed payload.

    Returns:
        0x-prefixed keccak256 hex digest
    """
    payload = json.dumps(
        {
            "reportId": report_id,
            "date": date,
            "location": location,
            "timestamp": timestamp,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return Web3.to_hex(Web3.keccak(text=payload))


def format_tx_hash(tx_hash: str) -> str:
    """Shorten a transaction hash for display."""
    if not tx_hash or len(tx_hash) < 10:
        return tx_hash
    return f"{tx_hash[:6]}...{tx_hash[-4:]}"


def explorer_url(config: ChainConfig, tx_hash: str) -> str:
    return f"{config.explorer_url.rstrip('/')}/tx/{tx_hash}"


def _decode_uint(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ChainDecodeError(f"{name} returned {value!r}, expected uint256")
    return value


class Web3WalletAdapter:
    """
    Wallet backed by a locally held signing key.

    Every call is network-bound and may fail; callers treat each one as
    fallible.
    """

    def __init__(
        self,
        config: ChainConfig,
        private_key: Optional[str] = None,
        web3: Optional[AsyncWeb3] = None
    ):
        """
        Initialize wallet adapter.

        Args:
            config: Target chain and contract
            private_key: Signing key used by connect()
            web3: Preconfigured client (defaults to config.rpc_url)
        """
        self.config = config
        self._private_key = private_key
        self._account = None
        self.w3 = web3 or self._build_client(config.rpc_url)
        # Held from nonce lookup to broadcast, and while the client is rebound
        self._tx_lock = asyncio.Lock()

    def _build_client(self, rpc_url: str) -> AsyncWeb3:
        return AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": self.config.rpc_timeout_seconds},
            )
        )

    @property
    def is_connected(self) -> bool:
        return self._account is not None

    @property
    def address(self) -> Optional[str]:
        return self._account.address if self._account else None

    async def connect(self) -> str:
        """Load the signer and return its address."""
        if not self._private_key:
            raise WalletNotConnectedError("No wallet key configured")
        try:
            self._account = Account.from_key(self._private_key)
        except Exception as e:
            raise WalletNotConnectedError("Wallet key is invalid") from e

        logger.info(f"Wallet connected: {self._account.address}")
        return self._account.address

    async def disconnect(self) -> None:
        self._account = None
        logger.info("Wallet disconnected")

    async def current_network(self) -> int:
        """Chain id the client is currently talking to."""
        return await self._chain_id(self.w3)

    async def _chain_id(self, client: AsyncWeb3) -> int:
        try:
            return int(await client.eth.chain_id)
        except (Web3Exception, OSError) as e:
            raise WalletError(f"Could not read network: {e}") from e

    async def is_on_expected_network(self) -> bool:
        return await self.current_network() == self.config.chain_id

    async def switch_to_expected_network(self) -> None:
        """
        Rebind the client to the configured RPC endpoint.

        Raises:
            NetworkSwitchRejectedError: if the endpoint serves another chain
        """
        candidate = self._build_client(self.config.rpc_url)
        chain_id = await self._chain_id(candidate)
        if chain_id != self.config.chain_id:
            raise NetworkSwitchRejectedError(
                f"Endpoint serves chain {chain_id}, expected "
                f"{self.config.chain_name} ({self.config.chain_id})"
            )
        async with self._tx_lock:
            self.w3 = candidate
        logger.info(f"Switched to {self.config.chain_name}")

    def _contract(self):
        if not self.config.is_contract_configured:
            raise WalletError("Report registry contract is not configured")
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(self.config.contract_address),
            abi=REPORT_REGISTRY_ABI,
        )

    async def is_hash_recorded(self, report_hash: str) -> bool:
        contract = self._contract()
        result = await contract.functions.isReportSubmitted(
            Web3.to_bytes(hexstr=report_hash)
        ).call()
        if not isinstance(result, bool):
            raise ChainDecodeError(f"isReportSubmitted returned {result!r}")
        return result

    async def submit_hash(self, report_hash: str) -> ChainReceipt:
        """
        Record a report hash on chain and wait for the receipt.

        Raises:
            WalletNotConnectedError: no signer loaded
            DuplicateReportHashError: hash already recorded
            ChainTimeoutError: no receipt within the configured timeout
            WalletError: any other chain failure
        """
        if self._account is None:
            raise WalletNotConnectedError("Connect a wallet before recording on chain")

        contract = self._contract()
        hash_bytes = Web3.to_bytes(hexstr=report_hash)

        try:
            if await self.is_hash_recorded(report_hash):
                raise DuplicateReportHashError(f"Hash {report_hash} already recorded")

            sender = self._account.address
            async with self._tx_lock:
                # Pending count so queued transactions from this signer are not reused
                nonce = await self.w3.eth.get_transaction_count(sender, "pending")
                tx = await contract.functions.submitReport(hash_bytes).build_transaction({
                    "from": sender,
                    "nonce": nonce,
                    "chainId": self.config.chain_id,
                })
                signed = self._account.sign_transaction(tx)
                raw = getattr(signed, "raw_transaction", None) or signed.rawTransaction
                sent = await self.w3.eth.send_raw_transaction(raw)
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                sent, timeout=self.config.receipt_timeout_seconds
            )
        except ContractLogicError as e:
            if "already" in str(e).lower():
                raise DuplicateReportHashError(str(e)) from e
            raise WalletError(f"Contract rejected report: {e}") from e
        except TimeExhausted as e:
            raise ChainTimeoutError("Timed out waiting for transaction receipt") from e
        except Web3Exception as e:
            raise WalletError(f"Chain submission failed: {e}") from e

        if receipt.get("status") != 1:
            raise WalletError("Transaction reverted")

        tx_hash = Web3.to_hex(receipt["transactionHash"])
        logger.info(f"Report hash recorded in tx {format_tx_hash(tx_hash)}")
        return ChainReceipt(tx_hash=tx_hash, block_number=receipt.get("blockNumber"))

    async def rewards_for(self, address: str) -> Rewards:
        """Read rewards and report count for an address."""
        contract = self._contract()
        checksum = Web3.to_checksum_address(address)
        try:
            amount = await contract.functions.getRewards(checksum).call()
            count = await contract.functions.getReportCount(checksum).call()
        except Web3Exception as e:
            raise WalletError(f"Could not read rewards: {e}") from e

        return Rewards(
            amount_wei=_decode_uint(amount, "getRewards"),
            report_count=_decode_uint(count, "getReportCount"),
        )
