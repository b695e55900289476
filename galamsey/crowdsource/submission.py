"""
Report submission orchestration
Sequences persistence, AI enrichment and optional chain recording for one
submission attempt, and tracks the attempt as a state machine.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set, Tuple

from galamsey.chain.config import ChainConfig
from galamsey.chain.wallet import (
    ChainTimeoutError,
    DuplicateReportHashError,
    NetworkSwitchRejectedError,
    Rewards,
    WalletNotConnectedError,
    hash_report_data,
)
from galamsey.crowdsource.validation import validate_submission

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    """Status of a submission attempt."""
    IDLE = "idle"
    PERSISTING = "persisting"
    AWAITING_WALLET = "awaiting-wallet"
    RECORDING_CHAIN = "recording-chain"
    SUCCEEDED = "succeeded"
    SUCCEEDED_NO_CHAIN = "succeeded-no-chain"
    PARTIALLY_SUCCEEDED = "partially-succeeded"
    FAILED = "failed"


# Statuses in which the report itself has landed
LANDED_STATUSES = {
    SubmissionStatus.SUCCEEDED,
    SubmissionStatus.SUCCEEDED_NO_CHAIN,
    SubmissionStatus.PARTIALLY_SUCCEEDED,
}


class SubmissionError(Exception):
    """Operation not allowed in the current submission state."""


@dataclass
class SubmissionState:
    """
    State of one submission attempt.

    report_id is set once; db_success and chain_success only ever go from
    False to True.
    """
    status: SubmissionStatus = SubmissionStatus.IDLE
    report_id: Optional[str] = None
    db_success: bool = False
    chain_success: bool = False
    tx_hash: Optional[str] = None
    last_error: Optional[str] = None
    error_code: Optional[str] = None

    # Chain payload, computed once and reused by retries
    report_hash: Optional[str] = None
    hash_timestamp: Optional[int] = None

    rewards: Optional[Rewards] = None

    def mark_persisted(self, report_id: str) -> None:
        if self.report_id is not None and self.report_id != report_id:
            raise SubmissionError("report_id cannot change once set")
        self.report_id = report_id
        self.db_success = True

    @property
    def is_terminal(self) -> bool:
        return self.status in LANDED_STATUSES or self.status == SubmissionStatus.FAILED

    @property
    def can_retry_chain(self) -> bool:
        return self.status == SubmissionStatus.PARTIALLY_SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "report_id": self.report_id,
            "db_success": self.db_success,
            "chain_success": self.chain_success,
            "tx_hash": self.tx_hash,
            "last_error": self.last_error,
            "error_code": self.error_code,
            "can_retry_chain": self.can_retry_chain,
            "rewards": self.rewards.to_dict() if self.rewards else None,
        }


class SubmissionOrchestrator:
    """
    Drives one report submission from the confirmation step.

    Owned by exactly one confirmation screen. Exactly one persistence write
    happens per instance; the chain leg may be retried, always against the
    already-persisted report.
    """

    def __init__(
        self,
        draft_store,
        report_store,
        user_id: Optional[str],
        wallet=None,
        enrichment=None,
        chain_config: Optional[ChainConfig] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the orchestrator.

        Args:
            draft_store: DraftStore holding the wizard draft
            report_store: ReportStore for persistence and record patches
            user_id: Owner of the report
            wallet: Wallet adapter, or None when no wallet is available
            enrichment: EnrichmentService, or None to skip AI enrichment
            chain_config: Target chain; chain recording needs a configured contract
            clock: Time source for the chain payload timestamp
        """
        self.draft_store = draft_store
        self.report_store = report_store
        self.user_id = user_id
        self.wallet = wallet
        self.enrichment = enrichment
        self.chain_config = chain_config
        self.clock = clock

        self.state = SubmissionState()

        self._started = False
        self._alive = True
        self._chain_in_flight = False
        self._hash_fields: Optional[Tuple[str, str]] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def chain_in_flight(self) -> bool:
        return self._chain_in_flight

    def close(self) -> None:
        """Tear down: results still in flight no longer touch the state."""
        self._alive = False
        logger.debug(f"Submission for report {self.state.report_id} closed")

    async def start(self) -> SubmissionState:
        """
        Submit the draft. Repeated calls are no-ops.

        Returns:
            The submission state after the attempt settles
        """
        if self._started:
            return self.state
        # Latch before the first await
        self._started = True

        self.state.status = SubmissionStatus.PERSISTING

        draft = self.draft_store.load_draft()
        if self.wallet is not None and self.wallet.is_connected:
            draft.wallet_address = self.wallet.address

        result = validate_submission(draft, self.user_id)
        if not result:
            logger.info(f"Submission rejected by validation: {result.code.value}")
            self._fail(result.message, result.code.value)
            return self.state

        try:
            record = await self.report_store.insert(draft, self.user_id)
        except Exception as e:
            logger.error(f"Report persistence failed: {e}")
            if self._alive:
                self._fail("Failed to submit report. Please try again.", "persistence_failed")
            return self.state

        self._launch_enrichment(record["id"], draft.description)
        if self._alive:
            # Only what the chain fingerprint needs; photos are not kept
            self._hash_fields = (record["date"], record["location"])
            self.state.mark_persisted(record["id"])
            self.state.last_error = None
            self.state.error_code = None

        # The report has landed, so the draft goes regardless of what follows
        try:
            self.draft_store.clear()
        except Exception as e:
            logger.warning(f"Could not clear draft after submitting report {record['id']}: {e}")

        if not self._alive:
            return self.state

        if not self._chain_enabled():
            self.state.status = SubmissionStatus.SUCCEEDED_NO_CHAIN
            logger.info(f"Report {record['id']} submitted without chain recording")
            return self.state

        await self._record_on_chain()
        return self.state

    async def retry_chain(self) -> SubmissionState:
        """
        Re-run the chain leg after a partial success.

        Raises:
            SubmissionError: if no partial success is pending or a chain
                submission is already running
        """
        if self._chain_in_flight:
            raise SubmissionError("Chain recording already in progress")
        if not self.state.can_retry_chain:
            raise SubmissionError(
                f"Chain retry not available in status {self.state.status.value}"
            )

        logger.info(f"Retrying chain recording for report {self.state.report_id}")
        await self._record_on_chain()
        return self.state

    def reset(self) -> SubmissionState:
        """
        Return a failed attempt to idle so the whole flow can be retried.

        Raises:
            SubmissionError: unless the attempt failed
        """
        if self.state.status != SubmissionStatus.FAILED:
            raise SubmissionError(
                f"Only a failed submission can be reset, status is {self.state.status.value}"
            )
        self.state = SubmissionState()
        self._started = False
        return self.state

    async def wait_for_enrichment(self) -> None:
        """Wait for outstanding enrichment tasks."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _chain_enabled(self) -> bool:
        if self.wallet is None or not self.wallet.is_connected:
            return False
        if self.chain_config is None or not self.chain_config.is_contract_configured:
            logger.info("Wallet connected but no registry contract configured")
            return False
        return True

    def _fail(self, message: str, code: str) -> None:
        self.state.status = SubmissionStatus.FAILED
        self.state.last_error = message
        self.state.error_code = code

    def _launch_enrichment(self, report_id: str, description: str) -> None:
        if self.enrichment is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._enrich(report_id, description)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _enrich(self, report_id: str, description: str) -> None:
        try:
            await self.enrichment.process(report_id, description)
        except Exception as e:
            logger.warning(f"AI enrichment failed for report {report_id}: {e}")

    async def _record_on_chain(self) -> None:
        self._chain_in_flight = True
        try:
            await self._run_chain_leg()
        finally:
            self._chain_in_flight = False

    async def _run_chain_leg(self) -> None:
        report_id = self.state.report_id
        self.state.status = SubmissionStatus.AWAITING_WALLET

        try:
            if await self.wallet.current_network() != self.chain_config.chain_id:
                await self.wallet.switch_to_expected_network()
        except Exception as e:
            self._chain_failed(e)
            return

        if not self._alive:
            return

        if self.state.report_hash is None:
            self.state.hash_timestamp = int(self.clock() * 1000)
            self.state.report_hash = hash_report_data(
                report_id=report_id,
                date=self._hash_fields[0],
                location=self._hash_fields[1],
                timestamp=self.state.hash_timestamp,
            )

        self.state.status = SubmissionStatus.RECORDING_CHAIN

        tx_hash = None
        try:
            receipt = await self.wallet.submit_hash(self.state.report_hash)
            tx_hash = receipt.tx_hash
        except DuplicateReportHashError:
            # An earlier attempt landed without us seeing the receipt
            logger.info(f"Report {report_id} hash already on chain, treating as recorded")
        except Exception as e:
            self._chain_failed(e)
            return

        if tx_hash:
            try:
                await self.report_store.attach_tx_hash(report_id, tx_hash)
            except Exception as e:
                logger.warning(f"Could not attach tx hash to report {report_id}: {e}")

        if not self._alive:
            return

        self.state.chain_success = True
        self.state.tx_hash = tx_hash or self.state.tx_hash
        self.state.last_error = None
        self.state.error_code = None
        self.state.status = SubmissionStatus.SUCCEEDED
        logger.info(f"Report {report_id} recorded on chain")

        await self._load_rewards()

    async def _load_rewards(self) -> None:
        try:
            rewards = await self.wallet.rewards_for(self.wallet.address)
        except Exception as e:
            logger.warning(f"Could not read rewards: {e}")
            return
        if self._alive:
            self.state.rewards = rewards

    def _chain_failed(self, error: Exception) -> None:
        logger.warning(f"Chain recording failed for report {self.state.report_id}: {error}")
        if not self._alive:
            return
        self.state.status = SubmissionStatus.PARTIALLY_SUCCEEDED
        self.state.last_error = self._chain_error_message(error)
        self.state.error_code = "chain_failed"

    def _chain_error_message(self, error: Exception) -> str:
        if isinstance(error, NetworkSwitchRejectedError):
            name = self.chain_config.chain_name if self.chain_config else "the expected network"
            return f"Please switch your wallet to {name} to record this report."
        if isinstance(error, ChainTimeoutError):
            return "The blockchain did not confirm in time. Your report was saved; you can retry."
        if isinstance(error, WalletNotConnectedError):
            return "Your wallet is not connected. Your report was saved; you can retry."
        return "Blockchain recording failed. Your report was saved; you can retry."
