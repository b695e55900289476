"""
Tests for the wallet adapter
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from galamsey.chain.config import ChainConfig
from galamsey.chain.wallet import (
    ChainDecodeError,
    DuplicateReportHashError,
    NetworkSwitchRejectedError,
    Rewards,
    Web3WalletAdapter,
    WalletError,
    WalletNotConnectedError,
    explorer_url,
    format_tx_hash,
    hash_report_data,
)

# Well-known development key, never funded
TEST_KEY = "0x4f3edf983ac636a65a842ce7c78d9aa706d3b113bce9c46f30d7d21715b23b1d"
TEST_ADDRESS = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"


def run(coro):
    return asyncio.run(coro)


def contract_reading(amount, count):
    """Contract mock whose getRewards/getReportCount calls return values."""
    contract = MagicMock()
    contract.functions.getRewards.return_value.call = AsyncMock(return_value=amount)
    contract.functions.getReportCount.return_value.call = AsyncMock(return_value=count)
    return contract


class TestHashing:
    """Test suite for report fingerprints."""

    def test_hash_format(self):
        digest = hash_report_data("report-1", "2024-05-01", "Obuasi", 1714550400000)

        assert digest.startswith("0x")
        assert len(digest) == 66

    def test_hash_is_deterministic(self):
        first = hash_report_data("report-1", "2024-05-01", "Obuasi", 1714550400000)
        second = hash_report_data("report-1", "2024-05-01", "Obuasi", 1714550400000)
        assert first == second

    def test_each_field_changes_hash(self):
        base = hash_report_data("report-1", "2024-05-01", "Obuasi", 1)

        assert hash_report_data("report-2", "2024-05-01", "Obuasi", 1) != base
        assert hash_report_data("report-1", "2024-05-02", "Obuasi", 1) != base
        assert hash_report_data("report-1", "2024-05-01", "Tarkwa", 1) != base
        assert hash_report_data("report-1", "2024-05-01", "Obuasi", 2) != base

    def test_format_tx_hash(self):
        tx = "0x" + "ab" * 32
        assert format_tx_hash(tx) == "0xabab...abab"
        assert format_tx_hash("0x12") == "0x12"

    def test_explorer_url(self, chain_config):
        assert explorer_url(chain_config, "0xabc") == "https://sepolia.scrollscan.com/tx/0xabc"


class TestChainConfig:

    def test_contract_configured(self, chain_config):
        assert chain_config.is_contract_configured

    @pytest.mark.parametrize("address", [None, "", "not-an-address"])
    def test_contract_not_configured(self, chain_config, address):
        config = ChainConfig(
            rpc_url=chain_config.rpc_url,
            chain_id=chain_config.chain_id,
            chain_name=chain_config.chain_name,
            explorer_url=chain_config.explorer_url,
            contract_address=address,
        )
        assert not config.is_contract_configured


class TestWalletAdapter:
    """Test suite for Web3WalletAdapter with a mocked client."""

    def setup_method(self):
        self.w3 = MagicMock()

    def _wallet(self, chain_config, key=TEST_KEY):
        return Web3WalletAdapter(chain_config, private_key=key, web3=self.w3)

    def test_connect_loads_account(self, chain_config):
        wallet = self._wallet(chain_config)

        address = run(wallet.connect())

        assert address.lower() == TEST_ADDRESS
        assert wallet.is_connected
        assert wallet.address == address

    def test_connect_without_key(self, chain_config):
        wallet = self._wallet(chain_config, key=None)

        with pytest.raises(WalletNotConnectedError):
            run(wallet.connect())
        assert not wallet.is_connected

    def test_connect_with_bad_key(self, chain_config):
        wallet = self._wallet(chain_config, key="0x1234")

        with pytest.raises(WalletNotConnectedError):
            run(wallet.connect())

    def test_disconnect(self, chain_config):
        wallet = self._wallet(chain_config)
        run(wallet.connect())

        run(wallet.disconnect())

        assert not wallet.is_connected
        assert wallet.address is None

    def test_submit_requires_connection(self, chain_config):
        wallet = self._wallet(chain_config)

        with pytest.raises(WalletNotConnectedError):
            run(wallet.submit_hash("0x" + "00" * 32))

    def test_submit_duplicate_hash(self, chain_config):
        wallet = self._wallet(chain_config)
        run(wallet.connect())
        contract = MagicMock()
        contract.functions.isReportSubmitted.return_value.call = AsyncMock(return_value=True)
        self.w3.eth.contract.return_value = contract

        with pytest.raises(DuplicateReportHashError):
            run(wallet.submit_hash("0x" + "00" * 32))

    def _submitting_wallet(self, chain_config, events):
        """Connected wallet whose nonce lookup and broadcast yield to other tasks."""
        wallet = self._wallet(chain_config)
        account = MagicMock()
        account.address = TEST_ADDRESS
        account.sign_transaction.return_value = MagicMock(raw_transaction=b"\x01")
        wallet._account = account

        contract = MagicMock()
        contract.functions.isReportSubmitted.return_value.call = AsyncMock(return_value=False)
        contract.functions.submitReport.return_value.build_transaction = AsyncMock(
            return_value={"to": chain_config.contract_address}
        )
        self.w3.eth.contract.return_value = contract

        async def transaction_count(address, block_identifier):
            events.append("nonce")
            await asyncio.sleep(0)
            return len([e for e in events if e == "send"])

        async def send_raw(raw):
            await asyncio.sleep(0)
            events.append("send")
            return b"\x22" * 32

        self.w3.eth.get_transaction_count = AsyncMock(side_effect=transaction_count)
        self.w3.eth.send_raw_transaction = AsyncMock(side_effect=send_raw)
        self.w3.eth.wait_for_transaction_receipt = AsyncMock(
            return_value={"status": 1, "transactionHash": b"\x11" * 32, "blockNumber": 7}
        )
        return wallet

    def test_submit_uses_pending_nonce(self, chain_config):
        wallet = self._submitting_wallet(chain_config, [])

        receipt = run(wallet.submit_hash("0x" + "01" * 32))

        assert receipt.tx_hash == "0x" + "11" * 32
        assert receipt.block_number == 7
        self.w3.eth.get_transaction_count.assert_awaited_once_with(TEST_ADDRESS, "pending")

    def test_concurrent_submissions_do_not_share_a_nonce(self, chain_config):
        events = []
        wallet = self._submitting_wallet(chain_config, events)

        async def submit_both():
            return await asyncio.gather(
                wallet.submit_hash("0x" + "01" * 32),
                wallet.submit_hash("0x" + "02" * 32),
            )

        run(submit_both())

        assert events == ["nonce", "send", "nonce", "send"]
        nonces = [
            c.args[0]["nonce"]
            for c in wallet._contract().functions.submitReport.return_value.build_transaction.call_args_list
        ]
        assert nonces == [0, 1]

    def test_switch_keeps_client_when_rejected(self, chain_config, monkeypatch):
        wallet = self._wallet(chain_config)
        other = MagicMock()
        other.eth.chain_id = _awaitable(1)
        monkeypatch.setattr(wallet, "_build_client", lambda url: other)

        with pytest.raises(NetworkSwitchRejectedError):
            run(wallet.switch_to_expected_network())
        assert wallet.w3 is self.w3

    def test_switch_rebinds_on_expected_chain(self, chain_config, monkeypatch):
        wallet = self._wallet(chain_config)
        other = MagicMock()
        other.eth.chain_id = _awaitable(534351)
        monkeypatch.setattr(wallet, "_build_client", lambda url: other)

        run(wallet.switch_to_expected_network())

        assert wallet.w3 is other

    def test_current_network(self, chain_config):
        self.w3.eth.chain_id = _awaitable(534351)
        wallet = self._wallet(chain_config)

        assert run(wallet.is_on_expected_network()) is True

    def test_rewards_decoded(self, chain_config):
        self.w3.eth.contract.return_value = contract_reading(25 * 10 ** 15, 3)
        wallet = self._wallet(chain_config)

        rewards = run(wallet.rewards_for(TEST_ADDRESS))

        assert rewards == Rewards(amount_wei=25 * 10 ** 15, report_count=3)
        assert rewards.amount == Decimal("0.025")

    @pytest.mark.parametrize("amount,count", [("100", 1), (100, -1), (True, 1), (None, 0)])
    def test_rewards_decode_errors(self, chain_config, amount, count):
        self.w3.eth.contract.return_value = contract_reading(amount, count)
        wallet = self._wallet(chain_config)

        with pytest.raises(ChainDecodeError):
            run(wallet.rewards_for(TEST_ADDRESS))

    def test_unconfigured_contract(self, chain_config):
        config = ChainConfig(
            rpc_url=chain_config.rpc_url,
            chain_id=chain_config.chain_id,
            chain_name=chain_config.chain_name,
            explorer_url=chain_config.explorer_url,
        )
        wallet = Web3WalletAdapter(config, private_key=TEST_KEY, web3=self.w3)

        with pytest.raises(WalletError):
            run(wallet.rewards_for(TEST_ADDRESS))

    def test_rewards_to_dict(self):
        data = Rewards(amount_wei=10 ** 18, report_count=4).to_dict()

        assert data["amount_wei"] == str(10 ** 18)
        assert data["report_count"] == 4


def _awaitable(value):
    """Fresh awaitable each time the attribute is read."""

    class _Value:
        def __await__(self):
            async def _get():
                return value
            return _get().__await__()

    return _Value()
