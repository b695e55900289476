"""
GalamseyWatch - Chain Module
Tamper-evident recording of report fingerprints on a public testnet.
"""

from galamsey.chain.config import ChainConfig
from galamsey.chain.wallet import (
    Web3WalletAdapter,
    ChainReceipt,
    Rewards,
    WalletError,
    WalletNotConnectedError,
    NetworkSwitchRejectedError,
    DuplicateReportHashError,
    ChainTimeoutError,
    ChainDecodeError,
    hash_report_data,
    format_tx_hash,
    explorer_url,
)

__all__ = [
    "ChainConfig",
    "Web3WalletAdapter",
    "ChainReceipt",
    "Rewards",
    "WalletError",
    "WalletNotConnectedError",
    "NetworkSwitchRejectedError",
    "DuplicateReportHashError",
    "ChainTimeoutError",
    "ChainDecodeError",
    "hash_report_data",
    "format_tx_hash",
    "explorer_url",
]
