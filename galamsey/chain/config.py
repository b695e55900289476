"""
Chain configuration passed explicitly to the wallet adapter and orchestrator
"""

from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from galamsey.core.config import Settings


@dataclass(frozen=True)
class ChainConfig:
    """Target network and report registry contract."""
    rpc_url: str
    chain_id: int
    chain_name: str
    explorer_url: str
    contract_address: Optional[str] = None
    receipt_timeout_seconds: float = 120.0
    rpc_timeout_seconds: float = 30.0

    @property
    def is_contract_configured(self) -> bool:
        return bool(self.contract_address) and Web3.is_address(self.contract_address)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChainConfig":
        return cls(
            rpc_url=settings.chain_rpc_url,
            chain_id=settings.chain_id,
            chain_name=settings.chain_name,
            explorer_url=settings.chain_explorer_url,
            contract_address=settings.contract_address,
            receipt_timeout_seconds=settings.chain_receipt_timeout_seconds,
        )
