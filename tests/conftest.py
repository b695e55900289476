"""
Pytest configuration and fixtures
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from galamsey.chain.config import ChainConfig
from galamsey.crowdsource.report import Coordinates, ReportDraft
from galamsey.database.connection import DatabaseConnection
from galamsey.database.repository import ReportStore
from galamsey.drafts.store import DraftStore, MemoryMedium


@pytest.fixture
def user_id():
    """Valid owner identifier."""
    return "3f2b8c1e-4d5a-4b6c-9e7f-1a2b3c4d5e6f"


@pytest.fixture
def wallet_address():
    return "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"


@pytest.fixture
def sample_details():
    """Valid step 1 input."""
    return {
        "date": "2024-05-01",
        "location": "Obuasi",
        "description": "Illegal mining near river",
    }


@pytest.fixture
def sample_draft(sample_details):
    """Complete draft with coordinates and one photo."""
    return ReportDraft(
        date=sample_details["date"],
        location=sample_details["location"],
        description=sample_details["description"],
        gps_coordinates=Coordinates(lat=6.2027, lng=-1.6708),
        gps_address="Obuasi, Ashanti Region, Ghana",
        photos=["data:image/jpeg;base64,AAAA"],
    )


@pytest.fixture
def medium():
    return MemoryMedium()


@pytest.fixture
def draft_store(medium):
    return DraftStore(medium)


@pytest.fixture
def db():
    """In-memory SQLite database with all tables."""
    connection = DatabaseConnection("sqlite://")
    connection.create_tables()
    yield connection
    connection.close()


@pytest.fixture
def report_store(db):
    return ReportStore(db)


@pytest.fixture
def chain_config():
    """Scroll Sepolia with the registry contract configured."""
    return ChainConfig(
        rpc_url="https://sepolia-rpc.scroll.io",
        chain_id=534351,
        chain_name="Scroll Sepolia",
        explorer_url="https://sepolia.scrollscan.com",
        contract_address="0xf8e81d47203a594245e36c48e151709f0c19fbe8",
        receipt_timeout_seconds=5,
    )
