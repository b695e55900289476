"""
GalamseyWatch - Constants and Reference Data
Static values used throughout the application.
"""

from typing import Dict, List, Tuple

# =============================================================================
# REPORT LIMITS
# =============================================================================

MAX_LOCATION_LENGTH: int = 500
MIN_DESCRIPTION_LENGTH: int = 10
MAX_DESCRIPTION_LENGTH: int = 5000
MAX_GPS_ADDRESS_LENGTH: int = 500

# Photos are stored as base64 data URLs; ~5MB raw is ~7MB encoded
MAX_PHOTOS: int = 10
MAX_PHOTO_RAW_BYTES: int = 5 * 1024 * 1024
MAX_PHOTO_SIZE: int = 7 * 1024 * 1024

ACCEPTED_PHOTO_TYPES: Tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
)

# =============================================================================
# AI CLASSIFICATION
# =============================================================================

REPORT_CATEGORIES: List[str] = [
    "Water Pollution",
    "Forest Destruction",
    "Mining Pits",
    "Other",
]

DEFAULT_CATEGORY: str = "Other"
UNPROCESSED_LABEL: str = "Unprocessed"

MAX_SUMMARY_LENGTH: int = 500
FALLBACK_SUMMARY: str = "Unable to generate summary"
NEUTRAL_SUMMARY: str = "Environmental report submitted for review."

# =============================================================================
# DRAFT STORAGE
# =============================================================================

DRAFT_FORM_SLOT: str = "report_form"
DRAFT_LOCATION_SLOT: str = "report_location"
DRAFT_PHOTOS_SLOT: str = "report_photos"

DRAFT_SLOTS: Tuple[str, str, str] = (
    DRAFT_FORM_SLOT,
    DRAFT_LOCATION_SLOT,
    DRAFT_PHOTOS_SLOT,
)

# Which draft field lives in which slot
DRAFT_SLOT_FIELDS: Dict[str, Tuple[str, ...]] = {
    DRAFT_FORM_SLOT: ("date", "location", "description"),
    DRAFT_LOCATION_SLOT: ("gps_coordinates", "gps_address"),
    DRAFT_PHOTOS_SLOT: ("photos",),
}

# =============================================================================
# CHAIN (Scroll Sepolia testnet)
# =============================================================================

SCROLL_SEPOLIA_CHAIN_ID: int = 534351
SCROLL_SEPOLIA_NAME: str = "Scroll Sepolia"
SCROLL_SEPOLIA_RPC_URL: str = "https://sepolia-rpc.scroll.io"
SCROLL_SEPOLIA_EXPLORER_URL: str = "https://sepolia.scrollscan.com"
DEFAULT_CONTRACT_ADDRESS: str = "0xf8e81d47203a594245e36c48e151709f0c19fbe8"

# Minimal ABI of the report registry contract
REPORT_REGISTRY_ABI: List[Dict] = [
    {
        "name": "submitReport",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "reportHash", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "getRewards",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getReportCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "isReportSubmitted",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "reportHash", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "rewardPerReport",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]
