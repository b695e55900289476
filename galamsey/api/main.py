"""
GalamseyWatch - REST API

FastAPI application exposing the report wizard, submission pipeline,
report lookup and wallet endpoints.

Run with: uvicorn galamsey.api.main:app --reload
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from galamsey import __version__
from galamsey.chain.config import ChainConfig
from galamsey.chain.wallet import Web3WalletAdapter, WalletError, explorer_url
from galamsey.core.config import settings
from galamsey.core.constants import MAX_PHOTO_RAW_BYTES, REPORT_CATEGORIES
from galamsey.core.logging import setup_logging
from galamsey.crowdsource.photos import UnsupportedPhotoType
from galamsey.crowdsource.report import Coordinates
from galamsey.crowdsource.submission import (
    SubmissionError,
    SubmissionOrchestrator,
    SubmissionStatus,
)
from galamsey.crowdsource.wizard import ReportWizard
from galamsey.database.connection import DatabaseConnection, init_db
from galamsey.database.repository import ReportStore
from galamsey.drafts.sql_medium import SqlDraftMedium
from galamsey.drafts.store import DraftStore
from galamsey.enrichment.classifier import (
    AccessDeniedError,
    ClassifierError,
    CreditsExhaustedError,
    EnrichmentService,
    RateLimitedError,
    ReportClassifier,
    ReportNotFoundError,
)
from galamsey.geo.resolver import LocationResolver, ResolverError

logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="GalamseyWatch",
    description="Crowd-sourced reporting of illegal mining with AI triage and on-chain timestamps",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Services
# ============================================================================

def _is_settled(orchestrator: SubmissionOrchestrator) -> bool:
    if orchestrator.chain_in_flight:
        return False
    return orchestrator.state.is_terminal or orchestrator.state.status == SubmissionStatus.IDLE


class SubmissionRegistry:
    """
    Live confirmation screens, keyed by wizard session.

    Settled attempts that nobody looked at for ``ttl`` seconds are closed
    and dropped. Attempts still persisting or recording are never evicted.
    """

    def __init__(self, ttl: float = 900.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[SubmissionOrchestrator, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._entries

    def get(self, session_id: str) -> Optional[SubmissionOrchestrator]:
        self.evict_stale()
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        self._entries[session_id] = (entry[0], self.clock())
        return entry[0]

    def put(self, session_id: str, orchestrator: SubmissionOrchestrator) -> None:
        self._entries[session_id] = (orchestrator, self.clock())

    def pop(self, session_id: str) -> Optional[SubmissionOrchestrator]:
        entry = self._entries.pop(session_id, None)
        return entry[0] if entry else None

    def discard_settled(self, session_id: str) -> None:
        """Drop a settled attempt when its session starts a new draft."""
        entry = self._entries.get(session_id)
        if entry is not None and _is_settled(entry[0]):
            del self._entries[session_id]
            entry[0].close()

    def evict_stale(self) -> int:
        now = self.clock()
        stale = [
            session_id
            for session_id, (orchestrator, seen) in self._entries.items()
            if now - seen > self.ttl and _is_settled(orchestrator)
        ]
        for session_id in stale:
            orchestrator, _ = self._entries.pop(session_id)
            orchestrator.close()
        if stale:
            logger.debug(f"Evicted {len(stale)} idle submissions")
        return len(stale)


@dataclass
class Services:
    """Collaborators shared by all requests."""
    db: DatabaseConnection
    report_store: ReportStore
    resolver: LocationResolver
    chain_config: ChainConfig
    wallet: Optional[Web3WalletAdapter] = None
    enrichment: Optional[EnrichmentService] = None
    admin_user_ids: FrozenSet[str] = frozenset()
    submissions: SubmissionRegistry = field(default_factory=SubmissionRegistry)

    def wizard(self, session_id: str) -> ReportWizard:
        draft_store = DraftStore(SqlDraftMedium(self.db, session_id))
        return ReportWizard(draft_store, resolver=self.resolver)


def build_services() -> Services:
    """Wire collaborators from settings."""
    db = init_db(settings.database_url)
    report_store = ReportStore(db)
    chain_config = ChainConfig.from_settings(settings)

    enrichment = None
    if settings.ai_gateway_key:
        classifier = ReportClassifier(
            api_key=settings.ai_gateway_key,
            gateway_url=settings.ai_gateway_url,
            model=settings.ai_model,
            timeout=settings.ai_timeout_seconds,
        )
        enrichment = EnrichmentService(classifier, report_store, settings.admin_user_ids)
    else:
        logger.warning("AI gateway key not configured, reports will stay unprocessed")

    wallet = None
    if settings.wallet_private_key:
        wallet = Web3WalletAdapter(chain_config, private_key=settings.wallet_private_key)

    return Services(
        db=db,
        report_store=report_store,
        resolver=LocationResolver(
            base_url=settings.geocoder_url,
            timeout=settings.geocoder_timeout_seconds,
        ),
        chain_config=chain_config,
        wallet=wallet,
        enrichment=enrichment,
        admin_user_ids=frozenset(settings.admin_user_ids),
        submissions=SubmissionRegistry(ttl=settings.submission_ttl_seconds),
    )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        setup_logging()
        _services = build_services()
    return _services


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    modules: dict


class DetailsRequest(BaseModel):
    """Wizard step 1."""
    date: str
    location: str
    description: str


class LocationRequest(BaseModel):
    """Wizard step 2. Coordinates are optional."""
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None


class DraftResponse(BaseModel):
    """Current wizard draft."""
    date: str
    location: str
    description: str
    gps_coordinates: Optional[dict] = None
    gps_address: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    wallet_address: Optional[str] = None


class SubmissionResponse(BaseModel):
    """State of a submission attempt."""
    status: str
    report_id: Optional[str] = None
    db_success: bool
    chain_success: bool
    tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    last_error: Optional[str] = None
    error_code: Optional[str] = None
    can_retry_chain: bool
    rewards: Optional[dict] = None


class ReportResponse(BaseModel):
    """Stored report."""
    id: str
    user_id: str
    date: str
    location: str
    description: str
    gps_coordinates: Optional[dict] = None
    gps_address: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    wallet_address: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_category: Optional[str] = None
    ai_status: str
    scroll_tx_hash: Optional[str] = None
    created_at: Optional[str] = None


class ReportListResponse(BaseModel):
    """List of reports."""
    count: int
    reports: list[ReportResponse]


class ClassificationResponse(BaseModel):
    """AI enrichment result."""
    success: bool
    ai_summary: str
    ai_category: str


def _require_valid(result) -> None:
    if not result:
        raise HTTPException(status_code=422, detail=result.to_dict())


def _require_identity(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id


def _require_admin(services: Services, x_user_id: Optional[str]) -> str:
    user_id = _require_identity(x_user_id)
    if user_id not in services.admin_user_ids:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id


def _submission_response(services: Services, orchestrator: SubmissionOrchestrator) -> SubmissionResponse:
    data = orchestrator.state.to_dict()
    if data["tx_hash"]:
        data["explorer_url"] = explorer_url(services.chain_config, data["tx_hash"])
    return SubmissionResponse(**data)


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(services: Services = Depends(get_services)):
    """Check API health and which optional modules are configured."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow().isoformat(),
        modules={
            "database": services.db.check_connection(),
            "ai_enrichment": services.enrichment is not None,
            "wallet": services.wallet is not None,
            "contract_configured": services.chain_config.is_contract_configured,
        },
    )


# ============================================================================
# Draft Routes
# ============================================================================

@app.get("/api/v1/drafts/{session_id}", response_model=DraftResponse, tags=["Drafts"])
async def get_draft(session_id: str, services: Services = Depends(get_services)):
    """Current draft for a wizard session (empty if none)."""
    return DraftResponse(**services.wizard(session_id).draft.to_dict())


@app.put("/api/v1/drafts/{session_id}/details", response_model=DraftResponse, tags=["Drafts"])
async def save_details(
    session_id: str,
    request: DetailsRequest,
    services: Services = Depends(get_services),
):
    """Save wizard step 1. Invalid input blocks progression with a 422."""
    wizard = services.wizard(session_id)
    _require_valid(wizard.submit_details(request.date, request.location, request.description))
    # A new draft for this session retires its finished confirmation screen
    services.submissions.discard_settled(session_id)
    return DraftResponse(**wizard.draft.to_dict())


@app.put("/api/v1/drafts/{session_id}/location", response_model=DraftResponse, tags=["Drafts"])
async def save_location(
    session_id: str,
    request: LocationRequest,
    services: Services = Depends(get_services),
):
    """Save wizard step 2."""
    wizard = services.wizard(session_id)
    _require_valid(wizard.details_complete())

    coordinates = None
    if request.lat is not None and request.lng is not None:
        coordinates = Coordinates(lat=request.lat, lng=request.lng)

    _require_valid(wizard.set_location(coordinates, request.address))
    return DraftResponse(**wizard.draft.to_dict())


@app.post("/api/v1/drafts/{session_id}/photos", response_model=DraftResponse, tags=["Drafts"])
async def upload_photo(
    session_id: str,
    photo: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    """Add a photo to wizard step 3."""
    wizard = services.wizard(session_id)
    _require_valid(wizard.details_complete())

    # One byte over the limit is enough to reject the upload
    image_data = await photo.read(MAX_PHOTO_RAW_BYTES + 1)
    try:
        result = wizard.add_photo(image_data, photo.content_type or "")
    except UnsupportedPhotoType as e:
        raise HTTPException(status_code=415, detail=str(e))
    _require_valid(result)
    return DraftResponse(**wizard.draft.to_dict())


@app.delete("/api/v1/drafts/{session_id}/photos/{index}", response_model=DraftResponse, tags=["Drafts"])
async def delete_photo(session_id: str, index: int, services: Services = Depends(get_services)):
    wizard = services.wizard(session_id)
    try:
        wizard.remove_photo(index)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"No photo at index {index}")
    return DraftResponse(**wizard.draft.to_dict())


@app.delete("/api/v1/drafts/{session_id}", tags=["Drafts"])
async def abandon_draft(session_id: str, services: Services = Depends(get_services)):
    """Abandon the wizard and discard its draft."""
    services.wizard(session_id).abandon()
    return {"abandoned": True}


# ============================================================================
# Geocoding Routes
# ============================================================================

@app.get("/api/v1/geocode/search", tags=["Geocoding"])
async def geocode_search(
    q: str = Query(..., min_length=1, description="Place name to look up"),
    services: Services = Depends(get_services),
):
    """Look up a place. Failures are notices; GPS stays optional."""
    try:
        location = await services.resolver.search(q)
    except ResolverError as e:
        logger.warning(f"Geocoding failed: {e}")
        return {"found": False, "notice": "Location search is unavailable right now."}

    if location is None:
        return {"found": False, "notice": f"No results for {q!r}."}
    return {"found": True, "location": location.to_dict()}


@app.get("/api/v1/geocode/reverse", tags=["Geocoding"])
async def geocode_reverse(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    services: Services = Depends(get_services),
):
    try:
        address = await services.resolver.reverse(lat, lng)
    except ResolverError as e:
        logger.warning(f"Reverse geocoding failed: {e}")
        return {"found": False, "notice": "Address lookup is unavailable right now."}
    return {"found": address is not None, "address": address}


# ============================================================================
# Submission Routes
# ============================================================================

@app.post("/api/v1/submissions/{session_id}", response_model=SubmissionResponse, tags=["Submission"])
async def start_submission(
    session_id: str,
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """
    Submit the draft of a wizard session.

    Repeated calls for the same session return the existing attempt instead
    of submitting again.
    """
    orchestrator = services.submissions.get(session_id)
    # An idle attempt (never started, or reset after failure) is rebuilt for this caller
    if orchestrator is None or orchestrator.state.status == SubmissionStatus.IDLE:
        orchestrator = services.wizard(session_id).begin_submission(
            report_store=services.report_store,
            user_id=x_user_id,
            wallet=services.wallet,
            enrichment=services.enrichment,
            chain_config=services.chain_config,
        )
        services.submissions.put(session_id, orchestrator)

    await orchestrator.start()
    return _submission_response(services, orchestrator)


@app.get("/api/v1/submissions/{session_id}", response_model=SubmissionResponse, tags=["Submission"])
async def get_submission(session_id: str, services: Services = Depends(get_services)):
    orchestrator = services.submissions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="No submission for this session")
    return _submission_response(services, orchestrator)


@app.post("/api/v1/submissions/{session_id}/retry-chain", response_model=SubmissionResponse, tags=["Submission"])
async def retry_chain(session_id: str, services: Services = Depends(get_services)):
    """Retry only the blockchain leg of a partially successful submission."""
    orchestrator = services.submissions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="No submission for this session")
    try:
        await orchestrator.retry_chain()
    except SubmissionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _submission_response(services, orchestrator)


@app.post("/api/v1/submissions/{session_id}/reset", response_model=SubmissionResponse, tags=["Submission"])
async def reset_submission(session_id: str, services: Services = Depends(get_services)):
    """Return a failed submission to idle so the user can submit again."""
    orchestrator = services.submissions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="No submission for this session")
    try:
        orchestrator.reset()
    except SubmissionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _submission_response(services, orchestrator)


@app.delete("/api/v1/submissions/{session_id}", tags=["Submission"])
async def leave_submission(session_id: str, services: Services = Depends(get_services)):
    """The user navigated away from the confirmation step."""
    orchestrator = services.submissions.pop(session_id)
    if orchestrator is not None:
        orchestrator.close()
    return {"closed": orchestrator is not None}


# ============================================================================
# Report Routes
# ============================================================================

@app.get("/api/v1/reports", response_model=ReportListResponse, tags=["Reports"])
async def list_reports(
    category: Optional[str] = Query(None, description="Filter by AI category"),
    unprocessed: bool = Query(False, description="Only reports without AI results"),
    limit: int = Query(100, ge=1, le=500),
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """Moderation listing of every report. Admins only."""
    _require_admin(services, x_user_id)
    if category is not None and category not in REPORT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    reports = await services.report_store.list_reports(category, unprocessed, limit)
    return ReportListResponse(count=len(reports), reports=[ReportResponse(**r) for r in reports])


@app.get("/api/v1/reports/{report_id}", response_model=ReportResponse, tags=["Reports"])
async def get_report(
    report_id: str,
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """A single report, visible to its owner and to admins."""
    user_id = _require_identity(x_user_id)
    report = await services.report_store.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    if report["user_id"] != user_id and user_id not in services.admin_user_ids:
        raise HTTPException(status_code=403, detail="Access denied")
    return ReportResponse(**report)


@app.delete("/api/v1/reports/{report_id}", tags=["Reports"])
async def delete_report(
    report_id: str,
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    admin_id = _require_admin(services, x_user_id)
    if not await services.report_store.delete(report_id):
        raise HTTPException(status_code=404, detail="Report not found")
    logger.info(f"Report {report_id} deleted by admin {admin_id}")
    return {"deleted": True, "id": report_id}


@app.post("/api/v1/reports/{report_id}/process", response_model=ClassificationResponse, tags=["Reports"])
async def process_report(
    report_id: str,
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """Run AI enrichment for a report owned by the caller (or any report for admins)."""
    requester_id = _require_identity(x_user_id)
    if services.enrichment is None:
        raise HTTPException(status_code=503, detail="AI enrichment is not configured")

    report = await services.report_store.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")

    try:
        result = await services.enrichment.process(report_id, report["description"], requester_id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    except AccessDeniedError:
        raise HTTPException(status_code=403, detail="Access denied")
    except RateLimitedError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except CreditsExhaustedError as e:
        raise HTTPException(status_code=402, detail=str(e))
    except ClassifierError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return ClassificationResponse(success=True, ai_summary=result.summary, ai_category=result.category)


# ============================================================================
# Wallet Routes
# ============================================================================

def _require_wallet(services: Services) -> Web3WalletAdapter:
    if services.wallet is None:
        raise HTTPException(status_code=503, detail="No wallet configured")
    return services.wallet


@app.get("/api/v1/wallet", tags=["Wallet"])
async def wallet_status(services: Services = Depends(get_services)):
    wallet = services.wallet
    return {
        "configured": wallet is not None,
        "connected": bool(wallet and wallet.is_connected),
        "address": wallet.address if wallet else None,
        "expected_chain_id": services.chain_config.chain_id,
        "chain_name": services.chain_config.chain_name,
    }


@app.post("/api/v1/wallet/connect", tags=["Wallet"])
async def wallet_connect(
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """Load the server signer. Every later submission records through it."""
    _require_admin(services, x_user_id)
    wallet = _require_wallet(services)
    try:
        address = await wallet.connect()
        on_network = await wallet.current_network() == services.chain_config.chain_id
    except WalletError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"connected": True, "address": address, "correct_network": on_network}


@app.post("/api/v1/wallet/disconnect", tags=["Wallet"])
async def wallet_disconnect(
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    _require_admin(services, x_user_id)
    wallet = _require_wallet(services)
    await wallet.disconnect()
    return {"connected": False}


@app.get("/api/v1/wallet/rewards/{address}", tags=["Wallet"])
async def wallet_rewards(address: str, services: Services = Depends(get_services)):
    """Rewards earned by a reporter address."""
    wallet = _require_wallet(services)
    try:
        rewards = await wallet.rewards_for(address)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid address")
    except WalletError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"address": address, **rewards.to_dict()}


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
