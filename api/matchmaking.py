"""
FastAPI endpoints exposing matchmaking to the chat/session layer.
"""
import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from pydantic import BaseModel
from redis.exceptions import RedisError

from config.settings import settings
from core.match_engine import MatchEngine
from core.tiers import GenderPreference

logger = logging.getLogger(__name__)

app = FastAPI(title="Matchmaking API", version="1.0.0")


class ParticipantRequest(BaseModel):
    """Request model carrying a participant id."""
    participant_id: str


class SearchRequest(ParticipantRequest):
    """Request model for a search. gender_preference is only honoured for VIPs."""
    gender_preference: Optional[GenderPreference] = None


class SearchResponse(BaseModel):
    participant_id: str
    partner_id: Optional[str] = None
    queued: bool = False


class EnqueueResponse(BaseModel):
    participant_id: str
    tier: Optional[str] = None


class DequeueResponse(BaseModel):
    participant_id: str
    removed: bool


class PartnerResponse(BaseModel):
    participant_id: str
    partner_id: Optional[str] = None


class RecentPartnersResponse(BaseModel):
    participant_id: str
    recent_partners: List[str] = []


class StatsResponse(BaseModel):
    tiers: Dict[str, int]
    total: int


def verify_api_key_sync(x_api_key: str) -> bool:
    """Verify API key for authentication."""
    return x_api_key == settings.API_SECRET_KEY


async def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if not x_api_key or not verify_api_key_sync(x_api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_engine(request: Request) -> MatchEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Matchmaking not available")
    return engine


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/match/search", response_model=SearchResponse, dependencies=[Depends(require_api_key)])
async def search(request: SearchRequest, engine: MatchEngine = Depends(get_engine)):
    """
    Search for a partner.

    Returns the existing partner without searching if the participant is
    already paired (e.g. matched by the background sweep in the meantime).
    Transient store errors surface as "not matched yet", never as an error.
    """
    try:
        partner_id = await engine.get_partner(request.participant_id)
        if partner_id:
            return SearchResponse(participant_id=request.participant_id, partner_id=partner_id)
    except RedisError as e:
        logger.warning(f"Store error reading partner of {request.participant_id}: {e}")
        return SearchResponse(participant_id=request.participant_id)

    partner_id = await engine.search(request.participant_id, request.gender_preference)
    if partner_id:
        return SearchResponse(participant_id=request.participant_id, partner_id=partner_id)

    try:
        queued = await engine.is_queued(request.participant_id)
    except RedisError:
        queued = False
    return SearchResponse(participant_id=request.participant_id, queued=queued)


@app.post("/api/match/enqueue", response_model=EnqueueResponse, dependencies=[Depends(require_api_key)])
async def enqueue(request: SearchRequest, engine: MatchEngine = Depends(get_engine)):
    try:
        tier = await engine.enqueue(request.participant_id, request.gender_preference)
    except RedisError as e:
        logger.warning(f"Store error enqueueing {request.participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return EnqueueResponse(participant_id=request.participant_id, tier=tier.value if tier else None)


@app.post("/api/match/dequeue", response_model=DequeueResponse, dependencies=[Depends(require_api_key)])
async def dequeue(request: ParticipantRequest, engine: MatchEngine = Depends(get_engine)):
    try:
        removed = await engine.dequeue(request.participant_id)
    except RedisError as e:
        logger.warning(f"Store error dequeueing {request.participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return DequeueResponse(participant_id=request.participant_id, removed=removed)


@app.get("/api/match/partner/{participant_id}", response_model=PartnerResponse, dependencies=[Depends(require_api_key)])
async def get_partner(participant_id: str, engine: MatchEngine = Depends(get_engine)):
    try:
        partner_id = await engine.get_partner(participant_id)
    except RedisError as e:
        logger.warning(f"Store error reading partner of {participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return PartnerResponse(participant_id=participant_id, partner_id=partner_id)


@app.post("/api/match/unpair", response_model=PartnerResponse, dependencies=[Depends(require_api_key)])
async def unpair(request: ParticipantRequest, engine: MatchEngine = Depends(get_engine)):
    """End the participant's current pair and make sure they are not left waiting."""
    try:
        partner_id = await engine.unpair(request.participant_id)
        await engine.dequeue(request.participant_id)
    except RedisError as e:
        logger.warning(f"Store error unpairing {request.participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return PartnerResponse(participant_id=request.participant_id, partner_id=partner_id)


@app.get("/api/match/recent/{participant_id}", response_model=RecentPartnersResponse, dependencies=[Depends(require_api_key)])
async def get_recent_partners(participant_id: str, engine: MatchEngine = Depends(get_engine)):
    try:
        recent = await engine.recent_partners(participant_id)
    except RedisError as e:
        logger.warning(f"Store error reading recent partners of {participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return RecentPartnersResponse(participant_id=participant_id, recent_partners=recent)


@app.delete("/api/match/recent/{participant_id}", response_model=RecentPartnersResponse, dependencies=[Depends(require_api_key)])
async def reset_recent_partners(participant_id: str, engine: MatchEngine = Depends(get_engine)):
    """Lift the re-match cooldown for one participant (support/admin tool)."""
    try:
        await engine.reset_cooldown(participant_id)
    except RedisError as e:
        logger.warning(f"Store error clearing recent partners of {participant_id}: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    return RecentPartnersResponse(participant_id=participant_id)


@app.get("/api/match/stats", response_model=StatsResponse, dependencies=[Depends(require_api_key)])
async def stats(engine: MatchEngine = Depends(get_engine)):
    try:
        counts = await engine.queue_stats()
    except RedisError as e:
        logger.warning(f"Store error reading queue stats: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    total = counts.pop("total")
    return StatsResponse(tiers=counts, total=total)
