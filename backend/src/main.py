from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from models import CandidatePlace, ScoredCandidate, VenueDetection
from services.overpass import OverpassClient
from services.setlistfm import SetlistFmClient, build_setlistfm_client
from services.venue_detection import detect_venue, nearby_venue_options
from services.venue_filter import DEFAULT_VENUE_THRESHOLD, filter_venues, get_best_venue
from services.venue_rules import score_venue


load_dotenv(Path(__file__).resolve().parent.parent / ".env")

app = FastAPI(title="Concert Venue Detection")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# shared so the Overpass cache and the setlist.fm rate limit span requests
_overpass_client: Optional[OverpassClient] = None
_setlistfm_client: Optional[SetlistFmClient] = None


def _overpass(cfg: Configuration) -> OverpassClient:
    global _overpass_client
    if _overpass_client is None:
        _overpass_client = OverpassClient(cfg)
    return _overpass_client


def _setlistfm(cfg: Configuration) -> Optional[SetlistFmClient]:
    global _setlistfm_client
    if _setlistfm_client is None:
        _setlistfm_client = build_setlistfm_client(cfg)
    return _setlistfm_client


class CandidateRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Place name from the nearby-places lookup")
    types: List[str] = Field(default_factory=list, description="Place category tags")
    distance: Optional[float] = Field(None, description="Meters from the photo, display only")


class FilterRequest(BaseModel):
    candidates: List[CandidateRequest]
    threshold: float = Field(DEFAULT_VENUE_THRESHOLD, description="Exclusive minimum venue score")


class BestRequest(BaseModel):
    candidates: List[CandidateRequest]


class DetectRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    city: Optional[str] = Field(None, description="City used for setlist.fm validation")


class ScoredCandidatePayload(BaseModel):
    name: str
    types: List[str] = []
    distance: Optional[float] = None
    venue_score: float
    venue_reasons: List[str] = []


class BestResponse(BaseModel):
    venue: Optional[ScoredCandidatePayload]


class DetectionPayload(BaseModel):
    name: str
    method: str
    confidence: str
    distance: Optional[float] = None
    venue_score: Optional[float] = None
    setlist_count: int = 0
    setlist_venue_name: Optional[str] = None


class DetectResponse(BaseModel):
    venue: Optional[DetectionPayload]
    manual_selection_required: bool


def _to_place(req: CandidateRequest) -> CandidatePlace:
    return CandidatePlace(name=req.name, types=list(req.types), distance=req.distance)


def _to_payload(c: ScoredCandidate) -> ScoredCandidatePayload:
    return ScoredCandidatePayload(
        name=c.name,
        types=c.types,
        distance=c.distance,
        venue_score=c.venue_score,
        venue_reasons=c.venue_reasons,
    )


def _detection_payload(d: VenueDetection) -> DetectionPayload:
    return DetectionPayload(
        name=d.name,
        method=d.method,
        confidence=d.confidence,
        distance=d.distance,
        venue_score=d.venue_score,
        setlist_count=d.setlist_count,
        setlist_venue_name=d.setlist_venue_name,
    )


@app.get("/healthz")
def healthz() -> dict:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.post("/venues/score", response_model=ScoredCandidatePayload)
def score(req: CandidateRequest) -> ScoredCandidatePayload:
    return _to_payload(score_venue(_to_place(req)))


@app.post("/venues/filter", response_model=List[ScoredCandidatePayload])
def filter_candidates(req: FilterRequest) -> List[ScoredCandidatePayload]:
    ranked = filter_venues([_to_place(c) for c in req.candidates], req.threshold)
    return [_to_payload(c) for c in ranked]


@app.post("/venues/best", response_model=BestResponse)
def best(req: BestRequest) -> BestResponse:
    cfg = Configuration.from_env()
    winner = get_best_venue([_to_place(c) for c in req.candidates], cfg.venue_score_threshold)
    return BestResponse(venue=_to_payload(winner) if winner else None)


@app.post("/venues/detect", response_model=DetectResponse)
def detect(req: DetectRequest) -> DetectResponse:
    try:
        cfg = Configuration.from_env()
        detection = detect_venue(
            cfg,
            req.latitude,
            req.longitude,
            req.city,
            overpass=_overpass(cfg),
            setlistfm=_setlistfm(cfg) if req.city else None,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("venue detection failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")

    if detection is None:
        return DetectResponse(venue=None, manual_selection_required=True)
    logger.info(
        "detected venue name={} method={} confidence={}",
        detection.name,
        detection.method,
        detection.confidence,
    )
    return DetectResponse(
        venue=_detection_payload(detection),
        manual_selection_required=detection.confidence == "low",
    )


@app.get("/venues/nearby", response_model=List[ScoredCandidatePayload])
def nearby(latitude: float, longitude: float) -> List[ScoredCandidatePayload]:
    try:
        cfg = Configuration.from_env()
        options = nearby_venue_options(cfg, latitude, longitude, overpass=_overpass(cfg))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("nearby venue lookup failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")
    return [_to_payload(c) for c in options]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
