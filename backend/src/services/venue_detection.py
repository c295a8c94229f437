from __future__ import annotations

from typing import List, Optional, Set, Tuple

from loguru import logger

from config import Configuration
from models import OSMVenue, ScoredCandidate, VenueDetection
from services.overpass import OverpassClient, OverpassError, osm_venue_to_candidate
from services.setlistfm import SetlistFmClient, build_setlistfm_client
from services.venue_filter import filter_venues, get_best_venue


MEDIUM_CONFIDENCE_M = 50.0
LOW_CONFIDENCE_M = 200.0


def _distance_confidence(distance: float) -> str:
    if distance > LOW_CONFIDENCE_M:
        return "low"
    if distance > MEDIUM_CONFIDENCE_M:
        return "medium"
    return "high"


def _lookup(cfg: Configuration, overpass: OverpassClient, lat: float, lon: float) -> List[OSMVenue]:
    try:
        return overpass.find_venues(lat, lon, radius_m=cfg.venue_search_radius_m)
    except OverpassError as exc:
        logger.error("venue lookup failed near {}, {}: {}", lat, lon, exc)
        return []


def _validated(
    cfg: Configuration,
    venues: List[OSMVenue],
    city: str,
    setlistfm: SetlistFmClient,
) -> Tuple[Optional[VenueDetection], Set[str]]:
    """First venue setlist.fm knows, plus the names it turned down."""
    rejected: Set[str] = set()
    for venue in venues[: cfg.venue_validation_limit]:
        validation = setlistfm.validate_venue(venue.name, city)
        if not validation.has_setlists:
            logger.debug("skipping '{}' ({:.0f}m): no setlists", venue.name, venue.distance)
            rejected.add(venue.name)
            continue
        logger.info("selected '{}' ({:.0f}m, {} setlists)", venue.name, venue.distance, validation.setlist_count)
        return VenueDetection(
            name=venue.name,
            method="osm_scan_validated",
            confidence=_distance_confidence(venue.distance),
            distance=round(venue.distance, 1),
            setlist_count=validation.setlist_count,
            setlist_venue_name=validation.setlist_venue_name,
        ), rejected
    logger.info("no nearby venue has setlist.fm data")
    return None, rejected


def detect_venue(
    cfg: Configuration,
    lat: float,
    lon: float,
    city: Optional[str] = None,
    *,
    overpass: Optional[OverpassClient] = None,
    setlistfm: Optional[SetlistFmClient] = None,
) -> Optional[VenueDetection]:
    """Pick the concert venue a photo taken at (lat, lon) most likely shows.

    ``None`` means no venue could be identified with any confidence and the
    user should select one manually.
    """
    overpass = overpass or OverpassClient(cfg)
    venues = _lookup(cfg, overpass, lat, lon)
    if not venues:
        logger.info("no OSM venues near {}, {}", lat, lon)
        return None

    rejected: Set[str] = set()
    if city:
        setlistfm = setlistfm or build_setlistfm_client(cfg)
        if setlistfm is not None:
            detection, rejected = _validated(cfg, venues, city, setlistfm)
            if detection:
                return detection

    closest = venues[0]
    if closest.distance < cfg.venue_close_distance_m:
        key, _, value = closest.matched_tag.partition("=")
        confidence = "low" if closest.matched_tag == "leisure=park" else "high"
        logger.info("using closest venue '{}' ({:.0f}m) without validation", closest.name, closest.distance)
        return VenueDetection(
            name=closest.name,
            method=f"osm_{key}_{value}",
            confidence=confidence,
            distance=round(closest.distance, 1),
        )

    # venues setlist.fm turned down are never picked by score
    unrejected = [v for v in venues if v.name not in rejected]
    best = get_best_venue([osm_venue_to_candidate(v) for v in unrejected], cfg.venue_score_threshold)
    if best is None:
        logger.info("no suitable venue near {}, {} (closest '{}' at {:.0f}m)", lat, lon, closest.name, closest.distance)
        return None

    logger.info("using best scored venue '{}' (score {})", best.name, best.venue_score)
    return VenueDetection(
        name=best.name,
        method="osm_scored",
        confidence="low",
        distance=best.distance,
        venue_score=best.venue_score,
    )


def nearby_venue_options(
    cfg: Configuration,
    lat: float,
    lon: float,
    *,
    overpass: Optional[OverpassClient] = None,
    threshold: Optional[float] = None,
) -> List[ScoredCandidate]:
    """Leniently ranked nearby venues for manual selection."""
    overpass = overpass or OverpassClient(cfg)
    venues = _lookup(cfg, overpass, lat, lon)
    if threshold is None:
        threshold = cfg.manual_selection_threshold
    return filter_venues([osm_venue_to_candidate(v) for v in venues], threshold)
