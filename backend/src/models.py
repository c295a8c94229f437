"""Data models for concert venue detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class CandidatePlace:
    name: str
    types: list[str] = field(default_factory=list)
    distance: Optional[float] = None  # meters from the photo, display only
    lat: Optional[float] = None
    lon: Optional[float] = None


@dataclass
class ScoredCandidate:
    place: CandidatePlace
    venue_score: float
    venue_reasons: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.place.name

    @property
    def types(self) -> list[str]:
        return self.place.types

    @property
    def distance(self) -> Optional[float]:
        return self.place.distance


@dataclass
class OSMVenue:
    name: str
    lat: float
    lon: float
    tags: Dict[str, str]
    matched_tag: str  # e.g. "amenity=nightclub"
    distance: float  # meters from query point


@dataclass
class VenueValidation:
    has_setlists: bool
    setlist_count: int = 0
    setlist_venue_name: Optional[str] = None  # venue name as setlist.fm spells it


@dataclass
class VenueMatch:
    name: str
    score: int


@dataclass
class VenueDetection:
    name: str
    method: str  # osm_scan_validated | osm_<key>_<value> | osm_scored
    confidence: str  # high | medium | low
    distance: Optional[float] = None
    venue_score: Optional[float] = None
    setlist_count: int = 0
    setlist_venue_name: Optional[str] = None
