from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from loguru import logger

from config import Configuration
from models import CandidatePlace, OSMVenue
from utils import haversine_m


class OverpassError(RuntimeError):
    pass


# OSM tags that mark a place as a possible concert venue
VENUE_TAGS: Dict[str, Tuple[str, ...]] = {
    "amenity": ("nightclub", "theatre", "theater", "stage", "events_venue", "events_centre"),
    "leisure": ("bandstand", "stadium", "park"),
}

# OSM tag value -> place type understood by the venue scorer
OSM_TYPE_MAP: Dict[str, str] = {
    "nightclub": "night_club",
    "theatre": "performing_arts_theater",
    "theater": "performing_arts_theater",
    "stage": "event_venue",
    "events_venue": "event_venue",
    "events_centre": "event_venue",
    "bandstand": "event_venue",
    "stadium": "stadium",
    "park": "park",
}


@dataclass
class _RetryPolicy:
    retries: int = 3
    base_delay: float = 0.5


def build_query(lat: float, lon: float, radius_m: int) -> str:
    lines = ["[out:json][timeout:10];", "("]
    for key, values in VENUE_TAGS.items():
        regex = "|".join(values)
        for element in ("node", "way", "relation"):
            lines.append(f'  {element}(around:{radius_m},{lat},{lon})["{key}"~"^({regex})$"];')
    lines.append(");")
    lines.append("out center tags;")
    return "\n".join(lines)


def _matched_tag(tags: Dict[str, str]) -> Optional[str]:
    for key, values in VENUE_TAGS.items():
        value = tags.get(key)
        if value and value in values:
            return f"{key}={value}"
    return None


def osm_venue_to_candidate(venue: OSMVenue) -> CandidatePlace:
    types: list[str] = []
    for key in VENUE_TAGS:
        mapped = OSM_TYPE_MAP.get(venue.tags.get(key) or "")
        if mapped and mapped not in types:
            types.append(mapped)
    return CandidatePlace(
        name=venue.name,
        types=types,
        distance=round(venue.distance),
        lat=venue.lat,
        lon=venue.lon,
    )


class OverpassClient:
    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg
        self.url = cfg.overpass_url
        self.session = requests.Session()
        self._retry = _RetryPolicy()
        self._cache_ttl = 60 * 30  # 30 minutes
        self._cache_max = 128
        self._venue_cache: OrderedDict[str, Tuple[float, List[OSMVenue]]] = OrderedDict()

    def _cache_get(self, key: str) -> Optional[List[OSMVenue]]:
        entry = self._venue_cache.get(key)
        if not entry:
            return None
        ts, value = entry
        if time.time() - ts > self._cache_ttl:
            self._venue_cache.pop(key, None)
            return None
        self._venue_cache.move_to_end(key)
        return value

    def _cache_set(self, key: str, value: List[OSMVenue]) -> None:
        if len(self._venue_cache) >= self._cache_max:
            self._venue_cache.popitem(last=False)
        self._venue_cache[key] = (time.time(), value)

    def _post(self, query: str) -> dict:
        headers = {"Content-Type": "text/plain", "Accept": "application/json"}
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.post(self.url, data=query, headers=headers, timeout=self.cfg.overpass_timeout)
            except requests.RequestException as exc:  # network error or client timeout
                if attempt <= self._retry.retries:
                    time.sleep(self._retry.base_delay * attempt)
                    continue
                raise OverpassError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= self._retry.retries:
                    logger.warning("overpass returned {}, retrying (attempt {})", resp.status_code, attempt)
                    time.sleep(self._retry.base_delay * attempt)
                    continue
                raise OverpassError(f"upstream {resp.status_code}: {resp.text[:300]}")

            if not resp.ok:
                raise OverpassError(f"upstream {resp.status_code}: {resp.text[:300]}")

            try:
                return resp.json()
            except ValueError:
                raise OverpassError("invalid json response")

    def _parse_elements(self, elements: List[dict], lat: float, lon: float) -> List[OSMVenue]:
        venues: list[OSMVenue] = []
        for element in elements:
            tags: Dict[str, Any] = element.get("tags") or {}
            name = tags.get("name")
            if not name:
                logger.debug("overpass: skipping unnamed element {}", element.get("id"))
                continue

            center = element.get("center") or {}
            el_lat = element.get("lat", center.get("lat"))
            el_lon = element.get("lon", center.get("lon"))
            if el_lat is None or el_lon is None:
                logger.debug("overpass: skipping element {} without coordinates", element.get("id"))
                continue

            matched = _matched_tag(tags)
            if not matched:
                continue

            venues.append(
                OSMVenue(
                    name=str(name),
                    lat=float(el_lat),
                    lon=float(el_lon),
                    tags={str(k): str(v) for k, v in tags.items()},
                    matched_tag=matched,
                    distance=haversine_m(lat, lon, float(el_lat), float(el_lon)),
                )
            )
        venues.sort(key=lambda v: v.distance)
        return venues

    def find_venues(self, lat: float, lon: float, *, radius_m: int = 100) -> List[OSMVenue]:
        """Named OSM venues within ``radius_m`` of the point, closest first."""
        key = f"around:{lat:.5f},{lon:.5f}:{radius_m}"
        cached = self._cache_get(key)
        if cached is not None:
            return list(cached)

        logger.info("overpass: querying venues within {}m of {}, {}", radius_m, lat, lon)
        payload = self._post(build_query(lat, lon, radius_m))
        elements = payload.get("elements") or []
        venues = self._parse_elements(elements, lat, lon)
        logger.info("overpass: {} elements, {} venues", len(elements), len(venues))
        self._cache_set(key, list(venues))
        return venues
