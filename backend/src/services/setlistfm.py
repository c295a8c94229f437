from __future__ import annotations

import re
import threading
import time
from typing import List, Optional

import requests
from loguru import logger

from config import Configuration
from models import VenueValidation
from services.fuzzy_match import find_best_venue_match, is_fuzzy_venue_match


class SetlistFmError(RuntimeError):
    pass


_LOCATION_SUFFIX = re.compile(r"\s+(?:at|@)\s+(?:the\s+)?[\w\s]+$", re.IGNORECASE)


def simplify_venue_name(name: str) -> str:
    """Drop an "at the Market" / "@ The Venetian" style suffix."""
    return _LOCATION_SUFFIX.sub("", name).strip()


class SetlistFmClient:
    def __init__(self, cfg: Configuration) -> None:
        cfg.require_setlistfm()
        self.cfg = cfg
        self.base = cfg.setlistfm_base_url.rstrip("/")
        self.session = requests.Session()
        self._lock = threading.Lock()
        self._last_call = 0.0

    def _rate_limit(self) -> None:
        with self._lock:
            wait = self.cfg.setlistfm_min_delay - (time.monotonic() - self._last_call)
            if wait > 0:
                logger.debug("setlist.fm rate limit: waiting {:.0f}ms", wait * 1000)
                time.sleep(wait)
            self._last_call = time.monotonic()

    def _setlist_venues(self, venue_name: str, city: str) -> List[str]:
        """Venue names of the setlists found for ``venue_name`` that really match it.

        setlist.fm's venue search is loose, so each returned setlist's venue
        is checked with ``is_fuzzy_venue_match``. A setlist without venue
        details is credited to the queried name.
        """
        self._rate_limit()
        headers = {"x-api-key": self.cfg.setlistfm_api_key or "", "Accept": "application/json"}
        params = {"venueName": venue_name, "cityName": city, "p": 1}
        try:
            resp = self.session.get(
                f"{self.base}/search/setlists",
                headers=headers,
                params=params,
                timeout=self.cfg.setlistfm_timeout,
            )
        except requests.RequestException as exc:
            raise SetlistFmError(f"request error: {exc}")

        if resp.status_code == 404:
            return []
        if not resp.ok:
            raise SetlistFmError(f"upstream {resp.status_code}: {resp.text[:300]}")
        try:
            payload = resp.json()
        except ValueError:
            raise SetlistFmError("invalid json response")

        matched: List[str] = []
        for setlist in payload.get("setlist") or []:
            found = ((setlist.get("venue") or {}).get("name") or "").strip()
            if not found:
                matched.append(venue_name)
            elif is_fuzzy_venue_match(venue_name, found):
                matched.append(found)
            else:
                logger.debug("setlist.fm: ignoring setlist at '{}' for '{}'", found, venue_name)
        return matched

    def _validation(self, queried: str, venues: List[str]) -> VenueValidation:
        best = find_best_venue_match(queried, dict.fromkeys(venues), threshold=0)
        logger.info("setlist.fm: '{}' has {} setlists", queried, len(venues))
        return VenueValidation(
            has_setlists=True,
            setlist_count=len(venues),
            setlist_venue_name=best.name if best else None,
        )

    def validate_venue(self, venue_name: str, city: str) -> VenueValidation:
        """Check whether setlist.fm knows concerts at this venue.

        Fails open: on upstream errors the venue is assumed valid so a
        flaky API does not hide real venues.
        """
        try:
            venues = self._setlist_venues(venue_name, city)
            if venues:
                return self._validation(venue_name, venues)

            simplified = simplify_venue_name(venue_name)
            if simplified and simplified != venue_name:
                logger.debug("setlist.fm: no results for '{}', trying '{}'", venue_name, simplified)
                venues = self._setlist_venues(simplified, city)
                if venues:
                    return self._validation(simplified, venues)
        except SetlistFmError as exc:
            logger.error("setlist.fm validation failed for '{}': {}", venue_name, exc)
            return VenueValidation(has_setlists=True, setlist_count=0)

        logger.info("setlist.fm: '{}' has no setlists in {}", venue_name, city)
        return VenueValidation(has_setlists=False, setlist_count=0)


def build_setlistfm_client(cfg: Configuration) -> Optional[SetlistFmClient]:
    if not cfg.setlistfm_api_key:
        return None
    return SetlistFmClient(cfg)
