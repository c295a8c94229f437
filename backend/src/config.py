from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class Configuration(BaseModel):
    # OpenStreetMap Overpass
    overpass_url: str = Field(default="https://overpass-api.de/api/interpreter")
    overpass_timeout: int = Field(default=15)

    # setlist.fm
    setlistfm_api_key: Optional[str] = Field(default=None)
    setlistfm_base_url: str = Field(default="https://api.setlist.fm/rest/1.0")
    setlistfm_timeout: int = Field(default=10)
    # 2 requests/second per setlist.fm terms
    setlistfm_min_delay: float = Field(default=0.5)

    # Venue detection
    venue_search_radius_m: int = Field(default=600)
    venue_close_distance_m: float = Field(default=50.0)
    venue_validation_limit: int = Field(default=5)
    venue_score_threshold: float = Field(default=0.0)
    manual_selection_threshold: float = Field(default=-50.0)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "overpass_url": os.getenv("OVERPASS_URL"),
            "overpass_timeout": os.getenv("OVERPASS_TIMEOUT"),
            "setlistfm_api_key": os.getenv("SETLISTFM_API_KEY"),
            "setlistfm_base_url": os.getenv("SETLISTFM_BASE_URL"),
            "setlistfm_timeout": os.getenv("SETLISTFM_TIMEOUT"),
            "setlistfm_min_delay": os.getenv("SETLISTFM_MIN_DELAY"),
            "venue_search_radius_m": os.getenv("VENUE_SEARCH_RADIUS_M"),
            "venue_close_distance_m": os.getenv("VENUE_CLOSE_DISTANCE_M"),
            "venue_validation_limit": os.getenv("VENUE_VALIDATION_LIMIT"),
            "venue_score_threshold": os.getenv("VENUE_SCORE_THRESHOLD"),
            "manual_selection_threshold": os.getenv("MANUAL_SELECTION_THRESHOLD"),
        }

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_setlistfm(self) -> None:
        if not self.setlistfm_api_key:
            raise ValueError("SETLISTFM_API_KEY is required")

    def log_summary(self) -> str:
        return (
            "overpass=%s timeout=%s setlistfm=%s radius_m=%s threshold=%s api_key=%s"
            % (
                self.overpass_url,
                self.overpass_timeout,
                bool(self.setlistfm_api_key),
                self.venue_search_radius_m,
                self.venue_score_threshold,
                mask_secret(self.setlistfm_api_key),
            )
        )
