import sys
from pathlib import Path

import pytest


# backend/src holds top-level modules (`config`, `models`, `services.*`)
SRC = Path(__file__).resolve().parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

_ENV_KEYS = (
    "OVERPASS_URL",
    "OVERPASS_TIMEOUT",
    "SETLISTFM_API_KEY",
    "SETLISTFM_BASE_URL",
    "SETLISTFM_TIMEOUT",
    "SETLISTFM_MIN_DELAY",
    "VENUE_SEARCH_RADIUS_M",
    "VENUE_CLOSE_DISTANCE_M",
    "VENUE_VALIDATION_LIMIT",
    "VENUE_SCORE_THRESHOLD",
    "MANUAL_SELECTION_THRESHOLD",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
