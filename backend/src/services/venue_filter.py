from __future__ import annotations

from typing import Iterable, List, Optional

from models import CandidatePlace, ScoredCandidate
from services.venue_rules import score_venue


DEFAULT_VENUE_THRESHOLD = 0.0


def filter_venues(
    candidates: Iterable[CandidatePlace],
    threshold: float = DEFAULT_VENUE_THRESHOLD,
) -> List[ScoredCandidate]:
    """Score candidates, keep those strictly above ``threshold``, best first.

    Equal scores keep their input order.
    """
    scored = [score_venue(c) for c in candidates]
    kept = [s for s in scored if s.venue_score > threshold]
    kept.sort(key=lambda s: -s.venue_score)
    return kept


def get_best_venue(
    candidates: Iterable[CandidatePlace],
    threshold: float = DEFAULT_VENUE_THRESHOLD,
) -> Optional[ScoredCandidate]:
    ranked = filter_venues(candidates, threshold)
    return ranked[0] if ranked else None
