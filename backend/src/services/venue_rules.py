"""Rule tables and scoring for nearby concert venue candidates.

Every point of a venue score comes from exactly one rule below and is
recorded as a reason string, so weights can be tuned here without touching
the scoring code.

Venue keywords weighted 25 or more are "strong": one of them can outweigh a
single unfavourable place type. Weaker keywords (hall, club, venue, ...)
plus the largest name-shape bonus stay below every unfavourable type
penalty, so a restaurant called "Club" still scores below zero.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models import CandidatePlace, ScoredCandidate


@dataclass(frozen=True)
class KeywordRule:
    keyword: str
    weight: float
    pattern: re.Pattern[str]


def _rule(keyword: str, weight: float, pattern: Optional[str] = None) -> KeywordRule:
    return KeywordRule(keyword, weight, re.compile(pattern or re.escape(keyword), re.IGNORECASE))


def _word(keyword: str, weight: float) -> KeywordRule:
    return _rule(keyword, weight, rf"\b{re.escape(keyword)}\b")


STRONG_KEYWORD_WEIGHT = 25.0

VENUE_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    _rule("arena", 40),
    _rule("stadium", 40),
    _rule("amphitheatre", 35),
    _rule("amphitheater", 35),
    _rule("colosseum", 35),
    _rule("coliseum", 35),
    _rule("theatre", 30, r"(?<!amphi)theatre"),
    _rule("theater", 30, r"(?<!amphi)theater"),
    _rule("auditorium", 30),
    _rule("opera", 25),
    _rule("ballroom", 25),
    _rule("pavilion", 25),
    _rule("concert", 25),
    _word("bowl", 25),
    _word("hall", 10),
    _rule("club", 10),
    _word("venue", 10),
    _word("palace", 10),
    _rule("lounge", 5),
    _word("music", 5),
    _word("center", 5),
    _word("centre", 5),
)

NON_VENUE_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    _rule("restaurant", -50),
    _rule("parking", -50),
    _word("park", -50),
    _rule("pharmacy", -50),
    _rule("hospital", -50),
    _rule("clinic", -50),
    _rule("dental", -50),
    _rule("hotel", -40),
    _rule("motel", -40),
    _rule("gas station", -40, r"\bgas\b|\b(?:fuel|petrol)\s+station\b"),
    _rule("pizza", -40),
    _rule("burger", -40),
    _rule("resort", -40),
    _word("store", -40),
    _word("mall", -40),
    _word("school", -40),
    _word("library", -40),
    _rule("mosque", -40),
    _rule("synagogue", -40),
    _word("trail", -40),
    _rule("playground", -40),
    _word("inn", -30),
    _rule("garage", -30),
    _rule("cafe", -30, r"\bcaf[eé]\b"),
    _rule("coffee", -30),
    _word("bar", -30),
    _word("grill", -30),
    _word("lodge", -30),
    _rule("shop", -30, r"\bshops?\b"),
    _word("lot", -30),
    _word("church", -30),
    _word("temple", -30),
    _word("museum", -30),
    # sponsor names: "Bank of America Stadium", "University of Phoenix Stadium"
    _word("bank", -20),
    _word("university", -20),
    _word("beach", -20),
    _word("market", -15),
)

TYPE_WEIGHTS: Dict[str, float] = {
    "stadium": 30,
    "night_club": 25,
    "concert_hall": 30,
    "performing_arts_theater": 30,
    "amphitheatre": 30,
    "event_venue": 20,
    "movie_theater": 10,
    "casino": 10,
    "restaurant": -40,
    "lodging": -40,
    "parking": -40,
    "cafe": -40,
    "gas_station": -40,
    # parks host concerts but are far more often just parks
    "park": -40,
    "store": -40,
    "supermarket": -40,
    "pharmacy": -40,
    "bank": -40,
    "atm": -40,
    "car_rental": -40,
    "school": -40,
    "hospital": -50,
    "church": -30,
    "bar": -20,
}

# +10 for one word, 0 for two, approaching -10 for very long names
NAME_SHAPE_SCALE = 20.0
NAME_SHAPE_OFFSET = 10.0


def _keyword_hits(rules: Tuple[KeywordRule, ...], name_lower: str) -> List[KeywordRule]:
    return [rule for rule in rules if rule.pattern.search(name_lower)]


def _name_shape_bonus(name: str) -> Tuple[float, int]:
    word_count = max(1, len(name.split()))
    return NAME_SHAPE_SCALE / word_count - NAME_SHAPE_OFFSET, word_count


def score_venue(candidate: CandidatePlace) -> ScoredCandidate:
    """Score how likely a nearby place is a concert venue.

    Keyword, type and name-shape rules are evaluated independently and
    summed. ``venue_reasons`` lists one entry per rule that fired, in
    evaluation order. The candidate itself is left untouched.
    """
    if not isinstance(candidate.name, str):
        raise ValueError("candidate name must be a string")

    name_lower = candidate.name.lower()
    score = 0.0
    reasons: list[str] = []

    for rule in _keyword_hits(VENUE_KEYWORD_RULES, name_lower):
        score += rule.weight
        reasons.append(f'Contains venue keyword: "{rule.keyword}"')

    for rule in _keyword_hits(NON_VENUE_KEYWORD_RULES, name_lower):
        score += rule.weight
        reasons.append(f'Contains non-venue keyword: "{rule.keyword}"')

    for tag in candidate.types or []:
        weight = TYPE_WEIGHTS.get(tag.lower(), 0)
        if weight > 0:
            reasons.append(f'Venue type: "{tag}"')
        elif weight < 0:
            reasons.append(f'Non-venue type: "{tag}"')
        score += weight

    bonus, word_count = _name_shape_bonus(candidate.name)
    if bonus > 0:
        reasons.append(f"Short name bonus: {word_count} word(s)")
    elif bonus < 0:
        reasons.append(f"Long name penalty: {word_count} words")
    score += bonus

    return ScoredCandidate(
        place=candidate,
        venue_score=float(round(score, 4)),
        venue_reasons=reasons,
    )
