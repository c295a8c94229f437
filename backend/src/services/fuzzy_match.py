from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional

from loguru import logger
from rapidfuzz.distance import Levenshtein

from models import VenueMatch


_LEADING_PREFIX = re.compile(r"^(?:william randolph hearst|the)\s+", re.IGNORECASE)
_LOCATION_SUFFIX = re.compile(r"\s+(?:at|@)\s+(?:the\s+)?[\w\s]+$", re.IGNORECASE)
_VENUE_TYPE_WORDS = re.compile(
    r"\b(?:amphitheatre|amphitheater|theater|theatre|venue|winery|arena|stadium|hall|center|centre|auditorium|pavilion)\b",
    re.IGNORECASE,
)
_PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()'\"‘’“”\[\]<>|\\@]")
_WHITESPACE = re.compile(r"\s+")

_CORE_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_CORE_AT_THE = re.compile(r"^(.+?)\s+at\s+(?:the\s+)?", re.IGNORECASE)
_CORE_TYPE_SUFFIX = re.compile(
    r"\s+(?:amphitheatre|amphitheater|theater|theatre|arena|stadium|center|centre|pavilion|pavillion|hall|ballroom)$",
    re.IGNORECASE,
)
_CORE_SKIP_WORDS = {"the", "at", "of", "and", "in", "td", "bank", "center", "centre"}

# generic venue words never count as a shared "significant" word
_COMMON_VENUE_WORDS = {
    "the", "and", "lounge", "center", "centre", "hall", "theater", "theatre",
    "amphitheatre", "amphitheater", "arena", "stadium", "ballroom", "club",
    "bar", "cafe", "room", "house", "park",
}

MIN_SUBSTRING_LEN = 4


def string_similarity(a: str, b: str) -> int:
    """Similarity percentage (0-100): Levenshtein distance over the longer length."""
    if not a or not b:
        return 0
    if a == b:
        return 100
    return round(Levenshtein.normalized_similarity(a.lower(), b.lower()) * 100)


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_venue_name(name: str) -> str:
    text = _strip_accents(name.lower())
    text = _LEADING_PREFIX.sub("", text)
    text = _LOCATION_SUFFIX.sub("", text)
    text = _VENUE_TYPE_WORDS.sub("", text)
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_core_venue_name(name: str) -> str:
    """Reduce a venue name to its most distinctive word.

    "Showbox at the Market" -> "Showbox", "Red Rocks Amphitheatre" -> "Rocks".
    Falls back to the cleaned name, or the original when nothing is left.
    """
    cleaned = _CORE_ARTICLE.sub("", name).strip()
    at_the = _CORE_AT_THE.match(cleaned)
    if at_the:
        cleaned = at_the.group(1).strip()
    cleaned = _CORE_TYPE_SUFFIX.sub("", cleaned).strip()

    words = cleaned.split()
    if not words:
        return name

    significant = [w for w in words if w.lower() not in _CORE_SKIP_WORDS and not w.isdigit()]
    if significant:
        return significant[-1]
    return cleaned


def _is_distinctive(core: str) -> bool:
    return len(core) >= MIN_SUBSTRING_LEN and core not in _COMMON_VENUE_WORDS


def _significant_words(normalized: str) -> list[str]:
    return [w for w in normalized.split() if len(w) > 2 and w not in _COMMON_VENUE_WORDS]


def is_fuzzy_venue_match(name1: str, name2: str, threshold: int = 70) -> bool:
    if not name1 or not name2:
        return False

    lower1 = name1.lower().strip()
    lower2 = name2.lower().strip()
    if lower1 == lower2:
        return True

    # before normalization: "Mann" vs "TD Pavilion at the Mann" loses "Mann" otherwise
    if len(lower1) >= MIN_SUBSTRING_LEN and lower1 in lower2:
        logger.debug("fuzzy: '{}' is substring of '{}'", name1, name2)
        return True
    if len(lower2) >= MIN_SUBSTRING_LEN and lower2 in lower1:
        logger.debug("fuzzy: '{}' is substring of '{}'", name2, name1)
        return True

    norm1 = normalize_venue_name(name1)
    norm2 = normalize_venue_name(name2)
    if norm1 and norm2 and (norm1 in norm2 or norm2 in norm1):
        return True

    core1 = normalize_venue_name(extract_core_venue_name(name1))
    core2 = normalize_venue_name(extract_core_venue_name(name2))
    if _is_distinctive(core1) and core1 == core2:
        logger.debug("fuzzy: core name match '{}' vs '{}' -> '{}'", name1, name2, core1)
        return True
    if (_is_distinctive(core1) and core1 in norm2) or (_is_distinctive(core2) and core2 in norm1):
        logger.debug("fuzzy: core name substring match '{}' vs '{}'", name1, name2)
        return True

    words1 = _significant_words(norm1)
    words2 = _significant_words(norm2)
    shares_word = any(
        w1 in w2 or w2 in w1 or string_similarity(w1, w2) >= 80
        for w1 in words1
        for w2 in words2
    )
    if words1 and words2 and not shares_word:
        logger.debug("fuzzy: '{}' vs '{}' share no significant word", name1, name2)
        return False

    similarity = string_similarity(norm1, norm2)
    logger.debug("fuzzy: '{}' vs '{}' = {}% (threshold {}%)", name1, name2, similarity, threshold)
    return similarity >= threshold


def find_best_venue_match(
    target: str,
    candidates: Iterable[str],
    threshold: int = 70,
) -> Optional[VenueMatch]:
    if not target:
        return None
    normalized = normalize_venue_name(target)
    best: Optional[VenueMatch] = None
    for candidate in candidates:
        score = string_similarity(normalized, normalize_venue_name(candidate))
        if score >= threshold and (best is None or score > best.score):
            best = VenueMatch(name=candidate, score=score)
    return best
