from __future__ import annotations

from services.fuzzy_match import (
    extract_core_venue_name,
    find_best_venue_match,
    is_fuzzy_venue_match,
    normalize_venue_name,
    string_similarity,
)


def test_string_similarity_bounds() -> None:
    assert string_similarity("Neumos", "Neumos") == 100
    assert string_similarity("", "Neumos") == 0
    assert string_similarity("kitten", "sitting") == 57


def test_string_similarity_is_normalised_by_longer_name() -> None:
    # one edit over seven characters, not the indel ratio
    assert string_similarity("Neumos", "Neumo's") == 86
    assert string_similarity("abc", "xyz") == 0


def test_string_similarity_ignores_case() -> None:
    assert string_similarity("SHOWBOX", "showbox") == 100


def test_normalize_strips_prefixes_suffixes_and_accents() -> None:
    assert normalize_venue_name("The Greek Theatre") == "greek"
    assert normalize_venue_name("William Randolph Hearst Greek Theatre") == "greek"
    assert normalize_venue_name("Showbox at the Market") == "showbox"
    assert normalize_venue_name("Café Nervosa") == "cafe nervosa"


def test_extract_core_venue_name() -> None:
    assert extract_core_venue_name("Showbox at the Market") == "Showbox"
    assert extract_core_venue_name("Red Rocks Amphitheatre") == "Rocks"
    assert extract_core_venue_name("The Arena") == "Arena"
    assert extract_core_venue_name("TD Pavilion") == "TD"


def test_greek_theatre_variations_match() -> None:
    assert is_fuzzy_venue_match("The Greek Theatre", "William Randolph Hearst Greek Theatre")
    assert is_fuzzy_venue_match("The Greek Theatre", "Greek Theater")
    assert is_fuzzy_venue_match("Greek Theater Berkeley", "William Randolph Hearst Greek Theatre")


def test_raw_substring_match_before_normalization() -> None:
    assert is_fuzzy_venue_match("Mann", "TD Pavilion at the Mann")


def test_generic_shared_word_is_not_a_match() -> None:
    assert not is_fuzzy_venue_match("The Mann Center Lounge", "DNA Lounge")
    assert not is_fuzzy_venue_match("DNA Lounge", "The Mann Center Lounge")


def test_unrelated_venues_do_not_match() -> None:
    assert not is_fuzzy_venue_match("Neumos", "Showbox")
    assert not is_fuzzy_venue_match("", "Showbox")


def test_find_best_venue_match() -> None:
    match = find_best_venue_match("Greek Theater", ["Paramount Theatre", "The Greek Theatre"])
    assert match is not None
    assert match.name == "The Greek Theatre"
    assert match.score == 100


def test_find_best_venue_match_none_below_threshold() -> None:
    assert find_best_venue_match("Neumos", ["Climate Pledge Arena"]) is None
    assert find_best_venue_match("Neumos", []) is None
