from __future__ import annotations

from unittest.mock import MagicMock

from config import Configuration
from models import OSMVenue, VenueValidation
from services.overpass import OverpassError
from services.venue_detection import detect_venue, nearby_venue_options


LAT, LON = 47.6062, -122.3321


def _venue(name: str, tag: str, distance: float) -> OSMVenue:
    key, _, value = tag.partition("=")
    return OSMVenue(name=name, lat=LAT, lon=LON, tags={"name": name, key: value}, matched_tag=tag, distance=distance)


def _overpass(*venues: OSMVenue) -> MagicMock:
    overpass = MagicMock()
    overpass.find_venues.return_value = list(venues)
    return overpass


def _setlistfm(valid: set[str]) -> MagicMock:
    setlistfm = MagicMock()
    setlistfm.validate_venue.side_effect = lambda name, city: VenueValidation(
        has_setlists=name in valid, setlist_count=12 if name in valid else 0
    )
    return setlistfm


def test_no_venues_returns_none() -> None:
    assert detect_venue(Configuration(), LAT, LON, overpass=_overpass()) is None


def test_overpass_failure_is_treated_as_no_venues() -> None:
    overpass = MagicMock()
    overpass.find_venues.side_effect = OverpassError("upstream 504")
    assert detect_venue(Configuration(), LAT, LON, overpass=overpass) is None


def test_searches_with_configured_radius() -> None:
    overpass = _overpass()
    detect_venue(Configuration(venue_search_radius_m=250), LAT, LON, overpass=overpass)
    overpass.find_venues.assert_called_once_with(LAT, LON, radius_m=250)


def test_closest_venue_within_close_distance_is_used() -> None:
    result = detect_venue(Configuration(), LAT, LON, overpass=_overpass(_venue("The Crocodile", "amenity=nightclub", 10)))
    assert result is not None
    assert result.name == "The Crocodile"
    assert result.method == "osm_amenity_nightclub"
    assert result.confidence == "high"


def test_close_park_gets_low_confidence() -> None:
    result = detect_venue(Configuration(), LAT, LON, overpass=_overpass(_venue("Marymoor Park", "leisure=park", 20)))
    assert result is not None
    assert result.confidence == "low"
    assert result.method == "osm_leisure_park"


def test_setlist_validation_picks_first_valid_venue() -> None:
    overpass = _overpass(
        _venue("Gas Works Park", "leisure=park", 30),
        _venue("Paramount Theatre", "amenity=theatre", 120),
        _venue("Neumos", "amenity=nightclub", 300),
    )
    setlistfm = _setlistfm({"Paramount Theatre", "Neumos"})
    result = detect_venue(Configuration(), LAT, LON, "Seattle", overpass=overpass, setlistfm=setlistfm)

    assert result is not None
    assert result.name == "Paramount Theatre"
    assert result.method == "osm_scan_validated"
    assert result.confidence == "medium"
    assert result.setlist_count == 12
    assert setlistfm.validate_venue.call_count == 2


def test_validation_confidence_by_distance() -> None:
    for distance, expected in ((40, "high"), (150, "medium"), (450, "low")):
        overpass = _overpass(_venue("Neumos", "amenity=nightclub", distance))
        result = detect_venue(Configuration(), LAT, LON, "Seattle", overpass=overpass, setlistfm=_setlistfm({"Neumos"}))
        assert result is not None
        assert result.confidence == expected


def test_validation_is_limited_to_closest_venues() -> None:
    venues = [_venue(f"Venue {i}", "amenity=nightclub", 100 + i) for i in range(8)]
    setlistfm = _setlistfm(set())
    detect_venue(Configuration(venue_validation_limit=3), LAT, LON, "Seattle", overpass=_overpass(*venues), setlistfm=setlistfm)
    assert setlistfm.validate_venue.call_count == 3


def test_without_city_setlistfm_is_not_consulted() -> None:
    setlistfm = _setlistfm({"Neumos"})
    detect_venue(Configuration(), LAT, LON, overpass=_overpass(_venue("Neumos", "amenity=nightclub", 10)), setlistfm=setlistfm)
    setlistfm.validate_venue.assert_not_called()


def test_falls_back_to_scored_venue() -> None:
    overpass = _overpass(
        _venue("Gas Works Park", "leisure=park", 80),
        _venue("Climate Pledge Arena", "leisure=stadium", 140),
    )
    result = detect_venue(Configuration(), LAT, LON, overpass=overpass)
    assert result is not None
    assert result.name == "Climate Pledge Arena"
    assert result.method == "osm_scored"
    assert result.confidence == "low"
    assert result.venue_score is not None and result.venue_score > 0
    assert result.distance == 140


def test_distant_non_venues_return_none() -> None:
    overpass = _overpass(_venue("Marymoor Park", "leisure=park", 120), _venue("Gas Works Park", "leisure=park", 300))
    assert detect_venue(Configuration(), LAT, LON, overpass=overpass) is None


def test_nearby_options_are_lenient_and_ranked() -> None:
    overpass = _overpass(
        _venue("Gas Works Park", "leisure=park", 30),
        _venue("Neumos", "amenity=nightclub", 60),
        _venue("Climate Pledge Arena", "leisure=stadium", 90),
    )
    options = nearby_venue_options(Configuration(), LAT, LON, overpass=overpass)
    assert [o.name for o in options] == ["Climate Pledge Arena", "Neumos"]
    assert options[1].distance == 60

    everything = nearby_venue_options(Configuration(), LAT, LON, overpass=overpass, threshold=-1000)
    assert len(everything) == 3


def test_setlist_rejected_venues_are_not_picked_by_score() -> None:
    overpass = _overpass(
        _venue("Gas Works Park", "leisure=park", 80),
        _venue("Climate Pledge Arena", "leisure=stadium", 140),
    )
    setlistfm = _setlistfm(set())
    result = detect_venue(Configuration(), LAT, LON, "Seattle", overpass=overpass, setlistfm=setlistfm)
    assert result is None
    assert setlistfm.validate_venue.call_count == 2


def test_scored_fallback_skips_only_rejected_venues() -> None:
    overpass = _overpass(
        _venue("Neumos", "amenity=nightclub", 80),
        _venue("Climate Pledge Arena", "leisure=stadium", 140),
    )
    result = detect_venue(
        Configuration(venue_validation_limit=1),
        LAT,
        LON,
        "Seattle",
        overpass=overpass,
        setlistfm=_setlistfm(set()),
    )
    assert result is not None
    assert result.name == "Climate Pledge Arena"
    assert result.method == "osm_scored"


def test_validated_detection_carries_setlist_fm_name() -> None:
    setlistfm = MagicMock()
    setlistfm.validate_venue.return_value = VenueValidation(
        has_setlists=True, setlist_count=5, setlist_venue_name="The Showbox"
    )
    overpass = _overpass(_venue("Showbox at the Market", "amenity=nightclub", 20))
    result = detect_venue(Configuration(), LAT, LON, "Seattle", overpass=overpass, setlistfm=setlistfm)
    assert result is not None
    assert result.setlist_venue_name == "The Showbox"
