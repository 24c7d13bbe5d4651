#!/usr/bin/env python3
"""
Arrival Manager Testing Script
==============================

Verifies learned geofence radii, arrival confidence scoring, persistence
of learning data and disambiguation of neighbouring places.

Usage:
    python test_arrival_manager.py
    pytest test_arrival_manager.py

Author: Travel Geo Engine Team
"""

import sys
import json
import tempfile
import traceback

from config import config
from travel_geo.data_pipeline.data_models import Coordinate, SavedPlace
from travel_geo.geo_engine.arrival_manager import IntelligentArrivalManager
from travel_geo.utils.error_handler import ErrorHandler
from travel_geo.utils.storage import MemoryStore, FileStore


FIXED_NOW = 1700000000.0

CAFE = SavedPlace(id="cafe", name="Cafe de Flore", category="restaurant", lat=48.8541, lng=2.3326)
MUSEUM = SavedPlace(id="orsay", name="Musee d'Orsay", category="museum", lat=48.8600, lng=2.3266)
PARK = SavedPlace(id="luxembourg", name="Jardin du Luxembourg", category="park", lat=48.8462, lng=2.3372)
AIRPORT = SavedPlace(id="cdg", name="Charles de Gaulle", category="airport", lat=49.0097, lng=2.5479)
BENCH = SavedPlace(id="bench", name="Bench", category="other", lat=48.85, lng=2.35)


class FailingWriteStore(MemoryStore):
    """Store whose writes always fail"""

    def set(self, key, value):
        raise OSError("disk full")


class FailingReadStore(MemoryStore):
    """Store whose reads always fail"""

    def get(self, key):
        raise OSError("permission denied")


def print_test_header(test_name: str):
    """Print formatted test header"""
    print(f"\n{'='*60}")
    print(f"Testing: {test_name}")
    print(f"{'='*60}")


def print_test_result(test_name: str, success: bool, message: str = ""):
    """Print formatted test result"""
    status = "PASS" if success else "FAIL"
    print(f"{status} - {test_name}")
    if message:
        print(f"    {message}")


def expect_raises(exception_type, func, *args, **kwargs):
    """Assert that func raises exception_type"""
    try:
        func(*args, **kwargs)
    except exception_type:
        return
    raise AssertionError(f"{func.__name__} did not raise {exception_type.__name__}")


def create_manager(store=None, error_handler=None) -> IntelligentArrivalManager:
    """Manager on an in-memory store with a frozen clock"""
    return IntelligentArrivalManager(
        store if store is not None else MemoryStore(),
        clock=lambda: FIXED_NOW,
        error_handler=error_handler
    )


def stored_blob(store) -> dict:
    return json.loads(store.get(config.ARRIVAL_STORAGE_KEY).decode("utf-8"))


# =============================================================================
# RADIUS
# =============================================================================

def test_default_radius_without_learning():
    manager = create_manager()
    assert manager.get_intelligent_radius(BENCH, 0) == 50
    assert manager.get_intelligent_radius(CAFE, 0) == 50
    assert manager.get_intelligent_radius(PARK, 0) == 50
    # Airports never go below 100m
    assert manager.get_intelligent_radius(AIRPORT, 0) == 100


def test_speed_widens_radius():
    manager = create_manager()
    assert manager.get_intelligent_radius(BENCH, 0.4) == 50
    assert manager.get_intelligent_radius(BENCH, 1.0) == 55
    assert manager.get_intelligent_radius(BENCH, 5.0) == 65
    assert manager.get_intelligent_radius(BENCH, 10.0) == 75
    # Capped by the category maximum
    assert manager.get_intelligent_radius(BENCH, 10.0, base_radius=90) == 100


def test_unknown_category_uses_default_limits():
    manager = create_manager()
    spa = SavedPlace(id="spa", name="Spa", category="spa", lat=48.0, lng=2.0)
    assert manager.get_intelligent_radius(spa, 20.0, base_radius=500) == 100
    assert manager.get_intelligent_radius(spa, 0, base_radius=1) == 10


def test_learning_threshold():
    manager = create_manager()

    for _ in range(4):
        manager.record_confirmed_arrival(BENCH, 20, 0.5)
    assert manager.get_intelligent_radius(BENCH, 0) == 50

    manager.record_confirmed_arrival(BENCH, 20, 0.5)
    # 20 * 0.7 + 50 * 0.3
    assert manager.get_intelligent_radius(BENCH, 0) == 29


def test_restaurant_radius_always_clamped():
    for learned in (1, 500):
        manager = create_manager()
        for _ in range(5):
            manager.record_confirmed_arrival(CAFE, learned, 0.5)

        for speed in (0, 1, 5, 20):
            for base_radius in (10, 50, 400):
                radius = manager.get_intelligent_radius(CAFE, speed, base_radius=base_radius)
                assert 15 <= radius <= 80, (learned, speed, base_radius, radius)


def test_weighted_average_favours_recent():
    manager = create_manager()
    for distance in (10, 20, 30):
        manager.record_confirmed_arrival(MUSEUM, distance, 1.0)

    record = manager.get_learning_data("museum")
    assert record.confirmed_distances == [10.0, 20.0, 30.0]
    # (10/3 + 40/3 + 30) / 2
    assert record.average_distance == 23
    assert record.last_updated == int(FIXED_NOW * 1000)


def test_confirmations_are_bounded():
    manager = create_manager()
    for distance in range(51):
        manager.record_confirmed_arrival(MUSEUM, distance, 1.0)

    distances = manager.get_learning_data("museum").confirmed_distances
    assert len(distances) == 50
    assert distances[0] == 1.0
    assert distances[-1] == 50.0


def test_invalid_inputs_rejected():
    manager = create_manager()
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, -1, 0)
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, 10, -0.1)
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, float("nan"), 0)
    expect_raises(ValueError, manager.get_intelligent_radius, BENCH, -1)
    expect_raises(ValueError, manager.get_intelligent_radius, BENCH, 0, 0)
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, float("inf"), 0)
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, 10 ** 400, 0)
    expect_raises(ValueError, manager.record_confirmed_arrival, BENCH, 10, float("inf"))
    expect_raises(ValueError, manager.get_intelligent_radius, BENCH, 0, float("inf"))
    expect_raises(ValueError, manager.get_intelligent_radius, BENCH, float("-inf"))
    expect_raises(ValueError, manager.should_confirm_arrival, BENCH, -5, 0)
    expect_raises(ValueError, manager.should_confirm_arrival, BENCH, 10, 0, float("nan"))
    assert manager.get_learning_data("other") is None
    assert manager.get_arrival_history() == []


# =============================================================================
# CONFIRMATION
# =============================================================================

def test_confidence_never_exceeds_one():
    manager = create_manager()
    decision = manager.should_confirm_arrival(AIRPORT, 0, 0, dwell_time_ms=60000)
    assert decision.confidence == 1.0
    assert decision.confirmed is True
    assert decision.radius == 100
    assert any("Within" in reason for reason in decision.reasons)


def test_confidence_alone_does_not_confirm():
    manager = create_manager()
    decision = manager.should_confirm_arrival(AIRPORT, 1000, 0.2, dwell_time_ms=40000)
    assert decision.confidence == 0.7
    assert decision.confirmed is False


def test_confirmation_at_exact_threshold():
    manager = create_manager()
    decision = manager.should_confirm_arrival(BENCH, 10, 2.0)
    # 2.0 m/s is past the walking band of the radius multiplier
    assert decision.radius == 65
    assert decision.confidence == 0.6
    assert decision.confirmed is True
    assert "Walking pace" in decision.reasons


def test_open_area_penalty():
    manager = create_manager()
    decision = manager.should_confirm_arrival(PARK, 10, 2.0)
    assert decision.confidence == 0.55
    assert decision.confirmed is False


def test_dwell_time_signals():
    manager = create_manager()
    short = manager.should_confirm_arrival(BENCH, 500, 5.0, dwell_time_ms=15000)
    assert short.confidence == 0.1
    assert "Some dwell time" in short.reasons

    none = manager.should_confirm_arrival(BENCH, 500, 5.0, dwell_time_ms=10000)
    assert none.confidence == 0.0
    assert none.reasons == []


# =============================================================================
# PERSISTENCE
# =============================================================================

def test_learning_persists_across_managers():
    store = MemoryStore()
    manager = create_manager(store)
    for _ in range(5):
        manager.record_confirmed_arrival(BENCH, 20, 0.5)

    blob = stored_blob(store)
    assert set(blob) == {"other"}
    assert blob["other"] == {
        "category": "other",
        "confirmedDistances": [20.0] * 5,
        "averageDistance": 20,
        "lastUpdated": int(FIXED_NOW * 1000),
    }

    reloaded = create_manager(store)
    assert reloaded.get_learning_data("other").confirmed_distances == [20.0] * 5
    assert reloaded.get_intelligent_radius(BENCH, 0) == 29


def test_file_store_persistence():
    with tempfile.TemporaryDirectory() as directory:
        manager = create_manager(FileStore(directory))
        manager.record_confirmed_arrival(MUSEUM, 42, 1.0)

        reloaded = create_manager(FileStore(directory))
        assert reloaded.get_learning_stats()["museum"]["confirmedDistances"] == [42.0]


def test_corrupted_blob_is_cold_start():
    error_handler = ErrorHandler()
    store = MemoryStore({config.ARRIVAL_STORAGE_KEY: b"{not json"})
    manager = create_manager(store, error_handler)

    assert manager.get_learning_stats() == {}
    assert manager.get_intelligent_radius(BENCH, 0) == 50
    assert error_handler.get_error_statistics()["errors_by_category"] == {"data_corruption": 1}

    # Non-object JSON is ignored as well
    list_store = MemoryStore({config.ARRIVAL_STORAGE_KEY: b"[1, 2, 3]"})
    assert create_manager(list_store).get_learning_stats() == {}


def test_corrupted_entries_are_discarded():
    blob = {
        "park": {"category": "park", "confirmedDistances": [60] * 5,
                 "averageDistance": 60, "lastUpdated": 1},
        "museum": "garbage",
        "hotel": {"confirmedDistances": ["x"]},
        "shopping": {"confirmedDistances": list(range(60)), "lastUpdated": 2},
        # Non-finite numbers are valid JSON tokens for json.loads
        "stadium": {"confirmedDistances": [float("nan"), 20]},
        "transport": {"confirmedDistances": [float("inf")]},
        "airport": {"confirmedDistances": [10 ** 400]},
        "attraction": {"confirmedDistances": [20], "averageDistance": float("-inf")},
        "restaurant": {"confirmedDistances": [20], "lastUpdated": 10 ** 400},
    }
    store = MemoryStore({config.ARRIVAL_STORAGE_KEY: json.dumps(blob).encode("utf-8")})
    manager = create_manager(store)

    stats = manager.get_learning_stats()
    assert set(stats) == {"park", "shopping"}
    # 60 * 0.7 + 50 * 0.3
    assert manager.get_intelligent_radius(PARK, 0) == 57
    # Over-long lists are trimmed to the newest entries on load
    assert stats["shopping"]["confirmedDistances"][0] == 10.0
    assert len(stats["shopping"]["confirmedDistances"]) == 50


def test_storage_failures_are_swallowed():
    error_handler = ErrorHandler()
    manager = create_manager(FailingWriteStore(), error_handler)
    manager.record_confirmed_arrival(BENCH, 20, 0.5)

    assert manager.get_learning_data("other").confirmed_distances == [20.0]
    assert error_handler.get_error_statistics()["errors_by_category"] == {"storage_write": 1}

    read_errors = ErrorHandler()
    reader = create_manager(FailingReadStore(), read_errors)
    assert reader.get_learning_stats() == {}
    assert read_errors.get_error_statistics()["errors_by_category"] == {"storage_read": 1}


def test_history_and_clear():
    store = MemoryStore()
    manager = create_manager(store)
    manager.record_confirmed_arrival(CAFE, 12, 0.8)
    manager.record_confirmed_arrival(MUSEUM, 30, 1.2)

    history = manager.get_arrival_history()
    assert [h.place_id for h in history] == ["cafe", "orsay"]
    assert history[0].category == "restaurant"
    assert history[0].confirmed_distance == 12.0
    assert history[0].timestamp == int(FIXED_NOW * 1000)

    manager.clear_learning_data()
    assert manager.get_learning_stats() == {}
    assert manager.get_arrival_history() == []
    assert store.get(config.ARRIVAL_STORAGE_KEY) is None


def test_learning_data_is_a_copy():
    manager = create_manager()
    manager.record_confirmed_arrival(BENCH, 20, 0.5)

    record = manager.get_learning_data("other")
    record.confirmed_distances.append(999.0)
    assert manager.get_learning_data("other").confirmed_distances == [20.0]


# =============================================================================
# CONTIGUOUS PLACES
# =============================================================================

def test_resolve_contiguous_pois():
    manager = create_manager()
    user = Coordinate(0.0, 0.0)
    east = SavedPlace(id="east", name="East Shop", category="shopping", lat=0.0001, lng=0.0001)
    north = SavedPlace(id="north", name="North Cafe", category="restaurant", lat=0.0001, lng=0.00001)
    west = SavedPlace(id="west", name="West Hotel", category="hotel", lat=0.00001, lng=-0.0004)

    assert manager.resolve_contiguous_pois([]) is None

    candidates = [(east, 15.0), (north, 11.0)]
    assert manager.resolve_contiguous_pois(candidates).id == "north"
    assert manager.resolve_contiguous_pois(candidates, user_heading=90).id == "north"
    assert manager.resolve_contiguous_pois(candidates, 45, user).id == "east"
    assert manager.resolve_contiguous_pois(candidates, 10, user).id == "north"

    # 29m further than the closest place is not ambiguous
    assert manager.resolve_contiguous_pois([(north, 11.0), (west, 40.0)], 270, user).id == "north"


def main():
    """Run all arrival manager tests"""
    print_test_header("Intelligent Arrival Manager")

    tests = [(name, func) for name, func in globals().items()
             if name.startswith("test_") and callable(func)]
    failures = 0

    for name, func in tests:
        try:
            func()
            print_test_result(name, True)
        except Exception as e:
            failures += 1
            print_test_result(name, False, str(e))
            traceback.print_exc()

    print(f"\n{len(tests) - failures}/{len(tests)} tests passed")
    return failures == 0


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
