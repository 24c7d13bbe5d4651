"""
Intelligent Arrival Confirmation
================================

Decides whether a user approaching a saved place has arrived, using a
geofence radius learned per place category instead of one fixed size:
- Records confirmed arrival distances per category (bounded, FIFO)
- Blends the recency-weighted learned distance with a base radius
- Widens the radius with speed to absorb GPS drift
- Clamps to category limits and scores confidence from distance,
  speed, dwell time and category signals
- Picks one place when several saved places are close together

One manager per user session; learning data lives in an injected
KeyValueStore as a single JSON blob keyed by category.

Author: Travel Geo Engine Team
"""

import json
import math
import time
import logging
import copy
from collections import deque
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..data_pipeline.data_models import (
    Coordinate, SavedPlace, RadiusLearningData, ArrivalHistoryData, ArrivalDecision
)
from ..utils.data_utils import calculate_bearing, angular_difference, round_half_up
from ..utils.error_handler import ErrorHandler
from ..utils.storage import KeyValueStore
from config import config


DEFAULT_CATEGORY = "other"

LEARNED_WEIGHT = 0.7
BASE_WEIGHT = 0.3

# Radius limits in metres, applied last
CATEGORY_RADIUS_CONSTRAINTS = {
    "restaurant": (15, 80),
    "hotel": (30, 150),
    "museum": (40, 200),
    "park": (50, 300),
    "airport": (100, 500),
    "stadium": (100, 400),
    "shopping": (20, 100),
    "attraction": (30, 150),
    "transport": (20, 100),
    "other": (10, 100),
}

# Large venues with clear boundaries are easier to detect, open areas harder
CATEGORY_CONFIDENCE_BONUS = {
    "restaurant": 0.1,
    "hotel": 0.15,
    "museum": 0.1,
    "park": -0.05,
    "airport": 0.2,
    "stadium": 0.15,
    "shopping": 0.1,
    "attraction": 0.05,
    "transport": 0.1,
    "other": 0.0,
}

# (upper speed bound in m/s, radius multiplier)
SPEED_MULTIPLIERS = (
    (0.5, 1.0),   # stationary
    (2.0, 1.1),   # walking
    (8.0, 1.3),   # cycling / jogging
)
FAST_SPEED_MULTIPLIER = 1.5  # driving

WITHIN_RADIUS_CONFIDENCE = 0.4
SLOW_SPEED_MS, SLOW_SPEED_CONFIDENCE = 1.0, 0.3
WALKING_SPEED_MS, WALKING_SPEED_CONFIDENCE = 3.0, 0.2
LONG_DWELL_MS, LONG_DWELL_CONFIDENCE = 30000, 0.2
SHORT_DWELL_MS, SHORT_DWELL_CONFIDENCE = 10000, 0.1


def _require_non_negative(name: str, value: float) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite or value < 0:
        raise ValueError(f"{name} must be a finite non-negative number, got {value}")
    return value


class IntelligentArrivalManager:
    """
    Adaptive geofence radius and arrival confidence per place category
    """

    def __init__(self, store: KeyValueStore, storage_key: Optional[str] = None,
                 clock: Callable[[], float] = time.time,
                 error_handler: Optional[ErrorHandler] = None):
        """
        Initialize the manager and load persisted learning data

        Args:
            store (KeyValueStore): Where learning data is persisted
            storage_key (str): Key of the learning blob (default from config)
            clock (Callable): Seconds since epoch, injectable for tests
            error_handler (ErrorHandler): Reports swallowed storage failures
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.storage_key = storage_key or config.ARRIVAL_STORAGE_KEY
        self._clock = clock
        self.error_handler = error_handler or ErrorHandler()

        self.learning_threshold = config.ARRIVAL_LEARNING_THRESHOLD
        self.max_confirmations = config.ARRIVAL_MAX_CONFIRMATIONS
        self.confirmation_threshold = config.ARRIVAL_CONFIRMATION_THRESHOLD
        self.contiguous_threshold_m = config.CONTIGUOUS_POI_THRESHOLD_M
        self.default_base_radius = config.ARRIVAL_BASE_RADIUS_M

        self._learning_data: Dict[str, RadiusLearningData] = {}
        self._history: deque = deque(maxlen=config.ARRIVAL_MAX_HISTORY_ENTRIES)

        self._load_learning_data()

        self.logger.info(
            f"Arrival manager initialized with {len(self._learning_data)} learned categories"
        )

    # -------------------------------------------------------------------------
    # Learning
    # -------------------------------------------------------------------------

    def record_confirmed_arrival(self, place: SavedPlace, confirmed_distance: float,
                                 user_speed: float) -> None:
        """
        Record a user-confirmed arrival for radius learning

        Args:
            place (SavedPlace): Place the user confirmed
            confirmed_distance (float): Distance to the place at confirmation, metres
            user_speed (float): Speed at confirmation, m/s
        """
        _require_non_negative("confirmed_distance", confirmed_distance)
        _require_non_negative("user_speed", user_speed)

        category = place.category or DEFAULT_CATEGORY
        now_ms = self._now_ms()

        record = self._learning_data.get(category) or RadiusLearningData(category=category)

        distances = (record.confirmed_distances + [float(confirmed_distance)])[-self.max_confirmations:]
        # Computed before any state changes; a failure leaves record and history untouched
        average = self._weighted_average(distances)

        self._history.append(ArrivalHistoryData(
            place_id=place.id,
            place_name=place.name,
            category=category,
            confirmed_distance=float(confirmed_distance),
            user_speed=float(user_speed),
            timestamp=now_ms
        ))

        record.confirmed_distances = distances
        record.average_distance = average
        record.last_updated = now_ms
        self._learning_data[category] = record

        self._save_learning_data()

        self.logger.info(
            f"Recorded arrival: {place.name} ({category}) at {confirmed_distance}m, "
            f"{len(record.confirmed_distances)} samples, average {record.average_distance}m"
        )

    @staticmethod
    def _weighted_average(distances: Sequence[float]) -> int:
        """Mean where the i-th of N samples (oldest first) has weight (i+1)/N"""
        if not distances:
            return 0

        n = len(distances)
        weights = [(i + 1) / n for i in range(n)]
        weighted_sum = sum(d * w for d, w in zip(distances, weights))

        return round_half_up(weighted_sum / sum(weights))

    # -------------------------------------------------------------------------
    # Radius and confirmation
    # -------------------------------------------------------------------------

    def get_intelligent_radius(self, place: SavedPlace, user_speed: float,
                               base_radius: Optional[float] = None) -> int:
        """
        Geofence radius for a place given the user's speed

        Args:
            place (SavedPlace): Target place
            user_speed (float): Current speed in m/s
            base_radius (float): Radius before learning/speed adjustment (default 50m)

        Returns:
            int: Radius in metres, within the category limits
        """
        _require_non_negative("user_speed", user_speed)
        if base_radius is None:
            base_radius = self.default_base_radius
        if _require_non_negative("base_radius", base_radius) == 0:
            raise ValueError("base_radius must be positive")

        category = place.category or DEFAULT_CATEGORY
        record = self._learning_data.get(category)

        radius = base_radius
        if record is not None and len(record.confirmed_distances) >= self.learning_threshold:
            radius = round_half_up(record.average_distance * LEARNED_WEIGHT + base_radius * BASE_WEIGHT)

        radius = round_half_up(radius * self._speed_multiplier(user_speed))
        constrained = self._apply_category_constraints(category, radius)

        self.logger.debug(
            f"Radius for {place.name}: {constrained}m (base {base_radius}m, "
            f"learned {record.average_distance if record else 'none'}, speed {user_speed}m/s)"
        )
        return constrained

    def should_confirm_arrival(self, place: SavedPlace, current_distance: float,
                               user_speed: float, dwell_time_ms: float = 0) -> ArrivalDecision:
        """
        Score arrival confidence from independent signals

        Args:
            place (SavedPlace): Target place
            current_distance (float): Distance to the place, metres
            user_speed (float): Current speed, m/s
            dwell_time_ms (float): Time spent near the place, milliseconds

        Returns:
            ArrivalDecision: confirmed only when confident enough AND inside the radius
        """
        _require_non_negative("current_distance", current_distance)
        _require_non_negative("dwell_time_ms", dwell_time_ms)

        radius = self.get_intelligent_radius(place, user_speed)
        reasons = []
        confidence = 0.0

        within_radius = current_distance <= radius
        if within_radius:
            confidence += WITHIN_RADIUS_CONFIDENCE
            reasons.append(f"Within {radius}m radius")

        if user_speed < SLOW_SPEED_MS:
            confidence += SLOW_SPEED_CONFIDENCE
            reasons.append("Slow movement (walking/stationary)")
        elif user_speed < WALKING_SPEED_MS:
            confidence += WALKING_SPEED_CONFIDENCE
            reasons.append("Walking pace")

        if dwell_time_ms > LONG_DWELL_MS:
            confidence += LONG_DWELL_CONFIDENCE
            reasons.append("Sufficient dwell time")
        elif dwell_time_ms > SHORT_DWELL_MS:
            confidence += SHORT_DWELL_CONFIDENCE
            reasons.append("Some dwell time")

        category = place.category or DEFAULT_CATEGORY
        bonus = CATEGORY_CONFIDENCE_BONUS.get(category, 0.0)
        if bonus:
            confidence += bonus
            reasons.append(f"Category adjustment for {category} ({bonus:+.2f})")

        # Rounded so 0.4 + 0.2 style sums compare exactly against the threshold
        confidence = min(max(round(confidence, 6), 0.0), 1.0)
        confirmed = confidence >= self.confirmation_threshold and within_radius

        self.logger.debug(
            f"Arrival check {place.name}: distance {current_distance}m, radius {radius}m, "
            f"confidence {confidence:.2f}, confirmed {confirmed}"
        )

        return ArrivalDecision(
            confirmed=confirmed,
            confidence=confidence,
            radius=radius,
            reasons=reasons
        )

    def resolve_contiguous_pois(self, candidates: Sequence[Tuple[SavedPlace, float]],
                                user_heading: Optional[float] = None,
                                user_location: Optional[Coordinate] = None) -> Optional[SavedPlace]:
        """
        Choose one place when several saved places are near the user

        Candidates within 20m of the closest one are ambiguous. With both a
        heading and the user's location the ambiguous place lying most
        directly ahead wins; otherwise the closest place is returned.

        Args:
            candidates: (place, distance in metres) pairs
            user_heading (float): Direction of travel in degrees, 0 = north
            user_location (Coordinate): Current position of the user

        Returns:
            SavedPlace: Chosen place, None when there are no candidates
        """
        if not candidates:
            return None

        ranked = sorted(candidates, key=lambda pair: pair[1])
        closest_place, closest_distance = ranked[0]

        contested = [(place, distance) for place, distance in ranked
                     if abs(distance - closest_distance) < self.contiguous_threshold_m]

        if len(contested) <= 1 or user_heading is None or user_location is None:
            return closest_place

        located = [(place, distance) for place, distance in contested if place.has_coordinates]
        if len(located) <= 1:
            return closest_place

        heading = user_heading % 360.0

        def heading_offset(pair):
            place, distance = pair
            bearing = calculate_bearing(user_location.lat, user_location.lng, place.lat, place.lng)
            return angular_difference(heading, bearing), distance

        chosen, _ = min(located, key=heading_offset)
        self.logger.debug(
            f"{len(contested)} nearby places, heading {heading:.0f} resolved to {chosen.name}"
        )
        return chosen

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _speed_multiplier(speed_ms: float) -> float:
        for upper_bound, multiplier in SPEED_MULTIPLIERS:
            if speed_ms < upper_bound:
                return multiplier
        return FAST_SPEED_MULTIPLIER

    @staticmethod
    def _apply_category_constraints(category: str, radius: float) -> int:
        minimum, maximum = CATEGORY_RADIUS_CONSTRAINTS.get(
            category, CATEGORY_RADIUS_CONSTRAINTS[DEFAULT_CATEGORY]
        )
        return int(max(minimum, min(maximum, radius)))

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load_learning_data(self) -> None:
        """Load the learning blob; unreadable data means a cold start"""
        try:
            raw = self.store.get(self.storage_key)
        except Exception as e:
            self.error_handler.handle_storage_error("read", self.storage_key, e)
            return

        if raw is None:
            return

        try:
            data = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self.error_handler.handle_storage_error("read", self.storage_key, e)
            return

        if not isinstance(data, dict):
            self.logger.warning(f"Learning data under '{self.storage_key}' is not an object, ignoring it")
            return

        for category, entry in data.items():
            try:
                record = RadiusLearningData.from_dict(category, entry)
                if len(record.confirmed_distances) > self.max_confirmations:
                    record.confirmed_distances = record.confirmed_distances[-self.max_confirmations:]
                record.average_distance = self._weighted_average(record.confirmed_distances)
            except (ValueError, OverflowError) as e:
                self.logger.warning(f"Discarding corrupted learning data for '{category}': {e}")
                continue

            self._learning_data[category] = record

    def _save_learning_data(self) -> None:
        """Persist all categories; failures are reported and swallowed"""
        payload = {category: record.to_dict() for category, record in self._learning_data.items()}
        try:
            self.store.set(self.storage_key, json.dumps(payload).encode("utf-8"))
        except Exception as e:
            self.error_handler.handle_storage_error("write", self.storage_key, e)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_learning_data(self, category: str) -> Optional[RadiusLearningData]:
        """Copy of one category's learning record"""
        record = self._learning_data.get(category)
        return copy.deepcopy(record) if record is not None else None

    def get_learning_stats(self) -> Dict[str, Dict]:
        """All learning records in their persisted form"""
        return {category: record.to_dict() for category, record in self._learning_data.items()}

    def get_arrival_history(self) -> List[ArrivalHistoryData]:
        """Confirmed arrivals of this session, oldest first"""
        return list(self._history)

    def clear_learning_data(self) -> None:
        """Forget every category and remove the stored blob"""
        self._learning_data.clear()
        self._history.clear()
        try:
            self.store.delete(self.storage_key)
        except Exception as e:
            self.error_handler.handle_storage_error("write", self.storage_key, e)

        self.logger.info("Cleared all arrival learning data")
