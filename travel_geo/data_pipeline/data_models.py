"""
Data Models for Travel Geo Engine
=================================

Centralized data models to avoid circular imports.
Contains coordinates, saved places, learning records and the result
types returned by the geo engine.

Author: Travel Geo Engine Team
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any

from ..utils.data_utils import require_valid_coordinates


TRANSPORT_TYPES = ("walking", "driving", "transit")
RECOMMENDED_MODES = ("walk", "bike", "transit", "drive")
PRIORITIES = ("high", "medium", "low")


@dataclass(frozen=True)
class Coordinate:
    """
    WGS84 point in decimal degrees

    Raises InvalidCoordinateError when |lat| > 90 or |lng| > 180.
    """
    lat: float
    lng: float

    def __post_init__(self):
        lat, lng = require_valid_coordinates(self.lat, self.lng)
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)


@dataclass
class SavedPlace:
    """
    A point of interest a user bookmarked for a trip

    Attributes:
        id (str): Opaque identifier
        name (str): Display name
        category (str): Free-text label (restaurant, museum, park, other...)
        lat (float): Latitude, None (or 0 from the trip editor) when unresolved
        lng (float): Longitude, None (or 0 from the trip editor) when unresolved
        priority (str): high / medium / low, None means no bias
        estimated_time (str): Free-text visit duration ("2 hours", "45 min")
        destination_name (str): Free-text destination ("Paris, France")
        country (str): Country if known
        region (str): Region if known
        city (str): City if known
    """
    id: str
    name: str
    category: str = "other"
    lat: Optional[float] = None
    lng: Optional[float] = None
    priority: Optional[str] = None
    estimated_time: Optional[str] = None
    destination_name: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None

    def __post_init__(self):
        if not self.category:
            self.category = "other"
        if self.priority is not None and self.priority not in PRIORITIES:
            raise ValueError(f"Unknown priority '{self.priority}' for place {self.id}, expected one of {PRIORITIES}")
        if self.has_coordinates:
            self.lat, self.lng = require_valid_coordinates(self.lat, self.lng)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def is_resolved(self) -> bool:
        """Zero lat or lng is what the trip editor stores for a place it could not geocode"""
        return self.has_coordinates and self.lat != 0 and self.lng != 0

    @property
    def coordinate(self) -> Coordinate:
        """Validated coordinate; raises InvalidCoordinateError when unresolved"""
        return Coordinate(*require_valid_coordinates(self.lat, self.lng))

    @property
    def is_high_priority(self) -> bool:
        return self.priority == "high"


@dataclass
class PlaceGroup:
    """
    Places sharing a (country, region) key with their centroid

    Derived from the current place list, never persisted.
    """
    country: str
    region: str
    places: List[SavedPlace] = field(default_factory=list)
    center_lat: float = 0.0
    center_lng: float = 0.0


@dataclass
class RadiusLearningData:
    """
    Per-category arrival radius learning record

    Attributes:
        category (str): Place category this record belongs to
        confirmed_distances (List[float]): Distances (m) at which arrivals were confirmed, oldest first
        average_distance (float): Recency-weighted mean of confirmed_distances
        last_updated (int): Epoch milliseconds of the last update
    """
    category: str
    confirmed_distances: List[float] = field(default_factory=list)
    average_distance: float = 0.0
    last_updated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Persisted schema"""
        return {
            "category": self.category,
            "confirmedDistances": list(self.confirmed_distances),
            "averageDistance": self.average_distance,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, category: str, data: Dict[str, Any]) -> "RadiusLearningData":
        """
        Build from the persisted schema

        Raises:
            ValueError: If the record is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Learning record for '{category}' is not an object")

        distances = data.get("confirmedDistances")
        if not isinstance(distances, list):
            raise ValueError(f"Learning record for '{category}' has no distance list")

        confirmed = []
        for value in distances:
            number = _finite_number(value, f"confirmed distance for '{category}'")
            if number < 0:
                raise ValueError(f"Bad confirmed distance {value!r} for '{category}'")
            confirmed.append(number)

        last_updated = _finite_number(data.get("lastUpdated", 0), f"lastUpdated for '{category}'")
        average = _finite_number(data.get("averageDistance", 0.0), f"averageDistance for '{category}'")

        return cls(
            category=category,
            confirmed_distances=confirmed,
            average_distance=average,
            last_updated=int(last_updated),
        )


def _finite_number(value: Any, label: str) -> float:
    """Float value of a JSON number; NaN, Infinity and out-of-range integers raise ValueError"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Bad {label}: {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise ValueError(f"Bad {label}: number too large")
    if not math.isfinite(number):
        raise ValueError(f"Bad {label}: {value!r}")
    return number


@dataclass
class ArrivalHistoryData:
    """One confirmed arrival, kept in memory for debugging"""
    place_id: str
    place_name: str
    category: str
    confirmed_distance: float
    user_speed: float
    timestamp: int


@dataclass
class DistanceMatrixEntry:
    """
    Distance and naive travel estimate between two coordinates

    Attributes:
        from_coord (Coordinate): Origin
        to_coord (Coordinate): Destination
        distance_km (float): Haversine distance
        travel_time_min (int): Estimated travel time
        transport_type (str): walking / transit / driving
    """
    from_coord: Coordinate
    to_coord: Coordinate
    distance_km: float
    travel_time_min: int
    transport_type: str

    def __post_init__(self):
        if self.transport_type not in TRANSPORT_TYPES:
            raise ValueError(f"Unknown transport type '{self.transport_type}', expected one of {TRANSPORT_TYPES}")


@dataclass
class PlaceDistance:
    """Distances from one place to every other place of a trip"""
    place_id: str
    place_name: str
    coordinate: Coordinate
    distances_to: List[DistanceMatrixEntry] = field(default_factory=list)


@dataclass
class RouteTime:
    """Travel, visit and total minutes for an ordered route"""
    travel_time_min: float = 0
    visit_time_min: float = 0
    total_time_min: float = 0


@dataclass
class ArrivalDecision:
    """
    Result of an arrival check

    Attributes:
        confirmed (bool): Whether the arrival should be auto-confirmed
        confidence (float): Additive signal confidence in [0, 1]
        radius (int): Geofence radius used, in metres
        reasons (List[str]): Signals that fired
    """
    confirmed: bool
    confidence: float
    radius: int
    reasons: List[str] = field(default_factory=list)


@dataclass
class MultiDestinationAnalysis:
    """Geographic spread of a trip's saved places"""
    is_multi_destination: bool
    groups: List[PlaceGroup]
    suggestions: List[str]
    recommended_transport_mode: str
    max_distance_km: float


@dataclass
class ExclusionPrediction:
    """Places a route planner may drop because of distance"""
    included: List[SavedPlace]
    excluded: List[SavedPlace]
    reasons: List[str]


# Export classes for easy import
__all__ = [
    'Coordinate', 'SavedPlace', 'PlaceGroup', 'RadiusLearningData',
    'ArrivalHistoryData', 'DistanceMatrixEntry', 'PlaceDistance', 'RouteTime',
    'ArrivalDecision', 'MultiDestinationAnalysis', 'ExclusionPrediction',
    'TRANSPORT_TYPES', 'RECOMMENDED_MODES', 'PRIORITIES',
]
