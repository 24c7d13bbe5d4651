"""
Distance Calculation Utilities
==============================

Great-circle distances and naive travel-time estimates for trip routes:
- Haversine distance between coordinates
- Linear travel-time model per transport type
- Pairwise distance matrix with a fixed transport-type table
- Total distance and travel/visit time of an ordered route

Author: Travel Geo Engine Team
"""

import logging
from typing import Iterable, List, Sequence

from ..data_pipeline.data_models import (
    Coordinate, SavedPlace, DistanceMatrixEntry, PlaceDistance, RouteTime
)
from ..utils.data_utils import calculate_distance, parse_duration_minutes, round_half_up
from ..utils.performance_monitor import measure_time


logger = logging.getLogger(__name__)

# Average speeds in km/h
TRAVEL_SPEEDS_KMH = {
    "walking": 5.0,
    "driving": 30.0,   # urban driving
    "transit": 20.0,   # including stops
}

WALKING_MAX_KM = 1.0
TRANSIT_MAX_KM = 10.0


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two coordinates

    Args:
        a (Coordinate): First point
        b (Coordinate): Second point

    Returns:
        float: Distance in kilometers
    """
    return calculate_distance(a.lat, a.lng, b.lat, b.lng)


def estimate_travel_time(distance_km: float, transport_type: str = "walking") -> int:
    """
    Estimate travel minutes by dividing distance by an average speed

    Args:
        distance_km (float): Distance in kilometers
        transport_type (str): walking, driving or transit

    Returns:
        int: Minutes, rounded to the nearest integer
    """
    if transport_type not in TRAVEL_SPEEDS_KMH:
        raise ValueError(
            f"Unknown transport type '{transport_type}', expected one of {sorted(TRAVEL_SPEEDS_KMH)}"
        )
    if distance_km < 0:
        raise ValueError(f"Distance cannot be negative, got {distance_km}")

    hours = distance_km / TRAVEL_SPEEDS_KMH[transport_type]
    return round_half_up(hours * 60)


def select_transport_type(distance_km: float) -> str:
    """walking up to 1 km, transit up to 10 km, driving beyond"""
    if distance_km <= WALKING_MAX_KM:
        return "walking"
    if distance_km <= TRANSIT_MAX_KM:
        return "transit"
    return "driving"


@measure_time(category="distance")
def create_distance_matrix(places: Sequence[SavedPlace]) -> List[PlaceDistance]:
    """
    Distances from every place to every other place of a trip

    Args:
        places (Sequence[SavedPlace]): Places with coordinates

    Returns:
        List[PlaceDistance]: One entry per input place, in input order

    Raises:
        InvalidCoordinateError: If a place has missing or out-of-range coordinates
    """
    if not places:
        return []

    coordinates = [place.coordinate for place in places]
    matrix = []

    for place, coordinate in zip(places, coordinates):
        distances_to = []
        for other, other_coordinate in zip(places, coordinates):
            if other.id == place.id:
                continue

            distance = haversine_distance(coordinate, other_coordinate)
            transport_type = select_transport_type(distance)

            distances_to.append(DistanceMatrixEntry(
                from_coord=coordinate,
                to_coord=other_coordinate,
                distance_km=distance,
                travel_time_min=estimate_travel_time(distance, transport_type),
                transport_type=transport_type
            ))

        matrix.append(PlaceDistance(
            place_id=place.id,
            place_name=place.name,
            coordinate=coordinate,
            distances_to=distances_to
        ))

    logger.debug(f"Distance matrix built for {len(places)} places")
    return matrix


def calculate_route_distance(route: Iterable[Coordinate]) -> float:
    """
    Total distance of an ordered list of coordinates

    Returns:
        float: Sum of consecutive legs in km, 0 for fewer than two points
    """
    points = list(route)
    if len(points) < 2:
        return 0.0

    return sum(haversine_distance(points[i], points[i + 1]) for i in range(len(points) - 1))


def calculate_route_travel_time(route: Sequence[SavedPlace]) -> RouteTime:
    """
    Travel, visit and total minutes for places visited in the given order

    Legs are estimated at walking speed; visit time comes from each
    place's estimated_time text (60 minutes when missing or unparseable).

    Args:
        route (Sequence[SavedPlace]): Places in visiting order

    Returns:
        RouteTime: Minutes of travel, visit and their sum
    """
    if not route:
        return RouteTime(travel_time_min=0, visit_time_min=0, total_time_min=0)

    travel_time = 0
    for current, following in zip(route, route[1:]):
        distance = haversine_distance(current.coordinate, following.coordinate)
        travel_time += estimate_travel_time(distance)

    visit_time = sum(parse_duration_minutes(place.estimated_time) for place in route)

    return RouteTime(
        travel_time_min=travel_time,
        visit_time_min=visit_time,
        total_time_min=travel_time + visit_time
    )
