"""
Route Optimization Algorithm
===========================

Nearest-neighbor ordering of a trip's saved places:
- Starts at the first high-priority place (or the first place)
- Always moves to the closest unvisited place
- Pulls high-priority places earlier by shrinking their distance
- Keeps places without coordinates at the end in input order

This is a greedy heuristic, not an optimal tour.

Author: Travel Geo Engine Team
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..data_pipeline.data_models import SavedPlace
from ..utils.performance_monitor import measure_time
from .distance_calculator import (
    haversine_distance, calculate_route_distance, calculate_route_travel_time
)
from config import config


class RouteOptimizer:
    """
    Nearest-neighbor route ordering with a high-priority bias
    """

    def __init__(self, high_priority_bias: Optional[float] = None):
        """
        Initialize Route Optimizer

        Args:
            high_priority_bias (float): Distance multiplier for high-priority
                candidates (default from config, 0.7)
        """
        self.logger = logging.getLogger(__name__)
        self.high_priority_bias = (high_priority_bias if high_priority_bias is not None
                                   else config.HIGH_PRIORITY_BIAS)

        self.logger.debug(f"Route Optimizer initialized (bias={self.high_priority_bias})")

    @measure_time(category="routing")
    def optimize_route_order(self, places: Sequence[SavedPlace]) -> List[SavedPlace]:
        """
        Order places with the nearest-neighbor heuristic

        Args:
            places (Sequence[SavedPlace]): Places to order

        Returns:
            List[SavedPlace]: Permutation of the input in visiting order
        """
        if len(places) <= 1:
            return list(places)

        routable = [p for p in places if p.has_coordinates]
        unresolved = [p for p in places if not p.has_coordinates]

        if unresolved:
            self.logger.warning(
                f"{len(unresolved)} place(s) without coordinates appended to the end of the route: "
                f"{', '.join(p.name for p in unresolved)}"
            )

        ordered = self._nearest_neighbor_order(routable)
        ordered.extend(unresolved)

        self.logger.info(f"Ordered {len(ordered)} places, starting at '{ordered[0].name}'")
        return ordered

    def _nearest_neighbor_order(self, places: List[SavedPlace]) -> List[SavedPlace]:
        """
        Greedy tour construction

        Args:
            places (List[SavedPlace]): Places with coordinates

        Returns:
            List[SavedPlace]: Ordered places
        """
        if len(places) <= 1:
            return list(places)

        unvisited = list(places)
        start_index = self._start_index(unvisited)

        current = unvisited.pop(start_index)
        ordered = [current]

        while unvisited:
            nearest_index = 0
            nearest_distance = float('inf')

            for index, candidate in enumerate(unvisited):
                distance = haversine_distance(current.coordinate, candidate.coordinate)
                if candidate.is_high_priority:
                    distance *= self.high_priority_bias

                # Strict comparison keeps the earliest candidate on ties
                if distance < nearest_distance:
                    nearest_distance = distance
                    nearest_index = index

            current = unvisited.pop(nearest_index)
            ordered.append(current)

        return ordered

    @staticmethod
    def _start_index(places: List[SavedPlace]) -> int:
        """Index of the first high-priority place, 0 when there is none"""
        for index, place in enumerate(places):
            if place.is_high_priority:
                return index
        return 0

    def route_summary(self, ordered: Sequence[SavedPlace]) -> Dict:
        """
        Distance and time totals for an ordered route

        Args:
            ordered (Sequence[SavedPlace]): Places in visiting order

        Returns:
            Dict: Stop count, distance and minutes of travel/visit/total
        """
        routable = [p for p in ordered if p.has_coordinates]
        times = calculate_route_travel_time(routable)

        return {
            'total_stops': len(ordered),
            'unresolved_stops': len(ordered) - len(routable),
            'total_distance_km': round(calculate_route_distance(p.coordinate for p in routable), 2),
            'travel_time_minutes': times.travel_time_min,
            'visit_time_minutes': times.visit_time_min,
            'total_time_minutes': times.total_time_min,
        }


def optimize_route_order(places: Sequence[SavedPlace]) -> List[SavedPlace]:
    """Order places with a default RouteOptimizer"""
    return RouteOptimizer().optimize_route_order(places)
