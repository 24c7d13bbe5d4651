"""
Multi-Destination Analysis
==========================

Decides whether a trip's saved places span several destinations:
- Groups places by (country, region), falling back to the free-text
  destination name when structured fields are missing
- Computes group centroids and the largest centroid-to-centroid distance
- Recommends a default transport mode from that distance
- Produces advisory text for the trip screen

Author: Travel Geo Engine Team
"""

import logging
from collections import OrderedDict
from typing import List, Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import haversine_distances

from ..data_pipeline.data_models import (
    SavedPlace, PlaceGroup, MultiDestinationAnalysis, ExclusionPrediction, RECOMMENDED_MODES
)
from ..utils.data_utils import EARTH_RADIUS_KM, extract_country_from_name
from ..utils.performance_monitor import measure_time
from config import config


UNKNOWN_LOCATION = "Unknown"

# Transport thresholds in km, first match wins
DRIVE_THRESHOLD_KM = 50.0
TRANSIT_THRESHOLD_KM = 10.0
BIKE_THRESHOLD_KM = 3.0

LONG_HAUL_THRESHOLD_KM = 100.0
MAX_GROUPS_PER_ROUTE = 3
EXCLUSION_CHECK_THRESHOLD_KM = 20.0


class MultiDestinationAnalyzer:
    """
    Geographic grouping and transport advice for a trip's saved places
    """

    def __init__(self, multi_destination_threshold_km: Optional[float] = None):
        """
        Initialize Multi-Destination Analyzer

        Args:
            multi_destination_threshold_km (float): Distance above which a
                single-group trip still counts as multi-destination
        """
        self.logger = logging.getLogger(__name__)
        self.threshold_km = (multi_destination_threshold_km
                             if multi_destination_threshold_km is not None
                             else config.MULTI_DESTINATION_THRESHOLD_KM)

    @measure_time(category="multi_destination")
    def analyze(self, places: Sequence[SavedPlace]) -> MultiDestinationAnalysis:
        """
        Analyze the geographic spread of places

        Args:
            places (Sequence[SavedPlace]): Saved places of one trip

        Returns:
            MultiDestinationAnalysis: Groups, verdict, advice and transport mode
        """
        if not places:
            return MultiDestinationAnalysis(
                is_multi_destination=False,
                groups=[],
                suggestions=[],
                recommended_transport_mode="walk",
                max_distance_km=0.0
            )

        groups = self.group_places_by_location(places)
        max_distance = self.max_distance_between_groups(groups)

        is_multi_destination = len(groups) > 1 or max_distance > self.threshold_km

        analysis = MultiDestinationAnalysis(
            is_multi_destination=is_multi_destination,
            groups=groups,
            suggestions=self.generate_suggestions(groups, max_distance),
            recommended_transport_mode=recommend_transport_mode(max_distance),
            max_distance_km=max_distance
        )

        self.logger.info(
            f"{len(places)} places in {len(groups)} group(s), max spread {max_distance:.1f}km, "
            f"multi-destination: {is_multi_destination}, mode: {analysis.recommended_transport_mode}"
        )
        return analysis

    def group_places_by_location(self, places: Sequence[SavedPlace]) -> List[PlaceGroup]:
        """
        Group places by (country, region) in first-seen order

        Args:
            places (Sequence[SavedPlace]): Places to group

        Returns:
            List[PlaceGroup]: Groups with centroids computed
        """
        groups: "OrderedDict[tuple, PlaceGroup]" = OrderedDict()

        for place in places:
            country = (place.country
                       or extract_country_from_name(place.destination_name)
                       or UNKNOWN_LOCATION)
            region = place.region or place.city or place.destination_name or UNKNOWN_LOCATION

            key = (country, region)
            if key not in groups:
                groups[key] = PlaceGroup(country=country, region=region)
            groups[key].places.append(place)

        for group in groups.values():
            self._update_centroid(group)

        return list(groups.values())

    def _update_centroid(self, group: PlaceGroup) -> None:
        """Mean of resolved member coordinates; (0, 0) when none is resolved"""
        resolved = [(p.lat, p.lng) for p in group.places if p.is_resolved]
        if not resolved:
            group.center_lat, group.center_lng = 0.0, 0.0
            return

        center = np.mean(np.array(resolved, dtype=float), axis=0)
        group.center_lat, group.center_lng = float(center[0]), float(center[1])

    def max_distance_between_groups(self, groups: Sequence[PlaceGroup]) -> float:
        """
        Largest Haversine distance between any two group centroids

        Groups with no resolved place have no meaningful centroid and are
        left out of the comparison.

        Returns:
            float: Distance in km, 0 for fewer than two located groups
        """
        located = [g for g in groups if any(p.is_resolved for p in g.places)]
        skipped = len(groups) - len(located)
        if skipped:
            self.logger.debug(f"{skipped} group(s) without coordinates ignored for distance")

        if len(located) <= 1:
            return 0.0

        centers = np.radians(np.array([[g.center_lat, g.center_lng] for g in located]))
        distances = haversine_distances(centers) * EARTH_RADIUS_KM
        return float(distances.max())

    def generate_suggestions(self, groups: Sequence[PlaceGroup], max_distance: float) -> List[str]:
        """Advisory text for trips spanning several regions"""
        suggestions = []

        if len(groups) > 1:
            regions = "; ".join(f"{g.region}, {g.country}" for g in groups)
            suggestions.append(f"Your trip spans {len(groups)} different regions: {regions}")

            if max_distance > LONG_HAUL_THRESHOLD_KM:
                suggestions.append(
                    f"Maximum distance between destinations: {round(max_distance)}km. "
                    f"Consider flights or ground transport."
                )
            elif max_distance > self.threshold_km:
                suggestions.append(
                    f"Distance between destinations: {round(max_distance)}km. "
                    f"A car or public transport is recommended."
                )

            if len(groups) > MAX_GROUPS_PER_ROUTE:
                suggestions.append(
                    "Consider splitting your trip into separate routes for better optimization."
                )

        return suggestions

    def predict_excluded_places(self, places: Sequence[SavedPlace], transport_mode: str,
                                max_distance_km: float) -> ExclusionPrediction:
        """
        Warn about places a route planner may drop for being too far apart

        Every place stays included; only the warnings change.

        Args:
            places (Sequence[SavedPlace]): Places sent to the planner
            transport_mode (str): walk, bike, transit or drive
            max_distance_km (float): Spread from analyze()

        Returns:
            ExclusionPrediction: Included/excluded places and warnings
        """
        if transport_mode not in RECOMMENDED_MODES:
            raise ValueError(
                f"Unknown transport mode '{transport_mode}', expected one of {RECOMMENDED_MODES}"
            )

        if not places:
            return ExclusionPrediction(included=[], excluded=[], reasons=[])

        if max_distance_km <= EXCLUSION_CHECK_THRESHOLD_KM:
            return ExclusionPrediction(included=list(places), excluded=[], reasons=[])

        groups = self.group_places_by_location(places)
        reasons = []

        if len(groups) > 1:
            if transport_mode == "walk" and max_distance_km > TRANSIT_THRESHOLD_KM:
                reasons.append("Some places may be too far apart to walk between")

            if len(groups) > MAX_GROUPS_PER_ROUTE:
                reasons.append("Too many scattered destinations for automatic optimization")

        return ExclusionPrediction(included=list(places), excluded=[], reasons=reasons)


def recommend_transport_mode(max_distance_km: float) -> str:
    """drive > 50 km, transit > 10 km, bike > 3 km, otherwise walk"""
    if max_distance_km > DRIVE_THRESHOLD_KM:
        return "drive"
    if max_distance_km > TRANSIT_THRESHOLD_KM:
        return "transit"
    if max_distance_km > BIKE_THRESHOLD_KM:
        return "bike"
    return "walk"


def analyze_multi_destination(places: Sequence[SavedPlace]) -> MultiDestinationAnalysis:
    """Analyze places with a default MultiDestinationAnalyzer"""
    return MultiDestinationAnalyzer().analyze(places)
