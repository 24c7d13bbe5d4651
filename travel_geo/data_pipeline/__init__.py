"""
Data Pipeline Module
===================

Data models shared by the geo engine and the geocoder that fills in
missing place coordinates.

Author: Travel Geo Engine Team
"""

__version__ = "1.0.0"
__module_name__ = "data_pipeline"

from .data_models import (
    Coordinate,
    SavedPlace,
    PlaceGroup,
    RadiusLearningData,
    ArrivalHistoryData,
    DistanceMatrixEntry,
    PlaceDistance,
    RouteTime,
    ArrivalDecision,
    MultiDestinationAnalysis,
    ExclusionPrediction,
)
from .place_geocoder import PlaceGeocoder

__all__ = [
    "PlaceGeocoder",

    "Coordinate",
    "SavedPlace",
    "PlaceGroup",
    "RadiusLearningData",
    "ArrivalHistoryData",
    "DistanceMatrixEntry",
    "PlaceDistance",
    "RouteTime",
    "ArrivalDecision",
    "MultiDestinationAnalysis",
    "ExclusionPrediction",
]
