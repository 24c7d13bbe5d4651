"""
Geo Engine Module
=================

Core location algorithms for trip planning:
- Haversine distances, travel-time estimates and distance matrices
- Nearest-neighbor route ordering with a high-priority bias
- Multi-destination grouping and transport recommendation
- Adaptive arrival confirmation with learned per-category radii

Classes:
    RouteOptimizer: Orders saved places for a visit
    MultiDestinationAnalyzer: Groups places by destination
    IntelligentArrivalManager: Learns geofence radii and confirms arrivals
"""

__version__ = "1.0.0"
__module_name__ = "geo_engine"

from .distance_calculator import (
    haversine_distance,
    estimate_travel_time,
    select_transport_type,
    create_distance_matrix,
    calculate_route_distance,
    calculate_route_travel_time,
)
from .route_optimizer import RouteOptimizer, optimize_route_order
from .multi_destination import (
    MultiDestinationAnalyzer,
    analyze_multi_destination,
    recommend_transport_mode,
)
from .arrival_manager import IntelligentArrivalManager

__all__ = [
    "RouteOptimizer",
    "MultiDestinationAnalyzer",
    "IntelligentArrivalManager",

    "haversine_distance",
    "estimate_travel_time",
    "select_transport_type",
    "create_distance_matrix",
    "calculate_route_distance",
    "calculate_route_travel_time",
    "optimize_route_order",
    "analyze_multi_destination",
    "recommend_transport_mode",
]
