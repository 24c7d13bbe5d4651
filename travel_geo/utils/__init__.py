"""
Utilities Module
===============

Common helpers used across the geo engine:
- Coordinate validation, Haversine distance and duration parsing
- Error categorization, reporting and retry
- In-memory caching for geocoder results
- Key-value persistence for arrival learning data
- Timing statistics for hot paths
"""

__version__ = "1.0.0"
__module_name__ = "utils"

from .cache_manager import CacheManager
from .error_handler import ErrorHandler, ErrorCategory, InvalidCoordinateError, RetryConfig
from .performance_monitor import PerformanceMonitor, measure_time
from .storage import KeyValueStore, MemoryStore, FileStore, create_learning_store

from .data_utils import (
    validate_coordinates,
    require_valid_coordinates,
    calculate_distance,
    calculate_bearing,
    parse_duration_minutes,
    extract_country_from_name,
)

__all__ = [
    "CacheManager",
    "ErrorHandler",
    "ErrorCategory",
    "InvalidCoordinateError",
    "RetryConfig",
    "PerformanceMonitor",
    "measure_time",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "create_learning_store",

    "validate_coordinates",
    "require_valid_coordinates",
    "calculate_distance",
    "calculate_bearing",
    "parse_duration_minutes",
    "extract_country_from_name",
]
