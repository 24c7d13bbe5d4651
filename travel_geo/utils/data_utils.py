"""
Data Validation and Processing Utilities
=======================================

Essential validation and parsing functions used across the geo engine.

Key Features:
- Geographic coordinate validation
- Haversine distance and initial bearing between coordinate pairs
- Free-text duration parsing ("2 hours", "45 min")
- Destination name heuristics for geographic grouping

Functions:
    validate_coordinates: Check if latitude/longitude are valid
    require_valid_coordinates: Raise InvalidCoordinateError for bad input
    calculate_distance: Great-circle distance between two coordinate pairs
    calculate_bearing: Initial bearing from one coordinate to another
    parse_duration_minutes: Parse an estimated visit time string
    extract_country_from_name: Last comma-separated token of a destination name
    round_half_up: Round to nearest integer, halves away from zero for positives

Author: Travel Geo Engine Team
"""

import re
import math
import logging
from typing import Any, Optional, Tuple

from .error_handler import InvalidCoordinateError


# Module logger
logger = logging.getLogger(__name__)

# Constants for geographic calculations
EARTH_RADIUS_KM = 6371.0
MAX_LATITUDE = 90.0
MIN_LATITUDE = -90.0
MAX_LONGITUDE = 180.0
MIN_LONGITUDE = -180.0

DEFAULT_VISIT_MINUTES = 60

_DECIMAL_PATTERN = re.compile(r"\d+\.?\d*")
_INTEGER_PATTERN = re.compile(r"\d+")


def validate_coordinates(latitude: float, longitude: float) -> bool:
    """
    Validate if latitude and longitude coordinates are within valid ranges

    Args:
        latitude (float): Latitude coordinate
        longitude (float): Longitude coordinate

    Returns:
        bool: True if coordinates are valid, False otherwise

    Examples:
        >>> validate_coordinates(48.8566, 2.3522)  # Paris
        True
        >>> validate_coordinates(91.0, 181.0)  # Invalid
        False
    """
    try:
        if isinstance(latitude, bool) or isinstance(longitude, bool):
            return False

        lat = float(latitude)
        lon = float(longitude)

        if math.isnan(lat) or math.isnan(lon):
            return False

        if not (MIN_LATITUDE <= lat <= MAX_LATITUDE):
            return False

        if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE):
            return False

        return True

    except (ValueError, TypeError):
        return False


def require_valid_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    """
    Return the coordinate pair as floats or raise InvalidCoordinateError

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees

    Returns:
        Tuple[float, float]: (latitude, longitude)
    """
    if latitude is None or longitude is None:
        raise InvalidCoordinateError(latitude, longitude, "missing value")

    if not validate_coordinates(latitude, longitude):
        raise InvalidCoordinateError(latitude, longitude)

    return float(latitude), float(longitude)


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth using Haversine formula

    Args:
        lat1 (float): Latitude of first point
        lon1 (float): Longitude of first point
        lat2 (float): Latitude of second point
        lon2 (float): Longitude of second point

    Returns:
        float: Distance in kilometers (unrounded)

    Raises:
        InvalidCoordinateError: If either point is out of range

    Examples:
        >>> round(calculate_distance(0.0, 0.0, 0.0, 0.009), 3)
        1.001
    """
    lat1, lon1 = require_valid_coordinates(lat1, lon1)
    lat2, lon2 = require_valid_coordinates(lat2, lon2)

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial great-circle bearing from the first point to the second

    Returns:
        float: Bearing in degrees, 0 = north, clockwise, in [0, 360)
    """
    lat1, lon1 = require_valid_coordinates(lat1, lon1)
    lat2, lon2 = require_valid_coordinates(lat2, lon2)

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)

    x = math.sin(dlon) * math.cos(lat2_rad)
    y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon))

    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def angular_difference(a: float, b: float) -> float:
    """Smallest absolute difference between two headings, in degrees [0, 180]"""
    diff = abs(a - b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, not 2)"""
    return int(math.floor(value + 0.5))


def parse_duration_minutes(text: Optional[str]) -> float:
    """
    Parse a free-text visit duration into minutes

    "hour" strings use the first number (decimals allowed) times 60,
    "min" strings use the first integer. Anything else falls back to
    DEFAULT_VISIT_MINUTES.

    Examples:
        >>> parse_duration_minutes("2 hours")
        120.0
        >>> parse_duration_minutes("1.5 hours")
        90.0
        >>> parse_duration_minutes("45 min")
        45.0
        >>> parse_duration_minutes("half a day")
        60.0
    """
    if not text or not isinstance(text, str):
        return float(DEFAULT_VISIT_MINUTES)

    lowered = text.lower()

    if "hour" in lowered:
        match = _DECIMAL_PATTERN.search(lowered)
        hours = float(match.group(0)) if match else 1.0
        return hours * 60

    if "min" in lowered:
        match = _INTEGER_PATTERN.search(lowered)
        return float(match.group(0)) if match else float(DEFAULT_VISIT_MINUTES)

    logger.debug(f"Unrecognized duration '{text}', using {DEFAULT_VISIT_MINUTES} minutes")
    return float(DEFAULT_VISIT_MINUTES)


def extract_country_from_name(destination_name: Optional[str]) -> Optional[str]:
    """
    Heuristic country extraction from a free-text destination

    Examples:
        >>> extract_country_from_name("Paris, Ile-de-France, France")
        'France'
        >>> extract_country_from_name("Rome")
        'Rome'
    """
    if not destination_name:
        return None

    parts = [part.strip() for part in destination_name.split(",")]
    if len(parts) > 1:
        return parts[-1]

    return destination_name

