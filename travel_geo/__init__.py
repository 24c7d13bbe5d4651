"""
Travel Geo Engine
=================

Location logic behind a trip planner: great-circle distances, travel-time
estimates, nearest-neighbor route ordering, multi-destination detection
and adaptive arrival confirmation with per-category learned geofences.

Author: Travel Geo Engine Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Travel Geo Engine Team"


def get_version():
    """Return the current version of the package"""
    return __version__


def get_info():
    """Return basic information about the package"""
    return {
        "name": "Travel Geo Engine",
        "version": __version__,
        "author": __author__,
        "description": "Route ordering and adaptive arrival confirmation for trip planning"
    }
