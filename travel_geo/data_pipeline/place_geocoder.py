"""
Place Geocoder
==============

Resolves saved places that have no coordinates yet using the
OpenStreetMap Nominatim search API, so they can take part in route
ordering and multi-destination analysis.

Author: Travel Geo Engine Team
"""

import logging
import dataclasses
from typing import Dict, List, Optional, Sequence

import requests

from .data_models import SavedPlace
from ..utils.cache_manager import CacheManager
from ..utils.data_utils import validate_coordinates
from ..utils.error_handler import ErrorHandler, RetryConfig
from config import config


class PlaceGeocoder:
    """
    Nominatim lookups with caching and retry
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 cache_manager: Optional[CacheManager] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 retry_config: Optional[RetryConfig] = None):
        """
        Initialize Place Geocoder

        Args:
            session (requests.Session): HTTP session, injectable for tests
            cache_manager (CacheManager): Cache for lookup results
            error_handler (ErrorHandler): Error reporting and retry
            retry_config (RetryConfig): Retry behaviour for transient failures
        """
        self.logger = logging.getLogger(__name__)

        self.session = session or requests.Session()
        self.cache_manager = cache_manager or CacheManager()
        self.error_handler = error_handler or ErrorHandler()
        self.retry_config = retry_config or RetryConfig(max_attempts=config.GEOCODER_RETRY_COUNT)

        self.base_url = config.NOMINATIM_URL
        self.timeout = config.GEOCODER_TIMEOUT
        self.headers = {"User-Agent": config.GEOCODER_USER_AGENT}

    def resolve_place(self, place: SavedPlace) -> SavedPlace:
        """
        Fill in missing coordinates (and country) of a place

        Args:
            place (SavedPlace): Place to resolve

        Returns:
            SavedPlace: Resolved copy, or the place itself when it is already
                resolved or the lookup finds nothing
        """
        if place.is_resolved:
            return place

        query = self._build_query(place)
        if not query:
            self.logger.warning(f"Nothing to geocode for place {place.id}")
            return place

        result = self.geocode(query)
        if result is None:
            return place

        updates = {"lat": result["lat"], "lng": result["lng"]}
        if not place.country and result.get("country"):
            updates["country"] = result["country"]

        self.logger.info(f"Resolved '{place.name}' to ({result['lat']:.5f}, {result['lng']:.5f})")
        return dataclasses.replace(place, **updates)

    def resolve_places(self, places: Sequence[SavedPlace]) -> List[SavedPlace]:
        """Resolve every place, keeping input order"""
        return [self.resolve_place(place) for place in places]

    def geocode(self, query: str) -> Optional[Dict]:
        """
        Look up a free-text query

        Args:
            query (str): Search text, e.g. "Louvre, Paris, France"

        Returns:
            Dict: {"lat", "lng", "country", "display_name"} or None if not found
        """
        cache_key = f"geocode_{query.lower()}"
        if self.cache_manager.has_key(cache_key):
            self.logger.debug(f"Geocode cache hit for '{query}'")
            return self.cache_manager.get(cache_key)

        try:
            results = self.error_handler.retry_on_error(
                self._request, query, retry_config=self.retry_config
            )
        except requests.exceptions.RequestException as e:
            status_code = e.response.status_code if getattr(e, "response", None) is not None else None
            self.error_handler.handle_api_error(
                "Nominatim", self.base_url, status_code=status_code, exception=e
            )
            return None
        except ValueError as e:
            self.error_handler.handle_api_error("Nominatim", self.base_url, exception=e)
            return None

        result = self._parse_result(results)
        if result is None:
            self.logger.warning(f"No geocoding result for '{query}'")

        # Misses are cached too so the same unknown place is not queried again
        self.cache_manager.set(cache_key, result)
        return result

    def _request(self, query: str) -> List[Dict]:
        response = self.session.get(
            self.base_url,
            params={"q": query, "format": "json", "limit": 1, "addressdetails": 1},
            headers=self.headers,
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _parse_result(self, results) -> Optional[Dict]:
        if not isinstance(results, list) or not results:
            return None

        first = results[0]
        try:
            lat = float(first["lat"])
            lng = float(first["lon"])
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Malformed Nominatim result: {e}")
            return None

        if not validate_coordinates(lat, lng):
            self.logger.warning(f"Nominatim returned out-of-range coordinate ({lat}, {lng})")
            return None

        address = first.get("address") or {}
        return {
            "lat": lat,
            "lng": lng,
            "country": address.get("country"),
            "display_name": first.get("display_name"),
        }

    @staticmethod
    def _build_query(place: SavedPlace) -> str:
        parts = [place.name]
        if place.destination_name:
            parts.append(place.destination_name)
        else:
            parts.extend(p for p in (place.city, place.region, place.country) if p)

        return ", ".join(p.strip() for p in parts if p and p.strip())
