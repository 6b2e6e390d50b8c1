"""
Reverse geocoding for the cosmetic location text of a report
"""

import asyncio
from typing import Optional
from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from ..core.config import settings
from ..core.logging_config import get_logger

logger = get_logger("geocoding_service")


class GeocodingService:
    """Nominatim reverse geocoder; every failure yields None"""

    def __init__(self):
        self.geocoder: Optional[Nominatim] = None
        self._setup_geocoder()

    def _setup_geocoder(self):
        """Setup geocoding service (lightweight, non-blocking)"""
        if settings.geocoding_enabled:
            try:
                self.geocoder = Nominatim(user_agent=settings.geocoding_user_agent)
                logger.info("🔄 Geocoding service initialized (will test on first use)")
            except Exception as e:
                logger.warning(f"⚠️ Geocoder setup issue: {e}")
                self.geocoder = None

    async def reverse(self, lat: float, lng: float) -> Optional[str]:
        """Return a human-readable address for a coordinate"""
        if not self.geocoder:
            return None

        try:
            location = await asyncio.to_thread(self.geocoder.reverse, (lat, lng), timeout=10)
            return location.address if location else None
        except GeocoderTimedOut:
            logger.warning(f"Reverse geocoding timed out for {lat}, {lng}")
            return None
        except (GeocoderServiceError, ValueError) as e:
            logger.warning(f"Reverse geocoding error for {lat}, {lng}: {e}")
            return None


# Global geocoding service instance
geocoding_service = GeocodingService()
