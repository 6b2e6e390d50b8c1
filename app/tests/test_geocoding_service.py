"""
Tests for reverse geocoding
"""

import pytest
from unittest.mock import MagicMock
from geopy.exc import GeocoderTimedOut

from app.services.geocoding_service import GeocodingService


@pytest.fixture
def geocoding():
    service = GeocodingService()
    service.geocoder = MagicMock()
    return service


class TestGeocoding:

    @pytest.mark.asyncio
    async def test_returns_address(self, geocoding):
        geocoding.geocoder.reverse.return_value = MagicMock(address="Rizal Ave, Manila")
        assert await geocoding.reverse(14.6, 121.0) == "Rizal Ave, Manila"

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self, geocoding):
        geocoding.geocoder.reverse.side_effect = GeocoderTimedOut("slow")
        assert await geocoding.reverse(14.6, 121.0) is None

    @pytest.mark.asyncio
    async def test_disabled_returns_none(self):
        service = GeocodingService()
        service.geocoder = None
        assert await service.reverse(14.6, 121.0) is None
