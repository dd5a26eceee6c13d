"""
Google Maps Geocoding and Places client
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict

from ..config import config
from ..exceptions import GeocodingError
from ..storage.cache import get_geocode_cache, set_geocode_cache, get_nearby_cache, set_nearby_cache
from .base import APIClient

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34
# Places Nearby Search rejects larger radii
MAX_SEARCH_RADIUS_METERS = 50000

@dataclass
class GeocodeResult:
    """A resolved address"""
    formatted_address: str
    lat: float
    lng: float
    zip_code: str
    place_id: str
    state_code: str
    state_name: str

@dataclass
class PlaceDetails:
    """Business details for a place id"""
    name: str
    types: List[str] = field(default_factory=list)
    weekday_text: Optional[List[str]] = None

    @classmethod
    def placeholder(cls) -> 'PlaceDetails':
        """Stand-in used when details cannot be fetched"""
        return cls(name="Unknown Business", types=[], weekday_text=None)

@dataclass
class NearbyKiosk:
    """A kiosk returned by the nearby search"""
    name: str
    types: List[str]
    lat: float
    lng: float


def _find_component(components: List[Dict[str, Any]], component_type: str) -> Optional[Dict[str, Any]]:
    for component in components:
        if component_type in component.get('types', []):
            return component
    return None


class GoogleMapsClient(APIClient):
    """Client for the Google Maps Geocoding and Places web services"""

    api_name = 'google_maps'

    def __init__(self, api_key: Optional[str] = None):
        settings = config.google_maps
        super().__init__(settings.timeout, settings.max_retries, settings.backoff_factor)
        self.api_key = api_key if api_key is not None else settings.api_key
        self.geocode_url = settings.geocode_url
        self.place_details_url = settings.place_details_url
        self.nearby_search_url = settings.nearby_search_url
        self.nearby_keyword = settings.nearby_keyword
        self.nearby_max_pages = settings.nearby_max_pages
        self.page_token_delay = settings.page_token_delay

    def _should_cache(self, data: Any) -> bool:
        # Never cache denials; a fixed key should take effect immediately
        return isinstance(data, dict) and data.get('status') in ('OK', 'ZERO_RESULTS')

    async def geocode_address(self, address: str) -> GeocodeResult:
        """
        Resolve an address to coordinates, ZIP code, state and place id

        Raises:
            GeocodingError: with a message suitable for the end user
        """
        if not self.api_key:
            raise GeocodingError(
                "Google Maps API key is not configured. Please add GOOGLE_MAPS_API_KEY to your .env file."
            )

        cached = await get_geocode_cache(address)
        if cached:
            logger.info(f"Using cached geocode for: {address}")
            return GeocodeResult(**cached)

        logger.info(f"Geocoding address: {address}")
        data = await self._make_request(self.geocode_url, {'address': address, 'key': self.api_key}, use_cache=False)
        if data is None:
            raise GeocodingError("Failed to geocode address. Please try again.")

        status = data.get('status')
        if status == 'REQUEST_DENIED':
            logger.error(f"Geocoding denied: {data.get('error_message', 'no message')}")
            raise GeocodingError(
                "Google Maps API key is invalid or restricted. Please check your API key configuration."
            )

        results = data.get('results') or []
        if status != 'OK' or not results:
            logger.warning(f"Geocoding returned status {status} for: {address}")
            raise GeocodingError("Address not found. Please enter a valid address.")

        result = results[0]
        components = result.get('address_components', [])
        zip_component = _find_component(components, 'postal_code')
        state_component = _find_component(components, 'administrative_area_level_1')

        if not zip_component or not zip_component.get('long_name'):
            raise GeocodingError(
                "Could not determine ZIP code from address. Please include a ZIP code in your search."
            )
        if not state_component or not state_component.get('short_name'):
            raise GeocodingError("Could not determine state from address.")

        location = result['geometry']['location']
        geocode = GeocodeResult(
            formatted_address=result.get('formatted_address', address),
            lat=float(location['lat']),
            lng=float(location['lng']),
            zip_code=zip_component['long_name'],
            place_id=result.get('place_id', ''),
            state_code=state_component['short_name'],
            state_name=state_component.get('long_name', state_component['short_name'])
        )
        logger.info(f"Geocoded to: {geocode.lat}, {geocode.lng} (ZIP {geocode.zip_code}, {geocode.state_code})")

        await set_geocode_cache(address, asdict(geocode))
        return geocode

    async def get_place_details(self, place_id: str) -> PlaceDetails:
        """
        Fetch name, types and weekly opening hours for a place

        Falls back to a placeholder business on any failure except an
        invalid or restricted API key, which raises GeocodingError.
        """
        if not self.api_key:
            raise GeocodingError("Google Maps API key is not configured")
        if not place_id:
            logger.warning("No place id to look up, using placeholder business")
            return PlaceDetails.placeholder()

        params = {'place_id': place_id, 'fields': 'name,types,opening_hours', 'key': self.api_key}
        data = await self._make_request(self.place_details_url, params)
        if data is None:
            logger.warning(f"Failed to fetch place details for {place_id}, using defaults")
            return PlaceDetails.placeholder()

        status = data.get('status')
        if status == 'REQUEST_DENIED':
            raise GeocodingError("Google Maps API key is invalid or restricted")
        if status != 'OK':
            logger.warning(f"Place details status {status} for {place_id}, using defaults")

        result = data.get('result') or {}
        opening_hours = result.get('opening_hours')
        return PlaceDetails(
            name=result.get('name') or "Unknown Business",
            types=list(result.get('types') or []),
            weekday_text=list(opening_hours.get('weekday_text') or []) if opening_hours else None
        )

    def _parse_kiosks(self, results: List[Dict[str, Any]]) -> List[NearbyKiosk]:
        kiosks = []
        for place in results:
            location = (place.get('geometry') or {}).get('location') or {}
            if location.get('lat') is None or location.get('lng') is None:
                logger.debug(f"Skipping kiosk without coordinates: {place.get('name')}")
                continue
            kiosks.append(NearbyKiosk(
                name=place.get('name') or '',
                types=list(place.get('types') or []),
                lat=float(location['lat']),
                lng=float(location['lng'])
            ))
        return kiosks

    async def search_nearby_btms(self, lat: float, lng: float, radius_miles: float) -> List[NearbyKiosk]:
        """
        Find Bitcoin ATMs around a point

        Follows next_page_token for up to nearby_max_pages pages of 20
        results. Pages are fetched uncached since their tokens expire; the
        assembled list is cached instead.

        Returns:
            Kiosks found, or an empty list if the first page fails
        """
        radius_meters = round(min(radius_miles * METERS_PER_MILE, MAX_SEARCH_RADIUS_METERS))
        search_key = f"{lat},{lng}:{radius_meters}:{self.nearby_keyword}"
        cached = await get_nearby_cache(search_key)
        if cached is not None:
            logger.info(f"Using cached nearby kiosks for {lat}, {lng}")
            return [NearbyKiosk(**kiosk) for kiosk in cached]

        params = {
            'location': f"{lat},{lng}",
            'radius': radius_meters,
            'keyword': self.nearby_keyword,
            'key': self.api_key
        }
        kiosks = []
        for page in range(1, self.nearby_max_pages + 1):
            try:
                data = await self._make_request(self.nearby_search_url, params, use_cache=False)
            except Exception as e:
                logger.error(f"Nearby kiosk search failed on page {page}: {e}")
                data = None

            status = data.get('status') if data else 'no response'
            if status != 'OK':
                logger.info(f"Nearby kiosk search page {page} returned {status}")
                if page == 1:
                    return []
                break

            kiosks.extend(self._parse_kiosks(data.get('results', [])))

            next_page_token = data.get('next_page_token')
            if not next_page_token:
                break
            # Google rejects a token used before it becomes active
            await asyncio.sleep(self.page_token_delay)
            params = {'pagetoken': next_page_token, 'key': self.api_key}

        logger.info(f"Found {len(kiosks)} kiosks within {radius_miles} miles of {lat}, {lng}")
        await set_nearby_cache(search_key, [asdict(kiosk) for kiosk in kiosks])
        return kiosks

    async def test_connection(self) -> bool:
        """Test that the API key is accepted"""
        if not self.api_key:
            return False
        data = await self._make_request(
            self.geocode_url, {'address': '1600 Amphitheatre Parkway, Mountain View, CA', 'key': self.api_key}
        )
        return bool(data) and data.get('status') == 'OK'
