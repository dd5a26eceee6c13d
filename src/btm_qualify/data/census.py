"""
Census Bureau client for ZIP-level population density
"""

import asyncio
import logging
from typing import Optional, Tuple
from dataclasses import dataclass

from ..config import config
from ..exceptions import CensusDataError
from .base import APIClient

logger = logging.getLogger(__name__)

SQ_METERS_PER_SQ_MILE = 2_589_988.11

@dataclass
class PopulationDensityData:
    """Population density for a ZIP code tabulation area"""
    zip_code: str
    population: int
    land_area_sq_miles: float
    density: int
    land_area_source: str  # 'cache', 'tigerweb', 'default'


class CensusClient(APIClient):
    """Client for the ACS 5-year population table and TIGERweb ZCTA boundaries"""

    api_name = 'census'

    def __init__(self, db_manager=None, api_key: Optional[str] = None):
        settings = config.census
        super().__init__(settings.timeout, settings.max_retries, settings.backoff_factor)
        self.db = db_manager
        self.api_key = api_key if api_key is not None else settings.api_key
        self.population_url = settings.population_url
        self.land_area_url = settings.land_area_url
        self.default_land_area_sq_meters = settings.default_land_area_sq_meters

    async def get_population(self, zip_code: str) -> int:
        """
        Total population (B01003_001E) for a ZCTA

        Raises:
            CensusDataError: if no data exists or the population is zero
        """
        params = {
            'get': 'B01003_001E',
            'for': f'zip code tabulation area:{zip_code}',
        }
        if self.api_key:
            params['key'] = self.api_key

        data = await self._make_request(self.population_url, params)
        # First row is the header, second the values
        if not data or not isinstance(data, list) or len(data) < 2:
            raise CensusDataError(f"No population data found for ZIP code {zip_code}")

        try:
            population = int(data[1][0])
        except (TypeError, ValueError, IndexError):
            population = 0

        if population <= 0:
            raise CensusDataError(f"Zero population for ZIP code {zip_code}")

        logger.info(f"ZIP {zip_code} population: {population:,}")
        return population

    async def _fetch_land_area(self, zip_code: str) -> Optional[float]:
        """ALAND for the ZCTA from TIGERweb, in square metres"""
        params = {
            'where': f"ZCTA5='{zip_code}'",
            'outFields': 'ALAND',
            'f': 'json'
        }
        data = await self._make_request(self.land_area_url, params)
        if not isinstance(data, dict):
            return None

        features = data.get('features') or []
        if not features:
            return None
        aland = (features[0].get('attributes') or {}).get('ALAND')
        return float(aland) if aland else None

    async def get_land_area(self, zip_code: str) -> Tuple[float, str]:
        """
        Land area for a ZIP code in square metres

        Tries the cached land-area table, then TIGERweb, then a fixed average.
        Table reads and writes run in a worker thread.

        Returns:
            Tuple of (land area in square metres, source)
        """
        if self.db is not None:
            try:
                cached = await asyncio.to_thread(self.db.get_zip_land_area, zip_code)
            except Exception as e:
                logger.warning(f"Land-area table lookup failed for ZIP {zip_code}: {e}")
                cached = None
            if cached:
                return cached, 'cache'

        try:
            land_area = await self._fetch_land_area(zip_code)
        except Exception as e:
            logger.warning(f"TIGERweb lookup failed for ZIP {zip_code}: {e}")
            land_area = None

        if land_area:
            if self.db is not None:
                await asyncio.to_thread(self.db.store_zip_land_area, zip_code, land_area, source='tigerweb')
            return land_area, 'tigerweb'

        logger.warning(f"Could not fetch land area for ZIP {zip_code}, using average")
        return self.default_land_area_sq_meters, 'default'

    async def get_population_density(self, zip_code: str) -> PopulationDensityData:
        """
        People per square mile for a ZIP code

        Raises:
            CensusDataError: if population or land area cannot be determined
        """
        try:
            population = await self.get_population(zip_code)
            land_area_sq_meters, source = await self.get_land_area(zip_code)

            land_area_sq_miles = land_area_sq_meters / SQ_METERS_PER_SQ_MILE
            if land_area_sq_miles <= 0:
                raise CensusDataError(f"Invalid land area for ZIP code {zip_code}")

            density = round(population / land_area_sq_miles)
        except CensusDataError as e:
            raise CensusDataError(
                f"Failed to retrieve population density for ZIP code {zip_code}: {e}"
            ) from e

        logger.info(f"ZIP {zip_code} density: {density:,} people/sq mi (land area from {source})")
        return PopulationDensityData(
            zip_code=zip_code,
            population=population,
            land_area_sq_miles=land_area_sq_miles,
            density=density,
            land_area_source=source
        )

    async def test_connection(self) -> bool:
        """Test if the ACS API is accessible"""
        try:
            await self.get_population('10001')
            return True
        except CensusDataError:
            return False
