"""
Shared fixtures: a seeded SQLite rule database and stub API clients
"""

import sys
import os
from typing import List, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from btm_qualify.exceptions import CensusDataError, GeocodingError
from btm_qualify.data.google_maps import GeocodeResult, PlaceDetails, NearbyKiosk
from btm_qualify.data.census import PopulationDensityData
from btm_qualify.storage import cache as cache_module
from btm_qualify.storage.cache import CacheService
from btm_qualify.storage.database import DatabaseManager
from btm_qualify.storage.settings import settings_store
from btm_qualify.analysis.rules import QualificationRulesService
from btm_qualify.analysis.qualification import QualificationService

FULL_WEEK_HOURS = [f"{day}: 6:00 AM – 10:00 PM" for day in
                   ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']]


class FakeMapsClient:
    """Stands in for GoogleMapsClient with fixed responses"""

    def __init__(self, geocode: Optional[GeocodeResult] = None, place: Optional[PlaceDetails] = None,
                 kiosks: Optional[List[NearbyKiosk]] = None, geocode_error: Optional[str] = None):
        self.geocode = geocode or GeocodeResult(
            formatted_address='100 Market St, Philadelphia, PA 19106, USA',
            lat=39.95,
            lng=-75.15,
            zip_code='19106',
            place_id='place-123',
            state_code='PA',
            state_name='Pennsylvania'
        )
        self.place = place or PlaceDetails(name='Corner Mart', types=['convenience_store', 'store'],
                                           weekday_text=list(FULL_WEEK_HOURS))
        self.kiosks = kiosks or []
        self.geocode_error = geocode_error
        self.search_radius = None

    async def geocode_address(self, address):
        if self.geocode_error:
            raise GeocodingError(self.geocode_error)
        return self.geocode

    async def get_place_details(self, place_id):
        return self.place

    async def search_nearby_btms(self, lat, lng, radius_miles):
        self.search_radius = radius_miles
        return list(self.kiosks)


class FakeCensusClient:
    """Stands in for CensusClient with a fixed density"""

    def __init__(self, population: int = 20000, density: int = 5000, error: Optional[str] = None):
        self.population = population
        self.density = density
        self.error = error

    async def get_population_density(self, zip_code):
        if self.error:
            raise CensusDataError(self.error)
        return PopulationDensityData(
            zip_code=zip_code,
            population=self.population,
            land_area_sq_miles=self.population / self.density,
            density=self.density,
            land_area_source='tigerweb'
        )


@pytest.fixture(autouse=True)
def reset_shared_state(monkeypatch):
    """Fresh response cache and default settings for each test"""
    monkeypatch.setattr(cache_module, "cache_service", CacheService())
    settings_store.reset()
    yield
    settings_store.reset()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'rules.db'}"


@pytest.fixture
def empty_db(database_url):
    return DatabaseManager(database_url)


@pytest.fixture
def db_manager(empty_db):
    empty_db.seed_default_rules()
    return empty_db


@pytest.fixture
def rules_service(db_manager):
    return QualificationRulesService(db_manager)


@pytest.fixture
def make_service(rules_service):
    """Build a QualificationService around stub clients"""
    def _make(maps=None, census=None):
        return QualificationService(
            maps_client=maps or FakeMapsClient(),
            census_client=census or FakeCensusClient(),
            rules_service=rules_service
        )
    return _make
