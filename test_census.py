#!/usr/bin/env python3
"""
Tests for the Census population density client
"""

import sys
import os
import threading
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from unittest.mock import AsyncMock

import pytest

from btm_qualify.exceptions import CensusDataError
from btm_qualify.data.census import CensusClient, SQ_METERS_PER_SQ_MILE

POPULATION_RESPONSE = [['B01003_001E', 'zip code tabulation area'], ['25000', '19106']]


def census_client(db_manager=None, population=POPULATION_RESPONSE, land_area=SQ_METERS_PER_SQ_MILE):
    client = CensusClient(db_manager=db_manager, api_key='test-key')

    def respond(url, params=None, use_cache=True):
        if url == client.population_url:
            return population
        if land_area is None:
            return {'features': []}
        return {'features': [{'attributes': {'ALAND': land_area}}]}

    client._make_request = AsyncMock(side_effect=respond)
    return client


@pytest.mark.asyncio
async def test_population_query_parameters():
    client = census_client()

    assert await client.get_population('19106') == 25000

    url, params = client._make_request.call_args_list[0][0][:2]
    assert url == client.population_url
    assert params['get'] == 'B01003_001E'
    assert params['for'] == 'zip code tabulation area:19106'
    assert params['key'] == 'test-key'


@pytest.mark.asyncio
async def test_density_from_tigerweb_land_area(db_manager):
    client = census_client(db_manager)

    density = await client.get_population_density('19106')

    assert density.population == 25000
    assert density.land_area_sq_miles == pytest.approx(1.0)
    assert density.density == 25000
    assert density.land_area_source == 'tigerweb'
    assert db_manager.get_zip_land_area('19106') == pytest.approx(SQ_METERS_PER_SQ_MILE)


@pytest.mark.asyncio
async def test_stored_land_area_is_used_first(db_manager):
    db_manager.store_zip_land_area('19106', 2 * SQ_METERS_PER_SQ_MILE)
    client = census_client(db_manager)

    density = await client.get_population_density('19106')

    assert density.land_area_source == 'cache'
    assert density.density == 12500
    assert client._make_request.await_count == 1


@pytest.mark.asyncio
async def test_default_land_area_when_lookup_fails():
    client = census_client(land_area=None)

    density = await client.get_population_density('19106')

    assert density.land_area_source == 'default'
    assert density.land_area_sq_miles == pytest.approx(10.0)
    assert density.density == 2500


@pytest.mark.asyncio
async def test_zero_population_raises():
    client = census_client(population=[['B01003_001E', 'zip code tabulation area'], ['0', '19106']])

    with pytest.raises(CensusDataError, match='Failed to retrieve population density for ZIP code 19106'):
        await client.get_population_density('19106')


@pytest.mark.asyncio
async def test_missing_population_raises():
    client = census_client(population=None)

    with pytest.raises(CensusDataError, match='No population data found'):
        await client.get_population('00000')


@pytest.mark.asyncio
async def test_connection_check():
    assert await census_client().test_connection()
    assert not await census_client(population=None).test_connection()


class ThreadRecordingDatabase:
    """Land-area table that records which thread touched it"""

    def __init__(self):
        self.threads = []
        self.stored = {}

    def get_zip_land_area(self, zip_code):
        self.threads.append(threading.get_ident())
        return self.stored.get(zip_code)

    def store_zip_land_area(self, zip_code, land_area, source='tigerweb'):
        self.threads.append(threading.get_ident())
        self.stored[zip_code] = land_area


@pytest.mark.asyncio
async def test_land_area_table_runs_off_the_event_loop():
    db = ThreadRecordingDatabase()
    client = census_client(db)

    await client.get_population_density('19106')

    assert db.stored == {'19106': SQ_METERS_PER_SQ_MILE}
    assert len(db.threads) == 2
    assert threading.get_ident() not in db.threads
