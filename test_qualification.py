#!/usr/bin/env python3
"""
End-to-end qualification scenarios with stub API clients
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

import pytest

from btm_qualify.exceptions import QualificationError, GeocodingError, CensusDataError
from btm_qualify.data.google_maps import GeocodeResult, PlaceDetails, NearbyKiosk
from btm_qualify.storage.settings import Settings
from conftest import FakeMapsClient, FakeCensusClient

LAT, LNG = 39.95, -75.15
MILE = 1 / 69.1


def arizona_location():
    return GeocodeResult(
        formatted_address='200 W Washington St, Phoenix, AZ 85003, USA',
        lat=33.45, lng=-112.07, zip_code='85003', place_id='place-az',
        state_code='AZ', state_name='Arizona'
    )


def kiosk(name, miles_north):
    return NearbyKiosk(name=name, types=['finance'], lat=LAT + miles_north * MILE, lng=LNG)


@pytest.mark.asyncio
async def test_location_that_meets_every_requirement(make_service):
    result = await make_service().qualify_location('100 Market St, Philadelphia, PA')

    assert result.qualified
    assert result.reasons == []
    assert result.summary == (
        "This location meets all requirements for Bitcoin ATM placement. Tier 1 business with "
        "5,000 people per sq mi, no Bitcoin Depot ATMs within 1 miles, and adequate operating hours."
    )
    assert result.business_type.tier_amount == 300
    assert result.btm_proximity.required_distance_miles == 1.0
    assert result.btm_proximity.max_competitors_within_one_mile == 4
    assert result.timestamp.endswith('+00:00')


@pytest.mark.asyncio
async def test_search_radius_covers_widest_rule(make_service):
    maps = FakeMapsClient()

    result = await make_service(maps=maps).qualify_location('100 Market St')

    assert maps.search_radius == 3.0
    assert result.btm_proximity.search_radius_miles == 3.0


@pytest.mark.asyncio
async def test_result_json_shape(make_service):
    data = (await make_service().qualify_location('100 Market St')).to_dict()

    assert set(data) == {
        'qualified', 'address', 'formattedAddress', 'location', 'stateCode', 'stateName',
        'stateRejection', 'populationDensity', 'btmProximity', 'businessType', 'storeHours',
        'reasons', 'summary', 'timestamp'
    }
    assert data['location'] == {'lat': LAT, 'lng': LNG}
    assert data['stateRejection'] == {'isAutoRejected': False, 'rejectionReason': None}
    assert data['populationDensity']['zipCode'] == '19106'
    assert data['businessType']['detectedTypes'] == ['Convenience Store', 'Store']
    assert len(data['storeHours']['weeklySchedule']) == 7


@pytest.mark.asyncio
async def test_low_density_fails(make_service):
    result = await make_service(census=FakeCensusClient(density=800)).qualify_location('100 Market St')

    assert not result.qualified
    assert not result.population_density.meets_requirement
    assert result.reasons == ['insufficient population density (800 people per sq mi, minimum 1,000)']
    assert result.summary.startswith('This location does not qualify due to: insufficient population density')


@pytest.mark.asyncio
async def test_settings_threshold_is_applied(make_service):
    result = await make_service().qualify_location('100 Market St', Settings(minimum_population_density=6000))

    assert not result.qualified
    assert result.population_density.threshold == 6000


@pytest.mark.asyncio
async def test_reduced_density_minimum_for_populous_zip(make_service):
    maps = FakeMapsClient(geocode=arizona_location())
    census = FakeCensusClient(population=20000, density=700)

    result = await make_service(maps=maps, census=census).qualify_location('200 W Washington St, Phoenix')

    assert result.qualified
    assert result.population_density.reduced_minimum_applied
    assert result.population_density.threshold == 500
    assert result.btm_proximity.required_distance_miles == 3.0


@pytest.mark.asyncio
async def test_reduced_density_minimum_needs_population_floor(make_service):
    maps = FakeMapsClient(geocode=arizona_location())
    census = FakeCensusClient(population=10000, density=700)

    result = await make_service(maps=maps, census=census).qualify_location('200 W Washington St, Phoenix')

    assert not result.qualified
    assert not result.population_density.reduced_minimum_applied
    assert result.population_density.threshold == 1000


@pytest.mark.asyncio
async def test_auto_rejected_state_fails(make_service, db_manager):
    db_manager.add_auto_rejected_state('PA', 'Pennsylvania', 'Regulatory review')

    result = await make_service().qualify_location('100 Market St')

    assert not result.qualified
    assert result.state_rejection.is_auto_rejected
    assert result.state_rejection.rejection_reason == 'Regulatory review'
    assert result.reasons == ['state not allowed (Regulatory review)']
    assert result.population_density.meets_requirement


@pytest.mark.asyncio
async def test_nearby_brand_kiosk_fails(make_service):
    maps = FakeMapsClient(kiosks=[kiosk('Bitcoin Depot ATM', 0.5)])

    result = await make_service(maps=maps).qualify_location('100 Market St')

    assert not result.qualified
    assert result.btm_proximity.bitcoin_depot_count == 1
    assert result.reasons[0].startswith('existing Bitcoin Depot ATM 0.50 miles away')


@pytest.mark.asyncio
async def test_competitor_cap_fails(make_service):
    kiosks = [kiosk('CoinFlip Bitcoin ATM', 0.1 * i) for i in range(1, 6)]

    result = await make_service(maps=FakeMapsClient(kiosks=kiosks)).qualify_location('100 Market St')

    assert not result.qualified
    assert result.btm_proximity.competitors_within_one_mile == 5
    assert '5 competitor ATMs' in result.reasons[0]


@pytest.mark.asyncio
async def test_ignored_competitor_in_store_does_not_fail(make_service, db_manager):
    db_manager.add_ignored_competitor('CoinFlip')
    maps = FakeMapsClient(kiosks=[kiosk('CoinFlip Bitcoin ATM', 0)])

    result = await make_service(maps=maps).qualify_location('100 Market St')

    assert result.qualified
    assert result.btm_proximity.same_store_competitor is None


@pytest.mark.asyncio
async def test_unqualified_business_fails(make_service):
    maps = FakeMapsClient(place=PlaceDetails(name='First Bank', types=['bank'], weekday_text=None))

    result = await make_service(maps=maps).qualify_location('100 Market St')

    assert not result.qualified
    assert not result.business_type.meets_requirement
    assert 'business type not qualified' in result.reasons
    assert result.reasons[-1].startswith('inadequate store hours (0 days open')


@pytest.mark.asyncio
async def test_tier_two_summary(make_service):
    place = PlaceDetails(name='Main Street Pharmacy', types=['pharmacy'],
                         weekday_text=[f"{d}: Open 24 hours" for d in ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday']])

    result = await make_service(maps=FakeMapsClient(place=place)).qualify_location('100 Market St')

    assert result.qualified
    assert 'Tier 2 business' in result.summary
    assert result.business_type.tier_amount == 200


@pytest.mark.asyncio
async def test_empty_address_is_rejected(make_service):
    with pytest.raises(QualificationError, match='Address is required'):
        await make_service().qualify_location('   ')


@pytest.mark.asyncio
async def test_geocoding_failure_aborts(make_service):
    maps = FakeMapsClient(geocode_error='Address not found. Please enter a valid address.')

    with pytest.raises(GeocodingError, match='Address not found'):
        await make_service(maps=maps).qualify_location('nowhere')


@pytest.mark.asyncio
async def test_census_failure_aborts(make_service):
    census = FakeCensusClient(error='Failed to retrieve population density for ZIP code 19106: no data')

    with pytest.raises(CensusDataError):
        await make_service(census=census).qualify_location('100 Market St')


@pytest.mark.asyncio
async def test_qualify_addresses_records_failures(make_service):
    records = await make_service().qualify_addresses(['100 Market St', ''])

    assert len(records) == 2
    assert records[0]['qualified'] is True
    assert records[0]['error'] is None
    assert records[0]['density'] == 5000
    assert records[1] == {'address': '', 'qualified': False, 'error': 'Address is required'}
