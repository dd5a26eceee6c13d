#!/usr/bin/env python3
"""
Tests for the web API routes
"""

import sys
import os
import threading
import time
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

import pytest

from btm_qualify import web
from btm_qualify.storage.settings import settings_store
from conftest import FakeMapsClient


@pytest.fixture
def client(make_service, monkeypatch):
    monkeypatch.setattr(web, '_qualification_service', make_service())
    web.app.config['TESTING'] = True
    with web.app.test_client() as test_client:
        yield test_client


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_report_page(client):
    response = client.get('/')

    assert response.status_code == 200
    assert b'Bitcoin ATM Location Qualification' in response.data


def test_get_settings(client):
    response = client.get('/api/settings')

    assert response.status_code == 200
    assert set(response.get_json()) == {'minimumPopulationDensity', 'searchRadiusMiles'}


def test_update_settings(client):
    response = client.post('/api/settings', json={'minimumPopulationDensity': 2500, 'searchRadiusMiles': 2})

    assert response.status_code == 200
    assert response.get_json() == {'minimumPopulationDensity': 2500.0, 'searchRadiusMiles': 2.0}
    assert settings_store.get_settings().minimum_population_density == 2500


@pytest.mark.parametrize('payload', [
    {'minimumPopulationDensity': -1},
    {'searchRadiusMiles': 0},
    {'searchRadiusMiles': 25},
    {'minimumPopulationDensity': 'lots'},
])
def test_invalid_settings_are_rejected(client, payload):
    before = settings_store.get_settings().to_dict()

    response = client.post('/api/settings', json=payload)

    assert response.status_code == 400
    assert 'error' in response.get_json()
    assert settings_store.get_settings().to_dict() == before


def test_settings_body_must_be_an_object(client):
    response = client.post('/api/settings', json=[1, 2])

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Settings payload must be a JSON object'}


def test_qualify(client):
    response = client.post('/api/qualify', json={'address': '100 Market St, Philadelphia, PA'})

    assert response.status_code == 200
    data = response.get_json()
    assert data['qualified'] is True
    assert data['formattedAddress'] == '100 Market St, Philadelphia, PA 19106, USA'
    assert data['populationDensity']['density'] == 5000


def test_qualify_uses_saved_settings(client):
    client.post('/api/settings', json={'minimumPopulationDensity': 6000})

    data = client.post('/api/qualify', json={'address': '100 Market St'}).get_json()

    assert data['qualified'] is False
    assert data['populationDensity']['threshold'] == 6000


@pytest.mark.parametrize('payload', [{}, {'address': ''}, {'address': '   '}, {'address': 42}])
def test_qualify_requires_address(client, payload):
    response = client.post('/api/qualify', json=payload)

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Address is required'}


def test_qualify_reports_geocoding_errors(client, make_service, monkeypatch):
    maps = FakeMapsClient(geocode_error='Address not found. Please enter a valid address.')
    monkeypatch.setattr(web, '_qualification_service', make_service(maps=maps))

    response = client.post('/api/qualify', json={'address': 'nowhere'})

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Address not found. Please enter a valid address.'}


def test_metrics(client):
    client.post('/api/qualify', json={'address': '100 Market St'})

    response = client.get('/metrics')

    assert response.status_code == 200
    assert b'http_requests_total' in response.data
    assert b'qualifications_total' in response.data


def test_service_is_built_once_under_concurrent_requests(monkeypatch):
    built = []

    class SlowService:
        def __init__(self):
            time.sleep(0.05)
            built.append(self)

    monkeypatch.setattr(web, 'QualificationService', SlowService)
    monkeypatch.setattr(web, '_qualification_service', None)

    services = []
    threads = [threading.Thread(target=lambda: services.append(web.get_qualification_service())) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert all(service is built[0] for service in services)
