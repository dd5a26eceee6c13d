#!/usr/bin/env python3
"""
Tests for the qualification settings record
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

import pytest
from pydantic import ValidationError

from btm_qualify.config import config
from btm_qualify.storage.settings import Settings, SettingsStore


def test_defaults_come_from_config():
    settings = Settings()

    assert settings.minimum_population_density == config.qualification.minimum_population_density
    assert settings.search_radius_miles == config.qualification.search_radius_miles


def test_from_payload_maps_camel_case():
    settings = Settings.from_payload({'minimumPopulationDensity': 500, 'searchRadiusMiles': 2.5})

    assert settings.minimum_population_density == 500
    assert settings.search_radius_miles == 2.5
    assert settings.to_dict() == {'minimumPopulationDensity': 500.0, 'searchRadiusMiles': 2.5}


@pytest.mark.parametrize('payload', [
    {'minimumPopulationDensity': -10},
    {'searchRadiusMiles': 0.05},
    {'searchRadiusMiles': 10.5},
])
def test_out_of_range_values_are_rejected(payload):
    with pytest.raises(ValidationError):
        Settings.from_payload(payload)


def test_boundaries_are_accepted():
    assert Settings.from_payload({'minimumPopulationDensity': 0, 'searchRadiusMiles': 10}).search_radius_miles == 10
    assert Settings.from_payload({'searchRadiusMiles': 0.1}).search_radius_miles == 0.1


def test_payload_must_be_a_dict():
    with pytest.raises(ValueError, match='JSON object'):
        Settings.from_payload(None)


def test_store_returns_copies():
    store = SettingsStore(Settings(minimum_population_density=1200, search_radius_miles=1.5))

    current = store.get_settings()
    current.minimum_population_density = 1

    assert store.get_settings().minimum_population_density == 1200


def test_store_update_and_reset():
    store = SettingsStore()

    saved = store.update_settings(Settings(minimum_population_density=3000, search_radius_miles=4))
    assert saved.minimum_population_density == 3000
    assert store.get_settings().search_radius_miles == 4

    store.reset()
    assert store.get_settings().minimum_population_density == config.qualification.minimum_population_density
