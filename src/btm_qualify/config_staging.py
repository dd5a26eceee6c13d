"""
Staging Configuration for the BTM Location Qualification Tool
"""

import os
from .config import GoogleMapsConfig, CensusConfig, DatabaseConfig, CacheConfig, QualificationConfig, Config

# Staging-specific settings
staging_config = Config(
    google_maps=GoogleMapsConfig(
        api_key=os.getenv('GOOGLE_MAPS_API_KEY'),
        timeout=30,
        max_retries=3,
        backoff_factor=0.3
    ),
    census=CensusConfig(
        api_key=os.getenv('CENSUS_API_KEY'),
        timeout=30,
        max_retries=3,
        backoff_factor=0.3
    ),
    database=DatabaseConfig(
        url=os.getenv('BTM_DB_URL', 'sqlite:///staging_btm_rules.db'),
        echo=False  # Disable SQL echo for staging
    ),
    cache=CacheConfig(enabled=True),
    qualification=QualificationConfig()
)
