"""
Development Configuration for the BTM Location Qualification Tool
"""

import os
from .config import GoogleMapsConfig, CensusConfig, DatabaseConfig, CacheConfig, QualificationConfig, Config

# Development-specific settings
dev_config = Config(
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
        url=os.getenv('BTM_DB_URL', 'sqlite:///dev_btm_rules.db'),
        echo=os.getenv('BTM_DB_ECHO', 'false').lower() == 'true'
    ),
    cache=CacheConfig(
        enabled=True,
        default_ttl=600,
        api_cache_ttl=600,
        geocode_cache_ttl=3600
    ),
    qualification=QualificationConfig(
        minimum_population_density=int(os.getenv('BTM_MIN_DENSITY', '1000')),
        search_radius_miles=float(os.getenv('BTM_SEARCH_RADIUS', '1.0'))
    )
)
