"""
Configuration settings for the BTM Location Qualification Tool
"""

import os
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, field_validator
from urllib.parse import urlparse
from dotenv import load_dotenv

load_dotenv()


def _validate_http_url(v: str) -> str:
    parsed = urlparse(v)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError('Invalid URL format')
    if parsed.scheme not in ['http', 'https']:
        raise ValueError('URL must use HTTP or HTTPS')
    return v


class GoogleMapsConfig(BaseModel):
    """Configuration for Google Maps Geocoding and Places APIs"""
    api_key: Optional[str] = Field(default=None, description="Google Maps API key")
    geocode_url: str = Field(default="https://maps.googleapis.com/maps/api/geocode/json", description="Geocoding endpoint")
    place_details_url: str = Field(default="https://maps.googleapis.com/maps/api/place/details/json", description="Place details endpoint")
    nearby_search_url: str = Field(default="https://maps.googleapis.com/maps/api/place/nearbysearch/json", description="Nearby search endpoint")
    nearby_keyword: str = Field(default="bitcoin atm", description="Keyword used to find kiosks near a location")
    nearby_max_pages: int = Field(default=3, ge=1, le=3, description="Result pages to read per nearby search (20 results each)")
    page_token_delay: float = Field(default=2.0, ge=0, description="Seconds to wait before a next_page_token becomes valid")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=1, le=10, description="Maximum retry attempts")
    backoff_factor: float = Field(default=0.3, ge=0.1, le=5.0, description="Backoff factor for retries")

    @field_validator('geocode_url', 'place_details_url', 'nearby_search_url')
    @classmethod
    def validate_urls(cls, v):
        return _validate_http_url(v)


class CensusConfig(BaseModel):
    """Configuration for the Census Bureau ACS and TIGERweb APIs"""
    api_key: Optional[str] = Field(default=None, description="Census API key")
    population_url: str = Field(default="https://api.census.gov/data/2021/acs/acs5", description="ACS 5-year endpoint")
    land_area_url: str = Field(
        default="https://tigerweb.geo.census.gov/arcgis/rest/services/TIGERweb/tigerWMS_ACS2021/MapServer/8/query",
        description="TIGERweb ZCTA layer query endpoint"
    )
    default_land_area_sq_meters: float = Field(default=25899881.1, gt=0, description="Land area used when no boundary data exists")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=1, le=10, description="Maximum retry attempts")
    backoff_factor: float = Field(default=0.3, ge=0.1, le=5.0, description="Backoff factor for retries")

    @field_validator('population_url', 'land_area_url')
    @classmethod
    def validate_urls(cls, v):
        return _validate_http_url(v)


class DatabaseConfig(BaseModel):
    """Configuration for the qualification rules database"""
    url: str = Field(default="sqlite:///btm_rules.db", description="Database URL (Supabase Postgres in production)")
    echo: bool = Field(default=False, description="Enable SQL echo for debugging")

    @field_validator('url')
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError('Database URL cannot be empty')
        parsed = urlparse(v)
        if parsed.scheme == 'sqlite' and not parsed.path:
            raise ValueError('SQLite URL must include a path')
        return v


class CacheConfig(BaseModel):
    """Configuration for the in-memory response cache"""
    enabled: bool = Field(default=True, description="Enable response caching")
    default_ttl: int = Field(default=3600, ge=0, description="Default TTL in seconds (0 disables expiry)")
    api_cache_ttl: int = Field(default=3600, ge=0, description="TTL for raw API responses")
    geocode_cache_ttl: int = Field(default=86400, ge=0, description="TTL for geocoding results")


class QualificationConfig(BaseModel):
    """Defaults and tunables for the qualification rules"""
    minimum_population_density: int = Field(default=1000, ge=0, description="Default people per square mile")
    search_radius_miles: float = Field(default=1.0, ge=0.1, le=10.0, description="Default kiosk search radius")
    brand_name: str = Field(default="Bitcoin Depot", description="Operator whose own kiosks are checked for spacing")
    brand_keywords: List[str] = Field(default_factory=lambda: ["bitcoin depot", "bitcoindepot"])
    kiosk_density_radius_miles: float = Field(default=1.0, gt=0, description="Radius for the competitor density cap")
    same_store_radius_miles: float = Field(default=0.031, gt=0, description="Kiosks this close are treated as in the same store")
    reduced_density_states: List[str] = Field(default_factory=lambda: ["AZ", "WA"])
    reduced_density_population_floor: int = Field(default=15000, ge=0)

    @field_validator('reduced_density_states')
    @classmethod
    def validate_state_codes(cls, v):
        for code in v:
            if len(code) != 2 or not code.isalpha():
                raise ValueError(f'Invalid state code: {code}')
        return [code.upper() for code in v]


class Config(BaseModel):
    """Main configuration class"""
    google_maps: GoogleMapsConfig = Field(default_factory=GoogleMapsConfig)
    census: CensusConfig = Field(default_factory=CensusConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    qualification: QualificationConfig = Field(default_factory=QualificationConfig)

    @classmethod
    def from_env(cls) -> 'Config':
        """Create configuration from environment variables with validation"""
        timeout = int(os.getenv('BTM_API_TIMEOUT', '30'))
        max_retries = int(os.getenv('BTM_API_MAX_RETRIES', '3'))
        backoff_factor = float(os.getenv('BTM_API_BACKOFF_FACTOR', '0.3'))
        env_vars = {
            'google_maps': {
                'api_key': os.getenv('GOOGLE_MAPS_API_KEY'),
                'timeout': timeout,
                'max_retries': max_retries,
                'backoff_factor': backoff_factor
            },
            'census': {
                'api_key': os.getenv('CENSUS_API_KEY'),
                'timeout': timeout,
                'max_retries': max_retries,
                'backoff_factor': backoff_factor
            },
            'database': {
                'url': os.getenv('BTM_DB_URL', 'sqlite:///btm_rules.db'),
                'echo': os.getenv('BTM_DB_ECHO', 'false').lower() == 'true'
            },
            'cache': {
                'enabled': os.getenv('BTM_CACHE_ENABLED', 'true').lower() == 'true'
            },
            'qualification': {
                'minimum_population_density': int(os.getenv('BTM_MIN_DENSITY', '1000')),
                'search_radius_miles': float(os.getenv('BTM_SEARCH_RADIUS', '1.0'))
            }
        }
        return cls(**env_vars)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (excluding sensitive data)"""
        return {
            'google_maps': {
                'api_key_configured': bool(self.google_maps.api_key),
                'timeout': self.google_maps.timeout,
                'max_retries': self.google_maps.max_retries,
                'backoff_factor': self.google_maps.backoff_factor
            },
            'census': {
                'api_key_configured': bool(self.census.api_key),
                'timeout': self.census.timeout,
                'default_land_area_sq_meters': self.census.default_land_area_sq_meters
            },
            'database': {
                'url': mask_database_url(self.database.url),
                'echo': self.database.echo
            },
            'cache': {
                'enabled': self.cache.enabled,
                'default_ttl': self.cache.default_ttl
            },
            'qualification': {
                'minimum_population_density': self.qualification.minimum_population_density,
                'search_radius_miles': self.qualification.search_radius_miles,
                'brand_name': self.qualification.brand_name,
                'reduced_density_states': self.qualification.reduced_density_states,
                'reduced_density_population_floor': self.qualification.reduced_density_population_floor
            }
        }


def mask_database_url(url: str) -> str:
    """Mask credentials in a database URL for logging"""
    if '://' in url and '@' in url:
        scheme, rest = url.split('://', 1)
        host_db = rest.rsplit('@', 1)[1]
        return f"{scheme}://***:***@{host_db}"
    return url


# Global configuration instance
def load_config():
    """Load configuration based on environment"""
    environment = os.getenv('ENVIRONMENT', 'dev').lower()
    if environment == 'dev':
        from .config_dev import dev_config
        return dev_config
    elif environment == 'staging':
        from .config_staging import staging_config
        return staging_config
    elif environment == 'prod':
        from .config_prod import prod_config
        return prod_config
    else:
        # Fallback to default from env
        return Config.from_env()

config = load_config()
