"""
Runtime qualification settings, editable through the settings endpoint
"""

import logging
import threading
from typing import Dict, Any
from pydantic import BaseModel, Field

from ..config import config

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Thresholds a reviewer can adjust without touching the rule tables"""
    minimum_population_density: float = Field(
        default_factory=lambda: config.qualification.minimum_population_density,
        ge=0,
        description="People per square mile required in the location's ZIP code"
    )
    search_radius_miles: float = Field(
        default_factory=lambda: config.qualification.search_radius_miles,
        ge=0.1,
        le=10,
        description="Radius used to look for existing kiosks"
    )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Settings':
        """Build from the camelCase JSON sent by the web UI"""
        if not isinstance(payload, dict):
            raise ValueError('Settings payload must be a JSON object')
        values = {}
        if 'minimumPopulationDensity' in payload:
            values['minimum_population_density'] = payload['minimumPopulationDensity']
        if 'searchRadiusMiles' in payload:
            values['search_radius_miles'] = payload['searchRadiusMiles']
        return cls(**values)

    def clone(self) -> 'Settings':
        return Settings(
            minimum_population_density=self.minimum_population_density,
            search_radius_miles=self.search_radius_miles
        )

    def to_dict(self) -> Dict[str, Any]:
        """camelCase representation served to the web UI"""
        return {
            'minimumPopulationDensity': self.minimum_population_density,
            'searchRadiusMiles': self.search_radius_miles
        }


class SettingsStore:
    """Holds the single settings record in memory"""

    def __init__(self, initial: Settings = None):
        self._lock = threading.Lock()
        self._settings = (initial or Settings()).clone()

    def get_settings(self) -> Settings:
        with self._lock:
            return self._settings.clone()

    def update_settings(self, settings: Settings) -> Settings:
        with self._lock:
            self._settings = settings.clone()
            logger.info(
                f"Settings updated: minimum density {settings.minimum_population_density}, "
                f"search radius {settings.search_radius_miles} mi"
            )
            return self._settings.clone()

    def reset(self) -> Settings:
        """Restore the configured defaults"""
        return self.update_settings(Settings())


settings_store = SettingsStore()
