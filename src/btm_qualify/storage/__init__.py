"""
Data storage module for rule tables, settings and caching
"""

from .database import DatabaseManager
from .models import AutoRejectedState, ProximityRule, KioskDensityRule, PopulationMinimumRule, IgnoredCompetitor, ZipLandArea
from .settings import Settings, SettingsStore

__all__ = ['DatabaseManager', 'Settings', 'SettingsStore']
