"""
Bitcoin ATM Location Qualification

This package provides tools to:
1. Geocode a street address and look up the business at it
2. Calculate ZIP-level population density from Census data
3. Classify the business tier and parse its opening hours
4. Check nearby kiosks against spacing and density rules
5. Combine everything into a single qualification result
"""

__version__ = "1.0.0"
__author__ = "BTM Qualify Team"

from .data.google_maps import GoogleMapsClient
from .data.census import CensusClient
from .analysis.qualification import QualificationService, QualificationResult
from .analysis.rules import QualificationRulesService
from .storage.database import DatabaseManager

__all__ = [
    'GoogleMapsClient',
    'CensusClient',
    'QualificationService',
    'QualificationResult',
    'QualificationRulesService',
    'DatabaseManager'
]
