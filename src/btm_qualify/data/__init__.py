"""
Clients for the mapping provider and the Census Bureau
"""

from .google_maps import GoogleMapsClient
from .census import CensusClient

__all__ = ['GoogleMapsClient', 'CensusClient']
