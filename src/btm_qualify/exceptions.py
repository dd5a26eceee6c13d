"""
Errors raised while qualifying a location
"""


class QualificationError(Exception):
    """Base error; the message is safe to show to the person who entered the address"""


class GeocodingError(QualificationError):
    """The address could not be resolved, or the mapping provider rejected the request"""


class CensusDataError(QualificationError):
    """Population or land-area data for a ZIP code is unavailable"""
