"""
SQLAlchemy models for the qualification rule tables
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text, JSON, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from typing import Dict, Any

Base = declarative_base()

class AutoRejectedState(Base):
    """States where kiosks cannot be placed at all"""
    __tablename__ = "auto_rejected_states"

    id = Column(Integer, primary_key=True, index=True)
    state_code = Column(String(2), unique=True, index=True, nullable=False)
    state_name = Column(String)
    reason = Column(Text)
    rejected_date = Column(Date)
    # A non-null date means the rejection no longer applies
    discontinued_date = Column(Date)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'state_code': self.state_code,
            'state_name': self.state_name,
            'reason': self.reason,
            'rejected_date': self.rejected_date.isoformat() if self.rejected_date else None,
            'discontinued_date': self.discontinued_date.isoformat() if self.discontinued_date else None
        }

class ProximityRule(Base):
    """Minimum spacing between same-brand kiosks, banded by population density"""
    __tablename__ = "proximity_rules"

    id = Column(Integer, primary_key=True, index=True)
    density_min = Column(Float, nullable=False)
    density_max = Column(Float, nullable=False)
    standard_distance_miles = Column(Float, nullable=False)
    state_exceptions = Column(JSON)  # {"TX": 2.0, ...}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'density_min': self.density_min,
            'density_max': self.density_max,
            'standard_distance_miles': self.standard_distance_miles,
            'state_exceptions': self.state_exceptions or {}
        }

Index('ix_proximity_density_band', ProximityRule.density_min, ProximityRule.density_max)

class KioskDensityRule(Base):
    """Maximum competitor kiosks allowed within one mile, banded by population density"""
    __tablename__ = "kiosk_density_rules"

    id = Column(Integer, primary_key=True, index=True)
    density_min = Column(Float, nullable=False)
    density_max = Column(Float, nullable=False)
    standard_kiosk_limit = Column(Integer, nullable=False)
    state_exceptions = Column(JSON)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'density_min': self.density_min,
            'density_max': self.density_max,
            'standard_kiosk_limit': self.standard_kiosk_limit,
            'state_exceptions': self.state_exceptions or {}
        }

Index('ix_kiosk_density_band', KioskDensityRule.density_min, KioskDensityRule.density_max)

class PopulationMinimumRule(Base):
    """Population and density minimums; the row with a null state_code is the default"""
    __tablename__ = "population_minimum_rules"

    id = Column(Integer, primary_key=True, index=True)
    state_code = Column(String(2), index=True)
    population_minimum = Column(Integer, default=0)
    density_minimum = Column(Float, nullable=False)
    special_conditions = Column(Text)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'state_code': self.state_code,
            'population_minimum': self.population_minimum,
            'density_minimum': self.density_minimum,
            'special_conditions': self.special_conditions
        }

class IgnoredCompetitor(Base):
    """Competitor operators excluded from kiosk counts"""
    __tablename__ = "ignored_competitors"

    id = Column(Integer, primary_key=True, index=True)
    competitor_name = Column(String, unique=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'competitor_name': self.competitor_name}

class ZipLandArea(Base):
    """Cached ZCTA land areas so boundary lookups are only made once per ZIP"""
    __tablename__ = "zip_land_areas"

    zip_code = Column(String(5), primary_key=True)
    land_area_sq_meters = Column(Float, nullable=False)
    source = Column(String)  # 'tigerweb', 'manual'
    last_updated = Column(DateTime, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'zip_code': self.zip_code,
            'land_area_sq_meters': self.land_area_sq_meters,
            'source': self.source,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None
        }
