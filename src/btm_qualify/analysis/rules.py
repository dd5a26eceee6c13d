"""
Database-backed qualification rules

Density-banded proximity and kiosk-density limits with per-state
overrides, auto-rejected states, population minimums and ignored
competitors.
"""

import logging
from typing import Dict, Optional, Set, Any
from dataclasses import dataclass, field

from sqlalchemy import func

from ..config import config
from ..storage.database import DatabaseManager
from ..storage.models import (
    AutoRejectedState, ProximityRule, KioskDensityRule, PopulationMinimumRule, IgnoredCompetitor
)

logger = logging.getLogger(__name__)

@dataclass
class ProximityBand:
    density_min: float
    density_max: float
    standard_distance_miles: float
    state_exceptions: Dict[str, float] = field(default_factory=dict)

@dataclass
class KioskDensityBand:
    density_min: float
    density_max: float
    standard_kiosk_limit: int
    state_exceptions: Dict[str, int] = field(default_factory=dict)

@dataclass
class PopulationRule:
    state_code: Optional[str]
    population_minimum: int
    density_minimum: float
    special_conditions: Optional[str] = None


class QualificationRulesService:
    """Looks up the rule rows that apply to a location"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db = db_manager or DatabaseManager()

    def get_auto_rejected_states(self) -> Dict[str, Dict[str, Any]]:
        """Active state rejections keyed by state code; empty on database errors"""
        try:
            with self.db.get_session() as session:
                rows = session.query(AutoRejectedState).filter(AutoRejectedState.discontinued_date.is_(None)).all()
                return {row.state_code: row.to_dict() for row in rows}
        except Exception as e:
            logger.error(f"Error fetching auto-rejected states: {e}")
            return {}

    def get_proximity_rule_for_density(self, density: float) -> Optional[ProximityBand]:
        """Proximity band containing the density, or None"""
        try:
            with self.db.get_session() as session:
                row = (session.query(ProximityRule)
                       .filter(ProximityRule.density_min <= density, ProximityRule.density_max >= density)
                       .order_by(ProximityRule.density_min)
                       .first())
                if row is None:
                    logger.warning(f"Could not find proximity rule for density: {density}")
                    return None
                return ProximityBand(
                    density_min=row.density_min,
                    density_max=row.density_max,
                    standard_distance_miles=row.standard_distance_miles,
                    state_exceptions=dict(row.state_exceptions or {})
                )
        except Exception as e:
            logger.error(f"Error fetching proximity rule: {e}")
            return None

    def get_kiosk_density_rule_for_density(self, density: float) -> Optional[KioskDensityBand]:
        """Kiosk density band containing the density, or None"""
        try:
            with self.db.get_session() as session:
                row = (session.query(KioskDensityRule)
                       .filter(KioskDensityRule.density_min <= density, KioskDensityRule.density_max >= density)
                       .order_by(KioskDensityRule.density_min)
                       .first())
                if row is None:
                    logger.warning(f"Could not find kiosk density rule for density: {density}")
                    return None
                return KioskDensityBand(
                    density_min=row.density_min,
                    density_max=row.density_max,
                    standard_kiosk_limit=row.standard_kiosk_limit,
                    state_exceptions=dict(row.state_exceptions or {})
                )
        except Exception as e:
            logger.error(f"Error fetching kiosk density rule: {e}")
            return None

    def get_population_rule_for_state(self, state_code: Optional[str]) -> Optional[PopulationRule]:
        """The state's population rule, else the default (null state) rule, else None"""
        try:
            with self.db.get_session() as session:
                row = None
                if state_code:
                    row = session.query(PopulationMinimumRule).filter_by(state_code=state_code).first()
                if row is None:
                    row = session.query(PopulationMinimumRule).filter(PopulationMinimumRule.state_code.is_(None)).first()
                if row is None:
                    logger.warning(f"Could not find population rule for state: {state_code}")
                    return None
                return PopulationRule(
                    state_code=row.state_code,
                    population_minimum=row.population_minimum or 0,
                    density_minimum=row.density_minimum,
                    special_conditions=row.special_conditions
                )
        except Exception as e:
            logger.error(f"Error fetching population rule: {e}")
            return None

    def get_ignored_competitors(self) -> Set[str]:
        """Lower-cased names of competitors excluded from counts"""
        try:
            with self.db.get_session() as session:
                return {name.lower() for (name,) in session.query(IgnoredCompetitor.competitor_name)}
        except Exception as e:
            logger.error(f"Error fetching ignored competitors: {e}")
            return set()

    def get_max_proximity_distance(self, state_code: Optional[str]) -> Optional[float]:
        """Largest spacing any density band could require in this state"""
        try:
            with self.db.get_session() as session:
                rows = session.query(ProximityRule).all()
                distances = [
                    self.get_required_proximity_distance(
                        ProximityBand(r.density_min, r.density_max, r.standard_distance_miles, dict(r.state_exceptions or {})),
                        state_code
                    )
                    for r in rows
                ]
                return max(distances) if distances else None
        except Exception as e:
            logger.error(f"Error fetching proximity rules: {e}")
            return None

    @staticmethod
    def get_required_proximity_distance(proximity_rule: ProximityBand, state_code: Optional[str]) -> float:
        override = proximity_rule.state_exceptions.get(state_code) if state_code else None
        return float(override) if override is not None else proximity_rule.standard_distance_miles

    @staticmethod
    def get_max_kiosk_density(kiosk_density_rule: KioskDensityBand, state_code: Optional[str]) -> int:
        override = kiosk_density_rule.state_exceptions.get(state_code) if state_code else None
        return int(override) if override is not None else kiosk_density_rule.standard_kiosk_limit

    @staticmethod
    def can_use_lower_density_minimum(state_code: str, zip_population: int,
                                      population_rule: Optional[PopulationRule] = None) -> bool:
        """Reduced-density states qualify on the lower minimum once the ZIP is populous enough"""
        settings = config.qualification
        if state_code not in settings.reduced_density_states:
            return False
        return zip_population >= settings.reduced_density_population_floor

    def rule_counts(self) -> Dict[str, int]:
        """Row counts per rule table, for status output"""
        with self.db.get_session() as session:
            return {
                'auto_rejected_states': session.query(func.count(AutoRejectedState.id)).scalar(),
                'proximity_rules': session.query(func.count(ProximityRule.id)).scalar(),
                'kiosk_density_rules': session.query(func.count(KioskDensityRule.id)).scalar(),
                'population_minimum_rules': session.query(func.count(PopulationMinimumRule.id)).scalar(),
                'ignored_competitors': session.query(func.count(IgnoredCompetitor.id)).scalar(),
            }
