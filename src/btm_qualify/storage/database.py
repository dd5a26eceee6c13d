"""
Database access for the qualification rule tables (Supabase Postgres or SQLite)
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Any
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func

from ..config import config, mask_database_url
from .models import (
    Base, AutoRejectedState, ProximityRule, KioskDensityRule,
    PopulationMinimumRule, IgnoredCompetitor, ZipLandArea
)

logger = logging.getLogger(__name__)

# Starter rule set for a fresh database. Bands are inclusive on both ends and
# cover every density from 0 upward.
DEFAULT_PROXIMITY_RULES = [
    {'density_min': 0, 'density_max': 999.99, 'standard_distance_miles': 3.0, 'state_exceptions': {}},
    {'density_min': 1000, 'density_max': 2999.99, 'standard_distance_miles': 2.0, 'state_exceptions': {'TX': 2.5}},
    {'density_min': 3000, 'density_max': 9999.99, 'standard_distance_miles': 1.0, 'state_exceptions': {}},
    {'density_min': 10000, 'density_max': 1e9, 'standard_distance_miles': 0.5, 'state_exceptions': {'NY': 0.25}},
]

DEFAULT_KIOSK_DENSITY_RULES = [
    {'density_min': 0, 'density_max': 999.99, 'standard_kiosk_limit': 2, 'state_exceptions': {}},
    {'density_min': 1000, 'density_max': 2999.99, 'standard_kiosk_limit': 3, 'state_exceptions': {}},
    {'density_min': 3000, 'density_max': 9999.99, 'standard_kiosk_limit': 4, 'state_exceptions': {}},
    {'density_min': 10000, 'density_max': 1e9, 'standard_kiosk_limit': 6, 'state_exceptions': {'NY': 8}},
]

DEFAULT_POPULATION_RULES = [
    {'state_code': None, 'population_minimum': 0, 'density_minimum': 1000,
     'special_conditions': 'Default minimum for all states without a specific rule'},
    {'state_code': 'AZ', 'population_minimum': 15000, 'density_minimum': 500,
     'special_conditions': 'Reduced density minimum when ZIP population is at least 15,000'},
    {'state_code': 'WA', 'population_minimum': 15000, 'density_minimum': 500,
     'special_conditions': 'Reduced density minimum when ZIP population is at least 15,000'},
]


class DatabaseManager:
    """Database manager for rule lookups and the ZIP land-area cache"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or config.database.url
        self.engine = create_engine(self.database_url, echo=config.database.echo, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)
        logger.info(f"Initialized database with URL: {mask_database_url(self.database_url)}")

        self._create_tables()

    def _create_tables(self):
        """Create all database tables"""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")
            raise

    @contextmanager
    def get_session(self):
        """Context manager for database sessions"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def seed_default_rules(self, overwrite: bool = False) -> Dict[str, int]:
        """
        Load the starter rule set

        Args:
            overwrite: Replace existing band and population rows instead of
                skipping tables that already hold data

        Returns:
            Number of rows inserted per table
        """
        inserted = {'proximity_rules': 0, 'kiosk_density_rules': 0, 'population_minimum_rules': 0}
        seeds = [
            (ProximityRule, DEFAULT_PROXIMITY_RULES, 'proximity_rules'),
            (KioskDensityRule, DEFAULT_KIOSK_DENSITY_RULES, 'kiosk_density_rules'),
            (PopulationMinimumRule, DEFAULT_POPULATION_RULES, 'population_minimum_rules'),
        ]

        with self.get_session() as session:
            for model, rows, table_name in seeds:
                existing = session.query(model).count()
                if existing and not overwrite:
                    logger.info(f"Skipping {table_name}: {existing} rows already present")
                    continue
                if existing:
                    session.query(model).delete()
                for row in rows:
                    session.add(model(**row))
                inserted[table_name] = len(rows)

        logger.info(f"Seeded default rules: {inserted}")
        return inserted

    def add_auto_rejected_state(self, state_code: str, state_name: str, reason: str) -> Dict[str, Any]:
        """Add or reactivate an auto-rejected state"""
        state_code = state_code.upper()
        with self.get_session() as session:
            state = session.query(AutoRejectedState).filter_by(state_code=state_code).first()
            if state:
                state.state_name = state_name
                state.reason = reason
                state.discontinued_date = None
            else:
                state = AutoRejectedState(
                    state_code=state_code,
                    state_name=state_name,
                    reason=reason,
                    rejected_date=date.today()
                )
                session.add(state)
            session.flush()
            logger.info(f"Auto-rejecting state {state_code}: {reason}")
            return state.to_dict()

    def discontinue_auto_rejected_state(self, state_code: str) -> bool:
        """Mark a state rejection as no longer in force"""
        with self.get_session() as session:
            state = session.query(AutoRejectedState).filter_by(state_code=state_code.upper()).first()
            if not state or state.discontinued_date:
                return False
            state.discontinued_date = date.today()
            logger.info(f"Discontinued auto-rejection for {state.state_code}")
            return True

    def add_ignored_competitor(self, competitor_name: str) -> bool:
        """Exclude a competitor operator from kiosk counts"""
        with self.get_session() as session:
            if session.query(IgnoredCompetitor).filter(
                func.lower(IgnoredCompetitor.competitor_name) == competitor_name.lower()
            ).first():
                return False
            session.add(IgnoredCompetitor(competitor_name=competitor_name))
            return True

    def get_zip_land_area(self, zip_code: str) -> Optional[float]:
        """Cached land area in square metres, or None"""
        with self.get_session() as session:
            row = session.query(ZipLandArea).filter_by(zip_code=zip_code).first()
            return row.land_area_sq_meters if row else None

    def store_zip_land_area(self, zip_code: str, land_area_sq_meters: float, source: str = 'tigerweb') -> bool:
        """
        Store a ZIP land area in the cache table

        Returns:
            True if successful, False otherwise
        """
        try:
            with self.get_session() as session:
                row = session.query(ZipLandArea).filter_by(zip_code=zip_code).first()
                if row:
                    row.land_area_sq_meters = land_area_sq_meters
                    row.source = source
                    row.last_updated = func.now()
                else:
                    session.add(ZipLandArea(zip_code=zip_code, land_area_sq_meters=land_area_sq_meters, source=source))
            logger.info(f"Cached land area for ZIP {zip_code}: {land_area_sq_meters:,.0f} m²")
            return True
        except Exception as e:
            logger.error(f"Error storing land area for ZIP {zip_code}: {e}")
            return False

    def get_rules_summary(self) -> Dict[str, List[Dict[str, Any]]]:
        """All rule rows, for display"""
        with self.get_session() as session:
            return {
                'auto_rejected_states': [r.to_dict() for r in session.query(AutoRejectedState).order_by(AutoRejectedState.state_code)],
                'proximity_rules': [r.to_dict() for r in session.query(ProximityRule).order_by(ProximityRule.density_min)],
                'kiosk_density_rules': [r.to_dict() for r in session.query(KioskDensityRule).order_by(KioskDensityRule.density_min)],
                'population_minimum_rules': [r.to_dict() for r in session.query(PopulationMinimumRule).order_by(PopulationMinimumRule.id)],
                'ignored_competitors': [r.to_dict() for r in session.query(IgnoredCompetitor).order_by(IgnoredCompetitor.competitor_name)],
            }

    def test_connection(self) -> bool:
        """Test database connection"""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False
