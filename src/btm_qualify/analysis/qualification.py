"""
Location qualification for Bitcoin ATM placement

Geocodes an address, gathers place, census and kiosk data, applies the
rule set and assembles a single pass/fail result.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

from ..config import config
from ..exceptions import QualificationError
from ..data.google_maps import GoogleMapsClient
from ..data.census import CensusClient
from ..storage.settings import Settings, settings_store
from .business_tier import classify_business_type, format_category, TIER_1
from .store_hours import parse_store_hours, StoreHours, MIN_DAYS_OPEN, MIN_AVERAGE_HOURS
from .proximity import analyze_btm_proximity, BtmProximity
from .rules import QualificationRulesService

logger = logging.getLogger(__name__)

@dataclass
class StateRejection:
    is_auto_rejected: bool
    rejection_reason: Optional[str] = None

    def to_dict(self):
        return {'isAutoRejected': self.is_auto_rejected, 'rejectionReason': self.rejection_reason}

@dataclass
class PopulationCheck:
    zip_code: str
    population: int
    density: int
    threshold: float
    meets_requirement: bool
    reduced_minimum_applied: bool = False
    land_area_source: Optional[str] = None

    def to_dict(self):
        return {
            'zipCode': self.zip_code,
            'population': self.population,
            'density': self.density,
            'threshold': self.threshold,
            'meetsRequirement': self.meets_requirement,
            'reducedMinimumApplied': self.reduced_minimum_applied,
            'landAreaSource': self.land_area_source
        }

@dataclass
class BusinessCheck:
    name: str
    category: str
    tier: str
    tier_amount: Optional[int]
    meets_requirement: bool
    detected_types: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'name': self.name,
            'category': self.category,
            'tier': self.tier,
            'tierAmount': self.tier_amount,
            'meetsRequirement': self.meets_requirement,
            'detectedTypes': self.detected_types
        }

@dataclass
class QualificationResult:
    """Complete qualification outcome for one address"""
    qualified: bool
    address: str
    formatted_address: str
    lat: float
    lng: float
    state_code: str
    state_name: str
    state_rejection: StateRejection
    population_density: PopulationCheck
    btm_proximity: BtmProximity
    business_type: BusinessCheck
    store_hours: StoreHours
    reasons: List[str]
    summary: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON served to the web UI"""
        return {
            'qualified': self.qualified,
            'address': self.address,
            'formattedAddress': self.formatted_address,
            'location': {'lat': self.lat, 'lng': self.lng},
            'stateCode': self.state_code,
            'stateName': self.state_name,
            'stateRejection': self.state_rejection.to_dict(),
            'populationDensity': self.population_density.to_dict(),
            'btmProximity': self.btm_proximity.to_dict(),
            'businessType': self.business_type.to_dict(),
            'storeHours': self.store_hours.to_dict(),
            'reasons': self.reasons,
            'summary': self.summary,
            'timestamp': self.timestamp
        }

    def to_record(self) -> Dict[str, Any]:
        """Flat row for CSV export"""
        return {
            'address': self.address,
            'formatted_address': self.formatted_address,
            'qualified': self.qualified,
            'state_code': self.state_code,
            'latitude': self.lat,
            'longitude': self.lng,
            'zip_code': self.population_density.zip_code,
            'population': self.population_density.population,
            'density': self.population_density.density,
            'density_threshold': self.population_density.threshold,
            'business_name': self.business_type.name,
            'business_tier': self.business_type.tier,
            'tier_amount': self.business_type.tier_amount,
            'days_open': self.store_hours.days_open,
            'average_hours_per_day': round(self.store_hours.average_hours_per_day, 2),
            'brand_kiosks_nearby': self.btm_proximity.bitcoin_depot_count,
            'nearest_brand_kiosk_miles': self.btm_proximity.nearest_bitcoin_depot_miles,
            'competitors_within_one_mile': self.btm_proximity.competitors_within_one_mile,
            'reasons': '; '.join(self.reasons),
            'timestamp': self.timestamp
        }


class QualificationService:
    """Runs the full qualification flow for an address"""

    def __init__(self, maps_client: Optional[GoogleMapsClient] = None,
                 census_client: Optional[CensusClient] = None,
                 rules_service: Optional[QualificationRulesService] = None):
        self.rules = rules_service or QualificationRulesService()
        self.maps = maps_client or GoogleMapsClient()
        self.census = census_client or CensusClient(db_manager=self.rules.db)

    def _check_population(self, density_data, state_code: str, settings: Settings) -> PopulationCheck:
        threshold = settings.minimum_population_density
        reduced = False

        population_rule = self.rules.get_population_rule_for_state(state_code)
        if (population_rule is not None
                and population_rule.density_minimum < threshold
                and self.rules.can_use_lower_density_minimum(state_code, density_data.population, population_rule)):
            logger.info(f"Using reduced density minimum {population_rule.density_minimum} for {state_code}")
            threshold = population_rule.density_minimum
            reduced = True

        return PopulationCheck(
            zip_code=density_data.zip_code,
            population=density_data.population,
            density=density_data.density,
            threshold=threshold,
            meets_requirement=density_data.density >= threshold,
            reduced_minimum_applied=reduced,
            land_area_source=density_data.land_area_source
        )

    async def qualify_location(self, address: str, settings: Optional[Settings] = None) -> QualificationResult:
        """
        Qualify an address for kiosk placement

        Args:
            address: Street address as typed by the user
            settings: Thresholds to apply (current stored settings if None)

        Returns:
            QualificationResult

        Raises:
            QualificationError: if the address cannot be geocoded or census
                data for its ZIP code is unavailable
        """
        address = (address or '').strip()
        if not address:
            raise QualificationError("Address is required")
        settings = settings or settings_store.get_settings()
        brand = config.qualification.brand_name

        logger.info(f"Qualifying location: {address}")

        geocode = await self.maps.geocode_address(address)
        place = await self.maps.get_place_details(geocode.place_id)

        # Size the kiosk search so any band's spacing rule can be checked
        max_rule_distance = self.rules.get_max_proximity_distance(geocode.state_code) or 0
        search_radius = max(settings.search_radius_miles, max_rule_distance,
                            config.qualification.kiosk_density_radius_miles)

        density_data, nearby_kiosks = await asyncio.gather(
            self.census.get_population_density(geocode.zip_code),
            self.maps.search_nearby_btms(geocode.lat, geocode.lng, search_radius)
        )

        # State policy
        rejected_state = self.rules.get_auto_rejected_states().get(geocode.state_code)
        state_rejection = StateRejection(
            is_auto_rejected=rejected_state is not None,
            rejection_reason=(rejected_state.get('reason') or f"{geocode.state_name} does not allow {brand} kiosks")
            if rejected_state else None
        )

        population_check = self._check_population(density_data, geocode.state_code, settings)

        # Proximity and kiosk density, banded by population density
        proximity_rule = self.rules.get_proximity_rule_for_density(density_data.density)
        required_distance = (self.rules.get_required_proximity_distance(proximity_rule, geocode.state_code)
                             if proximity_rule else settings.search_radius_miles)
        kiosk_rule = self.rules.get_kiosk_density_rule_for_density(density_data.density)
        max_kiosks = self.rules.get_max_kiosk_density(kiosk_rule, geocode.state_code) if kiosk_rule else None

        btm_proximity = analyze_btm_proximity(
            nearby_kiosks,
            geocode.lat,
            geocode.lng,
            required_distance_miles=required_distance,
            max_competitors_within_one_mile=max_kiosks,
            ignored_competitors=self.rules.get_ignored_competitors()
        )
        btm_proximity.search_radius_miles = search_radius

        classification = classify_business_type(place.name, place.types)
        business_check = BusinessCheck(
            name=place.name,
            category=classification.category,
            tier=classification.tier,
            tier_amount=classification.tier_amount,
            meets_requirement=classification.qualified,
            detected_types=[format_category(t) for t in place.types][:5]
        )

        store_hours = parse_store_hours(place.weekday_text)

        reasons = []
        if state_rejection.is_auto_rejected:
            reasons.append(f"state not allowed ({state_rejection.rejection_reason})")
        if not population_check.meets_requirement:
            reasons.append(
                f"insufficient population density ({population_check.density:,} people per sq mi, "
                f"minimum {population_check.threshold:,.0f})"
            )
        reasons.extend(btm_proximity.reasons)
        if not business_check.meets_requirement:
            reasons.append("business type not qualified")
        if not store_hours.meets_requirements:
            reasons.append(
                f"inadequate store hours ({store_hours.days_open} days open, "
                f"{store_hours.average_hours_per_day:.1f} average hours; "
                f"need {MIN_DAYS_OPEN} days and {MIN_AVERAGE_HOURS} hours)"
            )

        qualified = (
            not state_rejection.is_auto_rejected
            and population_check.meets_requirement
            and btm_proximity.meets_requirement
            and business_check.meets_requirement
            and store_hours.meets_requirements
        )

        if qualified:
            tier_label = "Tier 1" if business_check.tier == TIER_1 else "Tier 2"
            summary = (
                f"This location meets all requirements for Bitcoin ATM placement. {tier_label} business with "
                f"{population_check.density:,} people per sq mi, no {brand} ATMs within "
                f"{required_distance:g} miles, and adequate operating hours."
            )
        else:
            summary = f"This location does not qualify due to: {', '.join(reasons)}."

        logger.info(f"Qualification for {geocode.formatted_address}: {'PASS' if qualified else 'FAIL'}")

        return QualificationResult(
            qualified=qualified,
            address=address,
            formatted_address=geocode.formatted_address,
            lat=geocode.lat,
            lng=geocode.lng,
            state_code=geocode.state_code,
            state_name=geocode.state_name,
            state_rejection=state_rejection,
            population_density=population_check,
            btm_proximity=btm_proximity,
            business_type=business_check,
            store_hours=store_hours,
            reasons=reasons,
            summary=summary,
            timestamp=datetime.now(timezone.utc).isoformat()
        )

    async def qualify_addresses(self, addresses: List[str], settings: Optional[Settings] = None) -> List[Dict[str, Any]]:
        """
        Qualify several addresses one after another

        Failures are recorded per address rather than stopping the batch.

        Returns:
            Flat records suitable for a DataFrame
        """
        settings = settings or settings_store.get_settings()
        records = []

        for i, address in enumerate(addresses, 1):
            logger.info(f"Processing address {i}/{len(addresses)}: {address}")
            try:
                result = await self.qualify_location(address, settings)
                record = result.to_record()
                record['error'] = None
            except QualificationError as e:
                logger.warning(f"Could not qualify {address}: {e}")
                record = {'address': address, 'qualified': False, 'error': str(e)}
            records.append(record)

        return records
