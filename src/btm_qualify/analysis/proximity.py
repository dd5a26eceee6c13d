"""
Kiosk proximity analysis around a candidate location

Haversine great-circle distance, same-brand spacing, and competitor
density within one mile.
"""

import math
import re
import logging
from typing import Dict, Iterable, List, Optional, Set
from dataclasses import dataclass, field

from ..config import config

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959.0

# Competitor operators and the name fragments that identify their kiosks
COMPETITORS = [
    {'name': 'CoinFlip', 'keywords': ['coinflip', 'coin flip']},
    {'name': 'RockItCoin', 'keywords': ['rockitcoin', 'rockit coin']},
    {'name': 'CoinCloud', 'keywords': ['coincloud', 'coin cloud']},
    {'name': 'Athena Bitcoin', 'keywords': ['athena']},
    {'name': 'Bitcoin of America', 'keywords': ['bitcoin of america', 'boa']},
    {'name': 'Byte Federal', 'keywords': ['byte federal', 'bytefederal']},
    {'name': 'LibertyX', 'keywords': ['libertyx', 'liberty x']},
]


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate great-circle distance between two points in miles.
    Uses the Haversine formula.
    """
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


def _compile(keywords: Iterable[str]) -> re.Pattern:
    pattern = r'\b(?:' + '|'.join(re.escape(keyword) for keyword in keywords) + r')\b'
    return re.compile(pattern, re.IGNORECASE)


_COMPETITOR_PATTERNS = [(c['name'], _compile(c['keywords'])) for c in COMPETITORS]


@dataclass
class CompetitorCount:
    name: str
    count: int

    def to_dict(self):
        return {'name': self.name, 'count': self.count}

@dataclass
class BtmProximity:
    """Outcome of the proximity and kiosk-density checks"""
    bitcoin_depot_count: int
    nearest_bitcoin_depot_miles: Optional[float]
    required_distance_miles: Optional[float]
    competitors: List[CompetitorCount] = field(default_factory=list)
    total_competitors: int = 0
    competitors_within_one_mile: int = 0
    max_competitors_within_one_mile: Optional[int] = None
    same_store_competitor: Optional[str] = None
    search_radius_miles: Optional[float] = None
    meets_requirement: bool = True
    reasons: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'bitcoinDepotCount': self.bitcoin_depot_count,
            'nearestBitcoinDepotMiles': round(self.nearest_bitcoin_depot_miles, 2) if self.nearest_bitcoin_depot_miles is not None else None,
            'requiredDistanceMiles': self.required_distance_miles,
            'competitors': [c.to_dict() for c in self.competitors],
            'totalCompetitors': self.total_competitors,
            'competitorsWithinOneMile': self.competitors_within_one_mile,
            'maxCompetitorsWithinOneMile': self.max_competitors_within_one_mile,
            'sameStoreCompetitor': self.same_store_competitor,
            'searchRadiusMiles': self.search_radius_miles,
            'meetsRequirement': self.meets_requirement
        }


def identify_competitor(name: str) -> Optional[str]:
    """Competitor operator for a kiosk name, or None"""
    for competitor_name, pattern in _COMPETITOR_PATTERNS:
        if pattern.search(name or ''):
            return competitor_name
    return None


def analyze_btm_proximity(
    kiosks: List,
    lat: float,
    lng: float,
    required_distance_miles: Optional[float] = None,
    max_competitors_within_one_mile: Optional[int] = None,
    ignored_competitors: Optional[Set[str]] = None,
) -> BtmProximity:
    """
    Evaluate nearby kiosks against the spacing and density rules

    Args:
        kiosks: NearbyKiosk results around the location
        lat, lng: The candidate location
        required_distance_miles: Minimum distance to the nearest same-brand
            kiosk; None means any same-brand kiosk found disqualifies
        max_competitors_within_one_mile: Competitor cap; None skips the check
        ignored_competitors: Lower-cased competitor names to leave out

    Returns:
        BtmProximity with counts, distances and failure reasons
    """
    settings = config.qualification
    brand_pattern = _compile(settings.brand_keywords)
    ignored = {name.lower() for name in (ignored_competitors or set())}

    brand_distances = []
    competitor_counts: Dict[str, int] = {}
    within_radius = 0
    same_store_competitor = None

    for kiosk in kiosks:
        distance = haversine_miles(lat, lng, kiosk.lat, kiosk.lng)

        if brand_pattern.search(kiosk.name or ''):
            brand_distances.append(distance)
            continue

        competitor = identify_competitor(kiosk.name)
        if competitor is None or competitor.lower() in ignored:
            continue

        competitor_counts[competitor] = competitor_counts.get(competitor, 0) + 1
        if distance <= settings.kiosk_density_radius_miles:
            within_radius += 1
        if distance <= settings.same_store_radius_miles and same_store_competitor is None:
            same_store_competitor = competitor

    nearest = min(brand_distances) if brand_distances else None
    competitors = [
        CompetitorCount(name=c['name'], count=competitor_counts[c['name']])
        for c in COMPETITORS if competitor_counts.get(c['name'])
    ]

    reasons = []
    if nearest is not None:
        if required_distance_miles is None:
            reasons.append(f"existing {settings.brand_name} ATM nearby")
        elif nearest < required_distance_miles:
            reasons.append(
                f"existing {settings.brand_name} ATM {nearest:.2f} miles away "
                f"(minimum {required_distance_miles:g} miles)"
            )
    if same_store_competitor:
        reasons.append(f"{same_store_competitor} ATM already in this store")
    if max_competitors_within_one_mile is not None and within_radius > max_competitors_within_one_mile:
        reasons.append(
            f"{within_radius} competitor ATMs within {settings.kiosk_density_radius_miles:g} mile "
            f"(maximum {max_competitors_within_one_mile})"
        )

    return BtmProximity(
        bitcoin_depot_count=len(brand_distances),
        nearest_bitcoin_depot_miles=nearest,
        required_distance_miles=required_distance_miles,
        competitors=competitors,
        total_competitors=sum(c.count for c in competitors),
        competitors_within_one_mile=within_radius,
        max_competitors_within_one_mile=max_competitors_within_one_mile,
        same_store_competitor=same_store_competitor,
        meets_requirement=not reasons,
        reasons=reasons
    )
