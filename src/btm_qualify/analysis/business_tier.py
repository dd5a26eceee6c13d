"""
Business tier classification from Google place types and business name
"""

import logging
from typing import List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TIER_1 = 'tier1'
TIER_2 = 'tier2'
UNQUALIFIED = 'unqualified'

# Incentive paid to the host business, in dollars
TIER_AMOUNTS = {
    TIER_1: 300,
    TIER_2: 200,
}

# Checked in order; the first match wins
TIER_1_TYPES = [
    'supermarket',
    'grocery_or_supermarket',
    'grocery',
    'convenience_store',
]

TIER_2_TYPES = [
    'liquor_store',
    'store',
    'pharmacy',
    'drugstore',
    'casino',
    'hotel',
    'lodging',
    'jewelry_store',
    'shopping_mall',
    'restaurant',
    'cafe',
    'meal_takeaway',
    'meal_delivery',
    'laundry',
    'car_repair',
    'hardware_store',
    'sporting_goods_store',
    'clothing_store',
    'shoe_store',
    'electronics_store',
    'home_goods_store',
]

# Matched against the business name; these beat the tier-2 types
TIER_2_KEYWORDS = [
    'smoke',
    'wireless',
    'cell phone',
    'check cashing',
    'money transfer',
    'pawn',
    'dollar',
    'discount',
    'gun',
    'fast food',
    'deli',
    'auto',
    'bowling',
    'thrift',
    'shipping',
    'sneaker',
    'bingo',
]

@dataclass
class TierClassification:
    """Result of business tier classification"""
    tier: str
    tier_amount: Optional[int]
    category: str
    matched_on: Optional[str] = None  # 'type', 'keyword' or None

    @property
    def qualified(self) -> bool:
        return self.tier != UNQUALIFIED


def format_category(value: str) -> str:
    """'convenience_store' -> 'Convenience Store'"""
    return ' '.join(word[:1].upper() + word[1:] for word in value.replace('_', ' ').split(' ') if word)


def classify_business_type(name: str, types: List[str]) -> TierClassification:
    """
    Assign a business to tier 1, tier 2 or unqualified

    Args:
        name: Business name from place details
        types: Google place types

    Returns:
        TierClassification with the tier, incentive amount and display category
    """
    name_lower = (name or '').lower()
    types_lower = [t.lower() for t in types or []]

    for tier1_type in TIER_1_TYPES:
        if tier1_type in types_lower:
            return TierClassification(TIER_1, TIER_AMOUNTS[TIER_1], format_category(tier1_type), 'type')

    for keyword in TIER_2_KEYWORDS:
        if keyword in name_lower:
            logger.debug(f"'{name}' matched tier 2 keyword '{keyword}'")
            return TierClassification(TIER_2, TIER_AMOUNTS[TIER_2], format_category(keyword), 'keyword')

    for tier2_type in TIER_2_TYPES:
        if tier2_type in types_lower:
            return TierClassification(TIER_2, TIER_AMOUNTS[TIER_2], format_category(tier2_type), 'type')

    category = format_category(types[0]) if types else 'Unknown'
    return TierClassification(UNQUALIFIED, None, category)
