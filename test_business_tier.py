#!/usr/bin/env python3
"""
Tests for business tier classification
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

import pytest

from btm_qualify.analysis.business_tier import (
    classify_business_type, format_category, TIER_1, TIER_2, UNQUALIFIED
)


@pytest.mark.parametrize('name, types, tier, amount, category', [
    ('Corner Mart', ['convenience_store', 'store'], TIER_1, 300, 'Convenience Store'),
    ('Fresh Foods', ['grocery_or_supermarket'], TIER_1, 300, 'Grocery Or Supermarket'),
    ("Joe's Smoke Shop", ['store'], TIER_2, 200, 'Smoke'),
    ('City Pawn & Loan', ['point_of_interest'], TIER_2, 200, 'Pawn'),
    ('Main Street Pharmacy', ['pharmacy', 'health'], TIER_2, 200, 'Pharmacy'),
    ('Sunset Motel', ['lodging'], TIER_2, 200, 'Lodging'),
    ('First Bank', ['bank', 'finance'], UNQUALIFIED, None, 'Bank'),
])
def test_classify_business_type(name, types, tier, amount, category):
    result = classify_business_type(name, types)

    assert result.tier == tier
    assert result.tier_amount == amount
    assert result.category == category


def test_tier_one_type_beats_tier_two_keyword():
    result = classify_business_type('Dollar Grocery', ['supermarket'])

    assert result.tier == TIER_1
    assert result.matched_on == 'type'


def test_keyword_beats_tier_two_type():
    result = classify_business_type('Wireless World', ['electronics_store'])

    assert result.tier == TIER_2
    assert result.matched_on == 'keyword'
    assert result.category == 'Wireless'


def test_types_are_case_insensitive():
    assert classify_business_type('Quick Stop', ['Convenience_Store']).tier == TIER_1


def test_no_types_is_unknown():
    result = classify_business_type('Unknown Business', [])

    assert result.tier == UNQUALIFIED
    assert result.category == 'Unknown'
    assert not result.qualified


def test_format_category():
    assert format_category('convenience_store') == 'Convenience Store'
    assert format_category('cell phone') == 'Cell Phone'
