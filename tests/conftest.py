"""
Pytest configuration and shared fixtures for vortexflow tests.
"""

from datetime import date, timedelta
from typing import List, Sequence, Tuple

import pytest

from vortexflow.state import DailyRecord
from vortexflow.vortex_math import (
    is_in_doubling_sequence,
    is_pattern_number,
    sequence_position,
)

# 2020-01-01T00:00:00Z
BASE_TIMESTAMP = 1577836800000
MS_PER_DAY = 86_400_000


def make_records(rows: Sequence[Tuple[float, int]], start: date = date(2020, 1, 1)) -> List[DailyRecord]:
    """
    Build DailyRecords from (price, digital_root) pairs, one day apart.

    The root is taken as given so scenarios can pin it independently of
    the price.
    """
    records = []
    previous_price = None
    for i, (price, root) in enumerate(rows):
        change = 0.0 if previous_price is None else price - previous_price
        change_pct = 0.0 if previous_price is None else change / previous_price * 100
        records.append(DailyRecord(
            date=(start + timedelta(days=i)).isoformat(),
            timestamp=BASE_TIMESTAMP + i * MS_PER_DAY,
            price=price,
            digital_root=root,
            in_doubling_sequence=is_in_doubling_sequence(root),
            is_pattern_number=is_pattern_number(root),
            price_change=change,
            price_change_percent=change_pct,
            price_rounded=int(price),
            sequence_position=sequence_position(root),
        ))
        previous_price = price
    return records


@pytest.fixture
def simple_records():
    """Buy on day 1, hold on day 2, sell on day 3."""
    return make_records([(1000, 1), (1100, 2), (1200, 5)])


@pytest.fixture
def price_payload():
    """Raw payload in the loader's [timestamp, price] format."""
    return {
        'metadata': {'coin': 'bitcoin', 'currency': 'usd'},
        'prices': [
            [BASE_TIMESTAMP, 1000.0],
            [BASE_TIMESTAMP + MS_PER_DAY, 1100.0],
            [BASE_TIMESTAMP + 2 * MS_PER_DAY, 1202.0],
        ],
    }


# Prices whose digital roots are 1, 2, ..., 9 in order
ROOT_CYCLE_PRICES = (1000, 1046, 1020, 1084, 1040, 978, 1033, 1061, 990)


@pytest.fixture
def long_payload():
    """
    Sixty days cycling through every root.

    Each cycle is shifted by a multiple of 27 so prices wander up and down
    while every day's root stays the same as its position in the cycle.
    """
    prices = []
    for i in range(60):
        cycle, pos = divmod(i, len(ROOT_CYCLE_PRICES))
        offset = 27 * ((cycle * 5) % 7 - 3)
        prices.append([BASE_TIMESTAMP + i * MS_PER_DAY, ROOT_CYCLE_PRICES[pos] + offset + 0.25])
    return {'prices': prices}
