"""
Series Enrichment.

Turns a raw ordered list of [timestamp_ms, price] pairs into DailyRecords
(price, digital root, pattern flags, day-over-day change) plus a statistics
summary of the whole series.

Key Principle:
    The pass over the prices is strictly forward. The only carried state is
    the previous record (for the delta and the timestamp-order check), so a
    record never depends on anything after it.

Usage:
    from vortexflow.enrichment import enrich_series, load_price_history

    series = load_price_history('data/btc-historical-data.json')
    print(series.statistics.root_frequencies)
    print(len(series.records))
"""

import json
import logging
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .errors import InvalidInputFormat, NonMonotonicTimestamp
from .state import DailyRecord, PricePoint
from .vortex_math import (
    digital_root,
    is_in_doubling_sequence,
    is_pattern_number,
    price_to_int,
    root_statistics,
    sequence_position,
)

logger = logging.getLogger(__name__)

MS_PER_DAY = 1000 * 60 * 60 * 24

CSV_COLUMNS = [
    'Date', 'Price', 'Digital_Root', 'Sequence_Position',
    'Is_Doubling_Sequence', 'Is_Pattern_Number', 'Price_Change', 'Price_Change_Percent',
]


@dataclass
class SeriesStatistics:
    """Summary of an enriched series. Root frequencies always sum to total_records."""
    total_records: int = 0
    root_frequencies: Dict[int, int] = field(default_factory=lambda: {r: 0 for r in range(1, 10)})
    root_percentages: Dict[int, float] = field(default_factory=lambda: {r: 0.0 for r in range(1, 10)})
    root_entropy: float = 0.0
    doubling_count: int = 0
    doubling_percentage: float = 0.0
    pattern_count: int = 0
    pattern_percentage: float = 0.0
    price_min: float = 0.0
    price_max: float = 0.0
    price_mean: float = 0.0
    price_std: float = 0.0
    price_volatility: float = 0.0  # coefficient of variation, %
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EnrichedSeries:
    """Metadata, ordered DailyRecords and their statistics."""
    metadata: Dict[str, Any]
    records: List[DailyRecord]
    statistics: SeriesStatistics

    def __len__(self) -> int:
        return len(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metadata': dict(self.metadata),
            'records': [r.to_dict() for r in self.records],
            'statistics': self.statistics.to_dict(),
        }


@dataclass
class DataQualityReport:
    """Result of validate_series(): errors make the series unusable, warnings don't."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total_records: int = 0

    @property
    def quality(self) -> str:
        return "Good" if not self.warnings else "Issues detected"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['quality'] = self.quality
        return data


# =============================================================================
# Parsing
# =============================================================================

def timestamp_to_date(timestamp: int) -> str:
    """Epoch milliseconds -> UTC calendar date (YYYY-MM-DD)."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).date().isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_pair(index: int, pair: Any) -> PricePoint:
    if not isinstance(pair, (list, tuple)) or len(pair) < 2:
        raise InvalidInputFormat(
            f"Price entry {index} must be a [timestamp, price] pair, got {pair!r}",
            details={'index': index},
        )
    timestamp, price = pair[0], pair[1]
    if not _is_number(timestamp) or not math.isfinite(timestamp):
        raise InvalidInputFormat(
            f"Invalid timestamp at index {index}: {timestamp!r}",
            details={'index': index, 'timestamp': timestamp},
        )
    try:
        timestamp_to_date(int(timestamp))
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidInputFormat(
            f"Timestamp at index {index} is out of range: {timestamp!r}",
            details={'index': index, 'timestamp': timestamp},
        ) from e
    if not _is_number(price) or not math.isfinite(price) or price <= 0:
        raise InvalidInputFormat(
            f"Invalid price at index {index}: {price!r}",
            details={'index': index, 'price': price},
        )
    return PricePoint(timestamp=int(timestamp), price=float(price))


def parse_price_points(payload: Any) -> List[PricePoint]:
    """
    Validate a raw payload and return its PricePoints.

    Accepts either a mapping with a 'prices' list or a bare list of pairs.

    Raises:
        InvalidInputFormat: prices missing, not a list, or a bad entry
        NonMonotonicTimestamp: a timestamp <= its predecessor
    """
    prices = payload.get('prices') if isinstance(payload, dict) else payload
    if prices is None or not isinstance(prices, (list, tuple)):
        raise InvalidInputFormat("Invalid data format: prices array not found")

    points: List[PricePoint] = []
    for index, pair in enumerate(prices):
        point = _parse_pair(index, pair)
        if points and point.timestamp <= points[-1].timestamp:
            raise NonMonotonicTimestamp(index, points[-1].timestamp, point.timestamp)
        points.append(point)
    return points


# =============================================================================
# Enrichment
# =============================================================================

def enrich_points(points: Sequence[PricePoint]) -> List[DailyRecord]:
    """Single forward pass from PricePoints to DailyRecords."""
    records: List[DailyRecord] = []
    previous: Optional[PricePoint] = None

    for index, point in enumerate(points):
        if previous is not None and point.timestamp <= previous.timestamp:
            raise NonMonotonicTimestamp(index, previous.timestamp, point.timestamp)

        # Positive prices below 0.5 would round to 0; they take the root of 1
        rounded = max(1, price_to_int(point.price))
        root = digital_root(rounded)

        if previous is None:
            change = 0.0
            change_pct = 0.0
        else:
            change = point.price - previous.price
            change_pct = change / previous.price * 100

        records.append(DailyRecord(
            date=timestamp_to_date(point.timestamp),
            timestamp=point.timestamp,
            price=point.price,
            digital_root=root,
            in_doubling_sequence=is_in_doubling_sequence(root),
            is_pattern_number=is_pattern_number(root),
            price_change=change,
            price_change_percent=change_pct,
            price_rounded=rounded,
            sequence_position=sequence_position(root),
        ))
        previous = point

    return records


def calculate_statistics(records: Sequence[DailyRecord]) -> SeriesStatistics:
    """Frequency table, pattern counts and price moments of a record list."""
    total = len(records)
    if total == 0:
        return SeriesStatistics()

    roots = root_statistics([r.digital_root for r in records])
    frequencies = roots['frequency']

    doubling = sum(1 for r in records if r.in_doubling_sequence)
    pattern = sum(1 for r in records if r.is_pattern_number)

    prices = np.array([r.price for r in records], dtype=float)
    mean = float(prices.mean())
    std = float(prices.std())  # population

    return SeriesStatistics(
        total_records=total,
        root_frequencies=frequencies,
        root_percentages=roots['distribution'],
        root_entropy=roots['entropy'],
        doubling_count=doubling,
        doubling_percentage=doubling / total * 100,
        pattern_count=pattern,
        pattern_percentage=pattern / total * 100,
        price_min=float(prices.min()),
        price_max=float(prices.max()),
        price_mean=mean,
        price_std=std,
        price_volatility=std / mean * 100 if mean else 0.0,
        start_date=records[0].date,
        end_date=records[-1].date,
    )


def enrich_series(payload: Any) -> EnrichedSeries:
    """
    Validate and enrich a raw price payload.

    Args:
        payload: {'prices': [[ts_ms, price], ...], 'metadata': {...}}
                 or a bare list of [ts_ms, price] pairs

    Returns:
        EnrichedSeries with one DailyRecord per input pair, in order

    Raises:
        InvalidInputFormat, NonMonotonicTimestamp
    """
    points = parse_price_points(payload)
    records = enrich_points(points)

    metadata: Dict[str, Any] = {}
    if isinstance(payload, dict) and isinstance(payload.get('metadata'), dict):
        metadata.update(payload['metadata'])
    metadata['total_records'] = len(records)

    logger.info(f"Enriched {len(records):,} price records")

    return EnrichedSeries(
        metadata=metadata,
        records=records,
        statistics=calculate_statistics(records),
    )


def load_price_history(path: Union[str, Path]) -> EnrichedSeries:
    """
    Load a JSON price file and enrich it.

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidInputFormat: If the file is not valid JSON or has no prices
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Price file not found: {path}")

    logger.info(f"Loading price history from {path}")
    try:
        with open(path, 'r') as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInputFormat(f"Failed to parse {path}: {e}") from e

    return enrich_series(payload)


# =============================================================================
# Data Quality
# =============================================================================

def validate_series(
    series: EnrichedSeries,
    max_gap_days: float = 1.5,
    max_daily_move_pct: float = 50.0,
    distribution_tolerance: float = 0.5,
) -> DataQualityReport:
    """
    Check an enriched series for gaps, outsized moves and skewed roots.

    Gaps and moves are warnings. An empty series is an error.
    """
    records = series.records
    if not records:
        return DataQualityReport(valid=False, errors=["No daily data found"])

    warnings: List[str] = []

    for prev, curr in zip(records, records[1:]):
        gap = (curr.timestamp - prev.timestamp) / MS_PER_DAY
        if gap > max_gap_days:
            warnings.append(f"Data gap detected: {gap:.1f} days between {prev.date} and {curr.date}")

    large_moves = [r for r in records if abs(r.price_change_percent) > max_daily_move_pct]
    if large_moves:
        warnings.append(f"{len(large_moves)} days with price changes > {max_daily_move_pct:g}%")

    expected = len(records) / 9
    skewed = [
        root for root, count in series.statistics.root_frequencies.items()
        if abs(count - expected) > expected * distribution_tolerance
    ]
    if skewed:
        warnings.append(
            "Uneven digital root distribution detected for roots: "
            + ", ".join(str(r) for r in skewed)
        )

    return DataQualityReport(valid=True, warnings=warnings, total_records=len(records))


# =============================================================================
# Export
# =============================================================================

def records_to_frame(records: Sequence[DailyRecord]) -> pd.DataFrame:
    """DailyRecords as a DataFrame, one row per record."""
    return pd.DataFrame([r.to_dict() for r in records])


def export_to_csv(series: EnrichedSeries, path: Optional[Union[str, Path]] = None) -> Optional[str]:
    """
    Write the enriched records as CSV.

    Returns the CSV text when path is None, otherwise writes the file.
    """
    df = pd.DataFrame({
        'Date': [r.date for r in series.records],
        'Price': [round(r.price, 2) for r in series.records],
        'Digital_Root': [r.digital_root for r in series.records],
        'Sequence_Position': [r.sequence_position for r in series.records],
        'Is_Doubling_Sequence': ['Yes' if r.in_doubling_sequence else 'No' for r in series.records],
        'Is_Pattern_Number': ['Yes' if r.is_pattern_number else 'No' for r in series.records],
        'Price_Change': [round(r.price_change, 2) for r in series.records],
        'Price_Change_Percent': [round(r.price_change_percent, 2) for r in series.records],
    }, columns=CSV_COLUMNS)

    if path is None:
        return df.to_csv(index=False)
    df.to_csv(path, index=False)
    logger.info(f"Exported {len(df):,} records to {path}")
    return None
