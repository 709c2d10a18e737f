"""
Tests for parsing, enrichment, statistics and export of price series.
"""

import json
import math

import pytest

from vortexflow.enrichment import (
    CSV_COLUMNS,
    enrich_series,
    export_to_csv,
    load_price_history,
    parse_price_points,
    records_to_frame,
    timestamp_to_date,
    validate_series,
)
from vortexflow.errors import InvalidInputFormat, NonMonotonicTimestamp, VortexFlowError

from conftest import BASE_TIMESTAMP, MS_PER_DAY


class TestParsing:
    """Payload validation."""

    def test_accepts_mapping_and_bare_list(self, price_payload):
        from_mapping = parse_price_points(price_payload)
        from_list = parse_price_points(price_payload['prices'])
        assert from_mapping == from_list
        assert len(from_mapping) == 3

    @pytest.mark.parametrize("payload", [
        {},
        {'prices': None},
        {'prices': 'not a list'},
        {'prices': {'a': 1}},
        None,
        42,
    ])
    def test_missing_or_malformed_prices(self, payload):
        with pytest.raises(InvalidInputFormat):
            parse_price_points(payload)

    @pytest.mark.parametrize("price", [0, -5.0, float('nan'), float('inf'), True, 'abc', None])
    def test_rejects_unusable_price(self, price):
        payload = {'prices': [[BASE_TIMESTAMP, 100.0], [BASE_TIMESTAMP + MS_PER_DAY, price]]}
        with pytest.raises(InvalidInputFormat) as exc_info:
            parse_price_points(payload)
        assert exc_info.value.details['index'] == 1

    @pytest.mark.parametrize("entry", [
        [BASE_TIMESTAMP],
        'x',
        5,
        ['ts', 100.0],
        [10**17, 100.0],
        [-10**17, 100.0],
        [1e300, 100.0],
    ])
    def test_rejects_malformed_entry(self, entry):
        with pytest.raises(InvalidInputFormat):
            parse_price_points({'prices': [entry]})

    def test_out_of_range_timestamp_details(self):
        with pytest.raises(InvalidInputFormat) as exc_info:
            enrich_series({'prices': [[BASE_TIMESTAMP, 100.0], [10**17, 100.0]]})
        assert exc_info.value.details == {'index': 1, 'timestamp': 10**17}

    def test_duplicate_timestamp(self):
        payload = {'prices': [[BASE_TIMESTAMP, 100.0], [BASE_TIMESTAMP, 101.0]]}
        with pytest.raises(NonMonotonicTimestamp) as exc_info:
            parse_price_points(payload)
        assert exc_info.value.index == 1
        assert exc_info.value.details == {
            'index': 1, 'previous': BASE_TIMESTAMP, 'current': BASE_TIMESTAMP,
        }

    def test_out_of_order_timestamp(self):
        payload = {'prices': [
            [BASE_TIMESTAMP, 100.0],
            [BASE_TIMESTAMP + 2 * MS_PER_DAY, 101.0],
            [BASE_TIMESTAMP + MS_PER_DAY, 102.0],
        ]}
        with pytest.raises(NonMonotonicTimestamp) as exc_info:
            parse_price_points(payload)
        assert exc_info.value.index == 2

    def test_errors_share_base_class(self):
        with pytest.raises(VortexFlowError):
            parse_price_points({})


class TestEnrichment:
    """Record-level enrichment."""

    def test_one_record_per_pair(self, price_payload):
        series = enrich_series(price_payload)
        assert len(series) == 3
        assert [r.price for r in series.records] == [1000.0, 1100.0, 1202.0]

    def test_roots_and_flags(self, price_payload):
        records = enrich_series(price_payload).records
        assert [r.digital_root for r in records] == [1, 2, 5]
        assert all(r.in_doubling_sequence for r in records)
        assert not any(r.is_pattern_number for r in records)
        assert [r.sequence_position for r in records] == [0, 1, 5]

    def test_first_record_has_zero_change(self, price_payload):
        records = enrich_series(price_payload).records
        assert records[0].price_change == 0
        assert records[0].price_change_percent == 0
        assert records[1].price_change == pytest.approx(100.0)
        assert records[1].price_change_percent == pytest.approx(10.0)

    def test_root_taken_from_rounded_price(self):
        series = enrich_series({'prices': [[BASE_TIMESTAMP, 1000.5], [BASE_TIMESTAMP + MS_PER_DAY, 1000.4]]})
        assert series.records[0].price_rounded == 1001
        assert series.records[0].digital_root == 2
        assert series.records[1].price_rounded == 1000
        assert series.records[1].digital_root == 1

    def test_dates_are_utc(self):
        assert timestamp_to_date(BASE_TIMESTAMP) == '2020-01-01'
        # 23:59:59.999 on 2020-01-01 UTC
        assert timestamp_to_date(BASE_TIMESTAMP + MS_PER_DAY - 1) == '2020-01-01'

    def test_metadata_preserved(self, price_payload):
        series = enrich_series(price_payload)
        assert series.metadata['coin'] == 'bitcoin'
        assert series.metadata['total_records'] == 3
        # The caller's payload is not mutated
        assert 'total_records' not in price_payload['metadata']

    def test_empty_series(self):
        series = enrich_series({'prices': []})
        assert len(series) == 0
        assert series.statistics.total_records == 0
        assert series.statistics.start_date is None


class TestStatistics:

    def test_frequencies_sum_to_record_count(self, long_payload):
        series = enrich_series(long_payload)
        stats = series.statistics
        assert sum(stats.root_frequencies.values()) == stats.total_records == 60
        assert stats.doubling_count + stats.pattern_count == 60
        assert sum(stats.root_percentages.values()) == pytest.approx(100.0)

    def test_price_moments(self, price_payload):
        stats = enrich_series(price_payload).statistics
        prices = [1000.0, 1100.0, 1202.0]
        mean = sum(prices) / 3
        std = math.sqrt(sum((p - mean) ** 2 for p in prices) / 3)
        assert stats.price_min == 1000.0
        assert stats.price_max == 1202.0
        assert stats.price_mean == pytest.approx(mean)
        assert stats.price_std == pytest.approx(std)
        assert stats.price_volatility == pytest.approx(std / mean * 100)
        assert stats.start_date == '2020-01-01'
        assert stats.end_date == '2020-01-03'

    def test_sub_half_prices_stay_in_frequency_table(self):
        series = enrich_series([
            [BASE_TIMESTAMP, 0.07],
            [BASE_TIMESTAMP + MS_PER_DAY, 0.3],
            [BASE_TIMESTAMP + 2 * MS_PER_DAY, 12.0],
        ])
        assert [r.digital_root for r in series.records] == [1, 1, 3]
        assert [r.price_rounded for r in series.records] == [1, 1, 12]
        freq = series.statistics.root_frequencies
        assert sum(freq.values()) == len(series.records)
        assert freq[1] == 2


class TestValidateSeries:

    def test_empty_is_invalid(self):
        report = validate_series(enrich_series([]))
        assert report.valid is False
        assert report.errors == ["No daily data found"]

    def test_gap_warning(self):
        series = enrich_series([[BASE_TIMESTAMP, 100.0], [BASE_TIMESTAMP + 3 * MS_PER_DAY, 101.0]])
        report = validate_series(series)
        assert report.valid is True
        assert any("Data gap" in w for w in report.warnings)
        assert report.quality == "Issues detected"

    def test_large_move_warning(self):
        series = enrich_series([[BASE_TIMESTAMP, 100.0], [BASE_TIMESTAMP + MS_PER_DAY, 200.0]])
        report = validate_series(series)
        assert any("price changes > 50%" in w for w in report.warnings)


class TestLoadAndExport:

    def test_load_price_history(self, tmp_path, price_payload):
        path = tmp_path / 'prices.json'
        path.write_text(json.dumps(price_payload))
        series = load_price_history(path)
        assert len(series) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_price_history(tmp_path / 'missing.json')

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{not json')
        with pytest.raises(InvalidInputFormat):
            load_price_history(path)

    def test_export_csv_text(self, price_payload):
        text = export_to_csv(enrich_series(price_payload))
        lines = text.strip().splitlines()
        assert lines[0] == ','.join(CSV_COLUMNS)
        assert len(lines) == 4
        assert lines[1].startswith('2020-01-01,1000.0,1,0,Yes,No')

    def test_export_csv_file(self, tmp_path, price_payload):
        path = tmp_path / 'out.csv'
        assert export_to_csv(enrich_series(price_payload), path) is None
        assert path.read_text().startswith('Date,Price')

    def test_records_to_frame(self, price_payload):
        df = records_to_frame(enrich_series(price_payload).records)
        assert len(df) == 3
        assert list(df['digital_root']) == [1, 2, 5]
