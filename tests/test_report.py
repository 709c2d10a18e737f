"""
Tests for descriptive reporting on backtest results.
"""

import json

import pytest

from vortexflow.config import StrategyConfig
from vortexflow.engine import run_backtest
from vortexflow.report import (
    LIMITATIONS,
    analyze_signals,
    categorize_trades_by_root,
    format_summary,
    generate_report,
)

from conftest import make_records


@pytest.fixture
def result():
    records = make_records([(1000, 1), (1100, 2), (1200, 5), (1200, 1), (1100, 5), (1000, 3)])
    return run_backtest(records, StrategyConfig())


class TestAnalyzeSignals:

    def test_distribution(self, result):
        analysis = analyze_signals(result.signals)
        assert analysis['signal_distribution'] == {'BUY': 2, 'SELL': 2, 'HOLD': 2}
        assert analysis['signal_frequency']['buy_frequency'] == pytest.approx(100 / 3)

    def test_root_breakdown(self, result):
        breakdown = analyze_signals(result.signals)['digital_root_breakdown']
        assert list(breakdown) == [1, 2, 3, 5]
        assert breakdown[1]['BUY'] == 2
        assert breakdown[3]['HOLD'] == 1

    def test_empty(self):
        analysis = analyze_signals([])
        assert analysis['signal_frequency']['hold_frequency'] == 0


class TestCategorizeTrades:

    def test_groups_by_entry_and_exit_root(self, result):
        categories = categorize_trades_by_root(result.trades)
        assert list(categories) == ['1-5']
        cat = categories['1-5']
        assert cat['count'] == 2
        assert cat['wins'] == 1
        assert cat['losses'] == 1
        assert cat['win_rate'] == pytest.approx(50)
        # +20% then -1100/1200 ~ -8.33%
        assert cat['avg_profit_pct'] == pytest.approx((20 - 100 / 12) / 2)


class TestGenerateReport:

    def test_sections(self, result):
        report = generate_report(result)
        assert set(report) == {
            'strategy_config', 'performance', 'signal_analysis',
            'pattern_analysis', 'trade_breakdown', 'limitations',
        }
        assert report['limitations'] == LIMITATIONS
        assert report['performance']['total_trades'] == 2
        json.dumps(report)

    def test_format_summary(self, result):
        summary = format_summary(result)
        assert "Trades: 2" in summary
        assert f"Total Return: {result.total_return_pct:+.2f}%" in summary
