"""
Descriptive reporting on a finished backtest.

Nothing here feeds back into trading decisions; these are summaries for
presentation layers and the CLI.
"""

from typing import Any, Dict, List

from .state import Action, BacktestResult, SignalRecord, Trade

LIMITATIONS = [
    "Digital roots are deterministic number theory operations, not predictive market indicators",
    "Rounding prices to integers before taking the root discards information",
    "No market fundamentals, technical indicators or economic factors are considered",
    "Patterns found in historical data may be coincidental (data mining bias)",
    "Results are not compared against a random-entry or buy-and-hold baseline",
]


def analyze_signals(signals: List[SignalRecord]) -> Dict[str, Any]:
    """Counts and frequencies of BUY / SELL / HOLD, overall and per root."""
    counts = {a.value: 0 for a in Action}
    by_root: Dict[int, Dict[str, int]] = {}

    for s in signals:
        counts[s.action.value] += 1
        root_counts = by_root.setdefault(s.digital_root, {a.value: 0 for a in Action})
        root_counts[s.action.value] += 1

    total = len(signals)
    return {
        'signal_distribution': counts,
        'digital_root_breakdown': dict(sorted(by_root.items())),
        'signal_frequency': {
            f"{a.value.lower()}_frequency": (counts[a.value] / total * 100 if total else 0.0)
            for a in Action
        },
    }


def categorize_trades_by_root(trades: List[Trade]) -> Dict[str, Dict[str, Any]]:
    """Group trades by 'entry_root-exit_root' with win/loss stats."""
    categories: Dict[str, Dict[str, Any]] = {}

    for trade in trades:
        key = f"{trade.entry_digital_root}-{trade.exit_digital_root}"
        cat = categories.setdefault(key, {
            'count': 0,
            'total_profit_pct': 0.0,
            'wins': 0,
            'losses': 0,
        })
        cat['count'] += 1
        cat['total_profit_pct'] += trade.profit_percent
        if trade.is_winner:
            cat['wins'] += 1
        elif trade.is_loser:
            cat['losses'] += 1

    for cat in categories.values():
        cat['avg_profit_pct'] = cat['total_profit_pct'] / cat['count']
        cat['win_rate'] = cat['wins'] / cat['count'] * 100

    return categories


def generate_report(result: BacktestResult) -> Dict[str, Any]:
    """Full plain-dict report: config, metrics, signal and pattern analysis."""
    metrics = result.metrics
    return {
        'strategy_config': result.config.to_dict(),
        'performance': metrics.to_dict(),
        'signal_analysis': analyze_signals(result.signals),
        'pattern_analysis': {
            'doubling_sequence': metrics.doubling_sequence_returns.to_dict(),
            'pattern_numbers': metrics.pattern_number_returns.to_dict(),
        },
        'trade_breakdown': categorize_trades_by_root(result.trades),
        'limitations': list(LIMITATIONS),
    }


def format_summary(result: BacktestResult) -> str:
    """Return a formatted summary of results."""
    m = result.metrics
    c = result.config
    lines = [
        f"Config: buy={c.buy_signal} sell={c.sell_signal} hold={c.hold_signal} "
        f"sequence_filter={c.use_sequence_filter} pattern_filter={c.use_pattern_filter} "
        f"size={c.position_size}",
        "",
        f"Trades: {m.total_trades}",
        f"  Wins/Losses: {m.winning_trades}/{m.losing_trades}",
        f"  End-of-period closes: {m.end_of_period_closes}",
        "",
        "Performance:",
        f"  Initial Capital: {m.initial_capital:,.2f}",
        f"  Final Capital: {result.final_capital:,.2f}",
        f"  Total Return: {result.total_return_pct:+.2f}%",
        f"  Win Rate: {m.win_rate:.1f}%",
        f"  Max Drawdown: {m.max_drawdown_pct:.2f}%",
        f"  Sharpe Ratio: {m.sharpe_ratio:.2f}",
        f"  Sortino Ratio: {m.sortino_ratio:.2f}",
        f"  Avg Holding Period: {m.avg_holding_period:.1f} days",
    ]
    return "\n".join(lines)
