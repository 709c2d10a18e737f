"""
Performance metrics for a completed simulation run.

Computed once, after the full pass, from the trade ledger and the equity
curve. Every ratio is guarded so that a zero denominator yields 0 rather
than NaN or an exception.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Sequence

import numpy as np

from .state import CloseReason, EquityPoint, Trade
from .vortex_math import is_in_doubling_sequence, is_pattern_number

TRADING_DAYS_PER_YEAR = 252


@dataclass
class PatternReturns:
    """Return statistics restricted to one class of days (percent units)."""
    occurrences: int = 0
    percentage: float = 0.0
    average_return: float = 0.0
    volatility: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PerformanceMetrics:
    """Aggregate statistics of one backtest."""
    initial_capital: float
    final_capital: float
    total_return_pct: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_win_pct: float = 0.0
    avg_loss_pct: float = 0.0
    profit_factor: float = 0.0
    avg_holding_period: float = 0.0
    max_drawdown_pct: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    signal_closes: int = 0
    end_of_period_closes: int = 0
    doubling_sequence_returns: PatternReturns = field(default_factory=PatternReturns)
    pattern_number_returns: PatternReturns = field(default_factory=PatternReturns)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # JSON has no infinity
        if not math.isfinite(self.profit_factor):
            data['profit_factor'] = None
        return data


def daily_returns(values: Sequence[float]) -> List[float]:
    """r_i = (v_i - v_{i-1}) / v_{i-1} for i >= 1; a zero predecessor gives 0."""
    returns = []
    for prev, curr in zip(values, values[1:]):
        returns.append((curr - prev) / prev if prev else 0.0)
    return returns


def sharpe_ratio(returns: Sequence[float]) -> float:
    """Annualised mean / population std of daily returns, 0 if std is 0."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    std = float(arr.std())
    if std == 0:
        return 0.0
    return float(arr.mean()) / std * math.sqrt(TRADING_DAYS_PER_YEAR)


def sortino_ratio(returns: Sequence[float]) -> float:
    """
    Like sharpe_ratio() but divided by the std of negative returns only.

    0 if there are no negative returns or their std is 0.
    """
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    downside = arr[arr < 0]
    if downside.size == 0:
        return 0.0
    downside_std = float(downside.std())
    if downside_std == 0:
        return 0.0
    return float(arr.mean()) / downside_std * math.sqrt(TRADING_DAYS_PER_YEAR)


def max_drawdown(equity_curve: Sequence[EquityPoint]) -> float:
    """Largest drawdown percentage on the curve, 0 for an empty curve."""
    if not equity_curve:
        return 0.0
    return max(p.drawdown for p in equity_curve)


def pattern_returns(
    equity_curve: Sequence[EquityPoint],
    predicate: Callable[[int], bool]
) -> PatternReturns:
    """
    Returns between consecutive days whose digital root satisfies predicate.

    Days are filtered first, then returns are taken between neighbours in the
    filtered list. Average and volatility are reported in percent.
    """
    days = [p for p in equity_curve if predicate(p.digital_root)]
    total = len(equity_curve)
    result = PatternReturns(
        occurrences=len(days),
        percentage=len(days) / total * 100 if total else 0.0,
    )
    if len(days) < 2:
        return result

    arr = np.asarray(daily_returns([p.portfolio_value for p in days]), dtype=float)
    result.average_return = float(arr.mean()) * 100
    result.volatility = float(arr.std()) * 100
    return result


def compute_metrics(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    final_capital: float
) -> PerformanceMetrics:
    """
    Aggregate the ledger and curve of one run.

    A trade with zero profit counts toward total_trades but is neither a
    win nor a loss.
    """
    total_trades = len(trades)
    winners = [t for t in trades if t.is_winner]
    losers = [t for t in trades if t.is_loser]

    avg_win = sum(t.profit_percent for t in winners) / len(winners) if winners else 0.0
    avg_loss = sum(abs(t.profit_percent) for t in losers) / len(losers) if losers else 0.0
    if avg_loss > 0:
        profit_factor = avg_win / avg_loss
    elif avg_win > 0:
        profit_factor = math.inf
    else:
        profit_factor = 0.0

    returns = daily_returns([p.portfolio_value for p in equity_curve])

    return PerformanceMetrics(
        initial_capital=initial_capital,
        final_capital=final_capital,
        total_return_pct=(final_capital - initial_capital) / initial_capital * 100 if initial_capital else 0.0,
        total_trades=total_trades,
        winning_trades=len(winners),
        losing_trades=len(losers),
        win_rate=len(winners) / total_trades * 100 if total_trades else 0.0,
        avg_win_pct=avg_win,
        avg_loss_pct=avg_loss,
        profit_factor=profit_factor,
        avg_holding_period=(
            sum(t.holding_period_days for t in trades) / total_trades if total_trades else 0.0
        ),
        max_drawdown_pct=max_drawdown(equity_curve),
        sharpe_ratio=sharpe_ratio(returns),
        sortino_ratio=sortino_ratio(returns),
        signal_closes=sum(1 for t in trades if t.exit_reason == CloseReason.SIGNAL),
        end_of_period_closes=sum(1 for t in trades if t.exit_reason == CloseReason.END_OF_PERIOD),
        doubling_sequence_returns=pattern_returns(equity_curve, is_in_doubling_sequence),
        pattern_number_returns=pattern_returns(equity_curve, is_pattern_number),
    )
