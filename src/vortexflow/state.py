"""
Core data structures for digital-root backtesting.

Raw prices and their enriched records are immutable once created. The only
mutable object is Position, which lives inside a single simulation run and
is turned into an immutable Trade when it closes.

Example Flow:
    1. PricePoint pairs arrive from the data loader
    2. Enrichment turns each PricePoint into a DailyRecord
    3. The engine walks DailyRecords, opening/closing a Position
    4. Each close appends a Trade; every record appends an EquityPoint
    5. BacktestResult bundles the ledger, curve and metrics
"""

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import StrategyConfig
    from .metrics import PerformanceMetrics


class Action(str, Enum):
    """Per-record trading signal."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class PositionState(str, Enum):
    """Simulation state."""
    FLAT = "FLAT"
    LONG = "LONG"


class CloseReason(str, Enum):
    """Why a position was closed."""
    SIGNAL = "signal"
    END_OF_PERIOD = "end_of_period"


class ExecutionType(str, Enum):
    """Fill event kind."""
    OPEN = "OPEN"
    CLOSE = "CLOSE"


def _plain(value: Any) -> Any:
    """Convert enums to their values for dict output."""
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class PricePoint:
    """
    One raw observation from the price history.

    Attributes:
        timestamp: Epoch milliseconds (strictly increasing across a series)
        price: Positive, finite price
    """
    timestamp: int
    price: float

    def __post_init__(self):
        """Validate price data."""
        if not isinstance(self.price, (int, float)) or isinstance(self.price, bool):
            raise ValueError(f"price must be numeric, got {self.price!r}")
        if not math.isfinite(self.price) or self.price <= 0:
            raise ValueError(f"price must be positive and finite, got {self.price}")


@dataclass(frozen=True)
class DailyRecord:
    """
    Enriched daily observation, created once during enrichment.

    Attributes:
        date: Calendar date (UTC, YYYY-MM-DD)
        timestamp: Epoch milliseconds
        price: Raw price
        digital_root: Root of the rounded price (1-9, 0 only for a zero price)
        in_doubling_sequence: Root is in {1, 2, 4, 8, 7, 5}
        is_pattern_number: Root is in {3, 6, 9}
        price_change: Absolute change from previous record (0 for the first)
        price_change_percent: Percent change from previous record (0 for the first)
        price_rounded: Integer the root was taken from
        sequence_position: Index in the doubling cycle, -1 if absent
    """
    date: str
    timestamp: int
    price: float
    digital_root: int
    in_doubling_sequence: bool
    is_pattern_number: bool
    price_change: float = 0.0
    price_change_percent: float = 0.0
    price_rounded: int = 0
    sequence_position: int = -1

    def __post_init__(self):
        """Validate the root range."""
        if self.digital_root < 0 or self.digital_root > 9:
            raise ValueError(f"digital_root must be 0-9, got {self.digital_root}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Position:
    """
    Open long position, owned exclusively by one simulation run.

    quantity is the number of units bought: capital_at_entry * size / entry_price.
    """
    entry_date: str
    entry_price: float
    entry_digital_root: int
    capital_at_entry: float
    size: float
    quantity: float

    def market_value(self, price: float) -> float:
        """Portfolio value if the position were marked at price."""
        return self.capital_at_entry + (price - self.entry_price) * self.quantity


@dataclass(frozen=True)
class Trade:
    """Completed entry -> exit round trip."""
    entry_date: str
    exit_date: str
    entry_price: float
    exit_price: float
    entry_digital_root: int
    exit_digital_root: int
    profit: float
    profit_percent: float
    holding_period_days: int
    capital_after: float
    exit_reason: CloseReason = CloseReason.SIGNAL
    costs: float = 0.0

    @property
    def is_winner(self) -> bool:
        return self.profit > 0

    @property
    def is_loser(self) -> bool:
        return self.profit < 0

    def to_dict(self) -> Dict[str, Any]:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class Execution:
    """A single OPEN or CLOSE fill; one round trip produces two."""
    type: ExecutionType
    action: Action
    date: str
    price: float
    digital_root: int
    reasoning: str
    capital: float
    profit: Optional[float] = None
    profit_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class SignalRecord:
    """The policy decision for one record."""
    date: str
    price: float
    digital_root: int
    action: Action
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class EquityPoint:
    """Portfolio snapshot after processing one record."""
    date: str
    price: float
    digital_root: int
    portfolio_value: float
    capital: float
    drawdown: float
    position_state: PositionState

    def to_dict(self) -> Dict[str, Any]:
        return {k: _plain(v) for k, v in asdict(self).items()}


@dataclass
class BacktestResult:
    """
    Output of one simulation run.

    Invariant: equity_curve has exactly one entry per input record, in order.
    """
    config: "StrategyConfig"
    metrics: "PerformanceMetrics"
    final_capital: float
    total_return_pct: float
    trades: List[Trade] = field(default_factory=list)
    executions: List[Execution] = field(default_factory=list)
    signals: List[SignalRecord] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict for presentation layers."""
        return {
            'config': self.config.to_dict(),
            'metrics': self.metrics.to_dict(),
            'final_capital': self.final_capital,
            'total_return_pct': self.total_return_pct,
            'trades': [t.to_dict() for t in self.trades],
            'executions': [e.to_dict() for e in self.executions],
            'signals': [s.to_dict() for s in self.signals],
            'equity_curve': [p.to_dict() for p in self.equity_curve],
        }
