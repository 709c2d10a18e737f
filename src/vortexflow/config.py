"""
Strategy Configuration and Runtime Settings.

Key Responsibilities:
    1. StrategyConfig: the complete set of tunable simulation parameters
    2. Parse and validate YAML strategy files
    3. Settings: environment-driven runtime options (logging, reports, workers)

Example YAML Config:
    strategy:
      buy_signal: 1
      sell_signal: 5
      hold_signal: 9
      use_sequence_filter: true
      use_pattern_filter: true
      position_size: 1.0
      initial_capital: 10000
      fee_percent: 0.0
      slippage_bps: 0
"""

import logging
import math
import os
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from dotenv import load_dotenv

from .errors import InvalidConfiguration

# Load environment variables from .env file
load_dotenv()


# Legacy camelCase names accepted by from_dict
_ALIASES = {
    'buySignal': 'buy_signal',
    'sellSignal': 'sell_signal',
    'holdSignal': 'hold_signal',
    'useSequenceFilter': 'use_sequence_filter',
    'useTeslaFilter': 'use_pattern_filter',
    'usePatternFilter': 'use_pattern_filter',
    'maxPositionSize': 'position_size',
    'positionSize': 'position_size',
    'initialCapital': 'initial_capital',
    'feePercent': 'fee_percent',
    'slippageBps': 'slippage_bps',
}


@dataclass(frozen=True)
class StrategyConfig:
    """
    Immutable input to a simulation run.

    Attributes:
        buy_signal: Digital root that triggers BUY (1-9)
        sell_signal: Digital root that triggers SELL (1-9)
        hold_signal: Digital root that triggers an explicit HOLD (1-9)
        use_sequence_filter: Only act on roots in the doubling sequence
        use_pattern_filter: Let 3/6/9 override the targets (3=BUY, 6=SELL, 9=HOLD)
        position_size: Fraction of capital allocated per position (0 < size <= 1)
        initial_capital: Starting cash (> 0)
        fee_percent: Fee charged on each leg's notional, in percent
        slippage_bps: Slippage charged on each leg's notional, in basis points
    """
    buy_signal: int = 1
    sell_signal: int = 5
    hold_signal: int = 9
    use_sequence_filter: bool = True
    use_pattern_filter: bool = True
    position_size: float = 1.0
    initial_capital: float = 10000.0
    fee_percent: float = 0.0
    slippage_bps: float = 0.0

    def __post_init__(self):
        """Validate ranges."""
        for name in ('buy_signal', 'sell_signal', 'hold_signal'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 9:
                raise InvalidConfiguration(
                    f"{name} must be an integer 1-9, got {value!r}",
                    details={'field': name, 'value': value},
                )
        if not _is_number(self.position_size) or not 0 < self.position_size <= 1:
            raise InvalidConfiguration(
                f"position_size must be in (0, 1], got {self.position_size!r}",
                details={'field': 'position_size', 'value': self.position_size},
            )
        if not _is_number(self.initial_capital) or self.initial_capital <= 0:
            raise InvalidConfiguration(
                f"initial_capital must be positive, got {self.initial_capital!r}",
                details={'field': 'initial_capital', 'value': self.initial_capital},
            )
        for name in ('fee_percent', 'slippage_bps'):
            value = getattr(self, name)
            if not _is_number(value) or value < 0:
                raise InvalidConfiguration(
                    f"{name} must be non-negative, got {value!r}",
                    details={'field': name, 'value': value},
                )

    @property
    def cost_rate(self) -> float:
        """Combined fee + slippage charged per unit of notional per leg."""
        return self.fee_percent / 100 + self.slippage_bps / 10000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyConfig":
        """Create StrategyConfig from a dictionary (snake_case or camelCase keys)."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfiguration(
                    f"Unknown strategy field '{key}'", details={'field': key}
                )
            kwargs[name] = value
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> "StrategyConfig":
        """Copy with some fields replaced (validated again)."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def load_config(config_path: Union[str, Path]) -> StrategyConfig:
    """
    Load a strategy configuration from a YAML file.

    The parameters may sit under a top-level 'strategy' key or at the root.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        InvalidConfiguration: If the config is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Config root must be a mapping: {path}")

    strategy_data = data.get('strategy', data)
    if not isinstance(strategy_data, dict):
        raise InvalidConfiguration(f"'strategy' must be a mapping: {path}")

    return StrategyConfig.from_dict(strategy_data)


class Settings:
    """Runtime settings read from the environment."""

    def __init__(self):
        self.LOG_LEVEL: str = os.getenv("VORTEX_LOG_LEVEL", "INFO")
        self.LOG_FORMAT: str = os.getenv(
            "VORTEX_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        self.REPORTS_PATH: Path = Path(os.getenv("VORTEX_REPORTS_PATH", "./reports"))
        self.MAX_WORKERS: int = int(os.getenv("VORTEX_MAX_WORKERS", "1"))

        self._validate_config()

    def _validate_config(self) -> None:
        if self.LOG_LEVEL.upper() not in logging._nameToLevel:
            raise InvalidConfiguration(f"Unknown log level: {self.LOG_LEVEL}")
        if self.MAX_WORKERS < 1:
            raise InvalidConfiguration(f"VORTEX_MAX_WORKERS must be >= 1, got {self.MAX_WORKERS}")


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings (CLI entry points only)."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper()),
        format=settings.LOG_FORMAT,
    )
