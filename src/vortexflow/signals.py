"""
Signal Policy.

Purpose:
    Decides BUY / SELL / HOLD for each DailyRecord. The decision is an
    ordered list of rules; the first rule that returns a decision wins and
    later rules are never consulted.

Precedence:
    1. SequenceGate - if enabled, roots outside the doubling sequence are HOLD
    2. PatternNumberOverride - if enabled, 3 = BUY, 6 = SELL, 9 = HOLD
    3. TargetRule - configured buy/sell/hold roots, otherwise HOLD

    Because the gate runs first, a root of 3 with both filters enabled is
    HOLD (3 is not in the doubling sequence), never BUY.

Usage:
    policy = SignalPolicy.from_config(config)
    decision = policy.decide(record)
    if decision.action is Action.BUY:
        ...
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .config import StrategyConfig
from .state import Action, DailyRecord
from .vortex_math import is_in_doubling_sequence, next_in_doubling


@dataclass(frozen=True)
class SignalDecision:
    """An action plus the rule that produced it."""
    action: Action
    reasoning: str
    rule: str


@runtime_checkable
class SignalRule(Protocol):
    """
    One step of the policy.

    evaluate() returns a SignalDecision to stop evaluation, or None to defer
    to the next rule.
    """

    name: str

    def evaluate(self, record: DailyRecord) -> Optional[SignalDecision]:
        ...


class SequenceGate:
    """Exclusionary gate: roots outside {1, 2, 4, 8, 7, 5} are HOLD."""

    name = "sequence_gate"

    def evaluate(self, record: DailyRecord) -> Optional[SignalDecision]:
        if is_in_doubling_sequence(record.digital_root):
            return None
        return SignalDecision(
            action=Action.HOLD,
            reasoning=f"Digital root {record.digital_root} not in doubling sequence - no action",
            rule=self.name,
        )


class PatternNumberOverride:
    """Pattern numbers replace the configured targets: 3 BUY, 6 SELL, 9 HOLD."""

    name = "pattern_override"

    _ACTIONS = {
        3: (Action.BUY, "Pattern number 3 - upward polarity"),
        6: (Action.SELL, "Pattern number 6 - downward polarity"),
        9: (Action.HOLD, "Pattern number 9 - balance, maintain position"),
    }

    def evaluate(self, record: DailyRecord) -> Optional[SignalDecision]:
        entry = self._ACTIONS.get(record.digital_root)
        if entry is None:
            return None
        action, reasoning = entry
        return SignalDecision(action=action, reasoning=reasoning, rule=self.name)


class TargetRule:
    """Base rule: match the root against the configured targets."""

    name = "targets"

    def __init__(self, buy_signal: int, sell_signal: int, hold_signal: int):
        self.buy_signal = buy_signal
        self.sell_signal = sell_signal
        self.hold_signal = hold_signal

    def evaluate(self, record: DailyRecord) -> Optional[SignalDecision]:
        root = record.digital_root
        # Checked in this order when targets coincide
        if root == self.buy_signal:
            return SignalDecision(Action.BUY, f"Buy signal (digital root {root}) - cycle start", self.name)
        if root == self.sell_signal:
            return SignalDecision(Action.SELL, f"Sell signal (digital root {root}) - cycle peak", self.name)
        if root == self.hold_signal:
            return SignalDecision(Action.HOLD, f"Hold signal (digital root {root}) - equilibrium", self.name)
        return SignalDecision(Action.HOLD, "No matching signal", self.name)


class SignalPolicy:
    """Ordered list of rules; the first decision wins."""

    def __init__(self, rules: Sequence[SignalRule]):
        self.rules: List[SignalRule] = list(rules)

    @classmethod
    def from_config(cls, config: StrategyConfig) -> "SignalPolicy":
        rules: List[SignalRule] = []
        if config.use_sequence_filter:
            rules.append(SequenceGate())
        if config.use_pattern_filter:
            rules.append(PatternNumberOverride())
        rules.append(TargetRule(config.buy_signal, config.sell_signal, config.hold_signal))
        return cls(rules)

    @property
    def rule_names(self) -> List[str]:
        return [r.name for r in self.rules]

    def decide(
        self,
        record: DailyRecord,
        previous: Optional[DailyRecord] = None
    ) -> SignalDecision:
        """
        Evaluate the rules in order for one record.

        previous only adds a progression note to the reasoning; it never
        changes the action.
        """
        decision = None
        for rule in self.rules:
            decision = rule.evaluate(record)
            if decision is not None:
                break

        if decision is None:
            decision = SignalDecision(Action.HOLD, "No matching signal", "default")

        if (
            previous is not None
            and decision.rule != SequenceGate.name
            and next_in_doubling(previous.digital_root) == record.digital_root
        ):
            decision = SignalDecision(
                action=decision.action,
                reasoning=f"{decision.reasoning}; following doubling progression",
                rule=decision.rule,
            )
        return decision
