"""
Tests for the ordered signal policy.
"""

import pytest

from vortexflow.config import StrategyConfig
from vortexflow.signals import (
    PatternNumberOverride,
    SequenceGate,
    SignalPolicy,
    SignalRule,
    TargetRule,
)
from vortexflow.state import Action

from conftest import make_records


def record(root, price=1000.0):
    return make_records([(price, root)])[0]


def decide(root, **config):
    return SignalPolicy.from_config(StrategyConfig(**config)).decide(record(root))


class TestPrecedence:
    """The sequence gate is evaluated before the pattern override."""

    def test_pattern_root_is_hold_with_both_filters(self):
        decision = decide(3, use_sequence_filter=True, use_pattern_filter=True)
        assert decision.action is Action.HOLD
        assert decision.rule == "sequence_gate"
        assert "not in doubling sequence" in decision.reasoning

    @pytest.mark.parametrize("root", [3, 6, 9])
    def test_gate_blocks_every_pattern_number(self, root):
        assert decide(root).action is Action.HOLD

    def test_gate_passes_doubling_root_to_targets(self):
        decision = decide(1)
        assert decision.action is Action.BUY
        assert decision.rule == "targets"

    def test_gate_blocks_configured_target_outside_sequence(self):
        assert decide(3, buy_signal=3, use_pattern_filter=False).action is Action.HOLD


class TestPatternOverride:

    @pytest.mark.parametrize("root,expected", [
        (3, Action.BUY),
        (6, Action.SELL),
        (9, Action.HOLD),
    ])
    def test_pattern_actions(self, root, expected):
        decision = decide(root, use_sequence_filter=False)
        assert decision.action is expected
        assert decision.rule == "pattern_override"

    def test_override_beats_targets(self):
        decision = decide(3, use_sequence_filter=False, sell_signal=3)
        assert decision.action is Action.BUY

    def test_disabled_override_uses_targets(self):
        decision = decide(3, use_sequence_filter=False, use_pattern_filter=False, sell_signal=3)
        assert decision.action is Action.SELL


class TestTargets:

    def test_buy_sell_hold_and_default(self):
        kwargs = dict(use_sequence_filter=False, use_pattern_filter=False,
                      buy_signal=1, sell_signal=5, hold_signal=9)
        assert decide(1, **kwargs).action is Action.BUY
        assert decide(5, **kwargs).action is Action.SELL
        assert decide(9, **kwargs).action is Action.HOLD
        default = decide(2, **kwargs)
        assert default.action is Action.HOLD
        assert default.reasoning == "No matching signal"

    def test_buy_checked_before_sell_when_targets_coincide(self):
        decision = decide(4, buy_signal=4, sell_signal=4)
        assert decision.action is Action.BUY


class TestPolicy:

    def test_rule_order_from_config(self):
        assert SignalPolicy.from_config(StrategyConfig()).rule_names == [
            "sequence_gate", "pattern_override", "targets",
        ]
        assert SignalPolicy.from_config(
            StrategyConfig(use_sequence_filter=False, use_pattern_filter=False)
        ).rule_names == ["targets"]

    def test_rules_satisfy_protocol(self):
        for rule in (SequenceGate(), PatternNumberOverride(), TargetRule(1, 5, 9)):
            assert isinstance(rule, SignalRule)

    def test_empty_policy_holds(self):
        decision = SignalPolicy([]).decide(record(1))
        assert decision.action is Action.HOLD

    def test_progression_note_does_not_change_action(self):
        policy = SignalPolicy.from_config(StrategyConfig())
        previous, current = make_records([(1000, 4), (1000, 8)])
        with_prev = policy.decide(current, previous)
        without_prev = policy.decide(current)
        assert with_prev.action is without_prev.action
        assert with_prev.reasoning.endswith("; following doubling progression")
        assert "progression" not in without_prev.reasoning

    def test_no_progression_note_on_gated_record(self):
        policy = SignalPolicy.from_config(StrategyConfig())
        # 3 * 2 = 6, but the gate already holds root 6
        previous, current = make_records([(1000, 3), (1000, 6)])
        assert "progression" not in policy.decide(current, previous).reasoning
