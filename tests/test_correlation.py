# -*- coding: utf-8 -*-
"""
Correlation model tests: table symmetry, penalty / bonus bounds and
greedy de-correlation.
"""
from itertools import combinations

import pytest

from sigrank.config import ScoringConfig, load_tables
from sigrank.signals import CorrelationModel
from sigrank.types import Signal


@pytest.fixture
def model():
    return CorrelationModel()


def sig(signal_type, strength=50.0):
    return Signal(type=signal_type, strength=strength)


class TestLookup:

    def test_symmetric_for_every_table_pair(self, model):
        for key in load_tables().correlations:
            a, b = sorted(key)
            assert model.correlation(a, b) == model.correlation(b, a)

    def test_known_pair(self, model):
        assert model.correlation('ema', 'ema_cross') == pytest.approx(0.90)
        assert model.correlation('macd_cross', 'ema_cross') == pytest.approx(0.75)

    def test_case_insensitive(self, model):
        assert model.correlation('EMA', 'Ema_Cross') == model.correlation('ema', 'ema_cross')

    def test_identical_and_unknown_are_zero(self, model):
        assert model.correlation('rsi', 'rsi') == 0.0
        assert model.correlation('rsi', 'not_a_signal') == 0.0
        assert model.correlation(None, 'rsi') == 0.0

    def test_all_values_in_range(self):
        for value in load_tables().correlations.values():
            assert -1.0 <= value <= 1.0

    def test_expected_pairs_present(self, model):
        assert model.missing_expected_pairs() == []


class TestPenalty:

    def test_single_signal_has_no_penalty(self, model):
        assert model.penalty([sig('ema')]) == 0.0
        assert model.penalty([]) == 0.0

    def test_high_pair_penalty(self, model):
        # mean |c| 0.90 × 0.10
        assert model.penalty([sig('ema'), sig('ema_cross')]) == pytest.approx(0.09)

    def test_low_pairs_ignored(self, model):
        assert model.penalty([sig('hammer'), sig('adline_decreasing')]) == 0.0

    def test_negative_correlation_counts_by_magnitude(self, model):
        signals = [sig('adline_decreasing'), sig('adline_increasing')]
        assert model.penalty(signals) == pytest.approx(0.085)

    def test_penalty_capped(self):
        model = CorrelationModel(ScoringConfig(correlation_penalty_factor=1.0))
        assert model.penalty([sig('ema'), sig('ema_cross')]) == pytest.approx(0.25)

    def test_untyped_signals_skipped(self, model):
        signals = [sig('ema'), {'strength': 90}, sig('ema_cross')]
        assert model.penalty(signals) == pytest.approx(0.09)


class TestBonus:

    def test_negative_pair_bonus(self, model):
        signals = [sig('adline_decreasing'), sig('adline_increasing')]
        assert model.bonus(signals) == pytest.approx(0.17)

    def test_bonus_capped(self, model):
        signals = [
            sig('cci_overbought'), sig('cci_oversold'),
            sig('mfi_overbought'), sig('mfi_oversold'),
            sig('obv_decreasing'), sig('obv_increasing'),
        ]
        assert model.bonus(signals) == pytest.approx(0.30)

    def test_no_bonus_for_positive_pairs(self, model):
        assert model.bonus([sig('ema'), sig('ema_cross')]) == 0.0


class TestBounds:

    def test_penalty_and_bonus_bounds_over_table_types(self, model):
        types = sorted({t for key in load_tables().correlations for t in key})[:18]
        for size in (2, 3):
            for combo in combinations(types, size):
                signals = [sig(t) for t in combo]
                assert 0.0 <= model.penalty(signals) <= 0.25
                assert 0.0 <= model.bonus(signals) <= 0.30
                assert 0.0 <= model.diversity_score(signals) <= 1.0


class TestFilter:

    def test_greedy_by_strength(self, model):
        signals = [
            sig('hammer', 60),
            sig('obv_decreasing', 80),
            sig('adline_decreasing', 90),
        ]
        kept = model.filter_correlated(signals)
        assert [s.type for s in kept] == ['adline_decreasing', 'hammer']

    def test_duplicate_types_and_untyped_dropped(self, model):
        signals = [sig('rsi', 70), sig('rsi', 60), {'strength': 99}]
        kept = model.filter_correlated(signals)
        assert [s.type for s in kept] == ['rsi']

    def test_custom_threshold(self, model):
        signals = [sig('ema', 80), sig('ema_cross', 70)]
        assert len(model.filter_correlated(signals, max_correlation=0.95)) == 2
        assert len(model.filter_correlated(signals, max_correlation=0.5)) == 1


class TestReport:

    def test_report(self, model):
        report = model.report([sig('ema'), sig('ema_cross'), sig('hammer')])
        assert report.has_high_correlations
        assert report.correlation_count == 1
        assert report.average_correlation == pytest.approx(0.90)
        assert report.penalty == pytest.approx(0.09)
        assert report.bonus == 0.0

    def test_diversity_score(self, model):
        assert model.diversity_score([sig('ema'), sig('ema_cross')]) == pytest.approx(0.91)
        assert model.diversity_score([sig('rsi'), sig('rsi')]) == pytest.approx(0.5)
