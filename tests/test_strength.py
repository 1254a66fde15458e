# -*- coding: utf-8 -*-
"""
Strength aggregator tests: the full scoring pipeline, step guards,
learning and per-instance state.
"""
import pytest

from sigrank.config import ScoringConfig
from sigrank.signals import PerformanceState, StrengthAggregator
from sigrank.types import Signal

from conftest import make_match


class TestScore:

    def test_empty_and_invalid_input(self, scorer):
        for signals in ([], (), None, 'macd', 42):
            result = scorer.score(signals)
            assert result.total_strength == 0.0
            assert result.breakdown == {}
            assert result.recommendations == []

    def test_single_signal(self, scorer):
        result = scorer.score([Signal('hammer', 50)], regime='unknown', confidence=0.5)

        b = result.breakdown
        assert b['base_strength'] == pytest.approx(80.0)         # 50 × 1.6
        assert b['correlation_penalty'] == 0.0
        assert b['quality_multiplier'] == pytest.approx(0.875)  # quality 0.75, no history
        assert b['diversity_bonus'] == pytest.approx(0.05)
        assert result.total_strength == pytest.approx(73.5)
        assert result.quality_score == pytest.approx(0.75)
        assert result.recommendation_types == ['regime', 'strength']
        assert [r.priority for r in result.recommendations] == ['high', 'high']

    def test_correlated_pair(self, scorer):
        signals = [Signal('macd_cross', 80), Signal('ema_cross', 70)]
        result = scorer.score(signals, regime='unknown', confidence=0.5)

        b = result.breakdown
        assert b['base_strength'] == pytest.approx(310.4)
        assert b['correlation_penalty'] == pytest.approx(0.075)
        assert b['correlation_adjusted'] == pytest.approx(287.12)
        assert b['synergy_bonus'] == pytest.approx(0.10)
        assert b['diversity_bonus'] == pytest.approx(0.10)
        assert result.total_strength == pytest.approx(303.9883)

    def test_pipeline_identities(self, scorer):
        signals = [Signal('macd', 70), Signal('volume', 65), Signal('rsi', 30)]
        b = scorer.score(signals, regime='uptrend', confidence=0.85).breakdown

        assert b['correlation_adjusted'] == pytest.approx(
            b['base_strength'] * (1 - b['correlation_penalty']))
        assert b['regime_adjusted'] == pytest.approx(
            b['correlation_adjusted'] * (1 + b['regime_context_bonus']))
        assert b['quality_adjusted'] == pytest.approx(
            b['regime_adjusted'] * b['quality_multiplier'])
        assert b['synergy_adjusted'] == pytest.approx(
            b['quality_adjusted'] * (1 + b['synergy_bonus']) * (1 + b['diversity_bonus']))
        assert b['total_strength'] == pytest.approx(
            b['synergy_adjusted'] * (1 + b['learning_adjustment']))

    def test_correlation_bonus_is_reported_only(self, scorer):
        signals = [Signal('adline_decreasing', 50), Signal('adline_increasing', 50)]
        b = scorer.score(signals).breakdown

        assert b['correlation_bonus'] == pytest.approx(0.17)
        assert b['correlation_adjusted'] == pytest.approx(
            b['base_strength'] * (1 - b['correlation_penalty']))

    def test_deterministic(self, scorer):
        signals = [Signal('macd', 70), Signal('volume', 65)]
        first = scorer.score(signals, 'uptrend', 0.7).to_dict()
        second = scorer.score(signals, 'uptrend', 0.7).to_dict()
        assert first == second

    def test_malformed_values_do_not_raise(self, scorer):
        signals = [{'type': 'macd', 'strength': 'high'}, {'strength': 40}, Signal('rsi', 150)]
        result = scorer.score(signals, regime='ranging', confidence='sure')
        assert result.total_strength >= 0.0
        assert 'regime' in result.recommendation_types

    def test_failed_step_uses_neutral_value(self, scorer, monkeypatch):
        def broken(signals):
            raise RuntimeError("table corrupted")

        monkeypatch.setattr(scorer.correlation, 'penalty', broken)
        result = scorer.score([Signal('ema', 60), Signal('ema_cross', 60)])

        assert result.breakdown['correlation_penalty'] == 0.0
        assert result.total_strength > 0
        assert scorer.get_stats()['n_step_failures'] == 1


class TestRecommendations:

    def test_correlation_recommendation(self):
        scorer = StrengthAggregator(ScoringConfig(correlation_penalty_factor=0.2))
        result = scorer.score([Signal('ema', 90), Signal('ema_cross', 90)], confidence=0.9)
        assert 'correlation' in result.recommendation_types

    def test_strong_confident_combination_has_none(self, scorer):
        signals = [Signal('macd', 90), Signal('volume', 85), Signal('atr', 80)]
        result = scorer.score(signals, regime='uptrend', confidence=0.9)
        assert result.recommendations == []

    def test_low_quality_recommendation(self):
        state = PerformanceState()
        scorer = StrengthAggregator(state=state)
        for _ in range(20):
            state.record_signal('hammer', False, 'unknown', 90)
        # ratio 5/90, success 0 → (0.017 + 0.175 + 0.2 + 0) / 1.0
        result = scorer.score([Signal('hammer', 5)], confidence=0.9)
        assert result.quality_score < 0.4
        assert 'quality' in result.recommendation_types


class TestLearning:

    def test_no_adjustment_below_min_samples(self, scorer):
        for _ in range(9):
            scorer.record_outcome('hammer', True, 'uptrend', 50)
        assert scorer.learning_adjustment([Signal('hammer', 50)], 'uptrend') == 0.0

    def test_type_adjustment(self, scorer):
        for _ in range(10):
            scorer.record_outcome('hammer', True, 'uptrend', 50)
        # (1.0 − 0.5) × 0.1, over one signal
        assert scorer.learning_adjustment([Signal('hammer', 50)], 'uptrend') == pytest.approx(0.05)
        # history in a different regime does not count
        assert scorer.learning_adjustment([Signal('hammer', 50)], 'ranging') == 0.0

    def test_adjustment_averaged_over_signal_count(self, scorer):
        for _ in range(10):
            scorer.record_outcome('hammer', True, 'uptrend', 50)
        signals = [Signal('hammer', 50), Signal('doji', 50)]
        assert scorer.learning_adjustment(signals, 'uptrend') == pytest.approx(0.025)

    def test_regime_adjustment(self, scorer):
        for i in range(10):
            scorer.state.record_regime('ranging', i < 2)
        # (0.2 − 0.5) × 0.1
        assert scorer.learning_adjustment([Signal('doji', 50)], 'ranging') == pytest.approx(-0.03)

    def test_learn_from_matches(self, scorer):
        matches = [make_match(['a', 'b'], 'uptrend', successful=i % 2 == 0) for i in range(10)]
        assert scorer.learn_from_matches(matches) == 10

        perf = scorer.state.type_regime_performance('a', 'uptrend')
        assert perf == {'sample_count': 10, 'success_rate': 0.5}
        assert scorer.state.regime_performance('uptrend')['sample_count'] == 10


class TestState:

    def test_private_state_per_scorer(self):
        first = StrengthAggregator()
        second = StrengthAggregator()
        first.record_outcome('macd', True, 'uptrend', 60)
        assert second.state.type_performance('macd') is None

    def test_shared_state(self):
        state = PerformanceState()
        first = StrengthAggregator(state=state)
        second = StrengthAggregator(state=state)
        first.record_outcome('macd', True, 'uptrend', 60)
        assert second.state.type_performance('macd')['sample_count'] == 1

    def test_reset_and_snapshot(self, scorer):
        scorer.record_outcome('macd', True, 'uptrend', 60)
        snap = scorer.snapshot()
        assert snap['types']['macd']['total'] == 1

        scorer.reset()
        assert scorer.snapshot() == {'types': {}, 'regimes': {}}
        assert snap['types']['macd']['total'] == 1
        assert scorer.get_stats()['n_scored'] == 0
