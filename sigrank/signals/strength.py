# -*- coding: utf-8 -*-
"""
SigRank - Strength Aggregator
==============================
FILE: sigrank/signals/strength.py

Composite strength of a signal combination.

Pipeline:
    1. base             = Σ weighted_strength(signal)
    2. corr_adjusted    = base × (1 − correlation penalty)
    3. regime_adjusted  = corr_adjusted × (1 + regime context bonus)
    4. quality_adjusted = regime_adjusted × (0.5 + mean quality × 0.5)
    5. synergy_adjusted = quality_adjusted × (1 + synergy) × (1 + diversity)
    6. total            = synergy_adjusted × (1 + learning adjustment)

The correlation bonus is computed and reported in the breakdown but is
not part of the total. Each step runs in its own guard: a failure is
logged and replaced by a neutral value (0 for additive terms, 0.5 for
quality), so score() does not raise on bad input.

Learning adjustment:
    per type:   (success rate in this regime − 0.5) × learning_rate,
                once the type has ≥ min_samples outcomes in the regime;
                summed and divided by the number of signals
    per regime: (regime success rate − 0.5) × learning_rate,
                once the regime has ≥ min_samples outcomes

Recommendations:
    penalty > 0.10           → 'correlation'
    regime confidence < 0.6  → 'regime'
    any quality < 0.4        → 'quality'
    total < 100              → 'strength'

Usage:
    from sigrank.signals import StrengthAggregator, PerformanceState

    state = PerformanceState()
    scorer = StrengthAggregator(state=state)

    result = scorer.score(signals, regime='uptrend', confidence=0.8)
    result.total_strength
    result.breakdown['correlation_penalty']

    # Learn from simulated outcomes
    scorer.learn_from_matches(matches)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, TypeVar
import logging

from sigrank.config.loader import ScoringConfig
from sigrank.config.tables import SignalTables, load_tables
from sigrank.signals.correlation import CorrelationModel
from sigrank.signals.performance import PerformanceState
from sigrank.signals.quality import QualityScorer, QualityConfig
from sigrank.signals.regime_context import RegimeContextModel
from sigrank.signals.weights import SignalWeightModel
from sigrank.types.signal import signal_type_of, signal_strength_of

logger = logging.getLogger(__name__)

T = TypeVar('T')


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class Recommendation:
    type: str
    message: str
    priority: str = 'medium'

    def to_dict(self) -> Dict[str, str]:
        return {'type': self.type, 'message': self.message, 'priority': self.priority}


@dataclass(frozen=True)
class StrengthResult:
    """Composite strength with per-step breakdown."""
    total_strength: float = 0.0
    breakdown: Dict[str, float] = field(default_factory=dict)
    quality_score: float = 0.0
    recommendations: List[Recommendation] = field(default_factory=list)
    analysis: Dict[str, Any] = field(default_factory=dict)

    @property
    def recommendation_types(self) -> List[str]:
        return [r.type for r in self.recommendations]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_strength': self.total_strength,
            'breakdown': dict(self.breakdown),
            'quality_score': self.quality_score,
            'recommendations': [r.to_dict() for r in self.recommendations],
        }


# =============================================================================
# AGGREGATOR
# =============================================================================

class StrengthAggregator:
    """
    Combines correlation, regime, weight, quality and learning models into
    one strength value.

    Args:
        config: ScoringConfig.
        tables: SignalTables shared by all sub-models.
        state: PerformanceState this scorer learns into. Pass one in to
               share history between scorers; omit for a private one.
        quality_config: QualityConfig for the per-signal quality factors.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        tables: Optional[SignalTables] = None,
        state: Optional[PerformanceState] = None,
        quality_config: Optional[QualityConfig] = None,
    ):
        self.config = config or ScoringConfig()
        self.tables = tables or load_tables()
        self.state = state if state is not None else PerformanceState()

        self.correlation = CorrelationModel(self.config, self.tables)
        self.regime_context = RegimeContextModel(self.config, self.tables, self.state)
        self.weights = SignalWeightModel(self.config, self.tables, self.regime_context)
        self.quality = QualityScorer(quality_config, self.state)

        self._warned: Set[str] = set()
        self._n_scored = 0
        self._n_step_failures = 0

    # -----------------------------------------------------------------
    # Scoring
    # -----------------------------------------------------------------

    def score(
        self,
        signals: Any,
        regime: str = 'unknown',
        confidence: Any = 0.5,
        market_context: Optional[Dict[str, Any]] = None,
    ) -> StrengthResult:
        """
        Composite strength of a signal combination.

        Args:
            signals: Sequence of Signal (or signal mappings).
            regime: Market regime at the candle.
            confidence: Regime classifier confidence, 0–1.
            market_context: Optional context passed to quality factors.

        Returns:
            StrengthResult. Empty or non-sequence input gives the zero result.
        """
        if not isinstance(signals, (list, tuple)) or len(signals) == 0:
            return StrengthResult()

        self._n_scored += 1
        self._validate(signals, confidence)

        weighted = self._guard(
            'weighted_strength',
            lambda: [self.weights.weighted_strength(s, regime, confidence) for s in signals],
            [])
        base = sum(weighted)

        penalty = self._guard('correlation_penalty', lambda: self.correlation.penalty(signals), 0.0)
        bonus = self._guard('correlation_bonus', lambda: self.correlation.bonus(signals), 0.0)
        correlation_adjusted = base * (1 - penalty)

        context_bonus = self._guard(
            'regime_context',
            lambda: self.regime_context.context_bonus(signals, regime, confidence), 0.0)
        regime_adjusted = correlation_adjusted * (1 + context_bonus)

        quality_scores = [
            self._guard('quality', lambda s=s: self.quality.score(s, market_context),
                        self.quality.config.default_quality)
            for s in signals
        ]
        average_quality = sum(quality_scores) / len(quality_scores)
        quality_multiplier = self.quality.multiplier(quality_scores)
        quality_adjusted = regime_adjusted * quality_multiplier

        synergy = self._guard('synergy_bonus', lambda: self.weights.synergy_bonus(signals), 0.0)
        diversity = self._guard('diversity_bonus', lambda: self.weights.diversity_bonus(signals), 0.0)
        synergy_adjusted = quality_adjusted * (1 + synergy) * (1 + diversity)

        learning = self._guard(
            'learning', lambda: self.learning_adjustment(signals, regime), 0.0)
        total = synergy_adjusted * (1 + learning)

        regime_diversity = self._guard(
            'regime_diversity', lambda: self.regime_context.regime_diversity_bonus(signals), 0.0)

        breakdown = {
            'base_strength': base,
            'correlation_penalty': penalty,
            'correlation_bonus': bonus,
            'correlation_adjusted': correlation_adjusted,
            'regime_context_bonus': context_bonus,
            'regime_adjusted': regime_adjusted,
            'quality_multiplier': quality_multiplier,
            'quality_adjusted': quality_adjusted,
            'synergy_bonus': synergy,
            'diversity_bonus': diversity,
            'synergy_adjusted': synergy_adjusted,
            'learning_adjustment': learning,
            'regime_diversity_bonus': regime_diversity,
            'total_strength': total,
        }

        recommendations = self.recommend(total, penalty, confidence, quality_scores)

        analysis = {
            'weighted_strengths': weighted,
            'quality_scores': quality_scores,
            'correlated_pairs': [
                (p.type_a, p.type_b, p.correlation)
                for p in self._guard('correlation_detect',
                                     lambda: self.correlation.detect(signals), [])
            ],
            'regime': regime,
            'regime_confidence': confidence,
        }

        return StrengthResult(
            total_strength=total,
            breakdown=breakdown,
            quality_score=average_quality,
            recommendations=recommendations,
            analysis=analysis,
        )

    def learning_adjustment(self, signals: Sequence[Any], regime: str) -> float:
        """Success-rate driven adjustment; 0.0 until enough samples exist."""
        cfg = self.config
        per_type: Dict[str, float] = {}
        for signal in signals:
            signal_type = signal_type_of(signal)
            if signal_type is None:
                continue
            perf = self.state.type_regime_performance(signal_type, regime)
            if perf and perf['sample_count'] >= cfg.min_samples_for_learning:
                per_type[signal_type] = (perf['success_rate'] - 0.5) * cfg.learning_rate

        adjustment = sum(per_type.values()) / len(signals) if signals else 0.0

        regime_perf = self.state.regime_performance(regime)
        if regime_perf and regime_perf['sample_count'] >= cfg.min_samples_for_learning:
            adjustment += (regime_perf['success_rate'] - 0.5) * cfg.learning_rate

        return adjustment

    def recommend(
        self,
        total: float,
        penalty: float,
        confidence: Any,
        quality_scores: Sequence[float],
    ) -> List[Recommendation]:
        cfg = self.config
        recommendations = []

        if penalty > cfg.penalty_recommendation:
            recommendations.append(Recommendation(
                'correlation',
                f"High correlation between signals (penalty {penalty:.1%}). "
                f"Consider more diverse signal types."))

        if not isinstance(confidence, (int, float)) or confidence < cfg.min_regime_confidence:
            shown = f"{confidence:.0%}" if isinstance(confidence, (int, float)) else repr(confidence)
            recommendations.append(Recommendation(
                'regime',
                f"Low regime confidence ({shown}). Wait for a clearer market regime.",
                priority='high'))

        low_quality = sum(1 for q in quality_scores if q < cfg.low_quality_threshold)
        if low_quality > 0:
            recommendations.append(Recommendation(
                'quality',
                f"{low_quality} signal(s) below quality {cfg.low_quality_threshold}. "
                f"Filter out weak signals."))

        if total < cfg.min_total_strength:
            recommendations.append(Recommendation(
                'strength',
                f"Combined strength ({total:.1f}) is below {cfg.min_total_strength:.0f}. "
                f"Wait for additional confirming signals.",
                priority='high'))

        return recommendations

    # -----------------------------------------------------------------
    # Learning
    # -----------------------------------------------------------------

    def record_outcome(
        self,
        signal_type: str,
        successful: bool,
        regime: str = 'unknown',
        strength: Optional[float] = None,
    ):
        """Record one signal outcome into the performance state."""
        self.state.record_signal(signal_type, successful, regime, strength)

    def learn_from_matches(self, matches: Iterable[Any]) -> int:
        """
        Feed simulated outcomes back into the performance state.

        Every member signal of a match is recorded with the match's
        success flag, and the match regime gets one outcome.

        Returns:
            Number of matches learned from.
        """
        n = 0
        for match in matches:
            for signal in match.signals:
                self.state.record_signal(
                    signal.type, match.successful, match.market_regime, signal.strength)
            self.state.record_regime(match.market_regime, match.successful)
            n += 1
        logger.debug(f"Learned from {n} matches: {self.state!r}")
        return n

    def load_history_from_trades(self, trades) -> int:
        return self.regime_context.load_history_from_trades(trades)

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return self.state.snapshot()

    def reset(self):
        """Clear learned history and logging de-duplication."""
        self.state.reset()
        self.correlation.reset()
        self.regime_context.reset()
        self._warned.clear()
        self._n_scored = 0
        self._n_step_failures = 0

    def get_stats(self) -> Dict[str, Any]:
        return {
            'n_scored': self._n_scored,
            'n_step_failures': self._n_step_failures,
            **self.state.get_stats(),
        }

    def __repr__(self) -> str:
        return f"StrengthAggregator(scored={self._n_scored}, state={self.state!r})"

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _guard(self, step: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except Exception as e:
            self._n_step_failures += 1
            logger.error(f"Strength step '{step}' failed, using {default!r}: {e}")
            return default

    def _warn_once(self, key: str, message: str):
        if key not in self._warned:
            self._warned.add(key)
            logger.warning(message)

    def _validate(self, signals: Sequence[Any], confidence: Any):
        for signal in signals:
            signal_type = signal_type_of(signal)
            if signal_type is None:
                self._warn_once('no-type', f"Signal without type is ignored in scoring: {signal!r}")
                continue
            strength = signal_strength_of(signal)
            if not isinstance(strength, (int, float)):
                self._warn_once(f"nan-strength:{signal_type}",
                                f"Non-numeric strength for '{signal_type}': {strength!r}")
            elif not 0 <= strength <= 100:
                self._warn_once(f"range-strength:{signal_type}",
                                f"Strength out of [0, 100] for '{signal_type}': {strength}")

        if not isinstance(confidence, (int, float)):
            self._warn_once('confidence-type', f"Malformed regime confidence: {confidence!r}")
        elif not 0 <= confidence <= 1:
            self._warn_once('confidence-range', f"Regime confidence out of [0, 1]: {confidence}")
