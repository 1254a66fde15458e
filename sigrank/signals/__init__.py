# -*- coding: utf-8 -*-
"""
SigRank - Signals Module
=========================
Composite strength scoring for signal combinations.

    correlation.py     CorrelationModel: pairwise penalty / bonus, filtering
    regime_context.py  RegimeContextModel: regime effectiveness + history
    weights.py         SignalWeightModel: importance, quality ladder, synergy
    quality.py         QualityScorer: per-signal quality factors
    performance.py     PerformanceState: injected learning state
    strength.py        StrengthAggregator: the full scoring pipeline

Usage:
    from sigrank.signals import StrengthAggregator, PerformanceState

    scorer = StrengthAggregator(state=PerformanceState())
    result = scorer.score(signals, regime='ranging', confidence=0.7)
"""

# =========================================================================
# Learning state
# =========================================================================
from sigrank.signals.performance import (
    PerformanceState,
)

# =========================================================================
# Sub-models
# =========================================================================
from sigrank.signals.correlation import (
    CorrelationModel,
    CorrelationPair,
    CorrelationReport,
)
from sigrank.signals.regime_context import (
    RegimeContextModel,
)
from sigrank.signals.weights import (
    SignalWeightModel,
)
from sigrank.signals.quality import (
    QualityScorer,
    QualityConfig,
)

# =========================================================================
# Aggregator
# =========================================================================
from sigrank.signals.strength import (
    StrengthAggregator,
    StrengthResult,
    Recommendation,
)


__all__ = [
    # State
    'PerformanceState',

    # Correlation
    'CorrelationModel',
    'CorrelationPair',
    'CorrelationReport',

    # Regime
    'RegimeContextModel',

    # Weights / quality
    'SignalWeightModel',
    'QualityScorer',
    'QualityConfig',

    # Aggregator
    'StrengthAggregator',
    'StrengthResult',
    'Recommendation',
]
