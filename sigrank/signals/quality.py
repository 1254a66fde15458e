# -*- coding: utf-8 -*-
"""
SigRank - Signal Quality
=========================
FILE: sigrank/signals/quality.py

Scores each signal 0–1 from whatever evidence is available, then turns
the combination's average into a strength multiplier.

Factors (weight):
    historical strength ratio (0.30)  strength / mean past strength, cap 1.0
                                      (only when the type has history)
    consistency               (0.25)  fixed 0.7
    market-context alignment  (0.25)  fixed 0.8
    recent success rate       (0.20)  only when the type has history

    quality = Σ factor × weight / Σ weights of available factors
    multiplier = 0.5 + mean(quality) × 0.5      → [0.5, 1.0]

Usage:
    from sigrank.signals.quality import QualityScorer

    scorer = QualityScorer(state=performance_state)
    q = scorer.score(signal)                    # → 0.75 without history
    mult = scorer.multiplier([0.75, 0.9])       # → 0.9125
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
import logging

from sigrank.signals.performance import PerformanceState
from sigrank.types.signal import signal_type_of, signal_strength_of

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class QualityConfig:
    """Immutable quality factor weights and fixed factor values."""
    historical_weight: float = 0.30
    consistency_weight: float = 0.25
    context_weight: float = 0.25
    recent_weight: float = 0.20

    consistency: float = 0.7
    context_alignment: float = 0.8

    default_quality: float = 0.5


# =============================================================================
# SCORER
# =============================================================================

class QualityScorer:
    """
    Per-signal quality from performance history and fixed priors.

    Args:
        config: QualityConfig.
        state: PerformanceState read for historical / recent factors.
    """

    def __init__(
        self,
        config: Optional[QualityConfig] = None,
        state: Optional[PerformanceState] = None,
    ):
        self.config = config or QualityConfig()
        self.state = state if state is not None else PerformanceState()

    def consistency(self, signal: Any) -> float:
        return self.config.consistency

    def context_alignment(self, signal: Any, market_context: Optional[Dict] = None) -> float:
        return self.config.context_alignment

    def score(self, signal: Any, market_context: Optional[Dict] = None) -> float:
        """Quality in [0, 1]; default_quality when no factor applies."""
        cfg = self.config
        total = 0.0
        weights = 0.0

        signal_type = signal_type_of(signal)
        history = self.state.type_performance(signal_type) if signal_type else None

        if history:
            strength = signal_strength_of(signal)
            strength = strength if isinstance(strength, (int, float)) else 0.0
            average = history['average_strength']
            ratio = min(strength / average, 1.0) if average > 0 else 1.0
            total += max(0.0, ratio) * cfg.historical_weight
            weights += cfg.historical_weight

        total += self.consistency(signal) * cfg.consistency_weight
        weights += cfg.consistency_weight

        total += self.context_alignment(signal, market_context) * cfg.context_weight
        weights += cfg.context_weight

        if history:
            total += history['success_rate'] * cfg.recent_weight
            weights += cfg.recent_weight

        return total / weights if weights > 0 else cfg.default_quality

    @staticmethod
    def multiplier(scores: Sequence[float]) -> float:
        """0.5 + mean × 0.5; 0.75 (mean 0.5) for an empty list."""
        average = sum(scores) / len(scores) if scores else 0.5
        return 0.5 + average * 0.5

    def __repr__(self) -> str:
        return f"QualityScorer({self.config})"
