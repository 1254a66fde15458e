# -*- coding: utf-8 -*-
"""
SigRank - Signal Weight Model
==============================
FILE: sigrank/signals/weights.py

Per-signal weighting and combination bonuses.

    weighted_strength = strength × regime_adjusted_weight × quality_weight
                        (floored at 0)

    regime_adjusted_weight = importance(type) × effectiveness × confidence
                             × regime performance   (RegimeContextModel)

Quality ladder (raw strength → multiplier):
    ≥ 80 → 1.3,  ≥ 60 → 1.1,  ≥ 40 → 1.0,  ≥ 20 → 0.8,  else 0.6

Combination bonuses:
    synergy:    0.10 per complementary type pair present, cap 0.30
    diversity:  0.05 per unique type, cap 0.20

Usage:
    from sigrank.signals.weights import SignalWeightModel

    weights = SignalWeightModel()
    weights.importance_weight('macd_cross')          # → 1.8
    weights.weighted_strength(sig, 'uptrend', 0.8)
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

from sigrank.config.loader import ScoringConfig
from sigrank.config.tables import SignalTables, load_tables
from sigrank.signals.regime_context import RegimeContextModel
from sigrank.types.signal import signal_type_of, signal_strength_of

logger = logging.getLogger(__name__)


class SignalWeightModel:
    """
    Importance, quality and regime weighting for individual signals.

    Args:
        config: ScoringConfig with bonus sizes and caps.
        tables: SignalTables; defaults to the bundled tables.
        regime_context: RegimeContextModel used for regime weighting.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        tables: Optional[SignalTables] = None,
        regime_context: Optional[RegimeContextModel] = None,
    ):
        self.config = config or ScoringConfig()
        self.tables = tables or load_tables()
        self.regime_context = regime_context or RegimeContextModel(self.config, self.tables)

    def importance_weight(self, signal_type: Optional[str]) -> float:
        """Static importance of a signal type; default for unknown types."""
        if not signal_type:
            return self.tables.default_importance
        return self.tables.importance(signal_type)

    def quality_weight(self, strength: Any) -> float:
        """Multiplier from the strength ladder."""
        ladder = self.tables.quality_ladder
        if not ladder:
            return 1.0
        if isinstance(strength, (int, float)):
            for band in ladder:
                if strength >= band.min_strength:
                    return band.weight
        return ladder[-1].weight

    def weighted_strength(
        self,
        signal: Any,
        regime: str = 'unknown',
        confidence: Any = 0.5,
    ) -> float:
        """Strength after importance, regime and quality weighting (≥ 0)."""
        signal_type = signal_type_of(signal)
        if signal_type is None:
            return 0.0

        strength = signal_strength_of(signal)
        if not isinstance(strength, (int, float)):
            strength = 0.0

        weight = self.regime_context.regime_adjusted_weight(
            signal_type, regime, confidence, self.importance_weight(signal_type))
        return max(0.0, strength * weight * self.quality_weight(strength))

    def synergy_bonus(self, signals: Sequence[Any]) -> float:
        """Bonus for complementary pairs present in the combination."""
        types = {t for t in (signal_type_of(s) for s in signals or []) if t}
        count = sum(1 for a, b in self.tables.synergy_pairs if a in types and b in types)
        return min(self.config.max_synergy_bonus, count * self.config.synergy_bonus_per_pair)

    def diversity_bonus(self, signals: Sequence[Any]) -> float:
        """Bonus per unique signal type."""
        types = {t for t in (signal_type_of(s) for s in signals or []) if t}
        return min(self.config.max_diversity_bonus,
                   len(types) * self.config.diversity_bonus_per_type)

    def importance_ranking(self, signals: Sequence[Any]) -> List[Dict[str, Any]]:
        """Signals paired with their importance, most important first."""
        ranked = [
            {'signal': s, 'type': signal_type_of(s),
             'importance': self.importance_weight(signal_type_of(s))}
            for s in signals or []
        ]
        ranked.sort(key=lambda r: r['importance'], reverse=True)
        return ranked

    def __repr__(self) -> str:
        return (f"SignalWeightModel(types={len(self.tables.importance_weights)}, "
                f"synergy_pairs={len(self.tables.synergy_pairs)})")
