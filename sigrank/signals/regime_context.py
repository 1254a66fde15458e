# -*- coding: utf-8 -*-
"""
SigRank - Regime Context Model
===============================
FILE: sigrank/signals/regime_context.py

Adjusts signal weight for the market regime the signal fired in.
Trend-following signals earn more in trends, oscillators and
support/resistance in ranges.

Effectiveness lookup:
    signal type (any case) → signal_type_mapping → regime table
    e.g. 'RSI' → 'RSI Oversold' → ranging: 1.4
    Unmapped type or unknown regime → 1.0

Confidence bands:
    confidence ≥ 0.8 → 1.2
    confidence ≥ 0.6 → 1.1
    confidence ≥ 0.4 → 1.0
    otherwise        → 0.9

Performance multiplier (regime success rate from PerformanceState):
    > 0.6 → 1.1,  < 0.4 → 0.9,  else 1.0  (0.5 when no history)

Usage:
    from sigrank.signals.regime_context import RegimeContextModel

    ctx = RegimeContextModel()
    ctx.effectiveness('rsi', 'ranging')                 # → 1.4
    ctx.context_bonus(signals, 'uptrend', 0.85)         # → ≥ 0.0
    ctx.load_history_from_trades(trades)                # replay P&L
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from sigrank.config.loader import ScoringConfig
from sigrank.config.tables import SignalTables, load_tables
from sigrank.signals.performance import PerformanceState
from sigrank.types.signal import normalize_regime, signal_type_of

logger = logging.getLogger(__name__)


# (minimum confidence, multiplier), checked top-down
CONFIDENCE_BANDS = (
    (0.8, 1.2),
    (0.6, 1.1),
    (0.4, 1.0),
)
LOW_CONFIDENCE_MULTIPLIER = 0.9

# Regimes averaged for the cross-regime diversity bonus
TRADING_REGIMES = ('uptrend', 'downtrend', 'ranging')


class RegimeContextModel:
    """
    Regime effectiveness, confidence scaling and regime success history.

    Args:
        config: ScoringConfig (context bonus scales).
        tables: SignalTables; defaults to the bundled tables.
        state: PerformanceState holding regime history. A fresh one is
               created when omitted.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        tables: Optional[SignalTables] = None,
        state: Optional[PerformanceState] = None,
    ):
        self.config = config or ScoringConfig()
        self.tables = tables or load_tables()
        self.state = state if state is not None else PerformanceState()
        self._logged_bonus = False

    # -----------------------------------------------------------------
    # Effectiveness
    # -----------------------------------------------------------------

    def map_signal_type(self, signal_type: str) -> str:
        """Descriptive family name for a detector type, or the type itself."""
        mapping = self.tables.signal_type_mapping
        return mapping.get(signal_type.lower(), mapping.get(signal_type, signal_type))

    def effectiveness(self, signal_type: Optional[str], regime: Optional[str]) -> float:
        """Regime effectiveness multiplier; 1.0 when unmapped."""
        if not signal_type or not regime:
            return 1.0
        weights = self.tables.regime_weights.get(str(regime).lower())
        if not weights:
            return 1.0
        return weights.get(self.map_signal_type(signal_type), 1.0)

    @staticmethod
    def confidence_multiplier(confidence: Any) -> float:
        """Band multiplier for regime confidence. Non-numeric → lowest band."""
        if not isinstance(confidence, (int, float)):
            return LOW_CONFIDENCE_MULTIPLIER
        for minimum, multiplier in CONFIDENCE_BANDS:
            if confidence >= minimum:
                return multiplier
        return LOW_CONFIDENCE_MULTIPLIER

    def performance_multiplier(self, regime: Optional[str]) -> float:
        """1.1 / 1.0 / 0.9 from the regime's historical success rate."""
        rate = self.state.regime_success_rate(regime)
        if rate > 0.6:
            return 1.1
        if rate < 0.4:
            return 0.9
        return 1.0

    def regime_adjusted_weight(
        self,
        signal_type: str,
        regime: str,
        confidence: Any,
        base_weight: float,
    ) -> float:
        """base × effectiveness × confidence multiplier × performance multiplier."""
        return (base_weight
                * self.effectiveness(signal_type, regime)
                * self.confidence_multiplier(confidence)
                * self.performance_multiplier(regime))

    # -----------------------------------------------------------------
    # Combination bonuses
    # -----------------------------------------------------------------

    def context_bonus(self, signals: Sequence[Any], regime: str, confidence: Any) -> float:
        """Bonus (≥ 0) for combinations that suit the current regime."""
        if not signals:
            return 0.0

        scores = [self.effectiveness(signal_type_of(s), regime) for s in signals]
        average = sum(scores) / len(scores)
        multiplier = self.confidence_multiplier(confidence)
        bonus = (average - 1.0) * self.config.context_bonus_scale * multiplier

        if not self._logged_bonus:
            self._logged_bonus = True
            perf = self.state.regime_performance(regime)
            history = (f"{perf['success_rate']:.1%} of {perf['sample_count']}"
                       if perf else "no history")
            logger.debug(
                f"Regime {regime}: effectiveness={average:.2f}, "
                f"confidence_mult={multiplier}, bonus={max(0.0, bonus):.4f}, {history}")

        return max(0.0, bonus)

    def regime_diversity_bonus(self, signals: Sequence[Any]) -> float:
        """Bonus (≥ 0) for combinations that work across all trading regimes."""
        if not signals:
            return 0.0

        total = 0.0
        for regime in TRADING_REGIMES:
            total += sum(self.effectiveness(signal_type_of(s), regime)
                         for s in signals) / len(signals)
        average = total / len(TRADING_REGIMES)
        return max(0.0, (average - 1.0) * self.config.regime_diversity_scale)

    def recommendations(self, regime: str, top_n: int = 5) -> List[Dict[str, Any]]:
        """Most effective signal families for a regime, best first."""
        weights = self.tables.regime_weights.get(str(regime).lower(), {})
        ranked = sorted(weights.items(), key=lambda kv: kv[1], reverse=True)
        return [{'signal_type': name, 'weight': weight} for name, weight in ranked[:top_n]]

    # -----------------------------------------------------------------
    # History
    # -----------------------------------------------------------------

    def update_history(self, regime: Optional[str], successful: bool):
        """Record one outcome for a regime."""
        self.state.record_regime(regime, successful)

    def load_history_from_trades(self, trades: Optional[Iterable[Mapping[str, Any]]]) -> int:
        """
        Replace regime history with outcomes replayed from past trades.

        Each trade needs a regime ('market_regime' or 'regime') and a P&L
        ('pnl' or 'pnl_usdt'); others are skipped. Success = P&L > 0.

        Returns:
            Number of trades used.
        """
        trades = list(trades or [])
        if not trades:
            return 0

        self.state.reset_regimes()
        used = 0
        for trade in trades:
            regime = trade.get('market_regime', trade.get('regime'))
            pnl = trade.get('pnl', trade.get('pnl_usdt'))
            if not regime or pnl is None:
                continue
            try:
                successful = float(pnl) > 0
            except (TypeError, ValueError):
                logger.warning(f"Skipping trade with non-numeric P&L: {pnl!r}")
                continue
            self.state.record_regime(normalize_regime(regime, allow_neutral=True), successful)
            used += 1

        logger.info(f"Loaded regime history from {used}/{len(trades)} trades")
        return used

    def reset(self):
        self._logged_bonus = False

    def __repr__(self) -> str:
        return f"RegimeContextModel(regimes={sorted(self.tables.regime_weights)})"
