# -*- coding: utf-8 -*-
"""
SigRank - Signal Correlation Model
===================================
FILE: sigrank/signals/correlation.py

Pairwise correlation between signal types, and the penalty / bonus a
combination earns from it. Highly correlated signals (RSI + Stochastic)
largely restate each other; strongly anti-correlated ones confirm from
independent angles.

Rules:
    correlation(a, b):  table lookup, symmetric, 0.0 for unknown or a == b
    penalty:            mean |c| over pairs with |c| ≥ 0.70, × 0.10, cap 0.25
    bonus:              Σ |c| × 0.20 over pairs with c < -0.5, cap 0.30
    diversity_score:    unique-type ratio − penalty + bonus, clamped [0, 1]
    filter_correlated:  greedy by descending strength; drop a signal whose
                        type is already taken or whose |c| with any kept
                        signal is ≥ max_correlation

Signals without a type are left out of every pairwise check.

Usage:
    from sigrank.signals.correlation import CorrelationModel

    model = CorrelationModel()
    model.correlation('rsi', 'stochastic')        # → 0.85
    model.penalty(signals)                        # → 0.085
    report = model.report(signals)
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Iterator, List, Optional, Sequence, Set, Tuple
import logging

from sigrank.config.loader import ScoringConfig
from sigrank.config.tables import SignalTables, load_tables, pair_key
from sigrank.types.signal import signal_type_of, signal_strength_of

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class CorrelationPair:
    """One correlated pair found in a combination."""
    type_a: str
    type_b: str
    correlation: float
    is_high: bool

    @property
    def pair(self) -> str:
        return f"{self.type_a}+{self.type_b}"


@dataclass(frozen=True)
class CorrelationReport:
    """Correlation summary for one signal combination."""
    pairs: Tuple[CorrelationPair, ...] = field(default=())
    penalty: float = 0.0
    bonus: float = 0.0
    diversity_score: float = 0.0

    @property
    def has_high_correlations(self) -> bool:
        return any(p.is_high for p in self.pairs)

    @property
    def correlation_count(self) -> int:
        return len(self.pairs)

    @property
    def average_correlation(self) -> float:
        if not self.pairs:
            return 0.0
        return sum(abs(p.correlation) for p in self.pairs) / len(self.pairs)

    def to_dict(self) -> dict:
        return {
            'pairs': [(p.type_a, p.type_b, p.correlation) for p in self.pairs],
            'penalty': self.penalty,
            'bonus': self.bonus,
            'diversity_score': self.diversity_score,
            'has_high_correlations': self.has_high_correlations,
            'correlation_count': self.correlation_count,
            'average_correlation': self.average_correlation,
        }


# =============================================================================
# MODEL
# =============================================================================

class CorrelationModel:
    """
    Correlation lookups and combination penalties over the static table.

    The table is shared and read-only. The only instance state is the
    set of pairs already reported as missing, so each gap is logged once
    per model rather than once per candle.

    Args:
        config: ScoringConfig with threshold, factors and caps.
        tables: SignalTables; defaults to the bundled tables.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        tables: Optional[SignalTables] = None,
    ):
        self.config = config or ScoringConfig()
        self.tables = tables or load_tables()
        self._expected = {pair_key(a, b) for a, b in self.tables.expected_pairs}
        self._logged: Set[str] = set()

    # -----------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------

    def correlation(self, type_a: Optional[str], type_b: Optional[str]) -> float:
        """Correlation in [-1, 1]; 0.0 for unknown pairs or identical types."""
        if not type_a or not type_b:
            return 0.0
        a, b = type_a.lower(), type_b.lower()
        if a == b:
            return 0.0

        key = pair_key(a, b)
        value = self.tables.correlations.get(key)
        if value is not None:
            return value

        if key in self._expected:
            tag = f"missing:{'+'.join(sorted(key))}"
            if tag not in self._logged:
                self._logged.add(tag)
                logger.debug(f"Expected correlation pair not in table: {a} / {b}")
        return 0.0

    def iter_pairs(self, signals: Sequence[Any]) -> Iterator[Tuple[str, str, float]]:
        """Yield (type_a, type_b, correlation) for every typed pair."""
        types = [t for t in (signal_type_of(s) for s in signals) if t]
        for a, b in combinations(types, 2):
            yield a, b, self.correlation(a, b)

    def detect(self, signals: Sequence[Any]) -> List[CorrelationPair]:
        """All pairs whose |correlation| reaches the threshold."""
        threshold = self.config.correlation_threshold
        found = []
        for a, b, c in self.iter_pairs(signals):
            if abs(c) >= threshold:
                found.append(CorrelationPair(a, b, c, is_high=abs(c) >= threshold))
        return found

    # -----------------------------------------------------------------
    # Penalty / bonus
    # -----------------------------------------------------------------

    def penalty(self, signals: Sequence[Any]) -> float:
        """Redundancy penalty in [0, max_correlation_penalty]."""
        if not signals or len(signals) < 2:
            return 0.0

        threshold = self.config.correlation_threshold
        high = [abs(c) for _, _, c in self.iter_pairs(signals) if abs(c) >= threshold]
        if not high:
            return 0.0

        mean_abs = sum(high) / len(high)
        return min(self.config.max_correlation_penalty,
                   mean_abs * self.config.correlation_penalty_factor)

    def bonus(self, signals: Sequence[Any]) -> float:
        """Complementary-signal bonus in [0, max_correlation_bonus]."""
        if not signals or len(signals) < 2:
            return 0.0

        cutoff = self.config.negative_correlation_threshold
        total = sum(
            abs(c) * self.config.correlation_bonus_factor
            for _, _, c in self.iter_pairs(signals)
            if c < cutoff
        )
        result = min(self.config.max_correlation_bonus, total)

        if result > 0:
            combo = '+'.join(sorted(t for t in (signal_type_of(s) for s in signals) if t))
            tag = f"bonus:{combo}"
            if tag not in self._logged:
                self._logged.add(tag)
                logger.debug(f"[{combo}] complementary correlation bonus {result:.3f}")
        return result

    def diversity_score(self, signals: Sequence[Any]) -> float:
        """Unique-type ratio adjusted by penalty and bonus, in [0, 1]."""
        if not signals:
            return 0.0
        types = [t for t in (signal_type_of(s) for s in signals) if t]
        if not types:
            return 0.0

        base = len(set(types)) / len(types)
        score = base - self.penalty(signals) + self.bonus(signals)
        return max(0.0, min(1.0, score))

    # -----------------------------------------------------------------
    # Filtering / reporting
    # -----------------------------------------------------------------

    def filter_correlated(
        self,
        signals: Sequence[Any],
        max_correlation: Optional[float] = None,
    ) -> List[Any]:
        """
        Greedy de-correlation. Returns the kept signals in the order they
        were accepted (strongest first).
        """
        if not signals or len(signals) <= 1:
            return list(signals or [])
        if max_correlation is None:
            max_correlation = self.config.correlation_threshold

        def strength(s):
            value = signal_strength_of(s)
            return value if isinstance(value, (int, float)) else 0.0

        kept: List[Any] = []
        kept_types: List[str] = []
        for signal in sorted(signals, key=strength, reverse=True):
            signal_type = signal_type_of(signal)
            if signal_type is None:
                continue
            if signal_type in kept_types:
                continue
            if any(abs(self.correlation(signal_type, t)) >= max_correlation
                   for t in kept_types):
                continue
            kept.append(signal)
            kept_types.append(signal_type)
        return kept

    def report(self, signals: Sequence[Any]) -> CorrelationReport:
        """Pairs, penalty, bonus and diversity in one pass."""
        signals = list(signals or [])
        return CorrelationReport(
            pairs=tuple(self.detect(signals)),
            penalty=self.penalty(signals),
            bonus=self.bonus(signals),
            diversity_score=self.diversity_score(signals),
        )

    def missing_expected_pairs(self) -> List[Tuple[str, str]]:
        return self.tables.missing_expected_pairs()

    def reset(self):
        """Forget which diagnostics were already logged."""
        self._logged.clear()

    def __repr__(self) -> str:
        return (f"CorrelationModel(threshold={self.config.correlation_threshold}, "
                f"pairs={len(self.tables.correlations)})")
