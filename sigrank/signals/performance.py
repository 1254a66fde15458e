# -*- coding: utf-8 -*-
"""
SigRank - Performance State
============================
FILE: sigrank/signals/performance.py

Running success statistics that the scorer learns from:

    per signal type:            total, successes, mean strength
    per signal type × regime:   total, successes
    per regime:                 total, successes

One PerformanceState belongs to one scoring context (usually one backtest
run) and is passed in through the constructor of the models that read it.
Writes are serialised with a lock so chunks scored on worker threads can
share an instance; reads take the lock too but callers must tolerate
values that are one update stale.

Defaults:
    - No history for a regime → success rate 0.5 (neutral)
    - Per-type learning only counts once sample_count ≥ min_samples

Usage:
    from sigrank.signals.performance import PerformanceState

    state = PerformanceState()
    state.record_signal('macd', successful=True, regime='uptrend', strength=72)
    state.record_regime('uptrend', successful=True)

    state.regime_success_rate('uptrend')    # → 1.0
    snap = state.snapshot()                 # plain dict copy
    state.reset()
"""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging
import threading

from sigrank.types.signal import normalize_regime

logger = logging.getLogger(__name__)


NEUTRAL_SUCCESS_RATE = 0.5


@dataclass
class _Counter:
    total: int = 0
    successes: int = 0

    def add(self, successful: bool):
        self.total += 1
        if successful:
            self.successes += 1

    @property
    def success_rate(self) -> float:
        return self.successes / self.total if self.total else 0.0


@dataclass
class _TypeRecord:
    counter: _Counter = field(default_factory=_Counter)
    strength_sum: float = 0.0
    strength_count: int = 0
    by_regime: Dict[str, _Counter] = field(default_factory=dict)

    @property
    def average_strength(self) -> float:
        return self.strength_sum / self.strength_count if self.strength_count else 0.0


class PerformanceState:
    """
    Thread-safe success-rate tracker for signal types and regimes.

    Nothing here is global: two scorers with two states never see each
    other's history.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._types: Dict[str, _TypeRecord] = {}
        self._regimes: Dict[str, _Counter] = {}

    # -----------------------------------------------------------------
    # Updates
    # -----------------------------------------------------------------

    def record_signal(
        self,
        signal_type: str,
        successful: bool,
        regime: Optional[str] = None,
        strength: Optional[float] = None,
    ):
        """Record one outcome for a signal type (and its regime bucket)."""
        if not signal_type:
            return
        signal_type = signal_type.lower()
        regime = normalize_regime(regime, allow_neutral=True)

        with self._lock:
            record = self._types.setdefault(signal_type, _TypeRecord())
            record.counter.add(successful)
            if isinstance(strength, (int, float)):
                record.strength_sum += float(strength)
                record.strength_count += 1
            record.by_regime.setdefault(regime, _Counter()).add(successful)

    def record_regime(self, regime: Optional[str], successful: bool):
        """Record one outcome for a regime."""
        if not regime:
            return
        regime = normalize_regime(regime, allow_neutral=True)
        with self._lock:
            self._regimes.setdefault(regime, _Counter()).add(successful)

    def reset_regimes(self):
        """Clear regime history only (before replaying a trade log)."""
        with self._lock:
            self._regimes.clear()

    def reset(self):
        """Clear all history."""
        with self._lock:
            self._types.clear()
            self._regimes.clear()

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def type_performance(self, signal_type: str) -> Optional[Dict[str, float]]:
        """Overall stats for a signal type, None without history."""
        with self._lock:
            record = self._types.get(signal_type.lower()) if signal_type else None
            if record is None or record.counter.total == 0:
                return None
            return {
                'sample_count': record.counter.total,
                'success_rate': record.counter.success_rate,
                'average_strength': record.average_strength,
            }

    def type_regime_performance(
        self, signal_type: str, regime: str,
    ) -> Optional[Dict[str, float]]:
        """Stats for a signal type within one regime, None without history."""
        regime = normalize_regime(regime, allow_neutral=True)
        with self._lock:
            record = self._types.get(signal_type.lower()) if signal_type else None
            counter = record.by_regime.get(regime) if record else None
            if counter is None or counter.total == 0:
                return None
            return {'sample_count': counter.total, 'success_rate': counter.success_rate}

    def regime_performance(self, regime: str) -> Optional[Dict[str, float]]:
        """Stats for a regime, None without history."""
        regime = normalize_regime(regime, allow_neutral=True)
        with self._lock:
            counter = self._regimes.get(regime)
            if counter is None or counter.total == 0:
                return None
            return {'sample_count': counter.total, 'success_rate': counter.success_rate}

    def regime_success_rate(self, regime: str) -> float:
        """Regime success rate, NEUTRAL_SUCCESS_RATE without history."""
        perf = self.regime_performance(regime)
        return perf['success_rate'] if perf else NEUTRAL_SUCCESS_RATE

    # -----------------------------------------------------------------
    # Inspection
    # -----------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of all counters as plain dicts."""
        with self._lock:
            types = {
                t: {
                    'total': r.counter.total,
                    'successes': r.counter.successes,
                    'average_strength': r.average_strength,
                    'by_regime': {
                        g: {'total': c.total, 'successes': c.successes}
                        for g, c in r.by_regime.items()
                    },
                }
                for t, r in self._types.items()
            }
            regimes = {
                g: {'total': c.total, 'successes': c.successes}
                for g, c in self._regimes.items()
            }
        return deepcopy({'types': types, 'regimes': regimes})

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                'signal_types': len(self._types),
                'signal_samples': sum(r.counter.total for r in self._types.values()),
                'regimes': len(self._regimes),
                'regime_samples': sum(c.total for c in self._regimes.values()),
            }

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (f"PerformanceState(types={stats['signal_types']}, "
                f"samples={stats['signal_samples']}, regimes={stats['regimes']})")
