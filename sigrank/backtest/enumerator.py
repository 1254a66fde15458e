# -*- coding: utf-8 -*-
"""
SigRank - Combination Enumerator
=================================
FILE: sigrank/backtest/enumerator.py

Per candle: detect active signals, then emit every subset whose summed raw
strength reaches the threshold.

For n active signals and sizes [r_min, r_max] the candidate space is
Σ C(n, r). Subsets are generated iteratively in lexicographic position
order. A branch is cut as soon as its partial sum plus the best possible
remainder cannot reach the threshold, so the output equals the exhaustive
filter.

Optional filters (all off by default):
    dedupe_signal_types   strongest signal per type only (per candle)
    keep_maximal_only     drop subsets contained in another kept subset (per candle)
    suppress_consecutive  drop a type signature seen on the previous candle
                          (finalize(), after chunks are merged)

Usage:
    enumerator = CombinationEnumerator(config, detect_signals,
                                       indicators=indicators, regimes=regimes)
    result = enumerator.enumerate_range(candles, 50, len(candles))
    print(result.get_stats())
"""

from collections import Counter
from dataclasses import dataclass, field
from math import comb
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import logging
import threading

from sigrank.config.loader import BacktestConfig
from sigrank.types.candle import Candle
from sigrank.types.match import SignalCombination
from sigrank.types.signal import RegimeLabel, Signal

logger = logging.getLogger(__name__)


# Indicator warm-up: candles before this index are never evaluated
MIN_STABLE_INDEX = 50

MAX_LOGGED_FAILURES = 10
_EPSILON = 1e-9

DetectFn = Callable[[Candle, Dict[str, Any], int, Any, RegimeLabel], Iterable[Any]]


# =============================================================================
# SUBSET GENERATION
# =============================================================================

def count_subsets(n: int, r_min: int, r_max: int) -> int:
    """Σ C(n, r) for r in [r_min, min(n, r_max)]."""
    return sum(comb(n, r) for r in range(max(r_min, 0), min(n, r_max) + 1))


def _best_remainders(strengths: Sequence[float], r_max: int) -> List[List[float]]:
    """best[p][k] = sum of the k largest strengths in strengths[p:]."""
    n = len(strengths)
    best = []
    for p in range(n + 1):
        ranked = sorted(strengths[p:], reverse=True)
        row = [0.0]
        for k in range(1, r_max + 1):
            row.append(row[-1] + ranked[k - 1] if k <= len(ranked) else float('-inf'))
        best.append(row)
    return best


def iter_subsets(
    strengths: Sequence[float],
    r_min: int,
    r_max: int,
    threshold: float,
) -> Iterator[Tuple[int, ...]]:
    """
    Position tuples of every subset with size in [r_min, r_max] and
    Σ strength ≥ threshold.

    Sizes ascend; within a size, tuples are lexicographic.
    """
    n = len(strengths)
    r_max = min(n, r_max)
    if r_max < max(r_min, 1):
        return

    best = _best_remainders(strengths, r_max)

    for r in range(max(r_min, 1), r_max + 1):
        chosen: List[int] = []
        sums = [0.0]
        cursor = [0]

        while cursor:
            depth = len(chosen)
            remaining = r - depth
            p = cursor[-1]

            # no room left, or nothing from p onward can reach the threshold
            if p > n - remaining or sums[-1] + best[p][remaining] < threshold - _EPSILON:
                cursor.pop()
                if chosen:
                    chosen.pop()
                    sums.pop()
                continue

            cursor[-1] = p + 1
            partial = sums[-1] + strengths[p]

            if remaining == 1:
                if partial >= threshold:
                    yield tuple(chosen) + (p,)
                continue

            if partial + best[p + 1][remaining - 1] < threshold - _EPSILON:
                continue

            chosen.append(p)
            sums.append(partial)
            cursor.append(p + 1)


# =============================================================================
# FILTERS
# =============================================================================

def dedupe_signal_types(signals: Sequence[Signal]) -> List[Signal]:
    """Strongest signal per type (first wins ties), detection order kept."""
    best: Dict[str, int] = {}
    for i, s in enumerate(signals):
        if s.type not in best or s.strength > signals[best[s.type]].strength:
            best[s.type] = i
    keep = set(best.values())
    return [s for i, s in enumerate(signals) if i in keep]


def keep_maximal(combinations: Sequence[SignalCombination]) -> List[SignalCombination]:
    """Drop combinations whose members are a proper subset of another's."""
    member_sets = [frozenset(c.positions) for c in combinations]
    return [
        c for c, members in zip(combinations, member_sets)
        if not any(members < other for other in member_sets)
    ]


def suppress_consecutive(combinations: Sequence[SignalCombination]) -> List[SignalCombination]:
    """
    Drop a type signature on the candle right after one where it occurred.

    Input must be ordered by candle index.
    """
    last_seen: Dict[Tuple[str, ...], int] = {}
    decisions: Dict[Tuple[int, Tuple[str, ...]], bool] = {}
    kept = []
    for combo in combinations:
        signature = tuple(combo.signal_types)
        key = (combo.candle_index, signature)
        if key not in decisions:
            decisions[key] = last_seen.get(signature) != combo.candle_index - 1
            last_seen[signature] = combo.candle_index
        if decisions[key]:
            kept.append(combo)
    return kept


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class EnumerationResult:
    """Combinations and counters for one candle range."""
    combinations: List[SignalCombination] = field(default_factory=list)
    signal_counts: Dict[str, int] = field(default_factory=dict)
    processed_candles: int = 0
    failed_candles: int = 0
    skipped_signals: int = 0
    subsets_considered: int = 0

    @classmethod
    def merge(cls, results: Iterable['EnumerationResult']) -> 'EnumerationResult':
        """Concatenate chunk results and restore generation order."""
        merged = cls()
        counts: Counter = Counter()
        for r in results:
            merged.combinations.extend(r.combinations)
            counts.update(r.signal_counts)
            merged.processed_candles += r.processed_candles
            merged.failed_candles += r.failed_candles
            merged.skipped_signals += r.skipped_signals
            merged.subsets_considered += r.subsets_considered
        merged.combinations.sort(key=lambda c: c.sort_key)
        merged.signal_counts = dict(sorted(counts.items()))
        return merged

    def get_stats(self) -> Dict[str, int]:
        return {
            'combinations': len(self.combinations),
            'processed_candles': self.processed_candles,
            'failed_candles': self.failed_candles,
            'skipped_signals': self.skipped_signals,
            'subsets_considered': self.subsets_considered,
        }


# =============================================================================
# ENUMERATOR
# =============================================================================

class CombinationEnumerator:
    """
    Turns candles into qualifying signal combinations.

    Reads candles, indicators, regimes and config only, so one instance can
    serve several chunks concurrently.

    Args:
        config: BacktestConfig (signal bounds, threshold, filters).
        detect_signals: detect_signals(candle, indicators, index,
                        signal_config, regime) → iterable of Signal/mapping.
        indicators: Precomputed indicator series.
        regimes: RegimeLabel per candle index (missing → unknown).
        signal_config: Passed through to the detector untouched.
    """

    def __init__(
        self,
        config: Optional[BacktestConfig] = None,
        detect_signals: Optional[DetectFn] = None,
        indicators: Optional[Dict[str, Any]] = None,
        regimes: Optional[Sequence[RegimeLabel]] = None,
        signal_config: Any = None,
    ):
        if detect_signals is None:
            raise ValueError("detect_signals is required")

        self.config = config or BacktestConfig()
        self.detect_signals = detect_signals
        self.indicators = indicators if indicators is not None else {}
        self.regimes = regimes if regimes is not None else ()
        self.signal_config = signal_config

        self._failures = 0
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Per candle
    # -------------------------------------------------------------------------

    def regime_at(self, index: int) -> RegimeLabel:
        if 0 <= index < len(self.regimes):
            return self.regimes[index]
        return RegimeLabel()

    def _record_failure(self, index: int, error: Exception):
        with self._lock:
            self._failures += 1
            count = self._failures
        if count <= MAX_LOGGED_FAILURES:
            logger.error(f"Signal detection failed at candle {index}: {error}")
        else:
            logger.debug(f"Signal detection failed at candle {index}: {error}")

    def active_signals(self, candles: Sequence[Candle], index: int) -> Tuple[List[Signal], int]:
        """
        Detected signals at one candle plus the number of records skipped.

        Raises whatever the detector raises.
        """
        candle = candles[index]
        raw = self.detect_signals(
            candle, self.indicators, index, self.signal_config, self.regime_at(index))

        signals = []
        skipped = 0
        for record in raw or ():
            try:
                signals.append(Signal.from_detector(record, index, candle.time))
            except ValueError as e:
                skipped += 1
                logger.warning(f"Skipping malformed signal at candle {index}: {e}")
        return signals, skipped

    def combinations_at(
        self,
        candles: Sequence[Candle],
        index: int,
        signals: Sequence[Signal],
    ) -> List[SignalCombination]:
        """Qualifying combinations among `signals` on candle `index`."""
        cfg = self.config
        candle = candles[index]
        regime = self.regime_at(index)
        strengths = [s.strength for s in signals]

        combos = []
        for positions in iter_subsets(
                strengths, cfg.required_signals, cfg.max_signals, cfg.min_combined_strength):
            members = tuple(signals[p] for p in positions)
            combos.append(SignalCombination(
                coin=cfg.coin,
                timeframe=cfg.timeframe,
                candle_index=index,
                time=candle.time,
                price=candle.close,
                signals=members,
                combined_strength=sum(s.strength for s in members),
                market_regime=regime.regime,
                regime_confidence=regime.confidence,
                positions=positions,
            ))

        if cfg.keep_maximal_only and len(combos) > 1:
            combos = keep_maximal(combos)
        return combos

    # -------------------------------------------------------------------------
    # Per range
    # -------------------------------------------------------------------------

    def enumerate_range(
        self,
        candles: Sequence[Candle],
        start: int,
        stop: int,
    ) -> EnumerationResult:
        """
        Enumerate candles [start, stop), clipped to [MIN_STABLE_INDEX, len).

        A candle whose detection or evaluation fails is logged and skipped.
        """
        cfg = self.config
        result = EnumerationResult()
        counts: Counter = Counter()

        for index in range(max(start, MIN_STABLE_INDEX), min(stop, len(candles))):
            try:
                signals, skipped = self.active_signals(candles, index)
                detected = [s.type for s in signals]
                if cfg.dedupe_signal_types:
                    signals = dedupe_signal_types(signals)
                combos = self.combinations_at(candles, index, signals)
            except Exception as e:
                result.failed_candles += 1
                self._record_failure(index, e)
                continue

            result.processed_candles += 1
            result.skipped_signals += skipped
            counts.update(detected)
            result.subsets_considered += count_subsets(
                len(signals), cfg.required_signals, cfg.max_signals)
            result.combinations.extend(combos)

        result.signal_counts = dict(counts)
        logger.debug(
            f"Enumerated candles [{start}, {stop}): {len(result.combinations)} combinations")
        return result

    def enumerate_all(self, candles: Sequence[Candle]) -> EnumerationResult:
        """Single-pass enumeration of the whole series, filters applied."""
        result = EnumerationResult.merge([self.enumerate_range(candles, 0, len(candles))])
        return self.finalize(result)

    def finalize(self, result: EnumerationResult) -> EnumerationResult:
        """Cross-candle filters on a merged, ordered result."""
        if self.config.suppress_consecutive:
            before = len(result.combinations)
            result.combinations = suppress_consecutive(result.combinations)
            logger.debug(
                f"Consecutive suppression removed {before - len(result.combinations)} combinations")
        return result

    @property
    def failures(self) -> int:
        return self._failures

    def reset(self):
        with self._lock:
            self._failures = 0

    def __repr__(self) -> str:
        cfg = self.config
        return (f"CombinationEnumerator(coin={cfg.coin}, "
                f"signals=[{cfg.required_signals}, {cfg.max_signals}], "
                f"min_strength={cfg.min_combined_strength})")
