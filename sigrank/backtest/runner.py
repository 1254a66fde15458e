# -*- coding: utf-8 -*-
"""
SigRank - Backtest Runner
==========================
FILE: sigrank/backtest/runner.py

Runs one signal-combination backtest from candles to ranked strategies.

Stages (forward only):
    collecting   → indicators and per-candle regimes
    enumerating  → qualifying signal combinations, chunked over the pool
    simulating   → forward-window outcome per combination
    aggregating  → regime-segmented strategy statistics (run_and_rank only)
    ranked

Usage:
    from sigrank.backtest import run_backtest, run_and_rank
    from sigrank.config import BacktestConfig

    config = BacktestConfig(coin='BTC', timeframe='1h', time_window='4h',
                            target_gain_pct=1.5, min_combined_strength=120)

    result = run_and_rank(candles, detect_signals, config,
                          get_indicators=get_indicators,
                          regime_history=regimes)

    print(result.summary)
    for strategy in result.aggregation.top(5):
        print(strategy)
"""

from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import logging
import time

import pandas as pd
from tqdm import tqdm

from sigrank.backtest.aggregator import AggregationResult, aggregate
from sigrank.backtest.enumerator import (
    MIN_STABLE_INDEX,
    CombinationEnumerator,
    DetectFn,
    EnumerationResult,
)
from sigrank.backtest.pool import ChunkPool
from sigrank.backtest.simulator import OutcomeSimulator
from sigrank.config.loader import BacktestConfig
from sigrank.data.candles import candles_from_frame
from sigrank.types.candle import Candle
from sigrank.types.match import Match
from sigrank.types.signal import RegimeLabel

logger = logging.getLogger(__name__)


IndicatorFn = Callable[[Sequence[Candle], Any], Dict[str, Any]]


# =============================================================================
# RUN STATE
# =============================================================================

class RunState(Enum):
    IDLE = 'idle'
    COLLECTING = 'collecting'
    ENUMERATING = 'enumerating'
    SIMULATING = 'simulating'
    AGGREGATING = 'aggregating'
    RANKED = 'ranked'


_ORDER = list(RunState)


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class BacktestResult:
    """Matches, run summary and detected signal counts."""
    matches: List[Match] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    signal_counts: Dict[str, int] = field(default_factory=dict)
    aggregation: Optional[AggregationResult] = None

    @property
    def successful_matches(self) -> List[Match]:
        return [m for m in self.matches if m.successful]

    def to_frame(self) -> pd.DataFrame:
        """One row per match, signals flattened to the combination name."""
        rows = []
        for m in self.matches:
            row = m.to_dict()
            row.pop('signals')
            row.pop('positions')
            rows.append(row)
        return pd.DataFrame(rows)

    def __str__(self) -> str:
        s = self.summary
        lines = [
            "=" * 50,
            "SIGNAL COMBINATION BACKTEST",
            "=" * 50,
            f"Coin:             {s.get('coin')} ({s.get('timeframe')})",
            f"Candles:          {s.get('processed_candles', 0):,} / {s.get('total_candles', 0):,}",
            f"Combinations:     {s.get('raw_combinations', 0):,}",
            f"Matches:          {s.get('matches', 0):,}",
            f"Successful:       {s.get('successful_matches', 0):,}",
            f"State:            {s.get('state')}",
        ]
        if self.aggregation is not None:
            lines.append(f"Strategies:       {len(self.aggregation):,}")
        lines.append("=" * 50)
        return "\n".join(lines)


# =============================================================================
# RUN
# =============================================================================

class BacktestRun:
    """
    One backtest pass with an explicit, forward-only state.

    Args:
        config: BacktestConfig.
        detect_signals: Per-candle detector (see CombinationEnumerator).
        get_indicators: get_indicators(candles, signal_config) → dict.
        signal_config: Passed through to both collaborators.
        scorer: Optional object with score(signals, regime, confidence)
                returning a result with total_strength (StrengthAggregator).
    """

    def __init__(
        self,
        config: Optional[BacktestConfig] = None,
        detect_signals: Optional[DetectFn] = None,
        get_indicators: Optional[IndicatorFn] = None,
        signal_config: Any = None,
        scorer: Any = None,
    ):
        if detect_signals is None:
            raise ValueError("detect_signals is required")

        self.config = config or BacktestConfig()
        self.detect_signals = detect_signals
        self.get_indicators = get_indicators
        self.signal_config = signal_config
        self.scorer = scorer

        self.pool = ChunkPool(
            chunk_size=self.config.chunk_size,
            max_workers=self.config.max_workers,
        )
        self._state = RunState.IDLE
        self.result: Optional[BacktestResult] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    def _advance(self, new_state: RunState):
        if _ORDER.index(new_state) <= _ORDER.index(self._state):
            raise ValueError(f"Cannot move from {self._state.value} to {new_state.value}")
        logger.info(f"[{self.config.coin}] {self._state.value} → {new_state.value}")
        self._state = new_state

    def cancel(self):
        """Stop dispatching further candle chunks."""
        self.pool.cancel()

    # -------------------------------------------------------------------------
    # Collecting
    # -------------------------------------------------------------------------

    def _collect_indicators(self, candles: Sequence[Candle]) -> Dict[str, Any]:
        if self.get_indicators is None:
            return {}
        try:
            indicators = self.get_indicators(candles, self.signal_config)
        except Exception as e:
            logger.error(f"Indicator computation failed, continuing without indicators: {e}")
            return {}
        return indicators if indicators is not None else {}

    def _collect_regimes(self, regime_history: Any, n: int) -> List[RegimeLabel]:
        if regime_history is None or not self.config.is_regime_aware:
            return [RegimeLabel()] * n

        labels = []
        missing = 0
        for i in range(n):
            try:
                entry = regime_history[i]
            except (IndexError, KeyError):
                entry = None
            if entry is None:
                missing += 1
            labels.append(RegimeLabel.from_raw(entry))

        if missing:
            logger.warning(f"No regime for {missing}/{n} candles, using 'unknown'")
        return labels

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        candles: Union[Sequence[Candle], pd.DataFrame],
        regime_history: Any = None,
    ) -> BacktestResult:
        """
        Enumerate and simulate over all candles.

        Raises:
            ValueError: Invalid config, unparseable timeframe, or fewer
                        than 50 candles.
        """
        if self._state is not RunState.IDLE:
            raise ValueError(f"Run already {self._state.value}; create a new BacktestRun")

        if isinstance(candles, pd.DataFrame):
            candles = candles_from_frame(candles)

        cfg = self.config
        for warning in cfg.validate():
            logger.warning(warning)

        if len(candles) < MIN_STABLE_INDEX:
            raise ValueError(
                f"Need at least {MIN_STABLE_INDEX} candles, got {len(candles)}")

        # Parse the window before any work so a bad timeframe fails the run
        simulator = OutcomeSimulator(cfg)
        started = time.perf_counter()

        self._advance(RunState.COLLECTING)
        indicators = self._collect_indicators(candles)
        regimes = self._collect_regimes(regime_history, len(candles))

        self._advance(RunState.ENUMERATING)
        enumerator = CombinationEnumerator(
            config=cfg,
            detect_signals=self.detect_signals,
            indicators=indicators,
            regimes=regimes,
            signal_config=self.signal_config,
        )
        enumeration = self._enumerate(enumerator, candles)

        self._advance(RunState.SIMULATING)
        matches = simulator.simulate_all(enumeration.combinations, candles)
        if self.scorer is not None:
            matches = self._score(matches)

        elapsed = time.perf_counter() - started
        self.result = BacktestResult(
            matches=matches,
            summary=self._summary(candles, enumeration, matches, elapsed),
            signal_counts=enumeration.signal_counts,
        )

        logger.info(
            f"[{cfg.coin}] {len(matches)} matches from "
            f"{len(enumeration.combinations)} combinations in {elapsed:.2f}s")
        return self.result

    def rank(self) -> AggregationResult:
        """Aggregate the run's matches into ranked strategies."""
        if self.result is None:
            raise ValueError("run() must complete before rank()")

        self._advance(RunState.AGGREGATING)
        aggregation = aggregate(self.result.matches, min_occurrences=self.config.min_occurrences)
        self.result.aggregation = aggregation

        self._advance(RunState.RANKED)
        self.result.summary['state'] = self._state.value
        self.result.summary['strategies'] = len(aggregation)
        self.result.summary['total_combinations_tested'] = aggregation.total_combinations_tested
        return aggregation

    def _enumerate(
        self,
        enumerator: CombinationEnumerator,
        candles: Sequence[Candle],
    ) -> EnumerationResult:
        start, stop = MIN_STABLE_INDEX, len(candles)

        pbar = None
        if self.config.show_progress:
            pbar = tqdm(total=stop - start, desc="Enumerating", unit="candles")
            self.pool.on_chunk_done = lambda lo, hi: pbar.update(hi - lo)

        try:
            chunks = self.pool.map(
                lambda lo, hi: enumerator.enumerate_range(candles, lo, hi), start, stop)
        finally:
            if pbar is not None:
                pbar.close()
                self.pool.on_chunk_done = None

        if enumerator.failures:
            logger.warning(f"Signal detection failed on {enumerator.failures} candles")

        return enumerator.finalize(EnumerationResult.merge(chunks))

    def _score(self, matches: List[Match]) -> List[Match]:
        min_score = self.config.min_score
        scored = []
        for m in matches:
            result = self.scorer.score(
                list(m.signals), regime=m.market_regime, confidence=m.regime_confidence)
            m = replace(m, score=result.total_strength)
            if min_score is None or m.score >= min_score:
                scored.append(m)

        if min_score is not None:
            logger.info(f"Score filter kept {len(scored)}/{len(matches)} matches "
                        f"(min_score={min_score})")
        return scored

    def _summary(
        self,
        candles: Sequence[Candle],
        enumeration: EnumerationResult,
        matches: List[Match],
        elapsed: float,
    ) -> Dict[str, Any]:
        successful = sum(1 for m in matches if m.successful)
        return {
            'coin': self.config.coin,
            'timeframe': self.config.timeframe,
            'total_candles': len(candles),
            'processed_candles': enumeration.processed_candles,
            'failed_candles': enumeration.failed_candles,
            'skipped_signals': enumeration.skipped_signals,
            'subsets_considered': enumeration.subsets_considered,
            'raw_combinations': len(enumeration.combinations),
            'matches': len(matches),
            'successful_matches': successful,
            'success_rate': successful / len(matches) * 100 if matches else 0.0,
            'regime_distribution': dict(sorted(Counter(m.market_regime for m in matches).items())),
            'elapsed_seconds': elapsed,
            'cancelled': self.pool.cancelled,
            'state': self._state.value,
        }

    def __repr__(self) -> str:
        return f"BacktestRun(coin={self.config.coin}, state={self._state.value})"


# =============================================================================
# ENTRY POINTS
# =============================================================================

def run_backtest(
    candles: Union[Sequence[Candle], pd.DataFrame],
    detect_signals: DetectFn,
    config: Optional[BacktestConfig] = None,
    get_indicators: Optional[IndicatorFn] = None,
    regime_history: Any = None,
    signal_config: Any = None,
    scorer: Any = None,
) -> BacktestResult:
    """Enumerate and simulate; no aggregation."""
    run = BacktestRun(
        config=config,
        detect_signals=detect_signals,
        get_indicators=get_indicators,
        signal_config=signal_config,
        scorer=scorer,
    )
    return run.run(candles, regime_history=regime_history)


def run_and_rank(
    candles: Union[Sequence[Candle], pd.DataFrame],
    detect_signals: DetectFn,
    config: Optional[BacktestConfig] = None,
    get_indicators: Optional[IndicatorFn] = None,
    regime_history: Any = None,
    signal_config: Any = None,
    scorer: Any = None,
) -> BacktestResult:
    """run_backtest followed by aggregation; result.aggregation is set."""
    run = BacktestRun(
        config=config,
        detect_signals=detect_signals,
        get_indicators=get_indicators,
        signal_config=signal_config,
        scorer=scorer,
    )
    run.run(candles, regime_history=regime_history)
    run.rank()
    return run.result
