# -*- coding: utf-8 -*-
"""
SigRank - Statistical Aggregator
=================================
FILE: sigrank/backtest/aggregator.py

Turns simulated matches into ranked strategies.

Grouping:
    (coin, sorted signal types) → combination
    combination × regime        → strategy candidate
    A candidate needs ≥ min_occurrences matches in its own regime.
    A combination with no surviving regime is dropped.

Metrics per strategy:
    success_rate        successes / occurrences × 100
    avg_price_move      mean net move (%)
    gross profit/loss   Σ positive moves / Σ |negative moves|
    profit_factor       profit / loss; loss 0 and profit > 0 → profit / 0.5;
                        both 0 → 1.0; capped at 20
    median_drawdown     median |max_drawdown| (mean of middle pair if even)
    time_to_peak pNN    sorted[ceil(p/100 × n) − 1], clamped; 0 if empty
    profitability_score success_rate × 0.4
                        + min(avg_price_move × 10, 100) × 0.3
                        + min(profit_factor × 10, 100) × 0.3

Output is stable-sorted by profitability_score, highest first.

Usage:
    from sigrank.backtest.aggregator import aggregate

    result = aggregate(matches, min_occurrences=3)
    for strategy in result.processed_combinations[:5]:
        print(strategy)

    df = to_frame(result.processed_combinations)
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from math import ceil
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from sigrank.types.match import Match, Strategy
from sigrank.types.signal import normalize_regime

logger = logging.getLogger(__name__)


PROFIT_FACTOR_CAP = 20.0
MIN_REALISTIC_LOSS = 0.5
NEUTRAL_PROFIT_FACTOR = 1.0
TIME_TO_PEAK_PERCENTILES = (50, 75, 80, 85, 95)


# =============================================================================
# STATISTICS
# =============================================================================

def median(values: Sequence[float]) -> Optional[float]:
    """Median of values; None for an empty sequence."""
    if len(values) == 0:
        return None
    return float(np.median(np.asarray(values, dtype=float)))


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile of an ascending-sorted sequence.

    index = ceil(p/100 × n) − 1, clamped to [0, n − 1]; 0 when empty.
    """
    n = len(sorted_values)
    if n == 0:
        return 0
    index = ceil((p / 100) * n) - 1
    return sorted_values[max(0, min(index, n - 1))]


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    """Gross profit / gross loss with degenerate-case substitution and cap."""
    if gross_loss == 0:
        if gross_profit > 0:
            return min(gross_profit / MIN_REALISTIC_LOSS, PROFIT_FACTOR_CAP)
        return NEUTRAL_PROFIT_FACTOR
    return min(gross_profit / gross_loss, PROFIT_FACTOR_CAP)


def profitability_score(success_rate: float, avg_price_move: float, pf: float) -> float:
    return (success_rate * 0.4
            + min(avg_price_move * 10, 100) * 0.3
            + min(pf * 10, 100) * 0.3)


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class AggregationResult:
    """Ranked strategies plus the number of (coin, combination) groups seen."""
    processed_combinations: List[Strategy] = field(default_factory=list)
    total_combinations_tested: int = 0

    def top(self, n: int = 10) -> List[Strategy]:
        return self.processed_combinations[:n]

    def __len__(self) -> int:
        return len(self.processed_combinations)


# =============================================================================
# AGGREGATION
# =============================================================================

def _build_strategy(
    coin: str,
    types: Tuple[str, ...],
    regime: str,
    group: List[Match],
    distribution: Dict[str, int],
) -> Strategy:
    n = len(group)
    successes = [m for m in group if m.successful]
    moves = [m.price_move for m in group]

    gross_profit = sum(m for m in moves if m > 0)
    gross_loss = sum(abs(m) for m in moves if m < 0)
    pf = profit_factor(gross_profit, gross_loss)

    success_rate = len(successes) / n * 100
    avg_move = sum(moves) / n

    ttp = sorted(m.time_to_peak for m in group
                 if m.time_to_peak is not None and m.time_to_peak > 0)
    win_ttp = [m.time_to_peak for m in successes
               if m.time_to_peak is not None and m.time_to_peak > 0]
    avg_win_ttp = sum(win_ttp) / len(win_ttp) if win_ttp else 0.0

    strength_sums: Dict[str, float] = defaultdict(float)
    strength_counts: Dict[str, int] = defaultdict(int)
    for m in group:
        for s in m.signals:
            strength_sums[s.type] += s.strength
            strength_counts[s.type] += 1

    fail_count = n - len(successes)

    return Strategy(
        coin=coin,
        signal_types=types,
        market_regime=regime,
        occurrences=n,
        success_count=len(successes),
        fail_count=fail_count,
        success_rate=success_rate,
        avg_price_move=avg_move,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=pf,
        median_drawdown=median([abs(m.max_drawdown) for m in group]),
        max_drawdown=abs(min((m.max_drawdown for m in group), default=0.0)),
        time_to_peak_percentiles={p: percentile(ttp, p) for p in TIME_TO_PEAK_PERCENTILES},
        avg_time_to_peak=sum(ttp) / len(ttp) if ttp else 0.0,
        avg_win_duration_minutes=avg_win_ttp / 60_000 if avg_win_ttp > 0 else 0.0,
        avg_gain_on_success=(sum(m.price_move for m in successes) / len(successes)
                             if successes else 0.0),
        win_loss_ratio=(len(successes) / fail_count if fail_count > 0
                        else float(len(successes))),
        avg_combined_strength=sum(m.combined_strength for m in group) / n,
        signal_strengths={t: round(strength_sums[t] / strength_counts[t], 2)
                          for t in sorted(strength_sums)},
        regime_distribution=dict(distribution),
        profitability_score=profitability_score(success_rate, avg_move, pf),
        matches=tuple(group),
    )


def aggregate(matches: Sequence[Match], min_occurrences: int = 2) -> AggregationResult:
    """
    Group matches into regime-specific strategies and rank them.

    Args:
        matches: Simulated matches (any order; ties keep input order).
        min_occurrences: Minimum matches per (combination, regime) group.

    Returns:
        AggregationResult with strategies sorted by profitability_score.
    """
    combinations: Dict[Tuple[str, Tuple[str, ...]], List[Match]] = {}
    for match in matches:
        key = (match.coin, tuple(match.signal_types))
        combinations.setdefault(key, []).append(match)

    strategies: List[Strategy] = []
    dropped = 0
    for (coin, types), combo_matches in combinations.items():
        by_regime: Dict[str, List[Match]] = {}
        for match in combo_matches:
            by_regime.setdefault(normalize_regime(match.market_regime), []).append(match)

        distribution = Counter(normalize_regime(m.market_regime) for m in combo_matches)

        survivors = [
            _build_strategy(coin, types, regime, group, distribution)
            for regime, group in by_regime.items()
            if len(group) >= min_occurrences
        ]
        if not survivors:
            dropped += 1
        strategies.extend(survivors)

    strategies.sort(key=lambda s: s.profitability_score, reverse=True)

    logger.info(
        f"Aggregated {len(matches)} matches: {len(combinations)} combinations, "
        f"{len(strategies)} strategies kept, {dropped} combinations dropped "
        f"(min_occurrences={min_occurrences})")

    return AggregationResult(
        processed_combinations=strategies,
        total_combinations_tested=len(combinations),
    )


# =============================================================================
# POST-PROCESSING
# =============================================================================

def best_match_per_candle(
    matches: Sequence[Match],
    strategies: Sequence[Strategy],
) -> List[Match]:
    """
    Keep one match per entry time: the one whose strategy ranks best by
    profit factor (high), then max drawdown (low), then success rate (high).

    Matches without a surviving strategy rank last. Output is ordered by
    entry time.
    """
    stats = {s.key: s for s in strategies}

    def rank(m: Match) -> Tuple[float, float, float]:
        s = stats.get((m.coin, m.combination_name, normalize_regime(m.market_regime)))
        if s is None:
            return (float('inf'), float('inf'), float('inf'))
        return (-s.profit_factor, s.max_drawdown, -s.success_rate)

    by_time: Dict[int, List[Match]] = {}
    for m in matches:
        by_time.setdefault(m.time, []).append(m)

    return [min(group, key=rank) for _, group in sorted(by_time.items())]


def summarize(strategies: Sequence[Strategy]) -> Dict[str, object]:
    """Split strategies into profitable (≥ 50% win, > 1 occurrence) and the rest."""
    profitable = [s for s in strategies if s.success_rate >= 50 and s.occurrences > 1]
    unprofitable = [s for s in strategies if s not in profitable]
    return {
        'total_occurrences': sum(s.occurrences for s in strategies),
        'profitable_combinations': profitable,
        'unprofitable_combinations': unprofitable,
    }


def to_frame(strategies: Sequence[Strategy]) -> pd.DataFrame:
    """Ranked strategies as a DataFrame (one row per strategy)."""
    rows = []
    for rank, s in enumerate(strategies, start=1):
        row = s.to_dict()
        percentiles = row.pop('time_to_peak_percentiles')
        for p, value in percentiles.items():
            row[f'time_to_peak_p{p}'] = value
        row['rank'] = rank
        rows.append(row)

    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.set_index('rank')
    return df
