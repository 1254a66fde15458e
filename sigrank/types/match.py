# -*- coding: utf-8 -*-
"""
SigRank - Backtest Records
===========================
FILE: sigrank/types/match.py

    SignalCombination  one qualifying subset of signals on one candle
    Match              a SignalCombination plus its simulated outcome
    Strategy           aggregate statistics for (coin, signal types, regime)

All three are frozen. A Match is created once by the OutcomeSimulator and
never mutated afterwards; scoring annotations produce a new instance via
dataclasses.replace().
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from sigrank.types.signal import Signal


@dataclass(frozen=True)
class SignalCombination:
    """
    A subset of simultaneously active signals that passed the strength
    threshold.

    Attributes:
        coin: Instrument identifier
        timeframe: Candle timeframe string (e.g. '1h')
        candle_index: Entry candle index
        time: Entry candle time, epoch ms
        price: Entry candle close
        signals: Member signals, in detection order
        combined_strength: Sum of member raw strengths
        market_regime: Regime at entry
        regime_confidence: Regime classifier confidence at entry
        positions: Member positions in the candle's detected signal list
    """
    coin: str
    timeframe: str
    candle_index: int
    time: int
    price: float
    signals: Tuple[Signal, ...]
    combined_strength: float
    market_regime: str = 'unknown'
    regime_confidence: float = 0.0
    positions: Tuple[int, ...] = ()

    @property
    def signal_types(self) -> List[str]:
        """Sorted member signal types."""
        return sorted(s.type for s in self.signals)

    @property
    def combination_name(self) -> str:
        return ' + '.join(self.signal_types)

    @property
    def sort_key(self) -> Tuple[int, int, Tuple[int, ...]]:
        """Generation order: candle, subset size, then member positions."""
        return (self.candle_index, len(self.positions), self.positions)


@dataclass(frozen=True)
class Match(SignalCombination):
    """
    SignalCombination with its forward trade outcome.

    Attributes:
        entry_price: Close of the entry candle
        successful: Target hit and still profitable after costs
        price_move: Realised move in percent, net of round-trip costs
        time_to_peak: Ms from entry to the candle that hit target (None on timeout)
        max_drawdown: Worst adverse excursion in percent (<= 0)
        exit_time: Time of the target candle (None on timeout)
        score: Composite strength, set when a scorer is attached to the run
    """
    entry_price: float = 0.0
    successful: bool = False
    price_move: float = 0.0
    time_to_peak: Optional[int] = None
    max_drawdown: float = 0.0
    exit_time: Optional[int] = None
    score: Optional[float] = None

    @property
    def hit_target(self) -> bool:
        return self.time_to_peak is not None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['signals'] = [s.to_dict() for s in self.signals]
        d['combination_name'] = self.combination_name
        return d


@dataclass(frozen=True)
class Strategy:
    """
    Ranked statistics for one (coin, signal-type combination, regime) group.

    Percentages are in percent units (success_rate 0–100, moves in %).
    Durations are in ms except avg_win_duration_minutes.
    """
    coin: str
    signal_types: Tuple[str, ...]
    market_regime: str
    occurrences: int
    success_count: int
    fail_count: int
    success_rate: float
    avg_price_move: float
    gross_profit: float
    gross_loss: float
    profit_factor: float
    median_drawdown: Optional[float]
    max_drawdown: float
    time_to_peak_percentiles: Dict[int, float]
    avg_time_to_peak: float
    avg_win_duration_minutes: float
    avg_gain_on_success: float
    win_loss_ratio: float
    avg_combined_strength: float
    signal_strengths: Dict[str, float]
    regime_distribution: Dict[str, int]
    profitability_score: float
    matches: Tuple[Match, ...] = field(default=(), repr=False, compare=False)

    @property
    def combination_name(self) -> str:
        return ' + '.join(self.signal_types)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.coin, self.combination_name, self.market_regime)

    def to_dict(self, include_matches: bool = False) -> Dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if k != 'matches'}
        d['signal_types'] = list(self.signal_types)
        d['combination_name'] = self.combination_name
        if include_matches:
            d['matches'] = [m.to_dict() for m in self.matches]
        return d

    def __str__(self) -> str:
        return (f"{self.combination_name} [{self.market_regime}] "
                f"n={self.occurrences} win={self.success_rate:.1f}% "
                f"avg={self.avg_price_move:+.2f}% PF={self.profit_factor:.2f} "
                f"score={self.profitability_score:.1f}")
