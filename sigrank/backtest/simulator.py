# -*- coding: utf-8 -*-
"""
SigRank - Outcome Simulator
============================
FILE: sigrank/backtest/simulator.py

Walks forward from each combination's entry candle and records what a
trade entered at its close would have done.

Rules:
    window     floor(minutes(time_window) / minutes(timeframe)) candles
    long hit   (high − entry) / entry × 100 ≥ target
    short hit  (entry − low) / entry × 100 ≥ target
    on hit     gross move = target, time_to_peak = hit time − entry time
    timeout    gross move from the last walked close, direction-adjusted
    drawdown   worst adverse excursion over the walk, ≤ 0, checked on each
               candle before its hit test
    cost       2 × fee + slippage, subtracted from the gross move
    success    hit AND net move > 0

Usage:
    simulator = OutcomeSimulator(config)        # ValueError on bad timeframe
    matches = simulator.simulate_all(combinations, candles)
"""

from dataclasses import fields
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from sigrank.config.loader import BacktestConfig
from sigrank.data.timeframes import window_candles
from sigrank.types.candle import Candle
from sigrank.types.match import Match, SignalCombination

logger = logging.getLogger(__name__)


_COMBINATION_FIELDS = tuple(f.name for f in fields(SignalCombination))


class OutcomeSimulator:
    """
    Forward-window trade outcome for signal combinations.

    Args:
        config: BacktestConfig (timeframe, time_window, target_gain_pct,
                direction, fee_pct, slippage_pct).

    Raises:
        ValueError: If timeframe or time_window cannot be parsed, or the
                    direction is unknown.
    """

    def __init__(self, config: Optional[BacktestConfig] = None):
        self.config = config or BacktestConfig()

        if self.config.direction not in ('long', 'short'):
            raise ValueError(f"Unknown direction: {self.config.direction}")

        self.window = window_candles(self.config.time_window, self.config.timeframe)
        self.cost_pct = self.config.round_trip_cost_pct

        if self.window == 0:
            logger.warning(
                f"time_window {self.config.time_window} is shorter than timeframe "
                f"{self.config.timeframe}; every match will time out flat")

        self._dropped = 0

    @property
    def is_long(self) -> bool:
        return self.config.direction == 'long'

    def simulate(
        self,
        combination: SignalCombination,
        candles: Sequence[Candle],
    ) -> Optional[Match]:
        """
        Simulate one combination.

        Returns:
            Match, or None if the entry candle is missing or has no price.
        """
        index = combination.candle_index
        if not 0 <= index < len(candles):
            self._dropped += 1
            logger.debug(f"Entry candle {index} out of range, dropping match")
            return None

        entry = candles[index]
        entry_price = entry.close
        if entry_price <= 0:
            self._dropped += 1
            logger.warning(f"Non-positive entry price at candle {index}, dropping match")
            return None

        target = self.config.target_gain_pct
        end = min(index + self.window, len(candles) - 1)

        max_drawdown = 0.0
        time_to_peak = None
        exit_time = None
        gross_move = None

        for i in range(index + 1, end + 1):
            candle = candles[i]

            if self.is_long:
                adverse = (candle.low - entry_price) / entry_price * 100
                favourable = (candle.high - entry_price) / entry_price * 100
            else:
                adverse = (entry_price - candle.high) / entry_price * 100
                favourable = (entry_price - candle.low) / entry_price * 100

            max_drawdown = min(max_drawdown, adverse)

            if favourable >= target:
                time_to_peak = candle.time - entry.time
                exit_time = candle.time
                gross_move = target
                break

        if gross_move is None:
            final_close = candles[end].close if end > index else entry_price
            gross_move = (final_close - entry_price) / entry_price * 100
            if not self.is_long:
                gross_move = -gross_move

        net_move = gross_move - self.cost_pct

        values = {name: getattr(combination, name) for name in _COMBINATION_FIELDS}
        return Match(
            **values,
            entry_price=entry_price,
            successful=time_to_peak is not None and net_move > 0,
            price_move=net_move,
            time_to_peak=time_to_peak,
            max_drawdown=max_drawdown,
            exit_time=exit_time,
        )

    def simulate_all(
        self,
        combinations: Iterable[SignalCombination],
        candles: Sequence[Candle],
    ) -> List[Match]:
        """Simulate in input order; combinations without an entry candle are dropped."""
        matches = []
        for combination in combinations:
            match = self.simulate(combination, candles)
            if match is not None:
                matches.append(match)
        logger.debug(f"Simulated {len(matches)} matches ({self._dropped} dropped)")
        return matches

    def get_stats(self) -> Dict[str, float]:
        return {
            'window_candles': self.window,
            'cost_pct': self.cost_pct,
            'dropped': self._dropped,
        }

    def reset(self):
        self._dropped = 0

    def __repr__(self) -> str:
        return (f"OutcomeSimulator({self.config.direction}, target={self.config.target_gain_pct}%, "
                f"window={self.window} candles)")


def simulate(
    combination: SignalCombination,
    candles: Sequence[Candle],
    config: Optional[BacktestConfig] = None,
) -> Optional[Match]:
    """One-off simulation with a fresh OutcomeSimulator."""
    return OutcomeSimulator(config).simulate(combination, candles)
