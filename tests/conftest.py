# -*- coding: utf-8 -*-
"""
Pytest Configuration and Shared Fixtures
=========================================
Synthetic candles, a scheduled signal detector and regime histories for
the sigrank test suite.
"""
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import pytest

from sigrank.types import Candle, Match, Signal
from sigrank.signals import PerformanceState, StrengthAggregator

HOUR_MS = 3_600_000
START_MS = 1_704_067_200_000  # 2024-01-01 00:00 UTC


# =============================================================================
# BUILDERS
# =============================================================================

def make_candles(
    closes: Sequence[float],
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    step_ms: int = HOUR_MS,
) -> List[Candle]:
    """Candles from explicit closes; high/low default to close ± 0.1%."""
    candles = []
    for i, close in enumerate(closes):
        high = highs[i] if highs is not None else close * 1.001
        low = lows[i] if lows is not None else close * 0.999
        candles.append(Candle(
            time=START_MS + i * step_ms,
            open=close,
            high=high,
            low=low,
            close=close,
            volume=1000.0,
        ))
    return candles


def make_match(
    types: Sequence[str],
    regime: str = 'uptrend',
    successful: bool = True,
    price_move: float = 0.75,
    max_drawdown: float = -0.5,
    time_to_peak: Optional[int] = HOUR_MS,
    candle_index: int = 60,
    coin: str = 'BTC',
    strength: float = 50.0,
) -> Match:
    signals = tuple(Signal(type=t, strength=strength, candle_index=candle_index) for t in types)
    time = START_MS + candle_index * HOUR_MS
    return Match(
        coin=coin,
        timeframe='1h',
        candle_index=candle_index,
        time=time,
        price=100.0,
        signals=signals,
        combined_strength=strength * len(signals),
        market_regime=regime,
        regime_confidence=0.7,
        positions=tuple(range(len(signals))),
        entry_price=100.0,
        successful=successful,
        price_move=price_move,
        time_to_peak=time_to_peak if successful else None,
        max_drawdown=max_drawdown,
        exit_time=time + time_to_peak if successful and time_to_peak else None,
    )


class ScheduledDetector:
    """
    Detector stub: emits the signals scheduled for a candle index and
    records every call.
    """

    def __init__(self, schedule: Optional[Dict[int, List[Any]]] = None, default=None):
        self.schedule = schedule or {}
        self.default = default
        self.calls: List[int] = []
        self.indicators_seen: List[Dict[str, Any]] = []
        self.regimes_seen: Dict[int, Any] = {}

    def __call__(self, candle, indicators, index, signal_config, regime):
        self.calls.append(index)
        self.indicators_seen.append(indicators)
        self.regimes_seen[index] = regime
        if index in self.schedule:
            return list(self.schedule[index])
        if self.default is not None:
            return self.default(candle, index)
        return []


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def flat_candles():
    """120 hourly candles at 100 with a ±0.1% range (never hits a 1% target)."""
    return make_candles([100.0] * 120)


@pytest.fixture
def sample_ohlcv_data():
    """Random-walk OHLCV DataFrame with a DatetimeIndex."""
    np.random.seed(42)
    n_bars = 300

    returns = np.random.normal(0.0002, 0.01, n_bars)
    prices = 30000 * np.cumprod(1 + returns)

    dates = pd.date_range(start='2024-01-01', periods=n_bars, freq='1h', tz='UTC')
    df = pd.DataFrame({
        'open': prices * (1 + np.random.uniform(-0.003, 0.003, n_bars)),
        'high': prices * (1 + np.random.uniform(0.001, 0.015, n_bars)),
        'low': prices * (1 - np.random.uniform(0.001, 0.015, n_bars)),
        'close': prices,
        'volume': np.random.uniform(100, 10000, n_bars),
    }, index=dates)

    df['high'] = df[['open', 'high', 'close']].max(axis=1)
    df['low'] = df[['open', 'low', 'close']].min(axis=1)
    return df


@pytest.fixture
def random_candles(sample_ohlcv_data):
    from sigrank.data import candles_from_frame
    return list(candles_from_frame(sample_ohlcv_data))


@pytest.fixture
def abc_detector():
    """Signals A/B/C (40/50/60) on candle 55 only."""
    return ScheduledDetector({
        55: [
            {'type': 'A', 'strength': 40},
            {'type': 'B', 'strength': 50},
            {'type': 'C', 'strength': 60},
        ],
    })


@pytest.fixture
def busy_detector():
    """Deterministic signals derived from the candle index."""
    def emit(candle, index):
        signals = []
        if index % 3 == 0:
            signals.append({'type': 'rsi_oversold', 'strength': 55 + index % 7})
        if index % 4 == 0:
            signals.append({'type': 'macd_cross', 'strength': 60})
        if index % 5 < 2:
            signals.append({'type': 'volume_spike', 'strength': 45 + index % 11})
        if index % 2 == 0:
            signals.append({'type': 'ema_cross', 'strength': 50})
        return signals

    return ScheduledDetector(default=emit)


@pytest.fixture
def regime_history():
    """Alternating uptrend / ranging blocks of 20 candles."""
    labels = []
    for i in range(300):
        regime = 'uptrend' if (i // 20) % 2 == 0 else 'ranging'
        labels.append({'regime': regime, 'confidence': 0.75})
    return labels


@pytest.fixture
def performance_state():
    return PerformanceState()


@pytest.fixture
def scorer(performance_state):
    return StrengthAggregator(state=performance_state)
