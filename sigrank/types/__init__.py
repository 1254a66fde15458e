# -*- coding: utf-8 -*-
"""
SigRank - Core Types
=====================
Immutable records passed between the scoring and backtest stages.

    candle.py  Candle: one OHLCV bar, epoch-ms timestamp
    signal.py  Signal, RegimeLabel: detector output and regime per candle
    match.py   SignalCombination, Match, Strategy: backtest records
"""

from sigrank.types.candle import Candle
from sigrank.types.signal import (
    Signal,
    SignalType,
    RegimeLabel,
    REGIMES,
    normalize_regime,
    classify_signal,
    signal_type_of,
    signal_strength_of,
)
from sigrank.types.match import (
    SignalCombination,
    Match,
    Strategy,
)


__all__ = [
    'Candle',
    'Signal',
    'SignalType',
    'RegimeLabel',
    'REGIMES',
    'normalize_regime',
    'classify_signal',
    'signal_type_of',
    'signal_strength_of',
    'SignalCombination',
    'Match',
    'Strategy',
]
