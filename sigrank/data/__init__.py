# -*- coding: utf-8 -*-
"""
SigRank - Data Module
======================
Candle intake and timeframe arithmetic.

    timeframes.py  timeframe_minutes(), window_candles()
    candles.py     validate_candles(), candles_from_frame()
"""

from sigrank.data.timeframes import (
    UNIT_MINUTES,
    timeframe_minutes,
    timeframe_ms,
    window_candles,
    to_pandas_freq,
)
from sigrank.data.candles import (
    ValidationResult,
    validate_candles,
    candles_from_frame,
    candles_to_frame,
)


__all__ = [
    'UNIT_MINUTES',
    'timeframe_minutes',
    'timeframe_ms',
    'window_candles',
    'to_pandas_freq',
    'ValidationResult',
    'validate_candles',
    'candles_from_frame',
    'candles_to_frame',
]
