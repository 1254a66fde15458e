# -*- coding: utf-8 -*-
"""
SigRank - Timeframe Parsing
============================
FILE: sigrank/data/timeframes.py

Converts timeframe strings to minutes and forward windows to candle
counts.

Format:
    <positive integer><unit>, unit one of m (minutes), h (hours),
    d (days), w (weeks). Examples: '15m', '4h', '1d', '1w'.

Usage:
    from sigrank.data.timeframes import timeframe_minutes, window_candles

    timeframe_minutes('4h')            # → 240
    window_candles('4h', '15m')        # → 16
    timeframe_minutes('4x')            # ValueError
"""

from functools import lru_cache
import re


UNIT_MINUTES = {
    'm': 1,
    'h': 60,
    'd': 1440,
    'w': 10080,
}

_TIMEFRAME_RE = re.compile(r'^\s*(\d+)\s*([mhdw])\s*$')


@lru_cache(maxsize=64)
def timeframe_minutes(tf: str) -> int:
    """
    Minutes in a timeframe string.

    Raises:
        ValueError: If the string is not '<n><m|h|d|w>' with n > 0.
    """
    match = _TIMEFRAME_RE.match(tf) if isinstance(tf, str) else None
    if match is None:
        raise ValueError(f"Unknown timeframe: {tf!r}")

    value = int(match.group(1))
    if value <= 0:
        raise ValueError(f"Timeframe must be positive: {tf!r}")
    return value * UNIT_MINUTES[match.group(2)]


def window_candles(time_window: str, timeframe: str) -> int:
    """
    Whole candles of `timeframe` that fit in `time_window`.

    Example:
        >>> window_candles('4h', '1h')
        4
        >>> window_candles('90m', '1h')
        1
    """
    return timeframe_minutes(time_window) // timeframe_minutes(timeframe)


def timeframe_ms(tf: str) -> int:
    """Timeframe length in milliseconds."""
    return timeframe_minutes(tf) * 60_000


def to_pandas_freq(tf: str) -> str:
    """Pandas offset alias for a timeframe ('4h' → '240min')."""
    return f"{timeframe_minutes(tf)}min"
