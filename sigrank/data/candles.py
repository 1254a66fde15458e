# -*- coding: utf-8 -*-
"""
SigRank - Candle Intake
========================
FILE: sigrank/data/candles.py

Validates an OHLCV DataFrame and converts it into the immutable Candle
sequence the backtest runs on.

Accepted frames:
    - DatetimeIndex, or a 'time' (epoch ms) / 'timestamp' column
    - Columns: open, high, low, close (volume optional)

Usage:
    from sigrank.data.candles import validate_candles, candles_from_frame

    result = validate_candles(df, timeframe='1h')
    print(result)
    if result.is_valid:
        candles = candles_from_frame(df)
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from sigrank.data.timeframes import timeframe_ms
from sigrank.types.candle import Candle

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS = ['open', 'high', 'low', 'close']


# =============================================================================
# Validation Result
# =============================================================================

@dataclass
class ValidationResult:
    """Result of candle frame validation."""
    is_valid: bool
    row_count: int
    gaps: List[Tuple[int, int, int]] = field(default_factory=list)  # start ms, end ms, missing
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        lines = [
            f"Validation: {status}",
            f"  Rows: {self.row_count:,}",
            f"  Gaps: {len(self.gaps)}",
        ]
        if self.warnings:
            lines.append(f"  Warnings: {len(self.warnings)}")
            for w in self.warnings[:3]:
                lines.append(f"    - {w}")
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for e in self.errors:
                lines.append(f"    - {e}")
        return "\n".join(lines)


# =============================================================================
# Conversion
# =============================================================================

def _epoch_ms(df: pd.DataFrame) -> np.ndarray:
    """Epoch-ms timestamps for every row."""
    if isinstance(df.index, pd.DatetimeIndex):
        index = df.index
        if index.tz is None:
            index = index.tz_localize('UTC')
        return index.as_unit('ms').asi8.astype(np.int64)

    if 'time' in df.columns:
        col = df['time']
        if pd.api.types.is_numeric_dtype(col):
            return col.to_numpy(dtype=np.int64)
        return _epoch_ms(df.set_index(pd.to_datetime(col, utc=True)))

    if 'timestamp' in df.columns:
        return _epoch_ms(df.set_index(pd.to_datetime(df['timestamp'], utc=True)))

    raise ValueError("DataFrame must have DatetimeIndex or 'time'/'timestamp' column")


def validate_candles(df: pd.DataFrame, timeframe: Optional[str] = None) -> ValidationResult:
    """
    Check an OHLCV frame before conversion.

    Checks:
        - Required columns present, frame non-empty
        - Timestamps present and strictly increasing
        - Positive prices, high ≥ low, non-negative volume
        - Gaps against the expected timeframe (if given)
    """
    errors: List[str] = []
    warnings: List[str] = []
    gaps: List[Tuple[int, int, int]] = []

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        errors.append(f"Missing columns: {missing}")
    if len(df) == 0:
        errors.append("DataFrame is empty")
    if 'volume' not in df.columns:
        warnings.append("Column 'volume' not present, using 0.0")

    times = None
    try:
        times = _epoch_ms(df)
    except ValueError as e:
        errors.append(str(e))

    if times is not None and len(times) > 1:
        diffs = np.diff(times)
        if (diffs <= 0).any():
            errors.append(f"Timestamps not strictly increasing in {int((diffs <= 0).sum())} rows")

        if timeframe is not None:
            step = timeframe_ms(timeframe)
            for pos in np.flatnonzero(diffs > step * 1.5):
                gaps.append((int(times[pos]), int(times[pos + 1]), int(diffs[pos] // step) - 1))
            if gaps:
                total = sum(g[2] for g in gaps)
                warnings.append(f"Found {len(gaps)} gaps, {total} missing candles total")

    if not errors and len(df) > 0:
        for col in REQUIRED_COLUMNS:
            if (df[col] <= 0).any():
                errors.append(f"Non-positive values in '{col}'")
        invalid_hl = int((df['high'] < df['low']).sum())
        if invalid_hl > 0:
            errors.append(f"High < Low in {invalid_hl} rows")
        if 'volume' in df.columns and (df['volume'] < 0).any():
            errors.append("Negative values in 'volume'")

    return ValidationResult(
        is_valid=len(errors) == 0,
        row_count=len(df),
        gaps=gaps,
        warnings=warnings,
        errors=errors,
    )


def candles_from_frame(df: pd.DataFrame) -> Tuple[Candle, ...]:
    """
    Convert an OHLCV DataFrame to a tuple of Candles (row order kept).

    Raises:
        ValueError: If required columns or timestamps are missing.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    times = _epoch_ms(df)
    volume = (df['volume'].to_numpy(dtype=float) if 'volume' in df.columns
              else np.zeros(len(df)))

    candles = tuple(
        Candle(time=int(t), open=float(o), high=float(h), low=float(l),
               close=float(c), volume=float(v))
        for t, o, h, l, c, v in zip(
            times,
            df['open'].to_numpy(dtype=float),
            df['high'].to_numpy(dtype=float),
            df['low'].to_numpy(dtype=float),
            df['close'].to_numpy(dtype=float),
            volume,
        )
    )
    logger.debug(f"Converted {len(candles)} rows to candles")
    return candles


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """DataFrame with a UTC DatetimeIndex from a candle sequence."""
    df = pd.DataFrame([c.to_dict() for c in candles],
                      columns=['time', 'open', 'high', 'low', 'close', 'volume'])
    df.index = pd.to_datetime(df['time'], unit='ms', utc=True)
    df.index.name = 'timestamp'
    return df.drop(columns=['time'])
