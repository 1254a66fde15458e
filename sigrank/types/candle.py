# -*- coding: utf-8 -*-
"""
SigRank - Candle Data Structure
================================
Represents a single OHLCV candle. Times are epoch milliseconds.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any
import pandas as pd


@dataclass(frozen=True)
class Candle:
    """
    Single OHLCV candle.

    Attributes:
        time: Open time, epoch milliseconds (UTC)
        open: Opening price
        high: High price
        low: Low price
        close: Closing price
        volume: Traded volume
    """
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candle':
        """Create Candle from dictionary."""
        return cls(
            time=to_epoch_ms(data['time']),
            open=float(data['open']),
            high=float(data['high']),
            low=float(data['low']),
            close=float(data['close']),
            volume=float(data.get('volume', 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'time': self.time,
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
        }

    @property
    def opened_at(self) -> datetime:
        """Open time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.time / 1000, tz=timezone.utc)

    @property
    def range(self) -> float:
        """Candle range (high - low)."""
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        """True if close > open."""
        return self.close > self.open

    def __repr__(self) -> str:
        return (f"Candle({self.opened_at:%Y-%m-%d %H:%M}, "
                f"O={self.open:.4f} H={self.high:.4f} "
                f"L={self.low:.4f} C={self.close:.4f})")


def to_epoch_ms(value: Any) -> int:
    """Convert a timestamp-like value (int ms, datetime, str) to epoch ms."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize('UTC')
    return int(ts.value // 1_000_000)
