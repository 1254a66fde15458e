# -*- coding: utf-8 -*-
"""
SigRank - Signal Data Structures
=================================
FILE: sigrank/types/signal.py

Detector output for one candle, plus the regime label attached to it.

Signal types are lowercase strings rather than a closed enum: the weight
and correlation tables fall back to neutral values for types they do not
know, so new detector types score without code changes. Validation
happens once, at the detector boundary (Signal.from_detector), so the
scoring code never needs to handle missing fields.

Event vs state:
    An event signal marks a discrete trigger on this candle (a cross,
    a breakout). A state signal describes an ongoing condition (price
    above MA). Detectors may set is_event directly; otherwise it is
    inferred from the signal's value label by classify_signal().

Usage:
    from sigrank.types import Signal, RegimeLabel

    sig = Signal.from_detector(
        {'type': 'MACD', 'value': 'Bullish Cross', 'strength': 72},
        candle_index=120, timestamp=1700000000000)
    # sig.type == 'macd', sig.is_event is True

    label = RegimeLabel.from_raw({'regime': 'Uptrend', 'confidence': 0.8})
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional, Union
import logging

logger = logging.getLogger(__name__)


# Normalised lowercase signal type
SignalType = str

REGIMES = ('uptrend', 'downtrend', 'ranging', 'unknown')

# Accepted when replaying trade history; everything else maps to unknown
_HISTORY_REGIMES = ('uptrend', 'downtrend', 'ranging', 'neutral', 'unknown')

# Value labels that mark a discrete trigger
EVENT_KEYWORDS = (
    'cross', 'crossover', 'entry', 'exit', 'breakout', 'breakdown',
    'reversal', 'flip', 'squeeze', 'expansion', 'bounce', 'rejection',
    'bullish_divergence', 'bearish_divergence', 'pattern_complete',
    'trend_change', 'signal_triggered',
)


def normalize_regime(regime: Any, allow_neutral: bool = False) -> str:
    """
    Lowercase a regime label and map anything unrecognised to 'unknown'.

    Args:
        regime: Raw label (any case) or None.
        allow_neutral: Keep 'neutral' as its own bucket (trade history).
    """
    if not regime or not isinstance(regime, str):
        return 'unknown'
    name = regime.strip().lower()
    valid = _HISTORY_REGIMES if allow_neutral else REGIMES
    return name if name in valid else 'unknown'


def classify_signal(signal_type: str, value: Any = None) -> bool:
    """
    Infer whether a signal is an event (True) or a state (False).

    Candlestick patterns are always events. Otherwise the value label is
    searched for an event keyword. No value means state.
    """
    if not signal_type:
        return False
    signal_type = signal_type.lower()
    if 'candlestick' in signal_type or 'cdl_' in signal_type:
        return True
    if value is None:
        return False
    label = str(value).lower().replace(' ', '_')
    return any(keyword in label for keyword in EVENT_KEYWORDS)


# =============================================================================
# SIGNAL
# =============================================================================

@dataclass(frozen=True)
class Signal:
    """
    One active signal on one candle.

    Attributes:
        type: Lowercase signal type (e.g. 'macd', 'rsi_oversold')
        strength: Raw strength, nominally 0–100 (not clamped)
        is_event: Discrete trigger (True) or ongoing state (False)
        candle_index: Index of the candle the signal fired on
        timestamp: Candle time, epoch ms
        value: Detector label (e.g. 'Bullish Cross'), informational
        name: Display name, informational
    """
    type: SignalType
    strength: float
    is_event: bool = False
    candle_index: int = -1
    timestamp: int = 0
    value: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'type', str(self.type).strip().lower())

    @classmethod
    def from_detector(
        cls,
        raw: Union['Signal', Mapping[str, Any]],
        candle_index: int = -1,
        timestamp: int = 0,
    ) -> 'Signal':
        """
        Validate one detector record and build a Signal.

        When candle_index is given (>= 0) the result is stamped with it and
        with timestamp, whatever position the record itself carries.

        Raises:
            ValueError: if the record has no type or a non-numeric strength.
        """
        if isinstance(raw, Signal):
            signal_type, value, name = raw.type, raw.value, raw.name
            raw_strength, is_event = raw.strength, raw.is_event
            own_index, own_time = raw.candle_index, raw.timestamp
        elif isinstance(raw, Mapping):
            signal_type, value, name = raw.get('type'), raw.get('value'), raw.get('name')
            raw_strength = raw.get('strength', 0.0)
            is_event = raw.get('is_event', raw.get('isEvent'))
            own_index = raw.get('candle_index', -1)
            own_time = raw.get('timestamp', 0)
        else:
            raise ValueError(f"Signal record must be a mapping, got {type(raw).__name__}")

        if not signal_type or not isinstance(signal_type, str):
            raise ValueError(f"Signal record has no type: {raw!r}")

        try:
            strength = float(raw_strength)
        except (TypeError, ValueError):
            raise ValueError(
                f"Signal '{signal_type}' has non-numeric strength: {raw_strength!r}")
        if strength != strength:
            raise ValueError(f"Signal '{signal_type}' has NaN strength")

        if is_event is None:
            is_event = classify_signal(signal_type, value)

        if candle_index < 0:
            candle_index, timestamp = own_index, own_time

        return cls(
            type=signal_type,
            strength=strength,
            is_event=bool(is_event),
            candle_index=int(candle_index),
            timestamp=int(timestamp),
            value=None if value is None else str(value),
            name=name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def label(self) -> str:
        """Value label if present, else the type."""
        return self.value or self.type


# =============================================================================
# REGIME LABEL
# =============================================================================

@dataclass(frozen=True)
class RegimeLabel:
    """Market regime and classifier confidence (0–1) for one candle."""
    regime: str = 'unknown'
    confidence: float = 0.0

    @classmethod
    def from_raw(cls, raw: Any) -> 'RegimeLabel':
        """Build from a mapping, a RegimeLabel, a bare string or None."""
        if isinstance(raw, RegimeLabel):
            return raw
        if raw is None:
            return cls()
        if isinstance(raw, str):
            return cls(regime=normalize_regime(raw))
        if isinstance(raw, Mapping):
            try:
                confidence = float(raw.get('confidence', 0.0) or 0.0)
            except (TypeError, ValueError):
                logger.warning(f"Malformed regime confidence: {raw.get('confidence')!r}")
                confidence = 0.0
            return cls(regime=normalize_regime(raw.get('regime')), confidence=confidence)
        logger.warning(f"Unrecognised regime entry: {raw!r}")
        return cls()


# =============================================================================
# LOOSE RECORD ACCESS
# =============================================================================

def signal_type_of(signal: Any) -> Optional[str]:
    """Lowercase type of a Signal or mapping; None when absent or empty."""
    if isinstance(signal, Signal):
        return signal.type or None
    if isinstance(signal, Mapping):
        value = signal.get('type') or signal.get('name')
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return None


def signal_strength_of(signal: Any) -> Any:
    """Raw strength of a Signal or mapping, passed through unvalidated."""
    if isinstance(signal, Signal):
        return signal.strength
    if isinstance(signal, Mapping):
        return signal.get('strength', 0)
    return 0
