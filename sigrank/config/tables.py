# -*- coding: utf-8 -*-
"""
SigRank - Static Signal Tables
===============================
FILE: sigrank/config/tables.py

Read-only lookup tables shipped with the package:

    data/correlations.yaml     pairwise signal-type correlations
    data/signal_weights.yaml   importance weights, quality ladder, synergy pairs
    data/regime_weights.yaml   per-regime effectiveness + type mapping

Loaded once per process and shared by every scorer. Nothing in the
package mutates them; per-run learning lives in PerformanceState.

Usage:
    from sigrank.config import load_tables

    tables = load_tables()
    tables.correlation('rsi', 'stochastic')   # → 0.85
    tables.importance('macd_cross')           # → 1.8

    # Alternate table directory (same file names)
    custom = load_tables("my_tables/")
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
import logging

from sigrank.config.loader import load_yaml

logger = logging.getLogger(__name__)


DATA_DIR = Path(__file__).parent / "data"

CORRELATIONS_FILE = "correlations.yaml"
SIGNAL_WEIGHTS_FILE = "signal_weights.yaml"
REGIME_WEIGHTS_FILE = "regime_weights.yaml"


def pair_key(a: str, b: str) -> FrozenSet[str]:
    """Unordered key for a pair of signal types."""
    return frozenset((a.lower(), b.lower()))


# =============================================================================
# TABLES
# =============================================================================

@dataclass(frozen=True)
class QualityBand:
    """One rung of the strength → multiplier ladder."""
    name: str
    min_strength: float
    weight: float


@dataclass(frozen=True)
class SignalTables:
    """
    Immutable bundle of all static lookup tables.

    Correlations are keyed by unordered pair, so lookups are symmetric by
    construction.
    """
    correlations: Dict[FrozenSet[str], float]
    correlation_threshold: float
    expected_pairs: Tuple[Tuple[str, str], ...]
    importance_weights: Dict[str, float]
    default_importance: float
    quality_ladder: Tuple[QualityBand, ...]
    synergy_pairs: Tuple[Tuple[str, str], ...]
    regime_weights: Dict[str, Dict[str, float]]
    signal_type_mapping: Dict[str, str]
    source: str = field(default="package", compare=False)

    def correlation(self, a: str, b: str) -> float:
        """Raw table lookup; 0.0 when the pair is absent or a == b."""
        if a.lower() == b.lower():
            return 0.0
        return self.correlations.get(pair_key(a, b), 0.0)

    def has_pair(self, a: str, b: str) -> bool:
        return pair_key(a, b) in self.correlations

    def importance(self, signal_type: str) -> float:
        return self.importance_weights.get(signal_type.lower(), self.default_importance)

    def missing_expected_pairs(self) -> List[Tuple[str, str]]:
        return [p for p in self.expected_pairs if not self.has_pair(*p)]

    def __repr__(self) -> str:
        return (f"SignalTables(source={self.source}, pairs={len(self.correlations)}, "
                f"weights={len(self.importance_weights)}, "
                f"regimes={sorted(self.regime_weights)})")


# =============================================================================
# LOADING
# =============================================================================

def _parse_correlations(raw: Dict) -> Tuple[Dict[FrozenSet[str], float], float, Tuple]:
    threshold = float(raw.get('threshold', 0.70))
    correlations: Dict[FrozenSet[str], float] = {}

    for a, row in (raw.get('pairs') or {}).items():
        for b, value in (row or {}).items():
            value = float(value)
            if not -1.0 <= value <= 1.0:
                raise ValueError(f"Correlation {a}/{b} out of range: {value}")
            if str(a).lower() == str(b).lower():
                continue
            key = pair_key(str(a), str(b))
            if key in correlations and correlations[key] != value:
                raise ValueError(
                    f"Conflicting correlation for {a}/{b}: {correlations[key]} vs {value}")
            correlations[key] = value

    expected = tuple(
        (str(a).lower(), str(b).lower()) for a, b in (raw.get('expected_pairs') or []))
    return correlations, threshold, expected


def _parse_signal_weights(raw: Dict) -> Tuple[Dict[str, float], float, Tuple, Tuple]:
    default = float(raw.get('default', 1.0))
    importance = {str(k).lower(): float(v) for k, v in (raw.get('importance') or {}).items()}

    ladder = tuple(
        QualityBand(name=b['name'], min_strength=float(b['min']), weight=float(b['weight']))
        for b in raw.get('quality_ladder') or []
    )
    ladder = tuple(sorted(ladder, key=lambda b: b.min_strength, reverse=True))

    synergy = tuple(
        (str(a).lower(), str(b).lower()) for a, b in (raw.get('synergy_pairs') or []))
    return importance, default, ladder, synergy


def _parse_regime_weights(raw: Dict) -> Tuple[Dict[str, Dict[str, float]], Dict[str, str]]:
    regimes = {
        str(regime).lower(): {str(k): float(v) for k, v in (weights or {}).items()}
        for regime, weights in (raw.get('regimes') or {}).items()
    }
    mapping = {str(k).lower(): str(v) for k, v in (raw.get('signal_type_mapping') or {}).items()}
    return regimes, mapping


@lru_cache(maxsize=None)
def _load_tables_cached(data_dir: str) -> SignalTables:
    base = Path(data_dir)

    correlations, threshold, expected = _parse_correlations(load_yaml(base / CORRELATIONS_FILE))
    importance, default, ladder, synergy = _parse_signal_weights(
        load_yaml(base / SIGNAL_WEIGHTS_FILE))
    regimes, mapping = _parse_regime_weights(load_yaml(base / REGIME_WEIGHTS_FILE))

    tables = SignalTables(
        correlations=correlations,
        correlation_threshold=threshold,
        expected_pairs=expected,
        importance_weights=importance,
        default_importance=default,
        quality_ladder=ladder,
        synergy_pairs=synergy,
        regime_weights=regimes,
        signal_type_mapping=mapping,
        source=str(base),
    )

    missing = tables.missing_expected_pairs()
    if missing:
        logger.error(f"Correlation table is missing expected pairs: {missing}")

    logger.debug(f"Loaded {tables!r}")
    return tables


def load_tables(data_dir: Optional[Union[str, Path]] = None) -> SignalTables:
    """
    Load (once) and return the static signal tables.

    Args:
        data_dir: Directory holding the three table files. Defaults to
                  the package's bundled tables.

    Raises:
        FileNotFoundError: If a table file is missing.
        ValueError: If a correlation is out of [-1, 1] or defined twice
                    with different values.
    """
    path = Path(data_dir) if data_dir is not None else DATA_DIR
    return _load_tables_cached(str(path.resolve()))
