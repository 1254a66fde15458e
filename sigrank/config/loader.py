# -*- coding: utf-8 -*-
"""
SigRank - Configuration Management
===================================
YAML presets and typed run configuration for sigrank.

Provides:
    - Read and write YAML presets
    - Deep-merge overrides onto a preset
    - Typed config objects (BacktestConfig, ScoringConfig)
    - Validate backtest parameters

Usage:
    from sigrank.config import load_config, ConfigManager

    # Load single config
    config = load_config("configs/backtest/default.yaml")

    # Load with overrides
    config = load_config(
        "configs/backtest/default.yaml",
        overrides={"target_gain_pct": 1.5}
    )

    # Use ConfigManager for typed configs
    manager = ConfigManager("configs/")
    backtest_config = manager.get_backtest_config("scalping")
    scoring_config = manager.get_scoring_config()
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple, Union
import logging

import yaml

logger = logging.getLogger(__name__)


# =============================================================================
# YAML Helpers
# =============================================================================

def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Parse a YAML mapping; an empty file gives {}."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def save_yaml(config: Dict[str, Any], path: Union[str, Path]):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open('w', encoding='utf-8') as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursive merge; nested mappings merge key by key, anything else in
    override replaces the base value. Neither input is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


def load_config(
    path: Union[str, Path],
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Read a YAML config and apply overrides on top.

    Args:
        path: YAML file
        overrides: Values that replace (or deep-merge into) the file's

    Returns:
        Plain dict; build a typed config with BacktestConfig.from_dict().
    """
    config = load_yaml(path)
    return merge_configs(config, overrides) if overrides else config


# =============================================================================
# Typed Config Classes
# =============================================================================

@dataclass
class BacktestConfig:
    """Backtest run configuration."""

    # Instrument
    coin: str = "UNKNOWN"
    timeframe: str = "1h"

    # Trade definition
    time_window: str = "4h"
    target_gain_pct: float = 1.0
    direction: str = "long"

    # Combination search
    required_signals: int = 2
    max_signals: int = 3
    min_combined_strength: float = 100.0

    # Regime handling
    is_regime_aware: bool = True
    min_occurrences: int = 2

    # Round-trip costs, percent
    fee_pct: float = 0.10
    slippage_pct: float = 0.05

    # Execution
    chunk_size: int = 500
    max_workers: int = 1
    show_progress: bool = False

    # Optional combination filters (off = exhaustive enumeration)
    dedupe_signal_types: bool = False
    keep_maximal_only: bool = False
    suppress_consecutive: bool = False

    # Drop matches whose composite score is below this (needs a scorer)
    min_score: Optional[float] = None

    @property
    def round_trip_cost_pct(self) -> float:
        """Entry fee + exit fee + slippage, in percent."""
        return 2 * self.fee_pct + self.slippage_pct

    def validate(self) -> List[str]:
        """
        Check parameter consistency.

        Returns:
            List of warnings for suspicious but usable values.

        Raises:
            ValueError: For values no run can proceed with.
        """
        if self.direction not in ('long', 'short'):
            raise ValueError(f"Unknown direction: {self.direction}")
        if self.required_signals < 1:
            raise ValueError(f"required_signals must be >= 1, got {self.required_signals}")
        if self.max_signals < self.required_signals:
            raise ValueError(
                f"max_signals ({self.max_signals}) < required_signals ({self.required_signals})")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

        warnings = []
        if self.target_gain_pct <= self.round_trip_cost_pct:
            warnings.append(
                f"target_gain_pct {self.target_gain_pct} does not clear round-trip "
                f"cost {self.round_trip_cost_pct:.2f}%; no match can be successful")
        if self.max_signals > 8:
            warnings.append(
                f"max_signals={self.max_signals}: enumeration cost grows exponentially")
        if self.min_occurrences < 1:
            warnings.append(f"min_occurrences={self.min_occurrences} keeps every group")
        return warnings

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BacktestConfig':
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoringConfig:
    """Composite strength scoring configuration."""

    # Correlation
    correlation_threshold: float = 0.70
    correlation_penalty_factor: float = 0.10
    max_correlation_penalty: float = 0.25
    negative_correlation_threshold: float = -0.5
    correlation_bonus_factor: float = 0.20
    max_correlation_bonus: float = 0.30

    # Regime context
    context_bonus_scale: float = 0.10
    regime_diversity_scale: float = 0.05

    # Synergy / diversity
    synergy_bonus_per_pair: float = 0.10
    max_synergy_bonus: float = 0.30
    diversity_bonus_per_type: float = 0.05
    max_diversity_bonus: float = 0.20

    # Learning
    learning_rate: float = 0.1
    min_samples_for_learning: int = 10

    # Recommendation thresholds
    penalty_recommendation: float = 0.10
    min_regime_confidence: float = 0.6
    low_quality_threshold: float = 0.4
    min_total_strength: float = 100.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ScoringConfig':
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Config Manager
# =============================================================================

PRESET_CATEGORIES = ('backtest', 'scoring')


class ConfigManager:
    """
    Named presets per category, one YAML file each:

        <config_dir>/backtest/<name>.yaml  → BacktestConfig
        <config_dir>/scoring/<name>.yaml   → ScoringConfig

    A preset that does not exist resolves to the dataclass defaults.
    Parsed files are cached until save_config() or clear_cache().
    """

    def __init__(self, config_dir: Union[str, Path] = "configs"):
        self.config_dir = Path(config_dir)
        self._presets: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def preset_path(self, category: str, name: str = "default") -> Path:
        return self.config_dir / category / f"{name}.yaml"

    def _preset(self, category: str, name: str) -> Dict[str, Any]:
        key = (category, name)
        if key not in self._presets:
            path = self.preset_path(category, name)
            if path.exists():
                self._presets[key] = load_yaml(path)
            else:
                logger.debug(f"Preset {category}/{name} not found, using defaults")
                self._presets[key] = {}
        return self._presets[key]

    def _resolve(self, category: str, name: str, overrides: Optional[Dict[str, Any]]):
        values = self._preset(category, name)
        return merge_configs(values, overrides) if overrides else values

    def get_backtest_config(
        self,
        name: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> BacktestConfig:
        """BacktestConfig for a preset; validation warnings are logged."""
        config = BacktestConfig.from_dict(self._resolve("backtest", name, overrides))
        for warning in config.validate():
            logger.warning(f"backtest/{name}: {warning}")
        return config

    def get_scoring_config(
        self,
        name: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ScoringConfig:
        return ScoringConfig.from_dict(self._resolve("scoring", name, overrides))

    def get_full_config(
        self,
        backtest: str = "default",
        scoring: str = "default",
    ) -> Dict[str, Any]:
        """Both presets as plain dicts, e.g. for a run record."""
        return {
            'backtest': self.get_backtest_config(backtest).to_dict(),
            'scoring': self.get_scoring_config(scoring).to_dict(),
        }

    def save_config(
        self,
        config: Union[Dict[str, Any], BacktestConfig, ScoringConfig],
        category: str,
        name: str,
    ) -> Path:
        """Write a preset and drop its cached copy."""
        if category not in PRESET_CATEGORIES:
            raise ValueError(f"Unknown config category: {category}")

        values = config.to_dict() if hasattr(config, 'to_dict') else dict(config)
        path = self.preset_path(category, name)
        save_yaml(values, path)
        self._presets.pop((category, name), None)
        return path

    def list_configs(self, category: str) -> List[str]:
        """Preset names available in a category, sorted."""
        folder = self.config_dir / category
        return sorted(p.stem for p in folder.glob("*.yaml")) if folder.is_dir() else []

    def clear_cache(self):
        self._presets.clear()

    def __repr__(self) -> str:
        return f"ConfigManager({self.config_dir}, cached={len(self._presets)})"


# =============================================================================
# Default Presets
# =============================================================================

DEFAULT_BACKTEST_PRESETS: Dict[str, Dict[str, Any]] = {
    'default': {},
    # short window, high bar on combined strength
    'scalping': {
        'timeframe': '5m',
        'time_window': '1h',
        'target_gain_pct': 0.6,
        'max_signals': 4,
        'min_combined_strength': 150.0,
    },
    'swing': {
        'timeframe': '4h',
        'time_window': '3d',
        'target_gain_pct': 5.0,
        'min_occurrences': 3,
    },
}


def create_default_configs(config_dir: Union[str, Path] = "configs"):
    """Write the default backtest presets and the default scoring preset."""
    manager = ConfigManager(config_dir)
    for name, values in DEFAULT_BACKTEST_PRESETS.items():
        manager.save_config(BacktestConfig(**values), 'backtest', name)
    manager.save_config(ScoringConfig(), 'scoring', 'default')

    logger.info(f"Created default configs in {manager.config_dir}/")
