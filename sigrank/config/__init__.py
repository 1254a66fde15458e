# -*- coding: utf-8 -*-
"""
SigRank - Configuration Module
===============================
YAML-based run configuration and the bundled static signal tables.

Config Classes:
    BacktestConfig: Timeframe, target, combination bounds, costs, execution
    ScoringConfig: Correlation, bonus, quality and learning parameters

Static Tables:
    SignalTables: Correlations, importance weights, regime weights

Quick Start:
    from sigrank.config import ConfigManager

    manager = ConfigManager("configs/")
    backtest = manager.get_backtest_config(
        name="default",
        overrides={"target_gain_pct": 1.5}
    )

Tables:
    from sigrank.config import load_tables

    tables = load_tables()

Create Defaults:
    from sigrank.config import create_default_configs

    create_default_configs("configs/")
"""

from sigrank.config.loader import (
    # Loading utilities
    load_yaml,
    save_yaml,
    load_config,
    merge_configs,
    # Config classes
    BacktestConfig,
    ScoringConfig,
    # Manager
    ConfigManager,
    create_default_configs,
)
from sigrank.config.tables import (
    SignalTables,
    QualityBand,
    load_tables,
    pair_key,
)


__all__ = [
    'load_yaml',
    'save_yaml',
    'load_config',
    'merge_configs',
    'BacktestConfig',
    'ScoringConfig',
    'ConfigManager',
    'create_default_configs',
    'SignalTables',
    'QualityBand',
    'load_tables',
    'pair_key',
]
