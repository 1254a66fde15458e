# -*- coding: utf-8 -*-
"""
SigRank - Signal Combination Ranking
=====================================

Scores combinations of technical-indicator signals and backtests which
combinations historically preceded a target price move, ranked by
profitability and split by market regime.

Modules:
    types: Candle, Signal, SignalCombination, Match, Strategy
    config: Typed YAML configs and the static signal tables
        - BacktestConfig, ScoringConfig, ConfigManager, load_tables
    signals: Composite strength scoring
        - CorrelationModel, RegimeContextModel, SignalWeightModel
        - StrengthAggregator, PerformanceState
    data: Candle intake and timeframe parsing
    backtest: Enumeration, outcome simulation, aggregation
        - CombinationEnumerator, OutcomeSimulator, aggregate, run_backtest

Quick Start:
    from sigrank.backtest import run_backtest, aggregate
    from sigrank.config import BacktestConfig

    config = BacktestConfig(
        coin="ETHUSD",
        timeframe="1h",
        time_window="4h",
        target_gain_pct=1.0,
        required_signals=2,
        max_signals=3,
        min_combined_strength=80,
    )
    result = run_backtest(candles, detect_signals, config,
                          regime_history=regimes)
    ranked = aggregate(result.matches, min_occurrences=5)

    for strategy in ranked.processed_combinations[:10]:
        print(strategy)

Pipeline:
    collecting -> enumerating -> simulating -> aggregating -> ranked
"""

__version__ = "0.1.0"

# Version info
VERSION = __version__
