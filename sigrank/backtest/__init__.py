# -*- coding: utf-8 -*-
"""
SigRank - Backtest Module
==========================
Signal-combination backtesting: enumerate, simulate, aggregate.

Components:
    enumerator.py  CombinationEnumerator, qualifying subsets per candle
    simulator.py   OutcomeSimulator, forward-window trade outcome
    aggregator.py  aggregate(), regime-segmented strategy statistics
    pool.py        ChunkPool, chunked sequential or threaded execution
    runner.py      run_backtest / run_and_rank orchestration

Usage:
    from sigrank.backtest import run_and_rank

    result = run_and_rank(candles, detect_signals, config)
    print(result)
"""

from sigrank.backtest.enumerator import (
    MIN_STABLE_INDEX,
    CombinationEnumerator,
    EnumerationResult,
    count_subsets,
    iter_subsets,
)
from sigrank.backtest.simulator import (
    OutcomeSimulator,
    simulate,
)
from sigrank.backtest.aggregator import (
    AggregationResult,
    aggregate,
    best_match_per_candle,
    median,
    percentile,
    profit_factor,
    profitability_score,
    summarize,
    to_frame,
)
from sigrank.backtest.pool import (
    ChunkPool,
    make_chunks,
)
from sigrank.backtest.runner import (
    BacktestResult,
    BacktestRun,
    RunState,
    run_and_rank,
    run_backtest,
)


__all__ = [
    # Enumeration
    'MIN_STABLE_INDEX',
    'CombinationEnumerator',
    'EnumerationResult',
    'count_subsets',
    'iter_subsets',

    # Simulation
    'OutcomeSimulator',
    'simulate',

    # Aggregation
    'AggregationResult',
    'aggregate',
    'best_match_per_candle',
    'median',
    'percentile',
    'profit_factor',
    'profitability_score',
    'summarize',
    'to_frame',

    # Execution
    'ChunkPool',
    'make_chunks',
    'BacktestResult',
    'BacktestRun',
    'RunState',
    'run_and_rank',
    'run_backtest',
]
