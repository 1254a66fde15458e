# -*- coding: utf-8 -*-
"""
PerformanceState tests.
"""
import threading

from sigrank.signals import PerformanceState


def test_no_history_reads():
    state = PerformanceState()
    assert state.type_performance('macd') is None
    assert state.type_regime_performance('macd', 'uptrend') is None
    assert state.regime_performance('uptrend') is None
    assert state.regime_success_rate('uptrend') == 0.5


def test_record_signal():
    state = PerformanceState()
    state.record_signal('MACD', True, 'Uptrend', 60)
    state.record_signal('macd', False, 'uptrend', 40)
    state.record_signal('macd', True, 'ranging', 'n/a')

    perf = state.type_performance('macd')
    assert perf['sample_count'] == 3
    assert perf['success_rate'] == 2 / 3
    assert perf['average_strength'] == 50.0
    assert state.type_regime_performance('macd', 'uptrend') == {
        'sample_count': 2, 'success_rate': 0.5}


def test_unrecognised_regime_buckets_as_unknown():
    state = PerformanceState()
    state.record_regime('sideways', True)
    state.record_regime('neutral', False)
    assert state.regime_performance('unknown')['sample_count'] == 1
    assert state.regime_performance('neutral')['sample_count'] == 1


def test_empty_type_ignored():
    state = PerformanceState()
    state.record_signal('', True)
    state.record_regime(None, True)
    assert state.get_stats() == {
        'signal_types': 0, 'signal_samples': 0, 'regimes': 0, 'regime_samples': 0}


def test_reset_regimes_keeps_types():
    state = PerformanceState()
    state.record_signal('rsi', True, 'uptrend', 50)
    state.record_regime('uptrend', True)
    state.reset_regimes()
    assert state.regime_performance('uptrend') is None
    assert state.type_performance('rsi') is not None


def test_snapshot_is_a_copy():
    state = PerformanceState()
    state.record_signal('rsi', True, 'uptrend', 50)
    snap = state.snapshot()
    snap['types']['rsi']['total'] = 99
    assert state.snapshot()['types']['rsi']['total'] == 1


def test_concurrent_writes():
    state = PerformanceState()

    def writer():
        for i in range(500):
            state.record_signal('rsi', i % 2 == 0, 'uptrend', 50)
            state.record_regime('uptrend', True)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert state.type_performance('rsi')['sample_count'] == 2000
    assert state.regime_performance('uptrend')['sample_count'] == 2000
