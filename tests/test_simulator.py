# -*- coding: utf-8 -*-
"""
Outcome simulator tests: hits, timeouts, drawdown, costs and direction.
"""
import pytest

from sigrank.backtest import OutcomeSimulator, simulate
from sigrank.config import BacktestConfig
from sigrank.types import Signal, SignalCombination

from conftest import HOUR_MS, make_candles


def combo_at(index, candles):
    return SignalCombination(
        coin='BTC',
        timeframe='1h',
        candle_index=index,
        time=candles[index].time if 0 <= index < len(candles) else 0,
        price=100.0,
        signals=(Signal('a', 60), Signal('b', 60)),
        combined_strength=120.0,
        market_regime='uptrend',
        positions=(0, 1),
    )


def config(**overrides):
    base = dict(timeframe='1h', time_window='3h', target_gain_pct=1.0, direction='long')
    base.update(overrides)
    return BacktestConfig(**base)


class TestLong:

    def test_hit(self):
        candles = make_candles(
            closes=[100.0, 100.2, 100.9, 100.5],
            highs=[100.0, 100.5, 101.2, 100.8],
            lows=[100.0, 99.0, 99.8, 100.1],
        )
        match = simulate(combo_at(0, candles), candles, config())

        assert match.successful
        assert match.time_to_peak == 2 * HOUR_MS
        assert match.exit_time == candles[2].time
        assert match.price_move == pytest.approx(0.75)
        assert match.max_drawdown == pytest.approx(-1.0)
        assert match.entry_price == 100.0
        assert match.market_regime == 'uptrend'

    def test_drawdown_counted_on_hit_candle(self):
        candles = make_candles(
            closes=[100.0, 100.5, 100.5, 100.5],
            highs=[100.0, 101.5, 100.6, 100.6],
            lows=[100.0, 98.0, 100.4, 100.4],
        )
        match = simulate(combo_at(0, candles), candles, config())
        assert match.time_to_peak == HOUR_MS
        assert match.max_drawdown == pytest.approx(-2.0)

    def test_timeout_uses_final_close(self):
        candles = make_candles(
            closes=[100.0, 100.3, 100.4, 100.5, 105.0],
            highs=[100.0, 100.5, 100.6, 100.6, 106.0],
            lows=[100.0, 100.1, 100.2, 100.3, 104.0],
        )
        match = simulate(combo_at(0, candles), candles, config())

        assert not match.successful
        assert match.time_to_peak is None
        assert match.exit_time is None
        assert match.price_move == pytest.approx(0.5 - 0.25)
        assert match.max_drawdown == 0.0

    def test_hit_below_costs_is_not_successful(self):
        candles = make_candles(
            closes=[100.0, 100.1, 100.1, 100.1],
            highs=[100.0, 100.3, 100.1, 100.1],
            lows=[100.0, 100.0, 100.0, 100.0],
        )
        match = simulate(combo_at(0, candles), candles, config(target_gain_pct=0.2))

        assert match.hit_target
        assert match.price_move == pytest.approx(-0.05)
        assert not match.successful

    def test_window_truncated_at_series_end(self):
        candles = make_candles(
            closes=[100.0, 99.0],
            highs=[100.0, 99.5],
            lows=[100.0, 98.5],
        )
        match = simulate(combo_at(0, candles), candles, config(time_window='1d'))
        assert match.price_move == pytest.approx(-1.0 - 0.25)
        assert match.max_drawdown == pytest.approx(-1.5)

    def test_last_candle_entry_is_flat(self):
        candles = make_candles([100.0, 101.0])
        match = simulate(combo_at(1, candles), candles, config())
        assert match.price_move == pytest.approx(-0.25)
        assert match.max_drawdown == 0.0


class TestShort:

    def test_hit_is_positive(self):
        candles = make_candles(
            closes=[100.0, 99.5, 99.0, 99.0],
            highs=[100.0, 100.4, 99.6, 99.5],
            lows=[100.0, 99.4, 98.9, 98.8],
        )
        match = simulate(combo_at(0, candles), candles, config(direction='short'))

        assert match.successful
        assert match.time_to_peak == 2 * HOUR_MS
        assert match.price_move == pytest.approx(0.75)
        assert match.max_drawdown == pytest.approx(-0.4)

    def test_timeout_against_position(self):
        candles = make_candles(
            closes=[100.0, 100.2, 100.4, 100.5],
            highs=[100.0, 100.3, 100.5, 100.7],
            lows=[100.0, 99.9, 100.1, 100.3],
        )
        match = simulate(combo_at(0, candles), candles, config(direction='short'))

        assert not match.successful
        assert match.price_move == pytest.approx(-0.5 - 0.25)
        assert match.max_drawdown == pytest.approx(-0.7)


class TestSimulator:

    def test_invalid_timeframe_raises_once_at_setup(self):
        with pytest.raises(ValueError):
            OutcomeSimulator(config(timeframe='1x'))
        with pytest.raises(ValueError):
            OutcomeSimulator(config(time_window='soon'))

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            OutcomeSimulator(config(direction='both'))

    def test_window_in_candles(self):
        assert OutcomeSimulator(config(timeframe='15m', time_window='4h')).window == 16
        assert OutcomeSimulator(config(timeframe='1h', time_window='90m')).window == 1

    def test_missing_entry_dropped(self):
        candles = make_candles([100.0] * 5)
        simulator = OutcomeSimulator(config())
        combos = [combo_at(2, candles), combo_at(9, candles), combo_at(-1, candles)]

        matches = simulator.simulate_all(combos, candles)
        assert [m.candle_index for m in matches] == [2]
        assert simulator.get_stats()['dropped'] == 2

    def test_outcome_consistency(self, random_candles):
        simulator = OutcomeSimulator(config(time_window='6h', target_gain_pct=0.8))
        window_ms = 6 * HOUR_MS
        combos = [combo_at(i, random_candles) for i in range(50, len(random_candles))]

        for match in simulator.simulate_all(combos, random_candles):
            assert match.max_drawdown <= 0
            if match.successful:
                assert match.price_move > 0
                assert match.time_to_peak is not None
            if match.time_to_peak is not None:
                assert 0 < match.time_to_peak <= window_ms
                assert match.price_move == pytest.approx(0.8 - 0.25)
