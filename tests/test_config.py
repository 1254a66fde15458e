# -*- coding: utf-8 -*-
"""
Configuration tests: YAML loader, config manager, static tables.
"""
import shutil

import pytest
import yaml

from sigrank.config import (
    BacktestConfig,
    ConfigManager,
    ScoringConfig,
    create_default_configs,
    load_config,
    load_tables,
    load_yaml,
    merge_configs,
    save_yaml,
)
from sigrank.config.tables import DATA_DIR


class TestLoader:

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / 'nested' / 'cfg.yaml'
        save_yaml({'a': 1, 'b': {'c': [1, 2]}}, path)
        assert load_yaml(path) == {'a': 1, 'b': {'c': [1, 2]}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / 'missing.yaml')

    def test_merge_is_deep(self):
        base = {'a': 1, 'nested': {'x': 1, 'y': 2}}
        merged = merge_configs(base, {'nested': {'y': 3}, 'b': 2})
        assert merged == {'a': 1, 'b': 2, 'nested': {'x': 1, 'y': 3}}
        assert base['nested']['y'] == 2

    def test_load_config_with_overrides(self, tmp_path):
        path = tmp_path / 'cfg.yaml'
        save_yaml({'timeframe': '1h', 'max_signals': 3}, path)
        assert load_config(path, {'max_signals': 4}) == {'timeframe': '1h', 'max_signals': 4}


class TestBacktestConfig:

    def test_defaults(self):
        cfg = BacktestConfig()
        assert cfg.round_trip_cost_pct == pytest.approx(0.25)
        assert cfg.validate() == []

    def test_dict_round_trip_ignores_unknown_keys(self):
        cfg = BacktestConfig(coin='ETH', max_signals=4, min_score=50.0)
        data = cfg.to_dict()
        data['not_a_field'] = True
        assert BacktestConfig.from_dict(data) == cfg

    @pytest.mark.parametrize('overrides', [
        {'direction': 'sideways'},
        {'required_signals': 0},
        {'required_signals': 3, 'max_signals': 2},
        {'chunk_size': 0},
    ])
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            BacktestConfig(**overrides).validate()

    def test_suspicious_values_warn(self):
        warnings = BacktestConfig(target_gain_pct=0.2, max_signals=10).validate()
        assert len(warnings) == 2


class TestConfigManager:

    def test_default_configs(self, tmp_path):
        create_default_configs(tmp_path)
        manager = ConfigManager(tmp_path)

        assert manager.list_configs('backtest') == ['default', 'scalping', 'swing']
        assert manager.list_configs('scoring') == ['default']
        assert manager.list_configs('missing') == []

        scalping = manager.get_backtest_config('scalping')
        assert scalping.timeframe == '5m'
        assert scalping.min_combined_strength == 150.0

    def test_overrides(self, tmp_path):
        create_default_configs(tmp_path)
        manager = ConfigManager(tmp_path)
        cfg = manager.get_backtest_config('swing', overrides={'target_gain_pct': 7.5})
        assert cfg.target_gain_pct == 7.5
        assert cfg.time_window == '3d'

    def test_missing_config_uses_defaults(self, tmp_path):
        manager = ConfigManager(tmp_path)
        assert manager.get_scoring_config('nope') == ScoringConfig()

    def test_save_clears_cache(self, tmp_path):
        manager = ConfigManager(tmp_path)
        assert manager.get_backtest_config('custom').coin == 'UNKNOWN'
        manager.save_config(BacktestConfig(coin='SOL'), 'backtest', 'custom')
        assert manager.get_backtest_config('custom').coin == 'SOL'

    def test_full_config(self, tmp_path):
        full = ConfigManager(tmp_path).get_full_config()
        assert set(full) == {'backtest', 'scoring'}
        assert full['scoring']['correlation_threshold'] == 0.70


class TestTables:

    def test_bundled_tables_cached(self):
        assert load_tables() is load_tables()

    def test_bundled_contents(self):
        tables = load_tables()
        assert tables.correlation_threshold == 0.70
        assert tables.missing_expected_pairs() == []
        assert [b.weight for b in tables.quality_ladder] == [1.3, 1.1, 1.0, 0.8, 0.6]
        assert set(tables.regime_weights) == {'uptrend', 'downtrend', 'ranging', 'unknown'}
        assert tables.signal_type_mapping['macd'] == 'MACD Cross'

    def _table_dir(self, tmp_path, pairs):
        for name in ('signal_weights.yaml', 'regime_weights.yaml'):
            shutil.copy(DATA_DIR / name, tmp_path / name)
        with open(tmp_path / 'correlations.yaml', 'w') as f:
            yaml.safe_dump({'threshold': 0.7, 'pairs': pairs}, f)
        return tmp_path

    def test_override_directory(self, tmp_path):
        tables = load_tables(self._table_dir(tmp_path, {'x': {'y': 0.4}}))
        assert tables.correlation('y', 'x') == 0.4
        assert tables.correlation('x', 'z') == 0.0

    def test_conflicting_duplicate_rejected(self, tmp_path):
        with pytest.raises(ValueError, match='Conflicting'):
            load_tables(self._table_dir(tmp_path, {'x': {'y': 0.4}, 'y': {'x': 0.6}}))

    def test_matching_duplicate_accepted(self, tmp_path):
        tables = load_tables(self._table_dir(tmp_path, {'x': {'y': 0.4}, 'y': {'x': 0.4}}))
        assert len(tables.correlations) == 1

    def test_out_of_range_rejected(self, tmp_path):
        with pytest.raises(ValueError, match='out of range'):
            load_tables(self._table_dir(tmp_path, {'x': {'y': 1.4}}))
