"""
Tests for jitshape configuration.
"""

import logging

import pytest
import yaml

from jitshape import config as config_module
from jitshape.config import (
    EngineConfig,
    JitShapeConfig,
    LoggingConfig,
    LogLevel,
    configure_logging,
    get_config,
    load_config,
    set_config,
)
from jitshape.core.exceptions import ConfigurationError
from jitshape.core.types import UnknownConstantPolicy


def test_defaults():
    config = JitShapeConfig()

    assert config.engine.verify_topological_order is False
    assert config.engine.unknown_constant_policy is UnknownConstantPolicy.ERROR
    assert config.engine.log_shape_map is False
    assert config.logging.level is LogLevel.WARNING
    assert config.config_file is None


def test_policy_accepts_strings():
    assert EngineConfig(unknown_constant_policy='EMPTY').unknown_constant_policy \
        is UnknownConstantPolicy.EMPTY


def test_invalid_policy():
    with pytest.raises(ConfigurationError) as exc_info:
        EngineConfig(unknown_constant_policy='ignore')
    assert "error, empty" in str(exc_info.value)


def test_invalid_log_level():
    with pytest.raises(ConfigurationError):
        LoggingConfig(level='verbose')


def test_bool_settings_from_yaml_strings(tmp_path):
    path = tmp_path / "strings.yaml"
    path.write_text("engine:\n  verify_topological_order: 'false'\n  log_shape_map: 'True'\n")

    config = load_config(str(path))
    assert config.engine.verify_topological_order is False
    assert config.engine.log_shape_map is True


def test_invalid_bool_setting():
    with pytest.raises(ConfigurationError):
        EngineConfig(verify_topological_order='sometimes')
    with pytest.raises(ConfigurationError):
        EngineConfig(log_shape_map=1)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv('JITSHAPE_VERIFY_ORDER', 'true')
    monkeypatch.setenv('JITSHAPE_UNKNOWN_CONSTANTS', 'empty')
    monkeypatch.setenv('JITSHAPE_LOG_LEVEL', 'debug')

    config = load_config()

    assert config.engine.verify_topological_order is True
    assert config.engine.unknown_constant_policy is UnknownConstantPolicy.EMPTY
    assert config.engine.log_shape_map is False
    assert config.logging.level is LogLevel.DEBUG


def test_yaml_file(tmp_path):
    path = tmp_path / "jitshape.yaml"
    path.write_text(yaml.safe_dump({
        'engine': {'log_shape_map': True, 'unknown_constant_policy': 'empty'},
        'logging': {'level': 'info'},
    }))

    config = load_config(str(path))

    assert config.engine.log_shape_map is True
    assert config.engine.unknown_constant_policy is UnknownConstantPolicy.EMPTY
    assert config.engine.verify_topological_order is False
    assert config.logging.level is LogLevel.INFO
    assert config.config_file == str(path)


def test_env_beats_yaml(tmp_path, monkeypatch):
    path = tmp_path / "jitshape.yaml"
    path.write_text("engine:\n  verify_topological_order: true\n")
    monkeypatch.setenv('JITSHAPE_VERIFY_ORDER', 'false')

    assert load_config(str(path)).engine.verify_topological_order is False


def test_save_and_reload(tmp_path):
    config = JitShapeConfig(
        engine=EngineConfig(verify_topological_order=True,
                            unknown_constant_policy=UnknownConstantPolicy.EMPTY),
        logging=LoggingConfig(level=LogLevel.ERROR),
    )
    path = tmp_path / "saved.yaml"
    config.save(str(path))

    reloaded = load_config(str(path))
    assert reloaded.to_dict() == config.to_dict()


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(str(path)).to_dict() == JitShapeConfig().to_dict()


def test_missing_file():
    with pytest.raises(ConfigurationError):
        load_config("/nonexistent/jitshape.yaml")


def test_yaml_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_unknown_key(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("engine:\n  max_nodes: 10\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_global_config_roundtrip():
    custom = JitShapeConfig(engine=EngineConfig(log_shape_map=True))
    set_config(custom)
    assert get_config() is custom

    set_config(None)
    assert get_config() is not custom
    assert config_module._config is not None


def test_configure_logging():
    configure_logging(LoggingConfig(level=LogLevel.DEBUG))
    assert logging.getLogger('jitshape').level == logging.DEBUG

    configure_logging(LoggingConfig(level=LogLevel.WARNING))
    assert logging.getLogger('jitshape').level == logging.WARNING
