"""
Configuration loading tests: defaults, YAML file, environment overrides.
"""

import pytest

from clrange.core.config import (
    ClrangeConfig,
    LoggingConfig,
    PoolConfig,
    load_config,
)
from clrange.core.defi.concentrated_liquidity import ConcentratedLiquidityFactory, FeeTier
from clrange.core.range_exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    def _write(text):
        path = tmp_path / "clrange.yaml"
        path.write_text(text)
        return path
    return _write


class TestDefaults:
    def test_builtin_defaults(self):
        config = load_config(environ={})
        assert config == ClrangeConfig()
        assert config.pool.default_fee_tier == "STANDARD"
        assert config.logging.level == "INFO"

    def test_section_validation(self):
        with pytest.raises(ConfigurationError):
            PoolConfig(default_fee_tier="HUGE").validate()
        with pytest.raises(ConfigurationError):
            PoolConfig(max_events=0).validate()
        with pytest.raises(ConfigurationError):
            LoggingConfig(level="LOUD").validate()


class TestYamlFile:
    def test_file_overrides_defaults(self, config_file):
        path = config_file("pool:\n  default_fee_tier: LOW\n  max_events: 50\nlogging:\n  level: DEBUG\n")
        config = load_config(path, environ={})
        assert config.pool.default_fee_tier == "LOW"
        assert config.pool.max_events == 50
        assert config.logging.level == "DEBUG"
        assert config.logging.enable_console is True

    def test_file_from_environment_variable(self, config_file):
        path = config_file("pool:\n  max_events: 7\n")
        config = load_config(environ={"CLRANGE_CONFIG_FILE": str(path)})
        assert config.pool.max_events == 7

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.yaml", environ={})

    def test_invalid_yaml(self, config_file):
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_file("pool: [unclosed\n"), environ={})

    def test_unknown_key(self, config_file):
        with pytest.raises(ConfigurationError, match="Unknown keys"):
            load_config(config_file("pool:\n  colour: blue\n"), environ={})

    def test_invalid_value_fails_validation(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file("pool:\n  default_fee_tier: HUGE\n"), environ={})


class TestEnvironmentOverrides:
    def test_env_beats_file(self, config_file):
        path = config_file("pool:\n  max_events: 50\n")
        config = load_config(path, environ={
            "CLRANGE_POOL_MAX_EVENTS": "75",
            "CLRANGE_LOGGING_ENABLE_CONSOLE": "false",
            "CLRANGE_LOGGING_LOG_FILE": "/tmp/clrange.json",
        })
        assert config.pool.max_events == 75
        assert config.logging.enable_console is False
        assert config.logging.log_file == "/tmp/clrange.json"

    def test_unrelated_variables_ignored(self):
        config = load_config(environ={"CLRANGE_UNKNOWN_THING": "1", "OTHER_POOL_MAX_EVENTS": "3"})
        assert config == ClrangeConfig()

    def test_bad_integer(self):
        with pytest.raises(ConfigurationError):
            load_config(environ={"CLRANGE_POOL_MAX_EVENTS": "many"})

    def test_bad_boolean(self):
        with pytest.raises(ConfigurationError):
            load_config(environ={"CLRANGE_LOGGING_ENABLE_CONSOLE": "maybe"})


class TestFactoryFromConfig:
    def test_factory_uses_pool_section(self):
        config = load_config(environ={"CLRANGE_POOL_DEFAULT_FEE_TIER": "HIGH", "CLRANGE_POOL_MAX_EVENTS": "3"})
        factory = ConcentratedLiquidityFactory.from_config(config.pool)
        assert factory.default_fee_tier is FeeTier.HIGH
        assert factory.max_events == 3
