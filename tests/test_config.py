"""
Tests for configuration system
"""
import importlib.util
import os
import pytest

import config
from config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config
)


@pytest.mark.unit
class TestBaseConfig:
    """Tests for base configuration"""

    def test_base_config_has_secret_key(self):
        """Test that base config has a secret key"""
        config = Config()
        assert hasattr(config, 'SECRET_KEY')
        assert config.SECRET_KEY is not None

    def test_base_config_has_max_content_length(self):
        """Test that base config has max content length"""
        assert Config.MAX_CONTENT_LENGTH == 16 * 1024 * 1024

    def test_base_config_has_cors_settings(self):
        """Test that base config has CORS settings"""
        assert 'GET' in Config.CORS_METHODS
        assert 'PATCH' in Config.CORS_METHODS
        assert 'DELETE' in Config.CORS_METHODS

    def test_stale_thresholds_are_hours(self):
        """Test default stale call thresholds"""
        assert Config.STALE_NEW_HOURS == int(os.environ.get('STALE_NEW_HOURS', '24'))
        assert Config.STALE_ON_HOLD_HOURS == int(os.environ.get('STALE_ON_HOLD_HOURS', '48'))

    def test_automation_server_port(self):
        """Test that the n8n port is an int"""
        assert isinstance(Config.N8N_PORT, int)

    def test_start_command_is_argument_list(self):
        """Test that the n8n start command is split into arguments"""
        assert isinstance(Config.N8N_START_COMMAND, list)
        assert len(Config.N8N_START_COMMAND) >= 1

    def test_claude_model_configured(self):
        """Test that the Claude model block is present"""
        assert 'claude' in Config.AI_MODELS
        assert Config.AI_MODELS['claude']['max_tokens'] > 0


@pytest.mark.unit
class TestEnvironmentConfigs:
    """Tests for the per-environment classes"""

    def test_development_config_debug(self):
        """Test that development config enables debug"""
        assert DevelopmentConfig.DEBUG is True
        assert DevelopmentConfig.LOG_LEVEL == 'DEBUG'

    def test_production_config_no_debug(self):
        """Test that production config disables debug and secures cookies"""
        assert ProductionConfig.DEBUG is False
        assert ProductionConfig.SESSION_COOKIE_SECURE is True

    def test_testing_config_isolated(self):
        """Test that testing config uses an in-memory database and no integrations"""
        assert TestingConfig.TESTING is True
        assert TestingConfig.DATABASE_URL == 'sqlite://'
        assert TestingConfig.N8N_ENABLED is False
        assert TestingConfig.SCHEDULER_ENABLED is False
        assert TestingConfig.PARTS_ANALYSIS_ASYNC is False
        assert TestingConfig.TWILIO_ACCOUNT_SID is None


@pytest.mark.unit
class TestGetConfig:
    """Tests for the FLASK_ENV based selector"""

    def test_get_config_testing(self, monkeypatch):
        """Test selecting the testing config"""
        monkeypatch.setenv('FLASK_ENV', 'testing')
        assert get_config() is TestingConfig

    def test_get_config_production(self, monkeypatch):
        """Test selecting the production config"""
        monkeypatch.setenv('FLASK_ENV', 'production')
        assert get_config() is ProductionConfig

    def test_get_config_unknown_defaults_to_development(self, monkeypatch):
        """Test that an unknown environment falls back to development"""
        monkeypatch.setenv('FLASK_ENV', 'staging')
        assert get_config() is DevelopmentConfig


def _config_from_env(monkeypatch, **env):
    """Evaluate config.py as a separate module under the given environment"""
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    module_spec = importlib.util.spec_from_file_location('config_from_env', config.__file__)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.mark.unit
class TestEnvironmentOverrides:
    """Tests for settings read from environment variables"""

    def test_parts_analysis_async_default(self, monkeypatch):
        monkeypatch.delenv('PARTS_ANALYSIS_ASYNC', raising=False)
        assert _config_from_env(monkeypatch).Config.PARTS_ANALYSIS_ASYNC is True

    def test_parts_analysis_async_disabled(self, monkeypatch):
        """Test that PARTS_ANALYSIS_ASYNC=false runs the analysis inline"""
        module = _config_from_env(monkeypatch, PARTS_ANALYSIS_ASYNC='false')
        assert module.Config.PARTS_ANALYSIS_ASYNC is False
        assert module.ProductionConfig.PARTS_ANALYSIS_ASYNC is False

    def test_auto_parts_analysis_disabled(self, monkeypatch):
        module = _config_from_env(monkeypatch, AUTO_PARTS_ANALYSIS='FALSE')
        assert module.Config.AUTO_PARTS_ANALYSIS is False
