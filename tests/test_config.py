"""
Tests for configuration and logging helpers.
"""

import logging

import pytest

from transformer_guide.config import AppConfig
from transformer_guide.logging_utils import create_logger


class TestAppConfig:
    """Test suite for AppConfig."""

    def test_defaults(self):
        """Defaults match the playground form."""
        config = AppConfig()

        assert config.port == 8000
        assert (config.min_heads, config.default_heads, config.max_heads) == (1, 4, 12)
        assert (
            config.min_temperature,
            config.default_temperature,
            config.max_temperature,
        ) == (0.1, 1.0, 2.0)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_heads": 0},
            {"default_heads": 20},
            {"min_heads": 5, "default_heads": 4},
            {"min_temperature": 0.0},
            {"default_temperature": 3.0},
            {"port": 0},
            {"port": 70000},
        ],
    )
    def test_invalid_bounds(self, overrides):
        """Inconsistent bounds fail at construction."""
        with pytest.raises(ValueError):
            AppConfig(**overrides)

    def test_from_env(self):
        """Prefixed variables override defaults, converted to the field type."""
        environ = {
            "TRANSFORMER_GUIDE_PORT": "9000",
            "TRANSFORMER_GUIDE_MAX_TEMPERATURE": "3.5",
            "TRANSFORMER_GUIDE_LOG_LEVEL": "DEBUG",
            "UNRELATED": "x",
        }

        config = AppConfig.from_env(environ)

        assert config.port == 9000
        assert config.max_temperature == 3.5
        assert config.log_level == "DEBUG"
        assert config.host == "127.0.0.1"

    def test_from_env_empty(self):
        """No variables means the default config."""
        assert AppConfig.from_env({}) == AppConfig()

    def test_from_env_bad_value(self):
        """An unconvertible value names the variable."""
        with pytest.raises(ValueError, match="TRANSFORMER_GUIDE_PORT"):
            AppConfig.from_env({"TRANSFORMER_GUIDE_PORT": "eighty"})


class TestCreateLogger:
    """Test suite for create_logger."""

    def test_single_handler(self):
        """A second call does not add a second handler."""
        first = create_logger("transformer_guide.test_single")
        second = create_logger("transformer_guide.test_single")

        assert first is second
        assert len(first.handlers) == 1

    def test_level_by_name(self):
        """Level names are case-insensitive."""
        logger = create_logger("transformer_guide.test_level", level="debug")

        assert logger.level == logging.DEBUG

    def test_empty_name(self):
        """The root logger cannot be configured through this helper."""
        with pytest.raises(ValueError):
            create_logger("")
