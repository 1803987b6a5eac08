"""
Tests for the configuration-based logging set-up.
"""

import logging
from unittest.mock import patch

import pytest

from element_editor.config_loader import get_default_config
from element_editor.logging_config import configure_logging, get_logging_level


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


class TestGetLoggingLevel:
    """Test cases for get_logging_level."""

    @pytest.mark.parametrize('level_str', ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    def test_known_levels(self, level_str):
        assert get_logging_level(level_str) == getattr(logging, level_str)

    def test_case_insensitive(self):
        assert get_logging_level('debug') == logging.DEBUG

    @pytest.mark.parametrize('level_str', ['VERBOSE', '', None, 20])
    def test_unknown_levels_fall_back_to_info(self, level_str):
        assert get_logging_level(level_str) == logging.INFO


class TestConfigureLogging:
    """Test cases for configure_logging."""

    def test_configures_level_and_format(self):
        config = get_default_config()
        config['logging']['level'] = 'WARNING'

        with patch('element_editor.logging_config.logging.basicConfig') as basic_config:
            level = configure_logging(config)

        assert level == logging.WARNING
        basic_config.assert_called_once_with(level=logging.WARNING, format=config['logging']['format'])

    def test_without_format(self):
        with patch('element_editor.logging_config.logging.basicConfig') as basic_config:
            level = configure_logging({'logging': {'level': 'ERROR'}})

        assert level == logging.ERROR
        basic_config.assert_called_once_with(level=logging.ERROR)

    def test_missing_section_defaults_to_info(self):
        with patch('element_editor.logging_config.logging.basicConfig'):
            assert configure_logging(None) == logging.INFO
            assert configure_logging({}) == logging.INFO
