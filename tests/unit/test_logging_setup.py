"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

from cipherlend.logging_setup import LOG_FORMAT, configure_logging


class TestConfigureLogging:
    def test_sets_info_level(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_sets_debug_level(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_silences_aiohttp(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("aiohttp").level == logging.WARNING

    def test_invalid_level_defaults_to_info(self) -> None:
        configure_logging("NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_lowercase_level_name(self) -> None:
        configure_logging("warning")
        assert logging.getLogger().level == logging.WARNING

    def test_installs_single_handler(self) -> None:
        root = logging.getLogger()
        saved = root.handlers[:]
        root.handlers.clear()
        try:
            configure_logging("INFO")
            configure_logging("INFO")
            assert len(root.handlers) == 1
            assert root.handlers[0].formatter._fmt == LOG_FORMAT
        finally:
            root.handlers[:] = saved
