import logging
import os
import unittest
from unittest.mock import patch
from logging.handlers import RotatingFileHandler

from relay.config.logging_config import configure_logging

class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO")
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "telnyx_hume_relay")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]  # Check first handler (should be console handler)
        self.assertIsInstance(handler, logging.StreamHandler)
        self.assertNotIsInstance(handler, RotatingFileHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.assertFalse(logger.propagate)

    def test_level_override(self):
        logger = configure_logging("debug")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_level_from_environment_at_call_time(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            logger = configure_logging()
        self.assertEqual(logger.level, logging.WARNING)

    def test_explicit_level_beats_environment(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}):
            logger = configure_logging("DEBUG")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_reconfigure_does_not_duplicate_handlers(self):
        first = len(configure_logging("INFO").handlers)
        second = len(configure_logging("INFO").handlers)
        self.assertEqual(first, second)

if __name__ == "__main__":
    unittest.main()
