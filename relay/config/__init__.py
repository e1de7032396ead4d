"""
Configuration module for the Telnyx to Hume relay.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Message types, close codes and default values used across modules.
- logging_config: Console and rotating file logging for the relay logger.
- settings: Validated process settings read from environment variables.

Usage examples:
```python
from relay.config.settings import ConfigurationError, load_settings
from relay.config.logging_config import configure_logging

logger = configure_logging()
try:
    settings = load_settings()
except ConfigurationError as e:
    logger.error(str(e))
```
"""

# Config module initialization
