"""
Constants and configuration values used throughout the relay.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, close codes and default settings.
"""

# Logger name used throughout the application
LOGGER_NAME = "telnyx_hume_relay"

SERVICE_NAME = "Telnyx-Hume-Groq Bridge"
SERVICE_VERSION = "1.0.0"

# Inbound WebSocket path for Telnyx media streams
TELNYX_WS_PATH = "/telnyx"
SESSION_ID_QUERY_PARAM = "sessionId"

# Defaults for optional settings
DEFAULT_PORT = 3001
DEFAULT_HOST = "0.0.0.0"
DEFAULT_MAX_SESSIONS = 1000
DEFAULT_WEBHOOK_TIMEOUT = 10.0
DEFAULT_SPOKEN_TEXT = "I understand."

# Hume configuration payload styles
HUME_CONFIG_MODE_CONFIGURE = "configure"
HUME_CONFIG_MODE_SESSION_SETTINGS = "session_settings"
HUME_STREAM_WINDOW_MS = 1000

# Telnyx -> relay message types
MESSAGE_TYPE_CALL_INITIATED = "call.initiated"
MESSAGE_TYPE_CALL_ANSWERED = "call.answered"
MESSAGE_TYPE_MEDIA = "media"
MESSAGE_TYPE_CALL_HANGUP = "call.hangup"

# Hume -> relay message types
MESSAGE_TYPE_AUDIO_OUTPUT = "audio_output"
MESSAGE_TYPE_PREDICTIONS = "predictions"
MESSAGE_TYPE_ERROR = "error"

# WebSocket close codes used towards the telephony side
CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008  # duplicate session identifier
CLOSE_TRY_AGAIN_LATER = 1013  # session limit reached
CLOSE_BAD_GATEWAY = 1014  # Hume connection failed
