"""
Environment-based settings for the relay.

All required values are read once at process start. Missing or invalid values
raise ConfigurationError so the process can exit before it accepts connections.
"""

import os
from typing import List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from relay.config.constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_PORT,
    DEFAULT_WEBHOOK_TIMEOUT,
    HUME_CONFIG_MODE_CONFIGURE,
    HUME_CONFIG_MODE_SESSION_SETTINGS,
    HUME_STREAM_WINDOW_MS,
)

REQUIRED_VARIABLES = ["HUME_WS_URL", "HUME_API_KEY", "WEBHOOK_SPEAK_URL"]


class ConfigurationError(Exception):
    """Raised when the relay cannot start because of missing or invalid settings."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class RelaySettings(BaseModel):
    """Validated process settings."""

    hume_ws_url: str = Field(..., description="Hume EVI WebSocket URL")
    hume_api_key: str = Field(..., description="Hume API key sent as a bearer token")
    webhook_speak_url: str = Field(..., description="URL receiving speak requests")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    host: str = DEFAULT_HOST
    log_level: str = "INFO"
    max_sessions: int = Field(DEFAULT_MAX_SESSIONS, ge=0, description="0 means unlimited")
    webhook_timeout: float = Field(DEFAULT_WEBHOOK_TIMEOUT, gt=0)
    hume_config_mode: Literal[HUME_CONFIG_MODE_CONFIGURE, HUME_CONFIG_MODE_SESSION_SETTINGS] = HUME_CONFIG_MODE_CONFIGURE
    hume_voice_id: Optional[str] = None
    hume_system_prompt: Optional[str] = None

    @field_validator("hume_ws_url")
    def validate_ws_url(cls, v):
        """Validate that the Hume URL uses a WebSocket scheme."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("HUME_WS_URL must start with ws:// or wss://")
        return v

    @field_validator("webhook_speak_url")
    def validate_webhook_url(cls, v):
        """Validate that the speak webhook is an HTTP URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("WEBHOOK_SPEAK_URL must start with http:// or https://")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    def environment_status(self) -> dict:
        """Report which required settings are present, without their values."""
        return {
            "HUME_WS_URL": "configured" if self.hume_ws_url else "missing",
            "HUME_API_KEY": "configured" if self.hume_api_key else "missing",
            "WEBHOOK_SPEAK_URL": "configured" if self.webhook_speak_url else "missing",
        }

    def hume_configuration_message(self) -> dict:
        """Build the one-time payload sent to Hume after the socket opens."""
        if self.hume_config_mode == HUME_CONFIG_MODE_SESSION_SETTINGS:
            message = {"type": HUME_CONFIG_MODE_SESSION_SETTINGS}
            if self.hume_voice_id:
                message["voice"] = {"id": self.hume_voice_id}
            if self.hume_system_prompt:
                message["system_prompt"] = self.hume_system_prompt
            return message

        return {
            "type": HUME_CONFIG_MODE_CONFIGURE,
            "config": {
                "models": {
                    "prosody": {},
                    "facemesh": {},
                    "language": {},
                },
                "stream_window_ms": HUME_STREAM_WINDOW_MS,
                "use_embeddings": True,
            },
        }


def load_settings(environ: Optional[Mapping[str, str]] = None) -> RelaySettings:
    """
    Read relay settings from the environment.

    Args:
        environ: Mapping to read from, defaults to os.environ

    Returns:
        RelaySettings: The validated settings

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    values = {
        "hume_ws_url": env["HUME_WS_URL"],
        "hume_api_key": env["HUME_API_KEY"],
        "webhook_speak_url": env["WEBHOOK_SPEAK_URL"],
        "port": env.get("PORT") or env.get("BRIDGE_PORT") or DEFAULT_PORT,
    }
    optional = {
        "host": "HOST",
        "log_level": "LOG_LEVEL",
        "max_sessions": "MAX_SESSIONS",
        "webhook_timeout": "WEBHOOK_TIMEOUT",
        "hume_config_mode": "HUME_CONFIG_MODE",
        "hume_voice_id": "HUME_VOICE_ID",
        "hume_system_prompt": "HUME_SYSTEM_PROMPT",
    }
    for field_name, variable in optional.items():
        if env.get(variable):
            values[field_name] = env[variable]

    try:
        return RelaySettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
