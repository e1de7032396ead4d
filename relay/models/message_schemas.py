"""
Pydantic models for the messages exchanged by the relay.

This module defines structured data models for the Telnyx media stream messages
received from the telephony side, the Hume EVI messages received from the backend,
and everything the relay sends to either side or to the speak webhook.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Base Models
class BaseMessage(BaseModel):
    """Base model for all WebSocket messages."""

    type: str = Field(..., description="Message type identifier")


# Telnyx -> relay
class CallInitiatedMessage(BaseMessage):
    """Model for call.initiated events from Telnyx."""

    type: Literal["call.initiated"]
    call_control_id: Optional[str] = Field(
        None, description="Telnyx call control identifier"
    )


class CallAnsweredMessage(BaseMessage):
    """Model for call.answered events from Telnyx."""

    type: Literal["call.answered"]
    call_control_id: Optional[str] = Field(
        None, description="Telnyx call control identifier"
    )


class MediaMessage(BaseMessage):
    """Model for media frames carrying caller audio."""

    type: Literal["media"]
    audio: Optional[str] = Field(None, description="Base64 encoded audio payload")
    timestamp: Optional[Any] = Field(None, description="Timestamp supplied by Telnyx")


class CallHangupMessage(BaseMessage):
    """Model for call.hangup events from Telnyx."""

    type: Literal["call.hangup"]
    call_control_id: Optional[str] = None


# Relay -> Telnyx
class BridgeConnectedMessage(BaseMessage):
    """Acknowledgement sent once a telephony connection is registered."""

    type: Literal["bridge_connected"] = "bridge_connected"
    connectionId: str = Field(..., description="Session identifier assigned by the relay")
    timestamp: str = Field(default_factory=utc_timestamp)
    message: str = "Bridge service connected successfully"


# Relay -> Hume
class HumeAudioMessage(BaseMessage):
    """Caller audio forwarded to Hume."""

    type: Literal["audio"] = "audio"
    audio: str
    timestamp: Optional[Any] = None


class HumeTextMessage(BaseMessage):
    """Text turn sent to Hume for synthesis."""

    type: Literal["text"] = "text"
    text: str
    timestamp: str = Field(default_factory=utc_timestamp)

    @field_validator("text")
    def validate_text(cls, v):
        """Validate that the text turn is not empty."""
        if not v.strip():
            raise ValueError("Text cannot be empty")
        return v


# Hume -> relay
class AudioOutputMessage(BaseMessage):
    """Audio generated by Hume."""

    type: Literal["audio_output"]
    text: Optional[str] = None
    audio: Optional[str] = None


class EmotionScore(BaseModel):
    """A single emotion prediction."""

    name: str
    score: float = 0.0


class ProsodyPredictions(BaseModel):
    emotions: List[EmotionScore] = Field(default_factory=list)


class LanguagePredictions(BaseModel):
    sentiment: Optional[Any] = None


class Predictions(BaseModel):
    prosody: Optional[ProsodyPredictions] = None
    language: Optional[LanguagePredictions] = None


class PredictionsMessage(BaseMessage):
    """Emotion and sentiment predictions from Hume."""

    type: Literal["predictions"]
    predictions: Optional[Predictions] = None

    @property
    def emotions(self) -> List[EmotionScore]:
        if self.predictions and self.predictions.prosody:
            return self.predictions.prosody.emotions
        return []

    @property
    def sentiment(self) -> Dict[str, Any]:
        if self.predictions and self.predictions.language and self.predictions.language.sentiment:
            return self.predictions.language.sentiment
        return {}


class HumeErrorMessage(BaseMessage):
    """Error reported by Hume."""

    type: Literal["error"]
    error: Optional[Any] = None
    message: Optional[str] = None


# Relay -> speak webhook
class SpeakRequest(BaseModel):
    """Body of the POST sent to the speak webhook."""

    call_control_id: str
    text: str
    audio: Optional[str] = None
