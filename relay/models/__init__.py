"""
Models module for data structures and state management in the relay.

Key components:
- message_schemas: Pydantic models for Telnyx media stream messages, Hume EVI
  messages and the speak webhook body.
- emotions: The fixed emotion set and the canned reply for each emotion.
- session: The Session record and the SessionManager registry of active calls.

Usage examples:
```python
from relay.models import SessionManager, generate_emotional_response

session_manager = SessionManager(max_sessions=100)
session = session_manager.create_session(websocket, client_ip="10.0.0.1")
...
await session_manager.cleanup(session.session_id)
```
"""

from relay.models.message_schemas import (
    AudioOutputMessage,
    BaseMessage,
    BridgeConnectedMessage,
    CallAnsweredMessage,
    CallHangupMessage,
    CallInitiatedMessage,
    EmotionScore,
    HumeAudioMessage,
    HumeErrorMessage,
    HumeTextMessage,
    MediaMessage,
    PredictionsMessage,
    SpeakRequest,
)
from relay.models.emotions import EMOTION_RESPONSES, Emotion, generate_emotional_response
from relay.models.session import Session, SessionManager, SessionRegistrationError
