"""
Handles messages received from Hume EVI.

Audio output is handed to the speak webhook, emotion predictions are answered
with a canned reply, and errors are logged. Every handler works on a single
message; failures are logged and never end the session.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

from pydantic import ValidationError

from relay.config.constants import DEFAULT_SPOKEN_TEXT, LOGGER_NAME
from relay.models.emotions import generate_emotional_response
from relay.models.message_schemas import (
    AudioOutputMessage,
    HumeErrorMessage,
    PredictionsMessage,
    SpeakRequest,
)
from relay.models.session import Session

if TYPE_CHECKING:
    from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge

logger = logging.getLogger(LOGGER_NAME)


async def handle_audio_output(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """
    Handle an audio_output message from Hume.

    The audio is delivered through the speak webhook together with the call
    control id, so it is dropped while the call control id is still unknown.

    Args:
        message: The audio_output message
        session: The session the Hume connection belongs to
        bridge: Bridge owning the speak webhook
    """
    if not session.call_control_id:
        logger.debug(f"No call control id yet for {session.session_id}, dropping audio output")
        return None

    try:
        output = AudioOutputMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid audio_output message: {e}")
        return None

    request = SpeakRequest(
        call_control_id=session.call_control_id,
        text=output.text or DEFAULT_SPOKEN_TEXT,
        audio=output.audio,
    )
    bridge.speak(session, request)
    return None


async def handle_predictions(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """
    Handle a predictions message from Hume.

    Picks the dominant prosody emotion and sends the matching reply back to
    Hume as a text turn. Nothing is sent when no emotions were reported.
    """
    try:
        predictions = PredictionsMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid predictions message: {e}")
        return None

    emotions = predictions.emotions
    top_three = sorted(emotions, key=lambda emotion: emotion.score, reverse=True)[:3]
    logger.info(
        f"Emotion analysis for {session.session_id}: "
        f"emotions={[(e.name, round(e.score, 3)) for e in top_three]} "
        f"sentiment={predictions.sentiment}"
    )

    response_text = generate_emotional_response(emotions)
    if response_text:
        await bridge.send_text(session, response_text)
    return None


async def handle_hume_error(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    try:
        error = HumeErrorMessage(**message)
        detail = error.error if error.error is not None else error.message
    except ValidationError:
        detail = message
    logger.error(f"Hume EVI error for {session.session_id}: {detail}")
    return None
