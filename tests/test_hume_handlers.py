import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge
from relay.handlers.hume_handlers import (
    handle_audio_output,
    handle_hume_error,
    handle_predictions,
)
from relay.models.emotions import EMOTION_RESPONSES, Emotion
from relay.models.session import SessionManager


@pytest.fixture
def bridge():
    bridge = AsyncMock(spec=TelnyxHumeBridge)
    bridge.speak = MagicMock()
    return bridge


@pytest.fixture
def session(mock_websocket):
    return SessionManager().create_session(mock_websocket, session_id="call-1")


def predictions_message(emotions, sentiment=None):
    return {
        "type": "predictions",
        "predictions": {
            "prosody": {"emotions": emotions},
            "language": {"sentiment": sentiment},
        },
    }


@pytest.mark.asyncio
async def test_audio_output_calls_webhook(session, bridge):
    """Test that Hume audio output is handed to the speak webhook"""
    session.call_control_id = "v3:ccid"

    await handle_audio_output(
        {"type": "audio_output", "text": "Hello there", "audio": "UklGRg=="}, session, bridge
    )

    bridge.speak.assert_called_once()
    spoken_session, request = bridge.speak.call_args.args
    assert spoken_session is session
    assert request.call_control_id == "v3:ccid"
    assert request.text == "Hello there"
    assert request.audio == "UklGRg=="


@pytest.mark.asyncio
async def test_audio_output_default_text(session, bridge):
    session.call_control_id = "v3:ccid"

    await handle_audio_output({"type": "audio_output", "audio": "UklGRg=="}, session, bridge)

    request = bridge.speak.call_args.args[1]
    assert request.text == "I understand."


@pytest.mark.asyncio
async def test_audio_output_without_call_control_id(session, bridge):
    """Test that audio output is dropped until the call control id is known"""
    await handle_audio_output({"type": "audio_output", "audio": "UklGRg=="}, session, bridge)

    bridge.speak.assert_not_called()


@pytest.mark.asyncio
async def test_predictions_send_joy_response(session, bridge):
    """Test that the dominant emotion selects the reply sent to Hume"""
    message = predictions_message(
        [{"name": "joy", "score": 0.9}, {"name": "sadness", "score": 0.1}],
        sentiment={"positive": 0.7},
    )

    await handle_predictions(message, session, bridge)

    bridge.send_text.assert_awaited_once_with(session, EMOTION_RESPONSES[Emotion.JOY])


@pytest.mark.asyncio
async def test_predictions_unknown_emotion_uses_neutral(session, bridge):
    message = predictions_message([{"name": "boredom", "score": 0.6}])

    await handle_predictions(message, session, bridge)

    bridge.send_text.assert_awaited_once_with(session, EMOTION_RESPONSES[Emotion.NEUTRAL])


@pytest.mark.asyncio
async def test_predictions_empty_emotions_send_nothing(session, bridge):
    """Test that an empty emotions list produces no reply"""
    await handle_predictions(predictions_message([]), session, bridge)

    bridge.send_text.assert_not_called()


@pytest.mark.asyncio
async def test_predictions_without_prosody_send_nothing(session, bridge):
    await handle_predictions({"type": "predictions", "predictions": {}}, session, bridge)
    await handle_predictions({"type": "predictions"}, session, bridge)

    bridge.send_text.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_predictions_are_dropped(session, bridge):
    message = {"type": "predictions", "predictions": {"prosody": {"emotions": "not-a-list"}}}

    await handle_predictions(message, session, bridge)

    bridge.send_text.assert_not_called()


@pytest.mark.asyncio
async def test_hume_error_is_logged(session, bridge, caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("telnyx_hume_relay"), "propagate", True)
    caplog.set_level("ERROR", logger="telnyx_hume_relay")

    await handle_hume_error({"type": "error", "error": "bad audio"}, session, bridge)

    assert "bad audio" in caplog.text
    assert not session.is_closed
