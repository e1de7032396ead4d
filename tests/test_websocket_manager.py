import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge
from relay.config.constants import (
    CLOSE_BAD_GATEWAY,
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    CLOSE_TRY_AGAIN_LATER,
)
from relay.models.session import SessionManager
from relay.services.hume_client import HumeClient
from relay.services.speak_webhook import SpeakWebhook
from relay.websocket_manager import WebSocketManager

DISCONNECT = {"type": "websocket.disconnect", "code": 1000}


@pytest.fixture
def hume_client():
    client = AsyncMock(spec=HumeClient)
    client.start = MagicMock()
    return client


@pytest.fixture
def bridge(settings, hume_client):
    webhook = MagicMock(spec=SpeakWebhook)
    return TelnyxHumeBridge(settings, webhook, client_factory=MagicMock(return_value=hume_client))


@pytest.fixture
def session_manager():
    return SessionManager(max_sessions=10)


@pytest.fixture
def websocket_manager(session_manager, bridge):
    return WebSocketManager(session_manager, bridge)


def frame(message):
    """Wrap one Telnyx message in an ASGI receive event."""
    if isinstance(message, bytes):
        return {"type": "websocket.receive", "bytes": message}
    if isinstance(message, dict):
        message = json.dumps(message)
    return {"type": "websocket.receive", "text": message}


def frames(*messages):
    """Encode messages as Telnyx frames followed by a client disconnect."""
    return [frame(m) for m in messages] + [DISCONNECT]


def sent_messages(websocket):
    return [json.loads(c.args[0]) for c in websocket.send_text.call_args_list]


@pytest.mark.asyncio
async def test_websocket_manager_initialization(websocket_manager):
    """Test that WebSocketManager initializes correctly"""
    assert isinstance(websocket_manager.session_manager, SessionManager)
    assert set(websocket_manager.handlers) == {
        "call.initiated",
        "call.answered",
        "media",
        "call.hangup",
    }


@pytest.mark.asyncio
async def test_connection_is_registered_and_acknowledged(websocket_manager, session_manager, mock_websocket):
    """Test that a session exists while the connection is open and is removed after"""
    seen_counts = []

    async def receive():
        seen_counts.append(session_manager.count)
        return DISCONNECT

    mock_websocket.receive.side_effect = receive

    await websocket_manager.handle_websocket(mock_websocket)

    mock_websocket.accept.assert_awaited_once()
    assert seen_counts == [1]
    assert session_manager.count == 0

    ack = sent_messages(mock_websocket)[0]
    assert ack["type"] == "bridge_connected"
    assert ack["connectionId"].startswith("conn_")
    assert ack["message"] == "Bridge service connected successfully"
    mock_websocket.close.assert_awaited_once_with(code=CLOSE_NORMAL)


@pytest.mark.asyncio
async def test_session_id_query_parameter(websocket_manager, mock_websocket):
    mock_websocket.query_params = {"sessionId": "call-42"}
    mock_websocket.receive.side_effect = frames()

    await websocket_manager.handle_websocket(mock_websocket)

    assert sent_messages(mock_websocket)[0]["connectionId"] == "call-42"


@pytest.mark.asyncio
async def test_duplicate_session_id_is_rejected(websocket_manager, session_manager, mock_websocket):
    """Test that a connection that cannot be registered is closed immediately"""
    session_manager.create_session(AsyncMock(), session_id="call-42")
    mock_websocket.query_params = {"sessionId": "call-42"}

    await websocket_manager.handle_websocket(mock_websocket)

    mock_websocket.close.assert_awaited_once_with(code=CLOSE_POLICY_VIOLATION)
    mock_websocket.receive.assert_not_called()
    mock_websocket.send_text.assert_not_called()
    assert session_manager.count == 1


@pytest.mark.asyncio
async def test_session_limit_closes_connection(settings, bridge, mock_websocket):
    session_manager = SessionManager(max_sessions=1)
    session_manager.create_session(AsyncMock())
    manager = WebSocketManager(session_manager, bridge)

    await manager.handle_websocket(mock_websocket)

    mock_websocket.close.assert_awaited_once_with(code=CLOSE_TRY_AGAIN_LATER)
    mock_websocket.receive.assert_not_called()


@pytest.mark.asyncio
async def test_full_call_flow(websocket_manager, session_manager, mock_websocket, hume_client, settings):
    """Test call.initiated, call.answered, media and call.hangup end to end"""
    mock_websocket.receive.side_effect = frames(
        {"type": "media", "audio": "early"},
        {"type": "call.initiated", "call_control_id": "v3:ccid"},
        {"type": "call.answered", "call_control_id": "v3:ccid"},
        {"type": "media", "audio": "AAAA", "timestamp": 1},
        {"type": "media", "audio": "BBBB", "timestamp": 2},
        {"type": "call.hangup"},
        {"type": "media", "audio": "after-hangup"},
    )

    await websocket_manager.handle_websocket(mock_websocket)

    sent = [c.args[0] for c in hume_client.send_json.await_args_list]
    assert sent[0] == settings.hume_configuration_message()
    assert sent[1:] == [
        {"type": "audio", "audio": "AAAA", "timestamp": 1},
        {"type": "audio", "audio": "BBBB", "timestamp": 2},
    ]

    # Hangup closes both sockets and removes the session
    hume_client.close.assert_awaited_once()
    mock_websocket.close.assert_awaited_once_with(code=CLOSE_NORMAL)
    assert session_manager.count == 0
    assert mock_websocket.receive.call_count == 6


@pytest.mark.asyncio
async def test_backend_failure_closes_with_bad_gateway(websocket_manager, session_manager, mock_websocket, hume_client):
    """Test that a failed Hume connection closes Telnyx with a distinguishable code"""
    hume_client.connect.side_effect = OSError("refused")
    mock_websocket.receive.side_effect = frames(
        {"type": "call.initiated", "call_control_id": "v3:ccid"},
        {"type": "media", "audio": "AAAA"},
    )

    await websocket_manager.handle_websocket(mock_websocket)

    mock_websocket.close.assert_awaited_once_with(code=CLOSE_BAD_GATEWAY)
    assert session_manager.count == 0


@pytest.mark.asyncio
async def test_malformed_and_unknown_messages_keep_connection_open(websocket_manager, session_manager, mock_websocket):
    """Test that bad frames are dropped without ending the connection"""
    mock_websocket.receive.side_effect = frames(
        "{not json",
        "[1, 2, 3]",
        {"type": "streaming.started"},
        {"no_type": True},
        {"type": "call.answered"},
    )

    await websocket_manager.handle_websocket(mock_websocket)

    assert mock_websocket.receive.call_count == 6
    mock_websocket.close.assert_awaited_once_with(code=CLOSE_NORMAL)


@pytest.mark.asyncio
async def test_binary_frames_keep_connection_open(websocket_manager, session_manager, mock_websocket):
    """Test that binary frames are decoded like text and never end the call"""
    answered = AsyncMock()
    websocket_manager.handlers["call.answered"] = answered
    registered = []

    async def record_registration(message, session, bridge):
        registered.append(session.session_id in session_manager)

    websocket_manager.handlers["call.hangup"] = record_registration
    mock_websocket.receive.side_effect = frames(
        b'{"type": "streaming.started"}',
        b"\xff\xfe\x00",
        b'{"type": "call.answered", "call_control_id": "v3:ccid"}',
        {"type": "call.answered"},
        {"type": "call.hangup"},
    )

    await websocket_manager.handle_websocket(mock_websocket)

    assert answered.await_count == 2
    assert answered.await_args_list[0].args[0]["call_control_id"] == "v3:ccid"
    assert registered == [True]
    assert mock_websocket.receive.call_count == 6
    mock_websocket.close.assert_awaited_once_with(code=CLOSE_NORMAL)


@pytest.mark.asyncio
async def test_handler_exception_is_isolated(websocket_manager, mock_websocket):
    failing = AsyncMock(side_effect=RuntimeError("handler failed"))
    websocket_manager.handlers["call.answered"] = failing
    mock_websocket.receive.side_effect = frames(
        {"type": "call.answered"},
        {"type": "call.answered"},
    )

    await websocket_manager.handle_websocket(mock_websocket)

    assert failing.await_count == 2


@pytest.mark.asyncio
async def test_receive_error_cleans_up(websocket_manager, session_manager, mock_websocket):
    """Test that an unexpected receive error still cleans up the session"""
    mock_websocket.receive.side_effect = Exception("Test exception")

    await websocket_manager.handle_websocket(mock_websocket)

    mock_websocket.accept.assert_awaited_once()
    mock_websocket.close.assert_awaited_once()
    assert session_manager.count == 0


@pytest.mark.asyncio
async def test_teardown_signal_interrupts_receive(websocket_manager, session_manager, mock_websocket):
    """Test that a teardown raised elsewhere ends a connection waiting for input"""
    waiting = asyncio.Event()

    async def receive():
        waiting.set()
        await asyncio.Event().wait()

    mock_websocket.receive.side_effect = receive

    handler = asyncio.create_task(websocket_manager.handle_websocket(mock_websocket))
    await waiting.wait()

    session_id = session_manager.session_ids()[0]
    session_manager.get_session(session_id).request_close(CLOSE_BAD_GATEWAY)
    await asyncio.wait_for(handler, timeout=1)

    mock_websocket.close.assert_awaited_once_with(code=CLOSE_BAD_GATEWAY)
    assert session_manager.count == 0


@pytest.mark.asyncio
async def test_shutdown_cleanup_ends_open_connections(websocket_manager, session_manager):
    """Test that close_all tears down every live connection exactly once"""
    websockets = []
    handlers = []
    for _ in range(3):
        websocket = AsyncMock()
        websocket.query_params = {}
        websocket.client = None

        async def receive():
            await asyncio.Event().wait()

        websocket.receive.side_effect = receive
        websockets.append(websocket)
        handlers.append(asyncio.create_task(websocket_manager.handle_websocket(websocket)))

    await asyncio.sleep(0.01)
    assert session_manager.count == 3

    assert await session_manager.close_all() == 3
    await asyncio.wait_for(asyncio.gather(*handlers), timeout=1)

    assert session_manager.count == 0
    for websocket in websockets:
        websocket.close.assert_awaited_once_with(code=CLOSE_NORMAL)
