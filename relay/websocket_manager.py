"""
WebSocket connection manager for Telnyx media streams.

This module implements the server side of the relay's telephony connection,
providing the infrastructure to:
- Accept Telnyx WebSocket connections and register one session per connection
- Route incoming messages to the call handlers by their "type" field
- Stop reading when the session's teardown signal is raised
- Clean the session up and close the Telnyx socket exactly once

The WebSocketManager owns the Telnyx socket of every session; the Hume socket is
owned by the HumeClient receive task. The two only share the session's
teardown signal.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge
from relay.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_CALL_ANSWERED,
    MESSAGE_TYPE_CALL_HANGUP,
    MESSAGE_TYPE_CALL_INITIATED,
    MESSAGE_TYPE_MEDIA,
    SESSION_ID_QUERY_PARAM,
)
from relay.handlers.call_handlers import (
    handle_call_answered,
    handle_call_hangup,
    handle_call_initiated,
    handle_media,
)
from relay.models.message_schemas import BridgeConnectedMessage
from relay.models.session import Session, SessionManager, SessionRegistrationError

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[[Dict[str, Any], Session, TelnyxHumeBridge], Awaitable[None]]


class WebSocketManager:
    """Manages Telnyx WebSocket connections and routes messages to the call handlers.

    Each message type is routed to a specific handler function based on the
    message's "type" field. Unknown types are logged and dropped, and a message
    that fails to parse or to handle never ends the connection.
    """

    def __init__(self, session_manager: SessionManager, bridge: TelnyxHumeBridge):
        self.session_manager = session_manager
        self.bridge = bridge

        self.handlers: Dict[str, HandlerFunc] = {
            MESSAGE_TYPE_CALL_INITIATED: handle_call_initiated,
            MESSAGE_TYPE_CALL_ANSWERED: handle_call_answered,
            MESSAGE_TYPE_MEDIA: handle_media,
            MESSAGE_TYPE_CALL_HANGUP: handle_call_hangup,
        }

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a Telnyx WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection and registers its session
        2. Sends the bridge_connected acknowledgement
        3. Processes incoming messages until the client leaves or the session is torn down
        4. Cleans the session up and closes the socket with the session's close code
        """
        await websocket.accept()

        client_ip = websocket.client.host if websocket.client else None
        requested_id = websocket.query_params.get(SESSION_ID_QUERY_PARAM) or None

        try:
            session = self.session_manager.create_session(
                websocket, session_id=requested_id, client_ip=client_ip
            )
        except SessionRegistrationError as e:
            logger.error(f"Rejecting connection from {client_ip}: {e}")
            await websocket.close(code=e.close_code)
            return

        session_id = session.session_id
        logger.info(f"New WebSocket connection: {session_id} from {client_ip}")

        try:
            ack = BridgeConnectedMessage(connectionId=session_id)
            await websocket.send_text(ack.model_dump_json())

            while not session.is_closed:
                data = await self._receive(websocket, session)
                if data is None or session.is_closed:
                    break
                await self.process_message(data, session)

        except WebSocketDisconnect as e:
            logger.info(f"WebSocket connection closed: {session_id} ({e.code})")
        except Exception as e:
            logger.error(f"WebSocket error for {session_id}: {e}", exc_info=True)
        finally:
            await self.session_manager.cleanup(session_id)
            await self._close(websocket, session.close_code)
            logger.info(f"WebSocket connection finished: {session_id}")

    async def process_message(self, data: Union[str, bytes], session: Session) -> None:
        """Decode one Telnyx message and route it to its handler."""
        try:
            message_dict = json.loads(data)
        except ValueError as e:
            logger.error(f"Error processing message from {session.session_id}: {e}")
            return

        if not isinstance(message_dict, dict):
            logger.warning(f"Ignoring non-object message from {session.session_id}")
            return

        message_type = message_dict.get("type")

        # Media frames are the bulk of the traffic, keep their logging at debug
        if message_type == MESSAGE_TYPE_MEDIA:
            logger.debug(f"Received media from {session.session_id}")
        else:
            logger.info(
                f"Received message type: {message_type} for {session.session_id}"
                f" (has audio: {bool(message_dict.get('audio'))})"
            )

        handler = self.handlers.get(message_type)
        if handler is None:
            logger.info(f"Unhandled message type: {message_type}")
            return

        try:
            await handler(message_dict, session, self.bridge)
        except Exception as e:
            logger.error(f"Error handling {message_type} for {session.session_id}: {e}", exc_info=True)

    async def _receive(self, websocket: WebSocket, session: Session) -> Optional[Union[str, bytes]]:
        """Wait for the next frame, text or binary, or None once the session is torn down."""
        receive = asyncio.ensure_future(websocket.receive())
        teardown = asyncio.ensure_future(session.closed.wait())
        try:
            done, _ = await asyncio.wait(
                {receive, teardown}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (receive, teardown):
                if not task.done():
                    task.cancel()

        if receive not in done:
            return None

        message = receive.result()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

        text = message.get("text")
        if text is not None:
            return text
        return message.get("bytes") or b""

    async def _close(self, websocket: WebSocket, code: int) -> None:
        if websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await websocket.close(code=code)
        except Exception as e:
            logger.debug(f"WebSocket already closed: {e}")
