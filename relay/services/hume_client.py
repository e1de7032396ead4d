import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from relay.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32
WS_PING_INTERVAL = 20

MessageHandler = Callable[[Union[str, bytes]], Awaitable[None]]
ClosedHandler = Callable[[bool], Awaitable[None]]


class HumeClient:
    """
    Client holding one WebSocket connection to Hume EVI for a single call.

    The client never reconnects: once the socket closes, the closed handler is
    called and the owning session is expected to tear down.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        on_message: Optional[MessageHandler] = None,
        on_closed: Optional[ClosedHandler] = None,
        label: str = "",
    ):
        self.url = url
        self.api_key = api_key
        self.label = label
        self.ws = None
        self._on_message = on_message
        self._on_closed = on_closed
        self._recv_task: Optional[asyncio.Task] = None
        self._is_closing = False

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @property
    def is_open(self) -> bool:
        return self.ws is not None and not self._is_closing

    async def connect(self) -> None:
        """
        Open the WebSocket to Hume.

        There is no handshake timeout; a hung handshake keeps the caller waiting
        until the telephony side goes away.

        Raises:
            Exception: Whatever websockets raises when the handshake fails
        """
        logger.info(f"Connecting to Hume EVI for {self.label}")
        logger.debug(f"Hume URL: {self.url}, Authorization: Bearer [API_KEY_HIDDEN]")
        self.ws = await websockets.connect(
            self.url,
            max_size=WS_MAX_SIZE,
            max_queue=WS_MAX_QUEUE,
            ping_interval=WS_PING_INTERVAL,
            compression=None,
            additional_headers=self.headers,
        )
        logger.info(f"Hume EVI connected for {self.label}")

    async def send_json(self, payload: Dict[str, Any]) -> None:
        """
        Send one JSON message to Hume.

        Raises:
            RuntimeError: If the connection is not open
        """
        if not self.is_open:
            raise RuntimeError("Hume connection is not open")
        await self.ws.send(json.dumps(payload))

    def start(self) -> asyncio.Task:
        """Start the task that reads Hume messages and dispatches them in order."""
        if self._recv_task is None:
            self._recv_task = asyncio.create_task(self._recv_loop())
        return self._recv_task

    async def _recv_loop(self) -> None:
        failed = False
        try:
            async for message in self.ws:
                if self._on_message is None:
                    continue
                try:
                    await self._on_message(message)
                except Exception as e:
                    logger.error(f"Error processing Hume message for {self.label}: {e}", exc_info=True)
        except ConnectionClosedOK:
            logger.info(f"Hume EVI closed normally for {self.label}")
        except ConnectionClosedError as e:
            logger.warning(f"Hume EVI connection closed unexpectedly for {self.label}: {e}")
            failed = True
        except Exception as e:
            logger.error(f"Hume EVI error for {self.label}: {e}")
            failed = True
        else:
            logger.info(f"Hume EVI disconnected for {self.label}")

        if not self._is_closing and self._on_closed is not None:
            try:
                await self._on_closed(failed)
            except Exception as e:
                logger.error(f"Error in Hume closed handler for {self.label}: {e}")

    async def close(self) -> None:
        """Close the WebSocket and stop the receive task. Safe to call twice."""
        if self._is_closing:
            return
        self._is_closing = True

        task = self._recv_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self.ws is not None:
            try:
                await self.ws.close()
            except ConnectionClosed:
                pass
        logger.info(f"Hume EVI connection closed for {self.label}")
