"""
Bridge module connecting Telnyx media streams with Hume EVI.

This module owns the Hume side of every session: it opens the Hume connection
when a call is initiated, sends the one-time configuration, forwards caller
audio, routes Hume messages to their handlers and hands generated audio to the
speak webhook.
"""

import json
import logging
from functools import partial
from typing import Any, Callable, Dict, Union

from relay.config.constants import (
    CLOSE_BAD_GATEWAY,
    CLOSE_NORMAL,
    LOGGER_NAME,
    MESSAGE_TYPE_AUDIO_OUTPUT,
    MESSAGE_TYPE_ERROR,
    MESSAGE_TYPE_PREDICTIONS,
)
from relay.config.settings import RelaySettings
from relay.handlers.hume_handlers import (
    handle_audio_output,
    handle_hume_error,
    handle_predictions,
)
from relay.models.message_schemas import (
    HumeAudioMessage,
    HumeTextMessage,
    MediaMessage,
    SpeakRequest,
)
from relay.models.session import Session
from relay.services.hume_client import HumeClient
from relay.services.speak_webhook import SpeakWebhook

logger = logging.getLogger(LOGGER_NAME)

ClientFactory = Callable[..., HumeClient]


class TelnyxHumeBridge:
    """
    Bridge between the Telnyx media stream protocol and Hume EVI.

    This class handles:
    - Opening one Hume connection per session and configuring it exactly once
    - Translating Telnyx media frames into Hume audio messages
    - Routing Hume audio output to the speak webhook
    - Answering Hume emotion predictions with a text turn
    """

    def __init__(
        self,
        settings: RelaySettings,
        webhook: SpeakWebhook,
        client_factory: ClientFactory = HumeClient,
    ):
        self.settings = settings
        self.webhook = webhook
        self.client_factory = client_factory
        self.handlers: Dict[str, Callable] = {
            MESSAGE_TYPE_AUDIO_OUTPUT: handle_audio_output,
            MESSAGE_TYPE_PREDICTIONS: handle_predictions,
            MESSAGE_TYPE_ERROR: handle_hume_error,
        }

    async def open_backend(self, session: Session) -> bool:
        """
        Open and configure the Hume connection for a session.

        The configuration payload is sent right after the handshake and before
        the client is attached to the session, so no audio can overtake it.

        Args:
            session: The session to pair with a Hume connection

        Returns:
            True if the session now has a configured Hume connection
        """
        if session.backend is not None:
            logger.warning(f"Hume connection already open for {session.session_id}")
            return True

        client = self.client_factory(
            self.settings.hume_ws_url,
            self.settings.hume_api_key,
            on_message=partial(self.handle_hume_message, session),
            on_closed=partial(self._handle_hume_closed, session),
            label=session.session_id,
        )

        try:
            await client.connect()
            await client.send_json(self.settings.hume_configuration_message())
        except Exception as e:
            logger.error(f"Error connecting to Hume EVI for {session.session_id}: {e}")
            session.request_close(CLOSE_BAD_GATEWAY)
            await client.close()
            return False

        if session.is_closed:
            # Torn down while the handshake was in flight
            logger.info(f"Session {session.session_id} ended during Hume handshake")
            await client.close()
            return False

        session.backend = client
        client.start()
        logger.info(f"Hume EVI configured for {session.session_id} ({self.settings.hume_config_mode})")
        return True

    async def forward_audio(self, session: Session, media: MediaMessage) -> bool:
        """
        Forward one Telnyx media frame to Hume.

        Returns:
            True if an audio message was sent
        """
        if not media.audio or not session.is_processing or session.backend is None:
            return False

        message = HumeAudioMessage(audio=media.audio, timestamp=media.timestamp)
        try:
            await session.backend.send_json(message.model_dump())
        except Exception as e:
            logger.error(f"Error forwarding audio to Hume for {session.session_id}: {e}")
            return False
        return True

    async def send_text(self, session: Session, text: str) -> bool:
        """Send a text turn to Hume for synthesis."""
        if session.backend is None:
            logger.warning(f"No Hume connection for {session.session_id}, dropping text turn")
            return False

        message = HumeTextMessage(text=text)
        try:
            await session.backend.send_json(message.model_dump())
        except Exception as e:
            logger.error(f"Error sending text to Hume for {session.session_id}: {e}")
            return False
        logger.info(f"Sent response to Hume for {session.session_id}: {text}")
        return True

    def speak(self, session: Session, request: SpeakRequest) -> None:
        """Hand generated audio to the speak webhook without waiting for it."""
        self.webhook.dispatch(request, label=session.session_id)

    async def handle_hume_message(self, session: Session, data: Union[str, bytes]) -> None:
        """
        Decode one Hume message and route it by type.

        Malformed messages and unknown types are logged and dropped.
        """
        try:
            message: Dict[str, Any] = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Error processing Hume message for {session.session_id}: {e}")
            return

        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object Hume message for {session.session_id}")
            return

        message_type = message.get("type")
        logger.debug(
            f"Received from Hume EVI: session={session.session_id} "
            f"type={message_type} has_predictions={bool(message.get('predictions'))}"
        )

        handler = self.handlers.get(message_type)
        if handler is None:
            logger.info(f"Unhandled Hume message type: {message_type}")
            return

        try:
            await handler(message, session, self)
        except Exception as e:
            logger.error(f"Error handling Hume {message_type} for {session.session_id}: {e}", exc_info=True)

    async def _handle_hume_closed(self, session: Session, failed: bool) -> None:
        logger.info(f"Hume EVI disconnected for {session.session_id}")
        session.request_close(CLOSE_BAD_GATEWAY if failed else CLOSE_NORMAL)

    async def aclose(self) -> None:
        await self.webhook.aclose()
