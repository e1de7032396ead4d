"""
HTTP client for the speak webhook.

Hume audio output is not played back by the relay itself; instead the relay posts
the call control id, text and audio to a webhook and another service asks Telnyx
to play it. Deliveries run as background tasks so a slow webhook never delays
message processing for any session.
"""

import asyncio
import logging
from typing import Optional, Set

import httpx

from relay.config.constants import DEFAULT_WEBHOOK_TIMEOUT, LOGGER_NAME
from relay.models.message_schemas import SpeakRequest

logger = logging.getLogger(LOGGER_NAME)


class SpeakWebhook:
    """Fire-and-forget POSTs to the speak webhook."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def send(self, request: SpeakRequest, label: str = "") -> bool:
        """
        POST one speak request.

        Returns:
            True if the webhook answered with a 2xx status, False otherwise
        """
        try:
            response = await self._client.post(
                self.url,
                json=request.model_dump(),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error sending audio to Telnyx for {label}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error calling speak webhook for {label}: {e}", exc_info=True)
            return False

        logger.info(f"Sent audio to Telnyx for {label}")
        return True

    def dispatch(self, request: SpeakRequest, label: str = "") -> asyncio.Task:
        """Schedule a delivery without waiting for it."""
        task = asyncio.create_task(self.send(request, label))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def aclose(self) -> None:
        """Wait for in-flight deliveries, then close the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.aclose()
