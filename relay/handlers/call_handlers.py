"""
Handles call lifecycle and media messages received from Telnyx.

Each handler receives the decoded message, the session it arrived on and the
bridge that talks to Hume. Handlers never close sockets themselves: a hangup
only raises the session's teardown signal, and the task that owns the Telnyx
socket performs the cleanup.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

from pydantic import ValidationError

from relay.config.constants import LOGGER_NAME
from relay.models.message_schemas import (
    CallAnsweredMessage,
    CallHangupMessage,
    CallInitiatedMessage,
    MediaMessage,
)
from relay.models.session import Session

if TYPE_CHECKING:
    from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge

logger = logging.getLogger(LOGGER_NAME)


async def handle_call_initiated(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """
    Handle the call.initiated event from Telnyx.

    Stores the call control id and opens the paired Hume connection. If Hume
    cannot be reached the bridge marks the session for teardown.

    Args:
        message: The call.initiated message
        session: The session the message arrived on
        bridge: Bridge used to open the Hume connection
    """
    try:
        initiated = CallInitiatedMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid call.initiated message: {e}")
        return None

    logger.info(f"Call initiated for {session.session_id}")
    if initiated.call_control_id:
        session.call_control_id = initiated.call_control_id

    await bridge.open_backend(session)
    return None


async def handle_call_answered(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """
    Handle the call.answered event from Telnyx.

    Audio is only forwarded to Hume once the call has been answered.
    """
    try:
        answered = CallAnsweredMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid call.answered message: {e}")
        return None

    logger.info(f"Call answered for {session.session_id}")
    if answered.call_control_id:
        session.call_control_id = answered.call_control_id
    session.is_processing = True
    return None


async def handle_media(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """Forward a media frame's audio to Hume."""
    # Fast path - skip validation when the frame cannot be forwarded anyway
    if not message.get("audio") or not session.is_processing or session.backend is None:
        return None

    try:
        media = MediaMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid media message: {e}")
        return None

    await bridge.forward_audio(session, media)
    return None


async def handle_call_hangup(
    message: Dict[str, Any],
    session: Session,
    bridge: "TelnyxHumeBridge",
) -> None:
    """Handle the call.hangup event by requesting session teardown."""
    try:
        CallHangupMessage(**message)
    except ValidationError as e:
        logger.warning(f"Invalid call.hangup message, ending call anyway: {e}")

    logger.info(f"Call ended for {session.session_id}")
    session.request_close()
    return None
