"""
Session state management for the Telnyx to Hume relay.

This module provides the Session record pairing one Telnyx WebSocket with one
Hume connection, and the SessionManager which owns the registry of active
sessions for the whole process. The manager is created once at startup and
passed to the connection handler; it is only mutated from the event loop.
"""

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import WebSocket

from relay.config.constants import (
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    CLOSE_TRY_AGAIN_LATER,
    DEFAULT_MAX_SESSIONS,
    LOGGER_NAME,
)
from relay.services.hume_client import HumeClient

logger = logging.getLogger(LOGGER_NAME)

_ID_ALPHABET = string.digits + string.ascii_lowercase


class SessionRegistrationError(Exception):
    """Raised when a telephony connection cannot be registered."""

    def __init__(self, message: str, close_code: int):
        super().__init__(message)
        self.close_code = close_code


def generate_session_id() -> str:
    """Build an identifier of the form conn_<epoch-ms>_<9 base36 chars>."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"conn_{int(time.time() * 1000)}_{suffix}"


@dataclass
class Session:
    """One telephony connection paired with at most one Hume connection."""

    session_id: str
    websocket: WebSocket
    client_ip: Optional[str] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    call_control_id: Optional[str] = None
    backend: Optional[HumeClient] = None
    is_processing: bool = False
    close_code: int = CLOSE_NORMAL
    # Teardown signal shared by the tasks owning the two sockets
    closed: asyncio.Event = field(default_factory=asyncio.Event)

    def request_close(self, close_code: Optional[int] = None) -> None:
        """Ask the owner of the telephony socket to tear the session down."""
        if close_code is not None and not self.closed.is_set():
            self.close_code = close_code
        self.closed.set()

    @property
    def is_closed(self) -> bool:
        return self.closed.is_set()


class SessionManager:
    """
    Registry of active relay sessions keyed by session identifier.

    Sessions are inserted by the connection handler and removed by cleanup.
    Cleanup is idempotent: the second call for the same identifier is a no-op.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.max_sessions = max_sessions
        self.active_sessions: Dict[str, Session] = {}

    def create_session(
        self,
        websocket: WebSocket,
        session_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> Session:
        """
        Register a new session for a telephony connection.

        Args:
            websocket: The accepted Telnyx WebSocket
            session_id: Identifier supplied by the caller, generated when absent
            client_ip: Remote address of the caller

        Returns:
            The registered Session

        Raises:
            SessionRegistrationError: If the identifier is taken or the limit is reached
        """
        if self.max_sessions and len(self.active_sessions) >= self.max_sessions:
            raise SessionRegistrationError(
                f"Session limit reached ({self.max_sessions})", CLOSE_TRY_AGAIN_LATER
            )

        if session_id is None:
            session_id = generate_session_id()
            while session_id in self.active_sessions:
                session_id = generate_session_id()
        elif session_id in self.active_sessions:
            raise SessionRegistrationError(
                f"Session already active: {session_id}", CLOSE_POLICY_VIOLATION
            )

        session = Session(session_id=session_id, websocket=websocket, client_ip=client_ip)
        self.active_sessions[session_id] = session
        logger.info(f"Session registered: {session_id} ({len(self.active_sessions)} active)")
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.active_sessions.get(session_id)

    def session_ids(self) -> List[str]:
        return list(self.active_sessions)

    @property
    def count(self) -> int:
        return len(self.active_sessions)

    def __len__(self) -> int:
        return len(self.active_sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.active_sessions

    async def cleanup(self, session_id: str) -> bool:
        """
        Tear down a session: close its Hume connection, signal the telephony
        owner and drop the registry entry.

        Args:
            session_id: Identifier of the session to clean up

        Returns:
            True if a session was removed, False if it was already gone
        """
        session = self.active_sessions.pop(session_id, None)
        if session is None:
            return False

        session.closed.set()
        backend, session.backend = session.backend, None
        if backend is not None:
            try:
                await backend.close()
            except Exception as e:
                logger.error(f"Error closing Hume connection for {session_id}: {e}")

        logger.info(f"Cleaned up session: {session_id} ({len(self.active_sessions)} active)")
        return True

    async def close_all(self) -> int:
        """
        Clean up every active session.

        Returns:
            Number of sessions cleaned up
        """
        cleaned = 0
        for session_id in self.session_ids():
            if await self.cleanup(session_id):
                cleaned += 1
        if cleaned:
            logger.info(f"Closed {cleaned} active session(s)")
        return cleaned
