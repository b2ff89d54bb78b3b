"""Session state tracking for the RPC client."""

import logging
import secrets
import string
import time
from datetime import UTC, datetime

from blockpool_client.core.models import ConnectionState, ConnectionStatus, Session

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Create an opaque session id, e.g. 'sei_1729339200000_k3j9x0a1b2c3d'."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(13))
    return f"sei_{int(time.time() * 1000)}_{suffix}"


class SessionManager:
    """
    Tracks the logical session and connection state.

    This class only holds state; the client performs the handshake and calls
    the transition methods.

    States: DISCONNECTED -> CONNECTING -> CONNECTED, with DEGRADED while
    connected but the last call failed transiently.

    """

    def __init__(self) -> None:
        self.session: Session | None = None
        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0
        self.last_error: str | None = None

    @property
    def is_connected(self) -> bool:
        """True while an active session exists."""
        return self.session is not None and self.session.is_active

    @property
    def session_id(self) -> str | None:
        return self.session.id if self.session else None

    def begin_connect(self) -> None:
        """Enter CONNECTING."""
        self.state = ConnectionState.CONNECTING

    def open(self, session_id: str) -> Session:
        """
        Activate a new session after a successful handshake.

        Parameters
        ----------
        session_id : str
            Identifier the handshake registered remotely

        Returns
        -------
        Session
            The new active session

        """
        self.session = Session(id=session_id)
        self.state = ConnectionState.CONNECTED
        self.attempts = 0
        self.last_error = None
        return self.session

    def fail_connect(self, error: str) -> None:
        """Record a failed connect attempt and return to DISCONNECTED."""
        self.session = None
        self.state = ConnectionState.DISCONNECTED
        self.attempts += 1
        self.last_error = error

    def record_activity(self) -> None:
        """Record a successful dispatch on the active session."""
        if self.session is None:
            return
        self.session.request_count += 1
        self.session.last_activity_at = datetime.now(UTC)
        if self.state == ConnectionState.DEGRADED:
            self.state = ConnectionState.CONNECTED
        self.last_error = None

    def mark_degraded(self, error: str) -> None:
        """Record a transient failure while keeping the session."""
        self.last_error = error
        if self.is_connected:
            self.state = ConnectionState.DEGRADED

    def close(self, error: str | None = None) -> Session | None:
        """
        Deactivate and clear the session.

        Parameters
        ----------
        error : str | None
            Reason when the session was lost rather than closed

        Returns
        -------
        Session | None
            The session that was closed, if any

        """
        closed = self.session
        if closed is not None:
            closed.is_active = False
            logger.debug("Session %s closed after %d requests", closed.id, closed.request_count)
        self.session = None
        self.state = ConnectionState.DISCONNECTED
        self.last_error = error
        return closed

    def status(self) -> ConnectionStatus:
        """Derived connection status snapshot."""
        return ConnectionStatus(
            connected=self.is_connected,
            state=self.state,
            session_id=self.session_id,
            attempts=self.attempts,
            last_error=self.last_error,
        )
