"""Tests for session state transitions."""

import re

from blockpool_client.core.models import ConnectionState
from blockpool_client.rpc.session import SessionManager, generate_session_id


def test_generate_session_id():
    session_id = generate_session_id()

    assert re.fullmatch(r"sei_\d{13}_[a-z0-9]{13}", session_id)
    assert session_id != generate_session_id()


def test_initial_state():
    sessions = SessionManager()

    status = sessions.status()

    assert not status.connected
    assert status.state == ConnectionState.DISCONNECTED
    assert status.session_id is None
    assert status.attempts == 0


def test_open_session():
    sessions = SessionManager()
    sessions.begin_connect()
    assert sessions.state == ConnectionState.CONNECTING

    session = sessions.open("sei_1_abc")

    assert session.is_active
    assert sessions.is_connected
    assert sessions.session_id == "sei_1_abc"
    assert sessions.state == ConnectionState.CONNECTED


def test_failed_connects_count_attempts():
    """Test attempts accumulate until a session opens."""
    sessions = SessionManager()
    sessions.fail_connect("refused")
    sessions.fail_connect("refused again")

    assert sessions.attempts == 2
    assert sessions.last_error == "refused again"
    assert sessions.state == ConnectionState.DISCONNECTED

    sessions.open("sei_1_abc")

    assert sessions.attempts == 0
    assert sessions.last_error is None


def test_degraded_and_recovery():
    sessions = SessionManager()
    sessions.open("sei_1_abc")

    sessions.mark_degraded("timeout")

    assert sessions.state == ConnectionState.DEGRADED
    assert sessions.is_connected
    assert sessions.status().last_error == "timeout"

    sessions.record_activity()

    assert sessions.state == ConnectionState.CONNECTED
    assert sessions.session.request_count == 1
    assert sessions.last_error is None


def test_mark_degraded_without_session_stays_disconnected():
    sessions = SessionManager()

    sessions.mark_degraded("timeout")

    assert sessions.state == ConnectionState.DISCONNECTED


def test_close():
    """Test closing deactivates the session and forgets its id."""
    sessions = SessionManager()
    session = sessions.open("sei_1_abc")

    closed = sessions.close("connection lost")

    assert closed is session
    assert not session.is_active
    assert not sessions.is_connected
    assert sessions.session_id is None
    assert sessions.status().last_error == "connection lost"
    assert sessions.close() is None
