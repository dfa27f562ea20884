"""Tests for the client push connection state machine."""

import warnings

import pytest
from statemachine.exceptions import TransitionNotAllowed

from fitconnect.client.connection_state_machine import ClientConnectionStateMachine


@pytest.fixture
def machine() -> ClientConnectionStateMachine:
    return ClientConnectionStateMachine(connection_id="test-conn")


class TestTransitions:
    def test_initial_state_is_disconnected(self, machine) -> None:
        assert machine.state_id == "disconnected"
        assert not machine.is_active()

    def test_happy_path(self, machine) -> None:
        machine.begin_connect(user_id="c1")
        assert machine.state_id == "connecting"
        assert machine.user_id == "c1"
        machine.transport_opened()
        assert machine.state_id == "connected"
        machine.handshake_accepted()
        assert machine.state_id == "authenticated"
        assert machine.authenticated_user_id == "c1"
        assert machine.total_connections == 1

    def test_failure_returns_to_disconnected(self, machine) -> None:
        machine.begin_connect(user_id="c1")
        error = ConnectionError("refused")
        machine.connection_failed(error=error)
        assert machine.state_id == "disconnected"
        assert machine.last_error is error
        assert machine.total_failures == 1
        # retry-eligible
        machine.begin_connect(user_id="c1")
        assert machine.state_id == "connecting"

    def test_connection_lost_clears_authentication(self, machine) -> None:
        machine.begin_connect(user_id="c1")
        machine.transport_opened()
        machine.handshake_accepted()
        machine.connection_lost(error=None)
        assert machine.state_id == "disconnected"
        assert machine.authenticated_user_id is None
        assert machine.total_disconnections == 1

    def test_teardown_from_every_active_state(self) -> None:
        for steps in ([], ["transport_opened"], ["transport_opened", "handshake_accepted"]):
            machine = ClientConnectionStateMachine(connection_id="c")
            machine.begin_connect(user_id="c1")
            for step in steps:
                getattr(machine, step)()
            machine.teardown()
            assert machine.state_id == "disconnected"

    def test_cannot_connect_twice(self, machine) -> None:
        machine.begin_connect(user_id="c1")
        with pytest.raises(TransitionNotAllowed):
            machine.begin_connect(user_id="c1")

    def test_handshake_requires_open_transport(self, machine) -> None:
        machine.begin_connect(user_id="c1")
        with pytest.raises(TransitionNotAllowed):
            machine.handshake_accepted()

    def test_teardown_not_allowed_when_disconnected(self, machine) -> None:
        with pytest.raises(TransitionNotAllowed):
            machine.teardown()


def test_get_stats(machine) -> None:
    machine.begin_connect(user_id="t1")
    machine.transport_opened()
    stats = machine.get_stats()
    assert stats["connection_id"] == "test-conn"
    assert stats["current_state"] == "connected"
    assert stats["user_id"] == "t1"
    assert stats["last_connected_time"] is not None
    assert stats["last_error"] is None


def test_state_queries_emit_no_deprecation_warnings(machine) -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        assert machine.state_id == "disconnected"
        assert machine.is_active() is False
        machine.begin_connect(user_id="t1")
        assert machine.state_id == "connecting"
        assert machine.is_active() is True
        assert machine.get_stats()["current_state"] == "connecting"
