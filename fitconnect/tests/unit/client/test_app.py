"""Tests for the MessagingApp composition root."""

import httpx
import pytest

from fitconnect.client.app import MessagingApp
from fitconnect.client.notifications import Toast
from fitconnect.client.session import Role, SessionIdentity
from fitconnect.config.models import ClientConfig
from fitconnect.tests.doubles import FakeTransportFactory


def _empty_api(request: httpx.Request) -> httpx.Response:
    payloads = {
        "/api/messages/conversations": {"conversations": []},
        "/api/messages/unread-count": {"unreadCount": 0},
    }
    data = payloads.get(request.url.path, {"messages": [], "pagination": {}})
    return httpx.Response(200, json={"success": True, "data": data})


@pytest.fixture
def factories() -> list[FakeTransportFactory]:
    return []


@pytest.fixture
def messaging_app(factories) -> MessagingApp:
    def build(identity: SessionIdentity) -> FakeTransportFactory:
        factory = FakeTransportFactory()
        factories.append(factory)
        return factory

    return MessagingApp(
        ClientConfig(api_base_url="http://fitconnect.test/api", poll_interval_seconds=60),
        transport_factory_builder=build,
        http_transport=httpx.MockTransport(_empty_api),
    )


@pytest.mark.asyncio
async def test_mount_without_session_stays_offline(messaging_app, factories) -> None:
    assert await messaging_app.mount(None) is False
    assert not messaging_app.is_mounted
    assert factories == []


@pytest.mark.asyncio
async def test_mount_connects_and_binds_role_handlers(messaging_app, factories) -> None:
    identity = SessionIdentity("t1", Role.TRAINER, "tok")
    assert await messaging_app.mount(identity) is True

    transport = factories[0].last
    assert transport.sent == [("authenticate", {"userId": "t1"})]
    assert messaging_app.connection_manager.dispatcher.has_handler("workout_missed")
    await messaging_app.logout()


@pytest.mark.asyncio
async def test_mount_same_user_twice_keeps_one_connection(messaging_app, factories) -> None:
    identity = SessionIdentity("c1", Role.CLIENT, "tok")
    await messaging_app.mount(identity)
    await messaging_app.mount(identity)
    assert len(factories) == 1
    assert len(factories[0].created) == 1
    await messaging_app.logout()


@pytest.mark.asyncio
async def test_logout_stops_sessions_and_disconnects(messaging_app, factories) -> None:
    await messaging_app.mount(SessionIdentity("c1", Role.CLIENT, "tok"))
    session = messaging_app.open_chat("t1")
    assert session.mounted

    await messaging_app.logout()

    assert not session.mounted
    assert messaging_app.sessions == []
    assert factories[0].last.close_calls == 1
    assert not messaging_app.is_mounted
    assert messaging_app.api is None


@pytest.mark.asyncio
async def test_mount_again_after_unmount(messaging_app, factories) -> None:
    identity = SessionIdentity("c1", Role.CLIENT, "tok")
    await messaging_app.mount(identity)
    messaging_app.toasts.push(Toast(level="info", title="Nova mensagem", body="Ana Silva"))
    await messaging_app.unmount()
    assert not messaging_app.is_mounted
    assert messaging_app.connection_manager is None
    assert len(messaging_app.toasts) == 1

    assert await messaging_app.mount(identity) is True
    assert len(factories) == 2
    assert factories[1].last.sent == [("authenticate", {"userId": "c1"})]
    session = messaging_app.open_chat("t1")
    assert session.mounted
    await messaging_app.logout()
    assert len(messaging_app.toasts) == 0


@pytest.mark.asyncio
async def test_reconnect_after_drop(messaging_app, factories) -> None:
    await messaging_app.mount(SessionIdentity("c1", Role.CLIENT, "tok"))
    await factories[0].last.drop()
    assert messaging_app.connection_manager.state == "disconnected"

    assert await messaging_app.reconnect() is True
    assert len(factories[0].created) == 2
    await messaging_app.logout()


@pytest.mark.asyncio
async def test_open_chat_requires_mount(messaging_app) -> None:
    with pytest.raises(RuntimeError):
        messaging_app.open_chat("t1")


@pytest.mark.asyncio
async def test_alert_producer_uses_session_identity(messaging_app) -> None:
    await messaging_app.mount(SessionIdentity("c1", Role.CLIENT, "tok"))
    result = await messaging_app.alert_producer().send_alert("c2", None, "x")
    assert result.unauthorized
    await messaging_app.logout()
