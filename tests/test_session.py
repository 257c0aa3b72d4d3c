import asyncio

import pytest

from cryptolens.exceptions import ProviderConnectionError
from cryptolens.sessions.schemas import ConnectionStatus
from cryptolens.sessions.session import ToolSession
from tests.fakes import FakeTransport, text_result


async def test_invoke_connects_lazily_and_reuses_handle(session: ToolSession, transport: FakeTransport):
    transport.script = [text_result({"ok": 1}), text_result({"ok": 2})]
    assert session.status == ConnectionStatus.DISCONNECTED

    first = await session.invoke("tool_a", {"x": 1})
    second = await session.invoke("tool_b")

    assert first.texts == ['{"ok": 1}']
    assert second.texts == ['{"ok": 2}']
    assert transport.opens == 1
    assert session.status == ConnectionStatus.CONNECTED
    assert [call[1:] for call in transport.calls] == [("tool_a", {"x": 1}), ("tool_b", {})]


async def test_connect_is_idempotent(session: ToolSession, transport: FakeTransport):
    await session.connect()
    await session.connect()
    assert transport.opens == 1


async def test_connect_failure_leaves_no_handle_and_retries_from_scratch():
    transport = FakeTransport(open_failures=1, script=[text_result("fine")])
    session = ToolSession("fake", "https://provider.test/sse", transport)

    with pytest.raises(ProviderConnectionError) as exc_info:
        await session.connect()
    assert isinstance(exc_info.value, ConnectionError)
    assert session.status == ConnectionStatus.FAILED
    assert not session.is_connected

    result = await session.invoke("tool")
    assert result.texts == ["fine"]
    assert transport.opens == 2


async def test_invocation_failure_tears_down_and_next_call_reconnects_once(
    session: ToolSession, transport: FakeTransport
):
    transport.script = [text_result("one"), RuntimeError("stream reset"), text_result("three")]
    await session.invoke("tool")

    with pytest.raises(ProviderConnectionError):
        await session.invoke("tool")
    assert session.status == ConnectionStatus.DISCONNECTED
    assert transport.handles[0].closed

    result = await session.invoke("tool")
    assert result.texts == ["three"]
    assert transport.opens == 2
    # the retry went to the fresh handle, never to the dead one
    assert transport.calls[-1][0] == 2


async def test_concurrent_first_calls_share_one_handle(session: ToolSession, transport: FakeTransport):
    transport.responder = lambda name, args: text_result(name)

    results = await asyncio.gather(*(session.invoke(f"tool_{i}") for i in range(5)))

    assert [r.texts[0] for r in results] == [f"tool_{i}" for i in range(5)]
    assert transport.opens == 1


async def test_disconnect_is_safe_when_already_disconnected(session: ToolSession, transport: FakeTransport):
    await session.disconnect()
    await session.connect()
    await session.disconnect()
    await session.disconnect()

    assert transport.closed == 1
    assert session.status == ConnectionStatus.DISCONNECTED


async def test_reconnect_releases_previous_handle(session: ToolSession, transport: FakeTransport):
    await session.connect()
    await session.disconnect()
    await session.connect()

    assert transport.opens == 2
    assert transport.handles[0].closed
    assert not transport.handles[1].closed


async def test_health_reports_failure_without_raising():
    session = ToolSession("fake", "https://provider.test/sse", FakeTransport(open_failures=1))

    health = await session.health()

    assert health.status == ConnectionStatus.FAILED
    assert "cannot reach" in (health.error or "")
    assert health.endpoint == "https://provider.test/sse"


async def test_list_tools(transport: FakeTransport):
    transport.tools = ("get_coins_markets", "get_id_coins")
    session = ToolSession("fake", "https://provider.test/sse", transport)

    assert await session.list_tools() == ["get_coins_markets", "get_id_coins"]
