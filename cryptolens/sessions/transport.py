"""Transports that open tool-calling sessions against remote providers.

A transport only knows how to open a handle; connection bookkeeping lives in
``ToolSession``. Tests substitute their own transport implementing the same
two-method protocol.
"""

import asyncio
import contextlib
from datetime import timedelta
from typing import Any, Protocol

import structlog
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.types import TextContent

from cryptolens.sessions.schemas import ToolResult

logger = structlog.get_logger()

CLIENT_NAME = "cryptolens"


class ToolHandle(Protocol):
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult: ...

    async def list_tools(self) -> list[str]: ...

    async def aclose(self) -> None: ...


class ToolTransport(Protocol):
    async def open(self, endpoint: str) -> ToolHandle: ...


def _to_tool_result(result: Any) -> ToolResult:
    texts = [item.text for item in result.content or [] if isinstance(item, TextContent)]
    return ToolResult(texts=texts, is_error=bool(result.isError))


class SseToolHandle:
    """One MCP session over SSE, owned by a dedicated background task.

    The SDK's context managers must be exited by the task that entered them,
    while sessions are opened and closed from whichever request happens to
    need it. The background task keeps both contexts open until ``aclose``.
    """

    def __init__(self, endpoint: str, timeout: float, sse_read_timeout: float) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._sse_read_timeout = sse_read_timeout
        self._ready: asyncio.Future[ClientSession] = asyncio.get_running_loop().create_future()
        self._closing = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._session: ClientSession | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"mcp-sse:{self._endpoint}")
        try:
            self._session = await asyncio.wait_for(asyncio.shield(self._ready), self._timeout)
        except BaseException:
            await self.aclose()
            raise

    async def _run(self) -> None:
        try:
            async with sse_client(
                self._endpoint,
                timeout=self._timeout,
                sse_read_timeout=self._sse_read_timeout,
            ) as (read_stream, write_stream):
                async with ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(seconds=self._timeout),
                ) as session:
                    await session.initialize()
                    self._ready.set_result(session)
                    await self._closing.wait()
        except Exception as exc:
            if not self._ready.done():
                self._ready.set_exception(exc)
            else:
                logger.warning("mcp_stream_closed", endpoint=self._endpoint, error=str(exc))

    def _require_session(self) -> ClientSession:
        if self._session is None or self._task is None or self._task.done():
            raise RuntimeError(f"session stream for {self._endpoint} is closed")
        return self._session

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        result = await self._require_session().call_tool(name, arguments)
        return _to_tool_result(result)

    async def list_tools(self) -> list[str]:
        result = await self._require_session().list_tools()
        return [tool.name for tool in result.tools]

    async def aclose(self) -> None:
        self._closing.set()
        if self._task is None:
            return
        if not self._ready.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        if self._ready.done() and not self._ready.cancelled():
            # Retrieve a startup failure so it is not reported as unhandled.
            self._ready.exception()
        self._session = None


class SseToolTransport:
    def __init__(self, timeout: float = 30.0, sse_read_timeout: float = 300.0) -> None:
        self._timeout = timeout
        self._sse_read_timeout = sse_read_timeout

    async def open(self, endpoint: str) -> SseToolHandle:
        handle = SseToolHandle(endpoint, self._timeout, self._sse_read_timeout)
        await handle.start()
        return handle
