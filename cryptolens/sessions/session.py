import asyncio
import time
from typing import Any

import structlog

from cryptolens.exceptions import ProviderConnectionError
from cryptolens.sessions.schemas import ConnectionStatus, SessionHealth, ToolResult
from cryptolens.sessions.transport import ToolHandle, ToolTransport

logger = structlog.get_logger()


class ToolSession:
    """A lazily opened, self-healing connection to one tool provider.

    Any failure during an invocation discards the handle; the next call
    reconnects from scratch instead of reusing a possibly dead stream.
    """

    def __init__(self, name: str, endpoint: str, transport: ToolTransport) -> None:
        self._name = name
        self._endpoint = endpoint
        self._transport = transport
        self._handle: ToolHandle | None = None
        self._status = ConnectionStatus.DISCONNECTED
        self._last_error: str | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED and self._handle is not None

    async def connect(self) -> None:
        async with self._lock:
            if self.is_connected:
                return
            await self._release()

            self._status = ConnectionStatus.CONNECTING
            logger.info("mcp_connecting", provider=self._name, endpoint=self._endpoint)
            try:
                self._handle = await self._transport.open(self._endpoint)
            except Exception as exc:
                self._handle = None
                self._status = ConnectionStatus.FAILED
                self._last_error = str(exc) or type(exc).__name__
                logger.error(
                    "mcp_connect_failed", provider=self._name, endpoint=self._endpoint, error=self._last_error
                )
                raise ProviderConnectionError(self._name, f"connect failed: {self._last_error}") from exc

            self._status = ConnectionStatus.CONNECTED
            self._last_error = None
            logger.info("mcp_connected", provider=self._name)

    async def disconnect(self) -> None:
        async with self._lock:
            await self._release()
            self._status = ConnectionStatus.DISCONNECTED

    async def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await handle.aclose()
        except Exception as exc:
            logger.warning("mcp_close_failed", provider=self._name, error=str(exc))
        logger.info("mcp_disconnected", provider=self._name)

    async def _teardown(self, handle: ToolHandle) -> None:
        async with self._lock:
            # A concurrent caller may already have replaced the dead handle.
            if self._handle is handle:
                await self._release()
                self._status = ConnectionStatus.DISCONNECTED

    async def _acquire(self) -> ToolHandle:
        if not self.is_connected:
            await self.connect()
        if self._handle is None:
            raise ProviderConnectionError(self._name, "session closed while connecting")
        return self._handle

    async def invoke(self, tool: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        arguments = arguments or {}
        handle = await self._acquire()

        started = time.perf_counter()
        try:
            result = await handle.call_tool(tool, arguments)
        except Exception as exc:
            duration_ms = round((time.perf_counter() - started) * 1000, 1)
            error = str(exc) or type(exc).__name__
            logger.warning(
                "mcp_tool_call",
                provider=self._name,
                tool=tool,
                arguments=arguments,
                duration_ms=duration_ms,
                success=False,
                error=error,
            )
            await self._teardown(handle)
            raise ProviderConnectionError(self._name, f"'{tool}' failed: {error}") from exc

        logger.info(
            "mcp_tool_call",
            provider=self._name,
            tool=tool,
            arguments=arguments,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            success=True,
            frames=len(result.texts),
        )
        return result

    async def list_tools(self) -> list[str]:
        handle = await self._acquire()
        try:
            return await handle.list_tools()
        except Exception as exc:
            await self._teardown(handle)
            raise ProviderConnectionError(self._name, f"listing tools failed: {exc}") from exc

    async def health(self) -> SessionHealth:
        try:
            await self.connect()
        except ProviderConnectionError:
            pass
        return SessionHealth(
            name=self._name,
            endpoint=self._endpoint,
            status=self._status,
            error=self._last_error,
        )
