from enum import StrEnum

from pydantic import BaseModel


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ToolResult(BaseModel):
    """Raw tool output: text content frames in provider order."""

    texts: list[str] = []
    is_error: bool = False

    @property
    def first_text(self) -> str:
        return self.texts[0] if self.texts else ""


class SessionHealth(BaseModel):
    name: str
    endpoint: str
    status: ConnectionStatus
    error: str | None = None
