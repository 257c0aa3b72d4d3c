import os

os.environ.setdefault("CL_JWT_SECRET", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("CL_AUTH_PASSWORD", "test-password")

import pytest  # noqa: E402

from cryptolens.sessions.session import ToolSession  # noqa: E402
from tests.fakes import FakeTransport  # noqa: E402


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport) -> ToolSession:
    return ToolSession("fake", "https://provider.test/sse", transport)
