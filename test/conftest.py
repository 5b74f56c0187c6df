from collections import deque
from typing import Any, AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from style_analysis_client.errors import StyleClientError
from style_analysis_client.models import ClientConfig, RequestEnvelope, StatusPollingConfig
from style_analysis_client.style_analysis_client import StyleAnalysisClient
from style_analysis_client.transport import Transport
from style_server import StyleServer

API_KEY = "test-api-key"


class FakeTransport(Transport):
    """Transport that replays scripted responses instead of touching the network.

    A scripted item that is an exception is raised; the last item repeats.
    """

    def __init__(self, responses: List[Any]):
        super().__init__(ClientConfig(platform_url="http://test-api.com", api_key=API_KEY))
        self.responses = deque(responses)
        self.sent: List[RequestEnvelope] = []

    async def send(self, envelope: RequestEnvelope, cancel: Optional[Any] = None) -> Any:
        self.sent.append(envelope)
        response = self.responses.popleft() if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, StyleClientError):
            raise response
        return response

    def count(self, method: str) -> int:
        return sum(1 for envelope in self.sent if envelope.method == method)


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def polling() -> StatusPollingConfig:
    """Fast polling settings for tests against the local server."""
    return StatusPollingConfig(poll_interval=0.01, max_attempts=5)


@pytest_asyncio.fixture
async def server() -> AsyncGenerator[StyleServer, None]:
    """Start and yield a StyleServer on a free local port."""
    server_instance = StyleServer(api_key=API_KEY)
    port = await server_instance.start()
    server_instance.base_url = f"http://127.0.0.1:{port}"
    try:
        yield server_instance
    finally:
        await server_instance.stop()


@pytest_asyncio.fixture
async def client(server, polling) -> AsyncGenerator[StyleAnalysisClient, None]:
    config = ClientConfig(platform_url=server.base_url, api_key=API_KEY, polling=polling)
    async with StyleAnalysisClient(config) as style_client:
        yield style_client
