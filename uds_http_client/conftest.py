import tempfile
import time
from pathlib import Path

import pytest

from uds_http_client.client import UnixClient
from uds_http_client.testing.server import UnixHttpTestServer


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")
    config.addinivalue_line("markers", "integration: mark test as integration")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "smoke" in item.nodeid:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def sock_path():
    # AF_UNIX paths are capped around 104-108 bytes; tmp_path can be too long.
    path = Path(tempfile.gettempdir()) / f"uds-http-{time.time_ns()}.sock"
    yield path
    path.unlink(missing_ok=True)


@pytest.fixture
def http_server(sock_path):
    server = UnixHttpTestServer(sock_path=sock_path)
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
async def client(http_server):
    client = await UnixClient.try_new(http_server.sock_path)
    yield client
    await client.aclose()
