import httpx
import pytest
import pytest_asyncio

from notesearch.core.app import create_app
from notesearch.core.proxy import ProxyGateway
from notesearch.core.target import BaseTargetResolver, MemoryTargetStore
from notesearch.mock.fake_backend import FakeIndex, create_app as create_fake_backend
from notesearch.services.api_client import ApiClient

BACKEND_URL = "http://backend.test"
RELAY_URL = "http://relay.test"


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def backend_app(fake_index):
    return create_fake_backend(index=fake_index, upload_enabled=True)


@pytest.fixture
def relay_resolver():
    return BaseTargetResolver(MemoryTargetStore(), default=BACKEND_URL)


@pytest_asyncio.fixture
async def upstream_client(backend_app):
    """The gateway's outbound client, wired straight into the fake backend."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=backend_app)) as client:
        yield client


@pytest.fixture
def relay_app(upstream_client, relay_resolver):
    return create_app(gateway=ProxyGateway(upstream_client, relay_resolver))


@pytest_asyncio.fixture
async def api_client(relay_app):
    """ApiClient -> relay app -> gateway -> fake backend, all in process."""
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=relay_app), base_url=RELAY_URL)
    client = ApiClient(client=http, resolver=BaseTargetResolver(MemoryTargetStore(), default=BACKEND_URL))
    yield client
    await http.aclose()
