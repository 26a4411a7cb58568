import pytest
import pytest_asyncio
from mcp_openweather import server
from mcp_openweather import sessions
from mcp_openweather.api_client import OpenWeatherApiClient

# OpenWeatherMap keys are 32 characters long
TEST_API_KEY = "0123456789abcdef0123456789abcdef"


@pytest_asyncio.fixture
async def client():
    """Provides an OpenWeatherApiClient instance for testing."""
    # Use a dummy API key for testing
    api_client = OpenWeatherApiClient(api_key=TEST_API_KEY)
    yield api_client
    # Clean up the shared client after tests
    await OpenWeatherApiClient.close_all_connections()


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the lazily built registry, the running transport and the stdio session."""
    server._registry = None
    server._active_transport = None
    sessions.clear_stdio_session()
    yield
    server._registry = None
    server._active_transport = None
    sessions.clear_stdio_session()
