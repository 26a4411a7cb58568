import asyncio
import json
import pytest
from unittest.mock import AsyncMock, patch, MagicMock
from starlette.testclient import TestClient
from starlette.applications import Starlette

from mcp_openweather.api_client import OpenWeatherApiClient
from mcp_openweather.server import (
    cleanup_resources,
    get_active_transport,
    health_check,
    parse_server_config,
    run_server,
)
from mcp_openweather.sessions import Session, get_stdio_session, set_stdio_session
from conftest import TEST_API_KEY

SERVER_ENV_VARS = [
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
    "PORT",
    "MCP_PATH",
    "MCP_ENDPOINT",
    "MCP_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for var in SERVER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestTransportConfiguration:
    """Test transport configuration and command line argument parsing."""

    def test_default_transport_configuration(self, clean_env):
        """Test default transport configuration when no args or env vars are set."""
        transport, http_config = parse_server_config([])

        assert transport == "stdio"
        assert http_config == {}

    def test_command_line_argument_parsing(self, clean_env):
        """Test command line argument parsing for transport configuration."""
        test_args = [
            "--transport",
            "streamable-http",
            "--host",
            "0.0.0.0",
            "--port",
            "3000",
            "--log-level",
            "DEBUG",
            "--path",
            "/api/mcp",
        ]

        transport, http_config = parse_server_config(test_args)

        assert transport == "streamable-http"
        assert http_config == {
            "host": "0.0.0.0",
            "port": 3000,
            "log_level": "DEBUG",
            "path": "/api/mcp",
        }

    def test_environment_variable_configuration(self, clean_env, monkeypatch):
        """Test environment variable configuration."""
        monkeypatch.setenv("MCP_TRANSPORT", "sse")
        monkeypatch.setenv("MCP_HOST", "127.0.0.1")
        monkeypatch.setenv("MCP_PORT", "8080")
        monkeypatch.setenv("MCP_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("MCP_PATH", "/mcp")

        transport, http_config = parse_server_config([])

        assert transport == "sse"
        assert http_config["host"] == "127.0.0.1"
        assert http_config["port"] == 8080
        assert http_config["log_level"] == "WARNING"
        assert http_config["path"] == "/mcp"

    def test_command_line_overrides_environment(self, clean_env, monkeypatch):
        """Test that command line arguments override environment variables."""
        monkeypatch.setenv("MCP_TRANSPORT", "sse")
        monkeypatch.setenv("MCP_HOST", "127.0.0.1")
        monkeypatch.setenv("MCP_PORT", "8080")

        transport, http_config = parse_server_config(
            ["--transport", "streamable-http", "--port", "3000"]
        )

        assert transport == "streamable-http"  # CLI override
        assert http_config["host"] == "127.0.0.1"  # From env var
        assert http_config["port"] == 3000  # CLI override

    @pytest.mark.parametrize("alias", ["httpStream", "http"])
    def test_transport_aliases(self, clean_env, monkeypatch, alias):
        """Legacy transport names select the streamable HTTP transport."""
        monkeypatch.setenv("MCP_TRANSPORT", alias)

        transport, http_config = parse_server_config([])

        assert transport == "streamable-http"
        assert http_config["port"] == 8000

    def test_port_and_endpoint_fallbacks(self, clean_env, monkeypatch):
        """PORT and MCP_ENDPOINT are honored when the MCP_* names are unset."""
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("MCP_ENDPOINT", "/weather")

        _, http_config = parse_server_config(["--transport", "streamable-http"])

        assert http_config["port"] == 9090
        assert http_config["path"] == "/weather"

    def test_mcp_names_win_over_fallbacks(self, clean_env, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("MCP_PORT", "7070")
        monkeypatch.setenv("MCP_ENDPOINT", "/weather")
        monkeypatch.setenv("MCP_PATH", "/mcp")

        _, http_config = parse_server_config(["--transport", "sse"])

        assert http_config["port"] == 7070
        assert http_config["path"] == "/mcp"

    def test_http_config_defaults(self, clean_env):
        """Test HTTP configuration defaults for SSE transport."""
        transport, http_config = parse_server_config(["--transport", "sse"])

        assert transport == "sse"
        assert http_config["host"] == "127.0.0.1"
        assert http_config["port"] == 8000
        assert http_config["log_level"] == "INFO"
        assert http_config["path"] == "/mcp"

    def test_stdio_transport_no_http_config(self, clean_env):
        transport, http_config = parse_server_config(["--transport", "stdio"])

        assert transport == "stdio"
        assert http_config == {}

    def test_invalid_transport_choice(self):
        """Test that invalid transport choices raise SystemExit."""
        with pytest.raises(SystemExit):
            parse_server_config(["--transport", "invalid-transport"])

    def test_invalid_port_type(self):
        with pytest.raises(SystemExit):
            parse_server_config(["--port", "not-a-number"])

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            parse_server_config(["--log-level", "INVALID"])

    def test_environment_variable_port_conversion_error(self, clean_env, monkeypatch):
        """Test error handling when environment port variable is invalid."""
        monkeypatch.setenv("MCP_PORT", "not-a-number")

        with pytest.raises(ValueError):
            parse_server_config(["--transport", "streamable-http"])


class TestRunServer:
    """Test server start-up for each transport."""

    @pytest.fixture(autouse=True)
    def no_cleanup_handlers(self):
        with patch("mcp_openweather.server.register_cleanup_handlers"):
            yield

    def test_stdio_authenticates_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENWEATHER_API_KEY", TEST_API_KEY)

        with patch("mcp_openweather.server.mcp.run") as mock_run:
            run_server("stdio", {})

        mock_run.assert_called_once_with(transport="stdio")
        assert get_stdio_session().credential == TEST_API_KEY

    def test_stdio_without_api_key_exits(self, monkeypatch):
        monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)

        with patch("mcp_openweather.server.mcp.run") as mock_run:
            with pytest.raises(SystemExit) as excinfo:
                run_server("stdio", {})

        assert excinfo.value.code == 1
        mock_run.assert_not_called()

    def test_http_transport_skips_stdio_session(self, monkeypatch):
        monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
        http_config = {"host": "127.0.0.1", "port": 8000, "log_level": "INFO", "path": "/mcp"}

        with patch("mcp_openweather.server.mcp.run") as mock_run:
            run_server("streamable-http", http_config)

        mock_run.assert_called_once_with(transport="streamable-http", **http_config)
        assert get_stdio_session() is None
        assert get_active_transport() == "streamable-http"

    def test_unknown_transport_exits(self):
        with patch("mcp_openweather.server.mcp.run") as mock_run:
            with pytest.raises(SystemExit):
                run_server("websocket", {})

        mock_run.assert_not_called()


class TestHealthCheckEndpoint:
    """Test health check endpoint functionality."""

    @pytest.fixture
    def mock_request(self):
        """Create a mock Starlette request object."""
        request = MagicMock()
        request.url = MagicMock()
        request.url.path = "/health"
        return request

    @pytest.mark.asyncio
    async def test_health_check_healthy_status(self, mock_request, monkeypatch):
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")

        with patch("mcp_openweather.server.get_registry") as mock_get_registry:
            mock_registry = MagicMock()
            mock_registry.__len__.return_value = 2
            mock_get_registry.return_value = mock_registry

            response = await health_check(mock_request)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_health_check_unhealthy_status(self, mock_request, monkeypatch):
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")

        with patch("mcp_openweather.server.get_registry") as mock_get_registry:
            mock_get_registry.side_effect = ValueError("invalid literal for int()")

            response = await health_check(mock_request)

        assert response.status_code == 503
        assert response.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_health_check_stdio_without_session(self, mock_request, monkeypatch):
        monkeypatch.delenv("MCP_TRANSPORT", raising=False)

        response = await health_check(mock_request)

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_health_check_transport_selected_on_command_line(
        self, mock_request, clean_env
    ):
        """An HTTP server started by flag alone is healthy without a stdio session."""
        transport, http_config = parse_server_config(["--transport", "streamable-http"])
        with patch("mcp_openweather.server.register_cleanup_handlers"), patch(
            "mcp_openweather.server.mcp.run"
        ):
            run_server(transport, http_config)

        response = await health_check(mock_request)

        assert response.status_code == 200
        data = json.loads(response.body)
        assert data["transport"] == "streamable-http"
        assert data["stdio_session"] is False

    @pytest.mark.asyncio
    async def test_health_check_resolves_transport_alias(self, mock_request, monkeypatch):
        monkeypatch.setenv("MCP_TRANSPORT", "httpStream")

        response = await health_check(mock_request)

        assert response.status_code == 200
        assert json.loads(response.body)["transport"] == "streamable-http"

    @pytest.mark.asyncio
    async def test_health_check_stdio_with_session(self, mock_request, monkeypatch):
        monkeypatch.delenv("MCP_TRANSPORT", raising=False)
        set_stdio_session(Session(credential=TEST_API_KEY))

        response = await health_check(mock_request)

        assert response.status_code == 200

    def test_health_endpoint_integration(self, monkeypatch):
        """Health endpoint reports transport, session state and cached clients."""
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")
        set_stdio_session(Session(credential=TEST_API_KEY))

        app = Starlette()
        app.add_route("/health", health_check, methods=["GET"])

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "OpenWeatherMap MCP Server"
        assert data["transport"] == "streamable-http"
        assert data["stdio_session"] is True
        assert data["cached_clients"] == 0
        assert "timestamp" in data

    def test_health_endpoint_error_handling(self, monkeypatch):
        """Invalid client configuration makes the server report unhealthy."""
        monkeypatch.setenv("MCP_TRANSPORT", "sse")
        monkeypatch.setenv("OPENWEATHER_CACHE_TTL", "soon")

        app = Starlette()
        app.add_route("/health", health_check, methods=["GET"])

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert "soon" in data["error"]
        assert data["transport"] == "sse"
        assert "timestamp" in data


class TestCleanupResources:
    """Test shutdown cleanup of the shared connection pool."""

    def test_cleanup_closes_shared_pool(self):
        with patch.object(
            OpenWeatherApiClient, "close_all_connections", new_callable=AsyncMock
        ) as mock_close:
            cleanup_resources()

        mock_close.assert_awaited_once()

    def test_cleanup_failure_is_logged_not_raised(self, caplog):
        with patch.object(
            OpenWeatherApiClient,
            "close_all_connections",
            new_callable=AsyncMock,
            side_effect=RuntimeError("pool already closed"),
        ):
            cleanup_resources()

        assert "Resource cleanup failed: pool already closed" in caplog.text

    @pytest.mark.asyncio
    async def test_cleanup_inside_running_loop_schedules_close(self):
        with patch.object(
            OpenWeatherApiClient, "close_all_connections", new_callable=AsyncMock
        ) as mock_close:
            cleanup_resources()
            await asyncio.sleep(0)

        mock_close.assert_awaited_once()
