# server.py
import os
import atexit
import signal
import asyncio
import argparse
import functools
import sys
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional
from fastmcp import FastMCP
from pydantic import Field
from dotenv import load_dotenv
from mcp_openweather.api_client import OpenWeatherApiClient
from mcp_openweather.errors import (
    NoSessionError,
    WeatherToolError,
    translate_upstream_error,
)
from mcp_openweather.formatting import Units
from mcp_openweather.normalizer import (
    forecast_location,
    format_air_pollution,
    format_current_weather,
    format_daily_forecast,
    format_geocoding_results,
    format_hourly_forecast,
    format_location_info,
    format_minutely_forecast,
    format_onecall_weather,
    format_weather_alerts,
    format_weather_forecast,
    onecall_location,
)
from mcp_openweather.sessions import (
    ClientSessionRegistry,
    configure_client_for_coordinates,
    configure_client_for_location,
    get_stdio_session,
    initialize_stdio_session,
    resolve_request_session,
)
import logging
from starlette.requests import Request
from starlette.responses import JSONResponse


# Pick up OPENWEATHER_API_KEY and friends from a local .env file
load_dotenv()

SERVICE_NAME = "OpenWeatherMap MCP Server"

# Create an MCP server
mcp = FastMCP(
    name=SERVICE_NAME,
    instructions="""
This MCP server provides access to the OpenWeatherMap API for weather data and forecasts.

Available tools:
- Current weather, 5 day forecast, hourly, daily and minutely forecasts for any location
- Weather alerts and air quality for any location
- OneCall weather: comprehensive weather data for a coordinate pair
- Geocoding: convert location names to coordinates or vice versa

Locations can be city names ("London, GB") or coordinates ("51.5074,-0.1278").
""".strip(),
)

# Configure basic logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TRANSPORT_ALIASES = {"httpStream": "streamable-http", "http": "streamable-http"}

# Lazy initialization of the client registry
_registry: Optional[ClientSessionRegistry] = None
# Transport chosen by run_server; /health falls back to MCP_TRANSPORT before start-up
_active_transport: Optional[str] = None


def get_registry() -> ClientSessionRegistry:
    """
    Lazily initialize the client registry only when needed.
    Reads client configuration from environment variables.
    """
    global _registry
    if _registry is None:
        cache_ttl = int(os.environ.get("OPENWEATHER_CACHE_TTL", 0))
        rate_limit_calls = int(os.environ.get("OPENWEATHER_RATE_LIMIT_CALLS", 60))
        rate_limit_period = int(os.environ.get("OPENWEATHER_RATE_LIMIT_PERIOD", 60))
        concurrency_limit = int(os.environ.get("OPENWEATHER_CONCURRENCY_LIMIT", 10))
        max_clients = int(os.environ.get("OPENWEATHER_CLIENT_CACHE_SIZE", 0))

        logger.info("Initializing OpenWeatherMap client registry with:")
        logger.info(f"  Cache TTL: {cache_ttl}s")
        logger.info(f"  Rate Limit: {rate_limit_calls} calls / {rate_limit_period}s")
        logger.info(f"  Concurrency Limit: {concurrency_limit}")
        logger.info(f"  Client Cache Size: {max_clients or 'unbounded'}")

        _registry = ClientSessionRegistry(
            client_factory=functools.partial(
                OpenWeatherApiClient,
                cache_ttl=cache_ttl,
                rate_limit_calls=rate_limit_calls,
                rate_limit_period=rate_limit_period,
                concurrency_limit=concurrency_limit,
            ),
            max_clients=max_clients,
        )
    return _registry


# Resource cleanup functions
def cleanup_resources():
    """Close the shared OpenWeatherMap connection pool on shutdown."""
    logger.info("Cleaning up resources...")
    try:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(OpenWeatherApiClient.close_all_connections())
        else:
            loop.create_task(OpenWeatherApiClient.close_all_connections())
        logger.info("Resources cleaned up successfully.")
    except Exception as e:
        logger.warning(f"Resource cleanup failed: {e}")


def signal_handler(signum, frame):
    logger.info(f"Received {signal.Signals(signum).name}, closing OpenWeatherMap connections")
    cleanup_resources()
    os._exit(0)


def register_cleanup_handlers() -> None:
    atexit.register(cleanup_resources)
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


async def run_with_client(
    action: str,
    operation: Callable[[OpenWeatherApiClient], Awaitable[Dict[str, Any]]],
    location: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Resolve the caller's client and run one configure-fetch-normalize operation on it.

    The client's lock is held for the whole operation because cached clients are
    shared by every caller using the same API key. Failures are logged and
    translated into user-facing tool errors; nothing is retried.
    """
    try:
        session = resolve_request_session()
        client = get_registry().resolve_client(session)
        async with client.lock:
            return await operation(client)
    except Exception as e:
        logger.error(f"Failed to {action}: {e}")
        error = translate_upstream_error(e, action, location)
        if error is e:
            raise
        raise error from e


# MCP Tools for OpenWeatherMap API
@mcp.tool(name="get-current-weather")
async def get_current_weather(
    location: str,
    units: Units | None = None,
) -> dict:
    """
    Get current weather conditions for a location.

    Args:
        location (str): City name (e.g., "New York", "London, GB") or coordinates
            (e.g., "40.7128,-74.0060" or "lat:40.7128,lon:-74.0060")
        units (str, optional): "metric" (Celsius, m/s), "imperial" (Fahrenheit, mph)
            or "standard" (Kelvin, m/s)

    Returns:
        dict: Current conditions with structure:
        {
            "location": str,
            "coordinates": {"latitude": float, "longitude": float},
            "temperature": {"current": int, "feels_like": int, "min": int, "max": int, "units": str},
            "conditions": str,
            "humidity": int,            # percent
            "pressure": int,            # hPa
            "wind": {"speed": float, "gust": float, "direction": str, "degrees": int, "units": str},
            "visibility": {"value": float, "units": str},
            "clouds": int,              # percent
            "rain": float, "snow": float,   # mm in the last hour
            "sunrise": int, "sunset": int,
            "timestamp": int, "datetime": str
        }

    Example:
        get-current-weather("40.7128,-74.0060", "imperial")
    """
    logger.info(f"Getting current weather for location={location!r}, units={units}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location, units)
        data = await client.get_current()
        return format_current_weather(data, client.units)

    result = await run_with_client("get current weather", fetch, location)
    logger.info(f"Successfully retrieved current weather for {result['location']}")
    return result


@mcp.tool(name="get-weather-forecast")
async def get_weather_forecast(
    location: str,
    units: Units | None = None,
    days: Annotated[int, Field(ge=1, le=5)] = 5,
) -> dict:
    """
    Get a daily weather forecast for up to 5 days.

    Each day is represented by one sample of the 3-hourly forecast series taken
    every 24 hours, starting with the first available slot.

    Args:
        location (str): City name or coordinates
        units (str, optional): "metric", "imperial" or "standard"
        days (int, optional): Number of days to forecast (1-5, default: 5)

    Returns:
        dict: {"location": str, "forecasts": [{"day": int, "date": str,
               "temperature": {"min": int, "max": int, "units": str},
               "conditions": str, "humidity": int, "wind": {...}, "pop": int,
               "timestamp": int}]}
    """
    logger.info(f"Getting weather forecast for location={location!r}, days={days}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location, units)
        data = await client.get_forecast()
        return format_weather_forecast(
            data.get("list", []), forecast_location(data), client.units, days
        )

    result = await run_with_client("get weather forecast", fetch, location)
    logger.info(
        f"Successfully retrieved weather forecast for {result['location']}: "
        f"{len(result['forecasts'])} days"
    )
    return result


@mcp.tool(name="get-hourly-forecast")
async def get_hourly_forecast(
    location: str,
    units: Units | None = None,
    hours: Annotated[int, Field(ge=1, le=48)] = 24,
) -> dict:
    """
    Get an hour-by-hour forecast for up to 48 hours.

    Args:
        location (str): City name or coordinates
        units (str, optional): "metric", "imperial" or "standard"
        hours (int, optional): Number of hours to return (1-48, default: 24)

    Returns:
        dict: {"location": str, "hourly_forecast": [{"hour": int, "datetime": str,
               "temperature": {"current": int, "feels_like": int, "units": str},
               "conditions": str, "humidity": int, "wind": {...}, "pressure": int,
               "visibility": {...} | null, "uvi": float, "clouds": int,
               "pop": int | null, "rain": float, "snow": float, "timestamp": int}]}
    """
    logger.info(f"Getting hourly forecast for location={location!r}, hours={hours}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location, units)
        data = await client.get_hourly_forecast()
        return format_hourly_forecast(
            data.get("hourly", []), onecall_location(data), client.units, hours
        )

    return await run_with_client("get hourly forecast", fetch, location)


@mcp.tool(name="get-daily-forecast")
async def get_daily_forecast(
    location: str,
    units: Units | None = None,
    days: Annotated[int, Field(ge=1, le=8)] = 7,
    include_today: bool = True,
) -> dict:
    """
    Get a day-by-day forecast for up to 8 days.

    Args:
        location (str): City name or coordinates
        units (str, optional): "metric", "imperial" or "standard"
        days (int, optional): Number of days to return (1-8, default: 7)
        include_today (bool, optional): Start with today (default: true)

    Returns:
        dict: {"location": str, "daily_forecast": [{"day": int, "date": str,
               "summary": str, "temperature": {"min", "max", "morning", "day",
               "evening", "night", "units"}, "feels_like": {...}, "conditions": str,
               "humidity": int, "pressure": int, "wind": {...}, "clouds": int,
               "pop": int, "rain": float, "snow": float, "uvi": float,
               "sunrise": int, "sunset": int, "moon_phase": float, "timestamp": int}]}
    """
    logger.info(
        f"Getting daily forecast for location={location!r}, days={days}, "
        f"include_today={include_today}"
    )

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location, units)
        data = await client.get_daily_forecast()
        return format_daily_forecast(
            data.get("daily", []),
            onecall_location(data),
            client.units,
            limit=days,
            include_today=include_today,
        )

    return await run_with_client("get daily forecast", fetch, location)


@mcp.tool(name="get-minutely-forecast")
async def get_minutely_forecast(
    location: str,
    limit: Annotated[int, Field(ge=1, le=60)] = 60,
) -> dict:
    """
    Get minute-by-minute precipitation for the next hour.

    Args:
        location (str): City name or coordinates
        limit (int, optional): Number of minutes to return (1-60, default: 60)

    Returns:
        dict: {"location": str, "units": "mm",
               "minutely_forecast": [{"minute": int, "datetime": str,
                                      "precipitation": float, "intensity": str,
                                      "timestamp": int}],
               "summary": {"minutes": int, "minutes_with_precipitation": int,
                           "max_precipitation": float, "first_precipitation": str | null,
                           "precipitation_expected": bool}}
    """
    logger.info(f"Getting minutely forecast for location={location!r}, limit={limit}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location)
        data = await client.get_minutely_forecast()
        return format_minutely_forecast(
            data.get("minutely", []), onecall_location(data), limit
        )

    return await run_with_client("get minutely forecast", fetch, location)


@mcp.tool(name="get-weather-alerts")
async def get_weather_alerts(location: str) -> dict:
    """
    Get active government weather alerts for a location.

    Severity is "High" for alerts tagged severe or extreme, "Medium" for
    moderate, and "Low" otherwise.

    Args:
        location (str): City name or coordinates

    Returns:
        dict: {"location": str, "count": int, "alerts": [{"event": str,
               "sender": str, "severity": str, "start": int, "start_datetime": str,
               "end": int, "end_datetime": str, "description": str, "tags": [str]}]}
    """
    logger.info(f"Getting weather alerts for location={location!r}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location)
        data = await client.get_alerts()
        return format_weather_alerts(data.get("alerts"), onecall_location(data))

    return await run_with_client("get weather alerts", fetch, location)


@mcp.tool(name="get-current-air-pollution")
async def get_current_air_pollution(location: str) -> dict:
    """
    Get the current air quality for a location.

    Args:
        location (str): City name or coordinates

    Returns:
        dict: {"location": str, "coordinates": {...}, "aqi": int,
               "quality": str,          # Good, Fair, Moderate, Poor, Very Poor
               "components": {"co", "no", "no2", "o3", "so2", "pm2_5", "pm10", "nh3"},
               "units": "μg/m³", "timestamp": int, "datetime": str}
    """
    logger.info(f"Getting current air pollution for location={location!r}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_location(client, location)
        data = await client.get_current_air_pollution()
        return format_air_pollution(data, client.describe_location())

    return await run_with_client("get current air pollution", fetch, location)


@mcp.tool(name="get-location-info")
async def get_location_info(
    latitude: Annotated[float, Field(ge=-90, le=90)],
    longitude: Annotated[float, Field(ge=-180, le=180)],
) -> dict:
    """
    Get place names for a coordinate pair (reverse geocoding).

    Args:
        latitude (float): Latitude (-90 to 90)
        longitude (float): Longitude (-180 to 180)

    Returns:
        dict: {"coordinates": {...}, "location": str, "count": int,
               "locations": [{"name": str, "state": str | null, "country": str,
                              "latitude": float, "longitude": float,
                              "local_names": dict | null}]}
    """
    logger.info(f"Getting location info for latitude={latitude}, longitude={longitude}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_coordinates(client, latitude, longitude)
        results = await client.get_location()
        return format_location_info(results, latitude, longitude)

    return await run_with_client(
        "get location info", fetch, f"{latitude},{longitude}"
    )


@mcp.tool(name="get-onecall-weather")
async def get_onecall_weather(
    latitude: Annotated[float, Field(ge=-90, le=90)],
    longitude: Annotated[float, Field(ge=-180, le=180)],
    units: Units | None = None,
    exclude: List[Literal["current", "minutely", "hourly", "daily", "alerts"]]
    | None = None,
) -> dict:
    """
    Get comprehensive weather data (current, minutely, hourly, daily, alerts) in one call.

    Args:
        latitude (float): Latitude (-90 to 90)
        longitude (float): Longitude (-180 to 180)
        units (str, optional): "metric", "imperial" or "standard"
        exclude (list[str], optional): Sections to leave out. Excluded sections
            are returned as null.

    Returns:
        dict: {"location": str, "coordinates": {...}, "timezone": str,
               "timezone_offset": int, "units": {...}, "current": {...},
               "minutely": [...], "hourly": [...], "daily": [...], "alerts": [...]}
    """
    logger.info(
        f"Getting OneCall weather for latitude={latitude}, longitude={longitude}, "
        f"exclude={exclude}"
    )

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_coordinates(client, latitude, longitude, units)
        data = await client.get_everything(exclude=exclude)
        return format_onecall_weather(data, client.units, exclude)

    return await run_with_client(
        "get OneCall weather", fetch, f"{latitude},{longitude}"
    )


@mcp.tool(name="get-air-pollution")
async def get_air_pollution(
    latitude: Annotated[float, Field(ge=-90, le=90)],
    longitude: Annotated[float, Field(ge=-180, le=180)],
) -> dict:
    """
    Get air quality index and pollutant concentrations for a coordinate pair.

    Args:
        latitude (float): Latitude (-90 to 90)
        longitude (float): Longitude (-180 to 180)

    Returns:
        dict: Same structure as get-current-air-pollution.
    """
    logger.info(f"Getting air pollution for latitude={latitude}, longitude={longitude}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        configure_client_for_coordinates(client, latitude, longitude)
        data = await client.get_current_air_pollution()
        return format_air_pollution(data)

    return await run_with_client(
        "get air pollution data", fetch, f"{latitude},{longitude}"
    )


@mcp.tool(name="geocode-location")
async def geocode_location(
    query: str,
    limit: Annotated[int, Field(ge=1, le=10)] = 5,
) -> dict:
    """
    Convert a location name or address to coordinates.

    Args:
        query (str): Location name, optionally with state and country code
            (e.g., "Springfield, IL, US")
        limit (int, optional): Maximum number of results (1-10, default: 5)

    Returns:
        dict: {"query": str, "count": int, "results": [{"name": str,
               "state": str | null, "country": str, "latitude": float,
               "longitude": float, "local_names": dict | null}]}

    Example:
        geocode-location("Paris", 3)
    """
    logger.info(f"Geocoding location query={query!r}, limit={limit}")

    async def fetch(client: OpenWeatherApiClient) -> Dict[str, Any]:
        results = await client.geocode(query, limit=limit)
        return format_geocoding_results(results, query)

    return await run_with_client("geocode location", fetch, query)


API_DOCUMENTATION = """# OpenWeatherMap MCP Server Documentation

## Overview
This MCP server provides access to the OpenWeatherMap API for weather data and forecasts.

## Authentication
- **stdio**: set `OPENWEATHER_API_KEY` before starting the server.
- **HTTP**: send `Authorization: Bearer <OpenWeatherMap API key>` with every request.

Keys shorter than 32 characters are rejected.

## Locations
Location parameters accept a city name (`"London"`, `"London, GB"`) or coordinates
(`"51.5074,-0.1278"`, `"51.5074 -0.1278"`, `"lat:51.5074,lon:-0.1278"`).
Coordinates outside the valid range are treated as a place name.

## Available Tools

### Weather Operations
- **get-current-weather**: current conditions (`location`, `units?`)
- **get-weather-forecast**: daily forecast for up to 5 days (`location`, `units?`, `days?` 1-5)
- **get-hourly-forecast**: hourly forecast (`location`, `units?`, `hours?` 1-48)
- **get-daily-forecast**: daily forecast for up to 8 days (`location`, `units?`, `days?` 1-8, `include_today?`)
- **get-minutely-forecast**: precipitation for the next hour (`location`, `limit?` minutes, default 60)
- **get-weather-alerts**: active weather alerts (`location`)
- **get-onecall-weather**: everything in one call (`latitude`, `longitude`, `units?`, `exclude?`)

### Air Quality Operations
- **get-current-air-pollution**: air quality for a location (`location`)
- **get-air-pollution**: air quality for coordinates (`latitude`, `longitude`)

### Geocoding Operations
- **geocode-location**: location name to coordinates (`query`, `limit?` 1-10, default 5)
- **get-location-info**: coordinates to place names (`latitude`, `longitude`)

## Units
- `metric` (default): °C, m/s, km
- `imperial`: °F, mph, mi
- `standard`: K, m/s, km

## Error Handling
- Unknown place names return a "not found" message suggesting coordinates
- Invalid API keys return a configuration error
- Other upstream failures return "Failed to <action>: <upstream message>"
- Nothing is retried automatically
"""


@mcp.resource(
    "openweather://api/docs",
    name="OpenWeatherMap API Documentation",
    description="Documentation for available weather data endpoints and response formats",
    mime_type="text/markdown",
)
def get_api_documentation() -> str:
    return API_DOCUMENTATION


def get_active_transport() -> str:
    if _active_transport is not None:
        return _active_transport
    transport = os.environ.get("MCP_TRANSPORT", "stdio")
    return TRANSPORT_ALIASES.get(transport, transport)


# Add health check endpoint for HTTP transports
@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint for HTTP transports.

    Reports the transport, whether a stdio session exists and how many
    per-credential clients are cached. A stdio server without a session is
    unhealthy.

    Returns:
        JSONResponse: Health status with server information
    """
    transport = get_active_transport()
    try:
        registry = get_registry()
        if transport == "stdio" and get_stdio_session() is None:
            raise NoSessionError("No stdio session established")
        return JSONResponse(
            {
                "status": "healthy",
                "service": SERVICE_NAME,
                "transport": transport,
                "stdio_session": get_stdio_session() is not None,
                "cached_clients": len(registry),
                "timestamp": asyncio.get_event_loop().time(),
            }
        )
    except Exception as e:
        return JSONResponse(
            {
                "status": "unhealthy",
                "service": SERVICE_NAME,
                "error": str(e),
                "transport": transport,
                "timestamp": asyncio.get_event_loop().time(),
            },
            status_code=503,
        )


def parse_server_config(args: list[str] | None = None) -> tuple[str, dict[str, Any]]:
    """
    Parse server configuration from command line arguments and environment variables.

    Args:
        args: Command line arguments list. If None, uses sys.argv.

    Returns:
        Tuple of (transport, http_config) where:
        - transport: The selected transport protocol
        - http_config: Dictionary of HTTP configuration options (empty for stdio)
    """
    parser = argparse.ArgumentParser(description=SERVICE_NAME)
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http", "sse"],
        default=None,
        help="Transport protocol to use (default: from environment or stdio)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address for HTTP transports (default: from environment or 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for HTTP transports (default: from environment or 8000)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level for the server (default: from environment or INFO)",
    )
    parser.add_argument(
        "--path",
        type=str,
        default=None,
        help="Path for HTTP endpoints (default: from environment or /mcp)",
    )

    parsed_args = parser.parse_args(args)

    transport = parsed_args.transport or os.environ.get("MCP_TRANSPORT", "stdio")
    transport = TRANSPORT_ALIASES.get(transport, transport)

    http_config = {}
    if transport in ["streamable-http", "sse"]:
        http_config.update(
            {
                "host": parsed_args.host or os.environ.get("MCP_HOST", "127.0.0.1"),
                "port": parsed_args.port
                if parsed_args.port is not None
                else int(os.environ.get("MCP_PORT", os.environ.get("PORT", "8000"))),
                "log_level": parsed_args.log_level
                or os.environ.get("MCP_LOG_LEVEL", "INFO"),
                "path": parsed_args.path
                or os.environ.get("MCP_PATH", os.environ.get("MCP_ENDPOINT", "/mcp")),
            }
        )

    return transport, http_config


def run_server(transport: str, http_config: dict[str, Any]) -> None:
    """
    Run the MCP server with the given configuration.

    The stdio transport authenticates once from OPENWEATHER_API_KEY before
    serving; HTTP transports authenticate every request from its
    Authorization header.

    Args:
        transport: Transport protocol to use
        http_config: HTTP configuration dictionary
    """
    logger.info(f"Starting {SERVICE_NAME} with transport: {transport}")
    if http_config:
        logger.info(f"HTTP Configuration: {http_config}")

    global _active_transport
    _active_transport = transport
    register_cleanup_handlers()

    try:
        if transport == "stdio":
            initialize_stdio_session()
            logger.info("Using stdio transport - connect via MCP client")
            mcp.run(transport="stdio")
        elif transport in ["streamable-http", "sse"]:
            logger.info(
                f"Using {transport} transport on http://{http_config['host']}:{http_config['port']}{http_config['path']}"
            )
            mcp.run(transport=transport, **http_config)
        else:
            logger.error(f"Unknown transport: {transport}")
            sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except WeatherToolError as e:
        logger.error(f"Authentication failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)


def main() -> None:
    transport, http_config = parse_server_config()
    run_server(transport, http_config)


if __name__ == "__main__":
    main()
