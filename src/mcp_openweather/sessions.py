import os
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, MutableMapping, Optional

from cachetools import LRUCache
from fastmcp.server.dependencies import get_http_request
from starlette.requests import Request

from mcp_openweather.api_client import OpenWeatherApiClient
from mcp_openweather.errors import (
    InvalidCredentialError,
    InvalidLocationError,
    NoSessionError,
    RangeValidationError,
)
from mcp_openweather.formatting import Units
from mcp_openweather.location import is_valid_coordinate, parse_location


logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "OPENWEATHER_API_KEY"
MIN_API_KEY_LENGTH = 32


@dataclass(frozen=True)
class Session:
    """Binding of an OpenWeatherMap API key to the caller (stdio process or HTTP request)."""

    credential: str = field(repr=False)
    established_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


def is_valid_credential(credential: Optional[str]) -> bool:
    """Crude format check: OpenWeatherMap keys are 32 characters long."""
    return bool(credential) and len(credential) >= MIN_API_KEY_LENGTH


# --- stdio transport: one session for the process lifetime ---

_stdio_session: Optional[Session] = None


def initialize_stdio_session() -> Session:
    """
    Initialize authentication for the stdio transport from the environment.

    Called once at server startup. The session is never refreshed.

    Raises:
        NoSessionError: OPENWEATHER_API_KEY is not set.
        InvalidCredentialError: OPENWEATHER_API_KEY is too short to be a valid key.
    """
    global _stdio_session
    api_key = os.environ.get(API_KEY_ENV_VAR)

    if not api_key:
        raise NoSessionError(
            f"{API_KEY_ENV_VAR} environment variable is required for stdio transport. "
            "Please set it before starting the server."
        )
    if not is_valid_credential(api_key):
        raise InvalidCredentialError(
            f"Invalid {API_KEY_ENV_VAR} format. Please check your API key."
        )

    _stdio_session = Session(credential=api_key)
    logger.info("OpenWeatherMap authentication initialized successfully")
    return _stdio_session


def get_stdio_session() -> Optional[Session]:
    return _stdio_session


def set_stdio_session(session: Optional[Session]) -> None:
    global _stdio_session
    _stdio_session = session


def clear_stdio_session() -> None:
    set_stdio_session(None)


# --- HTTP transport: one session per request ---


def authenticate_http_request(request: Request) -> Optional[Session]:
    """
    Build a session from the ``Authorization: Bearer <api key>`` header.

    Returns:
        Session for the request, or None when no Authorization header is present.

    Raises:
        InvalidCredentialError: The header uses another scheme or the key is malformed.
    """
    auth_header = request.headers.get("authorization")
    if not auth_header:
        return None

    scheme, _, credential = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        raise InvalidCredentialError(
            "Only Bearer authentication is supported. "
            "Send 'Authorization: Bearer <OpenWeatherMap API key>'."
        )

    credential = credential.strip()
    if not is_valid_credential(credential):
        raise InvalidCredentialError("Invalid OpenWeatherMap API key format")

    return Session(credential=credential)


def resolve_request_session() -> Optional[Session]:
    """Session of the current HTTP request, or None when the call did not arrive over HTTP."""
    try:
        request = get_http_request()
    except RuntimeError:
        return None
    return authenticate_http_request(request)


# --- Client registry ---

ClientFactory = Callable[[str], OpenWeatherApiClient]


class ClientSessionRegistry:
    """
    Cache of OpenWeatherApiClient instances keyed by API key.

    At most one client exists per API key. By default the cache is unbounded and
    never evicts; pass ``max_clients`` to bound it with an LRU policy.
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        max_clients: int = 0,
    ):
        self._client_factory: ClientFactory = client_factory or (
            lambda api_key: OpenWeatherApiClient(api_key=api_key)
        )
        self._clients: MutableMapping[str, OpenWeatherApiClient] = (
            LRUCache(maxsize=max_clients) if max_clients > 0 else {}
        )

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, credential: str) -> bool:
        return credential in self._clients

    def resolve_client(self, session: Optional[Session] = None) -> OpenWeatherApiClient:
        """
        Get or create the client for a session.

        An explicit session (HTTP) takes priority; otherwise the process-wide
        stdio session is used.

        Raises:
            NoSessionError: Neither an explicit nor a stdio session is available.
        """
        effective_session = session or get_stdio_session()
        if effective_session is None:
            raise NoSessionError("No authentication session available")

        api_key = effective_session.credential
        client = self._clients.get(api_key)
        if client is None:
            logger.info("Creating OpenWeatherMap client for new session")
            client = self._client_factory(api_key)
            self._clients[api_key] = client
        return client

    def clear(self) -> None:
        self._clients.clear()


# --- Per-request configuration ---


def configure_client_for_location(
    client: OpenWeatherApiClient, location: str, units: Optional[Units] = None
) -> OpenWeatherApiClient:
    """
    Configure a client for one request.

    Args:
        client: Client to configure (mutated and returned)
        location: Location string to parse (city name or coordinates)
        units: Unit system; when omitted the client keeps its previous units

    Raises:
        InvalidLocationError: The location is empty or incomplete.
    """
    parsed = parse_location(location)

    if (
        parsed.type == "coordinates"
        and parsed.latitude is not None
        and parsed.longitude is not None
    ):
        client.set_location_by_coordinates(parsed.latitude, parsed.longitude)
    elif parsed.type == "city" and parsed.city:
        client.set_location_by_name(parsed.city)
    else:
        raise InvalidLocationError(
            "Invalid location format. Provide a city name (e.g. 'London, GB') "
            "or coordinates (e.g. '51.5074,-0.1278')."
        )

    if units:
        client.set_units(units)

    return client


def configure_client_for_coordinates(
    client: OpenWeatherApiClient,
    latitude: float,
    longitude: float,
    units: Optional[Units] = None,
) -> OpenWeatherApiClient:
    """Configure a client for a coordinate-addressed request."""
    if not is_valid_coordinate(latitude, longitude):
        raise RangeValidationError(
            f"Invalid coordinates ({latitude}, {longitude}). Latitude must be between "
            "-90 and 90 and longitude between -180 and 180."
        )

    client.set_location_by_coordinates(latitude, longitude)
    if units:
        client.set_units(units)
    return client
