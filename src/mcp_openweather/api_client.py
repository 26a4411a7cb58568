import httpx
import logging
import asyncio
import json
from typing import Dict, List, Optional, Any, ClassVar, Tuple
from cachetools import TTLCache
from aiolimiter import AsyncLimiter


# Sections of the One Call response that can be excluded
ONECALL_SECTIONS = ("current", "minutely", "hourly", "daily", "alerts")

SUPPORTED_UNITS = ("metric", "imperial", "standard")


class OpenWeatherApiError(Exception):
    """Base exception for OpenWeatherMap API errors"""

    def __init__(
        self,
        message: str,
        response: Optional[httpx.Response] = None,
        request: Optional[httpx.Request] = None,
    ):
        super().__init__(message)
        self.message = message
        self.response = response
        self.request = request

    def __str__(self) -> str:
        base_str = super().__str__()
        if self.response is not None:
            base_str += f" (Status Code: {self.response.status_code})"
        # Only the path: the query string carries the API key
        if self.request is not None:
            base_str += f" (Request Path: {self.request.url.path})"
        return base_str


class OpenWeatherApiConnectionError(OpenWeatherApiError):
    """Connection error with OpenWeatherMap API"""

    def __init__(self, message: str, request: Optional[httpx.Request] = None):
        super().__init__(message, response=None, request=request)


class OpenWeatherApiClientError(OpenWeatherApiError):
    """Client-side error with OpenWeatherMap API requests (4xx)"""

    pass


class OpenWeatherApiServerError(OpenWeatherApiError):
    """Server-side error with OpenWeatherMap API operations (5xx)"""

    pass


class OpenWeatherApiClient:
    """
    Client for the OpenWeatherMap API bound to one API key.

    The client is stateful: a target location and a unit system are set on the
    instance and used by every subsequent fetch. Instances are shared between
    calls that use the same API key, so callers hold ``lock`` across the
    configure-then-fetch sequence.

    Features:
    - Location by coordinates or by place name (geocoded where the endpoint
      requires coordinates)
    - Optional response caching with TTL
    - Rate limiting to respect API quotas
    - Connection pooling shared by all instances
    """

    BASE_URL = "https://api.openweathermap.org"

    CURRENT_WEATHER_ENDPOINT = "/data/2.5/weather"
    FORECAST_ENDPOINT = "/data/2.5/forecast"
    ONECALL_ENDPOINT = "/data/3.0/onecall"
    AIR_POLLUTION_ENDPOINT = "/data/2.5/air_pollution"
    GEOCODING_DIRECT_ENDPOINT = "/geo/1.0/direct"
    GEOCODING_REVERSE_ENDPOINT = "/geo/1.0/reverse"

    DEFAULT_GEOCODING_LIMIT = 5
    DEFAULT_REVERSE_GEOCODING_LIMIT = 1

    # Class-level connection pool shared by all instances
    _shared_client: ClassVar[Optional[httpx.AsyncClient]] = None
    _client_lock: ClassVar[asyncio.Lock] = asyncio.Lock()

    def __init__(
        self,
        api_key: str,
        units: str = "metric",
        cache_ttl: int = 0,
        rate_limit_calls: int = 60,
        rate_limit_period: int = 60,
        concurrency_limit: int = 10,
    ):
        """
        Initialize with API key and optional configurations.

        Args:
            api_key: The OpenWeatherMap API key.
            units: Initial unit system (metric, imperial or standard).
            cache_ttl: Time-to-live for cached responses in seconds, 0 disables caching.
            rate_limit_calls: Maximum number of API calls allowed per period.
            rate_limit_period: Time period (in seconds) for the rate limit.
            concurrency_limit: Maximum number of concurrent API requests.
        """
        if not api_key:
            raise ValueError("OpenWeatherMap API key must be provided.")

        self.api_key = api_key
        self.logger = logging.getLogger("openweather_api_client")

        self.units = units
        self.latitude: Optional[float] = None
        self.longitude: Optional[float] = None
        self.location_name: Optional[str] = None

        self._cache: Optional[TTLCache] = (
            TTLCache(maxsize=1000, ttl=cache_ttl) if cache_ttl > 0 else None
        )
        self._request_semaphore = asyncio.Semaphore(concurrency_limit)
        # Shared by every request made through this client
        self._rate_limiter = AsyncLimiter(
            max_rate=rate_limit_calls, time_period=rate_limit_period
        )

        # Held by callers across configure + fetch on this shared instance
        self.lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"OpenWeatherApiClient(units={self.units!r}, location={self.describe_location()!r})"

    # --- Location and unit configuration ---

    def set_location_by_coordinates(self, latitude: float, longitude: float) -> None:
        """Target subsequent requests at a coordinate pair."""
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise OpenWeatherApiError(
                f"Invalid coordinates: latitude={latitude}, longitude={longitude}"
            )
        self.latitude = latitude
        self.longitude = longitude
        self.location_name = None

    def set_location_by_name(self, name: str) -> None:
        """Target subsequent requests at a place name (e.g. "London, GB")."""
        if not name or not name.strip():
            raise OpenWeatherApiError("Location name must not be empty")
        self.location_name = name
        self.latitude = None
        self.longitude = None

    def set_units(self, units: str) -> None:
        if units not in SUPPORTED_UNITS:
            raise ValueError(
                f"Unsupported units: '{units}'. Valid units are: {', '.join(SUPPORTED_UNITS)}"
            )
        self.units = units

    def describe_location(self) -> Optional[str]:
        if self.location_name is not None:
            return self.location_name
        if self.latitude is not None and self.longitude is not None:
            return f"{self.latitude:.4f}, {self.longitude:.4f}"
        return None

    def _location_params(self) -> Dict[str, Any]:
        if self.location_name is not None:
            return {"q": self.location_name}
        if self.latitude is not None and self.longitude is not None:
            return {"lat": self.latitude, "lon": self.longitude}
        raise OpenWeatherApiError("No location configured for this request")

    # --- HTTP plumbing ---

    @classmethod
    async def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client with connection pooling"""
        async with cls._client_lock:
            if cls._shared_client is None:
                cls._shared_client = httpx.AsyncClient(
                    limits=httpx.Limits(
                        max_connections=100, max_keepalive_connections=20
                    ),
                    timeout=httpx.Timeout(30.0),
                )
            return cls._shared_client

    @classmethod
    async def close_all_connections(cls):
        """Close the shared client connection - call this when your application is shutting down"""
        async with cls._client_lock:
            if cls._shared_client is not None:
                await cls._shared_client.aclose()
                cls._shared_client = None

    def _process_response_error(self, response: httpx.Response):
        """Process HTTP errors and raise appropriate exceptions"""
        if response.status_code >= 400:
            status_code = response.status_code
            request = response.request

            # OpenWeatherMap errors look like {"cod": "404", "message": "city not found"}
            error_msg = f"OpenWeatherMap API error: HTTP {status_code}"
            try:
                error_data = response.json()
                if isinstance(error_data, dict) and "message" in error_data:
                    error_msg = str(error_data["message"])
            except Exception:
                pass

            if status_code < 500:
                raise OpenWeatherApiClientError(
                    error_msg, response=response, request=request
                )
            raise OpenWeatherApiServerError(
                error_msg, response=response, request=request
            )

    def _get_cache_key(self, endpoint: str, params: Dict[str, Any]) -> str:
        """Generate a unique cache key for an API request."""
        sorted_params = sorted(
            [(k, v) for k, v in params.items() if k != "appid"]
        )
        param_str = "&".join([f"{k}={v}" for k, v in sorted_params])
        return f"{endpoint}?{param_str}"

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Any:
        """Perform one GET against the API and decode the JSON body."""
        async with self._request_semaphore:
            url = f"{self.BASE_URL}{endpoint}"
            full_params = {**params, "appid": self.api_key}

            client = await self.get_shared_client()
            try:
                response = await client.get(url, params=full_params)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                raise OpenWeatherApiConnectionError(
                    f"Could not connect to OpenWeatherMap: {e}", request=e.request
                ) from e

            self._process_response_error(response)

            if not response.content or len(response.content.strip()) == 0:
                raise OpenWeatherApiError(
                    "Empty response received from OpenWeatherMap API"
                )
            try:
                return response.json()
            except json.JSONDecodeError as e:
                raise OpenWeatherApiError(f"Invalid JSON response: {str(e)}")

    async def _make_request(
        self,
        endpoint: str,
        params: Dict[str, Any],
        use_cache: bool = True,
    ) -> Any:
        """Make a request to the API with caching and rate limiting."""
        use_cache = use_cache and self._cache is not None
        cache_key = self._get_cache_key(endpoint, params)

        if use_cache:
            cached_response = self._cache.get(cache_key)
            if cached_response is not None:
                return cached_response

        self.logger.debug(f"Requesting {endpoint} for {self.describe_location()}")
        async with self._rate_limiter:
            result = await self._get(endpoint, params)

        if use_cache:
            self._cache[cache_key] = result
        return result

    async def _resolve_coordinates(self) -> Tuple[float, float]:
        """Return the configured coordinates, geocoding the place name if needed."""
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        if self.location_name is None:
            raise OpenWeatherApiError("No location configured for this request")

        results = await self.geocode(self.location_name, limit=1)
        if not results:
            # Same wording as the weather endpoints use for unknown names
            raise OpenWeatherApiClientError("city not found")
        return results[0]["lat"], results[0]["lon"]

    # --- Location-based operations ---

    async def get_current(self) -> Dict[str, Any]:
        """
        Get current weather for the configured location.
        /data/2.5/weather

        Returns:
            Raw current weather payload:
            {
                "coord": {"lon": float, "lat": float},
                "weather": [{"id": int, "main": str, "description": str, "icon": str}],
                "main": {"temp": float, "feels_like": float, "temp_min": float,
                         "temp_max": float, "pressure": int, "humidity": int},
                "visibility": int,              # meters
                "wind": {"speed": float, "deg": int, "gust": float},
                "clouds": {"all": int},
                "dt": int,                      # epoch seconds
                "sys": {"country": str, "sunrise": int, "sunset": int},
                "timezone": int,                # offset from UTC in seconds
                "name": str
            }
        """
        params = {**self._location_params(), "units": self.units}
        return await self._make_request(self.CURRENT_WEATHER_ENDPOINT, params)

    async def get_forecast(self) -> Dict[str, Any]:
        """
        Get the 5 day / 3 hour forecast for the configured location.
        /data/2.5/forecast

        Returns:
            Raw forecast payload with up to 40 entries in ``list`` (one per 3 hours)
            and place details in ``city``.
        """
        params = {**self._location_params(), "units": self.units}
        return await self._make_request(self.FORECAST_ENDPOINT, params)

    async def get_everything(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Get the One Call payload for the configured location in a single request.
        /data/3.0/onecall

        Args:
            exclude: Sections to leave out (current, minutely, hourly, daily, alerts)

        Returns:
            Raw One Call payload:
            {
                "lat": float, "lon": float,
                "timezone": str, "timezone_offset": int,
                "current": {...},
                "minutely": [{"dt": int, "precipitation": float}],
                "hourly": [{...}],      # 48 hours
                "daily": [{...}],       # 8 days, today first
                "alerts": [{"sender_name": str, "event": str, "start": int,
                            "end": int, "description": str, "tags": [str]}]
            }
        """
        latitude, longitude = await self._resolve_coordinates()
        params: Dict[str, Any] = {
            "lat": latitude,
            "lon": longitude,
            "units": self.units,
        }
        if exclude:
            invalid = [part for part in exclude if part not in ONECALL_SECTIONS]
            if invalid:
                raise ValueError(
                    f"Invalid exclude values: {', '.join(invalid)}. "
                    f"Valid values are: {', '.join(ONECALL_SECTIONS)}"
                )
            params["exclude"] = ",".join(exclude)
        return await self._make_request(self.ONECALL_ENDPOINT, params)

    async def _get_onecall_section(self, section: str) -> Dict[str, Any]:
        return await self.get_everything(
            exclude=[part for part in ONECALL_SECTIONS if part != section]
        )

    async def get_hourly_forecast(self) -> Dict[str, Any]:
        """One Call payload restricted to the 48 hour ``hourly`` section."""
        return await self._get_onecall_section("hourly")

    async def get_daily_forecast(self) -> Dict[str, Any]:
        """One Call payload restricted to the 8 day ``daily`` section."""
        return await self._get_onecall_section("daily")

    async def get_minutely_forecast(self) -> Dict[str, Any]:
        """One Call payload restricted to the 60 minute ``minutely`` section."""
        return await self._get_onecall_section("minutely")

    async def get_alerts(self) -> Dict[str, Any]:
        """One Call payload restricted to the ``alerts`` section."""
        return await self._get_onecall_section("alerts")

    async def get_current_air_pollution(self) -> Dict[str, Any]:
        """
        Get current air pollution for the configured location.
        /data/2.5/air_pollution

        Returns:
            {
                "coord": {"lon": float, "lat": float},
                "list": [{"dt": int, "main": {"aqi": int},
                          "components": {"co": float, "no": float, "no2": float,
                                         "o3": float, "so2": float, "pm2_5": float,
                                         "pm10": float, "nh3": float}}]
            }
        """
        latitude, longitude = await self._resolve_coordinates()
        params = {"lat": latitude, "lon": longitude}
        return await self._make_request(self.AIR_POLLUTION_ENDPOINT, params)

    async def get_location(
        self, limit: int = DEFAULT_REVERSE_GEOCODING_LIMIT
    ) -> List[Dict[str, Any]]:
        """
        Reverse geocode the configured coordinates into place names.
        /geo/1.0/reverse

        Returns:
            List of places: [{"name": str, "local_names": {str: str},
                              "lat": float, "lon": float, "country": str, "state": str}]
        """
        latitude, longitude = await self._resolve_coordinates()
        params = {"lat": latitude, "lon": longitude, "limit": limit}
        return await self._make_request(self.GEOCODING_REVERSE_ENDPOINT, params)

    # --- Location-independent operations ---

    async def geocode(
        self, query: str, limit: int = DEFAULT_GEOCODING_LIMIT
    ) -> List[Dict[str, Any]]:
        """
        Convert a place name to coordinates.
        /geo/1.0/direct

        Args:
            query: Place name, optionally with state and country code ("Paris, FR")
            limit: Maximum number of results (1-5 upstream)

        Returns:
            List of places in the same shape as get_location.
        """
        if not query or not query.strip():
            raise ValueError("Query must be provided for geocode")
        params = {"q": query, "limit": limit}
        return await self._make_request(self.GEOCODING_DIRECT_ENDPOINT, params)
