from typing import Optional

from fastmcp.exceptions import ToolError


class WeatherToolError(ToolError):
    """Base class for errors surfaced to MCP callers as a tool failure message."""


class InvalidLocationError(WeatherToolError):
    """Location string parsed to an incomplete or empty descriptor."""


class NoSessionError(WeatherToolError):
    """No OpenWeatherMap credential is available for the current call."""


class UpstreamNotFoundError(WeatherToolError):
    """OpenWeatherMap could not resolve the requested place name."""


class InvalidCredentialError(WeatherToolError):
    """The credential was rejected, either locally or by OpenWeatherMap."""


class RangeValidationError(WeatherToolError):
    """Latitude/longitude outside valid geographic bounds."""


class UnknownUpstreamError(WeatherToolError):
    """Any other upstream failure, carrying the original message."""


# Substrings of upstream error messages mapped to user-facing errors
CITY_NOT_FOUND = "city not found"
INVALID_API_KEY = "Invalid API key"
INVALID_COORDINATES = "Invalid coordinates"


def translate_upstream_error(
    error: Exception, action: str, location: Optional[str] = None
) -> WeatherToolError:
    """
    Translate an exception raised while serving a tool call into a user-facing error.

    Errors that are already WeatherToolErrors are returned unchanged. Others are
    classified by substring match on their message; anything unrecognized is
    wrapped as "Failed to {action}: {message}".

    Args:
        error: The exception raised by the client or the normalizer.
        action: Short description of what the tool was doing (e.g. "get current weather").
        location: The location as given by the caller, used in not-found messages.

    Returns:
        WeatherToolError: The error to raise to the MCP caller.
    """
    if isinstance(error, WeatherToolError):
        return error

    message = str(error) or "Unknown error"

    if CITY_NOT_FOUND in message:
        return UpstreamNotFoundError(
            f'Location "{location}" not found. '
            "Please check the spelling or try using coordinates."
        )
    if INVALID_API_KEY in message:
        return InvalidCredentialError(
            "Invalid OpenWeatherMap API key. Please check your configuration."
        )
    if INVALID_COORDINATES in message:
        return RangeValidationError(
            "Invalid coordinates. Latitude must be between -90 and 90 "
            "and longitude between -180 and 180."
        )
    return UnknownUpstreamError(f"Failed to {action}: {message}")
