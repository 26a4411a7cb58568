import re
from dataclasses import dataclass
from typing import Literal, Optional


# "lat:40.7128,lon:-74.0060", "LAT 40.7 LON -74"
EXPLICIT_COORDINATES_PATTERN = re.compile(
    r"lat[:\s]*(-?\d+\.?\d*)[,\s]+lon[:\s]*(-?\d+\.?\d*)", re.IGNORECASE
)
# "40.7128,-74.0060", "40.7128 -74.0060"
BARE_COORDINATES_PATTERN = re.compile(r"^(-?\d+\.?\d*)[,\s]+(-?\d+\.?\d*)$")

UNKNOWN_LOCATION = "Unknown location"


@dataclass(frozen=True)
class ParsedLocation:
    """
    Result of parsing a free-form location string.

    Either ``type == "coordinates"`` with latitude/longitude set, or
    ``type == "city"`` with the place-name query in ``city``.
    """

    type: Literal["coordinates", "city"]
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None

    @property
    def is_coordinates(self) -> bool:
        return self.type == "coordinates"


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """Check that latitude/longitude lie within geographic bounds."""
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def _match_coordinates(match: Optional[re.Match]) -> Optional[ParsedLocation]:
    if match is None:
        return None
    latitude = float(match.group(1))
    longitude = float(match.group(2))
    if not is_valid_coordinate(latitude, longitude):
        return None
    return ParsedLocation(type="coordinates", latitude=latitude, longitude=longitude)


def parse_location(location: str) -> ParsedLocation:
    """
    Parse a location string into coordinates or a city name.

    Supported formats:
        - "New York" (city name)
        - "New York, US" (city with country code)
        - "40.7128,-74.0060" (coordinates)
        - "lat:40.7128,lon:-74.0060" (explicit coordinates)

    Numeric pairs outside the valid ranges are not rejected; they fall back to
    a city query holding the trimmed input. This function never raises.
    """
    trimmed = location.strip()

    parsed = _match_coordinates(EXPLICIT_COORDINATES_PATTERN.search(trimmed))
    if parsed is not None:
        return parsed

    parsed = _match_coordinates(BARE_COORDINATES_PATTERN.match(trimmed))
    if parsed is not None:
        return parsed

    return ParsedLocation(type="city", city=trimmed)


def _format_component(value: Optional[float]) -> str:
    # Missing components keep the legacy "undefined" rendering
    if value is None:
        return "undefined"
    return f"{value:.4f}"


def format_location(location: ParsedLocation) -> str:
    """Format a parsed location for display."""
    if location.type == "coordinates":
        return (
            f"{_format_component(location.latitude)}, "
            f"{_format_component(location.longitude)}"
        )
    return location.city or UNKNOWN_LOCATION
