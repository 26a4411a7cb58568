import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional


Units = Literal["metric", "imperial", "standard"]

DEFAULT_UNITS: Units = "metric"
SUPPORTED_UNITS = ("metric", "imperial", "standard")

METERS_PER_MILE = 1609.34
METERS_PER_KILOMETER = 1000

WIND_DIRECTIONS = [
    "N",
    "NNE",
    "NE",
    "ENE",
    "E",
    "ESE",
    "SE",
    "SSE",
    "S",
    "SSW",
    "SW",
    "WSW",
    "W",
    "WNW",
    "NW",
    "NNW",
]
WIND_SECTOR_DEGREES = 22.5

# OpenWeatherMap air quality index (1-5) to label
AIR_QUALITY_LABELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}

# Upper bounds (mm) of the light and moderate precipitation buckets
LIGHT_PRECIPITATION_LIMIT = 0.1
MODERATE_PRECIPITATION_LIMIT = 0.5
ONE_DECIMAL = Decimal("0.1")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding towards +infinity."""
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    """Round to one decimal place, halves of the exact binary value rounding away from zero."""
    return float(Decimal(float(value)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


def get_temperature_unit(units: Optional[str] = DEFAULT_UNITS) -> str:
    """Get the temperature unit symbol for a unit system."""
    if units == "imperial":
        return "F"
    if units == "standard":
        return "K"
    return "C"


def format_temperature(temp: float, units: Optional[str] = DEFAULT_UNITS) -> str:
    return f"{round_half_up(temp)}°{get_temperature_unit(units)}"


def get_wind_speed_unit(units: Optional[str] = DEFAULT_UNITS) -> str:
    return "mph" if units == "imperial" else "m/s"


def format_wind_speed(speed: float, units: Optional[str] = DEFAULT_UNITS) -> str:
    return f"{round_one_decimal(speed):.1f} {get_wind_speed_unit(units)}"


def format_humidity(humidity: float) -> str:
    return f"{humidity}%"


def get_distance_unit(units: Optional[str] = DEFAULT_UNITS) -> str:
    return "mi" if units == "imperial" else "km"


def convert_visibility(meters: float, units: Optional[str] = DEFAULT_UNITS) -> float:
    """Convert a visibility in meters to miles (imperial) or kilometers."""
    if units == "imperial":
        return round_one_decimal(meters / METERS_PER_MILE)
    return round_one_decimal(meters / METERS_PER_KILOMETER)


def format_visibility(meters: float, units: Optional[str] = DEFAULT_UNITS) -> str:
    return f"{convert_visibility(meters, units):.1f} {get_distance_unit(units)}"


def get_wind_direction(degrees: float) -> str:
    """
    Convert a wind bearing in degrees to a 16-point compass direction.

    Each sector spans 22.5 degrees centered on its compass point, so 0 and 360
    both map to "N" and 11.25 is the first bearing mapped to "NNE".
    """
    index = round_half_up((degrees % 360) / WIND_SECTOR_DEGREES)
    return WIND_DIRECTIONS[index % len(WIND_DIRECTIONS)]


def format_air_quality(aqi: int) -> str:
    """Format an air quality index (1-5) as a human-readable label."""
    return AIR_QUALITY_LABELS.get(aqi, "Unknown")


def get_precipitation_intensity(precipitation: float) -> str:
    """Bucket a precipitation amount (mm) into an intensity label."""
    if precipitation <= 0:
        return "No precipitation"
    if precipitation < LIGHT_PRECIPITATION_LIMIT:
        return "Light rain"
    if precipitation < MODERATE_PRECIPITATION_LIMIT:
        return "Moderate rain"
    return "Heavy rain"


def format_weather_description(description: str) -> str:
    """Capitalize the first letter of each word in a weather description."""
    return " ".join(word[:1].upper() + word[1:] for word in description.split(" "))


def format_timestamp(timestamp: Optional[int]) -> Optional[str]:
    """Render epoch seconds as an ISO-8601 UTC string."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
