"""
Mapping of raw OpenWeatherMap payloads to the documents returned by the tools.

Conventions shared by every document:
    - ``timestamp`` keys hold raw epoch seconds; the matching ``datetime`` keys
      hold the same instant as an ISO-8601 UTC string.
    - Temperatures are rounded to integers, wind speeds and visibility to one
      decimal, and every value carries its unit label.
    - Optional upstream fields that are missing are emitted as ``0``
      (precipitation amounts) or ``None`` (everything else), never dropped.
"""

from typing import Any, Dict, Iterable, List, Optional

from mcp_openweather.formatting import (
    DEFAULT_UNITS,
    convert_visibility,
    format_air_quality,
    format_timestamp,
    format_weather_description,
    get_distance_unit,
    get_precipitation_intensity,
    get_temperature_unit,
    get_wind_direction,
    get_wind_speed_unit,
    round_half_up,
    round_one_decimal,
)
from mcp_openweather.location import ParsedLocation, format_location


# The 5 day forecast is a 3-hourly series: 24h / 3h entries per day
FORECAST_ENTRIES_PER_DAY = 8

AIR_POLLUTION_COMPONENTS = ("co", "no", "no2", "o3", "so2", "pm2_5", "pm10", "nh3")
AIR_POLLUTION_UNITS = "μg/m³"

PRECIPITATION_UNITS = "mm"


# --- Small field helpers ---


def _round_temperature(value: Optional[float]) -> Optional[int]:
    return None if value is None else round_half_up(value)


def _round_speed(value: Optional[float]) -> Optional[float]:
    return None if value is None else round_one_decimal(value)


def _percentage(probability: Optional[float]) -> Optional[int]:
    return None if probability is None else round_half_up(probability * 100)


def _description(entry: Dict[str, Any]) -> str:
    weather = entry.get("weather") or [{}]
    return format_weather_description(weather[0].get("description", ""))


def _accumulation(value: Any) -> float:
    """Precipitation amount from either a number or a {"1h": mm} / {"3h": mm} mapping."""
    if isinstance(value, dict):
        value = value.get("1h", value.get("3h"))
    return value or 0


def describe_coordinates(
    latitude: Optional[float], longitude: Optional[float]
) -> str:
    return format_location(
        ParsedLocation(type="coordinates", latitude=latitude, longitude=longitude)
    )


def _location_label(
    name: Optional[str], latitude: Optional[float], longitude: Optional[float]
) -> str:
    if name:
        return name
    if latitude is None and longitude is None:
        return "Unknown"
    return describe_coordinates(latitude, longitude)


def _wind(
    speed: Optional[float],
    degrees: Optional[float],
    gust: Optional[float],
    units: str,
) -> Dict[str, Any]:
    degrees = degrees or 0
    return {
        "speed": round_one_decimal(speed or 0),
        "gust": _round_speed(gust),
        "direction": get_wind_direction(degrees),
        "degrees": degrees,
        "units": get_wind_speed_unit(units),
    }


def _visibility(meters: Optional[float], units: str) -> Optional[Dict[str, Any]]:
    if meters is None:
        return None
    return {
        "value": convert_visibility(meters, units),
        "units": get_distance_unit(units),
    }


def unit_labels(units: str = DEFAULT_UNITS) -> Dict[str, str]:
    return {
        "system": units,
        "temperature": get_temperature_unit(units),
        "wind_speed": get_wind_speed_unit(units),
        "distance": get_distance_unit(units),
    }


# --- Current weather ---


def format_current_weather(
    data: Dict[str, Any],
    units: str = DEFAULT_UNITS,
    location: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Normalize current conditions.

    Accepts both the ``/data/2.5/weather`` payload (nested ``main``/``wind``
    objects) and the ``current`` object of a One Call payload (flat fields).
    """
    if "main" in data:
        main = data["main"]
        wind = data.get("wind", {})
        sys = data.get("sys", {})
        coord = data.get("coord", {})
        clouds = data.get("clouds")
        fields = {
            "temp": main.get("temp"),
            "feels_like": main.get("feels_like"),
            "temp_min": main.get("temp_min"),
            "temp_max": main.get("temp_max"),
            "humidity": main.get("humidity"),
            "pressure": main.get("pressure"),
            "wind_speed": wind.get("speed"),
            "wind_deg": wind.get("deg"),
            "wind_gust": wind.get("gust"),
            "clouds": clouds.get("all") if isinstance(clouds, dict) else clouds,
            "sunrise": sys.get("sunrise"),
            "sunset": sys.get("sunset"),
            "latitude": coord.get("lat"),
            "longitude": coord.get("lon"),
            "name": data.get("name"),
        }
    else:
        fields = {
            "temp": data.get("temp"),
            "feels_like": data.get("feels_like"),
            "temp_min": None,
            "temp_max": None,
            "humidity": data.get("humidity"),
            "pressure": data.get("pressure"),
            "wind_speed": data.get("wind_speed"),
            "wind_deg": data.get("wind_deg"),
            "wind_gust": data.get("wind_gust"),
            "clouds": data.get("clouds"),
            "sunrise": data.get("sunrise"),
            "sunset": data.get("sunset"),
            "latitude": data.get("lat"),
            "longitude": data.get("lon"),
            "name": None,
        }

    timestamp = data.get("dt")
    has_coordinates = fields["latitude"] is not None and fields["longitude"] is not None

    return {
        "location": location
        or _location_label(fields["name"], fields["latitude"], fields["longitude"]),
        "coordinates": {
            "latitude": fields["latitude"],
            "longitude": fields["longitude"],
        }
        if has_coordinates
        else None,
        "temperature": {
            "current": _round_temperature(fields["temp"]),
            "feels_like": _round_temperature(fields["feels_like"]),
            "min": _round_temperature(fields["temp_min"]),
            "max": _round_temperature(fields["temp_max"]),
            "units": get_temperature_unit(units),
        },
        "conditions": _description(data),
        "humidity": fields["humidity"],
        "pressure": fields["pressure"],
        "wind": _wind(
            fields["wind_speed"], fields["wind_deg"], fields["wind_gust"], units
        ),
        "visibility": _visibility(data.get("visibility"), units),
        "clouds": fields["clouds"],
        "uvi": data.get("uvi"),
        "rain": _accumulation(data.get("rain")),
        "snow": _accumulation(data.get("snow")),
        "sunrise": fields["sunrise"],
        "sunset": fields["sunset"],
        "timestamp": timestamp,
        "datetime": format_timestamp(timestamp),
    }


# --- 5 day / 3 hour forecast ---


def sample_daily_entries(
    entries: List[Dict[str, Any]], days: int
) -> List[Dict[str, Any]]:
    """
    Pick one representative entry per day from a 3-hourly series.

    Takes every 8th entry starting at index 0 within the first ``days * 8``
    entries. This is a sample, not a min/max aggregate over the day.
    """
    limited = entries[: days * FORECAST_ENTRIES_PER_DAY]
    return limited[::FORECAST_ENTRIES_PER_DAY]


def format_weather_forecast(
    entries: List[Dict[str, Any]],
    location: str,
    units: str = DEFAULT_UNITS,
    days: int = 5,
) -> Dict[str, Any]:
    forecasts = []
    for index, entry in enumerate(sample_daily_entries(entries, days)):
        main = entry.get("main", {})
        wind = entry.get("wind", {})
        timestamp = entry.get("dt")
        forecasts.append(
            {
                "day": index + 1,
                "date": format_timestamp(timestamp),
                "temperature": {
                    "min": _round_temperature(main.get("temp_min")),
                    "max": _round_temperature(main.get("temp_max")),
                    "units": get_temperature_unit(units),
                },
                "conditions": _description(entry),
                "humidity": main.get("humidity"),
                "wind": _wind(
                    wind.get("speed"), wind.get("deg"), wind.get("gust"), units
                ),
                "pop": _percentage(entry.get("pop")),
                "timestamp": timestamp,
            }
        )
    return {"location": location, "forecasts": forecasts}


def forecast_location(payload: Dict[str, Any]) -> str:
    """Location label for a ``/data/2.5/forecast`` payload."""
    city = payload.get("city") or {}
    coord = city.get("coord") or {}
    name = city.get("name")
    if name and city.get("country"):
        name = f"{name}, {city['country']}"
    return _location_label(name, coord.get("lat"), coord.get("lon"))


# --- One Call sections ---


def onecall_location(payload: Dict[str, Any]) -> str:
    return _location_label(None, payload.get("lat"), payload.get("lon"))


def format_hourly_forecast(
    hours: List[Dict[str, Any]],
    location: str,
    units: str = DEFAULT_UNITS,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    selected = hours if limit is None else hours[:limit]
    hourly = []
    for index, hour in enumerate(selected):
        timestamp = hour.get("dt")
        hourly.append(
            {
                "hour": index + 1,
                "datetime": format_timestamp(timestamp),
                "temperature": {
                    "current": _round_temperature(hour.get("temp")),
                    "feels_like": _round_temperature(hour.get("feels_like")),
                    "units": get_temperature_unit(units),
                },
                "conditions": _description(hour),
                "humidity": hour.get("humidity"),
                "wind": _wind(
                    hour.get("wind_speed"),
                    hour.get("wind_deg"),
                    hour.get("wind_gust"),
                    units,
                ),
                "pressure": hour.get("pressure"),
                "visibility": _visibility(hour.get("visibility"), units),
                "uvi": hour.get("uvi"),
                "clouds": hour.get("clouds"),
                "pop": _percentage(hour.get("pop")),
                "rain": _accumulation(hour.get("rain")),
                "snow": _accumulation(hour.get("snow")),
                "timestamp": timestamp,
            }
        )
    return {"location": location, "hourly_forecast": hourly}


def _day_parts(values: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Optional[int]]:
    names = {"morn": "morning", "day": "day", "eve": "evening", "night": "night"}
    return {
        names.get(key, key): _round_temperature(values.get(key)) for key in keys
    }


def format_daily_forecast(
    days: List[Dict[str, Any]],
    location: str,
    units: str = DEFAULT_UNITS,
    limit: Optional[int] = None,
    include_today: bool = True,
) -> Dict[str, Any]:
    selected = days if include_today else days[1:]
    if limit is not None:
        selected = selected[:limit]

    daily = []
    for index, day in enumerate(selected):
        timestamp = day.get("dt")
        temperature = _day_parts(
            day.get("temp") or {}, ("min", "max", "morn", "day", "eve", "night")
        )
        temperature["units"] = get_temperature_unit(units)
        feels_like = _day_parts(
            day.get("feels_like") or {}, ("morn", "day", "eve", "night")
        )
        feels_like["units"] = get_temperature_unit(units)
        daily.append(
            {
                "day": index + 1,
                "date": format_timestamp(timestamp),
                "summary": day.get("summary"),
                "temperature": temperature,
                "feels_like": feels_like,
                "conditions": _description(day),
                "humidity": day.get("humidity"),
                "pressure": day.get("pressure"),
                "wind": _wind(
                    day.get("wind_speed"),
                    day.get("wind_deg"),
                    day.get("wind_gust"),
                    units,
                ),
                "clouds": day.get("clouds"),
                "pop": _percentage(day.get("pop")),
                "rain": _accumulation(day.get("rain")),
                "snow": _accumulation(day.get("snow")),
                "uvi": day.get("uvi"),
                "sunrise": day.get("sunrise"),
                "sunset": day.get("sunset"),
                "moon_phase": day.get("moon_phase"),
                "timestamp": timestamp,
            }
        )
    return {"location": location, "daily_forecast": daily}


def format_minutely_forecast(
    minutes: List[Dict[str, Any]],
    location: str,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    selected = minutes if limit is None else minutes[:limit]
    minutely = []
    for index, minute in enumerate(selected):
        timestamp = minute.get("dt")
        precipitation = minute.get("precipitation") or 0
        minutely.append(
            {
                "minute": index + 1,
                "datetime": format_timestamp(timestamp),
                "precipitation": precipitation,
                "intensity": get_precipitation_intensity(precipitation),
                "timestamp": timestamp,
            }
        )

    amounts = [entry["precipitation"] for entry in minutely]
    wet_minutes = [entry for entry in minutely if entry["precipitation"] > 0]
    return {
        "location": location,
        "units": PRECIPITATION_UNITS,
        "minutely_forecast": minutely,
        "summary": {
            "minutes": len(minutely),
            "minutes_with_precipitation": len(wet_minutes),
            "max_precipitation": max(amounts) if amounts else 0,
            "first_precipitation": wet_minutes[0]["datetime"] if wet_minutes else None,
            "precipitation_expected": bool(wet_minutes),
        },
    }


def get_alert_severity(tags: Optional[Iterable[str]]) -> str:
    """
    Classify an alert from its raw provider tags.

    Exact, case-sensitive tag membership: "severe" or "extreme" is High,
    "moderate" is Medium, anything else Low.
    """
    tag_set = set(tags or [])
    if "severe" in tag_set or "extreme" in tag_set:
        return "High"
    if "moderate" in tag_set:
        return "Medium"
    return "Low"


def format_weather_alerts(
    alerts: Optional[List[Dict[str, Any]]], location: str
) -> Dict[str, Any]:
    formatted = []
    for alert in alerts or []:
        start = alert.get("start")
        end = alert.get("end")
        formatted.append(
            {
                "event": alert.get("event"),
                "sender": alert.get("sender_name"),
                "severity": get_alert_severity(alert.get("tags")),
                "start": start,
                "start_datetime": format_timestamp(start),
                "end": end,
                "end_datetime": format_timestamp(end),
                "description": alert.get("description"),
                "tags": list(alert.get("tags") or []),
            }
        )
    return {"location": location, "count": len(formatted), "alerts": formatted}


def format_onecall_weather(
    data: Dict[str, Any],
    units: str = DEFAULT_UNITS,
    exclude: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Combine every One Call section into one document.

    Excluded (or absent) sections are present with a ``None`` value.
    """
    excluded = set(exclude or [])
    location = onecall_location(data)

    def section(name: str) -> Any:
        return None if name in excluded or name not in data else data[name]

    current = section("current")
    minutely = section("minutely")
    hourly = section("hourly")
    daily = section("daily")
    alerts = None if "alerts" in excluded else data.get("alerts", [])

    return {
        "location": location,
        "coordinates": {"latitude": data.get("lat"), "longitude": data.get("lon")},
        "timezone": data.get("timezone"),
        "timezone_offset": data.get("timezone_offset"),
        "units": unit_labels(units),
        "current": format_current_weather(current, units, location)
        if current is not None
        else None,
        "minutely": format_minutely_forecast(minutely, location)["minutely_forecast"]
        if minutely is not None
        else None,
        "hourly": format_hourly_forecast(hourly, location, units)["hourly_forecast"]
        if hourly is not None
        else None,
        "daily": format_daily_forecast(daily, location, units)["daily_forecast"]
        if daily is not None
        else None,
        "alerts": format_weather_alerts(alerts, location)["alerts"]
        if alerts is not None
        else None,
    }


# --- Air quality ---


def format_air_pollution(
    data: Dict[str, Any], location: Optional[str] = None
) -> Dict[str, Any]:
    entries = data.get("list") or []
    if not entries:
        raise ValueError("No air pollution data available for this location")

    entry = entries[0]
    coord = data.get("coord") or {}
    aqi = (entry.get("main") or {}).get("aqi")
    components = entry.get("components") or {}
    timestamp = entry.get("dt")

    return {
        "location": location
        or _location_label(None, coord.get("lat"), coord.get("lon")),
        "coordinates": {"latitude": coord.get("lat"), "longitude": coord.get("lon")},
        "aqi": aqi,
        "quality": format_air_quality(aqi),
        "components": {
            name: components.get(name, 0) for name in AIR_POLLUTION_COMPONENTS
        },
        "units": AIR_POLLUTION_UNITS,
        "timestamp": timestamp,
        "datetime": format_timestamp(timestamp),
    }


# --- Geocoding ---


def _format_place(place: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": place.get("name"),
        "state": place.get("state"),
        "country": place.get("country"),
        "latitude": place.get("lat"),
        "longitude": place.get("lon"),
        "local_names": place.get("local_names"),
    }


def format_geocoding_results(
    results: List[Dict[str, Any]], query: str
) -> Dict[str, Any]:
    places = [_format_place(place) for place in results or []]
    return {"query": query, "count": len(places), "results": places}


def format_location_info(
    results: List[Dict[str, Any]], latitude: float, longitude: float
) -> Dict[str, Any]:
    places = [_format_place(place) for place in results or []]
    return {
        "coordinates": {"latitude": latitude, "longitude": longitude},
        "location": places[0]["name"] if places else describe_coordinates(latitude, longitude),
        "count": len(places),
        "locations": places,
    }
