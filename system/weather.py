"""
weather.py

Current-weather lookup via the Open-Meteo forecast API (no key needed).
Used only by the deterministic classifier.
Part of Vesper — Local-First Personal Assistant.
"""

import logging

import requests

import config
from core.errors import WeatherError

_log = logging.getLogger("vesper.system.weather")
_handler = logging.FileHandler(config.LOGS_DIR / "system.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"


def fetch_current_weather(
    latitude: float | None = None,
    longitude: float | None = None,
    timeout: float = 10,
) -> dict:
    """
    Fetch the current weather for a coordinate.

    Args:
        latitude: Defaults to config.WEATHER_LATITUDE.
        longitude: Defaults to config.WEATHER_LONGITUDE.
        timeout: Request timeout in seconds.

    Returns:
        A dict with temperature_c (float), wind_kph (float) and
        observed_at (the service's local time string, e.g. "2026-01-21T14:00").

    Raises:
        WeatherError: On transport failure or a response without current weather.

    Example:
        report = fetch_current_weather(50.0755, 14.4378)
        print(report["temperature_c"])
    """
    lat = config.WEATHER_LATITUDE if latitude is None else latitude
    lon = config.WEATHER_LONGITUDE if longitude is None else longitude
    params = {"latitude": lat, "longitude": lon, "current_weather": "true"}

    try:
        response = requests.get(OPEN_METEO_URL, params=params, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout as exc:
        _log.warning("WEATHER | timeout | lat=%s | lon=%s", lat, lon)
        raise WeatherError("the weather service timed out") from exc
    except requests.exceptions.RequestException as exc:
        _log.error("WEATHER | error: %s", exc)
        raise WeatherError(str(exc)) from exc
    except ValueError as exc:
        raise WeatherError("the weather service returned invalid JSON") from exc

    current = data.get("current_weather") if isinstance(data, dict) else None
    if not isinstance(current, dict):
        raise WeatherError("the weather service returned no current weather")
    try:
        report = {
            "temperature_c": float(current["temperature"]),
            "wind_kph": float(current["windspeed"]),
            "observed_at": str(current.get("time", "")),
        }
    except (KeyError, TypeError, ValueError) as exc:
        raise WeatherError("the weather service returned incomplete data") from exc

    _log.info("WEATHER | lat=%s | lon=%s | temp=%.1f", lat, lon, report["temperature_c"])
    return report


def observed_clock_time(observed_at: str) -> str:
    """
    Reduce an ISO timestamp to its HH:MM part.

    Example:
        observed_clock_time("2026-01-21T14:00")  # "14:00"
    """
    if "T" in observed_at:
        return observed_at.split("T", 1)[1][:5]
    return observed_at
