"""Tests for the Open-Meteo weather client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from core.errors import WeatherError
from system.weather import fetch_current_weather, observed_clock_time


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


def test_fetch_current_weather():
    payload = {"current_weather": {"temperature": -1.5, "windspeed": 12.3, "time": "2026-01-21T10:00"}}
    with patch("system.weather.requests.get", return_value=_response(payload)) as mock_get:
        report = fetch_current_weather(50.08, 14.44)

    assert report == {"temperature_c": -1.5, "wind_kph": 12.3, "observed_at": "2026-01-21T10:00"}
    assert mock_get.call_args[1]["params"] == {"latitude": 50.08, "longitude": 14.44, "current_weather": "true"}


def test_missing_current_weather():
    with patch("system.weather.requests.get", return_value=_response({"hourly": {}})):
        with pytest.raises(WeatherError, match="no current weather"):
            fetch_current_weather(50.08, 14.44)


def test_incomplete_current_weather():
    with patch("system.weather.requests.get", return_value=_response({"current_weather": {"temperature": 3}})):
        with pytest.raises(WeatherError, match="incomplete"):
            fetch_current_weather(50.08, 14.44)


def test_timeout():
    with patch("system.weather.requests.get", side_effect=requests.exceptions.Timeout()):
        with pytest.raises(WeatherError, match="timed out"):
            fetch_current_weather(50.08, 14.44)


def test_observed_clock_time():
    assert observed_clock_time("2026-01-21T14:00") == "14:00"
    assert observed_clock_time("") == ""
