"""Reverse geocoding through the Mappify API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .exceptions import ConfigError, NetworkError, ParseError

_LOGGER = logging.getLogger(__name__)

REVERSE_GEOCODE_URL = "https://mappify.io/api/rpc/coordinates/reversegeocode"


@dataclass
class Address:
    """Address closest to a coordinate."""

    street_name: str = ""
    suburb: str = ""
    state: str = ""
    post_code: str = ""
    street_address: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Address:
        def text(key: str) -> str:
            value = data.get(key)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise ParseError(f"{key}: expected str, got {type(value).__name__}")
            return value

        return cls(
            street_name=text("streetName"),
            suburb=text("suburb"),
            state=text("state"),
            post_code=text("postCode"),
            street_address=text("streetAddress"),
        )


def reverse_geocode(
    lat: float,
    lon: float,
    api_key: str,
    session: Optional[requests.Session] = None,
    url: str = REVERSE_GEOCODE_URL,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> Address:
    """
    Look up the address nearest to (lat, lon).

    Raises:
        ConfigError: if no API key is given
        NetworkError: on connection failure or a non-2xx status
        ParseError: on a malformed body
    """
    if not api_key:
        raise ConfigError("Mappify API key is required")

    session = session or requests
    payload = {"lat": lat, "lon": lon, "apiKey": api_key}

    _LOGGER.debug("Reverse geocoding (%s, %s)", lat, lon)
    try:
        response = session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        _LOGGER.error("Reverse geocode request failed: %s", exc)
        raise NetworkError(f"reverse geocode request failed: {exc}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise ParseError(f"invalid reverse geocode response: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError("reverse geocode response is not an object")
    result = data.get("result")
    if result is None:
        result = {}
    if not isinstance(result, dict):
        raise ParseError("reverse geocode result is not an object")

    address = Address.from_dict(result)
    _LOGGER.info("(%s, %s) is in postcode %s", lat, lon, address.post_code or "<unknown>")
    return address
