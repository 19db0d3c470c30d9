"""Data models and data fetching for NSW FuelCheck prices."""

from __future__ import annotations

import itertools
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import requests

from .config import DEFAULT_FUEL_TYPE, DEFAULT_HTTP_TIMEOUT, DEFAULT_RADIUS
from .exceptions import NetworkError, ParseError

_LOGGER = logging.getLogger(__name__)

PRICES_NEARBY_URL = "https://api.onegov.nsw.gov.au/FuelPriceCheck/v2/fuel/prices/nearby"

REQUEST_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"


def _field(record: dict, key: str, kind: type, default: Any) -> Any:
    """Read ``key`` from a decoded JSON object, checking its type.

    Missing keys and nulls give ``default``.
    """
    value = record.get(key)
    if value is None:
        return default
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool):
        raise ParseError(f"{key}: expected {kind.__name__}, got bool")
    if kind is float and isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, kind):
        return value
    raise ParseError(f"{key}: expected {kind.__name__}, got {type(value).__name__}")


def _object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ParseError(f"{what}: expected object, got {type(value).__name__}")
    return value


def _list(record: dict, key: str) -> list:
    value = record.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseError(f"{key}: expected list, got {type(value).__name__}")
    return value


@dataclass
class Location:
    """Station position as reported by the API."""

    lat: float = 0.0
    lon: float = 0.0
    distance: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> Location:
        data = _object(data, "location")
        return cls(
            lat=_field(data, "latitude", float, 0.0),
            lon=_field(data, "longitude", float, 0.0),
            distance=_field(data, "distance", float, 0.0),
        )


@dataclass
class Station:
    """A fuel station."""

    code: int
    name: str = ""
    address: str = ""
    location: Location = field(default_factory=Location)

    @classmethod
    def from_dict(cls, data: Any) -> Station:
        data = _object(data, "station")
        location = data.get("location")
        return cls(
            code=_field(data, "code", int, 0),
            name=_field(data, "name", str, ""),
            address=_field(data, "address", str, ""),
            location=Location() if location is None else Location.from_dict(location),
        )


@dataclass
class PriceQuote:
    """A single fuel price at a station."""

    station_code: int
    price: float = 0.0
    unit: str = ""
    fuel_type: str = ""
    last_updated: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> PriceQuote:
        data = _object(data, "price")
        return cls(
            station_code=_field(data, "stationcode", int, 0),
            price=_field(data, "price", float, 0.0),
            unit=_field(data, "priceunit", str, ""),
            fuel_type=_field(data, "fueltype", str, ""),
            last_updated=_field(data, "lastupdated", str, ""),
        )


@dataclass
class StationPriceResponse:
    """Decoded body of the prices nearby endpoint."""

    stations: list[Station]
    prices: list[PriceQuote]

    @classmethod
    def from_json(cls, raw: bytes | str) -> StationPriceResponse:
        """
        Decode a raw response body.

        Raises:
            ParseError: on malformed JSON or a field of the wrong type
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise ParseError(f"invalid price response: {exc}") from exc

        # a bare null body decodes to no stations and no prices
        if data is None:
            data = {}
        data = _object(data, "price response")
        return cls(
            stations=[Station.from_dict(s) for s in _list(data, "stations")],
            prices=[PriceQuote.from_dict(p) for p in _list(data, "prices")],
        )


def _format_number(value: float) -> str:
    """Render a float the way the API expects numbers sent as strings."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


@dataclass
class PriceRequest:
    """Body of a prices nearby request."""

    fuel_type: str = DEFAULT_FUEL_TYPE
    lat: float = 0.0
    lon: float = 0.0
    radius: float = DEFAULT_RADIUS
    named_location: str = ""
    brands: list[str] = field(default_factory=list)
    sort_by: str = "Price"
    sort_ascending: str = "true"

    def to_dict(self) -> dict:
        return {
            "fueltype": self.fuel_type,
            "brand": list(self.brands),
            "namedlocation": self.named_location,
            "latitude": _format_number(self.lat),
            "longitude": _format_number(self.lon),
            "sortby": self.sort_by,
            "sortascending": self.sort_ascending,
            "radius": _format_number(self.radius),
        }


class TransactionIds:
    """Thread-safe generator of ``transactionid`` header values."""

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"tr_{value:5d}"


class FuelPriceClient:
    """Fetches nearby fuel prices from the NSW FuelCheck API."""

    def __init__(
        self,
        api_key: str,
        token_provider: Callable[[], str],
        url: str = PRICES_NEARBY_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transaction_ids: Optional[TransactionIds] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the client.

        Args:
            api_key: FuelCheck API key, sent in the ``apikey`` header
            token_provider: callable returning a bearer token, usually
                ``TokenManager.get_or_renew_token``
        """
        self.api_key = api_key
        self.token_provider = token_provider
        self.url = url
        # requests.get/post open a new session per call, safe across threads
        self.session = session or requests
        self.timeout = timeout
        self.transaction_ids = transaction_ids or TransactionIds()
        self.now = now

    def build_headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            "apikey": self.api_key,
            "transactionid": self.transaction_ids.next(),
            "requesttimestamp": self.now().strftime(REQUEST_TIMESTAMP_FORMAT),
        }

    def fetch_prices_nearby(self, request: PriceRequest) -> bytes:
        """
        Send a prices nearby request and return the raw response body.

        Raises:
            NetworkError: on connection failure or a non-2xx status
            ParseError: if the token response is malformed
        """
        token = self.token_provider()
        headers = self.build_headers(token)

        _LOGGER.info(
            "Fetching %s prices within %s km of (%s, %s)",
            request.fuel_type,
            request.radius,
            request.lat,
            request.lon,
        )
        try:
            response = self.session.post(
                self.url,
                data=json.dumps(request.to_dict()),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            _LOGGER.error("Prices nearby request failed: %s", exc)
            raise NetworkError(f"prices nearby request failed: {exc}") from exc

        _LOGGER.debug("Prices nearby response: %d bytes", len(response.content))
        return response.content
