"""Conversion of FuelCheck station prices to GeoJSON."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .data import StationPriceResponse

_LOGGER = logging.getLogger(__name__)


@dataclass
class MergedRecord:
    """Station details joined with its price."""

    lat: float
    lon: float
    name: str
    address: str
    price: float = 0.0
    unit: str = ""
    fuel_type: str = ""
    last_updated: str = ""


@dataclass
class Point:
    lon: float
    lat: float

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.lon, self.lat]}


@dataclass
class Feature:
    geometry: Point
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": self.geometry.to_dict(),
        }


@dataclass
class FeatureCollection:
    features: list[Feature] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [f.to_dict() for f in self.features],
        }


def merge_station_prices(response: StationPriceResponse) -> dict[int, MergedRecord]:
    """
    Join prices onto stations by station code.

    Stations without a price keep zero-valued price fields. Prices for an
    unknown station are dropped, and a later price for the same station
    replaces an earlier one.
    """
    merged = {
        st.code: MergedRecord(
            lat=st.location.lat,
            lon=st.location.lon,
            name=st.name,
            address=st.address,
        )
        for st in response.stations
    }

    for quote in response.prices:
        record = merged.get(quote.station_code)
        if record is None:
            _LOGGER.debug("Dropping price for unknown station %d", quote.station_code)
            continue
        record.price = quote.price
        record.unit = quote.unit
        record.fuel_type = quote.fuel_type
        record.last_updated = quote.last_updated

    return merged


def to_feature(record: MergedRecord) -> Feature:
    # priceunit and lastupdated are deliberately not part of the output
    return Feature(
        geometry=Point(lon=record.lon, lat=record.lat),
        properties={
            "address": record.address,
            "price": record.price,
            "fueltype": record.fuel_type,
        },
    )


def transform(raw: bytes | str) -> FeatureCollection:
    """
    Turn a raw prices nearby response into a FeatureCollection.

    Raises:
        ParseError: on malformed JSON or a field of the wrong type
    """
    response = StationPriceResponse.from_json(raw)
    merged = merge_station_prices(response)

    _LOGGER.info(
        "Merged %d prices onto %d stations",
        len(response.prices),
        len(merged),
    )
    return FeatureCollection(features=[to_feature(r) for r in merged.values()])
