"""Flask web application serving nearby fuel prices."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from flask import Flask, jsonify, request

from .config import ALLOWED_FUEL_TYPES, DEFAULT_FUEL_TYPE, DEFAULT_RADIUS, DEFAULT_SERVER_PORT
from .exceptions import FuelNearMeError

if TYPE_CHECKING:
    from .main import FuelNearMeApp

_LOGGER = logging.getLogger(__name__)

# Hornsby
DEFAULT_LAT = -33.68769534564702
DEFAULT_LON = 151.1055864

CORS_ALLOWED_HEADERS = "X-Requested-With, content-type, username, password, Referer"
CORS_ALLOWED_METHODS = "GET, HEAD, POST, PUT, OPTIONS"

app = Flask(__name__)

# Shared by all request threads
fuel_app: Optional[FuelNearMeApp] = None


def init_app(fuel_app_obj: FuelNearMeApp):
    """Initialize the Flask app with the price lookup application."""
    global fuel_app
    fuel_app = fuel_app_obj


def bad_request(message: str):
    return message, 400, {'Content-Type': 'text/plain; charset=utf-8'}


@app.after_request
def add_cors_headers(response):
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Headers'] = CORS_ALLOWED_HEADERS
    response.headers['Access-Control-Allow-Methods'] = CORS_ALLOWED_METHODS
    return response


@app.route('/fuelnearme.geojson', methods=['GET', 'POST'])
def fuel_nearby():
    """Nearby fuel prices as a GeoJSON FeatureCollection."""
    if not fuel_app:
        return bad_request('Application not initialized')

    fuel_type = request.args.get('fueltype', DEFAULT_FUEL_TYPE)
    if fuel_type not in ALLOWED_FUEL_TYPES:
        return bad_request(f'Invalid fuel type: {fuel_type}')

    params = {}
    for name, default in (('lat', DEFAULT_LAT), ('lon', DEFAULT_LON), ('radius', DEFAULT_RADIUS)):
        value = request.args.get(name)
        if value is None:
            params[name] = default
            continue
        try:
            params[name] = float(value)
        except ValueError:
            return bad_request(f'Invalid {name}: {value!r}')

    brands = [b.strip() for b in request.args.get('brand', '').split(',') if b.strip()]

    try:
        collection = fuel_app.fuel_nearby(
            params['lat'],
            params['lon'],
            radius=params['radius'],
            fuel_type=fuel_type,
            brands=brands,
        )
    except FuelNearMeError as exc:
        _LOGGER.error("Failed to fetch nearby prices: %s", exc)
        return bad_request(str(exc))

    return jsonify(collection.to_dict())


def run_web_app(fuel_app_obj: FuelNearMeApp, host='0.0.0.0', port=DEFAULT_SERVER_PORT, ssl_context=None):
    """Run the Flask web application."""
    init_app(fuel_app_obj)
    app.run(host=host, port=port, ssl_context=ssl_context, threaded=True)
