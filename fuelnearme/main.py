"""Command line entry point for FuelNearMe."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

import requests

from .config import (
    ALLOWED_FUEL_TYPES,
    DEFAULT_FUEL_TYPE,
    DEFAULT_RADIUS,
    DEFAULT_SERVER_PORT,
    Config,
    setup_logging,
)
from .auth import TokenManager
from .data import FuelPriceClient, PriceRequest
from .exceptions import FuelNearMeError
from .geocode import reverse_geocode
from .transform import FeatureCollection, transform

_LOGGER = logging.getLogger(__name__)

# Sydney CBD
DEFAULT_LAT = -33.856159
DEFAULT_LON = 151.215256


class FuelNearMeApp:
    """Looks up fuel prices around a coordinate."""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        """Initialize the application.

        Raises:
            ConfigError: if the FuelCheck credentials are missing
        """
        self.config = config
        self.session = session
        self.token_manager = TokenManager(
            config.fuel_api_key,
            config.fuel_api_secret,
            session=session,
            timeout=config.http_timeout,
        )
        self.client = FuelPriceClient(
            config.fuel_api_key,
            self.token_manager.get_or_renew_token,
            session=session,
            timeout=config.http_timeout,
        )

    def fuel_nearby(
        self,
        lat: float,
        lon: float,
        radius: float = DEFAULT_RADIUS,
        fuel_type: str = DEFAULT_FUEL_TYPE,
        brands: Optional[list[str]] = None,
    ) -> FeatureCollection:
        """Return priced stations near (lat, lon) as a FeatureCollection."""
        address = reverse_geocode(
            lat,
            lon,
            self.config.mappify_api_key,
            session=self.session,
            timeout=self.config.http_timeout,
        )

        request = PriceRequest(
            fuel_type=fuel_type,
            lat=lat,
            lon=lon,
            radius=radius,
            named_location=address.post_code,
            brands=list(brands or []),
        )
        raw = self.client.fetch_prices_nearby(request)
        return transform(raw)


def run_nearby(app: FuelNearMeApp, args) -> int:
    """Print nearby prices as GeoJSON."""
    try:
        collection = app.fuel_nearby(
            args.lat,
            args.lon,
            radius=args.radius,
            fuel_type=args.fuel_type,
            brands=args.brand,
        )
    except FuelNearMeError as exc:
        _LOGGER.error("ERR: %s", exc)
        return 1

    print(json.dumps(collection.to_dict()))
    return 0


def run_server(app: FuelNearMeApp, args) -> int:
    """Serve nearby prices over HTTP(S)."""
    if not args.dev_mode and (not args.tls_cert or not args.tls_cert_key):
        _LOGGER.error("must provide TLS key and certificate")
        return 1

    from .web import run_web_app
    ssl_context = None if args.dev_mode else (args.tls_cert, args.tls_cert_key)
    _LOGGER.info("Starting web server on 0.0.0.0:%d", args.port)
    run_web_app(app, host='0.0.0.0', port=args.port, ssl_context=ssl_context)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Nearby NSW fuel prices in GeoJSON format'
    )
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override log level from config'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    nearby = subparsers.add_parser(
        'nearby',
        help='Print nearby fuel prices in GeoJSON format'
    )
    nearby.add_argument('--lat', type=float, default=DEFAULT_LAT, help='latitude')
    nearby.add_argument('--lon', type=float, default=DEFAULT_LON, help='longitude')
    nearby.add_argument('--radius', type=float, default=DEFAULT_RADIUS, help='radius in km')
    nearby.add_argument(
        '--fuel-type',
        default=DEFAULT_FUEL_TYPE,
        choices=ALLOWED_FUEL_TYPES,
        help=f'fuel type (default: {DEFAULT_FUEL_TYPE})'
    )
    nearby.add_argument(
        '--brand',
        action='append',
        default=[],
        help='limit to a brand, may be repeated'
    )
    nearby.set_defaults(handler=run_nearby)

    server = subparsers.add_parser('server', help='Fuel prices web server')
    server.add_argument(
        '--dev-mode',
        action='store_true',
        help='development mode (plain http)'
    )
    server.add_argument('--tls-cert', default='', help='TLS certificate file')
    server.add_argument('--tls-cert-key', default='', help='TLS certificate key file')
    server.add_argument(
        '--port',
        type=int,
        default=DEFAULT_SERVER_PORT,
        help=f'service port to listen (default: {DEFAULT_SERVER_PORT})'
    )
    server.set_defaults(handler=run_server)

    return parser


def main(argv=None):
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    # Load configuration
    config = Config()

    if not config.load_from_file(args.config):
        print(f"Error: Failed to load configuration from {args.config}", file=sys.stderr)
        sys.exit(1)

    # Load environment variables (these override file config)
    config.load_from_env()

    # Override log level if specified
    if args.log_level:
        config.log_level = args.log_level

    # Setup logging
    setup_logging(config.log_level)

    # Validate configuration
    if not config.validate():
        _LOGGER.error("Invalid configuration, exiting")
        sys.exit(1)

    try:
        app = FuelNearMeApp(config)
    except FuelNearMeError as exc:
        _LOGGER.error("ERR: %s", exc)
        sys.exit(1)

    sys.exit(args.handler(app, args))


if __name__ == '__main__':
    main()
