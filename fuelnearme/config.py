"""Configuration management for FuelNearMe."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

_LOGGER = logging.getLogger(__name__)

# --- Constants ---

# Allowed fuel types
ALLOWED_FUEL_TYPES = [
    "E10",
    "U91",
    "E85",
    "P95",
    "P98",
    "DL",
    "PDL",
    "B20",
    "LPG",
    "CNG",
    "EV",
]

# Default configuration values
DEFAULT_FUEL_TYPE = "E10"
DEFAULT_RADIUS = 5.0  # km
DEFAULT_HTTP_TIMEOUT = 30  # seconds
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVER_PORT = 8010

# --- Logging ---

def setup_logging(log_level: str):
    """Configure logging for the application.

    Log records go to stderr so that command output on stdout stays valid JSON.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


# --- Configuration Loader ---

class Config:
    """Configuration for FuelNearMe."""

    def __init__(self):
        """Initialize configuration with default values."""
        self.fuel_api_key: str = ""
        self.fuel_api_secret: str = ""
        self.mappify_api_key: str = ""

        self.http_timeout: float = DEFAULT_HTTP_TIMEOUT
        self.log_level: str = DEFAULT_LOG_LEVEL

    def load_from_file(self, config_path: str) -> bool:
        """
        Load configuration from a YAML file.

        A missing file is not an error, the environment may supply
        everything.

        Args:
            config_path: Path to the configuration YAML file

        Returns:
            True if successful, False otherwise
        """
        config_file = Path(config_path)
        if not config_file.exists():
            _LOGGER.info("Configuration file not found: %s, using environment only", config_path)
            return True

        try:
            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            _LOGGER.error("Failed to load configuration from file: %s", exc)
            return False

        if not isinstance(config_data, dict):
            _LOGGER.error("Configuration file %s must contain a mapping", config_path)
            return False

        for section in ('nsw_fuel_api', 'mappify'):
            if not isinstance(config_data.get(section) or {}, dict):
                _LOGGER.error("Configuration section '%s' must be a mapping", section)
                return False

        # Load NSW FuelCheck API credentials
        if 'nsw_fuel_api' in config_data:
            fuel_api_config = config_data['nsw_fuel_api'] or {}
            self.fuel_api_key = fuel_api_config.get('api_key', self.fuel_api_key)
            self.fuel_api_secret = fuel_api_config.get('api_secret', self.fuel_api_secret)

        # Load Mappify geocoding credentials
        if 'mappify' in config_data:
            mappify_config = config_data['mappify'] or {}
            self.mappify_api_key = mappify_config.get('api_key', self.mappify_api_key)

        # Load other settings
        try:
            self.http_timeout = float(config_data.get('http_timeout', self.http_timeout))
        except (TypeError, ValueError):
            _LOGGER.error("Invalid http_timeout: %r", config_data.get('http_timeout'))
            return False
        self.log_level = config_data.get('log_level', self.log_level)

        _LOGGER.info("Configuration loaded from %s", config_path)
        return True

    def load_from_env(self):
        """Load configuration from environment variables."""
        load_dotenv()

        # Override with environment variables if present
        if os.getenv('NSW_FUEL_API_KEY'):
            self.fuel_api_key = os.getenv('NSW_FUEL_API_KEY')
        if os.getenv('NSW_FUEL_API_SECRET'):
            self.fuel_api_secret = os.getenv('NSW_FUEL_API_SECRET')
        if os.getenv('MAPPIFY_API_KEY'):
            self.mappify_api_key = os.getenv('MAPPIFY_API_KEY')

        if os.getenv('HTTP_TIMEOUT'):
            try:
                self.http_timeout = float(os.getenv('HTTP_TIMEOUT'))
            except ValueError:
                _LOGGER.warning("Invalid HTTP_TIMEOUT, using: %s", self.http_timeout)
        if os.getenv('LOG_LEVEL'):
            self.log_level = os.getenv('LOG_LEVEL')

        _LOGGER.debug("Environment variables loaded")

    def validate(self) -> bool:
        """
        Validate the configuration.

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        if not self.fuel_api_key:
            errors.append("NSW FuelCheck API key is required")
        if not self.fuel_api_secret:
            errors.append("NSW FuelCheck API secret is required")
        if not self.mappify_api_key:
            errors.append("Mappify API key is required")

        try:
            if float(self.http_timeout) <= 0:
                errors.append("HTTP timeout must be positive")
        except (TypeError, ValueError):
            errors.append(f"Invalid HTTP timeout: {self.http_timeout!r}")

        if errors:
            for error in errors:
                _LOGGER.error("Configuration error: %s", error)
            return False

        _LOGGER.info("Configuration validated successfully")
        return True

