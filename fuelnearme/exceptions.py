"""Exceptions raised by FuelNearMe."""


class FuelNearMeError(Exception):
    """Base class for all FuelNearMe errors."""


class NetworkError(FuelNearMeError):
    """An upstream HTTP call failed or returned an error status."""


class ParseError(FuelNearMeError):
    """An upstream response could not be decoded."""


class ConfigError(FuelNearMeError):
    """A required configuration value is missing."""
