"""Shared fixtures for the FuelNearMe tests."""

from pathlib import Path

import pytest

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def price_nearby_body():
    return (TESTDATA / "price_nearby.json").read_bytes()


@pytest.fixture
def token_payload():
    return {
        "access_token": "abc123",
        "issued_at": "1666000000000",
        "expires_in": "43199",
    }
