"""Test helpers."""

import json
from unittest.mock import Mock

import requests


def make_response(payload=None, status=200, body=None):
    """Build a stand-in for requests.Response."""
    response = Mock()
    response.status_code = status
    if body is None:
        body = json.dumps(payload).encode()
    response.content = body
    if payload is None:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Client Error")
    return response
