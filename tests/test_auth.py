"""Tests for access token fetching and reuse."""

import threading
import time
from unittest.mock import Mock

import pytest
import requests

from fuelnearme.auth import (
    TOKEN_URL,
    Credential,
    CredentialFetcher,
    ReusableTokenSource,
    TokenManager,
)
from fuelnearme.exceptions import ConfigError, NetworkError, ParseError
from tests.helpers import make_response

ISSUED_AT = 1666000000.0
EXPIRY = ISSUED_AT + 43199


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def credential(token="abc123", issued_at=ISSUED_AT, expires_in=43199):
    return Credential(token=token, issued_at=issued_at, expires_in=expires_in)


class TestCredential:

    def test_from_response(self, token_payload):
        cred = Credential.from_response(token_payload)
        assert cred.token == "abc123"
        assert cred.issued_at == ISSUED_AT
        assert cred.expires_in == 43199
        assert cred.expiry == EXPIRY

    def test_valid_until_expiry(self):
        cred = credential()
        assert cred.valid(ISSUED_AT)
        assert cred.valid(EXPIRY - 1)
        assert not cred.valid(EXPIRY)
        assert not cred.valid(EXPIRY + 1)

    def test_accepts_json_numbers(self):
        cred = Credential.from_response(
            {"access_token": "t", "issued_at": 1000, "expires_in": 60}
        )
        assert cred.expiry == 61.0

    @pytest.mark.parametrize("field, value", [
        ("issued_at", "yesterday"),
        ("issued_at", "1.5e12"),
        ("expires_in", ""),
        ("expires_in", None),
    ])
    def test_non_numeric_field(self, token_payload, field, value):
        token_payload[field] = value
        with pytest.raises(ParseError):
            Credential.from_response(token_payload)

    @pytest.mark.parametrize("field", ["access_token", "issued_at", "expires_in"])
    def test_missing_field(self, token_payload, field):
        del token_payload[field]
        with pytest.raises(ParseError, match=field):
            Credential.from_response(token_payload)

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            Credential.from_response(["abc123"])


class TestReusableTokenSource:

    def test_reuses_valid_credential(self):
        fetch = Mock(return_value=credential())
        source = ReusableTokenSource(fetch, clock=FakeClock(ISSUED_AT + 10))

        assert source.token() == "abc123"
        assert source.token() == "abc123"
        assert fetch.call_count == 1

    def test_renews_expired_credential_once(self):
        fetch = Mock(side_effect=[
            credential("first"),
            credential("second", issued_at=EXPIRY),
        ])
        clock = FakeClock(ISSUED_AT)
        source = ReusableTokenSource(fetch, clock=clock)
        assert source.token() == "first"

        clock.now = EXPIRY
        assert source.token() == "second"
        assert source.token() == "second"
        assert fetch.call_count == 2

    def test_failed_fetch_is_not_cached(self):
        fetch = Mock(side_effect=[ParseError("bad issued_at"), credential()])
        source = ReusableTokenSource(fetch, clock=FakeClock(ISSUED_AT))

        with pytest.raises(ParseError):
            source.token()
        assert source.credential is None

        assert source.token() == "abc123"
        assert fetch.call_count == 2

    def test_failed_renewal_keeps_previous_credential(self):
        old = credential("old")
        fetch = Mock(side_effect=[old, NetworkError("down")])
        clock = FakeClock(ISSUED_AT)
        source = ReusableTokenSource(fetch, clock=clock)
        source.token()

        clock.now = EXPIRY + 5
        with pytest.raises(NetworkError):
            source.token()
        assert source.credential is old

    def test_concurrent_callers_fetch_once(self):
        calls = []

        def slow_fetch():
            calls.append(1)
            time.sleep(0.05)
            return credential()

        source = ReusableTokenSource(slow_fetch, clock=FakeClock(ISSUED_AT))
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(source.token())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == ["abc123"] * 8
        assert len(calls) == 1


class TestCredentialFetcher:

    def test_basic_auth_request(self, token_payload):
        session = Mock()
        session.get.return_value = make_response(token_payload)
        fetcher = CredentialFetcher(TOKEN_URL, "key", "secret", session=session, timeout=5)

        cred = fetcher()

        assert cred.token == "abc123"
        session.get.assert_called_once_with(
            TOKEN_URL,
            auth=("key", "secret"),
            headers={"Content-Type": "application/json"},
            timeout=5,
        )

    def test_connection_error(self):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("connection refused")
        fetcher = CredentialFetcher(TOKEN_URL, "key", "secret", session=session)

        with pytest.raises(NetworkError, match="connection refused"):
            fetcher()

    def test_error_status(self):
        session = Mock()
        session.get.return_value = make_response({"ErrorCode": "invalid_client"}, status=401)
        fetcher = CredentialFetcher(TOKEN_URL, "key", "secret", session=session)

        with pytest.raises(NetworkError, match="401"):
            fetcher()

    def test_invalid_json(self):
        session = Mock()
        session.get.return_value = make_response(body=b"<html>oops</html>")
        fetcher = CredentialFetcher(TOKEN_URL, "key", "secret", session=session)

        with pytest.raises(ParseError):
            fetcher()


class TestTokenManager:

    def test_requires_credentials(self):
        with pytest.raises(ConfigError):
            TokenManager("", "secret")
        with pytest.raises(ConfigError):
            TokenManager("key", "")

    def test_get_or_renew_token(self, token_payload):
        session = Mock()
        session.get.return_value = make_response(token_payload)
        clock = FakeClock(ISSUED_AT + 60)
        manager = TokenManager("key", "secret", session=session, clock=clock)

        assert manager.get_or_renew_token() == "abc123"
        assert manager.get_or_renew_token() == "abc123"
        assert session.get.call_count == 1

        clock.now = EXPIRY
        assert manager.get_or_renew_token() == "abc123"
        assert session.get.call_count == 2

    def test_malformed_response_caches_nothing(self, token_payload):
        token_payload["issued_at"] = "not-a-number"
        session = Mock()
        session.get.return_value = make_response(token_payload)
        manager = TokenManager("key", "secret", session=session, clock=FakeClock(ISSUED_AT))

        with pytest.raises(ParseError):
            manager.get_or_renew_token()
        assert manager.source.credential is None
