"""Bearer token handling for the NSW FuelCheck API."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .exceptions import ConfigError, NetworkError, ParseError

_LOGGER = logging.getLogger(__name__)

TOKEN_URL = (
    "https://api.onegov.nsw.gov.au/oauth/client_credential/accesstoken"
    "?grant_type=client_credentials"
)


@dataclass(frozen=True)
class Credential:
    """An access token together with its validity window."""

    token: str
    issued_at: float  # seconds since epoch
    expires_in: int  # seconds

    @property
    def expiry(self) -> float:
        return self.issued_at + self.expires_in

    def valid(self, now: float) -> bool:
        """Return True while ``now`` is before the expiry time."""
        return now < self.expiry

    @classmethod
    def from_response(cls, data: Any) -> Credential:
        """
        Build a credential from the token endpoint's JSON body.

        ``issued_at`` is milliseconds since epoch and ``expires_in`` is
        seconds, both sent as numeric strings.

        Raises:
            ParseError: if a field is missing or not numeric
        """
        if not isinstance(data, dict):
            raise ParseError(f"token response is not an object: {data!r}")

        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise ParseError("token response has no access_token")

        try:
            issued_at_ms = int(data["issued_at"])
            expires_in = int(data["expires_in"])
        except KeyError as exc:
            raise ParseError(f"token response has no {exc.args[0]}") from exc
        except (TypeError, ValueError) as exc:
            raise ParseError(f"invalid numeric field in token response: {exc}") from exc

        return cls(token=token, issued_at=issued_at_ms / 1000.0, expires_in=expires_in)


class CredentialFetcher:
    """Performs the client-credentials exchange against the token endpoint."""

    def __init__(
        self,
        token_url: str,
        api_key: str,
        api_secret: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self.token_url = token_url
        self.api_key = api_key
        self.api_secret = api_secret
        # requests.get/post open a new session per call, safe across threads
        self.session = session or requests
        self.timeout = timeout

    def __call__(self) -> Credential:
        """Fetch a fresh credential.

        Raises:
            NetworkError: on connection failure or a non-2xx status
            ParseError: on a malformed body
        """
        _LOGGER.info("Requesting access token from %s", self.token_url)
        try:
            response = self.session.get(
                self.token_url,
                auth=(self.api_key, self.api_secret),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            _LOGGER.error("Access token request failed: %s", exc)
            raise NetworkError(f"access token request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError(f"invalid token response: {exc}") from exc

        credential = Credential.from_response(data)
        _LOGGER.info("Access token obtained, expires in %d seconds", credential.expires_in)
        return credential


class ReusableTokenSource:
    """
    Returns a cached credential's token until it expires.

    ``fetch`` is any callable producing a Credential. Renewal is serialized
    by a lock so concurrent callers trigger at most one fetch, and a failed
    fetch leaves the cache untouched.
    """

    def __init__(
        self,
        fetch: Callable[[], Credential],
        clock: Callable[[], float] = time.time,
    ):
        self._fetch = fetch
        self._clock = clock
        self._lock = threading.Lock()
        self._credential: Optional[Credential] = None

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def token(self) -> str:
        credential = self._credential
        if credential is not None and credential.valid(self._clock()):
            return credential.token

        with self._lock:
            # another thread may have renewed while we waited
            credential = self._credential
            if credential is not None and credential.valid(self._clock()):
                return credential.token

            if credential is not None:
                _LOGGER.debug("Cached access token expired, renewing")
            credential = self._fetch()
            self._credential = credential
            return credential.token


class TokenManager:
    """Hands out a valid bearer token for the NSW FuelCheck API."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        token_url: str = TOKEN_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        if not api_key or not api_secret:
            raise ConfigError("NSW FuelCheck API key and secret are required")

        fetcher = CredentialFetcher(
            token_url, api_key, api_secret, session=session, timeout=timeout
        )
        self.source = ReusableTokenSource(fetcher, clock=clock)

    def get_or_renew_token(self) -> str:
        """Return the cached token, fetching a new one if needed."""
        return self.source.token()
