"""Google OAuth2 token sources scoped to the cluster-management API."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from datetime import timezone
from pathlib import Path
from typing import Any

import google.auth
from google.auth import credentials as ga_credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import Request
from google.auth.transport.requests import Request as RequestsRequest

from addonfleet.core.exceptions import (
    CredentialError,
    CredentialFileError,
    CredentialParseError,
    CredentialSourceError,
)
from addonfleet.interfaces.cloud_types import BearerToken
from addonfleet.interfaces.token_source import TokenSource
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class GoogleTokenSource(TokenSource):
    """TokenSource backed by google-auth credentials.

    The current token is cached on the credentials object and refreshed
    only when google-auth reports it invalid (missing, expired, or inside
    the refresh skew window).
    """

    def __init__(
        self,
        credentials: ga_credentials.Credentials,
        request_factory: Callable[[], Request] = RequestsRequest,
    ):
        self._credentials = credentials
        self._request_factory = request_factory
        self._lock = threading.Lock()

    @property
    def credentials(self) -> ga_credentials.Credentials:
        return self._credentials

    def token(self) -> BearerToken:
        with self._lock:
            if not self._credentials.valid:
                logger.debug("refreshing_access_token")
                try:
                    self._credentials.refresh(self._request_factory())
                except GoogleAuthError as e:
                    raise CredentialError(f"Failed to refresh access token: {e}") from e
            return BearerToken(value=self._credentials.token, expiry=self._credentials.expiry)


class TokenSourceCredentials(ga_credentials.Credentials):
    """google-auth credentials that draw tokens from any TokenSource.

    Lets Google API clients be authorized by a TokenSource test double as
    well as by GoogleTokenSource.
    """

    def __init__(self, token_source: TokenSource):
        super().__init__()
        self._token_source = token_source

    def refresh(self, request: Any) -> None:
        bearer = self._token_source.token()
        self.token = bearer.value
        # google-auth compares expiry against naive UTC
        expiry = bearer.expiry
        if expiry is not None and expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
        self.expiry = expiry


def read_key_file(path: str) -> bytes:
    """Read a service account key file.

    Raises:
        CredentialFileError: If the file cannot be read
    """
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as e:
        raise CredentialFileError(f"Failed to read the SA key json file {path!r}: {e}") from e


def token_source_from_json(data: bytes) -> GoogleTokenSource:
    """Create a token source from credential JSON (service account or authorized user).

    Raises:
        CredentialParseError: If ``data`` is not a valid credential bundle
    """
    try:
        info = json.loads(data)
        if not isinstance(info, dict):
            raise ValueError("credential JSON must be an object")
        credentials, _ = google.auth.load_credentials_from_dict(info, scopes=[CLOUD_PLATFORM_SCOPE])
    except (GoogleAuthError, ValueError, KeyError) as e:
        raise CredentialParseError(f"Failed to extract credentials from json: {e}") from e
    return GoogleTokenSource(credentials)


def default_token_source() -> GoogleTokenSource:
    """Create a token source from the application default credential.

    Raises:
        CredentialSourceError: If the environment provides no credential
    """
    try:
        credentials, project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    except GoogleAuthError as e:
        raise CredentialSourceError(
            f"Failed to create the google default token source: {e}"
        ) from e
    logger.debug("default_credentials_loaded", project=project)
    return GoogleTokenSource(credentials)
