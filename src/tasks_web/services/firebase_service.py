"""Factory of Firebase Realtime Database clients.

Connects to the database emulator started at port 5000.

Supplies fake credentials to Firebase RDB, as the ``firebase-server``
emulator does not support authentication anyway. In production, a real
Firebase RDB instance and a real service account should be configured.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import firebase_admin
from firebase_admin import credentials
from google.auth.transport.requests import AuthorizedSession
from google.oauth2.credentials import Credentials as OAuth2Credentials
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tasks_web.core.token import AccessToken, emulator_token
from tasks_web.services.database_client import DEFAULT_TIMEOUT_SECONDS, DatabaseClient


logger = logging.getLogger(__name__)

EMULATOR_URL = "http://127.0.0.1:5000/"
DEFAULT_APP_NAME = "tasks-web-emulator"

# Exponential back-off applied on I/O failures: 0.5s doubling per attempt,
# up to 0.5s of random jitter, no single wait above 60s.
BACKOFF_MAX_RETRIES = 10
BACKOFF_FACTOR = 0.5
BACKOFF_JITTER = 0.5
BACKOFF_MAX_SECONDS = 60.0


class EmulatorCredential(credentials.Base):
    """Firebase Admin credential backed by a fabricated access token."""

    def __init__(self, token: AccessToken) -> None:
        self.token = token
        # google-auth compares expiry against naive UTC timestamps.
        self._g_credential = OAuth2Credentials(
            token=token.value,
            expiry=token.expiration.replace(tzinfo=None),
        )

    def get_credential(self) -> OAuth2Credentials:
        return self._g_credential

    def get_access_token(self) -> credentials.AccessTokenInfo:
        return credentials.AccessTokenInfo(self.token.value, self._g_credential.expiry)


def backoff_retry() -> Retry:
    """Retry policy for connection and read failures, regardless of HTTP method.

    Error statuses returned by the server are not retried.
    """
    return Retry(
        total=BACKOFF_MAX_RETRIES,
        status=0,
        status_forcelist=(),
        allowed_methods=None,
        backoff_factor=BACKOFF_FACTOR,
        backoff_jitter=BACKOFF_JITTER,
        backoff_max=BACKOFF_MAX_SECONDS,
        respect_retry_after_header=False,
        raise_on_status=False,
    )


def session_with_backoff(credentials: OAuth2Credentials) -> AuthorizedSession:
    # The emulator never answers 401, and the fake token cannot be refreshed.
    session = AuthorizedSession(credentials, refresh_status_codes=())
    adapter = HTTPAdapter(max_retries=backoff_retry())
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def emulator_app(credential: credentials.Base, name: str = DEFAULT_APP_NAME) -> firebase_admin.App:
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        return firebase_admin.initialize_app(credential, {"databaseURL": EMULATOR_URL}, name=name)


class FirebaseClientFactory:
    """Builds the emulator database client once and hands out that instance."""

    def __init__(
        self,
        app_name: str = DEFAULT_APP_NAME,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.app_name = app_name
        self.timeout = timeout
        self._client: Optional[DatabaseClient] = None
        self._lock = threading.Lock()

    def client(self) -> DatabaseClient:
        with self._lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def _create_client(self) -> DatabaseClient:
        app = emulator_app(EmulatorCredential(emulator_token()), self.app_name)
        session = session_with_backoff(app.credential.get_credential())
        database_url = app.options.get("databaseURL")
        logger.info("Connecting to the database emulator at %s", database_url)
        return DatabaseClient(database_url, session, timeout=self.timeout)
