import itertools
import os
import unittest
from datetime import timedelta
from unittest import mock

import firebase_admin
import requests
from google.auth.transport.requests import AuthorizedSession

from fakes import FakeDatabaseServer
from tasks_web.core.token import EMULATOR_TOKEN_VALUE, emulator_token
from tasks_web.services import firebase_service
from tasks_web.services.database_client import DatabaseClient
from tasks_web.services.firebase_service import (
    EMULATOR_URL,
    EmulatorCredential,
    FirebaseClientFactory,
    backoff_retry,
    session_with_backoff,
)

_names = itertools.count()


class FirebaseClientFactoryTests(unittest.TestCase):
    def setUp(self):
        self.app_name = f"tasks-web-test-{next(_names)}"
        self.factory = FirebaseClientFactory(app_name=self.app_name)

    def tearDown(self):
        try:
            firebase_admin.delete_app(firebase_admin.get_app(self.app_name))
        except ValueError:
            pass

    def test_returns_same_client_every_time(self):
        first = self.factory.client()
        self.assertIsInstance(first, DatabaseClient)
        self.assertIs(self.factory.client(), first)
        self.assertIs(self.factory.client(), first)

    def test_client_targets_emulator_url(self):
        self.assertEqual(EMULATOR_URL, "http://127.0.0.1:5000/")
        self.assertEqual(self.factory.client().base_url, EMULATOR_URL)

    def test_url_ignores_environment(self):
        with mock.patch.dict(os.environ, {"FIREBASE_DATABASE_EMULATOR_HOST": "localhost:9000"}):
            self.assertEqual(self.factory.client().base_url, EMULATOR_URL)

    def test_initializes_named_firebase_app(self):
        self.factory.client()
        app = firebase_admin.get_app(self.app_name)
        self.assertEqual(app.options.get("databaseURL"), EMULATOR_URL)
        self.assertIsInstance(app.credential, EmulatorCredential)

    def test_session_carries_fake_token(self):
        session = self.factory.client().session
        self.assertIsInstance(session, AuthorizedSession)
        self.assertEqual(session.credentials.token, EMULATOR_TOKEN_VALUE)
        self.assertTrue(session.credentials.valid)


class EmulatorCredentialTests(unittest.TestCase):
    def test_exposes_token_and_expiry(self):
        token = emulator_token()
        credential = EmulatorCredential(token)
        info = credential.get_access_token()
        self.assertEqual(info.access_token, EMULATOR_TOKEN_VALUE)
        self.assertEqual(info.expiry, token.expiration.replace(tzinfo=None))
        self.assertEqual(info.expiry - token.issued_at.replace(tzinfo=None), timedelta(days=1))


class BackoffTests(unittest.TestCase):
    def test_retry_policy(self):
        retry = backoff_retry()
        self.assertEqual(retry.total, firebase_service.BACKOFF_MAX_RETRIES)
        self.assertIsNone(retry.allowed_methods)
        self.assertFalse(retry.status_forcelist)
        self.assertEqual(retry.backoff_factor, firebase_service.BACKOFF_FACTOR)
        self.assertEqual(retry.backoff_max, firebase_service.BACKOFF_MAX_SECONDS)

    def test_session_mounts_retrying_adapters(self):
        session = session_with_backoff(EmulatorCredential(emulator_token()).get_credential())
        for url in ("http://127.0.0.1:5000/", "https://example.firebaseio.com/"):
            retries = session.get_adapter(url).max_retries
            self.assertEqual(retries.total, firebase_service.BACKOFF_MAX_RETRIES)

    def test_dropped_connection_is_retried(self):
        with FakeDatabaseServer() as server:
            server.tree.set("tasks/one", {"title": "Survives a dropped connection"})
            server.drop_connections = 1
            session = session_with_backoff(EmulatorCredential(emulator_token()).get_credential())
            client = DatabaseClient(server.url, session, timeout=5)

            self.assertEqual(client.get("tasks/one"), {"title": "Survives a dropped connection"})
            self.assertEqual([r[:2] for r in server.requests], [("GET", "/tasks/one.json")] * 2)

    def test_dropped_post_is_retried(self):
        with FakeDatabaseServer() as server:
            server.drop_connections = 1
            session = session_with_backoff(EmulatorCredential(emulator_token()).get_credential())
            client = DatabaseClient(server.url, session, timeout=5)

            key = client.create("tasks", {"title": "Posted twice"})
            self.assertEqual(server.tree.get(f"tasks/{key}"), {"title": "Posted twice"})
            self.assertEqual([r[0] for r in server.requests], ["POST", "POST"])

    def test_exhausted_retries_surface_connection_error(self):
        with mock.patch.multiple(
            firebase_service, BACKOFF_MAX_RETRIES=2, BACKOFF_FACTOR=0, BACKOFF_JITTER=0
        ):
            session = session_with_backoff(EmulatorCredential(emulator_token()).get_credential())
        client = DatabaseClient("http://127.0.0.1:9/", session, timeout=1)
        with self.assertRaises(requests.ConnectionError):
            client.get("tasks")


if __name__ == "__main__":
    unittest.main()
