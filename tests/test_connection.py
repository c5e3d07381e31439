"""
Test the connection descriptor and the connection bootstrap
"""

from unittest import TestCase
from unittest.mock import MagicMock, Mock

import psycopg2
import pytest

from db_config.descriptor import ConnectionDescriptor, TLSMode, TLSSettings
from db_config.errors import ConnectivityError
from mcp_servers.postgres_db_adapter.connection import connect_with_retry


def make_descriptor(tls=None, password="secret"):
    return ConnectionDescriptor(
        host="db.example.com",
        port=5432,
        user="reader",
        password=password,
        database="analytics",
        tls=tls or TLSSettings(),
        source="env",
    )


@pytest.mark.unit
class TestConnectionDescriptor(TestCase):

    def test_descriptor_is_immutable(self):
        descriptor = make_descriptor()

        with self.assertRaises(AttributeError):
            descriptor.host = "elsewhere"

    def test_rejects_empty_host_and_bad_port(self):
        with self.assertRaises(ValueError):
            ConnectionDescriptor(host="", port=5432, user="u", password="", database="d")
        with self.assertRaises(ValueError):
            ConnectionDescriptor(host="h", port=0, user="u", password="", database="d")

    def test_unset_tls_adds_no_sslmode(self):
        kwargs = make_descriptor().to_connect_kwargs()

        self.assertEqual(kwargs, {
            "host": "db.example.com",
            "port": 5432,
            "user": "reader",
            "password": "secret",
            "dbname": "analytics",
        })

    def test_libpq_sslmode_mapping(self):
        cases = {
            TLSMode.DISABLED: "disable",
            TLSMode.OPPORTUNISTIC: "require",
            TLSMode.INSECURE_NO_VERIFY: "require",
        }
        for mode, sslmode in cases.items():
            kwargs = make_descriptor(TLSSettings(mode)).to_connect_kwargs()
            self.assertEqual(kwargs["sslmode"], sslmode)
            self.assertNotIn("sslrootcert", kwargs)

    def test_verify_full_with_bundle_uses_bundle_path(self):
        tls = TLSSettings(TLSMode.VERIFY_FULL, ca_bundle=b"pem", ca_path="/certs/rds.pem")
        kwargs = make_descriptor(tls).to_connect_kwargs()

        self.assertEqual(kwargs["sslmode"], "verify-full")
        self.assertEqual(kwargs["sslrootcert"], "/certs/rds.pem")

    def test_verify_full_without_bundle_uses_system_roots(self):
        kwargs = make_descriptor(TLSSettings(TLSMode.VERIFY_FULL)).to_connect_kwargs()

        self.assertEqual(kwargs["sslrootcert"], "system")

    def test_redacted_masks_password(self):
        redacted = make_descriptor().redacted()

        self.assertEqual(redacted["password"], "****")
        self.assertEqual(redacted["tls_mode"], "unset")
        self.assertEqual(make_descriptor(password="").redacted()["password"], "")

    def test_bundle_bytes_not_in_repr(self):
        tls = TLSSettings(TLSMode.VERIFY_FULL, ca_bundle=b"-----BEGIN CERTIFICATE-----")

        self.assertNotIn("BEGIN CERTIFICATE", repr(tls))


@pytest.mark.unit
class TestConnectWithRetry(TestCase):

    def setUp(self):
        self.descriptor = make_descriptor(TLSSettings(TLSMode.OPPORTUNISTIC))
        self.sleep = Mock()

    def test_connects_on_first_attempt(self):
        connection = MagicMock()
        connect = Mock(return_value=connection)

        result = connect_with_retry(self.descriptor, attempts=3, delay=2, connect=connect, sleep=self.sleep)

        self.assertIs(result, connection)
        connect.assert_called_once_with(**self.descriptor.to_connect_kwargs())
        connection.set_session.assert_called_once_with(readonly=True, autocommit=True)
        self.sleep.assert_not_called()

    def test_retries_with_fixed_delay(self):
        connection = MagicMock()
        connect = Mock(side_effect=[
            psycopg2.OperationalError("connection refused"),
            psycopg2.OperationalError("connection refused"),
            connection,
        ])

        result = connect_with_retry(self.descriptor, attempts=3, delay=2, connect=connect, sleep=self.sleep)

        self.assertIs(result, connection)
        self.assertEqual(connect.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)
        self.sleep.assert_called_with(2)

    def test_exhausted_attempts_raise_connectivity_error(self):
        connect = Mock(side_effect=psycopg2.OperationalError("timeout expired"))

        with self.assertRaises(ConnectivityError) as ctx:
            connect_with_retry(self.descriptor, attempts=4, delay=0.5, connect=connect, sleep=self.sleep)

        self.assertEqual(connect.call_count, 4)
        self.assertEqual(self.sleep.call_count, 3)
        self.assertIn("after 4 attempts", str(ctx.exception))
        self.assertIn("timeout expired", str(ctx.exception))

    def test_non_database_errors_propagate(self):
        connect = Mock(side_effect=TypeError("bad keyword"))

        with self.assertRaises(TypeError):
            connect_with_retry(self.descriptor, attempts=3, delay=0, connect=connect, sleep=self.sleep)
        self.sleep.assert_not_called()

    def test_connection_is_closed_when_session_setup_fails(self):
        connections = [MagicMock(), MagicMock()]
        for connection in connections:
            connection.set_session.side_effect = psycopg2.OperationalError("server closed the connection")
        connect = Mock(side_effect=connections)

        with self.assertRaises(ConnectivityError):
            connect_with_retry(self.descriptor, attempts=2, delay=0, connect=connect, sleep=self.sleep)

        for connection in connections:
            connection.close.assert_called_once()
