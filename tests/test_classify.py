import socket
import ssl
import unittest

import requests
from urllib3.exceptions import (
    ConnectTimeoutError,
    MaxRetryError,
    NameResolutionError,
    NewConnectionError,
)

from app.checks.classify import (
    classify_error,
    classify_response,
    classify_status_code,
    failure_text,
    innermost_error,
    is_timeout,
    iter_error_chain,
)
from app.checks.results import CheckStatus


def _chained(outer: Exception, inner: BaseException) -> Exception:
    try:
        try:
            raise inner
        except BaseException as e:
            raise outer from e
    except Exception as wrapped:
        return wrapped


class StatusCodeTests(unittest.TestCase):
    def test_ranges(self) -> None:
        cases = [
            (200, CheckStatus.UP),
            (299, CheckStatus.UP),
            (300, CheckStatus.WARNING),
            (399, CheckStatus.WARNING),
            (400, CheckStatus.WARNING),
            (599, CheckStatus.WARNING),
            (199, CheckStatus.DOWN),
            (600, CheckStatus.DOWN),
        ]
        for code, expected in cases:
            with self.subTest(code=code):
                self.assertEqual(classify_status_code(code), expected)

    def test_slow_override_only_touches_up(self) -> None:
        self.assertEqual(classify_response(200, 3001, 3000), CheckStatus.WARNING)
        self.assertEqual(classify_response(200, 3000, 3000), CheckStatus.UP)
        self.assertEqual(classify_response(302, 9000, 3000), CheckStatus.WARNING)
        self.assertEqual(classify_response(700, 9000, 3000), CheckStatus.DOWN)


class KeywordClassificationTests(unittest.TestCase):
    def test_messages(self) -> None:
        cases = [
            ("certificate has expired", CheckStatus.WARNING),
            ("SSL: WRONG_VERSION_NUMBER", CheckStatus.WARNING),
            ("self-signed certificate in certificate chain", CheckStatus.WARNING),
            ("Hostname mismatch for host", CheckStatus.WARNING),
            ("upstream returned 502", CheckStatus.WARNING),
            ("Connection refused", CheckStatus.WARNING),
            ("connection reset by peer", CheckStatus.WARNING),
            ("Network unreachable", CheckStatus.WARNING),
            ("getaddrinfo ENOTFOUND nowhere.test", CheckStatus.DOWN),
            ("Name not resolved", CheckStatus.DOWN),
            ("lookup nowhere.test: no such host", CheckStatus.DOWN),
            ("Network is unreachable", CheckStatus.DOWN),
            ("Host unreachable", CheckStatus.DOWN),
            ("tls handshake then ENOTFOUND", CheckStatus.DOWN),
            ("something unexpected", CheckStatus.DOWN),
        ]
        for message, expected in cases:
            with self.subTest(message=message):
                self.assertEqual(classify_error(RuntimeError(message)), expected)


class TypeClassificationTests(unittest.TestCase):
    def test_dns_failure_in_chain_is_down(self) -> None:
        exc = _chained(
            requests.exceptions.ConnectionError("Max retries exceeded with url: /"),
            socket.gaierror(-2, "Name or service not known"),
        )
        self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_ssl_errors_are_warning(self) -> None:
        self.assertEqual(
            classify_error(requests.exceptions.SSLError("boom")), CheckStatus.WARNING
        )
        exc = _chained(requests.exceptions.ConnectionError("boom"), ssl.SSLError("bad"))
        self.assertEqual(classify_error(exc), CheckStatus.WARNING)

    def test_refused_inside_max_retry_reason_is_warning(self) -> None:
        exc = requests.exceptions.ConnectionError(
            MaxRetryError(None, "/", reason=ConnectionRefusedError(111, "Refused"))
        )
        self.assertEqual(classify_error(exc), CheckStatus.WARNING)

    def test_dns_type_wins_over_warning_keyword(self) -> None:
        exc = _chained(
            requests.exceptions.ConnectionError("HTTP 503 while resolving"),
            socket.gaierror(-3, "Temporary failure"),
        )
        self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_timeouts_are_down(self) -> None:
        for exc in (
            requests.exceptions.ConnectTimeout("timed out"),
            requests.exceptions.ReadTimeout("timed out"),
            TimeoutError("timed out"),
        ):
            with self.subTest(exc=type(exc).__name__):
                self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_error_chain_handles_cycles(self) -> None:
        a = RuntimeError("a")
        b = RuntimeError("b")
        a.__context__ = b
        b.__context__ = a
        self.assertEqual([str(e) for e in iter_error_chain(a)], ["a", "b"])


def _conn(address: str, scheme: str = "HTTP") -> str:
    return f"<urllib3.connection.{scheme}Connection object at {address}>"


def _connection_error(host: str, port: int, path: str, reason: BaseException) -> Exception:
    pool = f"HTTPConnectionPool(host='{host}', port={port})"
    return requests.exceptions.ConnectionError(MaxRetryError(pool, path, reason=reason))


class RequestsMessageTests(unittest.TestCase):
    """Targets, ports and object addresses in requests messages carry no signal."""

    def test_read_timeout_is_down_whatever_the_port(self) -> None:
        for port in (5000, 40399, 8503):
            exc = requests.exceptions.ReadTimeout(
                f"HTTPConnectionPool(host='127.0.0.1', port={port}): "
                "Read timed out. (read timeout=0.3)"
            )
            with self.subTest(port=port):
                self.assertEqual(classify_error(exc), CheckStatus.DOWN)
                self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_connect_timeout_to_ssl_named_host_is_down(self) -> None:
        for address in ("0x7f3a9c503d90", "0x7f3a9c2e1d90"):
            reason = ConnectTimeoutError(
                _conn(address, "HTTPS"),
                "Connection to ssl.example.test timed out. (connect timeout=5)",
            )
            exc = requests.exceptions.ConnectTimeout(
                MaxRetryError(
                    "HTTPSConnectionPool(host='ssl.example.test', port=443)",
                    "/health",
                    reason=reason,
                )
            )
            with self.subTest(address=address):
                self.assertTrue(is_timeout(exc))
                self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_no_route_is_down_for_any_address_and_port(self) -> None:
        for address in ("0x7f3a9c503d90", "0x7f3a9c2e1d90"):
            reason = NewConnectionError(
                _conn(address),
                "Failed to establish a new connection: [Errno 113] No route to host",
            )
            exc = _connection_error("127.0.0.1", 40399, "/status/500", reason)
            with self.subTest(address=address):
                self.assertFalse(is_timeout(exc))
                self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_refused_connection_stays_warning(self) -> None:
        reason = NewConnectionError(
            _conn("0x7f3a9c2e1d90"),
            "Failed to establish a new connection: [Errno 111] Connection refused",
        )
        exc = _connection_error("ssl.example.test", 5000, "/", reason)

        self.assertFalse(is_timeout(exc))
        self.assertEqual(classify_error(exc), CheckStatus.WARNING)

    def test_name_resolution_failure_is_not_a_timeout(self) -> None:
        reason = NameResolutionError(
            "ssl.example.test",
            _conn("0x7f3a9c503d90", "HTTPS"),
            socket.gaierror(-2, "Name or service not known"),
        )
        exc = _connection_error("ssl.example.test", 443, "/", reason)

        self.assertFalse(is_timeout(exc))
        self.assertEqual(classify_error(exc), CheckStatus.DOWN)

    def test_failure_text_is_root_cause_without_target(self) -> None:
        reason = NewConnectionError(
            _conn("0x7f3a9c503d90"),
            "Failed to establish a new connection: [Errno 111] Connection refused",
        )
        exc = _connection_error("127.0.0.1", 40399, "/status/503", reason)

        self.assertIs(innermost_error(exc), reason)
        text = failure_text(exc)
        self.assertIn("Connection refused", text)
        for noise in ("0x7f3a9c503d90", "40399", "/status/503", "127.0.0.1"):
            self.assertNotIn(noise, text)


if __name__ == "__main__":
    unittest.main()
