"""
Outcome classification for status checks.

A received HTTP response is classified by status code. A transport error is
DOWN when a timeout appears anywhere in its chain. Otherwise it is classified
from two merged sources: the exception types found in its chain and keywords
in the root cause's message. Both feed the same rule: start at DOWN, move to
WARNING on any warning signal, then back to DOWN on any down signal. A down
signal therefore wins when both are present.
"""
from __future__ import annotations

import re
import socket
import ssl
from typing import Iterator

import requests
from urllib3.exceptions import MaxRetryError, NameResolutionError, NewConnectionError
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from app.checks.results import CheckStatus

DOWN_KEYWORDS: tuple[str, ...] = (
    "enotfound",
    "getaddrinfo",
    "name not resolved",
    "no such host",
    "network is unreachable",
    "host unreachable",
)

WARNING_KEYWORDS: tuple[str, ...] = (
    # certificate / TLS
    "certificate",
    "ssl",
    "tls",
    "self-signed",
    "expired",
    "untrusted",
    "bad certificate",
    "cert",
    "handshake",
    "protocol",
    "unable to verify",
    "hostname mismatch",
    # HTTP status codes embedded in the message
    "404",
    "403",
    "401",
    "429",
    "500",
    "502",
    "503",
    "504",
    # reachable, but the connection failed
    "connection refused",
    "connection reset",
    "connection timeout",
    "network unreachable",
)

DOWN_ERROR_TYPES: tuple[type[BaseException], ...] = (
    socket.gaierror,
    NameResolutionError,
)

# requests.exceptions.SSLError is not an ssl.SSLError subclass.
WARNING_ERROR_TYPES: tuple[type[BaseException], ...] = (
    ssl.SSLError,
    requests.exceptions.SSLError,
    ConnectionRefusedError,
    ConnectionResetError,
)

TIMEOUT_ERROR_TYPES: tuple[type[BaseException], ...] = (
    requests.exceptions.Timeout,
    Urllib3TimeoutError,
    TimeoutError,
)

# Parts of urllib3/requests messages that name the target or the connection
# object rather than the failure: pool prefixes, URLs and object addresses.
_MESSAGE_NOISE = (
    re.compile(r"<[^<>]*\bobject at 0x[0-9a-fA-F]+>"),
    re.compile(r"\w*ConnectionPool\([^)]*\)"),
    re.compile(r"\bhost='[^']*'"),
    re.compile(r"\bport=\d+"),
    re.compile(r"\burl: \S+"),
    re.compile(r"\bhttps?://\S+", re.IGNORECASE),
    re.compile(r"\b0x[0-9a-fA-F]+\b"),
)

_MAX_CHAIN_DEPTH = 16


def classify_status_code(status_code: int) -> CheckStatus:
    if 200 <= status_code < 300:
        return CheckStatus.UP
    if 300 <= status_code < 400:
        return CheckStatus.WARNING
    if 400 <= status_code < 600:
        return CheckStatus.WARNING
    return CheckStatus.DOWN


def classify_response(
    status_code: int, response_time_ms: int, slow_threshold_ms: int
) -> CheckStatus:
    status = classify_status_code(status_code)
    if status is CheckStatus.UP and response_time_ms > slow_threshold_ms:
        return CheckStatus.WARNING
    return status


def _wrapped_errors(exc: BaseException) -> list[BaseException]:
    linked: list[BaseException] = []
    if isinstance(exc, MaxRetryError) and isinstance(exc.reason, BaseException):
        linked.append(exc.reason)
    linked.extend(a for a in exc.args if isinstance(a, BaseException))
    if exc.__cause__ is not None:
        linked.append(exc.__cause__)
    if exc.__context__ is not None:
        linked.append(exc.__context__)
    return linked


def iter_error_chain(exc: BaseException) -> Iterator[BaseException]:
    """
    Yield exc and every exception it wraps: explicit and implicit causes,
    exceptions passed as args (requests wraps urllib3 errors this way) and
    MaxRetryError.reason.
    """
    seen: set[int] = set()
    stack = [exc]
    while stack and len(seen) < _MAX_CHAIN_DEPTH:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(reversed(_wrapped_errors(current)))


def innermost_error(exc: BaseException) -> BaseException:
    """Follow the first wrapped error at each level down to the root cause."""
    seen = {id(exc)}
    current = exc
    while len(seen) < _MAX_CHAIN_DEPTH:
        nxt = next((e for e in _wrapped_errors(current) if id(e) not in seen), None)
        if nxt is None:
            break
        seen.add(id(nxt))
        current = nxt
    return current


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def failure_text(exc: BaseException) -> str:
    """
    The root cause's own message with target names and object addresses
    removed, for keyword matching.
    """
    text = str(innermost_error(exc))
    for pattern in _MESSAGE_NOISE:
        text = pattern.sub("", text)
    return text


def is_timeout(exc: BaseException) -> bool:
    # urllib3 derives NewConnectionError (refused, DNS) from ConnectTimeoutError.
    return any(
        isinstance(err, TIMEOUT_ERROR_TYPES) and not isinstance(err, NewConnectionError)
        for err in iter_error_chain(exc)
    )


def _type_signals(exc: BaseException) -> tuple[bool, bool]:
    warning = down = False
    for err in iter_error_chain(exc):
        if isinstance(err, DOWN_ERROR_TYPES):
            down = True
        elif isinstance(err, WARNING_ERROR_TYPES):
            warning = True
    return warning, down


def _keyword_signals(message: str) -> tuple[bool, bool]:
    lowered = message.lower()
    warning = any(k in lowered for k in WARNING_KEYWORDS)
    down = any(k in lowered for k in DOWN_KEYWORDS)
    return warning, down


def classify_error(exc: BaseException) -> CheckStatus:
    # An unresponsive origin is DOWN whatever the message mentions.
    if is_timeout(exc):
        return CheckStatus.DOWN

    type_warning, type_down = _type_signals(exc)
    kw_warning, kw_down = _keyword_signals(failure_text(exc))

    status = CheckStatus.DOWN
    if type_warning or kw_warning:
        status = CheckStatus.WARNING
    if type_down or kw_down:
        status = CheckStatus.DOWN
    return status
