"""
Scan error taxonomy.

Each error carries the HTTP status and user-facing message it surfaces as.
Oracle degradation never becomes an error response.
"""

import re
from typing import Optional, Type

from fastapi import status


class ScanError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "GeneralError"
    default_message: str = "An error occurred while scanning the website."

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidUrlError(ScanError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "ValidationError"
    default_message = "Please provide a valid URL."


class ScanTimeoutError(ScanError):
    status_code = status.HTTP_408_REQUEST_TIMEOUT
    error_type = "TimeoutError"
    default_message = "The website took too long to respond. It may be slow or unreachable."


class DomainNotFoundError(ScanError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "DomainNotFound"
    default_message = "The domain could not be resolved. Please check the URL."


class TargetConnectionRefusedError(ScanError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "ConnectionRefused"
    default_message = "The website refused the connection."


class SslCertificateError(ScanError):
    error_type = "SslError"
    default_message = "The website's SSL certificate could not be verified."


class ProtocolFailureError(ScanError):
    error_type = "ProtocolError"
    default_message = "Communication with the website failed at the protocol level."


class GeneralScanError(ScanError):
    pass


class RateLimitExceededError(ScanError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "RateLimitExceeded"
    default_message = "Daily scan limit exceeded. Please try again tomorrow."

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None, retry_after: int = 0):
        super().__init__(message, details)
        self.retry_after = retry_after


# Chromium net error codes as they appear in Playwright navigation errors,
# e.g. "page.goto: net::ERR_NAME_NOT_RESOLVED at https://host/".
_NET_ERROR_RE = re.compile(r"net::(ERR_[A-Z0-9_]+)", re.IGNORECASE)

_NET_ERROR_CODES = {
    "ERR_TIMED_OUT": ScanTimeoutError,
    "ERR_CONNECTION_TIMED_OUT": ScanTimeoutError,
    "ERR_NAME_NOT_RESOLVED": DomainNotFoundError,
    "ERR_NAME_RESOLUTION_FAILED": DomainNotFoundError,
    "ERR_CONNECTION_REFUSED": TargetConnectionRefusedError,
    "ERR_INVALID_HTTP_RESPONSE": ProtocolFailureError,
    "ERR_EMPTY_RESPONSE": ProtocolFailureError,
}

_NET_ERROR_PREFIXES = [
    ("ERR_CERT_", SslCertificateError),
    ("ERR_SSL_", SslCertificateError),
    ("ERR_BAD_SSL_", SslCertificateError),
    ("ERR_HTTP2_", ProtocolFailureError),
    ("ERR_QUIC_", ProtocolFailureError),
    ("ERR_RESPONSE_HEADERS_", ProtocolFailureError),
]

# Only consulted when the message carries no net error code. First match wins.
_GENERIC_MARKERS = [
    (ScanTimeoutError, ("timeout",)),
    (DomainNotFoundError, ("getaddrinfo", "enotfound")),
    (TargetConnectionRefusedError, ("econnrefused",)),
    (SslCertificateError, ("ssl_error", "certificate")),
    (ProtocolFailureError, ("protocol error",)),
]

# " at https://host/path" suffix of a Playwright error line
_TARGET_SUFFIX_RE = re.compile(r"\s+at\s+\S+://\S*")


def _net_error_class(code: str) -> Type[ScanError]:
    code = code.upper()
    if code in _NET_ERROR_CODES:
        return _NET_ERROR_CODES[code]
    for prefix, error_cls in _NET_ERROR_PREFIXES:
        if code.startswith(prefix):
            return error_cls
    return GeneralScanError


def _strip_target(message: str) -> str:
    """First line of the message without the navigated URL."""
    first_line = message.split("\n", 1)[0]
    return _TARGET_SUFFIX_RE.sub("", first_line)


def classify_navigation_error(message: Optional[str]) -> ScanError:
    """
    Map a browser/transport error message onto the scan error taxonomy.

    A net::ERR_* code decides on its own. Without one, generic markers are
    matched against the message with the target URL and call log removed.
    """
    text = message or ""
    match = _NET_ERROR_RE.search(text)
    if match:
        return _net_error_class(match.group(1))(details=message)

    text = _strip_target(text).lower()
    for error_cls, markers in _GENERIC_MARKERS:
        if any(marker in text for marker in markers):
            return error_cls(details=message)
    return GeneralScanError(details=message)
