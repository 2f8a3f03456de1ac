"""
backend_client.py — JSON client for the dashboard's REST backend (pure stdlib)

Issues GET/POST/PUT/PATCH/DELETE requests against the backend API, adds the
CSRF header to mutating requests, and turns transport failures into the
BackendError hierarchy. Backend responses of the form
{"type": "statusMessage", "severity": ..., "message": ...} are exposed as
StatusMessage objects so they can be shown to the user unchanged.
"""

import json
import logging
import os
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import date, datetime

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:8000/api"
CSRF_TOKEN_HEADER = "X-Token"


def _create_ssl_context():
    """Create an SSL context for backend HTTPS requests.

    Supports the following environment variables:
      - FORMDESK_SSL_CERT: Path to a custom CA certificate bundle (PEM).
      - FORMDESK_SSL_VERIFY: Set to "0" to disable certificate verification
            (troubleshooting only).

    Returns:
        ssl.SSLContext or None (None = use urllib defaults).
    """
    ssl_verify = os.environ.get("FORMDESK_SSL_VERIFY", "1").strip()
    ssl_cert = os.environ.get("FORMDESK_SSL_CERT", "").strip()

    if ssl_verify == "0":
        logger.warning(
            "SSL certificate verification disabled (FORMDESK_SSL_VERIFY=0). "
            "This is insecure and should only be used for troubleshooting."
        )
        return _create_noverify_ssl_context()

    if ssl_cert:
        if not os.path.isfile(ssl_cert):
            logger.warning("FORMDESK_SSL_CERT file not found: %s", ssl_cert)
            return None
        logger.info("Using custom CA bundle: %s", ssl_cert)
        return ssl.create_default_context(cafile=ssl_cert)

    return None


def _create_noverify_ssl_context():
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _is_ssl_error(exc):
    """Check whether an exception is caused by SSL certificate verification."""
    if isinstance(exc, ssl.SSLError):
        return True
    if isinstance(exc, urllib.error.URLError):
        return isinstance(getattr(exc, "reason", None), ssl.SSLError)
    return False


def _json_default(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# ---------------------------------------------------------------------------
# Status messages
# ---------------------------------------------------------------------------

@dataclass
class StatusMessage:
    severity: str
    message: str
    type: str | None = None

    @classmethod
    def from_body(cls, data):
        """Parse a backend statusMessage body; None if ``data`` is not one."""
        if isinstance(data, dict) and data.get("type") == "statusMessage":
            return cls(severity=data.get("severity", "info"),
                       message=data.get("message", ""),
                       type="statusMessage")
        return None

    def to_dict(self):
        return {"severity": self.severity, "message": self.message}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class BackendError(Exception):
    """Base exception for backend operations."""


class BackendConnectionError(BackendError):
    """Raised when the backend cannot be reached."""


class BackendSSLError(BackendConnectionError):
    """Raised when an SSL certificate verification error occurs."""


class BackendResponseError(BackendError):
    """Raised when the backend answers with an HTTP error status."""

    def __init__(self, status, status_message, body=None):
        super().__init__(f"HTTP {status}: {status_message.message}")
        self.status = status
        self.status_message = status_message
        self.body = body


def get_status_message(error=None, data=None, is_mutation=False):
    """Derive the message shown to the user after a query or mutation.

    Args:
        error: Exception raised by the request, if any.
        data: Response body of a successful request.
        is_mutation: Whether the request changed data. Successful queries
            produce no message; successful mutations always do.

    Returns:
        StatusMessage or None.
    """
    if error is not None:
        if isinstance(error, BackendSSLError):
            return StatusMessage("error", str(error))
        if isinstance(error, BackendConnectionError):
            return StatusMessage("error", "No network connection available.")
        if isinstance(error, BackendResponseError):
            return error.status_message
        return StatusMessage("error", str(error))
    if is_mutation:
        return (StatusMessage.from_body(data)
                or StatusMessage("success", "The operation was successful."))
    return None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class BackendClient:
    def __init__(self, base_url=None, timeout=10, csrf_token=None,
                 ssl_noverify=False):
        url = base_url or os.environ.get("FORMDESK_BACKEND_URL") or DEFAULT_BACKEND_URL
        self.base_url = url.rstrip("/")
        self.timeout = timeout
        if csrf_token is None:
            csrf_token = os.environ.get("FORMDESK_CSRF_TOKEN") or None
        self.csrf_token = csrf_token
        self.ssl_noverify = ssl_noverify

    def _url(self, path):
        return f"{self.base_url}/{str(path).lstrip('/')}"

    def request(self, method, path, data=None, with_csrf=None):
        """Send one request and return the decoded JSON body (or None).

        Raises:
            BackendSSLError: On SSL certificate verification failure.
            BackendConnectionError: On other network failure.
            BackendResponseError: On an HTTP error status.
            BackendError: On a body that is not valid JSON.
        """
        url = self._url(path)
        headers = {"User-Agent": "formdesk", "Accept": "application/json"}
        body = None
        if data is not None:
            body = json.dumps(data, default=_json_default).encode("utf-8")
            headers["Content-Type"] = "application/json"
        if with_csrf is None:
            with_csrf = method != "GET"
        if with_csrf and self.csrf_token:
            headers[CSRF_TOKEN_HEADER] = self.csrf_token

        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        ssl_ctx = _create_noverify_ssl_context() if self.ssl_noverify else _create_ssl_context()
        logger.info("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout,
                                        context=ssl_ctx) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            error_body = _read_error_body(e)
            status_message = (StatusMessage.from_body(error_body)
                              or StatusMessage("error", f"The backend returned HTTP {e.code}."))
            logger.warning("%s %s failed with HTTP %d", method, url, e.code)
            raise BackendResponseError(e.code, status_message, error_body) from e
        except (urllib.error.URLError, OSError) as e:
            logger.warning("%s %s failed: %s", method, url, e)
            if _is_ssl_error(e):
                raise BackendSSLError(f"SSL certificate verification failed: {e}") from e
            raise BackendConnectionError(f"Request to {url} failed: {e}") from e

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {url}: {e}") from e

    def get(self, path, with_csrf=False):
        return self.request("GET", path, with_csrf=with_csrf)

    def post(self, path, data=None):
        return self.request("POST", path, data)

    def put(self, path, data=None):
        return self.request("PUT", path, data)

    def patch(self, path, data=None):
        return self.request("PATCH", path, data)

    def delete(self, path):
        return self.request("DELETE", path)


def _read_error_body(error):
    try:
        raw = error.read().decode("utf-8")
    except (OSError, AttributeError, ValueError):
        return None
    try:
        return json.loads(raw) if raw else None
    except ValueError:
        return raw
