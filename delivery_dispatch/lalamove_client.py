"""Lalamove API v3 client: request signing and the signed HTTP transport."""

import hashlib
import hmac
import json
import logging
import time

import requests

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.config import LalamoveCredentials
from delivery_dispatch.models import UpstreamResult

logger = logging.getLogger("delivery_dispatch.lalamove")

API_VERSION = "v3"
PRODUCTION_HOST = "https://rest.lalamove.com"
SANDBOX_HOST = "https://rest.sandbox.lalamove.com"

DEFAULT_TIMEOUT = 20.0


def sign_request(
    method: str,
    path: str,
    body: str,
    secret: str,
    timestamp: str | None = None,
) -> tuple[str, str]:
    """Generate the HMAC-SHA256 signature for a Lalamove request.

    Args:
        method: HTTP method (e.g. POST).
        path: Versioned API path (e.g. /v3/quotations).
        body: Serialized JSON body, or "" for requests without one.
        secret: Lalamove API secret.
        timestamp: Milliseconds since epoch; defaults to now.

    Returns:
        (timestamp, hex-encoded signature) tuple.
    """
    if timestamp is None:
        timestamp = str(int(time.time() * 1000))
    message = f"{timestamp}\r\n{method}\r\n{path}\r\n\r\n{body}"
    signature = hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return timestamp, signature


def authorization_header(api_key: str, timestamp: str, signature: str) -> str:
    return f"hmac {api_key}:{timestamp}:{signature}"


def versioned_path(path: str) -> str:
    """Prefix a request path with the API version segment.

    The same string is signed and requested; Lalamove rejects the
    signature if the two differ.
    """
    return f"/{API_VERSION}{path}"


class LalamoveClient(CourierClient):
    """Client for the Lalamove REST API v3."""

    def __init__(
        self,
        credentials: LalamoveCredentials,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json; charset=utf-8",
                "Accept": "application/json",
            }
        )

    @staticmethod
    def base_url(sandbox: bool) -> str:
        return SANDBOX_HOST if sandbox else PRODUCTION_HOST

    def call(
        self,
        method: str,
        path: str,
        payload: dict | None,
        market: str,
        sandbox: bool,
    ) -> UpstreamResult:
        """Make a signed request to the Lalamove API.

        Errors are returned, not raised, so callers decide how severe an
        upstream failure is.

        Args:
            method: HTTP method.
            path: Unversioned endpoint path (e.g. /quotations).
            payload: Request body; ignored for GET.
            market: Market code sent in the ``Market`` header.
            sandbox: Whether to use the sandbox host.

        Returns:
            UpstreamResult with the parsed JSON body on success.
        """
        method = method.upper()
        body = "" if method == "GET" else json.dumps(payload or {}, separators=(",", ":"))
        signed_path = versioned_path(path)
        timestamp, signature = sign_request(
            method, signed_path, body, self.credentials.api_secret,
        )
        url = f"{self.base_url(sandbox)}{signed_path}"
        headers = {
            "Market": market,
            "Authorization": authorization_header(
                self.credentials.api_key, timestamp, signature,
            ),
        }

        try:
            resp = self.session.request(
                method,
                url,
                headers=headers,
                data=body.encode("utf-8") if body else None,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.error("Lalamove request timed out: %s %s (%s)", method, url, exc)
            return UpstreamResult(ok=False, status=504, error=f"Lalamove request timed out: {exc}")
        except requests.RequestException as exc:
            logger.error("Lalamove request failed: %s %s (%s)", method, url, exc)
            return UpstreamResult(ok=False, status=502, error=f"Lalamove request failed: {exc}")

        text = resp.text
        if not 200 <= resp.status_code < 300:
            logger.error(
                "Lalamove upstream error: status=%s url=%s body=%s",
                resp.status_code, url, text,
            )
            return UpstreamResult(
                ok=False,
                status=resp.status_code,
                error=text or "Lalamove upstream error",
            )

        try:
            data = json.loads(text)
        except ValueError as exc:
            logger.error("Malformed Lalamove response: status=%s url=%s", resp.status_code, url)
            return UpstreamResult(ok=False, status=502, error=f"Malformed upstream response: {exc}")
        if not isinstance(data, dict):
            return UpstreamResult(
                ok=False, status=502, error="Malformed upstream response: expected a JSON object",
            )

        return UpstreamResult(ok=True, status=resp.status_code, data=data)

    def request_quotation(self, payload: dict, market: str, sandbox: bool) -> UpstreamResult:
        return self.call("POST", "/quotations", payload, market, sandbox)

    def get_quotation(self, quotation_id: str, market: str, sandbox: bool) -> UpstreamResult:
        return self.call("GET", f"/quotations/{quotation_id}", None, market, sandbox)

    def place_order(self, payload: dict, market: str, sandbox: bool) -> UpstreamResult:
        return self.call("POST", "/orders", payload, market, sandbox)
