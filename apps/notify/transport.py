"""HTTP transport used by notification drivers.

Drivers never open connections themselves; they call an HttpTransport, which
can be swapped out (e.g. for a recording fake in tests).

Contract:
- any HTTP status (2xx/4xx/5xx) is returned as an HttpResponse
- timeouts and connection failures raise TransportError
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from apps.incidents.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        try:
            return json.loads(self.body) if self.body else None
        except json.JSONDecodeError:
            return None


def basic_auth_header(username: str, password: str) -> str:
    """Build an HTTP basic authentication header value."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class HttpTransport(ABC):
    """Generic HTTP-calling capability."""

    @abstractmethod
    def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        form: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        timeout: float = 10,
    ) -> HttpResponse:
        """Perform a request and return the response."""

    def post_json(self, url: str, payload: Any, timeout: float = 10, **kwargs) -> HttpResponse:
        return self.request("POST", url, json_body=payload, timeout=timeout, **kwargs)


class UrllibTransport(HttpTransport):
    """HttpTransport built on urllib.request."""

    user_agent = "IncidentResponse/1.0"

    def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        form: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        timeout: float = 10,
    ) -> HttpResponse:
        request_headers = {"User-Agent": self.user_agent}
        data: bytes | None = None

        if json_body is not None:
            data = json.dumps(json_body, ensure_ascii=False).encode("utf-8")
            request_headers["Content-Type"] = "application/json"
        elif form is not None:
            data = urllib.parse.urlencode(form).encode("utf-8")
            request_headers["Content-Type"] = "application/x-www-form-urlencoded"

        if auth is not None:
            request_headers["Authorization"] = basic_auth_header(*auth)
        request_headers.update(headers or {})

        request = urllib.request.Request(
            url,
            data=data,
            headers=request_headers,
            method=method.upper(),
        )

        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                return HttpResponse(
                    status=response.getcode(),
                    body=response.read().decode("utf-8", errors="replace"),
                    headers=dict(response.headers or {}),
                )
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else str(e)
            logger.warning(f"HTTP error {e.code} from {_host(url)}: {error_body}")
            return HttpResponse(status=e.code, body=error_body, headers=dict(e.headers or {}))
        except urllib.error.URLError as e:
            logger.warning(f"Failed to connect to {_host(url)}: {e.reason}")
            raise TransportError(f"Failed to connect to {_host(url)}: {e.reason}")
        except (socket.timeout, TimeoutError):
            logger.warning(f"Request to {_host(url)} timed out after {timeout}s")
            raise TransportError(f"Request to {_host(url)} timed out after {timeout}s")
        except (http.client.HTTPException, OSError) as e:
            logger.warning(f"Connection to {_host(url)} failed: {e!r}")
            raise TransportError(f"Connection to {_host(url)} failed: {e}")


def _host(url: str) -> str:
    # Webhook paths carry secrets.
    return urllib.parse.urlsplit(url).netloc or url
