"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the responses handlers return and serializes them for the socket.

=============================================================================
RESPONSE SHAPES THIS SERVICE PRODUCES
=============================================================================

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ Outcome              │ Status / Content-Type / Body                 │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │ Spec document        │ 200  application/json       raw spec bytes   │
    │ Hello                │ 200  text/plain             Hello, World!    │
    │ UI asset             │ 200  by extension           asset bytes      │
    │ Redirect             │ 301  Location: /swagger/    short HTML link  │
    │ Error (router/files) │ 4xx/5xx  text/plain; utf-8  the message      │
    └──────────────────────┴──────────────────────────────────────────────┘

Plain-text errors carry X-Content-Type-Options: nosniff so a browser never
second-guesses them into HTML.

=============================================================================
SERIALIZATION
=============================================================================

    HTTP/1.1 200 OK\r\n              ← status line
    Content-Type: text/plain\r\n     ← handler headers
    Content-Length: 13\r\n           ← added if missing
    Date: Sat, 17 Oct 2026 ...\r\n   ← added if missing
    Server: hackapi/1.0\r\n          ← added if missing
    \r\n
    Hello, World!                    ← omitted for HEAD, 204 and 304

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import escape
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus
from .mime_types import get_content_type


PLAIN_TEXT_UTF8 = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a client.

    Use ResponseBuilder or the helper functions below to create one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``HTTP/1.1 200 OK``"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (handy for logging and tests)."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = "hackapi/1.0", include_body: bool = True) -> bytes:
        """
        Serialize the response.

        Args:
            server_name: Value for the Server header when not already set.
            include_body: False for HEAD requests. Headers, including
                          Content-Length, still describe the full body.

        Returns:
            The complete response, ready for ``socket.sendall()``.
        """
        response_headers = dict(self.headers)
        has_body = self.status.allows_body

        if has_body and "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        if include_body and has_body:
            return head + self.body
        return head


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .asset(content, "swagger-ui.css")
            .cache(max_age=3600)
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        # parse errors carry plain ints
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body. Strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = PLAIN_TEXT_UTF8) -> "ResponseBuilder":
        """
        Set a plain text body.

        The hello endpoint passes ``content_type="text/plain"`` to send
        the bare media type with no charset parameter.
        """
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """Serialize ``data`` as the JSON body."""
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def asset(self, content: bytes, path: str) -> "ResponseBuilder":
        """Set an asset body with the Content-Type implied by its path."""
        self._body = content
        self._headers["Content-Type"] = get_content_type(path)
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        Point the client elsewhere.

        301 Moved Permanently when ``permanent`` (browsers cache it),
        302 Found otherwise.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-cache"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    ``Sat, 17 Oct 2026 12:00:00 GMT``. Built by hand because
    ``strftime`` day and month names follow the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    dict/list bodies become JSON, str bodies plain text, bytes are sent
    as-is with ``content_type`` if one is given.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or PLAIN_TEXT_UTF8)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def redirect(location: str, permanent: bool = False, method: str = "GET") -> HTTPResponse:
    """
    301/302 redirect.

    GET and HEAD redirects carry a one-line HTML link to the target for
    clients that do not follow Location. Other methods get an empty body.
    """
    builder = ResponseBuilder().redirect(location, permanent)
    if method.upper() in ("GET", "HEAD"):
        status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        builder.html(f'<a href="{escape(location)}">{status.phrase}</a>.\n')
    return builder.build()


def plain_error(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """
    Plain-text error response.

    The body is exactly ``message`` (no trailing newline), typed
    ``text/plain; charset=utf-8`` with ``X-Content-Type-Options: nosniff``.
    """
    return (ResponseBuilder()
        .status(status)
        .text(message)
        .header("X-Content-Type-Options", "nosniff")
        .build())


def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 Not Found with a plain-text message."""
    return plain_error(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 Internal Server Error with a plain-text message."""
    return plain_error(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def json_error(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """
    JSON error body, ``{"error": message}``.

    Used by the hosting server for failures that happen outside the
    router (parse errors, overload, handler crashes).
    """
    return ResponseBuilder().status(status).json({"error": message}).build()
