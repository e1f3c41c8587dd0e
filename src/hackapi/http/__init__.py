"""
=============================================================================
HTTP MODULE
=============================================================================

Protocol-level building blocks: request parsing, response building, the
ordered router, status codes and MIME types.

    raw bytes ──► RequestParser ──► HTTPRequest ──► Router ──► handler
                                                                  │
    socket ◄── HTTPResponse.to_bytes() ◄── HTTPResponse ◄─────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    redirect,
    plain_error,
    not_found,
    internal_error,
    json_error,
)
from .router import Router, Route, RouteMatch, MatchKind
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "redirect",
    "plain_error",
    "not_found",
    "internal_error",
    "json_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "MatchKind",

    # Status codes and MIME types
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
