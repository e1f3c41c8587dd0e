"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the ``hackapi.access`` logger, written after
the response is produced.

    text (Apache-style):
        127.0.0.1 - - [17/Oct/2026:10:55:36 +0000] "GET /hello" 200 13 0.41ms

    json (for log shippers):
        {"request_id": "a1b2c3d4", "method": "GET", "path": "/hello",
         "client_ip": "127.0.0.1", "status_code": 200, "content_length": 13,
         "duration_ms": 0.41, ...}

Every response carries an X-Request-ID header. A client that sends its own
X-Request-ID gets it echoed back, so the access line can be matched with
the client's logs.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, asdict
from typing import Iterable, Optional
from urllib.parse import urlencode

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("hackapi.access")


REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestLog:
    """One access-log record."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        record = asdict(self)
        record["duration_ms"] = round(self.duration_ms, 2)
        return record

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with request ids.

    Usage:
        server.use(LoggingMiddleware(log_format="json", skip_paths=["/swagger/index.css"]))

    Args:
        log_format: "text" or "json".
        include_request_id: Set X-Request-ID on responses.
        log_level: Level of the access lines.
        skip_paths: Exact paths that are not logged (still get a request id).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.path} failed "
                f"after {duration_ms:.2f}ms: {type(e).__name__}: {e}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.headers[REQUEST_ID_HEADER] = request_id

        if request.path not in self.skip_paths:
            self._emit(self.build_record(request, response, request_id, duration_ms))

        return response

    @staticmethod
    def build_record(
        request: HTTPRequest,
        response: HTTPResponse,
        request_id: str,
        duration_ms: float,
    ) -> RequestLog:
        client_ip = request.client_address[0] if request.client_address else ""
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=urlencode(request.query_params, doseq=True),
            client_ip=client_ip or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, record: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, record.to_json())
        else:
            logger.log(self.log_level, record.to_text())
