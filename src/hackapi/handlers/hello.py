"""Example endpoint: GET /hello."""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


HELLO_MESSAGE = "Hello, World!"


def hello_world(request: HTTPRequest) -> HTTPResponse:
    """
    Say hello.

    Responds with the literal ``Hello, World!``, typed as bare
    ``text/plain`` (no charset parameter). The request is not inspected.
    """
    return ok(HELLO_MESSAGE, content_type="text/plain")
