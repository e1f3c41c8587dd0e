"""
Spec document handler.

Serves the OpenAPI document at GET /swagger/doc.json, byte for byte as it
was loaded. The Swagger UI fetches it from there.
"""

import logging

from ..assets import AssetReadError, SpecDocument
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, HTTPStatus, internal_error


logger = logging.getLogger(__name__)


SPEC_CONTENT_TYPE = "application/json"
SPEC_READ_FAILED = "Could not read embedded swagger spec"


class SpecHandler:
    """Serve a SpecDocument, or a 500 if it could not be loaded."""

    def __init__(self, document: SpecDocument):
        self.document = document

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        try:
            content = self.document.read()
        except AssetReadError as e:
            logger.error(f"Failed to serve spec document: {e}")
            return internal_error(SPEC_READ_FAILED)

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type(SPEC_CONTENT_TYPE)
            .body(content)
            .build())
