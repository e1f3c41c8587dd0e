"""
Request handlers for the service's endpoints.

    /swagger/doc.json   SpecHandler          the OpenAPI document
    /swagger/...        StaticAssetHandler   the Swagger UI bundle
    /hello              hello_world          example endpoint
"""

from .spec import SpecHandler
from .static import StaticAssetHandler
from .hello import hello_world

__all__ = ["SpecHandler", "StaticAssetHandler", "hello_world"]
