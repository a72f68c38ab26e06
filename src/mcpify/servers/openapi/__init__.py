"""OpenAPI proxy server: tools and resources generated from an OpenAPI document."""

from .config import OpenApiProxyConfig
from .providers import OpenApiResourceProvider, OpenApiToolProvider

__all__ = [
    "OpenApiProxyConfig",
    "OpenApiToolProvider",
    "OpenApiResourceProvider",
]
