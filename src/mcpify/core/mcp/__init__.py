"""Core MCP abstractions and protocols."""

from .exceptions import (
    McpError,
    MissingPathParameterError,
    RequestBuildError,
    ResourceError,
    SpecError,
    ToolError,
)
from .protocols import McpServer, ResourceProvider, ToolProvider

__all__ = [
    "ToolProvider",
    "ResourceProvider",
    "McpServer",
    "McpError",
    "ToolError",
    "ResourceError",
    "SpecError",
    "RequestBuildError",
    "MissingPathParameterError",
]
