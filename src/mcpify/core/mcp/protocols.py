"""Seams between OpenAPI providers and the MCP server that hosts them.

Providers describe tools and resources as plain MCP-shaped dictionaries and
answer calls with result envelopes; the server adapter owns everything
FastMCP specific.
"""

from collections.abc import Sequence
from typing import Any, NotRequired, Protocol, TypedDict, runtime_checkable


class ToolDefinition(TypedDict):
    """One operation advertised as an MCP tool."""

    name: str
    description: str
    inputSchema: dict[str, Any]
    annotations: dict[str, bool]


class ResourceDefinition(TypedDict):
    """One GET operation advertised as a resource or resource template.

    Exactly one of ``uri`` and ``uriTemplate`` is present.
    """

    name: str
    description: str
    mimeType: str
    uri: NotRequired[str]
    uriTemplate: NotRequired[str]


@runtime_checkable
class ToolProvider(Protocol):
    """Source of tools and the place their calls are dispatched to."""

    def get_tools(self) -> Sequence[ToolDefinition]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Run the named tool.

        Upstream failures come back as an envelope with ``isError`` set
        rather than as exceptions.

        Raises:
            ToolError: If the tool is unknown or the request cannot be built
        """
        ...


@runtime_checkable
class ResourceProvider(Protocol):
    """Source of resources, read by concrete URI."""

    def get_resources(self) -> Sequence[ResourceDefinition]: ...

    async def get_resource(self, uri: str) -> dict[str, Any]:
        """Read ``uri``, matching resource templates when no static URI fits.

        Returns:
            Envelope with a ``contents`` list

        Raises:
            ResourceError: If nothing serves the URI or the upstream call fails
        """
        ...


class McpServer(Protocol):
    def add_tool_provider(self, provider: ToolProvider) -> None: ...

    def add_resource_provider(self, provider: ResourceProvider) -> None: ...

    def start(self, transport: str = "http", **kwargs: Any) -> None:
        """Serve until interrupted on ``stdio``, ``http`` or ``sse``."""
        ...
