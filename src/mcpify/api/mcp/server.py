"""FastMCP server adapter implementation."""

import base64
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError as FastMcpResourceError
from fastmcp.exceptions import ToolError as FastMcpToolError
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import (
    ContentBlock,
    EmbeddedResource,
    TextContent,
    TextResourceContents,
    ToolAnnotations,
)
from pydantic import Field

from mcpify.core.mcp.exceptions import McpError
from mcpify.core.mcp.protocols import ResourceProvider, ToolProvider

logger = logging.getLogger(__name__)

_TEMPLATE_VARIABLE = re.compile(r"\{([^{}]+)\}")


def to_content_blocks(envelope: dict[str, Any]) -> list[ContentBlock]:
    """Convert a tool envelope's content items into MCP content blocks."""
    blocks: list[ContentBlock] = []
    for item in envelope.get("content", []):
        if item.get("type") == "resource":
            resource = item["resource"]
            blocks.append(
                EmbeddedResource(
                    type="resource",
                    resource=TextResourceContents(
                        uri=resource["uri"],
                        mimeType=resource.get("mimeType"),
                        text=resource.get("text", ""),
                    ),
                )
            )
        else:
            blocks.append(TextContent(type="text", text=item.get("text", "")))
    return blocks


def envelope_text(envelope: dict[str, Any]) -> str:
    """Join the text of an error envelope into one message."""
    items = envelope.get("content") or envelope.get("contents") or []
    return "\n".join(str(item.get("text", "")) for item in items)


class ProviderTool(Tool):
    """A tool whose calls are delegated to a ``ToolProvider``."""

    provider: Any = Field(exclude=True)

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        try:
            envelope = await self.provider.call_tool(self.name, arguments)
        except McpError as e:
            raise FastMcpToolError(str(e)) from e
        if envelope.get("isError"):
            raise FastMcpToolError(envelope_text(envelope))
        return ToolResult(content=to_content_blocks(envelope))


class FastMcpServerAdapter:
    """Adapter that makes FastMCP work with our protocols."""

    def __init__(self, name: str = "mcpify"):
        """Initialize the FastMCP server adapter.

        Args:
            name: Server name for MCP identification
        """
        self._mcp = FastMCP(name)
        self._tool_providers: list[ToolProvider] = []
        self._resource_providers: list[ResourceProvider] = []

    def add_tool_provider(self, provider: ToolProvider) -> None:
        """Add a tool provider to the server.

        Args:
            provider: Object implementing ToolProvider protocol
        """
        self._tool_providers.append(provider)
        self._register_tools(provider)

    def add_resource_provider(self, provider: ResourceProvider) -> None:
        """Add a resource provider to the server.

        Args:
            provider: Object implementing ResourceProvider protocol
        """
        self._resource_providers.append(provider)
        self._register_resources(provider)

    def _register_tools(self, provider: ToolProvider) -> None:
        """Register every tool of a provider with its input schema and hints."""
        for tool_def in provider.get_tools():
            annotations = tool_def.get("annotations")
            tool = ProviderTool(
                name=tool_def["name"],
                description=tool_def.get("description"),
                parameters=tool_def["inputSchema"],
                annotations=ToolAnnotations(**annotations) if annotations else None,
                provider=provider,
            )
            self._mcp.add_tool(tool)
            logger.debug(f"Registered tool '{tool.name}'")

    def _register_resources(self, provider: ResourceProvider) -> None:
        """Register resources and resource templates from a provider with FastMCP."""
        for resource_def in provider.get_resources():
            template = resource_def.get("uriTemplate")
            resource_uri = template or resource_def["uri"]

            if template and not all(
                name.isidentifier() for name in _TEMPLATE_VARIABLE.findall(template)
            ):
                logger.warning(f"Skipping resource template with unsupported variables: {template}")
                continue

            def make_resource_wrapper(
                uri: str, prov: ResourceProvider, is_template: bool
            ) -> Callable[..., Awaitable[str | bytes]]:
                async def read(target: str) -> str | bytes:
                    try:
                        envelope = await prov.get_resource(target)
                    except McpError as e:
                        raise FastMcpResourceError(str(e)) from e
                    if envelope.get("isError"):
                        raise FastMcpResourceError(envelope_text(envelope))
                    contents = envelope.get("contents") or [{}]
                    first = contents[0]
                    if first.get("blob") is not None:
                        return base64.b64decode(first["blob"])
                    return str(first.get("text", ""))

                if is_template:

                    async def template_wrapper(**params: str) -> str | bytes:
                        """Expand the URI template and read it."""
                        target = _TEMPLATE_VARIABLE.sub(
                            lambda m: quote(str(params.get(m.group(1), "")), safe=""), uri
                        )
                        return await read(target)

                    return template_wrapper

                async def resource_wrapper() -> str | bytes:
                    """Wrapper function for resource access."""
                    return await read(uri)

                return resource_wrapper

            self._mcp.resource(
                resource_uri,
                name=resource_def.get("name"),
                description=resource_def.get("description"),
                mime_type=resource_def.get("mimeType", "text/plain"),
            )(make_resource_wrapper(resource_uri, provider, bool(template)))
            logger.debug(f"Registered resource '{resource_uri}'")

    def start(self, transport: str = "http", **kwargs: Any) -> None:
        """Start the MCP server.

        Args:
            transport: Transport type (http, stdio, sse)
            **kwargs: Additional server configuration (host, port, path for HTTP)
        """
        if transport == "stdio":
            self._mcp.run(transport="stdio")
        elif transport == "http":
            host = kwargs.get("host", "127.0.0.1")
            port = kwargs.get("port", 8080)
            path = kwargs.get("path", "/mcp")
            logger.info(f"Starting HTTP MCP server at http://{host}:{port}{path}")
            self._mcp.run(transport="http", host=host, port=port, path=path)
        elif transport == "sse":
            host = kwargs.get("host", "127.0.0.1")
            port = kwargs.get("port", 8080)
            logger.info(f"Starting SSE MCP server at http://{host}:{port}")
            self._mcp.run(transport="sse", host=host, port=port)
        else:
            raise ValueError(f"Unsupported transport: {transport}")

    @property
    def mcp(self) -> FastMCP:
        """Access to underlying FastMCP instance."""
        return self._mcp
