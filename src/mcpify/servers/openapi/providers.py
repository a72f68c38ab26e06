"""Tool and resource providers backed by an OpenAPI document."""

import logging
import re
from typing import Any
from urllib.parse import unquote

import httpx

from mcpify.core.logging import Log
from mcpify.core.mcp.exceptions import ResourceError, ToolError
from mcpify.core.mcp.protocols import ResourceDefinition, ToolDefinition
from mcpify.openapi.client import OperationClient
from mcpify.openapi.operation import JSON_MEDIA_TYPE, TEXT_MEDIA_TYPE, OperationView
from mcpify.openapi.spec import OpenApiSpec

from .config import OpenApiProxyConfig

logger = logging.getLogger(__name__)

_TEMPLATE_VARIABLE = re.compile(r"\{([^{}]+)\}")


def _client(
    view: OperationView,
    config: OpenApiProxyConfig,
    transport: httpx.AsyncBaseTransport | None,
    log: Log,
) -> OperationClient:
    return OperationClient(
        view,
        base_url=config.base_url,
        headers=config.headers,
        timeout=config.timeout,
        verify_ssl=config.verify_ssl,
        proxy_url=config.proxy_url,
        transport=transport,
        log=log,
    )


class OpenApiToolProvider:
    """Exposes every non-ignored operation as an MCP tool."""

    def __init__(
        self,
        spec: OpenApiSpec,
        config: OpenApiProxyConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: Log = logger,
    ):
        """Initialize with a loaded document and proxy configuration.

        Args:
            spec: The loaded OpenAPI document
            config: Outbound request configuration (headers, timeout, proxy)
            transport: Custom httpx transport (mock transports in tests)
            log: Logger receiving tool diagnostics
        """
        self._config = config
        self._log = log
        self._clients: dict[str, OperationClient] = {}
        for view in spec.tools:
            log.debug(f"Converting {view.describe()} -> {view.describe_safety()} tool '{view.id}'")
            self._clients[view.id] = _client(view, config, transport, log)
        log.info(f"Created {len(self._clients)} MCP tools from {spec.title}")

    @property
    def config(self) -> OpenApiProxyConfig:
        return self._config

    def client_for(self, name: str) -> OperationClient:
        """Client of the named tool.

        Raises:
            ToolError: If no tool has that name
        """
        client = self._clients.get(name)
        if client is None:
            raise ToolError(name, "Unknown tool")
        return client

    def get_tools(self) -> list[ToolDefinition]:
        tools: list[ToolDefinition] = []
        for name, client in self._clients.items():
            view = client.view
            tools.append(
                {
                    "name": name,
                    "description": view.description,
                    "inputSchema": view.parameter_schema
                    or {"type": "object", "properties": {}, "additionalProperties": True},
                    "annotations": view.hints.to_dict(),
                }
            )
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        client = self.client_for(name)
        self._log.info(f"Request from {client.view.describe()}: {arguments}")
        envelope = await client.invoke(arguments)
        return envelope.to_dict()


class ResourceRoute:
    """Matches concrete URIs against one resource URI or URI template."""

    def __init__(self, uri: str, client: OperationClient):
        self.uri = uri
        self.client = client
        self.variables = _TEMPLATE_VARIABLE.findall(uri)
        pattern = ""
        last = 0
        for index, match in enumerate(_TEMPLATE_VARIABLE.finditer(uri)):
            pattern += re.escape(uri[last : match.start()]) + f"(?P<v{index}>[^/?#]+)"
            last = match.end()
        pattern += re.escape(uri[last:])
        self._regex = re.compile(f"^{pattern}$")

    @property
    def is_template(self) -> bool:
        return bool(self.variables)

    def match(self, uri: str) -> dict[str, str] | None:
        """Path arguments encoded in ``uri``, or None if it is not this resource."""
        found = self._regex.match(uri)
        if found is None:
            return None
        return {name: unquote(found.group(f"v{i}")) for i, name in enumerate(self.variables)}


class OpenApiResourceProvider:
    """Exposes GET operations addressable by path alone as MCP resources."""

    def __init__(
        self,
        spec: OpenApiSpec,
        config: OpenApiProxyConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: Log = logger,
    ):
        """Initialize with a loaded document and proxy configuration.

        Args:
            spec: The loaded OpenAPI document
            config: Outbound request configuration (headers, timeout, proxy)
            transport: Custom httpx transport (mock transports in tests)
            log: Logger receiving resource diagnostics
        """
        self._log = log
        self._routes: list[ResourceRoute] = []
        for view in spec.resources:
            client = _client(view, config, transport, log)
            uri = spec.resource_uri(view, config.base_url)
            kind = "resource template" if "{" in view.path else "resource"
            log.debug(
                f"Converting {view.describe()} -> {view.describe_safety()} {kind} '{view.id}'"
            )
            self._routes.append(ResourceRoute(uri, client))

    def get_resources(self) -> list[ResourceDefinition]:
        resources: list[ResourceDefinition] = []
        for route in self._routes:
            view = route.client.view
            mime_type = (
                JSON_MEDIA_TYPE
                if view.preferred_response_content_type == JSON_MEDIA_TYPE
                else TEXT_MEDIA_TYPE
            )
            definition: ResourceDefinition = {
                "name": view.id,
                "description": view.description,
                "mimeType": mime_type,
            }
            if route.is_template:
                definition["uriTemplate"] = route.uri
            else:
                definition["uri"] = route.uri
            resources.append(definition)
        return resources

    def resolve(self, uri: str) -> tuple[OperationClient, dict[str, str]]:
        """Find the operation serving ``uri`` and its path arguments.

        Static resources win over templates.

        Raises:
            ResourceError: If no resource matches
        """
        for route in sorted(self._routes, key=lambda r: r.is_template):
            arguments = route.match(uri)
            if arguments is not None:
                return route.client, arguments
        raise ResourceError(uri, "Unknown resource")

    async def get_resource(self, uri: str) -> dict[str, Any]:
        client, arguments = self.resolve(uri)
        self._log.info(f"Reading {client.view.describe()} as {uri}")
        envelope = await client.read(arguments, uri=uri)
        return envelope.to_dict()
