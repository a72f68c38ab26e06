"""Integration tests for the MCP server adapter and the OpenAPI providers."""

import json
from unittest.mock import MagicMock

import httpx
import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError as FastMcpToolError
from mcp.types import EmbeddedResource, TextContent

from mcpify.api.mcp.server import FastMcpServerAdapter, ProviderTool, to_content_blocks
from mcpify.openapi.spec import OpenApiSpec
from mcpify.servers.openapi.config import OpenApiProxyConfig
from mcpify.servers.openapi.providers import OpenApiResourceProvider, OpenApiToolProvider
from tests.fixtures.factories import BASE_URL


@pytest.fixture
def petstore(petstore_document):
    return OpenApiSpec.load(petstore_document)


@pytest.mark.integration
class TestServerRegistration:
    """Test providers are registered with FastMCP."""

    def test_tools_registered_with_hints(self, petstore):
        """Every tool is registered as a ProviderTool carrying schema and annotations."""
        # Arrange
        server = FastMcpServerAdapter()
        server._mcp = MagicMock()
        provider = OpenApiToolProvider(petstore, OpenApiProxyConfig())

        # Act
        server.add_tool_provider(provider)

        # Assert
        assert provider in server._tool_providers
        tools = {c.args[0].name: c.args[0] for c in server._mcp.add_tool.call_args_list}
        assert set(tools) == {"listPets", "createPet", "showPetById", "deletePet", "getInventory"}
        assert isinstance(tools["deletePet"], ProviderTool)
        assert tools["deletePet"].annotations.destructiveHint is True
        assert tools["listPets"].annotations.readOnlyHint is True
        assert tools["listPets"].parameters["properties"] == {"limit": {"type": "integer"}}

    def test_resources_and_templates_registered(self, petstore):
        # Arrange
        server = FastMcpServerAdapter()
        server._mcp = MagicMock()

        # Act
        server.add_resource_provider(OpenApiResourceProvider(petstore, OpenApiProxyConfig()))

        # Assert
        uris = [c.args[0] for c in server._mcp.resource.call_args_list]
        assert uris == [f"{BASE_URL}/v1/pets/{{petId}}", f"{BASE_URL}/v1/inventory"]
        first = server._mcp.resource.call_args_list[0]
        assert first.kwargs["name"] == "showPetById"
        assert first.kwargs["mime_type"] == "application/json"

    def test_template_with_non_identifier_variable_skipped(self):
        """Templates whose variables cannot be Python parameters are not registered."""
        # Arrange
        document = {
            "openapi": "3.0.0",
            "servers": [{"url": BASE_URL}],
            "paths": {
                "/files/{file-id}": {
                    "get": {
                        "parameters": [{"name": "file-id", "in": "path", "required": True}],
                        "responses": {},
                    }
                }
            },
        }
        server = FastMcpServerAdapter()
        server._mcp = MagicMock()

        # Act
        server.add_resource_provider(
            OpenApiResourceProvider(OpenApiSpec.load(document), OpenApiProxyConfig())
        )

        # Assert
        assert not server._mcp.resource.called

    def test_unsupported_transport(self):
        with pytest.raises(ValueError, match="Unsupported transport"):
            FastMcpServerAdapter().start(transport="carrier-pigeon")


@pytest.mark.integration
class TestContentBlocks:
    """Test envelope to MCP content conversion."""

    def test_text_and_resource_items(self):
        # Act
        blocks = to_content_blocks(
            {
                "content": [
                    {"type": "text", "text": "hello"},
                    {
                        "type": "resource",
                        "resource": {
                            "uri": f"{BASE_URL}/pets",
                            "mimeType": "application/json",
                            "text": "[]",
                        },
                    },
                ]
            }
        )

        # Assert
        assert isinstance(blocks[0], TextContent)
        assert blocks[0].text == "hello"
        assert isinstance(blocks[1], EmbeddedResource)
        assert blocks[1].resource.text == "[]"
        assert blocks[1].resource.mimeType == "application/json"


@pytest.mark.integration
class TestServerRoundTrip:
    """Drive the server through an in-memory MCP client."""

    @pytest.fixture
    def server(self, petstore, recording_transport):
        def handler(request):
            if request.url.path.endswith("/inventory"):
                return httpx.Response(200, json={"available": 3})
            if request.method == "POST":
                return httpx.Response(201, json=json.loads(request.content))
            return httpx.Response(404, text="pet not found")

        transport = recording_transport(handler)
        adapter = FastMcpServerAdapter("petstore")
        config = OpenApiProxyConfig()
        adapter.add_tool_provider(OpenApiToolProvider(petstore, config, transport=transport))
        adapter.add_resource_provider(
            OpenApiResourceProvider(petstore, config, transport=transport)
        )
        return adapter

    async def test_list_tools(self, server):
        async with Client(server.mcp) as client:
            tools = await client.list_tools()

        names = {tool.name for tool in tools}
        assert names == {"listPets", "createPet", "showPetById", "deletePet", "getInventory"}

    async def test_call_tool(self, server):
        # Act
        async with Client(server.mcp) as client:
            result = await client.call_tool("createPet", {"name": "rex"})

        # Assert
        block = result.content[0]
        assert isinstance(block, EmbeddedResource)
        assert json.loads(block.resource.text) == {"name": "rex"}

    async def test_error_status_surfaces_as_tool_error(self, server):
        async with Client(server.mcp) as client:
            with pytest.raises(FastMcpToolError, match="pet not found"):
                await client.call_tool("showPetById", {"petId": "404"})

    async def test_read_static_resource(self, server):
        # Act
        async with Client(server.mcp) as client:
            contents = await client.read_resource(f"{BASE_URL}/v1/inventory")

        # Assert
        assert json.loads(contents[0].text) == {"available": 3}
