"""Errors raised while turning OpenAPI operations into MCP tools and resources."""


class McpError(Exception):
    """Base class for every mcpify error."""


class ToolError(McpError):
    """A tool call could not be carried out.

    Upstream HTTP error statuses are not ToolErrors; they come back as error
    envelopes.
    """

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class ResourceError(McpError):
    """A resource URI is unknown or its upstream read failed."""

    def __init__(self, uri: str, message: str):
        self.uri = uri
        super().__init__(f"Resource '{uri}' failed: {message}")


class SpecError(McpError):
    """Exception raised when an OpenAPI document cannot be loaded or validated."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        prefix = f"Invalid OpenAPI document '{source}'" if source else "Invalid OpenAPI document"
        super().__init__(f"{prefix}: {message}")


class RequestBuildError(McpError):
    """Exception raised when an outbound HTTP request cannot be constructed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Cannot build request for '{operation}': {message}")


class MissingPathParameterError(RequestBuildError):
    """A path template variable has no value in the path bucket."""

    def __init__(self, operation: str, parameter: str):
        self.parameter = parameter
        super().__init__(operation, f"missing required path parameter '{parameter}'")
