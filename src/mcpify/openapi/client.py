"""Invoking operations over HTTP.

``OperationClient`` composes the adapter pipeline for one operation:
argument validation, bucketing, request construction, the network call and
response translation.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from mcpify.core.logging import Log
from mcpify.core.mcp.exceptions import RequestBuildError, ResourceError, ToolError
from mcpify.core.mcp.validation import format_validation_errors
from mcpify.utils.schema import build_argument_model, validate_arguments

from .bucketing import bucket_arguments
from .operation import OperationView
from .request import RequestDescriptor, build_request
from .response import (
    ResourceEnvelope,
    ToolEnvelope,
    translate_resource_response,
    translate_tool_response,
)

logger = logging.getLogger(__name__)


class OperationClient:
    """Calls one operation and translates its responses."""

    def __init__(
        self,
        view: OperationView,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        proxy_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        log: Log = logger,
    ):
        """Initialize the client.

        Args:
            view: The operation this client invokes
            base_url: Server URL override
            headers: Static headers sent with every request
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify TLS certificates
            proxy_url: Outbound HTTP proxy
            transport: Custom httpx transport (mock transports in tests)
            log: Logger receiving invocation diagnostics
        """
        self._view = view
        self._base_url = base_url
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._proxy_url = proxy_url
        self._transport = transport
        self._log = log
        self._model: type[BaseModel] | None = None

    @property
    def view(self) -> OperationView:
        return self._view

    @property
    def argument_model(self) -> type[BaseModel] | None:
        """Pydantic model for the operation's arguments, None when unconstrained."""
        if self._model is None and self._view.parameter_schema is not None:
            self._model = build_argument_model(self._view.id, self._view.parameter_schema)
        return self._model

    def validate(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        """Validate and normalize arguments.

        Raises:
            ValidationError: If arguments do not match the operation's schema
        """
        model = self.argument_model
        if model is None:
            return dict(arguments)
        return validate_arguments(model, arguments)

    def build(self, arguments: Mapping[str, Any]) -> RequestDescriptor:
        """Bucket ``arguments`` and build the request without sending it."""
        bucketed = bucket_arguments(self._view, arguments, log=self._log)
        return build_request(
            self._view,
            bucketed,
            base_url=self._base_url,
            headers=self._headers,
            log=self._log,
        )

    async def fetch(self, request: RequestDescriptor) -> httpx.Response:
        """Send a request descriptor and read the whole response.

        Raises:
            httpx.HTTPError: On transport failures
        """
        client_config: dict[str, Any] = {
            "timeout": self._timeout,
            "verify": self._verify_ssl,
            "follow_redirects": True,
        }
        if self._proxy_url:
            client_config["proxy"] = self._proxy_url
        if self._transport is not None:
            client_config["transport"] = self._transport

        self._log.info(f"{request.method} {request.url}")
        async with httpx.AsyncClient(**client_config) as client:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        self._log.debug(f"{request.method} {request.url} -> {response.status_code}")
        return response

    async def invoke(self, arguments: Mapping[str, Any]) -> ToolEnvelope:
        """Invoke the operation as a tool call.

        Invalid arguments and HTTP error statuses come back as error envelopes.

        Raises:
            ToolError: If the request cannot be built or sent
        """
        name = self._view.id
        try:
            validated = self.validate(arguments)
        except ValidationError as e:
            message = format_validation_errors(e, f"arguments for {name}")
            self._log.info(message)
            return ToolEnvelope.error(message)

        try:
            request = self.build(validated)
        except RequestBuildError as e:
            raise ToolError(name, str(e)) from e

        try:
            response = await self.fetch(request)
        except httpx.TimeoutException as e:
            raise ToolError(name, f"Request timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ToolError(name, f"HTTP request failed: {e}") from e

        return translate_tool_response(response, self._view, log=self._log)

    async def read(
        self, arguments: Mapping[str, Any], *, uri: str | None = None
    ) -> ResourceEnvelope:
        """Read the operation as a resource.

        Args:
            arguments: Path arguments extracted from the resource URI
            uri: Resource URI, used in error messages

        Raises:
            ResourceError: If the request cannot be built or sent
        """
        target = uri or self._view.path
        try:
            request = self.build(arguments)
        except RequestBuildError as e:
            raise ResourceError(target, str(e)) from e

        try:
            response = await self.fetch(request)
        except httpx.TimeoutException as e:
            raise ResourceError(target, f"Request timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ResourceError(target, f"HTTP request failed: {e}") from e

        return translate_resource_response(response, self._view, log=self._log)
