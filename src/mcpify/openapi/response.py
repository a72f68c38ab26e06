"""Translating HTTP responses into MCP result envelopes.

Tool calls produce ``{"content": [...]}`` and resource reads produce
``{"contents": [...]}``. Both carry ``isError: true`` when the upstream API
answered with a status of 400 or above.
"""

import base64
import json
import logging
from typing import Any, Literal
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field

from mcpify.core.logging import Log

from .operation import FORM_MEDIA_TYPE, JSON_MEDIA_TYPE, TEXT_MEDIA_TYPE, OperationView

logger = logging.getLogger(__name__)

BINARY_MEDIA_TYPE = "application/octet-stream"


class TextItem(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ResourceContents(BaseModel):
    """Contents of one resource. Exactly one of ``text`` and ``blob`` is set."""

    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str = Field(alias="mimeType")
    text: str | None = None
    blob: str | None = None


class ResourceItem(BaseModel):
    type: Literal["resource"] = "resource"
    resource: ResourceContents


class ToolEnvelope(BaseModel):
    """Result of a tool call."""

    model_config = ConfigDict(populate_by_name=True)

    is_error: bool | None = Field(None, alias="isError")
    content: list[TextItem | ResourceItem] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def error(cls, text: str) -> "ToolEnvelope":
        return cls(is_error=True, content=[TextItem(text=text)])


class ResourceEnvelope(BaseModel):
    """Result of a resource read."""

    model_config = ConfigDict(populate_by_name=True)

    is_error: bool | None = Field(None, alias="isError")
    contents: list[ResourceContents] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _resource_item(uri: str, mime_type: str, text: str) -> ResourceItem:
    return ResourceItem(resource=ResourceContents(uri=uri, mime_type=mime_type, text=text))


def translate_tool_response(
    response: httpx.Response,
    view: OperationView,
    *,
    log: Log = logger,
) -> ToolEnvelope:
    """Turn a fully read HTTP response into a tool result envelope.

    Args:
        response: The upstream response, body already read
        view: The invoked operation
        log: Logger receiving response diagnostics

    Returns:
        An error envelope for statuses >= 400 and undecodable JSON, otherwise
        resource items for JSON and form bodies or a text item for anything else
    """
    if response.status_code >= 400:
        log.warning(
            f"Error response from {view.describe()} ({response.status_code}): {response.text}"
        )
        return ToolEnvelope.error(response.text)

    uri = str(response.url)
    response_type = view.preferred_response_content_type
    log.info(f"Response from {view.describe()}: {response.status_code} ({response_type})")

    if not response.content:
        return ToolEnvelope(content=[TextItem(text="")])

    if response_type == JSON_MEDIA_TYPE:
        try:
            data = response.json()
        except ValueError as e:
            log.warning(f"Invalid JSON from {view.describe()}: {e}")
            return ToolEnvelope.error(f"Failed to decode JSON response: {e}\n{response.text}")
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        log.debug(f"Response body from {view.describe()}: {text}")
        return ToolEnvelope(content=[_resource_item(uri, JSON_MEDIA_TYPE, text)])

    if response_type == FORM_MEDIA_TYPE:
        fields = parse_qsl(response.text, keep_blank_values=True)
        return ToolEnvelope(
            content=[_resource_item(uri, FORM_MEDIA_TYPE, urlencode([pair])) for pair in fields]
        )

    log.debug(f"Response body from {view.describe()}: {response.text}")
    return ToolEnvelope(content=[TextItem(text=response.text)])


def translate_resource_response(
    response: httpx.Response,
    view: OperationView,
    *,
    log: Log = logger,
) -> ResourceEnvelope:
    """Turn a fully read HTTP response into a resource read envelope.

    Text responses are returned as strings; responses whose success schema
    declares ``format: binary`` are base64 encoded into ``blob``.
    """
    uri = str(response.url)
    mime_type = response.headers.get("content-type", TEXT_MEDIA_TYPE)

    if response.status_code >= 400:
        log.warning(
            f"Error response from {view.describe()} ({response.status_code}): {response.text}"
        )
        return ResourceEnvelope(
            is_error=True,
            contents=[ResourceContents(uri=uri, mime_type=mime_type, text=response.text)],
        )

    if view.is_text_response(log=log):
        return ResourceEnvelope(
            contents=[ResourceContents(uri=uri, mime_type=mime_type, text=response.text)]
        )

    if mime_type == TEXT_MEDIA_TYPE:
        mime_type = BINARY_MEDIA_TYPE
    blob = base64.b64encode(response.content).decode("ascii")
    log.debug(f"Binary response from {view.describe()}: {len(response.content)} bytes")
    return ResourceEnvelope(contents=[ResourceContents(uri=uri, mime_type=mime_type, blob=blob)])
