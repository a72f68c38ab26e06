"""Operations as loaded from a document, and the immutable view built over them."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from mcpify.core.logging import Log

from .extensions import OperationExtensions, resolve_extensions
from .parameters import ParameterDescriptor, build_parameter_schema
from .safety import ChangeSafety, HttpVerb, ToolHints, describe_safety, hints_for

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
TEXT_MEDIA_TYPE = "text/plain"

ResponseType = Literal["application/json", "application/x-www-form-urlencoded", "text/plain"]

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def is_json_media_type(media_type: str) -> bool:
    """True for ``application/json`` and JSON-compatible types like ``application/problem+json``."""
    return "json" in media_type.lower()


def is_form_media_type(media_type: str) -> bool:
    return media_type.lower().startswith(FORM_MEDIA_TYPE)


def select_media_type(content: Mapping[str, Any]) -> str | None:
    """Pick the preferred media type of a ``content`` map.

    ``application/json`` first, then any JSON-compatible type, then whatever is
    declared first.
    """
    if not content:
        return None
    if JSON_MEDIA_TYPE in content:
        return JSON_MEDIA_TYPE
    for media_type in content:
        if is_json_media_type(media_type):
            return media_type
    return next(iter(content))


def sanitize_id(value: str) -> str:
    """Reduce a name to the characters MCP accepts in tool names."""
    return _UNSAFE_ID_CHARS.sub("_", value).strip("_") or "operation"


def derive_operation_id(method: str, path: str) -> str:
    """Name an operation that carries no ``operationId`` (``GET /pets/{id}`` -> ``get_pets_id``)."""
    return sanitize_id(f"{method.lower()}_{path.strip('/')}")


@dataclass
class SourceOperation:
    """One operation as extracted from a dereferenced OpenAPI document."""

    method: str
    path: str
    parameters: list[ParameterDescriptor] = field(default_factory=list)
    request_body: Mapping[str, Any] | None = None
    responses: Mapping[str, Any] = field(default_factory=dict)
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    extensions: Any = None
    base_url: str = ""

    @property
    def has_request_body(self) -> bool:
        return self.request_body is not None

    @property
    def request_content(self) -> Mapping[str, Any]:
        if not self.request_body:
            return {}
        content = self.request_body.get("content")
        return content if isinstance(content, Mapping) else {}

    @property
    def body_required(self) -> bool:
        return bool(self.request_body and self.request_body.get("required"))

    @property
    def content_type(self) -> str:
        """Declared request media type, falling back to ``application/json``."""
        return select_media_type(self.request_content) or JSON_MEDIA_TYPE

    @property
    def request_body_schema(self) -> Mapping[str, Any] | None:
        """Schema of the selected request media type, falling back to the JSON schema."""
        content = self.request_content
        for media_type in (self.content_type, JSON_MEDIA_TYPE):
            media = content.get(media_type)
            if isinstance(media, Mapping) and isinstance(media.get("schema"), Mapping):
                return media["schema"]  # type: ignore[no-any-return]
        return None

    @property
    def response_media_types(self) -> list[str]:
        media_types: list[str] = []
        for response in self.responses.values():
            if isinstance(response, Mapping) and isinstance(response.get("content"), Mapping):
                media_types.extend(m for m in response["content"] if m not in media_types)
        return media_types

    @property
    def status_codes(self) -> list[str]:
        return [str(code) for code in self.responses]

    def response_schema(self, code: str | int, *, log: Log = logger) -> Mapping[str, Any] | None:
        """Response schema for a status code, falling back to ``default``."""
        code = str(code)
        schema = self._extract_response_schema(code, log)
        if schema is None and code != "default":
            schema = self._extract_response_schema("default", log)
        return schema

    def _extract_response_schema(self, code: str, log: Log) -> Mapping[str, Any] | None:
        response = self.responses.get(code)
        if not isinstance(response, Mapping):
            log.debug(f"No response found for status code {code}")
            return None
        content = response.get("content")
        if not isinstance(content, Mapping):
            return None
        media_type = select_media_type(content)
        media = content.get(media_type) if media_type else None
        if isinstance(media, Mapping) and isinstance(media.get("schema"), Mapping):
            return media["schema"]  # type: ignore[no-any-return]
        log.debug(f"No schema for response {code} ({media_type})")
        return None


@dataclass(frozen=True)
class OperationView:
    """Immutable, classified view of one operation.

    Built once per operation at load time and shared by every invocation.
    """

    source: SourceOperation = field(compare=False)
    verb: HttpVerb
    extensions: OperationExtensions
    parameter_schema: dict[str, Any] | None = field(compare=False)

    @classmethod
    def from_source(
        cls,
        source: SourceOperation,
        *,
        open_world: bool = True,
        log: Log = logger,
    ) -> "OperationView | None":
        """Classify a source operation.

        Returns:
            The view, or None when the method is not a supported verb
        """
        verb = HttpVerb.parse(source.method, open_world=open_world, log=log)
        if verb is None:
            return None
        schema = build_parameter_schema(
            source.parameters,
            source.request_body_schema,
            body_required=source.body_required,
            log=log,
        )
        return cls(
            source=source,
            verb=verb,
            extensions=resolve_extensions(source.extensions, log=log),
            parameter_schema=schema,
        )

    @property
    def path(self) -> str:
        return self.source.path

    @property
    def parameters(self) -> list[ParameterDescriptor]:
        return self.source.parameters

    @property
    def is_resource(self) -> bool:
        """True for GET operations addressable purely by URI.

        Requires only path parameters, no request body, and no extension that
        ignores the resource form or declares a mutating safety.
        """
        if self.verb.verb != "get":
            return False
        if any(p.location != "path" for p in self.source.parameters):
            return False
        if self.source.has_request_body:
            return False
        return not (self.extensions.ignored_when("resource") or self.extensions.is_mutable)

    def ignored_when(self, kind: Literal["resource", "tool"]) -> bool:
        return self.extensions.ignored_when(kind)

    @property
    def id(self) -> str:
        if self.extensions.operation_id:
            return sanitize_id(self.extensions.operation_id)
        if self.source.operation_id:
            return sanitize_id(self.source.operation_id)
        return derive_operation_id(self.source.method, self.source.path)

    @property
    def description(self) -> str:
        if self.extensions.description:
            return self.extensions.description
        parts = [p for p in (self.source.summary, self.source.description) if p]
        if not parts:
            return self.describe()
        return " - ".join(parts)

    @property
    def preferred_response_content_type(self) -> ResponseType:
        """JSON if anything JSON is declared, else form-urlencoded, else plain text."""
        declared = [*self.source.request_content, *self.source.response_media_types]
        if any(is_json_media_type(m) for m in declared):
            return JSON_MEDIA_TYPE
        if any(is_form_media_type(m) for m in declared):
            return FORM_MEDIA_TYPE
        return TEXT_MEDIA_TYPE

    @property
    def safety(self) -> ChangeSafety:
        """Change safety, taking an extension override over the verb's own."""
        return self.extensions.safety or self.verb.change

    @property
    def hints(self) -> ToolHints:
        return hints_for(self.safety, self.verb.open_world)

    def describe_safety(self) -> str:
        return describe_safety(self.safety, self.verb.open_world)

    def describe(self) -> str:
        return f"{self.verb.uppercase} {self.source.path}"

    def is_text_response(self, *, log: Log = logger) -> bool:
        """False when the success response schema declares ``format: binary``."""
        schema = self.source.response_schema("200", log=log)
        if schema is None:
            return True
        return schema.get("format") != "binary"
