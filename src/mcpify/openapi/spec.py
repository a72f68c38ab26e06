"""A loaded OpenAPI document and the operations it exposes."""

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import httpx

from mcpify.core.logging import Log

from .extensions import EXTENSION_KEY
from .loader import dereference, load_document, resolve_server_url, validate_document
from .operation import OperationView, SourceOperation
from .parameters import ParameterDescriptor
from .safety import Delete, ReadOnly, Update

logger = logging.getLogger(__name__)

# Path item keys that are not operations
_PATH_ITEM_FIELDS = frozenset({"summary", "description", "servers", "parameters", "$ref"})


def _merge_parameters(
    path_level: Any, operation_level: Any, *, log: Log
) -> list[ParameterDescriptor]:
    merged: dict[tuple[str, str], ParameterDescriptor] = {}
    for raw in [*(path_level or []), *(operation_level or [])]:
        if not isinstance(raw, Mapping):
            continue
        descriptor = ParameterDescriptor.from_openapi(raw)
        if descriptor is None:
            log.debug(f"Skipping unsupported parameter {raw.get('name')!r} in {raw.get('in')!r}")
            continue
        # Operation-level parameters replace path-level ones with the same identity
        merged[(descriptor.location, descriptor.name)] = descriptor
    return list(merged.values())


class OpenApiSpec:
    """Operations extracted from one dereferenced OpenAPI 3 document."""

    def __init__(
        self,
        document: dict[str, Any],
        *,
        base_url: str | None = None,
        open_world: bool = True,
        source: str | None = None,
        log: Log = logger,
    ):
        """Initialize from an already validated and dereferenced document.

        Prefer ``from_document`` or ``load``.
        """
        self._document = document
        self._base_url = base_url
        self._open_world = open_world
        self._source = source
        self._log = log
        self._operations = self._build_operations()

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        *,
        base_url: str | None = None,
        open_world: bool = True,
        source: str | None = None,
        log: Log = logger,
    ) -> "OpenApiSpec":
        """Validate and dereference a parsed document.

        Raises:
            SpecError: If the document is not a usable OpenAPI 3 description
        """
        validate_document(document, source)
        return cls(
            dereference(dict(document), log=log),
            base_url=base_url,
            open_world=open_world,
            source=source,
            log=log,
        )

    @classmethod
    def load(
        cls,
        source: Mapping[str, Any] | str | Path,
        *,
        base_url: str | None = None,
        open_world: bool = True,
        transport: httpx.BaseTransport | None = None,
        log: Log = logger,
    ) -> "OpenApiSpec":
        """Load a document from a mapping, file, URL or raw text.

        Raises:
            SpecError: If the document cannot be read or is invalid
        """
        document = load_document(source, transport=transport, log=log)
        label = None if isinstance(source, Mapping) else str(source)
        return cls.from_document(
            document, base_url=base_url, open_world=open_world, source=label, log=log
        )

    @property
    def document(self) -> dict[str, Any]:
        return self._document

    @property
    def title(self) -> str:
        info = self._document.get("info") or {}
        return str(info.get("title") or "OpenAPI")

    @property
    def version(self) -> str:
        info = self._document.get("info") or {}
        return str(info.get("version") or "")

    @property
    def base_url(self) -> str:
        """Document-level server URL (or the configured override)."""
        if self._base_url:
            return self._base_url.rstrip("/")
        return resolve_server_url(
            self._document.get("servers"), origin=self._origin, log=self._log
        )

    @property
    def _origin(self) -> str | None:
        if self._source and self._source.startswith(("http://", "https://")):
            return self._source
        return None

    def _server_for(self, path_item: Mapping[str, Any], operation: Mapping[str, Any]) -> str:
        if self._base_url:
            return self._base_url.rstrip("/")
        return resolve_server_url(
            operation.get("servers"),
            path_item.get("servers"),
            self._document.get("servers"),
            origin=self._origin,
            log=self._log,
        )

    def _iter_sources(self) -> Iterator[SourceOperation]:
        paths = self._document.get("paths") or {}
        if not paths:
            self._log.warning("No paths found in the OpenAPI document")
        for path, path_item in paths.items():
            for method, operation in path_item.items():
                if method in _PATH_ITEM_FIELDS or method.startswith("x-"):
                    continue
                if not isinstance(operation, Mapping):
                    continue
                request_body = operation.get("requestBody")
                operation_id = operation.get("operationId")
                yield SourceOperation(
                    method=method,
                    path=path,
                    parameters=_merge_parameters(
                        path_item.get("parameters"), operation.get("parameters"), log=self._log
                    ),
                    request_body=request_body if isinstance(request_body, Mapping) else None,
                    responses=operation.get("responses") or {},
                    operation_id=operation_id if isinstance(operation_id, str) else None,
                    summary=operation.get("summary") or path_item.get("summary"),
                    description=operation.get("description") or path_item.get("description"),
                    extensions=operation.get(EXTENSION_KEY),
                    base_url=self._server_for(path_item, operation),
                )

    def _build_operations(self) -> list[OperationView]:
        views: list[OperationView] = []
        for source in self._iter_sources():
            view = OperationView.from_source(source, open_world=self._open_world, log=self._log)
            if view is not None:
                views.append(view)
        return views

    @property
    def operations(self) -> list[OperationView]:
        """Every supported operation, in document order."""
        return list(self._operations)

    def _unique(self, views: list[OperationView], kind: str) -> list[OperationView]:
        seen: set[str] = set()
        unique: list[OperationView] = []
        for view in views:
            if view.id in seen:
                self._log.warning(
                    f"Duplicate {kind} name '{view.id}' for {view.describe()}; keeping the first"
                )
                continue
            seen.add(view.id)
            unique.append(view)
        return unique

    @property
    def tools(self) -> list[OperationView]:
        """Operations exposed as tools."""
        return self._unique([v for v in self._operations if not v.ignored_when("tool")], "tool")

    @property
    def resources(self) -> list[OperationView]:
        """Operations exposed as resources or resource templates."""
        return self._unique([v for v in self._operations if v.is_resource], "resource")

    def get_operation(self, operation_id: str) -> OperationView | None:
        for view in self._operations:
            if view.id == operation_id:
                return view
        return None

    def resource_uri(self, view: OperationView, base_url: str | None = None) -> str:
        """URI (or URI template) a resource operation is published under."""
        return f"{(base_url or view.source.base_url).rstrip('/')}{view.path}"

    def safety_stats(self) -> dict[str, int]:
        """Count tools by change safety."""
        stats = {"total": 0, "readonly": 0, "update": 0, "idempotent": 0, "destructive": 0}
        for view in self.tools:
            stats["total"] += 1
            safety = view.safety
            if isinstance(safety, ReadOnly):
                stats["readonly"] += 1
            elif isinstance(safety, Update):
                stats["update"] += 1
                if safety.idempotent:
                    stats["idempotent"] += 1
            elif isinstance(safety, Delete):
                stats["destructive"] += 1
        return stats
