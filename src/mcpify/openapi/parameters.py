"""Parameter descriptors and the merged argument schema.

Tools take one flat argument object. The schema for that object is the union of
the operation's declared parameters (whatever their location) and the
properties of its request-body schema.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, get_args

from mcpify.core.logging import Log

logger = logging.getLogger(__name__)

ParameterLocation = Literal["path", "query", "header", "cookie"]

PARAMETER_LOCATIONS: frozenset[str] = frozenset(get_args(ParameterLocation))

# Property exposed when the request body is not an object
BODY_PROPERTY = "body"

_COMPOSITION_KEYS = ("allOf", "anyOf", "oneOf")


@dataclass(frozen=True)
class ParameterDescriptor:
    """One declared operation parameter."""

    name: str
    location: ParameterLocation
    required: bool = False
    schema: Mapping[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def from_openapi(cls, raw: Mapping[str, Any]) -> "ParameterDescriptor | None":
        """Build a descriptor from an OpenAPI parameter object.

        Returns None for objects without a name or with an unknown location.
        """
        name = raw.get("name")
        location = raw.get("in")
        if not isinstance(name, str) or location not in PARAMETER_LOCATIONS:
            return None
        schema = raw.get("schema")
        return cls(
            name=name,
            location=location,
            # Path parameters are always required by definition
            required=bool(raw.get("required")) or location == "path",
            schema=schema if isinstance(schema, Mapping) else None,
        )


def contains_ref(schema: Any) -> bool:
    """True when an unresolved ``$ref`` marker is found anywhere in ``schema``."""
    if isinstance(schema, Mapping):
        if "$ref" in schema:
            return True
        return any(contains_ref(v) for v in schema.values())
    if isinstance(schema, list):
        return any(contains_ref(v) for v in schema)
    return False


def _branches(schema: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    return [b for b in schema.get(key) or [] if isinstance(b, Mapping)]


def is_object_schema(schema: Mapping[str, Any]) -> bool:
    """True for schemas describing a JSON object.

    Compositions count when they can only produce objects: an ``allOf`` with an
    object branch and no other declared type, or an ``anyOf`` / ``oneOf`` whose
    branches are all objects.
    """
    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        return "object" in schema_type
    if schema_type is not None:
        return schema_type == "object"
    if "properties" in schema:
        return True

    all_of = _branches(schema, "allOf")
    if any(is_object_schema(b) for b in all_of) and not any(
        "type" in b and not is_object_schema(b) for b in all_of
    ):
        return True
    for key in ("anyOf", "oneOf"):
        branches = _branches(schema, key)
        if branches and all(is_object_schema(b) for b in branches):
            return True
    return False


def _union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for name in [*first, *second]:
        if name not in merged:
            merged.append(name)
    return merged


def _parameters_schema(parameters: Sequence[ParameterDescriptor]) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in parameters:
        # Parameters without a schema accept any value
        properties[param.name] = dict(param.schema) if param.schema else {}
        if param.required and param.name not in required:
            required.append(param.name)
    return {"type": "object", "properties": properties, "required": required}


def _object_members(schema: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Properties and required names of an object schema, compositions flattened.

    ``allOf`` branches contribute everything; ``anyOf`` / ``oneOf`` branches
    contribute their properties but only the names every branch requires.
    """
    properties = dict(schema.get("properties") or {})
    required = list(schema.get("required") or [])
    for branch in _branches(schema, "allOf"):
        branch_properties, branch_required = _object_members(branch)
        properties.update(branch_properties)
        required = _union(required, branch_required)
    for key in ("anyOf", "oneOf"):
        members = [_object_members(b) for b in _branches(schema, key)]
        if not members:
            continue
        for branch_properties, _ in members:
            for name, prop in branch_properties.items():
                properties.setdefault(name, prop)
        common = [n for n in members[0][1] if all(n in r for _, r in members[1:])]
        required = _union(required, common)
    return properties, required


def _body_schema(body_schema: Mapping[str, Any], body_required: bool) -> dict[str, Any]:
    if is_object_schema(body_schema):
        if not any(key in body_schema for key in _COMPOSITION_KEYS):
            # tool input schemas must declare the object type
            return {"type": "object", **body_schema}
        properties, required = _object_members(body_schema)
        flattened = {k: v for k, v in body_schema.items() if k not in _COMPOSITION_KEYS}
        flattened.update(type="object", properties=properties, required=required)
        return flattened
    return {
        "type": "object",
        "properties": {BODY_PROPERTY: dict(body_schema)},
        "required": [BODY_PROPERTY] if body_required else [],
    }


def build_parameter_schema(
    parameters: Sequence[ParameterDescriptor],
    body_schema: Mapping[str, Any] | None = None,
    *,
    body_required: bool = False,
    log: Log = logger,
) -> dict[str, Any] | None:
    """Merge parameters and a request-body schema into one object schema.

    Args:
        parameters: Declared parameters of every location
        body_schema: Dereferenced schema of the selected request-body media type
        body_required: Whether the request body itself is required
        log: Logger receiving merge diagnostics

    Returns:
        The merged object schema, or None when the operation takes no
        arguments at all (meaning "accept any arguments")
    """
    if contains_ref(body_schema) or any(contains_ref(p.schema) for p in parameters):
        log.error("Unexpected $ref in operation schema; expected a dereferenced document")
        return None

    params = _parameters_schema(parameters) if parameters else None
    body = _body_schema(body_schema, body_required) if body_schema else None

    if params is not None:
        log.debug(
            "Parameter properties: "
            + ", ".join(f"{p.name} ({p.location})" for p in parameters)
        )
    if body is not None:
        log.debug(f"Request body properties: {', '.join(body.get('properties') or {})}")

    if params is None and body is None:
        return None
    if body is None:
        return params
    if params is None:
        return body

    combined = {
        "type": "object",
        # Body properties win over same-named parameters
        "properties": {**params["properties"], **(body.get("properties") or {})},
        "required": _union(params["required"], body.get("required") or []),
    }
    log.debug(f"Combined schema properties: {', '.join(combined['properties'])}")
    return combined
