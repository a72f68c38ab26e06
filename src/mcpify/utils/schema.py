"""JSON Schema to pydantic model conversion for tool arguments."""

import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, create_model

from mcpify.core.mcp.validation import coerce_bool, coerce_float, coerce_int

_NON_IDENTIFIER = re.compile(r"\W+")


def _coerce_number(v: Any) -> Any:
    if isinstance(v, str):
        try:
            return int(v)
        except ValueError:
            return coerce_float(v)
    return v


def _optional(annotation: Any) -> Any:
    return Any if annotation is Any else annotation | None


def python_type_from_schema(schema: Mapping[str, Any] | None) -> Any:
    """Map a JSON Schema fragment onto a Python type annotation.

    Integer, number and boolean types accept their common string spellings.
    Anything unrecognized becomes ``Any``.
    """
    if not schema:
        return Any

    enum = schema.get("enum")
    if isinstance(enum, list) and enum and all(
        isinstance(v, (str, int, float, bool)) or v is None for v in enum
    ):
        return Literal[tuple(enum)]  # type: ignore[valid-type]

    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        concrete = [t for t in schema_type if t != "null"]
        if len(concrete) != 1:
            return Any
        inner = python_type_from_schema({**schema, "type": concrete[0]})
        return _optional(inner) if "null" in schema_type else inner

    if schema_type == "string":
        return str
    if schema_type == "integer":
        return Annotated[int, BeforeValidator(coerce_int)]
    if schema_type == "number":
        return Annotated[int | float, BeforeValidator(_coerce_number)]
    if schema_type == "boolean":
        return Annotated[bool, BeforeValidator(coerce_bool)]
    if schema_type == "array":
        items = schema.get("items")
        return list[python_type_from_schema(items if isinstance(items, Mapping) else None)]  # type: ignore[misc]
    if schema_type == "object" or "properties" in schema:
        return dict[str, Any]
    return Any


def model_name_for(name: str) -> str:
    base = _NON_IDENTIFIER.sub("_", name).strip("_") or "Operation"
    return f"{base}_Arguments"


def build_argument_model(name: str, schema: Mapping[str, Any]) -> type[BaseModel]:
    """Create a pydantic model validating a flat argument object.

    Property names are kept as field aliases so names that are not Python
    identifiers (``X-Request-Id``, ``page[size]``) survive. Unknown arguments
    are allowed through untouched.

    Args:
        name: Operation name, used for the model name
        schema: Object schema with ``properties`` and ``required``

    Returns:
        The generated model class
    """
    properties = schema.get("properties") or {}
    required = set(schema.get("required") or [])

    fields: dict[str, Any] = {}
    for index, (prop, prop_schema) in enumerate(properties.items()):
        sub = prop_schema if isinstance(prop_schema, Mapping) else {}
        annotation = python_type_from_schema(sub)
        description = sub.get("description") if isinstance(sub.get("description"), str) else None
        if prop in required:
            fields[f"param_{index}"] = (
                annotation,
                Field(..., alias=prop, description=description),
            )
        else:
            fields[f"param_{index}"] = (
                _optional(annotation),
                Field(None, alias=prop, description=description),
            )

    return create_model(  # type: ignore[call-overload, no-any-return]
        model_name_for(name),
        __config__=ConfigDict(
            populate_by_name=True,
            extra="allow",
            coerce_numbers_to_str=True,
        ),
        **fields,
    )


def validate_arguments(model: type[BaseModel], arguments: Mapping[str, Any]) -> dict[str, Any]:
    """Validate ``arguments`` and return them keyed by their original names.

    Only arguments the caller actually supplied are returned.

    Raises:
        pydantic.ValidationError: If any argument is invalid
    """
    validated = model.model_validate(dict(arguments))
    return validated.model_dump(by_alias=True, exclude_unset=True)
