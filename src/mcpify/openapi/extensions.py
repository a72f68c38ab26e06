"""Vendor extension (``x-mcpify``) resolution.

An operation may carry an ``x-mcpify`` object that overrides how it is exposed:

    x-mcpify:
      operationId: findPets        # tool / resource name override
      ignore: resource             # 'resource', 'tool', or true (both)
      description: Find pets       # description override
      annotations:
        readOnlyHint: false
        destructiveHint: true      # folded into a change-safety override

The raw JSON is folded once into an immutable ``OperationExtensions`` record;
nothing downstream reads the raw value again.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from mcpify.core.logging import Log

from .safety import ChangeSafety, Delete, ReadOnly, Update

logger = logging.getLogger(__name__)

EXTENSION_KEY = "x-mcpify"

IgnoreScope = Literal["resource", "tool", True]


@dataclass(frozen=True)
class OperationExtensions:
    """Typed overrides attached to one operation."""

    operation_id: str | None = None
    ignore: IgnoreScope | None = None
    description: str | None = None
    safety: ChangeSafety | None = None

    def ignored_when(self, kind: Literal["resource", "tool"]) -> bool:
        """True when the operation must not be exposed as ``kind``."""
        return self.ignore is True or self.ignore == kind

    @property
    def is_mutable(self) -> bool:
        """True when a safety override declares anything but read-only."""
        return self.safety is not None and not isinstance(self.safety, ReadOnly)


def _resolve_safety(annotations: Mapping[str, Any]) -> ChangeSafety | None:
    if "readOnlyHint" not in annotations and "destructiveHint" not in annotations:
        return None
    if annotations.get("readOnlyHint") is True:
        return ReadOnly()
    if annotations.get("destructiveHint") is True:
        return Delete()
    return Update(idempotent=False)


def resolve_extensions(raw: Any, *, log: Log = logger) -> OperationExtensions:
    """Fold a raw extension value into an ``OperationExtensions`` record.

    Never raises: non-object input yields an empty record and unrecognized or
    malformed keys are dropped.

    Args:
        raw: Whatever JSON value the document attached under ``x-mcpify``
        log: Logger receiving notices about dropped values

    Returns:
        The resolved override record
    """
    if not isinstance(raw, Mapping):
        if raw is not None:
            log.debug(f"Ignoring non-object {EXTENSION_KEY} value: {raw!r}")
        return OperationExtensions()

    operation_id: str | None = None
    ignore: IgnoreScope | None = None
    description: str | None = None
    safety: ChangeSafety | None = None

    for key, value in raw.items():
        if key == "operationId":
            if isinstance(value, str) and value:
                operation_id = value
            else:
                log.warning(
                    f"Ignoring {EXTENSION_KEY}.operationId {value!r}: must be a non-empty string"
                )
        elif key == "ignore":
            if value is True or value in ("resource", "tool"):
                ignore = value
            else:
                log.debug(f"Ignoring unsupported {EXTENSION_KEY}.ignore value {value!r}")
        elif key == "description":
            if isinstance(value, str) and value:
                description = value
        elif key == "annotations":
            if isinstance(value, Mapping):
                safety = _resolve_safety(value)
        else:
            log.debug(f"Ignoring unknown {EXTENSION_KEY} key '{key}'")

    return OperationExtensions(
        operation_id=operation_id,
        ignore=ignore,
        description=description,
        safety=safety,
    )
