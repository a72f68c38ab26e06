"""Routing flat tool arguments back to their HTTP locations.

The merged argument schema flattens path, query, header and cookie parameters
and request-body properties into one namespace. ``bucket_arguments`` inverts
that: declared parameters claim their names first and whatever is left over
becomes the request body (JSON) or form fields.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from mcpify.core.logging import Log

from .operation import OperationView, is_form_media_type

logger = logging.getLogger(__name__)

# Argument names that never become body fields on their own
RESERVED_KEYS: frozenset[str] = frozenset({"body", "formData", "auth", "server"})

FormPairs = list[tuple[str, str]]


@dataclass
class BucketedArguments:
    """Arguments partitioned by transport location.

    At most one of ``body`` and ``form_data`` is set, and exactly one when the
    operation declares a request body.
    """

    path: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    header: dict[str, Any] = field(default_factory=dict)
    cookie: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    form_data: FormPairs | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "query": self.query,
            "header": self.header,
            "cookie": self.cookie,
        }
        if self.body is not None:
            data["body"] = self.body
        if self.form_data is not None:
            data["formData"] = self.form_data
        return data


def scalar_text(value: Any) -> str:
    """Render a scalar the way it travels in URLs, headers and forms."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def append_form_data(pairs: FormPairs, key: str, value: Any) -> FormPairs:
    """Append ``value`` under ``key``, flattening containers.

    Lists repeat the key per element, mappings nest with bracket notation
    (``user[address][city]``) and None becomes an empty value.
    """
    if isinstance(value, Mapping):
        for k, v in value.items():
            append_form_data(pairs, f"{key}[{k}]", v)
    elif isinstance(value, (list, tuple)):
        for item in value:
            append_form_data(pairs, key, item)
    else:
        pairs.append((key, scalar_text(value)))
    return pairs


def flatten_pairs(values: Mapping[str, Any]) -> FormPairs:
    """Flatten a mapping into ordered key/value pairs for query strings and forms."""
    pairs: FormPairs = []
    for key, value in values.items():
        append_form_data(pairs, key, value)
    return pairs


def bucket_arguments(
    view: OperationView,
    arguments: Mapping[str, Any],
    *,
    log: Log = logger,
) -> BucketedArguments:
    """Partition a flat argument map by the operation's parameter locations.

    The input mapping is never modified.

    Args:
        view: The operation being invoked
        arguments: Flat, already validated tool arguments
        log: Logger receiving bucketing diagnostics

    Returns:
        The bucketed arguments
    """
    bucketed = BucketedArguments()
    buckets: dict[str, dict[str, Any]] = {
        "path": bucketed.path,
        "query": bucketed.query,
        "header": bucketed.header,
        "cookie": bucketed.cookie,
    }

    consumed: set[str] = set()
    for param in view.parameters:
        consumed.add(param.name)
        value = arguments.get(param.name)
        if value is None:
            continue
        buckets[param.location][param.name] = value

    leftovers = {
        k: v for k, v in arguments.items() if k not in consumed and k not in RESERVED_KEYS
    }

    if not view.source.has_request_body:
        if leftovers:
            log.debug(
                f"Dropping undeclared arguments for {view.describe()}: {', '.join(leftovers)}"
            )
        return bucketed

    explicit = arguments.get("body") if "body" not in consumed else None
    content_type = view.source.content_type

    if is_form_media_type(content_type):
        fields: dict[str, Any] = {}
        if isinstance(explicit, Mapping):
            fields.update(explicit)
        elif explicit is not None:
            log.warning(f"Ignoring non-object body for form-encoded {view.describe()}")
        fields.update(leftovers)
        bucketed.form_data = flatten_pairs(fields)
    elif explicit is None:
        bucketed.body = leftovers
    elif isinstance(explicit, Mapping):
        bucketed.body = {**explicit, **leftovers}
    else:
        if leftovers:
            log.debug(
                f"Explicit {type(explicit).__name__} body for {view.describe()}; "
                f"dropping {', '.join(leftovers)}"
            )
        bucketed.body = explicit

    log.debug(f"Bucketed arguments for {view.describe()} ({content_type}): {bucketed.to_dict()}")
    return bucketed
