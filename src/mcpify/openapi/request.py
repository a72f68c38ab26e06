"""Building concrete HTTP request descriptors from bucketed arguments."""

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

from mcpify.core.logging import Log
from mcpify.core.mcp.exceptions import MissingPathParameterError

from .bucketing import BucketedArguments, flatten_pairs, scalar_text
from .operation import (
    FORM_MEDIA_TYPE,
    JSON_MEDIA_TYPE,
    TEXT_MEDIA_TYPE,
    OperationView,
    is_json_media_type,
)

logger = logging.getLogger(__name__)

_TEMPLATE_VARIABLE = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class RequestDescriptor:
    """A fully resolved outbound request. Building one never touches the network."""

    url: str
    method: str
    headers: dict[str, str] = field(default_factory=dict, hash=False)
    body: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "body": self.body,
        }


def normalize_base_url(base_url: str) -> str:
    return base_url[:-1] if base_url.endswith("/") else base_url


def simple_style(value: Any, encode: Callable[[str], str] = str) -> str:
    """Serialize a parameter value in OpenAPI ``simple`` style.

    Arrays become ``a,b`` and objects ``k1,v1,k2,v2``.
    """
    if isinstance(value, (list, tuple)):
        return ",".join(encode(scalar_text(v)) for v in value)
    if isinstance(value, Mapping):
        return ",".join(
            f"{encode(str(k))},{encode(scalar_text(v))}" for k, v in value.items()
        )
    return encode(scalar_text(value))


def _path_segment(value: Any) -> str:
    return simple_style(value, lambda text: quote(text, safe=""))


def _string_body_type(view: OperationView) -> str:
    declared = view.source.content_type if view.source.has_request_body else None
    if declared and not is_json_media_type(declared):
        return declared
    return TEXT_MEDIA_TYPE


def expand_path(path: str, values: Mapping[str, Any], *, operation: str = "") -> str:
    """Expand ``{name}`` variables, percent-encoding every value.

    Raises:
        MissingPathParameterError: If a template variable has no value
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values or values[name] is None:
            raise MissingPathParameterError(operation or path, name)
        return _path_segment(values[name])

    return _TEMPLATE_VARIABLE.sub(replace, path)


def append_query(url: str, query: Mapping[str, Any]) -> str:
    pairs = flatten_pairs(query)
    if not pairs:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(pairs)}"


def build_request(
    view: OperationView,
    bucketed: BucketedArguments,
    *,
    base_url: str | None = None,
    headers: Mapping[str, str] | None = None,
    log: Log = logger,
) -> RequestDescriptor:
    """Build the request descriptor for one invocation.

    Args:
        view: The operation being invoked
        bucketed: Arguments partitioned by location
        base_url: Server URL override; defaults to the operation's resolved server
        headers: Static headers applied before parameter headers
        log: Logger receiving request construction diagnostics

    Returns:
        The request descriptor

    Raises:
        MissingPathParameterError: If a path variable has no value
    """
    root = normalize_base_url(base_url if base_url is not None else view.source.base_url)
    log.debug(f"Base URL resolution result: {root or '(empty)'}")

    url = root + expand_path(view.path, bucketed.path, operation=view.id)
    url = append_query(url, bucketed.query)
    log.debug(f"URL constructed for {view.describe()}: {url}")

    request_headers: dict[str, str] = dict(headers or {})
    request_headers.update({k: simple_style(v) for k, v in bucketed.header.items()})
    if bucketed.cookie:
        request_headers["Cookie"] = "; ".join(
            f"{k}={simple_style(v)}" for k, v in bucketed.cookie.items()
        )

    body: str | None = None
    if bucketed.body is not None:
        if isinstance(bucketed.body, str):
            body = bucketed.body
            if not any(name.lower() == "content-type" for name in request_headers):
                request_headers["Content-Type"] = _string_body_type(view)
        else:
            body = json.dumps(bucketed.body, separators=(",", ":"))
            request_headers["Content-Type"] = JSON_MEDIA_TYPE
    elif bucketed.form_data is not None:
        body = urlencode(bucketed.form_data)
        request_headers["Content-Type"] = FORM_MEDIA_TYPE

    return RequestDescriptor(
        url=url,
        method=view.verb.uppercase,
        headers=request_headers,
        body=body,
    )
