"""Loading, validating and dereferencing OpenAPI documents."""

import copy
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

import httpx
import yaml

from mcpify.core.logging import Log
from mcpify.core.mcp.exceptions import SpecError

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://example.com"


def _parse_text(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SpecError(f"not valid JSON or YAML: {e}", source) from e


def _fetch(url: str, transport: httpx.BaseTransport | None) -> str:
    client_config: dict[str, Any] = {"timeout": 30.0, "follow_redirects": True}
    if transport is not None:
        client_config["transport"] = transport
    try:
        with httpx.Client(**client_config) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.text
    except httpx.HTTPError as e:
        raise SpecError(f"failed to fetch: {e}", url) from e


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        # Inline documents can exceed the file name length limit
        return False


def load_document(
    source: Mapping[str, Any] | str | Path,
    *,
    transport: httpx.BaseTransport | None = None,
    log: Log = logger,
) -> dict[str, Any]:
    """Read a raw OpenAPI document.

    Args:
        source: A parsed mapping, a local JSON/YAML file, an http(s) URL, or
            raw JSON/YAML text
        transport: Custom httpx transport for URL sources
        log: Logger receiving load diagnostics

    Returns:
        The parsed (not yet validated) document

    Raises:
        SpecError: If the source cannot be read or parsed
    """
    if isinstance(source, Mapping):
        return copy.deepcopy(dict(source))

    text_source = str(source)
    if text_source.startswith(("http://", "https://")):
        log.info(f"Fetching OpenAPI document from {text_source}")
        document = _parse_text(_fetch(text_source, transport), text_source)
    else:
        path = Path(text_source).expanduser()
        if isinstance(source, Path) or _is_file(path):
            log.info(f"Reading OpenAPI document from {path}")
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise SpecError(f"cannot read file: {e}", text_source) from e
            document = _parse_text(text, text_source)
        else:
            document = _parse_text(text_source, "<inline>")

    if not isinstance(document, dict):
        raise SpecError("document root must be an object", _label(source))
    return document


def _label(source: Any) -> str:
    text = str(source)
    return text if len(text) <= 80 else "<inline>"


def validate_document(document: Mapping[str, Any], source: str | None = None) -> None:
    """Check the document is an OpenAPI 3.x description with paths.

    Raises:
        SpecError: On any structural problem
    """
    if "swagger" in document:
        raise SpecError(
            f"Swagger {document['swagger']} is not supported; convert the document to OpenAPI 3",
            source,
        )
    version = document.get("openapi")
    if not isinstance(version, str) or not version.startswith("3."):
        raise SpecError(f"unsupported or missing 'openapi' version: {version!r}", source)
    paths = document.get("paths")
    if not isinstance(paths, Mapping):
        raise SpecError("'paths' must be an object", source)
    for path, item in paths.items():
        if not isinstance(item, Mapping):
            raise SpecError(f"path item '{path}' must be an object", source)


def _resolve_pointer(document: Mapping[str, Any], ref: str) -> Any:
    node: Any = document
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, Mapping) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def dereference(document: dict[str, Any], *, log: Log = logger) -> dict[str, Any]:
    """Inline every local ``#/...`` reference.

    Sibling keys next to a ``$ref`` are merged over the resolved target. A
    reference that points back into its own expansion is replaced by an empty
    schema, and external or dangling references are left in place.
    """

    def walk(node: Any, active: tuple[str, ...]) -> Any:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                if not ref.startswith("#/"):
                    log.warning(f"Leaving external reference unresolved: {ref}")
                    return node
                if ref in active:
                    log.warning(f"Cyclic reference {ref}; replacing with an empty schema")
                    return {}
                target = _resolve_pointer(document, ref)
                if target is None:
                    log.warning(f"Dangling reference {ref}")
                    return node
                resolved = walk(copy.deepcopy(target), (*active, ref))
                siblings = {k: walk(v, active) for k, v in node.items() if k != "$ref"}
                if isinstance(resolved, dict):
                    return {**resolved, **siblings}
                return resolved
            return {k: walk(v, active) for k, v in node.items()}
        if isinstance(node, list):
            return [walk(item, active) for item in node]
        return node

    return walk(document, ())  # type: ignore[no-any-return]


def resolve_server_url(
    *server_lists: Any,
    origin: str | None = None,
    log: Log = logger,
) -> str:
    """Pick the first declared server URL, substituting variable defaults.

    Args:
        *server_lists: ``servers`` arrays in precedence order (operation, path item, document)
        origin: URL the document was fetched from, used to resolve relative server URLs
        log: Logger receiving the resolution result

    Returns:
        The server URL without a trailing slash
    """
    for servers in server_lists:
        if not isinstance(servers, list) or not servers:
            continue
        server = servers[0]
        if not isinstance(server, Mapping) or not isinstance(server.get("url"), str):
            continue
        url: str = server["url"]
        variables = server.get("variables") or {}
        for name, variable in variables.items():
            if isinstance(variable, Mapping) and "default" in variable:
                url = url.replace(f"{{{name}}}", str(variable["default"]))
        if origin and not url.startswith(("http://", "https://")):
            url = urljoin(origin, url)
        return url.rstrip("/")

    log.warning(f"No servers declared; falling back to {DEFAULT_SERVER_URL}")
    return DEFAULT_SERVER_URL
