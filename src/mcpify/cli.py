"""Command-line interface for mcpify."""

import json
from typing import Any

import click

from mcpify import __version__
from mcpify.api.mcp.server import FastMcpServerAdapter
from mcpify.core.config.settings import ProxySettings, get_settings
from mcpify.core.logging import configure_logging
from mcpify.core.mcp.exceptions import SpecError
from mcpify.core.mcp.protocols import McpServer
from mcpify.openapi.spec import OpenApiSpec
from mcpify.servers.openapi.config import OpenApiProxyConfig
from mcpify.servers.openapi.providers import OpenApiResourceProvider, OpenApiToolProvider
from mcpify.utils.xdg import get_log_file_path


def parse_headers(header: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options; the value may itself contain ``=``."""
    headers: dict[str, str] = {}
    for header_item in header:
        if "=" in header_item:
            key, value = header_item.split("=", 1)
            headers[key.strip()] = value.strip()
        else:
            click.echo(
                f"Warning: Ignoring invalid header format '{header_item}'. Use key=value format.",
                err=True,
            )
    return headers


def load_spec(spec: str | None, base_url: str | None, proxy_settings: ProxySettings) -> OpenApiSpec:
    source = spec or proxy_settings.spec
    if not source:
        raise click.UsageError("No OpenAPI document given. Use --spec or set OPENAPI_SPEC_URL.")
    try:
        return OpenApiSpec.load(
            source,
            base_url=base_url or proxy_settings.base_url,
            open_world=proxy_settings.open_world,
        )
    except SpecError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="mcpify")
def cli() -> None:
    """mcpify - expose OpenAPI operations as MCP tools and resources"""
    pass


@cli.command()
def info() -> None:
    """Show project information."""
    click.echo(f"mcpify v{__version__}")
    click.echo("mcpify - expose OpenAPI operations as MCP tools and resources")


@cli.command()
@click.option("--spec", "-s", help="Path or URL of the OpenAPI document (overrides OPENAPI_SPEC_URL)")
@click.option("--base-url", "-b", help="Server URL override (overrides BASE_URL)")
@click.option("--json", "as_json", is_flag=True, help="Print tool and resource definitions as JSON")
def inspect(spec: str | None, base_url: str | None, as_json: bool) -> None:
    """List the tools and resources an OpenAPI document produces."""
    settings = get_settings()
    api = load_spec(spec, base_url, settings.proxy)
    config = OpenApiProxyConfig(base_url=base_url or settings.proxy.base_url)
    tools = OpenApiToolProvider(api, config)
    resources = OpenApiResourceProvider(api, config)

    if as_json:
        payload: dict[str, Any] = {
            "tools": tools.get_tools(),
            "resources": resources.get_resources(),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(f"{api.title} {api.version}".rstrip())
    click.echo(f"Server: {config.base_url or api.base_url}")

    click.echo(f"\nTools ({len(api.tools)}):")
    for view in api.tools:
        click.echo(f"  • {view.id} [{view.describe_safety()}] {view.describe()}")

    click.echo(f"\nResources ({len(api.resources)}):")
    for resource in resources.get_resources():
        click.echo(f"  • {resource['name']} {resource.get('uri') or resource.get('uriTemplate')}")

    stats = api.safety_stats()
    click.echo(
        f"\nSafety: {stats['readonly']} readonly, {stats['update']} update "
        f"({stats['idempotent']} idempotent), {stats['destructive']} destructive"
    )


@cli.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--spec", "-s", help="Path or URL of the OpenAPI document (overrides OPENAPI_SPEC_URL)")
@click.option("--base-url", "-b", help="Server URL override (overrides BASE_URL)")
@click.option(
    "--transport", "-t", help="Transport type: http, stdio, sse (overrides TRANSPORT)"
)
@click.option("--host", help="Server host (overrides HOST)")
@click.option("--port", "-p", type=int, help="Server port (overrides PORT)")
@click.option("--path", help="Server path for HTTP transport (overrides MCP_PATH)")
@click.option(
    "--header",
    "-H",
    multiple=True,
    help="Additional HTTP headers to inject into all requests (format: key=value)",
)
@click.option("--log-level", "-l", help="Log level (overrides LOG_LEVEL)")
@click.option("--log-file", help="Log file path (overrides LOG_FILE)")
@click.option("--proxy", help="Proxy URL for outbound requests (overrides HTTP_PROXY_URL)")
@click.option("--timeout", type=float, help="Request timeout in seconds (overrides REQUEST_TIMEOUT)")
@click.option(
    "--verify-ssl/--no-verify-ssl",
    default=None,
    help="Verify SSL certificates (overrides VERIFY_SSL)",
)
def serve(
    spec: str | None,
    base_url: str | None,
    transport: str | None,
    host: str | None,
    port: int | None,
    path: str | None,
    header: tuple[str, ...],
    log_level: str | None,
    log_file: str | None,
    proxy: str | None,
    timeout: float | None,
    verify_ssl: bool | None,
) -> None:
    """Start an MCP server exposing an OpenAPI document.

    Every operation becomes a tool; GET operations addressed purely by path
    also become resources.

    Examples:
        mcpify serve -s ./petstore.yaml
        mcpify serve -s https://petstore3.swagger.io/api/v3/openapi.json -t stdio
        mcpify serve -s api.yaml -H "Authorization=Bearer token123"
    """
    settings = get_settings()
    proxy_settings = settings.proxy

    actual_transport = transport if transport is not None else proxy_settings.transport
    if actual_transport not in ("http", "stdio", "sse"):
        raise click.BadParameter(f"Unsupported transport: {actual_transport}", param_hint="--transport")
    actual_host = host if host is not None else proxy_settings.host
    actual_port = port if port is not None else proxy_settings.port
    actual_path = path if path is not None else proxy_settings.path
    actual_base_url = base_url if base_url is not None else proxy_settings.base_url

    configure_logging(
        log_level or settings.application.log_level,
        log_file or settings.application.log_file or get_log_file_path(),
    )

    api = load_spec(spec, actual_base_url, proxy_settings)

    config = OpenApiProxyConfig(
        base_url=actual_base_url,
        headers={**proxy_settings.auth_headers, **parse_headers(header)},
        timeout=timeout if timeout is not None else proxy_settings.request_timeout,
        verify_ssl=verify_ssl if verify_ssl is not None else proxy_settings.verify_ssl,
        proxy_url=proxy if proxy is not None else proxy_settings.proxy_url,
    )

    server: McpServer = FastMcpServerAdapter(settings.application.app_name)
    server.add_tool_provider(OpenApiToolProvider(api, config))
    server.add_resource_provider(OpenApiResourceProvider(api, config))

    # stdout belongs to the protocol on stdio
    click.echo(f"🚀 Starting {settings.application.app_name} MCP Server for {api.title}", err=True)
    click.echo(f"   Transport: {actual_transport}", err=True)
    if actual_transport == "http":
        click.echo(f"   Endpoint: http://{actual_host}:{actual_port}{actual_path}", err=True)
    elif actual_transport == "sse":
        click.echo(f"   Endpoint: http://{actual_host}:{actual_port}", err=True)
    click.echo(f"   Tools: {len(api.tools)}, Resources: {len(api.resources)}", err=True)

    server.start(transport=actual_transport, host=actual_host, port=actual_port, path=actual_path)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
