"""OpenAPI proxy configuration."""

from dataclasses import dataclass

from mcpify import __version__


@dataclass
class OpenApiProxyConfig:
    """Configuration for the OpenAPI proxy server."""

    base_url: str | None = None
    headers: dict[str, str] | None = None
    timeout: float = 30.0
    verify_ssl: bool = True
    proxy_url: str | None = None

    def __post_init__(self) -> None:
        """Initialize default identification headers under any configured ones."""
        defaults = {"User-Agent": f"mcpify/{__version__}"}
        self.headers = {**defaults, **(self.headers or {})}
