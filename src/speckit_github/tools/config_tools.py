"""
Configuration tools for the Speckit GitHub MCP Server.
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from mcp.server.fastmcp import FastMCP

from ..config import Config
from .github_tools import call_tool
from .registry import ToolDefinition, ToolRegistry, utc_timestamp
from .schemas import ConfigSetInput, ConfigStatusInput


class ConfigToolHandlers:
    """Handlers behind the configuration MCP tools."""

    def __init__(self, config: Config):
        self.config = config

    async def status(self, params: ConfigStatusInput) -> Dict[str, Any]:
        status = self.config.get_status()
        status["timestamp"] = utc_timestamp()
        return status

    async def set(self, params: ConfigSetInput) -> Dict[str, Any]:
        """
        Apply runtime configuration overrides.

        The default repository applies immediately. The GitHub handle is built
        once at startup, so credential and timeout changes are reported as
        pending until the server restarts. Secrets are never echoed back.
        """
        applied = self.config.apply_overrides(default_repo=params.repository, timeout_ms=params.timeout)

        pending: Dict[str, Any] = {}
        if params.auth_type != self.config.auth_type.value:
            pending["authType"] = params.auth_type
        if params.client_id:
            pending["clientId"] = params.client_id
        if params.client_secret:
            pending["clientSecret"] = "provided"
        if params.token:
            pending["token"] = "provided"
        if params.timeout is not None:
            pending["timeout"] = params.timeout

        if pending:
            logger.info(f"Configuration changes pending restart: {sorted(pending)}")

        return {
            "success": True,
            "applied": applied,
            "pendingRestart": pending,
            "config": self.config.get_status(),
            "message": (
                "Configuration updated. Authentication and timeout changes take effect "
                "when the server restarts."
                if pending else "Configuration updated."
            ),
            "timestamp": utc_timestamp(),
        }


def build_config_tools(handlers: ConfigToolHandlers) -> List[ToolDefinition]:
    return [
        ToolDefinition("config_status", "Get current configuration status", ConfigStatusInput, handlers.status),
        ToolDefinition("config_set", "Update server configuration", ConfigSetInput, handlers.set),
    ]


def register_config_tools(mcp: FastMCP, registry: ToolRegistry, handlers: ConfigToolHandlers) -> None:
    """Register configuration tools with the registry and the MCP server."""
    for tool in build_config_tools(handlers):
        registry.register(tool)

    @mcp.tool()
    async def config_status() -> dict:
        """Get current server configuration (no secrets)."""
        return await call_tool(registry, "config_status", {})

    @mcp.tool()
    async def config_set(
        authType: str,
        clientId: Optional[str] = None,
        clientSecret: Optional[str] = None,
        token: Optional[str] = None,
        repository: Optional[str] = None,
        timeout: Optional[int] = None
    ) -> dict:
        """
        Update server configuration.

        Args:
            authType: oauth, pat or app
            clientId: OAuth client ID
            clientSecret: OAuth client secret
            token: Personal access token or OAuth access token
            repository: Default repository in 'owner/repo' format
            timeout: Request timeout in milliseconds
        """
        return await call_tool(registry, "config_set", {
            "authType": authType,
            "clientId": clientId,
            "clientSecret": clientSecret,
            "token": token,
            "repository": repository,
            "timeout": timeout,
        })

    logger.info("Configuration tools registered")
