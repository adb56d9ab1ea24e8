"""
Speckit GitHub MCP Server

A Model Context Protocol server that mirrors speckit tasks as GitHub issues
and exposes authenticated GitHub operations using FastMCP.

Services are wired once at startup: the credential is resolved from
configuration, the GitHub handle is built and verified, and every tool call
afterwards goes through the tool registry.
"""

import sys
import traceback
from typing import Any, Dict, Optional

from loguru import logger
from mcp.server.fastmcp import FastMCP

from .config import Config
from .exceptions import ClassifiedError, ErrorKind
from .models import AuthMode
from .services import AuthStrategy, GitHubClient, IssueConverter, OAuthFlow
from .tools import (
    ConfigToolHandlers,
    GitHubToolHandlers,
    ToolRegistry,
    register_config_tools,
    register_github_tools,
)

# Loguru logger is configured in main.py


class SpeckitGitHubServer:
    """Main MCP server class with service organization."""

    def __init__(self, env_file: Optional[str] = None, config: Optional[Config] = None):
        """
        Initialize the Speckit GitHub MCP server.

        Args:
            env_file: Optional path to environment file
            config: Prebuilt configuration, loaded from the environment when omitted

        Raises:
            ConfigurationError: invalid configuration
            AuthError: credentials missing for the configured auth type
        """
        self.config = config or Config(env_file)
        self.mcp = FastMCP(self.config.server_name)
        self.registry = ToolRegistry()
        self.services: Dict[str, Any] = {}
        self._initialized = False

        self._initialize_services()
        self._register_tools()
        logger.info(f"Speckit GitHub MCP Server '{self.config.server_name}' created")

    def _initialize_services(self) -> None:
        """Initialize all services with dependency injection."""
        credential = self.config.get_credential()
        try:
            self.services['auth'] = AuthStrategy(self.config.timeout_seconds)
            self.services['github'] = GitHubClient(credential, self.config, self.services['auth'])
            self.services['converter'] = IssueConverter(self.services['github'])
            if credential.mode is AuthMode.OAUTH:
                self.services['oauth'] = OAuthFlow.from_config(self.config)
                if not credential.token:
                    authorize_url = self.services['oauth'].get_authorization_url()
                    logger.info(f"No GITHUB_OAUTH_TOKEN set; users can authorize at {authorize_url}")
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            raise ClassifiedError(ErrorKind.SYSTEM_ERROR, f"Failed to initialize services: {e}", cause=e)

    def _register_tools(self) -> None:
        """Register all MCP tools with the registry and FastMCP."""
        github_handlers = GitHubToolHandlers(self.config, self.services['github'], self.services['converter'])
        register_github_tools(self.mcp, self.registry, github_handlers)
        register_config_tools(self.mcp, self.registry, ConfigToolHandlers(self.config))
        logger.info(f"Registered {len(self.registry.list_tools())} MCP tools")

    async def initialize(self) -> None:
        """
        Build the authenticated GitHub handle and verify the identity.

        Raises:
            AuthError: the identity check failed
        """
        await self.services['github'].initialize()
        self._initialized = True
        logger.info(f"Authenticated to GitHub as {self.services['github'].login}")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Invoke a registered tool by name, as an MCP client would."""
        return await self.registry.invoke(name, arguments)

    def run(self, transport: str = 'stdio') -> None:
        """
        Run the MCP server.

        Args:
            transport: Transport type ('stdio' or 'sse')
        """
        try:
            if not self._initialized:
                raise ClassifiedError(ErrorKind.SYSTEM_ERROR, "Server not properly initialized")

            logger.info("Available tools:")
            for tool in self.registry.describe():
                logger.info(f"  • {tool['name']} - {tool['description']}")

            logger.info(f"Starting MCP server with {transport} transport...")
            self.mcp.run(transport=transport)

        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        except Exception as e:
            logger.error(f"Server error: {e}")
            logger.error(traceback.format_exc())
            sys.exit(1)
