"""
MCP tools for the Speckit GitHub server.

Tool definitions are held in a ToolRegistry that validates input before any
service is touched; FastMCP wrappers delegate to the registry.
"""

from .registry import ToolDefinition, ToolRegistry
from .github_tools import GitHubToolHandlers, register_github_tools
from .config_tools import ConfigToolHandlers, register_config_tools

__all__ = [
    "ToolDefinition",
    "ToolRegistry",
    "GitHubToolHandlers",
    "ConfigToolHandlers",
    "register_github_tools",
    "register_config_tools",
]
