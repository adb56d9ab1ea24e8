"""
Service layer for the Speckit GitHub MCP Server.

Contains the authentication strategy, OAuth flow, rate-limited GitHub client
and task to issue conversion with proper separation of concerns.
"""

from .auth_service import AuthStrategy
from .oauth_service import OAuthFlow
from .github_client import GitHubClient
from .issue_converter import IssueConverter

__all__ = [
    "AuthStrategy",
    "OAuthFlow",
    "GitHubClient",
    "IssueConverter",
]
