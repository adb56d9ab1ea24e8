"""
Configuration constants for the Speckit GitHub MCP Server.

This module centralizes endpoint URLs, retry defaults and issue
formatting values so the services share a single source of truth.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class GitHubConstants:
    """Constants for GitHub endpoints."""

    API_URL: str = "https://api.github.com"
    OAUTH_AUTHORIZE_URL: str = "https://github.com/login/oauth/authorize"
    OAUTH_TOKEN_URL: str = "https://github.com/login/oauth/access_token"
    USER_URL: str = "https://api.github.com/user"

    # OAuth defaults
    DEFAULT_REDIRECT_URI: str = "http://localhost:3000/callback"
    DEFAULT_SCOPES: Tuple[str, ...] = ("repo", "issues:write")
    OAUTH_TOKEN_LIFETIME_DAYS: int = 365


@dataclass
class RetryConstants:
    """Constants for throttling and transient retries."""

    DEFAULT_MAX_RETRIES: int = 3
    DEFAULT_RETRY_DELAY: float = 1.0
    DEFAULT_RATE_LIMIT_WAIT: float = 60.0
    DEFAULT_RATE_LIMIT_BUFFER: int = 100

    # Per-call timeout (milliseconds)
    DEFAULT_TIMEOUT_MS: int = 30000


@dataclass
class IssueConstants:
    """Constants for task to issue conversion."""

    SPECKIT_LABEL: str = "speckit"
    TASK_ID_PATTERN: str = r"\*\*Task ID\*\*:\s*(\S+)"
    MANUAL_TASK_ID: str = "manual"
    MANUAL_STORY: str = "manual"
    GENERATED_TRAILER: str = "*This issue was created automatically from a speckit task.*"


@dataclass
class ServerConstants:
    """Constants for the MCP server itself."""

    SERVER_NAME: str = "github-speckit"
    VERSION: str = "1.0.0"
    ENVIRONMENTS: Tuple[str, ...] = ("development", "production", "test")


# Create singleton instances
GITHUB = GitHubConstants()
RETRY = RetryConstants()
ISSUE = IssueConstants()
SERVER = ServerConstants()
