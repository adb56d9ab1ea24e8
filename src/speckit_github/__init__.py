"""
Speckit GitHub MCP Server

A Model Context Protocol server that converts speckit tasks into GitHub
issues and exposes authenticated, rate-limit aware GitHub operations.
"""

__version__ = "1.0.0"

from .server import SpeckitGitHubServer
from .config import Config
from .models import (
    AuthMode,
    Credential,
    Task,
    Issue,
    RepositoryRef,
    RateLimitSnapshot,
    BatchResult,
)
from .exceptions import (
    ErrorKind,
    ClassifiedError,
    AuthError,
    ConfigurationError,
    classify_status,
)

__all__ = [
    # Core
    "SpeckitGitHubServer",
    "Config",
    # Models
    "AuthMode",
    "Credential",
    "Task",
    "Issue",
    "RepositoryRef",
    "RateLimitSnapshot",
    "BatchResult",
    # Exceptions
    "ErrorKind",
    "ClassifiedError",
    "AuthError",
    "ConfigurationError",
    "classify_status",
]
