"""
Command line entry point for the Speckit GitHub MCP Server.

Usage:
    speckit-github-mcp [--env-file .env] [--log-level DEBUG] [--transport stdio]

Environment Variables:
    GITHUB_AUTH_TYPE - oauth, pat or app (default: oauth)
    GITHUB_PERSONAL_ACCESS_TOKEN - token for pat authentication
    GITHUB_CLIENT_ID / GITHUB_CLIENT_SECRET - OAuth application credentials
    GITHUB_OAUTH_TOKEN - access token obtained from the OAuth code exchange
    GITHUB_DEFAULT_REPO - default repository in 'owner/repo' format
    SERVER_TIMEOUT - per-request timeout in milliseconds (default: 30000)
    GITHUB_MAX_RETRIES - retry cap for throttled and transient failures (default: 3)
    LOG_LEVEL - Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from .constants import SERVER
from .exceptions import ClassifiedError
from .server import SpeckitGitHubServer


def setup_logging(log_level: str = "INFO") -> None:
    """Setup Loguru-based logging on stderr; stdout carries the MCP protocol."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )
    logger.info(f"Log level set to {log_level.upper()}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Speckit GitHub MCP Server",
        epilog="""
Examples:
    speckit-github-mcp                       # Use default .env file
    speckit-github-mcp --env-file prod.env   # Use custom environment file
    speckit-github-mcp --log-level DEBUG     # Enable debug logging
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to environment file (default: .env in current directory)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--transport",
        type=str,
        default="stdio",
        choices=["stdio", "sse"],
        help="MCP transport protocol (default: stdio)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Speckit GitHub MCP Server {SERVER.VERSION}"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the Speckit GitHub MCP Server."""
    args = parse_arguments(argv)
    setup_logging(args.log_level or "INFO")

    logger.info(f"Initializing Speckit GitHub MCP Server v{SERVER.VERSION}")
    try:
        server = SpeckitGitHubServer(env_file=args.env_file)
        if not args.log_level and server.config.log_level != "INFO":
            setup_logging(server.config.log_level)
        asyncio.run(server.initialize())
    except ClassifiedError as e:
        logger.error(f"Server initialization failed: {e.kind.value}: {e.message}")
        missing = e.details.get("missing_environment_variables") or e.details.get("missing")
        if missing:
            logger.error("Required configuration:")
            for var in missing:
                logger.error(f"  - {var}")
        logger.error("Please check your environment variables and configuration")
        sys.exit(1)

    logger.info("Server is now ready to accept MCP connections")
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
