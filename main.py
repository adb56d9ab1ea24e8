#!/usr/bin/env python3
"""
Speckit GitHub MCP Server - Main Entry Point

Mirrors speckit tasks as GitHub issues over the Model Context Protocol.

Usage:
    python main.py [--env-file .env] [--transport stdio|sse]

See speckit_github.cli for the supported environment variables.
"""

import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from speckit_github.cli import main


if __name__ == "__main__":
    main()
