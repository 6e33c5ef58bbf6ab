#!/usr/bin/env python3
"""
Entry point for the CHUK Tracker MCP Server.

This module provides the main entry point for the MCP server,
supporting multiple transport modes (stdio, http). Modules, project
configurations and exports live under the working directory.
"""

import argparse
import asyncio
import logging
import os
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point with transport detection."""
    parser = argparse.ArgumentParser(description="CHUK Tracker MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP port (only for http transport)",
    )
    parser.add_argument(
        "--workdir",
        type=Path,
        default=None,
        help="Directory holding modules/, configs/ and output/ (default: current directory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.workdir is not None:
        args.workdir.mkdir(parents=True, exist_ok=True)
        os.chdir(args.workdir)

    # Paths are resolved against the working directory on import
    from chuk_mcp_tracker.async_server import mcp

    if args.transport == "stdio":
        logger.info("Starting CHUK Tracker MCP Server (stdio)")
        asyncio.run(mcp.run_stdio())
    else:
        logger.info(f"Starting CHUK Tracker MCP Server (http:{args.port})")
        asyncio.run(mcp.run_http(port=args.port))


if __name__ == "__main__":
    main()
