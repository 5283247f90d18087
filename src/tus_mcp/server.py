import argparse
import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from tus_mcp.app import mcp
from tus_mcp.data.config import get_config

# Register tools
from tus_mcp.tools import estimates_tools, line_tools, route_tools, stop_tools  # noqa: F401

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the TUS Santander MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    from tus_mcp import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


def main() -> None:
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="tus-mcp",
        description="TUS Santander MCP Server",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http", "sse"],
        default=config.transport,
        help="MCP transport (default: streamable-http or MCP_TRANSPORT env var)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.port,
        help="HTTP port for streamable-http/sse (default: 3000 or PORT env var)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Logs go to stderr, stdout belongs to the stdio transport
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.transport != "stdio":
        mcp.settings.host = config.host
        mcp.settings.port = args.port
        logger.info(f"TUS Santander MCP server listening on {config.host}:{args.port}")

    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
