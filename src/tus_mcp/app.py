"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from tus_mcp.data.cache import EstimatesCache
from tus_mcp.data.client import OpenDataClient
from tus_mcp.data.config import TusConfig, get_config
from tus_mcp.services.route_planner import RoutePlanner

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide resources, created on first use and shared by every session."""

    config: TusConfig
    client: OpenDataClient
    planner: RoutePlanner


# Process-wide resources (lazy-initialized). The FastMCP lifespan runs once
# per client session, so sessions reuse these instead of owning them.
_app_context: AppContext | None = None


def get_shared_context() -> AppContext:
    """Get or create the process-wide client, estimates cache and planner."""
    global _app_context
    if _app_context is None:
        config = get_config()
        client = OpenDataClient(config)
        client.open()
        cache = EstimatesCache(client.fetch_all_estimates, ttl=config.cache_ttl_seconds)
        _app_context = AppContext(
            config=config, client=client, planner=RoutePlanner(client, cache)
        )
        logger.info(f"Open-data client ready ({config.base_url})")
    return _app_context


async def reset_app_context() -> None:
    """Close the shared client and drop the process-wide resources.

    The next session builds fresh ones. Useful for testing.
    """
    global _app_context
    if _app_context is not None:
        await _app_context.client.aclose()
        _app_context = None
    if hasattr(get_config, "cache_clear"):
        get_config.cache_clear()


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Hand each session the process-wide resources; nothing is closed per session."""
    yield get_shared_context()


def get_app_context(ctx: Context) -> AppContext:
    """Get the lifespan resources from a tool call context."""
    return ctx.request_context.lifespan_context


# Initialize the MCP server
mcp = FastMCP(
    "TUS Santander",
    instructions=(
        "Santander (TUS) urban bus information - lines, stops, real-time arrival "
        "estimates and route planning"
    ),
    lifespan=app_lifespan,
)
