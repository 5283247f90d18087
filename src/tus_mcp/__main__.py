"""Allow running as `python -m tus_mcp`."""

from tus_mcp.server import main

main()
