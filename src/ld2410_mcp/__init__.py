"""Driver and MCP server for the HLK-LD2410 presence radar."""

from .driver import LD2410, Response
