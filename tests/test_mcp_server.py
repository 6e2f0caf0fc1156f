"""Tests for the MCP tool server."""

import asyncio

from docweave.server.mcp_server import _format_outline, create_mcp_server


def test_registers_query_tools(service):
    mcp = create_mcp_server(service)
    tools = asyncio.run(mcp.list_tools())

    assert mcp.name == "docweave"
    assert sorted(tool.name for tool in tools) == ["read", "related", "search", "toc"]


def test_format_outline(service):
    lines = _format_outline(service.table_of_contents("python/async.md#0"))

    assert lines == [
        "- Async IO in Python  (#async-io-in-python)",
        "  - Event loop  (#event-loop)",
    ]
