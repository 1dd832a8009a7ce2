"""
Expose the tool catalog as an MCP server over stdio.

Each `tools/call` runs through the same ToolExecutor as the conversational front
ends, in a worker thread, so one slow vendor call does not stall the protocol
loop. The server keeps no per-call state.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import anyio
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from ..tools.base import ToolCall, ToolResult
from ..tools.executor import ToolExecutor

SERVER_NAME = "helperbot"


def to_call_tool_result(res: ToolResult) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(res.to_dict(), ensure_ascii=False, default=str))],
        isError=not res.ok,
    )


class ToolProtocolServer:
    def __init__(self, executor: ToolExecutor, name: str = SERVER_NAME):
        self.executor = executor
        self.server = Server(name)
        self._setup_handlers()

    def list_tools(self) -> List[Tool]:
        return [
            Tool(name=d.name, description=d.description, inputSchema=d.to_json_schema())
            for d in self.executor.registry.list_definitions()
        ]

    async def call_tool(self, name: str, arguments: Dict[str, Any] | None) -> CallToolResult:
        call = ToolCall(name=name, arguments=dict(arguments or {}))
        res = await anyio.to_thread.run_sync(self.executor.execute, call)
        return to_call_tool_result(res)

    def _setup_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> List[Tool]:
            return self.list_tools()

        # the executor validates arguments so failures keep the {ok, error} shape
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: Dict[str, Any]) -> CallToolResult:
            return await self.call_tool(name, arguments)

    async def run(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(read_stream, write_stream, self.server.create_initialization_options())


def serve(executor: ToolExecutor) -> None:
    asyncio.run(ToolProtocolServer(executor).run())
