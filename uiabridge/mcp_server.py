"""MCP tool surface for uiabridge.

Every tool is routed through a worker pool, so a hung or crashing automation
call costs one worker process, never the server.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger
from mcp.server.fastmcp import FastMCP

from uiabridge.client import requests as typed
from uiabridge.client.executor import EnvelopeExecutor, TypedExecutor
from uiabridge.config.schema import OperationDefaults
from uiabridge.protocol.envelope import OperationRequest, OperationResponse

if TYPE_CHECKING:
    from uiabridge.config.schema import Config

SERVER_NAME = "uiabridge"

INSTRUCTIONS = (
    "Desktop UI automation through an isolated worker process. "
    "Use find_elements or get_element_tree to discover elementId values, then act on them. "
    "run_operation accepts any operation from list_operations with a parameters object."
)


def create_server(executor: EnvelopeExecutor, defaults: OperationDefaults | None = None) -> FastMCP:
    """Build the FastMCP server with tools bound to ``executor``."""
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    typed_executor = TypedExecutor(executor, defaults)

    async def _run(request: OperationRequest, timeout_seconds: float | None = None) -> dict[str, Any]:
        response: OperationResponse = await asyncio.to_thread(executor.execute, request, timeout_seconds)
        return response.to_payload()

    async def _run_typed(request: typed.TypedRequest) -> dict[str, Any]:
        response = await asyncio.to_thread(typed_executor.execute, request)
        return response.to_payload()

    @mcp.tool()
    async def run_operation(
        operation: str,
        parameters: dict[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> dict[str, Any]:
        """Run any registered operation by name with a camelCase parameters object."""
        logger.debug("MCP run_operation {}", operation)
        return await _run(OperationRequest(operation=operation, parameters=parameters or {}), timeout_seconds)

    @mcp.tool()
    async def list_operations() -> dict[str, Any]:
        """List supported operations with aliases and descriptions."""
        return await _run(OperationRequest("GetSupportedOperations"))

    @mcp.tool()
    async def ping() -> dict[str, Any]:
        """Check that a worker is alive; reports pid, backend and uptime."""
        return await _run_typed(typed.PingRequest())

    @mcp.tool()
    async def list_windows(include_invisible: bool = False) -> dict[str, Any]:
        """List top-level desktop windows."""
        return await _run_typed(typed.GetDesktopWindowsRequest(include_invisible=include_invisible))

    @mcp.tool()
    async def find_elements(
        search_text: str = "",
        window_title: str = "",
        control_type: str = "",
        automation_id: str = "",
        max_results: int | None = None,
    ) -> dict[str, Any]:
        """Find elements by text, control type or automation id, optionally inside one window."""
        request = typed.FindElementsRequest(
            search_text=search_text or None,
            window_title=window_title or None,
            control_type=control_type or None,
            automation_id=automation_id or None,
        )
        if max_results is not None:
            request = request.model_copy(update={"max_results": max_results})
        return await _run_typed(request)

    @mcp.tool()
    async def get_element_tree(window_title: str = "", max_depth: int = 3) -> dict[str, Any]:
        """Element tree of a window, or of the whole desktop when no title is given."""
        return await _run_typed(typed.GetElementTreeRequest(window_title=window_title or None, max_depth=max_depth))

    @mcp.tool()
    async def invoke_element(element_id: str, window_title: str = "") -> dict[str, Any]:
        """Invoke (click) an element."""
        return await _run_typed(typed.InvokeElementRequest(element_id=element_id, window_title=window_title or None))

    @mcp.tool()
    async def set_element_value(element_id: str, value: str, window_title: str = "") -> dict[str, Any]:
        """Set the value of an editable element."""
        return await _run_typed(
            typed.SetElementValueRequest(element_id=element_id, value=value, window_title=window_title or None)
        )

    @mcp.tool()
    async def get_element_value(element_id: str, window_title: str = "") -> dict[str, Any]:
        """Read the value of an element."""
        return await _run_typed(typed.GetElementValueRequest(element_id=element_id, window_title=window_title or None))

    @mcp.tool()
    async def toggle_element(element_id: str, window_title: str = "") -> dict[str, Any]:
        """Toggle a check box or toggle button."""
        return await _run_typed(typed.ToggleElementRequest(element_id=element_id, window_title=window_title or None))

    @mcp.tool()
    async def get_text(element_id: str, window_title: str = "") -> dict[str, Any]:
        """Read the text of a document or edit element."""
        return await _run_typed(typed.GetTextRequest(element_id=element_id, window_title=window_title or None))

    @mcp.tool()
    async def window_action(window_title: str, action: str | None = None) -> dict[str, Any]:
        """Focus, minimize, maximize, restore or close a window."""
        request = typed.WindowActionRequest(window_title=window_title)
        if action:
            request = request.model_copy(update={"action": action})
        return await _run_typed(request)

    return mcp


def run_server(config: "Config") -> None:
    """Run the MCP server on stdio until the client disconnects."""
    from uiabridge.host.pool import WorkerPool

    pool = WorkerPool.from_config(config)
    logger.info("Starting MCP server with {} worker(s)", pool.size)
    try:
        create_server(pool, config.defaults).run()
    finally:
        pool.close()
