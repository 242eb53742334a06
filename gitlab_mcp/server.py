#!/usr/bin/env python3
"""
MCP server exposing GitLab toolsets over stdio.

Run with ``gitlab-mcp-server`` (or ``python -m gitlab_mcp.server``) after
setting GITLAB_PERSONAL_ACCESS_TOKEN.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import pydantic
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from gitlab_mcp import __version__
from gitlab_mcp.client import GitLabClient, new_client
from gitlab_mcp.config import ServerConfig, configure_logging, load_config
from gitlab_mcp.errors import ToolResultError, ValidationError
from gitlab_mcp.gitlab_toolsets import init_toolsets
from gitlab_mcp.toolsets import ServerTool

logger = logging.getLogger(__name__)

SERVER_NAME = "gitlab-mcp-server"


class GitLabMCPServer:
    """Registry of GitLab tools bound to a low-level MCP server.

    Args:
        name: Server name reported to MCP clients
        version: Server version reported to MCP clients
        client_factory: Creates the ``GitLabClient`` shared by all tool calls
    """

    def __init__(
        self,
        name: str = SERVER_NAME,
        version: str = __version__,
        client_factory: Optional[Callable[[], GitLabClient]] = None,
    ):
        self.name = name
        self.version = version
        self.client_factory = client_factory
        self._tools: Dict[str, ServerTool] = {}

        self.server = Server(name, version=version, lifespan=self._client_lifespan)
        self._register_handlers()

    @asynccontextmanager
    async def _client_lifespan(self, server: Server) -> AsyncIterator[Dict[str, Any]]:
        """Create the GitLab client for the lifetime of the MCP session."""
        if self.client_factory is None:
            raise ValueError("A GitLab client factory must be provided")
        client = self.client_factory()
        logger.info(f"Connected GitLab client for {client.api_url}")
        try:
            yield {"gitlab_client": client}
        finally:
            logger.info("GitLab MCP session closed")

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return self.list_tools()

        # Handlers validate their own arguments.
        @self.server.call_tool(validate_input=False)
        async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
            text = await self.call_tool(name, arguments, self.server.request_context)
            return [types.TextContent(type="text", text=text)]

    def add_tool(self, server_tool: ServerTool) -> None:
        if server_tool.name in self._tools:
            logger.warning(f"Replacing previously registered tool '{server_tool.name}'")
        self._tools[server_tool.name] = server_tool

    def list_tools(self) -> List[types.Tool]:
        return [server_tool.tool for server_tool in self._tools.values()]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]], ctx: Any = None) -> str:
        """Run the handler registered under ``name``.

        Errors meant for the agent surface as ``ToolResultError``; argument
        problems get a "Validation Error: " prefix. Anything else is logged
        with its traceback and re-raised.
        """
        server_tool = self._tools.get(name)
        if server_tool is None:
            raise ToolResultError(f"unknown tool: {name}")

        logger.debug(f"Calling tool {name} with arguments {arguments}")
        try:
            return await server_tool.handler(ctx, arguments or {})
        except ValidationError as e:
            logger.info(f"Tool {name} rejected its arguments: {e}")
            raise ToolResultError(f"Validation Error: {e}") from e
        except ToolResultError as e:
            logger.info(f"Tool {name} returned an error: {e}")
            raise
        except Exception:
            logger.exception(f"Tool {name} failed")
            raise

    async def get_client(self, ctx: Any) -> GitLabClient:
        """Return the GitLab client of the session ``ctx`` belongs to."""
        if ctx is None:
            ctx = self.server.request_context
        return ctx.lifespan_context["gitlab_client"]

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server"""
        if transport != "stdio":
            raise ValueError(f"Unsupported transport: {transport}")
        asyncio.run(self._run_stdio())

    async def _run_stdio(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(read_stream, write_stream, self.server.create_initialization_options())


def create_server(config: ServerConfig) -> GitLabMCPServer:
    """Build a server with the toolsets ``config`` asks for.

    Raises:
        UnknownToolsetError: A configured toolset does not exist
        NoToolsetsSpecifiedError: No toolsets were configured
    """
    server = GitLabMCPServer(client_factory=lambda: new_client(config.token, config.api_url))
    group = init_toolsets(config.toolsets, config.read_only, server.get_client)
    group.register_active(server)
    logger.info(f"Registered {len(server.list_tools())} tools")
    return server


def main(argv: Optional[List[str]] = None) -> None:
    try:
        config = load_config(argv)
    except (pydantic.ValidationError, ValidationError) as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(config.log_level)
    logger.info(f"Starting {SERVER_NAME} {__version__} against {config.api_url}")

    try:
        server = create_server(config)
    except ValidationError as e:
        logger.error(f"Failed to initialize toolsets: {e}")
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()
