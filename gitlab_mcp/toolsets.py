"""
Toolsets: named groups of MCP tools that can be switched on individually.

A ``ToolsetGroup`` owns every toolset of one server instance. Startup code
adds fully populated toolsets, enables the ones the operator asked for and
then hands the group a sink (anything with an ``add_tool(server_tool)``
method) to register the active tools with.

The group is built before the server starts serving and is not modified
afterwards, so nothing here is synchronized.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

from mcp import types

from gitlab_mcp.errors import NoToolsetsSpecifiedError, UnknownToolsetError

logger = logging.getLogger(__name__)

# Literal toolset name that enables every registered toolset.
ALL_TOOLSETS = "all"

# Handler signature: (request context or None, raw arguments) -> text result
ToolHandler = Callable[[Any, Dict[str, Any]], Awaitable[str]]


@dataclass(frozen=True)
class ServerTool:
    """An MCP tool definition paired with the coroutine that implements it."""

    tool: types.Tool
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.tool.name


class Toolset:
    """A logical group of read and write tools."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.enabled = False
        self._read_only = False
        self._read_tools: List[ServerTool] = []
        self._write_tools: List[ServerTool] = []

    def __repr__(self) -> str:
        return f"Toolset(name={self.name!r}, enabled={self.enabled}, read_only={self._read_only})"

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def read_tools(self) -> List[ServerTool]:
        return list(self._read_tools)

    @property
    def write_tools(self) -> List[ServerTool]:
        return list(self._write_tools)

    def add_read_tools(self, *tools: ServerTool) -> "Toolset":
        """Add tools that do not modify anything on GitLab."""
        self._read_tools.extend(tools)
        return self

    def add_write_tools(self, *tools: ServerTool) -> "Toolset":
        """Add tools that create or change GitLab resources.

        They are never exposed while the toolset is read-only.
        """
        self._write_tools.extend(tools)
        return self

    def force_read_only(self) -> None:
        """Put the toolset in read-only mode. There is no way back."""
        self._read_only = True

    def active_tools(self) -> List[ServerTool]:
        """Return the tools to expose given the enabled and read-only flags.

        Always returns a new list.
        """
        if not self.enabled:
            return []
        if self._read_only:
            return list(self._read_tools)
        return self._read_tools + self._write_tools

    def register_tools(self, sink) -> None:
        for server_tool in self.active_tools():
            sink.add_tool(server_tool)


class ToolsetGroup:
    """Registry of toolsets for one server instance.

    Args:
        read_only: Force every toolset added to this group into read-only mode
    """

    def __init__(self, read_only: bool = False):
        self.toolsets: Dict[str, Toolset] = {}
        self.read_only = read_only
        self.everything_on = False

    def add_toolset(self, toolset: Toolset) -> None:
        """Add a toolset, replacing any earlier one with the same name."""
        if self.read_only:
            toolset.force_read_only()
        if toolset.name in self.toolsets:
            logger.warning(f"Replacing previously added toolset '{toolset.name}'")
        self.toolsets[toolset.name] = toolset

    def enable_toolset(self, name: str) -> None:
        toolset = self.toolsets.get(name)
        if toolset is None:
            raise UnknownToolsetError(f"unknown toolset: {name}", parameter=name)
        toolset.enabled = True

    def enable_toolsets(self, names: List[str]) -> None:
        """Enable toolsets by name.

        ``["all"]`` enables every toolset in the group. Otherwise names are
        enabled in order; the first unknown name raises and toolsets enabled
        before it stay enabled.

        Raises:
            NoToolsetsSpecifiedError: ``names`` is empty
            UnknownToolsetError: A name does not match any toolset
        """
        if not names:
            raise NoToolsetsSpecifiedError("no toolsets specified to enable")

        if len(names) == 1 and names[0] == ALL_TOOLSETS:
            self.everything_on = True
            for toolset in self.toolsets.values():
                toolset.enabled = True
            return

        self.everything_on = False
        for name in names:
            self.enable_toolset(name)

    def enabled_toolsets(self) -> List[str]:
        return sorted(name for name, toolset in self.toolsets.items() if toolset.enabled)

    def register_active(self, sink) -> None:
        """Register the active tools of every enabled toolset with ``sink``."""
        for toolset in self.toolsets.values():
            if toolset.enabled:
                toolset.register_tools(sink)
