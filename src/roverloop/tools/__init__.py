"""
Tool catalog for roverloop.

A :class:`ToolCatalog` is an immutable mapping from tool name to :class:`Tool`.  Catalogs are built
once at startup with a :class:`CatalogBuilder` and passed by reference to whoever dispatches tool
calls, so tests can hand the loop a catalog of fake tools.
"""

import logging
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
)

logger = logging.getLogger(__name__)


class Tool(NamedTuple):
    """A named capability.  ``execute`` is synchronous and returns text."""

    name: str
    description: str
    execute: Callable[[str], str]


class ToolCatalog(Mapping[str, Tool]):
    """
    Immutable registry of tools keyed by name.

    Raises
    ------
    ValueError
        If two tools share a name.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        entries: Dict[str, Tool] = {}
        for tool in tools:
            if tool.name in entries:
                raise ValueError(f"Tool '{tool.name}' is already registered.")
            entries[tool.name] = tool
        self._tools = entries

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolCatalog({list(self._tools)})"

    def describe(self) -> str:
        """Return a formatted listing of every tool with its description."""
        lines = ["Available Robot Tools:", "====================="]
        for index, tool in enumerate(self._tools.values(), start=1):
            lines.append(f"{index}. {tool.name}")
            lines.append(f"   Description: {tool.description}")
            lines.append("")
        return "\n".join(lines)


class CatalogBuilder:
    """
    Collects tool functions and freezes them into a :class:`ToolCatalog`.

    Functions are registered with a decorator, like this:
        builder = CatalogBuilder()

        @builder.register("my_tool")
        def my_tool(params: str) -> str:
            \"\"\"What the tool does.\"\"\"
            return result

    The first line of the docstring becomes the tool description unless *description* is given.
    """

    def __init__(self) -> None:
        self._tools: List[Tool] = []

    def register(self, name: str, description: str | None = None) -> Callable:
        """Register the decorated function under *name*."""
        if any(tool.name == name for tool in self._tools):
            raise ValueError(f"Tool '{name}' is already registered.")
        logger.debug("Registering tool '%s'", name)

        def wrapper(fn: Callable[[str], str]) -> Callable[[str], str]:
            doc = (fn.__doc__ or "").strip().splitlines()
            self._tools.append(Tool(name, description or (doc[0] if doc else ""), fn))
            return fn

        return wrapper

    def build(self) -> ToolCatalog:
        """Freeze the registered tools."""
        return ToolCatalog(self._tools)
