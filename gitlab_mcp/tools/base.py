"""
Shared building blocks for GitLab tool definitions and handlers.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from mcp import types

from gitlab_mcp.errors import GitLabAPIError, ToolExecutionError, ToolResultError
from gitlab_mcp.params import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

PROJECT_ID_PROPERTY = {
    "type": "string",
    "description": "The ID (integer) or URL-encoded path (string) of the project.",
}


def object_schema(properties: Dict[str, Dict[str, Any]], required: Optional[List[str]] = None) -> Dict[str, Any]:
    """Build a JSON schema for a tool's input object."""
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def with_pagination(properties: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Add the standard ``page`` and ``per_page`` properties."""
    return {
        **properties,
        "page": {
            "type": "number",
            "description": "Page number of the results to retrieve (min 1).",
        },
        "per_page": {
            "type": "number",
            "description": f"Number of results to return per page (default: {DEFAULT_PAGE_SIZE}, max: {MAX_PAGE_SIZE}).",
        },
    }


def tool_definition(
    name: str,
    title: str,
    description: str,
    input_schema: Dict[str, Any],
    read_only: bool,
) -> types.Tool:
    return types.Tool(
        name=name,
        description=description,
        inputSchema=input_schema,
        annotations=types.ToolAnnotations(title=title, readOnlyHint=read_only),
    )


def format_response(data: Any) -> str:
    """Format an API response as the text result of a tool."""
    if isinstance(data, list) and not data:
        return "[]"
    return json.dumps(data, indent=2)


def api_error(error: GitLabAPIError, not_found: str, action: str, detail: str = "") -> Exception:
    """Map a failed GitLab call to the exception a handler should raise.

    A 404 becomes a user-facing ``ToolResultError`` built from ``not_found``,
    with ``detail`` placed before the status code; anything else is an
    internal ``ToolExecutionError`` describing ``action``.
    """
    if error.status_code == 404:
        return ToolResultError(f"{not_found} or access denied{detail} (404)")
    status = error.status_code if error.status_code is not None else 500
    return ToolExecutionError(f"failed to {action}: {error} (status: {status})")


def iso8601(value: Optional[datetime]) -> Optional[str]:
    """Render an optional timestamp the way GitLab expects it in query strings."""
    if value is None:
        return None
    return value.isoformat()


def flag(value: Optional[bool]) -> Optional[str]:
    """Render an optional boolean as a GitLab query value, or ``None`` if unset."""
    if value is None:
        return None
    return "true" if value else "false"
