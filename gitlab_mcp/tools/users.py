"""
User lookup tools.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import required_integer
from gitlab_mcp.tools.base import api_error, format_response, object_schema, tool_definition
from gitlab_mcp.toolsets import ServerTool


def get_current_user(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "getCurrentUser",
        "Get Current User",
        "Retrieves the profile of the user the access token belongs to.",
        object_schema({}),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        client = await get_client(ctx)
        try:
            user = await client.get("user")
        except GitLabAPIError as e:
            raise api_error(e, "current user not found", "get current user") from e
        return format_response(user)

    return ServerTool(tool, handler)


def get_user(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "getUser",
        "Get User",
        "Retrieves a single GitLab user by ID.",
        object_schema(
            {"userId": {"type": "number", "description": "The ID of the user."}},
            required=["userId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        user_id = required_integer(arguments, "userId")
        client = await get_client(ctx)
        try:
            user = await client.get(f"users/{user_id}")
        except GitLabAPIError as e:
            raise api_error(e, f"user {user_id} not found", f"get user {user_id}") from e
        return format_response(user)

    return ServerTool(tool, handler)
