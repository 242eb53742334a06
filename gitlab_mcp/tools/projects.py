"""
Project tools: project details and project listing.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import optional_boolean, optional_value, pagination_params, required_value
from gitlab_mcp.tools.base import (
    PROJECT_ID_PROPERTY,
    api_error,
    flag,
    format_response,
    object_schema,
    tool_definition,
    with_pagination,
)
from gitlab_mcp.toolsets import ServerTool


def get_project(get_client: GetClientFn) -> ServerTool:
    """Retrieve details for a specific GitLab project."""
    tool = tool_definition(
        "getProject",
        "Get Project Details",
        "Retrieves details for a specific GitLab project.",
        object_schema({"projectId": PROJECT_ID_PROPERTY}, required=["projectId"]),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        client = await get_client(ctx)
        try:
            project = await client.get(f"projects/{project_path(project_id)}")
        except GitLabAPIError as e:
            raise api_error(e, f"project {project_id!r} not found", f"get project {project_id!r}") from e
        return format_response(project)

    return ServerTool(tool, handler)


def list_projects(get_client: GetClientFn) -> ServerTool:
    """List projects visible to the authenticated user."""
    tool = tool_definition(
        "listProjects",
        "List GitLab Projects",
        "Retrieves a list of GitLab projects visible to the authenticated user, with filtering and pagination.",
        object_schema(
            with_pagination(
                {
                    "search": {"type": "string", "description": "Return projects matching the search criteria."},
                    "owned": {"type": "boolean", "description": "Limit to projects explicitly owned by the current user."},
                    "membership": {"type": "boolean", "description": "Limit to projects the current user is a member of."},
                    "starred": {"type": "boolean", "description": "Limit to projects starred by the current user."},
                    "archived": {"type": "boolean", "description": "Limit by archived status."},
                    "visibility": {
                        "type": "string",
                        "description": "Limit by visibility.",
                        "enum": ["public", "internal", "private"],
                    },
                    "orderBy": {
                        "type": "string",
                        "description": "Return projects ordered by this field.",
                        "enum": ["id", "name", "path", "created_at", "updated_at", "last_activity_at"],
                    },
                    "sort": {"type": "string", "description": "Sort order.", "enum": ["asc", "desc"]},
                }
            )
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        search = optional_value(arguments, "search", str)
        owned = optional_boolean(arguments, "owned")
        membership = optional_boolean(arguments, "membership")
        starred = optional_boolean(arguments, "starred")
        archived = optional_boolean(arguments, "archived")
        visibility = optional_value(arguments, "visibility", str)
        order_by = optional_value(arguments, "orderBy", str)
        sort = optional_value(arguments, "sort", str)
        page, per_page = pagination_params(arguments)

        params = {
            "page": page,
            "per_page": per_page,
            "search": search or None,
            "owned": flag(owned),
            "membership": flag(membership),
            "starred": flag(starred),
            "archived": flag(archived),
            "visibility": visibility or None,
            "order_by": order_by or None,
            "sort": sort or None,
        }

        client = await get_client(ctx)
        try:
            projects = await client.get("projects", params=params)
        except GitLabAPIError as e:
            raise api_error(e, "projects not found", "list projects") from e
        return format_response(projects)

    return ServerTool(tool, handler)
