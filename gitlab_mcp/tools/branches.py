"""
Branch tools.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import optional_value, pagination_params, required_value
from gitlab_mcp.tools.base import (
    PROJECT_ID_PROPERTY,
    api_error,
    format_response,
    object_schema,
    tool_definition,
    with_pagination,
)
from gitlab_mcp.toolsets import ServerTool


def get_project_branches(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "getProjectBranches",
        "List Project Branches",
        "Retrieves a list of repository branches from a project, sorted by name alphabetically.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "search": {"type": "string", "description": "Return list of branches matching the search criteria."},
                }
            ),
            required=["projectId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        search = optional_value(arguments, "search", str)
        page, per_page = pagination_params(arguments)

        client = await get_client(ctx)
        try:
            branches = await client.get(
                f"projects/{project_path(project_id)}/repository/branches",
                params={"page": page, "per_page": per_page, "search": search or None},
            )
        except GitLabAPIError as e:
            raise api_error(e, f"project {project_id!r} not found", f"list branches for project {project_id!r}") from e
        return format_response(branches)

    return ServerTool(tool, handler)


def create_branch(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "createBranch",
        "Create Branch",
        "Creates a new branch in a GitLab project repository from an existing branch, tag or commit.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "branch": {"type": "string", "description": "Name of the new branch."},
                "ref": {"type": "string", "description": "Branch name, tag or commit SHA to create the branch from."},
            },
            required=["projectId", "branch", "ref"],
        ),
        read_only=False,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        branch = required_value(arguments, "branch", str)
        ref = required_value(arguments, "ref", str)

        client = await get_client(ctx)
        try:
            result = await client.post(
                f"projects/{project_path(project_id)}/repository/branches",
                json_data={"branch": branch, "ref": ref},
            )
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"project {project_id!r} or ref {ref!r} not found",
                f"create branch {branch!r} in project {project_id!r}",
            ) from e
        return format_response(result)

    return ServerTool(tool, handler)
