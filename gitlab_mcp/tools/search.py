"""
Search tools backed by GitLab's scoped search API.
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

GLOBAL_SCOPES = ["projects", "issues", "merge_requests", "milestones", "snippet_titles", "users", "blobs", "commits"]
PROJECT_SCOPES = ["issues", "merge_requests", "milestones", "notes", "wiki_blobs", "commits", "blobs", "users"]


def search_global(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "searchGlobal",
        "Search GitLab",
        "Searches across the whole GitLab instance within the given scope.",
        object_schema(
            with_pagination(
                {
                    "scope": {"type": "string", "description": "The scope to search in.", "enum": GLOBAL_SCOPES},
                    "search": {"type": "string", "description": "The search query."},
                }
            ),
            required=["scope", "search"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        scope = required_value(arguments, "scope", str)
        search = required_value(arguments, "search", str)
        page, per_page = pagination_params(arguments)

        client = await get_client(ctx)
        try:
            results = await client.get(
                "search",
                params={"scope": scope, "search": search, "page": page, "per_page": per_page},
            )
        except GitLabAPIError as e:
            raise api_error(e, f"search scope {scope!r} not found", f"search {scope!r} for {search!r}") from e
        return format_response(results)

    return ServerTool(tool, handler)


def search_project(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "searchProject",
        "Search Project",
        "Searches within a single GitLab project within the given scope.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "scope": {"type": "string", "description": "The scope to search in.", "enum": PROJECT_SCOPES},
                    "search": {"type": "string", "description": "The search query."},
                    "ref": {
                        "type": "string",
                        "description": "Branch or tag to search for blobs and commits (defaults to the default branch).",
                    },
                }
            ),
            required=["projectId", "scope", "search"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        scope = required_value(arguments, "scope", str)
        search = required_value(arguments, "search", str)
        ref = optional_value(arguments, "ref", str)
        page, per_page = pagination_params(arguments)

        client = await get_client(ctx)
        try:
            results = await client.get(
                f"projects/{project_path(project_id)}/search",
                params={"scope": scope, "search": search, "ref": ref or None, "page": page, "per_page": per_page},
            )
        except GitLabAPIError as e:
            raise api_error(
                e, f"project {project_id!r} not found", f"search {scope!r} in project {project_id!r}"
            ) from e
        return format_response(results)

    return ServerTool(tool, handler)
