"""
Commit tools.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import (
    optional_boolean,
    optional_timestamp,
    optional_value,
    pagination_params,
    required_value,
)
from gitlab_mcp.tools.base import (
    PROJECT_ID_PROPERTY,
    api_error,
    flag,
    format_response,
    iso8601,
    object_schema,
    tool_definition,
    with_pagination,
)
from gitlab_mcp.toolsets import ServerTool


def get_project_commits(get_client: GetClientFn) -> ServerTool:
    """List repository commits, optionally filtered by ref, path and dates."""
    tool = tool_definition(
        "getProjectCommits",
        "List Project Commits",
        "Retrieves a list of repository commits in a project, optionally filtered by ref, path, dates, and stats.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "ref": {
                        "type": "string",
                        "description": "The name of a repository branch, tag or commit SHA. Default: the repository's default branch.",
                    },
                    "path": {"type": "string", "description": "The file path to retrieve commits for."},
                    "since": {
                        "type": "string",
                        "description": "Only commits after or on this date are returned. Format: ISO 8601 (YYYY-MM-DDTHH:MM:SSZ)",
                    },
                    "until": {
                        "type": "string",
                        "description": "Only commits before or on this date are returned. Format: ISO 8601 (YYYY-MM-DDTHH:MM:SSZ)",
                    },
                    "withStats": {
                        "type": "boolean",
                        "description": "Include commit stats (additions, deletions). Default is false.",
                    },
                }
            ),
            required=["projectId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        ref = optional_value(arguments, "ref", str)
        path = optional_value(arguments, "path", str)
        since = optional_timestamp(arguments, "since")
        until = optional_timestamp(arguments, "until")
        with_stats = optional_boolean(arguments, "withStats")
        page, per_page = pagination_params(arguments)

        params = {
            "page": page,
            "per_page": per_page,
            "ref_name": ref or None,
            "path": path or None,
            "since": iso8601(since),
            "until": iso8601(until),
            "with_stats": flag(with_stats),
        }

        client = await get_client(ctx)
        try:
            commits = await client.get(f"projects/{project_path(project_id)}/repository/commits", params=params)
        except GitLabAPIError as e:
            raise api_error(e, f"project {project_id!r} not found", f"list commits for project {project_id!r}") from e
        return format_response(commits)

    return ServerTool(tool, handler)


def get_commit(get_client: GetClientFn) -> ServerTool:
    """Retrieve a single commit by SHA, branch or tag name."""
    tool = tool_definition(
        "getCommit",
        "Get Commit Details",
        "Retrieves details of a specific commit identified by its SHA or a branch/tag name.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "sha": {"type": "string", "description": "The commit hash or name of a repository branch or tag."},
            },
            required=["projectId", "sha"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        sha = required_value(arguments, "sha", str)

        client = await get_client(ctx)
        try:
            commit = await client.get(f"projects/{project_path(project_id)}/repository/commits/{project_path(sha)}")
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"commit {sha!r} not found in project {project_id!r}",
                f"get commit {sha!r} from project {project_id!r}",
            ) from e
        return format_response(commit)

    return ServerTool(tool, handler)
