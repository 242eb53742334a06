"""
Repository file tools: read a file, list a directory, create or update a file.
"""

import base64
import urllib.parse
from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError, ToolExecutionError
from gitlab_mcp.params import (
    optional_boolean,
    optional_value,
    pagination_params,
    required_value,
)
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

REF_PROPERTY = {
    "type": "string",
    "description": "The name of branch, tag, or commit SHA (defaults to the repository's default branch).",
}


def _file_endpoint(project_id: str, file_path: str) -> str:
    return f"projects/{project_path(project_id)}/repository/files/{urllib.parse.quote(file_path, safe='')}"


def get_project_file(get_client: GetClientFn) -> ServerTool:
    """Retrieve the decoded content of a file in a project repository."""
    tool = tool_definition(
        "getProjectFile",
        "Get Project File Content",
        "Retrieves the content of a specific file within a GitLab project repository.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "filePath": {"type": "string", "description": "The path to the file within the repository."},
                "ref": REF_PROPERTY,
            },
            required=["projectId", "filePath"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        file_path = required_value(arguments, "filePath", str)
        ref = optional_value(arguments, "ref", str)

        client = await get_client(ctx)
        try:
            file = await client.get(_file_endpoint(project_id, file_path), params={"ref": ref or "HEAD"})
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"project {project_id!r} or file {file_path!r} not found,",
                f"get file {file_path!r} from project {project_id!r} (ref: {ref!r})",
                detail=f" (ref: {ref!r})",
            ) from e

        try:
            return base64.b64decode(file.get("content", "")).decode("utf-8")
        except ValueError as e:
            raise ToolExecutionError(f"failed to decode base64 content for file {file_path!r}: {e}") from e

    return ServerTool(tool, handler)


def list_project_files(get_client: GetClientFn) -> ServerTool:
    """List files and directories under a path of a project repository."""
    tool = tool_definition(
        "listProjectFiles",
        "List Project Files/Directories",
        "Retrieves a list of files and directories within a specific path in a GitLab project repository.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "path": {
                        "type": "string",
                        "description": "The path inside the repository. Defaults to the root directory.",
                    },
                    "ref": REF_PROPERTY,
                    "recursive": {"type": "boolean", "description": "List files recursively."},
                }
            ),
            required=["projectId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        path = optional_value(arguments, "path", str)
        ref = optional_value(arguments, "ref", str)
        recursive = optional_boolean(arguments, "recursive")
        page, per_page = pagination_params(arguments)

        params = {
            "page": page,
            "per_page": per_page,
            "path": path or None,
            "ref": ref or None,
            "recursive": flag(recursive),
        }

        client = await get_client(ctx)
        try:
            tree = await client.get(f"projects/{project_path(project_id)}/repository/tree", params=params)
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"project {project_id!r} or path {path!r} not found,",
                f"list repository tree for project {project_id!r} (path: {path!r}, ref: {ref!r})",
                detail=f" (ref: {ref!r})",
            ) from e
        return format_response(tree)

    return ServerTool(tool, handler)


def create_or_update_file(get_client: GetClientFn) -> ServerTool:
    """Create a file, or update it if it already exists on the branch."""
    tool = tool_definition(
        "createOrUpdateFile",
        "Create or Update Project File",
        "Creates a new file or updates an existing file in a GitLab project repository with a single commit.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "filePath": {"type": "string", "description": "Path of the file to create or update."},
                "branch": {"type": "string", "description": "Branch to commit to."},
                "content": {"type": "string", "description": "New content of the file."},
                "commitMessage": {"type": "string", "description": "Commit message."},
                "previousPath": {"type": "string", "description": "Original path of the file when moving/renaming it."},
            },
            required=["projectId", "filePath", "branch", "commitMessage"],
        ),
        read_only=False,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        file_path = required_value(arguments, "filePath", str)
        branch = required_value(arguments, "branch", str)
        # An empty file is a legitimate content value.
        content = optional_value(arguments, "content", str)
        commit_message = required_value(arguments, "commitMessage", str)
        previous_path = optional_value(arguments, "previousPath", str)

        endpoint = _file_endpoint(project_id, file_path)
        client = await get_client(ctx)

        try:
            await client.get(endpoint, params={"ref": branch})
            method = "PUT"
        except GitLabAPIError as e:
            if e.status_code != 404:
                raise api_error(e, f"project {project_id!r} not found", f"check file {file_path!r}") from e
            method = "POST"

        data = {
            "branch": branch,
            "content": content,
            "commit_message": commit_message,
        }
        if previous_path:
            data["previous_path"] = previous_path

        try:
            result = await client.request(method, endpoint, json_data=data)
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"project {project_id!r} or branch {branch!r} not found",
                f"write file {file_path!r} in project {project_id!r}",
            ) from e
        return format_response(result)

    return ServerTool(tool, handler)
