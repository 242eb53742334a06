"""
Merge request tools.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import (
    optional_boolean,
    optional_integer_presence,
    optional_string_list,
    optional_timestamp,
    optional_value,
    pagination_params,
    required_integer,
    required_value,
)
from gitlab_mcp.tools.base import (
    PROJECT_ID_PROPERTY,
    api_error,
    format_response,
    iso8601,
    object_schema,
    tool_definition,
    with_pagination,
)
from gitlab_mcp.toolsets import ServerTool

MERGE_REQUEST_IID_PROPERTY = {
    "type": "number",
    "description": "The IID (internal ID, integer) of the merge request within the project.",
}


def _merge_request_endpoint(project_id: str, mr_iid: int) -> str:
    return f"projects/{project_path(project_id)}/merge_requests/{mr_iid}"


def get_merge_request(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "getMergeRequest",
        "Get Merge Request Details",
        "Retrieves details for a specific GitLab merge request.",
        object_schema(
            {"projectId": PROJECT_ID_PROPERTY, "mergeRequestIid": MERGE_REQUEST_IID_PROPERTY},
            required=["projectId", "mergeRequestIid"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        mr_iid = required_integer(arguments, "mergeRequestIid")

        client = await get_client(ctx)
        try:
            mr = await client.get(_merge_request_endpoint(project_id, mr_iid))
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"merge request {mr_iid} not found in project {project_id!r}",
                f"get merge request {mr_iid} from project {project_id!r}",
            ) from e
        return format_response(mr)

    return ServerTool(tool, handler)


def get_merge_request_comments(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "getMergeRequestComments",
        "Get Merge Request Comments",
        "Retrieves comments or notes from a specific merge request in a GitLab project.",
        object_schema(
            with_pagination({"projectId": PROJECT_ID_PROPERTY, "mergeRequestIid": MERGE_REQUEST_IID_PROPERTY}),
            required=["projectId", "mergeRequestIid"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        mr_iid = required_integer(arguments, "mergeRequestIid")
        page, per_page = pagination_params(arguments)

        client = await get_client(ctx)
        try:
            notes = await client.get(
                f"{_merge_request_endpoint(project_id, mr_iid)}/notes",
                params={"page": page, "per_page": per_page},
            )
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"merge request {mr_iid} not found in project {project_id!r}",
                f"get comments for merge request {mr_iid} in project {project_id!r}",
            ) from e
        return format_response(notes)

    return ServerTool(tool, handler)


def list_merge_requests(get_client: GetClientFn) -> ServerTool:
    """List project merge requests with filtering and pagination."""
    tool = tool_definition(
        "listMergeRequests",
        "List Merge Requests",
        "Lists merge requests for a GitLab project with filtering and pagination options.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "state": {
                        "type": "string",
                        "description": "Return merge requests with the specified state ('opened', 'closed', 'locked', 'merged', or 'all'). Default: 'all'.",
                        "enum": ["opened", "closed", "locked", "merged", "all"],
                    },
                    "scope": {
                        "type": "string",
                        "description": "Return merge requests for the specified scope ('created_by_me', 'assigned_to_me', or 'all'). Default: 'all'.",
                        "enum": ["created_by_me", "assigned_to_me", "all"],
                    },
                    "author_id": {"type": "string", "description": "Return merge requests created by the specified user ID."},
                    "assignee_id": {
                        "type": "string",
                        "description": "Return merge requests assigned to the specified user ID.",
                    },
                    "labels": {
                        "type": "string",
                        "description": "Return merge requests matching the comma-separated list of labels.",
                    },
                    "milestone": {"type": "string", "description": "Return merge requests for the specified milestone title."},
                    "search": {
                        "type": "string",
                        "description": "Return merge requests matching the search query in their title or description.",
                    },
                    "created_after": {
                        "type": "string",
                        "description": "Return merge requests created on or after the given datetime (ISO 8601 format).",
                    },
                    "created_before": {
                        "type": "string",
                        "description": "Return merge requests created on or before the given datetime (ISO 8601 format).",
                    },
                    "updated_after": {
                        "type": "string",
                        "description": "Return merge requests updated on or after the given datetime (ISO 8601 format).",
                    },
                    "updated_before": {
                        "type": "string",
                        "description": "Return merge requests updated on or before the given datetime (ISO 8601 format).",
                    },
                    "sort": {
                        "type": "string",
                        "description": "Return merge requests sorted in the specified order ('asc' or 'desc'). Default: 'desc'.",
                        "enum": ["asc", "desc"],
                    },
                    "order_by": {
                        "type": "string",
                        "description": "Return merge requests ordered by the specified field ('created_at', 'updated_at', or 'title'). Default: 'created_at'.",
                        "enum": ["created_at", "updated_at", "title"],
                    },
                }
            ),
            required=["projectId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        page, per_page = pagination_params(arguments)
        author_id, has_author = optional_integer_presence(arguments, "author_id")
        assignee_id, has_assignee = optional_integer_presence(arguments, "assignee_id")
        labels = optional_string_list(arguments, "labels")

        params = {
            "page": page,
            "per_page": per_page,
            "state": optional_value(arguments, "state", str) or None,
            "scope": optional_value(arguments, "scope", str) or None,
            "author_id": author_id if has_author else None,
            "assignee_id": assignee_id if has_assignee else None,
            "labels": ",".join(labels) or None,
            "milestone": optional_value(arguments, "milestone", str) or None,
            "search": optional_value(arguments, "search", str) or None,
            "created_after": iso8601(optional_timestamp(arguments, "created_after")),
            "created_before": iso8601(optional_timestamp(arguments, "created_before")),
            "updated_after": iso8601(optional_timestamp(arguments, "updated_after")),
            "updated_before": iso8601(optional_timestamp(arguments, "updated_before")),
            "sort": optional_value(arguments, "sort", str) or None,
            "order_by": optional_value(arguments, "order_by", str) or None,
        }

        client = await get_client(ctx)
        try:
            mrs = await client.get(f"projects/{project_path(project_id)}/merge_requests", params=params)
        except GitLabAPIError as e:
            raise api_error(
                e, f"project {project_id!r} not found", f"list merge requests for project {project_id!r}"
            ) from e
        return format_response(mrs)

    return ServerTool(tool, handler)


def create_merge_request(get_client: GetClientFn) -> ServerTool:
    """Open a merge request from a source branch into a target branch."""
    tool = tool_definition(
        "createMergeRequest",
        "Create Merge Request",
        "Creates a new merge request in a GitLab project.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "sourceBranch": {"type": "string", "description": "The source branch."},
                "targetBranch": {"type": "string", "description": "The target branch."},
                "title": {"type": "string", "description": "Title of the merge request."},
                "description": {"type": "string", "description": "Description of the merge request (Markdown)."},
                "labels": {"type": "string", "description": "Comma-separated list of label names."},
                "removeSourceBranch": {
                    "type": "boolean",
                    "description": "Remove the source branch when the merge request is merged.",
                },
                "draft": {"type": "boolean", "description": "Mark the merge request as a draft."},
            },
            required=["projectId", "sourceBranch", "targetBranch", "title"],
        ),
        read_only=False,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        source_branch = required_value(arguments, "sourceBranch", str)
        target_branch = required_value(arguments, "targetBranch", str)
        title = required_value(arguments, "title", str)
        description = optional_value(arguments, "description", str)
        labels = optional_string_list(arguments, "labels")
        remove_source_branch = optional_boolean(arguments, "removeSourceBranch")
        draft = optional_boolean(arguments, "draft")

        # GitLab marks drafts through the title prefix.
        if draft and not title.lower().startswith("draft:"):
            title = f"Draft: {title}"

        data: Dict[str, Any] = {
            "source_branch": source_branch,
            "target_branch": target_branch,
            "title": title,
        }
        if description:
            data["description"] = description
        if labels:
            data["labels"] = ",".join(labels)
        if remove_source_branch is not None:
            data["remove_source_branch"] = remove_source_branch

        client = await get_client(ctx)
        try:
            mr = await client.post(f"projects/{project_path(project_id)}/merge_requests", json_data=data)
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"project {project_id!r} or branch not found",
                f"create merge request {source_branch!r} -> {target_branch!r} in project {project_id!r}",
            ) from e
        return format_response(mr)

    return ServerTool(tool, handler)
