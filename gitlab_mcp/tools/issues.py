"""
Issue tools: read issues and their comments, open issues and comment on them.
"""

from typing import Any, Dict

from gitlab_mcp.client import GetClientFn, project_path
from gitlab_mcp.errors import GitLabAPIError
from gitlab_mcp.params import (
    optional_integer,
    optional_integer_list,
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

ISSUE_IID_PROPERTY = {
    "type": "number",
    "description": "The IID (internal ID, integer) of the issue within the project.",
}


def _timestamp_property(verb: str, edge: str) -> Dict[str, str]:
    return {
        "type": "string",
        "description": f"Return issues {verb} on or {edge} the given time (ISO 8601 format: YYYY-MM-DDTHH:MM:SSZ).",
    }


def get_issue(get_client: GetClientFn) -> ServerTool:
    """Retrieve a single issue by its project-scoped IID."""
    tool = tool_definition(
        "getIssue",
        "Get Issue Details",
        "Retrieves details for a specific GitLab issue.",
        object_schema(
            {"projectId": PROJECT_ID_PROPERTY, "issueIid": ISSUE_IID_PROPERTY},
            required=["projectId", "issueIid"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        issue_iid = required_integer(arguments, "issueIid")

        client = await get_client(ctx)
        try:
            issue = await client.get(f"projects/{project_path(project_id)}/issues/{issue_iid}")
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"issue {issue_iid} not found in project {project_id!r}",
                f"get issue {issue_iid} from project {project_id!r}",
            ) from e
        return format_response(issue)

    return ServerTool(tool, handler)


def list_issues(get_client: GetClientFn) -> ServerTool:
    """List project issues with filtering and pagination."""
    tool = tool_definition(
        "listIssues",
        "List Project Issues",
        "Retrieves a list of issues in a GitLab project with pagination and filtering.",
        object_schema(
            with_pagination(
                {
                    "projectId": PROJECT_ID_PROPERTY,
                    "state": {
                        "type": "string",
                        "description": "Return issues with the specified state (opened, closed, all).",
                        "enum": ["opened", "closed", "all"],
                    },
                    "labels": {"type": "string", "description": "Comma-separated list of label names to filter by."},
                    "milestone": {"type": "string", "description": "Milestone title to filter by."},
                    "scope": {
                        "type": "string",
                        "description": "Return issues for the given scope (created_by_me, assigned_to_me, all).",
                        "enum": ["created_by_me", "assigned_to_me", "all"],
                    },
                    "authorId": {"type": "number", "description": "Return issues created by the given user ID (integer)."},
                    "assigneeId": {
                        "type": "number",
                        "description": "Return issues assigned to the given user ID (integer).",
                    },
                    "search": {"type": "string", "description": "Search issues against their title and description."},
                    "orderBy": {
                        "type": "string",
                        "description": "Return issues ordered by this field (created_at, updated_at, priority).",
                        "enum": ["created_at", "updated_at", "priority"],
                    },
                    "sort": {
                        "type": "string",
                        "description": "Return issues sorted in asc or desc order.",
                        "enum": ["asc", "desc"],
                    },
                    "createdAfter": _timestamp_property("created", "after"),
                    "createdBefore": _timestamp_property("created", "before"),
                    "updatedAfter": _timestamp_property("updated", "after"),
                    "updatedBefore": _timestamp_property("updated", "before"),
                }
            ),
            required=["projectId"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        labels = optional_string_list(arguments, "labels")
        # Zero is a valid filter value for these two, so presence matters.
        author_id, has_author = optional_integer_presence(arguments, "authorId")
        assignee_id, has_assignee = optional_integer_presence(arguments, "assigneeId")
        page, per_page = pagination_params(arguments)

        params = {
            "page": page,
            "per_page": per_page,
            "state": optional_value(arguments, "state", str) or None,
            "labels": ",".join(labels) or None,
            "milestone": optional_value(arguments, "milestone", str) or None,
            "scope": optional_value(arguments, "scope", str) or None,
            "author_id": author_id if has_author else None,
            "assignee_id": assignee_id if has_assignee else None,
            "search": optional_value(arguments, "search", str) or None,
            "order_by": optional_value(arguments, "orderBy", str) or None,
            "sort": optional_value(arguments, "sort", str) or None,
            "created_after": iso8601(optional_timestamp(arguments, "createdAfter")),
            "created_before": iso8601(optional_timestamp(arguments, "createdBefore")),
            "updated_after": iso8601(optional_timestamp(arguments, "updatedAfter")),
            "updated_before": iso8601(optional_timestamp(arguments, "updatedBefore")),
        }

        client = await get_client(ctx)
        try:
            issues = await client.get(f"projects/{project_path(project_id)}/issues", params=params)
        except GitLabAPIError as e:
            raise api_error(e, f"project {project_id!r} not found", f"list issues for project {project_id!r}") from e
        return format_response(issues)

    return ServerTool(tool, handler)


def get_issue_comments(get_client: GetClientFn) -> ServerTool:
    """List the notes (comments) on an issue."""
    tool = tool_definition(
        "getIssueComments",
        "Get Issue Comments",
        "Retrieves a list of comments (notes) for a specific GitLab issue.",
        object_schema(
            with_pagination({"projectId": PROJECT_ID_PROPERTY, "issueIid": ISSUE_IID_PROPERTY}),
            required=["projectId", "issueIid"],
        ),
        read_only=True,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        issue_iid = required_integer(arguments, "issueIid")
        page, per_page = pagination_params(arguments)

        client = await get_client(ctx)
        try:
            notes = await client.get(
                f"projects/{project_path(project_id)}/issues/{issue_iid}/notes",
                params={"page": page, "per_page": per_page},
            )
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"issue {issue_iid} not found in project {project_id!r}",
                f"get comments for issue {issue_iid} in project {project_id!r}",
            ) from e
        return format_response(notes)

    return ServerTool(tool, handler)


def create_issue(get_client: GetClientFn) -> ServerTool:
    """Open a new issue in a project."""
    tool = tool_definition(
        "createIssue",
        "Create Issue",
        "Creates a new issue in a GitLab project.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "title": {"type": "string", "description": "The title of the issue."},
                "description": {"type": "string", "description": "The description of the issue (Markdown)."},
                "labels": {"type": "string", "description": "Comma-separated list of label names."},
                "assigneeIds": {
                    "type": "array",
                    "items": {"type": "number"},
                    "description": "IDs of the users to assign the issue to.",
                },
                "milestoneId": {"type": "number", "description": "The global ID of a milestone to assign the issue to."},
            },
            required=["projectId", "title"],
        ),
        read_only=False,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        title = required_value(arguments, "title", str)
        description = optional_value(arguments, "description", str)
        labels = optional_string_list(arguments, "labels")
        assignee_ids = optional_integer_list(arguments, "assigneeIds")
        milestone_id = optional_integer(arguments, "milestoneId")

        data: Dict[str, Any] = {"title": title}
        if description:
            data["description"] = description
        if labels:
            data["labels"] = ",".join(labels)
        if assignee_ids:
            data["assignee_ids"] = assignee_ids
        if milestone_id:
            data["milestone_id"] = milestone_id

        client = await get_client(ctx)
        try:
            issue = await client.post(f"projects/{project_path(project_id)}/issues", json_data=data)
        except GitLabAPIError as e:
            raise api_error(e, f"project {project_id!r} not found", f"create issue in project {project_id!r}") from e
        return format_response(issue)

    return ServerTool(tool, handler)


def add_issue_comment(get_client: GetClientFn) -> ServerTool:
    tool = tool_definition(
        "addIssueComment",
        "Add Issue Comment",
        "Adds a comment (note) to a specific GitLab issue.",
        object_schema(
            {
                "projectId": PROJECT_ID_PROPERTY,
                "issueIid": ISSUE_IID_PROPERTY,
                "body": {"type": "string", "description": "The content of the comment (Markdown)."},
            },
            required=["projectId", "issueIid", "body"],
        ),
        read_only=False,
    )

    async def handler(ctx: Any, arguments: Dict[str, Any]) -> str:
        project_id = required_value(arguments, "projectId", str)
        issue_iid = required_integer(arguments, "issueIid")
        body = required_value(arguments, "body", str)

        client = await get_client(ctx)
        try:
            note = await client.post(
                f"projects/{project_path(project_id)}/issues/{issue_iid}/notes",
                json_data={"body": body},
            )
        except GitLabAPIError as e:
            raise api_error(
                e,
                f"issue {issue_iid} not found in project {project_id!r}",
                f"add comment to issue {issue_iid} in project {project_id!r}",
            ) from e
        return format_response(note)

    return ServerTool(tool, handler)
