import pytest
import base64
import json
from unittest.mock import AsyncMock, MagicMock

from gitlab_mcp.client import GitLabClient
from gitlab_mcp.errors import (
    GitLabAPIError,
    InvalidTimestampError,
    MissingParameterError,
    NotWholeNumberError,
    ToolExecutionError,
    ToolResultError,
    TypeMismatchError,
)
from gitlab_mcp.tools import branches, commits, issues, merge_requests, projects, repository_files, search, users

TEST_PROJECT_ID = "group/app"
ENCODED_PROJECT = "group%2Fapp"

MOCK_PROJECT_RESPONSE = {"id": 42, "name": "app", "path_with_namespace": TEST_PROJECT_ID}
MOCK_ISSUE_RESPONSE = {"id": 100, "iid": 3, "title": "Broken build", "state": "opened"}
MOCK_MR_RESPONSE = {"id": 200, "iid": 7, "title": "Fix build", "state": "opened"}
MOCK_NOTE_RESPONSE = {"id": 300, "body": "Looks good"}
MOCK_USER_RESPONSE = {"id": 1, "username": "root"}


@pytest.fixture
def gitlab_client():
    return AsyncMock(spec=GitLabClient)


@pytest.fixture
def get_client(gitlab_client):
    return AsyncMock(return_value=gitlab_client)


@pytest.fixture
def ctx():
    return MagicMock()


def not_found():
    return GitLabAPIError("GitLab API error: 404 - 404 Not Found", status_code=404)


def server_error():
    return GitLabAPIError("GitLab API error: 500", status_code=500)


# Tool definitions

def test_tool_definitions_have_names_and_annotations(get_client):
    tool = projects.get_project(get_client).tool
    assert tool.name == "getProject"
    assert tool.annotations.title == "Get Project Details"
    assert tool.annotations.readOnlyHint is True
    assert tool.inputSchema["required"] == ["projectId"]


def test_write_tools_are_not_read_only(get_client):
    assert branches.create_branch(get_client).tool.annotations.readOnlyHint is False
    assert issues.create_issue(get_client).tool.annotations.readOnlyHint is False


def test_paginated_tools_document_page_properties(get_client):
    schema = issues.list_issues(get_client).tool.inputSchema
    assert "page" in schema["properties"]
    assert "per_page" in schema["properties"]


# Projects

@pytest.mark.asyncio
async def test_get_project(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = MOCK_PROJECT_RESPONSE

    result = await projects.get_project(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID})

    assert json.loads(result) == MOCK_PROJECT_RESPONSE
    gitlab_client.get.assert_awaited_once_with(f"projects/{ENCODED_PROJECT}")
    get_client.assert_awaited_once_with(ctx)


@pytest.mark.asyncio
async def test_get_project_missing_id(get_client, gitlab_client, ctx):
    with pytest.raises(MissingParameterError):
        await projects.get_project(get_client).handler(ctx, {})
    gitlab_client.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_project_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError) as exc:
        await projects.get_project(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID})

    assert str(exc.value) == "project 'group/app' not found or access denied (404)"


@pytest.mark.asyncio
async def test_get_project_server_error(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = server_error()

    with pytest.raises(ToolExecutionError) as exc:
        await projects.get_project(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID})

    assert "failed to get project 'group/app'" in str(exc.value)
    assert "(status: 500)" in str(exc.value)
    assert isinstance(exc.value.__cause__, GitLabAPIError)


@pytest.mark.asyncio
async def test_list_projects_params(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [MOCK_PROJECT_RESPONSE]

    await projects.list_projects(get_client).handler(
        ctx, {"search": "app", "owned": True, "archived": "false", "per_page": 500}
    )

    endpoint = gitlab_client.get.call_args.args[0]
    params = gitlab_client.get.call_args.kwargs["params"]
    assert endpoint == "projects"
    assert params["search"] == "app"
    assert params["owned"] == "true"
    assert params["archived"] == "false"
    assert params["membership"] is None
    assert params["per_page"] == 100
    assert params["page"] == 1


@pytest.mark.asyncio
async def test_list_projects_empty(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = []
    assert await projects.list_projects(get_client).handler(ctx, {}) == "[]"


# Repository files

@pytest.mark.asyncio
async def test_get_project_file_decodes_content(get_client, gitlab_client, ctx):
    content = "print('hello')\n"
    gitlab_client.get.return_value = {
        "file_name": "main.py",
        "content": base64.b64encode(content.encode()).decode(),
        "encoding": "base64",
    }

    result = await repository_files.get_project_file(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "filePath": "src/main.py"}
    )

    assert result == content
    gitlab_client.get.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/repository/files/src%2Fmain.py", params={"ref": "HEAD"}
    )


@pytest.mark.asyncio
async def test_get_project_file_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError) as exc:
        await repository_files.get_project_file(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "filePath": "missing.txt", "ref": "main"}
        )

    assert str(exc.value) == "project 'group/app' or file 'missing.txt' not found, or access denied (ref: 'main') (404)"


@pytest.mark.asyncio
async def test_list_project_files_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError) as exc:
        await repository_files.list_project_files(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "path": "docs", "ref": "dev"}
        )

    assert str(exc.value) == "project 'group/app' or path 'docs' not found, or access denied (ref: 'dev') (404)"


@pytest.mark.asyncio
async def test_list_project_files(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [{"name": "README.md", "type": "blob"}]

    await repository_files.list_project_files(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "path": "docs", "recursive": True}
    )

    params = gitlab_client.get.call_args.kwargs["params"]
    assert gitlab_client.get.call_args.args[0] == f"projects/{ENCODED_PROJECT}/repository/tree"
    assert params["path"] == "docs"
    assert params["recursive"] == "true"
    assert params["ref"] is None


@pytest.mark.asyncio
async def test_create_file_when_missing(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()
    gitlab_client.request.return_value = {"file_path": "new.txt", "branch": "main"}

    await repository_files.create_or_update_file(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "filePath": "new.txt",
            "branch": "main",
            "content": "hi",
            "commitMessage": "Add file",
        },
    )

    method, endpoint = gitlab_client.request.call_args.args
    assert method == "POST"
    assert endpoint == f"projects/{ENCODED_PROJECT}/repository/files/new.txt"
    assert gitlab_client.request.call_args.kwargs["json_data"] == {
        "branch": "main",
        "content": "hi",
        "commit_message": "Add file",
    }


@pytest.mark.asyncio
async def test_update_file_when_present(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = {"file_path": "README.md"}
    gitlab_client.request.return_value = {"file_path": "README.md", "branch": "main"}

    await repository_files.create_or_update_file(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "filePath": "README.md",
            "branch": "main",
            "content": "",
            "commitMessage": "Empty readme",
        },
    )

    assert gitlab_client.request.call_args.args[0] == "PUT"
    assert gitlab_client.request.call_args.kwargs["json_data"]["content"] == ""


@pytest.mark.asyncio
async def test_create_or_update_file_check_fails(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = server_error()

    with pytest.raises(ToolExecutionError):
        await repository_files.create_or_update_file(get_client).handler(
            ctx,
            {"projectId": TEST_PROJECT_ID, "filePath": "a.txt", "branch": "main", "commitMessage": "m"},
        )
    gitlab_client.request.assert_not_awaited()


# Branches and commits

@pytest.mark.asyncio
async def test_get_project_branches(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [{"name": "main"}]

    result = await branches.get_project_branches(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "search": "ma", "page": 2}
    )

    assert json.loads(result) == [{"name": "main"}]
    assert gitlab_client.get.call_args.kwargs["params"] == {"page": 2, "per_page": 30, "search": "ma"}


@pytest.mark.asyncio
async def test_create_branch(get_client, gitlab_client, ctx):
    gitlab_client.post.return_value = {"name": "feature"}

    await branches.create_branch(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "branch": "feature", "ref": "main"}
    )

    gitlab_client.post.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/repository/branches", json_data={"branch": "feature", "ref": "main"}
    )


@pytest.mark.asyncio
async def test_get_project_commits_filters(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [{"id": "abc"}]

    await commits.get_project_commits(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "ref": "main",
            "since": "2024-01-01T00:00:00Z",
            "withStats": True,
        },
    )

    params = gitlab_client.get.call_args.kwargs["params"]
    assert params["ref_name"] == "main"
    assert params["since"] == "2024-01-01T00:00:00+00:00"
    assert params["until"] is None
    assert params["with_stats"] == "true"


@pytest.mark.asyncio
async def test_get_project_commits_bad_timestamp(get_client, gitlab_client, ctx):
    with pytest.raises(InvalidTimestampError):
        await commits.get_project_commits(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "until": "last week"}
        )


@pytest.mark.asyncio
async def test_get_commit(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = {"id": "abc123"}

    await commits.get_commit(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID, "sha": "abc123"})

    gitlab_client.get.assert_awaited_once_with(f"projects/{ENCODED_PROJECT}/repository/commits/abc123")


# Issues

@pytest.mark.asyncio
async def test_get_issue(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = MOCK_ISSUE_RESPONSE

    result = await issues.get_issue(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID, "issueIid": 3.0})

    assert json.loads(result) == MOCK_ISSUE_RESPONSE
    gitlab_client.get.assert_awaited_once_with(f"projects/{ENCODED_PROJECT}/issues/3")


@pytest.mark.asyncio
async def test_get_issue_fractional_iid(get_client, gitlab_client, ctx):
    with pytest.raises(NotWholeNumberError):
        await issues.get_issue(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID, "issueIid": 3.5})


@pytest.mark.asyncio
async def test_get_issue_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError) as exc:
        await issues.get_issue(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID, "issueIid": 99})

    assert str(exc.value) == "issue 99 not found in project 'group/app' or access denied (404)"


@pytest.mark.asyncio
async def test_list_issues_params(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [MOCK_ISSUE_RESPONSE]

    await issues.list_issues(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "state": "opened",
            "labels": "bug, ui",
            "authorId": "0",
            "createdAfter": "2024-05-01T08:00:00Z",
        },
    )

    params = gitlab_client.get.call_args.kwargs["params"]
    assert params["state"] == "opened"
    assert params["labels"] == "bug,ui"
    assert params["author_id"] == 0
    assert params["assignee_id"] is None
    assert params["created_after"] == "2024-05-01T08:00:00+00:00"


@pytest.mark.asyncio
async def test_list_issues_empty(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = []
    assert await issues.list_issues(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID}) == "[]"


@pytest.mark.asyncio
async def test_get_issue_comments(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [MOCK_NOTE_RESPONSE]

    await issues.get_issue_comments(get_client).handler(ctx, {"projectId": TEST_PROJECT_ID, "issueIid": 3})

    gitlab_client.get.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/issues/3/notes", params={"page": 1, "per_page": 30}
    )


@pytest.mark.asyncio
async def test_create_issue(get_client, gitlab_client, ctx):
    gitlab_client.post.return_value = MOCK_ISSUE_RESPONSE

    await issues.create_issue(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "title": "Broken build",
            "labels": ["ci", "bug"],
            "assigneeIds": [5, 6.0],
        },
    )

    gitlab_client.post.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/issues",
        json_data={"title": "Broken build", "labels": "ci,bug", "assignee_ids": [5, 6]},
    )


@pytest.mark.asyncio
async def test_create_issue_bad_assignee(get_client, gitlab_client, ctx):
    with pytest.raises(TypeMismatchError):
        await issues.create_issue(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "title": "t", "assigneeIds": ["alice"]}
        )


@pytest.mark.asyncio
async def test_create_issue_fractional_assignee(get_client, gitlab_client, ctx):
    with pytest.raises(NotWholeNumberError) as exc:
        await issues.create_issue(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "title": "t", "assigneeIds": [5, 1.5]}
        )
    assert exc.value.parameter == "assigneeIds"
    gitlab_client.post.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_issue_comment(get_client, gitlab_client, ctx):
    gitlab_client.post.return_value = MOCK_NOTE_RESPONSE

    result = await issues.add_issue_comment(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "issueIid": 3, "body": "Looks good"}
    )

    assert json.loads(result) == MOCK_NOTE_RESPONSE
    gitlab_client.post.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/issues/3/notes", json_data={"body": "Looks good"}
    )


# Merge requests

@pytest.mark.asyncio
async def test_get_merge_request(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = MOCK_MR_RESPONSE

    await merge_requests.get_merge_request(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "mergeRequestIid": 7}
    )

    gitlab_client.get.assert_awaited_once_with(f"projects/{ENCODED_PROJECT}/merge_requests/7")


@pytest.mark.asyncio
async def test_get_merge_request_comments_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError, match="merge request 7 not found"):
        await merge_requests.get_merge_request_comments(get_client).handler(
            ctx, {"projectId": TEST_PROJECT_ID, "mergeRequestIid": 7}
        )


@pytest.mark.asyncio
async def test_list_merge_requests_params(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [MOCK_MR_RESPONSE]

    await merge_requests.list_merge_requests(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "state": "merged",
            "author_id": "12",
            "order_by": "title",
            "updated_before": "2024-06-01T00:00:00Z",
        },
    )

    params = gitlab_client.get.call_args.kwargs["params"]
    assert params["state"] == "merged"
    assert params["author_id"] == 12
    assert params["order_by"] == "title"
    assert params["updated_before"] == "2024-06-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_create_merge_request_draft(get_client, gitlab_client, ctx):
    gitlab_client.post.return_value = MOCK_MR_RESPONSE

    await merge_requests.create_merge_request(get_client).handler(
        ctx,
        {
            "projectId": TEST_PROJECT_ID,
            "sourceBranch": "feature",
            "targetBranch": "main",
            "title": "Fix build",
            "draft": True,
            "removeSourceBranch": False,
        },
    )

    gitlab_client.post.assert_awaited_once_with(
        f"projects/{ENCODED_PROJECT}/merge_requests",
        json_data={
            "source_branch": "feature",
            "target_branch": "main",
            "title": "Draft: Fix build",
            "remove_source_branch": False,
        },
    )


# Users and search

@pytest.mark.asyncio
async def test_get_current_user(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = MOCK_USER_RESPONSE

    result = await users.get_current_user(get_client).handler(ctx, {})

    assert json.loads(result) == MOCK_USER_RESPONSE
    gitlab_client.get.assert_awaited_once_with("user")


@pytest.mark.asyncio
async def test_get_user_not_found(get_client, gitlab_client, ctx):
    gitlab_client.get.side_effect = not_found()

    with pytest.raises(ToolResultError, match="user 9 not found"):
        await users.get_user(get_client).handler(ctx, {"userId": 9})


@pytest.mark.asyncio
async def test_search_global(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = [MOCK_PROJECT_RESPONSE]

    await search.search_global(get_client).handler(ctx, {"scope": "projects", "search": "app"})

    gitlab_client.get.assert_awaited_once_with(
        "search", params={"scope": "projects", "search": "app", "page": 1, "per_page": 30}
    )


@pytest.mark.asyncio
async def test_search_project(get_client, gitlab_client, ctx):
    gitlab_client.get.return_value = []

    result = await search.search_project(get_client).handler(
        ctx, {"projectId": TEST_PROJECT_ID, "scope": "blobs", "search": "TODO", "ref": "main"}
    )

    assert result == "[]"
    assert gitlab_client.get.call_args.args[0] == f"projects/{ENCODED_PROJECT}/search"
    assert gitlab_client.get.call_args.kwargs["params"]["ref"] == "main"
