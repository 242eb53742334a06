"""
Builds the GitLab toolsets and enables the requested ones.
"""

import logging
from typing import List

from gitlab_mcp.client import GetClientFn
from gitlab_mcp.tools import branches, commits, issues, merge_requests, projects, repository_files, search, users
from gitlab_mcp.toolsets import Toolset, ToolsetGroup

logger = logging.getLogger(__name__)

# Toolsets enabled when the operator does not choose any.
DEFAULT_TOOLSETS = ["all"]


def init_toolsets(enabled_toolsets: List[str], read_only: bool, get_client: GetClientFn) -> ToolsetGroup:
    """Create the GitLab toolset group and enable ``enabled_toolsets`` in it.

    Args:
        enabled_toolsets: Toolset names, or ``["all"]``
        read_only: Hide every write tool
        get_client: Passed to each tool so handlers can reach GitLab

    Returns:
        The populated group

    Raises:
        NoToolsetsSpecifiedError: ``enabled_toolsets`` is empty
        UnknownToolsetError: A name does not match any toolset
    """
    group = ToolsetGroup(read_only)

    projects_ts = Toolset(
        "projects", "Tools for interacting with GitLab projects, repositories, branches, commits, tags."
    )
    issues_ts = Toolset("issues", "Tools for CRUD operations on GitLab issues, comments, labels.")
    merge_requests_ts = Toolset(
        "merge_requests", "Tools for CRUD operations on GitLab merge requests, comments, approvals, diffs."
    )
    security_ts = Toolset("security", "Tools for accessing GitLab security scan results (SAST, DAST, etc.).")
    users_ts = Toolset("users", "Tools for looking up GitLab user information.")
    search_ts = Toolset("search", "Tools for utilizing GitLab's scoped search capabilities.")

    projects_ts.add_read_tools(
        projects.get_project(get_client),
        projects.list_projects(get_client),
        repository_files.get_project_file(get_client),
        repository_files.list_project_files(get_client),
        branches.get_project_branches(get_client),
        commits.get_project_commits(get_client),
        commits.get_commit(get_client),
    ).add_write_tools(
        branches.create_branch(get_client),
        repository_files.create_or_update_file(get_client),
    )

    issues_ts.add_read_tools(
        issues.get_issue(get_client),
        issues.list_issues(get_client),
        issues.get_issue_comments(get_client),
    ).add_write_tools(
        issues.create_issue(get_client),
        issues.add_issue_comment(get_client),
    )

    merge_requests_ts.add_read_tools(
        merge_requests.get_merge_request(get_client),
        merge_requests.get_merge_request_comments(get_client),
        merge_requests.list_merge_requests(get_client),
    ).add_write_tools(
        merge_requests.create_merge_request(get_client),
    )

    # No security tools yet.

    users_ts.add_read_tools(
        users.get_current_user(get_client),
        users.get_user(get_client),
    )

    search_ts.add_read_tools(
        search.search_project(get_client),
        search.search_global(get_client),
    )

    for toolset in (projects_ts, issues_ts, merge_requests_ts, security_ts, users_ts, search_ts):
        group.add_toolset(toolset)

    group.enable_toolsets(enabled_toolsets)
    logger.info(f"Enabled toolsets: {', '.join(group.enabled_toolsets())} (read-only: {read_only})")
    return group
