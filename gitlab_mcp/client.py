"""
Minimal async client for the GitLab REST API (v4).

Tool handlers never build a client themselves; they receive a ``GetClientFn``
and ask it for a configured client at call time.
"""

import logging
import urllib.parse
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from gitlab_mcp.errors import GitLabAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://gitlab.com/api/v4"
DEFAULT_TIMEOUT = 30.0


class GitLabClient:
    """Send authenticated requests to one GitLab instance.

    Args:
        token: Personal access token
        api_url: Base URL of the API, e.g. ``https://gitlab.example.com/api/v4``
        timeout: Request timeout in seconds
    """

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, timeout: float = DEFAULT_TIMEOUT):
        if not token:
            raise ValueError("GitLab access token cannot be empty")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def __repr__(self) -> str:
        return f"GitLabClient(api_url={self.api_url!r})"

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make a request to the GitLab API.

        Args:
            method: HTTP method
            endpoint: Path relative to the API URL, e.g. ``projects/42/issues``
            params: Query parameters; ``None`` values are dropped
            json_data: JSON request body

        Returns:
            Decoded JSON response, or ``{"success": True}`` for 204 responses

        Raises:
            GitLabAPIError: The API answered with an error status or could not be reached
        """
        url = f"{self.api_url}/{endpoint}"
        headers = {
            "PRIVATE-TOKEN": self._token,
            "Content-Type": "application/json",
        }
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        logger.debug(f"GitLab request: {method} {url} params={params}")
        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_data,
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                raise GitLabAPIError(
                    f"GitLab API error: {status_code}{_error_detail(e.response)}",
                    status_code=status_code,
                ) from e
            except httpx.RequestError as e:
                raise GitLabAPIError(f"Error making GitLab API request: {e}") from e

        if response.status_code == 204:  # No content
            return {"success": True}
        return response.json()

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", endpoint, json_data=json_data)

    async def put(self, endpoint: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", endpoint, json_data=json_data)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return f" - {message}"
    return ""


# Returns a configured client for the request context a tool is called in.
GetClientFn = Callable[[Any], Awaitable[GitLabClient]]


def new_client(token: str, host: Optional[str] = None) -> GitLabClient:
    """Create a client for ``host`` (an API base URL), or gitlab.com when empty."""
    return GitLabClient(token, api_url=host or DEFAULT_API_URL)


def project_path(project_id: Union[str, int]) -> str:
    """URL-encode a project ID or ``namespace/project`` path for use in an endpoint."""
    return urllib.parse.quote(str(project_id), safe="")
