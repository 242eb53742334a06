"""
Runtime configuration for the GitLab MCP server.

Settings come from the environment (a ``.env`` file is loaded first) and can
be overridden on the command line:

    GITLAB_PERSONAL_ACCESS_TOKEN  access token (GITLAB_TOKEN is accepted too)
    GITLAB_API_URL                API base URL, default https://gitlab.com/api/v4
    GITLAB_TOOLSETS               comma-separated toolsets, default "all"
    GITLAB_READ_ONLY              hide write tools ("true", "1", "yes", ...)
    GITLAB_LOG_LEVEL              logging level, default INFO
"""

import argparse
import logging
import os
import sys
import urllib.parse
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from gitlab_mcp.client import DEFAULT_API_URL
from gitlab_mcp.gitlab_toolsets import DEFAULT_TOOLSETS
from gitlab_mcp.params import optional_boolean

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ServerConfig(BaseModel):
    """Validated server settings."""

    token: str = Field(description="GitLab personal access token")
    api_url: str = Field(default=DEFAULT_API_URL, description="GitLab API base URL")
    toolsets: List[str] = Field(default_factory=lambda: list(DEFAULT_TOOLSETS), description="Toolsets to enable")
    read_only: bool = Field(default=False, description="Expose read tools only")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("token")
    @classmethod
    def token_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("GitLab access token is required (set GITLAB_PERSONAL_ACCESS_TOKEN)")
        return value

    @field_validator("api_url")
    @classmethod
    def api_url_is_http(cls, value: str) -> str:
        value = value.strip()
        parsed = urllib.parse.urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"GitLab API URL must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("toolsets", mode="before")
    @classmethod
    def split_toolsets(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        names = [name.strip() for name in value if name and name.strip()]
        if not names:
            raise ValueError("at least one toolset must be given")
        return names

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GitLab MCP Server")
    parser.add_argument("--toolsets", help="Comma-separated toolsets to enable (default: all)")
    parser.add_argument(
        "--read-only",
        action="store_true",
        default=None,
        help="Only expose tools that do not modify GitLab",
    )
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--api-url", help=f"GitLab API base URL (default: {DEFAULT_API_URL})")
    return parser


def load_config(argv: Optional[List[str]] = None, environ: Optional[Dict[str, str]] = None) -> ServerConfig:
    """Build the configuration from the environment and command line arguments.

    Command line flags win over environment variables.

    Raises:
        pydantic.ValidationError: A setting is missing or invalid
        gitlab_mcp.errors.NotBooleanError: GITLAB_READ_ONLY is not a boolean string
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)
    args = build_parser().parse_args(argv)

    read_only = args.read_only
    if read_only is None:
        # An empty or blank GITLAB_READ_ONLY= counts as unset.
        raw = (environ.get("GITLAB_READ_ONLY") or "").strip() or None
        read_only = optional_boolean({"GITLAB_READ_ONLY": raw}, "GITLAB_READ_ONLY") or False

    return ServerConfig(
        token=environ.get("GITLAB_PERSONAL_ACCESS_TOKEN") or environ.get("GITLAB_TOKEN") or "",
        api_url=args.api_url or environ.get("GITLAB_API_URL") or DEFAULT_API_URL,
        toolsets=args.toolsets or environ.get("GITLAB_TOOLSETS") or list(DEFAULT_TOOLSETS),
        read_only=read_only,
        log_level=args.log_level or environ.get("GITLAB_LOG_LEVEL") or "INFO",
    )


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT, stream=sys.stderr)
