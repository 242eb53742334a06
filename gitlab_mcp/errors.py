"""
Exception hierarchy for the GitLab MCP server.

Two families matter to callers:

* ``ToolResultError`` and its ``ValidationError`` subclasses describe problems
  with what the agent asked for. Their message is shown to the agent as the
  tool result.
* ``GitLabAPIError`` and ``ToolExecutionError`` describe upstream or internal
  failures. They are logged with a traceback by the server.
"""

from typing import Optional


class GitLabMCPError(Exception):
    """Base class for all errors raised by this package."""


class ToolResultError(GitLabMCPError):
    """An error whose message is meant for the invoking agent."""


class ValidationError(ToolResultError, ValueError):
    """Malformed caller input: a bad tool argument or toolset name."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message)
        self.parameter = parameter


class MissingParameterError(ValidationError):
    pass


class TypeMismatchError(ValidationError):
    def __init__(self, message: str, parameter: Optional[str] = None, present: bool = True):
        super().__init__(message, parameter)
        # Absent keys never fail a type check.
        self.present = present


class EmptyValueError(ValidationError):
    pass


class NotWholeNumberError(ValidationError):
    pass


class NotConvertibleError(ValidationError):
    pass


class NotBooleanError(ValidationError):
    pass


class InvalidTimestampError(ValidationError):
    pass


class UnknownToolsetError(ValidationError):
    pass


class NoToolsetsSpecifiedError(ValidationError):
    pass


class GitLabAPIError(GitLabMCPError):
    """A failed call to the GitLab REST API.

    ``status_code`` is ``None`` when the request never got an HTTP response
    (connection refused, timeout, ...).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ToolExecutionError(GitLabMCPError):
    """An internal failure while running a tool handler."""
