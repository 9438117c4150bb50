"""
Domain exceptions for Ops Hub.

Every error the core raises on purpose is an AppException carrying an
ErrorCode, so the API layer can translate it without inspecting types.
"""

from __future__ import annotations

from typing import Any

from models.error_models import ErrorCode


class AppException(Exception):
    """Base application exception with error code support.

    Example:
        raise AppException(
            code=ErrorCode.SESSION_NOT_FOUND,
            message="Session not found",
            details={"session_id": session_id}
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        super().__init__(message)


class ConfigurationError(AppException):
    """Deployment or configuration gap. Never retried."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_CONFIGURATION_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, details=details)


class UnknownAgentTypeError(ConfigurationError):
    """Requested agent type is absent from the catalog."""

    def __init__(self, agent_type: str):
        self.agent_type = agent_type
        super().__init__(
            message=f"Unknown agent type: {agent_type}",
            code=ErrorCode.AGENT_UNKNOWN_TYPE,
            details={"agent_type": agent_type},
        )


class ToolClientNotRegisteredError(ConfigurationError):
    """No tool client was wired up for an agent type."""

    def __init__(self, agent_type: str):
        self.agent_type = agent_type
        super().__init__(
            message=f"No MCP client registered for agent type: {agent_type}",
            details={"agent_type": agent_type},
        )


class ResourceNotFoundError(AppException):
    """Resource not found errors."""

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} '{resource_id}' not found"
        super().__init__(code=code, message=message, details={"resource": resource, "id": resource_id})


class SessionNotFoundError(ResourceNotFoundError):
    """Session absent from both the cache and the store."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(resource="Session", resource_id=session_id, code=ErrorCode.SESSION_NOT_FOUND)


class SessionConflictError(AppException):
    """A freshly generated session id already exists in the cache."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            code=ErrorCode.SESSION_CONFLICT,
            message="Failed to create session. Please try again.",
            details={"session_id": session_id},
        )


class SessionBusyError(AppException):
    """A turn is already in flight for this session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            code=ErrorCode.SESSION_BUSY,
            message=f"Session '{session_id}' is already processing a message",
            details={"session_id": session_id},
        )


__all__ = [
    "AppException",
    "ConfigurationError",
    "ResourceNotFoundError",
    "SessionBusyError",
    "SessionConflictError",
    "SessionNotFoundError",
    "ToolClientNotRegisteredError",
    "UnknownAgentTypeError",
]
