"""Structured errors for operator installation."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


class InstallError(RuntimeError):
    """Structured exception for installation failures.

    ``stage`` is empty until the installer records which pipeline stage failed.
    """

    default_code = "install_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        stage: str = "",
        details: dict[str, Any] | None = None,
        timestamp: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.stage = stage
        self.message = message
        self.details = details or {}
        self.timestamp = timestamp or datetime.now(UTC).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs and CLI output."""
        return {
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        """Serialize the error as a compact JSON string."""
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=True)


class UnsupportedError(InstallError):
    """No install mode is usable for the operator."""

    default_code = "unsupported_install_mode"


class ValidationError(InstallError):
    """Requested install mode or existing OperatorGroup is incompatible."""

    default_code = "invalid_install_mode"


class ConflictError(InstallError):
    """More than one OperatorGroup exists in a namespace."""

    default_code = "operator_group_conflict"


class NotReadyError(InstallError):
    """A bounded wait ran past its deadline."""

    default_code = "not_ready"


class APIError(InstallError):
    """The resource store rejected a request."""

    default_code = "api_error"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        stage: str = "",
        details: dict[str, Any] | None = None,
        timestamp: str | None = None,
    ) -> None:
        merged = dict(details or {})
        if status is not None:
            merged.setdefault("status", status)
        super().__init__(message, code=code, stage=stage, details=merged, timestamp=timestamp)
        self.status = status


class NotFoundError(APIError):
    """The requested resource does not exist."""

    default_code = "not_found"


class ResourceVersionConflictError(APIError):
    """An update was rejected because the resource version was stale."""

    default_code = "resource_version_conflict"


def with_stage(error: InstallError, stage: str) -> InstallError:
    """Record the failing stage on ``error`` and prefix its message.

    Errors that already carry a stage are returned untouched.
    """
    if error.stage:
        return error
    error.stage = stage
    error.message = f"{stage}: {error.message}"
    error.args = (error.message,)
    return error


def ensure_install_error(
    error: Exception,
    *,
    stage: str,
    details: dict[str, Any] | None = None,
) -> InstallError:
    """Normalize unknown exceptions into a structured install error."""
    if isinstance(error, InstallError):
        return with_stage(error, stage)

    merged_details = dict(details or {})
    merged_details.setdefault("exception_type", type(error).__name__)

    return with_stage(
        APIError(str(error) or "Unknown installation error", details=merged_details),
        stage,
    )


__all__ = [
    "APIError",
    "ConflictError",
    "InstallError",
    "NotFoundError",
    "NotReadyError",
    "ResourceVersionConflictError",
    "UnsupportedError",
    "ValidationError",
    "ensure_install_error",
    "with_stage",
]
