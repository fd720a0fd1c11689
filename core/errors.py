from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CLEANUP_UNAUTHORIZED = "CLEANUP_UNAUTHORIZED"
    CLEANUP_IN_PROGRESS = "CLEANUP_IN_PROGRESS"
    DOCUMENT_UPLOAD_INVALID = "DOCUMENT_UPLOAD_INVALID"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class AppException(HTTPException):
    def __init__(
        self,
        *,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)


def resource_not_found(resource: str, resource_id: str | None = None) -> AppException:
    details = {"resource": resource}
    if resource_id:
        details["resource_id"] = resource_id
    return AppException(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.RESOURCE_NOT_FOUND,
        message=f"{resource} not found",
        details=details,
    )


def upload_invalid(message: str, details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=ErrorCode.DOCUMENT_UPLOAD_INVALID,
        message=message,
        details=details,
    )


def cleanup_unauthorized() -> AppException:
    return AppException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code=ErrorCode.CLEANUP_UNAUTHORIZED,
        message="Unauthorized",
    )


def cleanup_in_progress() -> AppException:
    return AppException(
        status_code=status.HTTP_409_CONFLICT,
        code=ErrorCode.CLEANUP_IN_PROGRESS,
        message="A cleanup sweep is already running",
    )


def storage_unavailable(provider: str) -> AppException:
    return AppException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code=ErrorCode.STORAGE_UNAVAILABLE,
        message="Storage provider not configured",
        details={"provider": provider},
    )
