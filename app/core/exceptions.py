"""
Custom exceptions and error handlers for the Pollution Report API
"""

from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from .logging_config import get_logger

logger = get_logger("exceptions")


class PollutionReportException(Exception):
    """Base exception for pollution report operations"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ReportValidationException(PollutionReportException):
    """Raised when user input is incomplete; no I/O has been performed"""
    pass


class NormalizationException(PollutionReportException):
    """Raised when an image cannot be re-encoded; callers fall back to the original"""
    pass


class TransportException(PollutionReportException):
    """Raised when an upload or a store round-trip fails"""
    pass


class StoreRejectionException(PollutionReportException):
    """Raised when the document store refuses a write"""
    pass


class ReportNotFoundException(PollutionReportException):
    """Raised when a report is not found"""
    pass


class UserNotFoundException(PollutionReportException):
    """Raised when a user profile is not found"""
    pass


class BarangayNotFoundException(PollutionReportException):
    """Raised when a barangay is not found"""
    pass


class NotificationNotFoundException(PollutionReportException):
    """Raised when a notification is not found"""
    pass


class AuthenticationRequiredException(PollutionReportException):
    """Raised when no authenticated user is attached to the request"""
    pass


class PermissionDeniedException(PollutionReportException):
    """Raised when the actor lacks the role or district for an operation"""
    pass


class InvalidStatusTransitionException(PollutionReportException):
    """Raised when a report status would move backwards"""
    pass


class DuplicateUpvoteException(PollutionReportException):
    """Raised when a user upvotes the same report twice"""
    pass


STATUS_CODE_MAP = {
    ReportValidationException: 422,
    NormalizationException: 500,
    TransportException: 502,
    StoreRejectionException: 400,
    ReportNotFoundException: 404,
    UserNotFoundException: 404,
    BarangayNotFoundException: 404,
    NotificationNotFoundException: 404,
    AuthenticationRequiredException: 401,
    PermissionDeniedException: 403,
    InvalidStatusTransitionException: 409,
    DuplicateUpvoteException: 409,
}


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured error responses"""

    logger.warning(f"HTTP {exc.status_code} at {request.url.path}: {exc.detail}")

    error_response = {
        "error": f"HTTP {exc.status_code}",
        "detail": exc.detail,
        "timestamp": datetime.now().isoformat(),
        "path": str(request.url.path)
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response
    )


async def pollution_report_exception_handler(
    request: Request,
    exc: PollutionReportException
) -> JSONResponse:
    """Handle domain exceptions"""

    status_code = STATUS_CODE_MAP.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__} at {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.__class__.__name__} at {request.url.path}: {exc.message}")
    if exc.details:
        logger.debug(f"Exception details: {exc.details}")

    error_response = {
        "error": exc.__class__.__name__,
        "detail": exc.message,
        "timestamp": datetime.now().isoformat(),
        "path": str(request.url.path)
    }

    if exc.details:
        error_response["additional_info"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content=error_response
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""

    logger.error(f"Unhandled exception at {request.url.path}: {str(exc)}", exc_info=True)

    error_response = {
        "error": "InternalServerError",
        "detail": "An unexpected error occurred",
        "timestamp": datetime.now().isoformat(),
        "path": str(request.url.path)
    }

    return JSONResponse(
        status_code=500,
        content=error_response
    )
