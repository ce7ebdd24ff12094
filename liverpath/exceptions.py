from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class LiverPathError(Exception):
    """Base class for every domain failure raised by the services."""

    status_code: int = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ConflictError(LiverPathError):
    status_code = 409


class InvalidCredentialsError(LiverPathError):
    status_code = 401


class NotFoundError(LiverPathError):
    status_code = 404


class RecordNotFoundError(NotFoundError):
    def __init__(self, record_id: str):
        super().__init__(f"Analysis record {record_id} not found")
        self.record_id = record_id


class AnalysisFailedError(LiverPathError):
    """Opaque inference failure; the detail is logged, never returned."""

    status_code = 502

    def __init__(self, message: str = "Analysis failed. Please try again."):
        super().__init__(message)


class StorageUnavailableError(LiverPathError):
    status_code = 503


class CorruptRecordError(LiverPathError):
    """A stored record exists but cannot be read back."""

    status_code = 500


class UnsupportedImageError(LiverPathError):
    status_code = 415


class ImageTooLargeError(LiverPathError):
    status_code = 413


class InvalidTransitionError(LiverPathError):
    status_code = 409


class OperationCancelled(LiverPathError):
    status_code = 409


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


def create_success_response(data) -> dict:
    """Create a standardized success response"""
    return {
        "success": True,
        "data": data,
        "error": None
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # HTTPBearer reports a missing header as 403
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )


async def domain_exception_handler(request: Request, exc: LiverPathError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.status_code)
    )
