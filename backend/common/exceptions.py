"""
Standardized error handling for API responses.

Endpoints never expose internal details (database errors, warehouse SQL,
SMTP conversations, stack traces) to clients. Errors are logged in full and
converted to HTTPException instances carrying a safe, generic message.

Architecture:
    1. Internal errors are logged with full details for debugging
    2. User-facing errors contain only safe, generic messages

Example:
    ```python
    from common.exceptions import create_api_error, handle_database_error

    try:
        job = await repository.get_job(job_id)
    except SQLAlchemyError as e:
        raise handle_database_error("fetching scheduled report", e)

    raise create_api_error(
        operation="executing scheduled report",
        status_code=409,
        user_message="Report has already been sent",
    )
    ```
"""

from fastapi import HTTPException
from loguru import logger

# HTTP Status Code Constants
HTTP_400_BAD_REQUEST = 400
HTTP_401_UNAUTHORIZED = 401
HTTP_403_FORBIDDEN = 403
HTTP_404_NOT_FOUND = 404
HTTP_409_CONFLICT = 409
HTTP_422_UNPROCESSABLE_ENTITY = 422
HTTP_429_TOO_MANY_REQUESTS = 429
HTTP_500_INTERNAL_SERVER_ERROR = 500
HTTP_503_SERVICE_UNAVAILABLE = 503

DEFAULT_MESSAGES = {
    HTTP_400_BAD_REQUEST: "Invalid request. Please check your input and try again.",
    HTTP_401_UNAUTHORIZED: "Authentication failed. Please check your credentials.",
    HTTP_403_FORBIDDEN: "Access denied. You don't have permission to perform this action.",
    HTTP_404_NOT_FOUND: "Resource not found.",
    HTTP_409_CONFLICT: "The request conflicts with the current state of the resource.",
    HTTP_422_UNPROCESSABLE_ENTITY: "Validation error. Please check your request parameters.",
    HTTP_429_TOO_MANY_REQUESTS: "Rate limit exceeded. Please try again later.",
    HTTP_503_SERVICE_UNAVAILABLE: "Service temporarily unavailable. Please try again later.",
}


def create_api_error(
    operation: str,
    status_code: int = 500,
    internal_error: Exception | None = None,
    user_message: str | None = None,
) -> HTTPException:
    """
    Create a standardized API error response.

    Args:
        operation: Description of the operation that failed (e.g.,
            "creating scheduled report"). Used for logging context.
        status_code: HTTP status code to return. Defaults to 500.
        internal_error: Original exception. Logged with traceback, never
            included in the response.
        user_message: Custom message safe for clients. When None, a generic
            message appropriate for the status code is used.

    Returns:
        HTTPException ready to be raised from a FastAPI route handler.
    """
    if internal_error and status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.exception(f"API error in {operation}: {internal_error}")
    elif internal_error:
        logger.info(f"Request rejected in {operation}: {internal_error}")

    message = user_message or DEFAULT_MESSAGES.get(
        status_code,
        "An error occurred while processing your request. Please try again later.",
    )
    return HTTPException(status_code=status_code, detail=message)


def handle_database_error(operation: str, error: Exception) -> HTTPException:
    """
    Handle database-related and otherwise unexpected errors.

    Always returns a 500 with a generic message so that table names, SQL and
    connection details never leak to clients.
    """
    logger.exception(f"Database error in {operation}: {error}")
    return HTTPException(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process the request. Please try again later.",
    )


def handle_validation_error(operation: str, error: Exception) -> HTTPException:
    """
    Handle validation errors with a 422 response.

    Validation failures are expected, so they are logged at WARNING level.
    The error text is passed through because validation messages describe
    the client's own input (field names and constraints), not server state.
    """
    logger.warning(f"Validation error in {operation}: {error}")
    return HTTPException(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Invalid request parameters: {error}",
    )
