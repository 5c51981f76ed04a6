"""
Error taxonomy for blueprint services.

Routers turn these into HTTPException using status_code; services never
return error objects, they raise.
"""

from fastapi import HTTPException, status


class BlueprintError(Exception):
    """Base class for all blueprint service failures."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BlueprintValidationError(BlueprintError):
    """Malformed input, rejected before any transaction opens."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(BlueprintError):
    """Referenced certification (or parent entity) does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConstraintError(BlueprintError):
    """Integrity failure: FK/uniqueness violation or an ID re-match mismatch."""

    status_code = status.HTTP_409_CONFLICT


class ImportTimeoutError(BlueprintError):
    """Import exceeded its deadline; the transaction was rolled back."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class DataStoreError(BlueprintError):
    """Connection or transport failure talking to the database."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ExtractionError(BlueprintError):
    """LLM blueprint extraction failed or returned unusable output."""

    status_code = status.HTTP_502_BAD_GATEWAY


class UnparsableExtractionError(ExtractionError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


def to_http_exception(error: BlueprintError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
