"""
Custom API Exceptions
"""
from fastapi import HTTPException
from typing import Optional


class APIException(HTTPException):
    """Base API exception"""
    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code


class InvalidSubjectError(APIException):
    """Malformed username or wallet"""
    def __init__(self, identifier: str):
        super().__init__(
            status_code=400,
            detail=f"Invalid username format: {identifier}",
            error_code="INVALID_USERNAME"
        )


class UpstreamUnavailableError(APIException):
    """Polymarket could not be reached"""
    def __init__(self, reason: str = ""):
        super().__init__(
            status_code=503,
            detail=f"Polymarket API is unavailable. Please try again later. {reason}".strip(),
            error_code="SERVICE_UNAVAILABLE"
        )


class ComputationTimeoutError(APIException):
    """Request deadline exceeded"""
    def __init__(self, identifier: str):
        super().__init__(
            status_code=504,
            detail=f"Request for {identifier} timed out. Please try again.",
            error_code="TIMEOUT"
        )
