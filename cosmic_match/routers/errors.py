from fastapi import HTTPException, status

from ..repositories.exceptions import (
    BackendTimeoutError,
    NotFoundRepositoryError,
    RepositoryError,
)
from ..services.photos import PhotoLimitError

# Exceptions the routers translate; anything else is a 500
SERVICE_ERRORS = (RepositoryError, PermissionError, ValueError)


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundRepositoryError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc) or "not found")
    if isinstance(exc, PhotoLimitError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc) or "forbidden")
    if isinstance(exc, BackendTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="backend timed out")
    if isinstance(exc, RepositoryError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="backend request failed")
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")


__all__ = ["SERVICE_ERRORS", "http_error"]
