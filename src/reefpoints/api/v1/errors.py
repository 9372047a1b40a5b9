"""Mapping of service errors onto HTTP responses."""

from fastapi import HTTPException

from ...services.errors import RewardsError


def to_http_exception(exc: RewardsError) -> HTTPException:
    """Keep the machine-readable code next to the user-facing message."""
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.detail})
