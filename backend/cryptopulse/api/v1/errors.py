"""Service error to HTTP response mapping."""

from fastapi import HTTPException

from cryptopulse.schemas.indicators import IndicatorUnavailable
from cryptopulse.services.base import (
    DataSourceError,
    InsufficientDataError,
    ServiceError,
    ValidationError,
)


def to_http_exception(error: ServiceError, symbol: str = "") -> HTTPException:
    if isinstance(error, InsufficientDataError):
        body = IndicatorUnavailable(
            symbol=error.details.get("symbol", symbol.upper()),
            detail=error.message,
        )
        return HTTPException(status_code=422, detail=body.model_dump(mode="json"))
    if isinstance(error, DataSourceError):
        return HTTPException(status_code=502, detail=error.message)
    # MalformedInputError is a ValidationError
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)
