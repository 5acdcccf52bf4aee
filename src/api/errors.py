"""Map fleet administration failures onto HTTP errors."""

from typing import NoReturn

from fastapi import HTTPException

from src.api.schemas import ErrorResponse
from src.services.fleet import FleetError, OperationRejected, RecordNotFound


def raise_for(exc: FleetError, not_found_status: int = 404) -> NoReturn:
    if isinstance(exc, RecordNotFound):
        raise HTTPException(status_code=not_found_status, detail=str(exc)) from exc
    if isinstance(exc, OperationRejected):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


# OpenAPI documentation for routes that raise through ``raise_for``
ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Record not found"},
    409: {"model": ErrorResponse, "description": "Operation rejected"},
}
