# garden_controller/api/deps.py
from typing import Optional

from fastapi import Header, HTTPException

from garden_controller.config import settings
from seed_scheduler.errors import (ConcurrentModification, InvalidShootSpec, NotFound, SchedulerError,
                                   ValidationRejected)


def require_controller_token(authorization: Optional[str] = Header(None)):
    expected = settings.controller_token
    if expected:
        if not authorization:
            raise HTTPException(status_code=401, detail="Missing Authorization header")
        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer" or parts[1] != expected:
            raise HTTPException(status_code=401, detail="Invalid token")
    return True


def http_error(exc: SchedulerError) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConcurrentModification):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (ValidationRejected, InvalidShootSpec)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
