from __future__ import annotations

import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def store_unavailable(exc: Exception) -> HTTPException:
    logger.warning("Record store failure: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Record store unavailable",
    )


def invalid_query(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
