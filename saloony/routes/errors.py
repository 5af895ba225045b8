from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from saloony.services.exceptions import ServiceError

logger = logging.getLogger(__name__)


@contextmanager
def service_errors() -> Iterator[None]:
    """Translate service and database failures into HTTP errors."""

    try:
        yield
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Database error: %s", exc)
        raise HTTPException(status_code=500, detail="Database error.") from exc
