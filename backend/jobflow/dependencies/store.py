from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobflow.core.database import get_db
from jobflow.core.timeutil import utcnow
from jobflow.dependencies.auth import get_identity_key
from jobflow.stores.sql import SERVER_MODELS, SqlStore


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_store(
    db: Session = Depends(get_db),
    identity_key: str = Depends(get_identity_key),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SqlStore:
    """Request-scoped store bound to the caller's rows."""
    return SqlStore(db, SERVER_MODELS, owner_id=identity_key, clock=clock)


def not_found(detail: str = "Application not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
