"""FastAPI dependencies for database access, clock and staff authorization."""

import hmac
from typing import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from clinic_api.core.clock import Clock, system_clock
from clinic_api.core.config import settings
from clinic_api.db.session import SessionLocal


ADMIN_KEY_HEADER = "X-Admin-Key"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Clock:
    """Clock used for "now" in scheduling decisions. Overridden in tests."""
    return system_clock


def require_admin_key(
    x_admin_key: str | None = Header(None, alias=ADMIN_KEY_HEADER),
) -> None:
    """
    Verify the staff API key header.

    Raises:
        HTTPException 501: ADMIN_API_KEY not configured
        HTTPException 403: Missing or invalid key
    """
    expected = settings.ADMIN_API_KEY
    if not expected:
        raise HTTPException(status_code=501, detail="ADMIN_API_KEY not configured")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
