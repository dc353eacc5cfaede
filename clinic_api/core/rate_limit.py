"""Rate limiting configuration for the clinic API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from clinic_api.core.config import settings

logger = logging.getLogger(__name__)

# Redis-backed storage lets multiple workers share counters.
# Falls back to in-memory if Redis is not configured (dev/test mode).
REDIS_URL = os.getenv("REDIS_URL", "")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

if IS_TESTING or not REDIS_URL:
    limiter = Limiter(
        key_func=get_remote_address,
        storage_uri="memory://",
        default_limits=DEFAULT_LIMITS,
        enabled=not IS_TESTING,
    )
else:
    logger.info("Using Redis storage for rate limiting")
    limiter = Limiter(
        key_func=get_remote_address,
        storage_uri=REDIS_URL,
        default_limits=DEFAULT_LIMITS,
    )
