"""Coarse per-IP API throttle.

Endpoint quotas that must hold across workers (share-link resolution,
uploads) use the database-backed counters in ``rate_limit_service``.
"""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from carecircle.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else settings.RATE_LIMIT_STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
)
