"""
Fixed-window rate limiter backed by the database.

Counters are upserted with INSERT ... ON CONFLICT DO UPDATE ... RETURNING so
every worker process sees the same count. The decision is made on the
post-increment value: the request that crosses the limit is rejected but
still counted.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from carecircle.core.config import settings
from carecircle.core.errors import InvalidArgumentError, RateLimitedError
from carecircle.db.models import RateLimitCounter
from carecircle.utils.clock import ensure_utc, floor_to_window, utcnow

logger = logging.getLogger(__name__)

ENDPOINT_SHARE_RESOLVE = "share_resolve"
# Counted by the attachment upload handler, which runs outside this API
ENDPOINT_UPLOAD = "upload"


@dataclass
class RateLimitDecision:
    allowed: bool
    count: int
    limit: int
    window_start: datetime
    window_seconds: int
    now: datetime

    @property
    def retry_after(self) -> int:
        """Seconds until the current window closes."""
        window_end = self.window_start + timedelta(seconds=self.window_seconds)
        return max(1, int((window_end - self.now).total_seconds()) + 1)

    def raise_if_limited(self) -> None:
        if not self.allowed:
            raise RateLimitedError("Too many requests", retry_after=self.retry_after)


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


def check(
    db: Session,
    subject: str,
    endpoint: str,
    max_requests: int,
    window_seconds: int,
    now: datetime | None = None,
) -> RateLimitDecision:
    """
    Count one request for (subject, endpoint) in the current window.

    The caller must commit even when the request is rejected, so the
    rejected attempt stays counted.
    """
    if max_requests < 1 or window_seconds < 1:
        raise InvalidArgumentError("max_requests and window_seconds must be positive")

    now = ensure_utc(now or utcnow())
    window_start = floor_to_window(now, window_seconds)
    insert = _insert_for(db)
    stmt = (
        insert(RateLimitCounter)
        .values(
            id=uuid.uuid4(),
            subject=subject[:128],
            endpoint=endpoint[:100],
            window_start=window_start,
            request_count=1,
        )
        .on_conflict_do_update(
            index_elements=["subject", "endpoint", "window_start"],
            set_={"request_count": RateLimitCounter.request_count + 1},
        )
        .returning(RateLimitCounter.request_count)
    )
    count = db.execute(stmt).scalar_one()
    allowed = count <= max_requests
    if not allowed:
        logger.warning(
            "Rate limit exceeded: endpoint=%s count=%s limit=%s", endpoint, count, max_requests
        )
    return RateLimitDecision(
        allowed=allowed,
        count=count,
        limit=max_requests,
        window_start=window_start,
        window_seconds=window_seconds,
        now=now,
    )


def allow(
    db: Session,
    subject: str,
    endpoint: str,
    max_requests: int,
    window_seconds: int,
    now: datetime | None = None,
) -> bool:
    return check(db, subject, endpoint, max_requests, window_seconds, now=now).allowed


def endpoint_limit(endpoint: str) -> int:
    """Configured per-window quota for a protected endpoint."""
    limits = {
        ENDPOINT_SHARE_RESOLVE: settings.RATE_LIMIT_SHARE_RESOLVE,
        ENDPOINT_UPLOAD: settings.RATE_LIMIT_UPLOAD,
    }
    if endpoint not in limits:
        raise InvalidArgumentError(f"No rate limit configured for {endpoint}")
    return limits[endpoint]


def check_endpoint(
    db: Session, subject: str, endpoint: str, now: datetime | None = None
) -> RateLimitDecision:
    """Count a request against the configured quota for ``endpoint``."""
    return check(
        db,
        subject,
        endpoint,
        max_requests=endpoint_limit(endpoint),
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        now=now,
    )


def get_count(
    db: Session,
    subject: str,
    endpoint: str,
    window_seconds: int,
    now: datetime | None = None,
) -> int:
    """Current count for the window containing ``now`` (0 if untouched)."""
    window_start = floor_to_window(now or utcnow(), window_seconds)
    counter = db.query(RateLimitCounter).filter(
        RateLimitCounter.subject == subject,
        RateLimitCounter.endpoint == endpoint,
        RateLimitCounter.window_start == window_start,
    ).first()
    return counter.request_count if counter else 0


def purge_stale(
    db: Session,
    older_than_minutes: int | None = None,
    now: datetime | None = None,
) -> int:
    """Delete counters whose window started before the retention cutoff."""
    minutes = (
        older_than_minutes
        if older_than_minutes is not None
        else settings.RATE_LIMIT_RETENTION_MINUTES
    )
    cutoff = ensure_utc(now or utcnow()) - timedelta(minutes=minutes)
    result = db.execute(
        delete(RateLimitCounter)
        .where(RateLimitCounter.window_start < cutoff)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
