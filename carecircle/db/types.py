"""Portable column types.

PostgreSQL gets native JSONB; SQLite (dev/tests) falls back to JSON text.
"""

from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

JSONDocument = JSON().with_variant(JSONB(), "postgresql")

GUID = Uuid(as_uuid=True)
