from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from carecircle.core.config import settings

url = make_url(settings.DATABASE_URL)

connect_args = {}
if url.get_backend_name().startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif url.get_backend_name() == "sqlite":
    connect_args["check_same_thread"] = False
    connect_args["timeout"] = 30

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
)

if url.get_backend_name() == "sqlite":
    # SQLite has no row locks: take the write lock when the transaction
    # begins so read-then-write sequences serialize across connections.

    @event.listens_for(engine, "connect")
    def _sqlite_on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
