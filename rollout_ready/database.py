from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rollout_ready.db")


def build_engine(database_url: str, **engine_kwargs) -> Engine:
    """Create an engine with the connect args each backend needs"""
    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False}, **engine_kwargs)

        # SQLite ignores foreign keys (and ON DELETE) unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # If you're using PostgreSQL on Render or similar, set DB_SSLMODE=require
    connect_args = {}
    sslmode = os.getenv("DB_SSLMODE")
    if sslmode:
        connect_args["sslmode"] = sslmode
    engine_kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, connect_args=connect_args, **engine_kwargs)


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind: Engine = None):
    """Create all tables that don't exist yet"""
    # Register every model on Base.metadata before creating
    from rollout_ready import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# Request-scoped session; services receive it explicitly
def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
