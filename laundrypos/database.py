# laundrypos/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from laundrypos.config import get_settings

DATABASE_URL = get_settings().database_url

# sqlite needs the thread check off because FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, future=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Session factory for work that outlives the request (background notices)."""
    return SessionLocal
