# db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from models import Base

from config import DATABASE_URL


def make_engine(url=DATABASE_URL):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # in-memory sqlite must share one connection across threads
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(url, connect_args={"check_same_thread": False})


engine = make_engine()


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


# ---------- Init entrypoint ----------

def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
