from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from lexmarket.config import DATABASE_URL, SQL_ECHO


def build_engine(url: str = DATABASE_URL, **kwargs):
    """Create an engine for the given URL with the project defaults."""
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        # Sessions are handed across FastAPI's threadpool
        connect_args.setdefault("check_same_thread", False)
    return create_engine(
        url,
        pool_pre_ping=True,  # Enables pessimistic disconnect handling
        echo=SQL_ECHO,
        connect_args=connect_args,
        **kwargs
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
