from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from supplier_catalog.settings import settings

DEFAULT_DATABASE_URL = "sqlite:///./supplier_catalog.db"

engine = create_engine(settings.database_url or DEFAULT_DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)


def get_session() -> Iterator[Session]:
    with SessionLocal() as session:
        with session.begin():
            yield session
