from sqlalchemy.orm import Session

from supplier_catalog.db import SessionLocal


def session_factory() -> Session:
    return SessionLocal()
