from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session
import logging

from supplier_catalog.db import get_session
from supplier_catalog.models import ImportRun, Product

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/system")
def get_system_health(session: Session = Depends(get_session)):
    """
    Database connectivity plus catalog size and the most recent import run.
    """
    db_ok = False
    product_count = None
    last_run = None
    try:
        product_count = session.execute(select(func.count(Product.id))).scalar()
        last_run = session.execute(select(ImportRun).order_by(ImportRun.started_at.desc()).limit(1)).scalar_one_or_none()
        db_ok = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")

    return {
        "status": "healthy" if db_ok else "unhealthy",
        "database": "ok" if db_ok else "error",
        "products": product_count,
        "lastImport": {
            "job": last_run.job,
            "status": last_run.status,
            "finishedAt": last_run.finished_at.isoformat() if last_run.finished_at else None,
        } if last_run else None,
    }
