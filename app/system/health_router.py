import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from app import config
from app.courses.database import Store
from app.courses.dependencies import get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(store: Store = Depends(get_store)):
    """
    Liveness plus a database ping. Always 200; the database state is in the body.
    """
    record = {
        "timestamp": datetime.utcnow(),
        "status": "UP",
        "database": "UP"
    }
    try:
        start = datetime.utcnow()
        await store.db.command("ping")
        record["latency_ms"] = (datetime.utcnow() - start).total_seconds() * 1000
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        record["database"] = "DOWN"
    return record


@router.get("/version")
async def version():
    return {"version": config.VERSION}
