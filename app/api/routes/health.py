"""Health check endpoint."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from app.db.session import Database, get_database
from app.models.resource import Resource
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(database: Database = Depends(get_database)) -> dict[str, Any]:
    """
    Health check with database connectivity and row counts.
    Returns 503 if database is unreachable.
    """
    if not database.check_connection():
        raise HTTPException(
            status_code=503,
            detail={"status": "degraded", "db": "error"},
        )

    info: dict[str, Any] = {"status": "ok", "db": "ok"}
    db = database.session()
    try:
        info["resources"] = db.query(Resource).count()
        info["users"] = db.query(User).count()
    except Exception:
        # Tables may not exist yet on a fresh database
        logger.warning("Health check could not count rows", exc_info=True)
    finally:
        db.close()
    return info
