from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import text
from dependencies import get_catalogs, get_db
from repository.catalog_repo import CatalogRegistry
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["health"]
)

@router.get("/live", status_code=status.HTTP_200_OK)
async def health_live():
    """
    Liveness check to ensure the process is running.
    """
    return {"status": "ok"}

@router.get("/ready", status_code=status.HTTP_200_OK)
def health_ready(
    catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)],
    db: Session = Depends(get_db),
):
    """
    Readiness check: database reachable and catalog loaded.
    """
    try:
        db.execute(text("SELECT 1")).scalar()
    except Exception as e:
        # Internal log only, don't expose details to the user
        logger.error(f"Health check failed: Database is down or unreachable. Error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "fail", "db": "down"}
        )
    if not catalogs.ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "fail", "catalog": "not loaded"}
        )
    return {"status": "ok"}
