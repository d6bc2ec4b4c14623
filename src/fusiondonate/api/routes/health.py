"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select

from fusiondonate.config import get_settings
from fusiondonate.store.database import get_db
from fusiondonate.store.models import FusionOrder, OrderStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store():
    """Unit-of-work factory used to probe the order store."""
    return get_db


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "fusiondonate"}


@router.get("/health/detailed")
async def detailed_health(store=Depends(get_store)):
    """Detailed health check with store connectivity and configuration info.

    Reports ``degraded`` with the store error when the database is unreachable.
    """
    settings = get_settings()
    try:
        async with store() as session:
            pending = await session.scalar(
                select(func.count())
                .select_from(FusionOrder)
                .where(FusionOrder.status == OrderStatus.PENDING.value)
            )
        database = {"status": "ok", "pending_orders": pending}
    except Exception as e:
        logger.error(f"Health check could not reach the store: {e}")
        database = {"status": "error", "error": str(e)}

    return {
        "status": "healthy" if database["status"] == "ok" else "degraded",
        "service": "fusiondonate",
        "version": "0.1.0",
        "database": database,
        "config": settings.get_safe_dict(),
    }
