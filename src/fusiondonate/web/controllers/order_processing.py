"""Order completion trigger (called by the scheduler, bearer-protected)."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from fusiondonate.config import get_settings
from fusiondonate.fusion.client import get_fusion_client
from fusiondonate.services.order_completion import OrderCompletionWorker
from fusiondonate.web.contracts.orders import ProcessOrdersResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fusion-order-process", tags=["fusion-order"])


async def require_cron_secret(authorization: Optional[str] = Header(None)) -> bool:
    """Verify the scheduler's bearer credential.

    With no CRON_SECRET configured every request is rejected.
    """
    settings = get_settings()
    expected = f"Bearer {settings.cron_secret}"

    if not settings.cron_secret or not authorization or not hmac.compare_digest(
        authorization.encode(), expected.encode()
    ):
        logger.error("Unauthorized access attempt on order processing trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return True


def get_completion_worker() -> OrderCompletionWorker:
    return OrderCompletionWorker(provider=get_fusion_client())


@router.post("", response_model=ProcessOrdersResponse)
async def process_orders(
    _: bool = Depends(require_cron_secret),
    worker: OrderCompletionWorker = Depends(get_completion_worker),
) -> ProcessOrdersResponse:
    """Run one completion worker invocation."""
    summary = await worker.run_once()
    return ProcessOrdersResponse(
        message=summary.message,
        processed=summary.processed,
        outcomes=summary.outcomes,
    )
