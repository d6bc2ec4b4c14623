"""Cross-chain order API endpoints.

Flow: quote -> prepare (returns EIP-712 payload) -> wallet signs client-side
-> place -> poll status while the completion worker finishes the order.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from fusiondonate.web.contracts.orders import (
    OrderStatusResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    PrepareOrderRequest,
    PrepareOrderResponse,
    QuoteResponse,
)
from fusiondonate.web.services.order_service import OrderPreparationService

router = APIRouter(prefix="/api/fusion-order", tags=["fusion-order"])


def get_order_service() -> OrderPreparationService:
    """Service using the process-wide provider client once it needs one."""
    return OrderPreparationService()


@router.get("/quote", response_model=QuoteResponse)
async def get_quote(
    src_chain_id: Optional[str] = Query(None, alias="srcChainId"),
    dst_chain_id: Optional[str] = Query(None, alias="dstChainId"),
    src_token_address: Optional[str] = Query(None, alias="srcTokenAddress"),
    dst_token_address: Optional[str] = Query(None, alias="dstTokenAddress"),
    amount: Optional[str] = Query(None),
    wallet_address: Optional[str] = Query(None, alias="walletAddress"),
    service: OrderPreparationService = Depends(get_order_service),
) -> QuoteResponse:
    """Get a cross-chain quote.

    Amounts in the returned quote are decimal strings. Provider failures are
    reported as 400 so the user can retry with different parameters.
    """
    return await service.get_quote(
        {
            "srcChainId": src_chain_id,
            "dstChainId": dst_chain_id,
            "srcTokenAddress": src_token_address,
            "dstTokenAddress": dst_token_address,
            "amount": amount,
            "walletAddress": wallet_address,
        }
    )


@router.post("/prepare", response_model=PrepareOrderResponse)
async def prepare_order(
    request: PrepareOrderRequest,
    service: OrderPreparationService = Depends(get_order_service),
) -> PrepareOrderResponse:
    """Build an unsigned order from a fresh quote.

    Returns a single-use preparation id (valid for 5 minutes) and the EIP-712
    payload to sign.
    """
    return await service.prepare_order(request.quoter_request_params, request.wallet_address)


@router.post("/place", response_model=PlaceOrderResponse)
async def place_signed_order(
    request: PlaceOrderRequest,
    service: OrderPreparationService = Depends(get_order_service),
) -> PlaceOrderResponse:
    """Submit the signed order. Unknown, expired or reused ids give 404."""
    return await service.place_signed_order(request.preparation_id, request.signature)


@router.get("/status/{order_hash}", response_model=OrderStatusResponse)
async def get_order_status(
    order_hash: str,
    service: OrderPreparationService = Depends(get_order_service),
) -> OrderStatusResponse:
    """Stored order status: pending, executed, timeout, error or not_found."""
    return await service.get_status(order_hash)
