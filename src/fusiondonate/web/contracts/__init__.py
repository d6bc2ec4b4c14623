"""Request and response contracts for the web layer.

These Pydantic models define the API interface for web clients.
"""

from fusiondonate.web.contracts.balances import (
    TokenBalance,
    WalletBalancesResponse,
)
from fusiondonate.web.contracts.orders import (
    OrderStatusResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    PrepareOrderRequest,
    PrepareOrderResponse,
    ProcessOrdersResponse,
    QuoteResponse,
    TypedDataPayload,
)

__all__ = [
    # Order contracts
    "QuoteResponse",
    "PrepareOrderRequest",
    "PrepareOrderResponse",
    "TypedDataPayload",
    "PlaceOrderRequest",
    "PlaceOrderResponse",
    "OrderStatusResponse",
    "ProcessOrdersResponse",
    # Balance contracts
    "TokenBalance",
    "WalletBalancesResponse",
]
