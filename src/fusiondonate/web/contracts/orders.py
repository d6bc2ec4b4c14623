"""Cross-chain order request and response contracts.

Field names are camelCase on the wire; snake_case names are accepted too.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fusiondonate.fusion.models import SwapParams


class OrderContract(BaseModel):
    """Base for order contracts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuoteResponse(OrderContract):
    """A provider quote together with the parameters it was requested with."""

    quoter_request_params: SwapParams = Field(..., description="Validated swap parameters")
    quote: dict[str, Any] = Field(
        ..., description="Provider quote, big integers as decimal strings"
    )


class PrepareOrderRequest(OrderContract):
    """Request to build an unsigned order for client-side signing."""

    quoter_request_params: Optional[dict[str, Any]] = Field(
        None, description="Swap parameters as returned by the quote endpoint"
    )
    wallet_address: Optional[str] = Field(None, description="Signing wallet (sender and receiver)")


class TypedDataPayload(OrderContract):
    """EIP-712 payload the wallet must sign."""

    domain: dict[str, Any]
    types: dict[str, list[dict[str, str]]]
    message: dict[str, Any]
    primary_type: str


class PrepareOrderResponse(OrderContract):
    """Single-use handle plus the payload to sign. Secrets never leave the server."""

    preparation_id: str = Field(..., description="Opaque single-use preparation handle")
    typed_data_payload: TypedDataPayload


class PlaceOrderRequest(OrderContract):
    """Signature for a previously prepared order."""

    preparation_id: Optional[str] = Field(None, description="Handle from prepare")
    signature: Optional[str] = Field(None, description="EIP-712 signature (0x-hex)")


class PlaceOrderResponse(OrderContract):
    order_hash: str
    status: str = "pending"


class OrderStatusResponse(OrderContract):
    """Locally stored order status (``not_found`` when unknown)."""

    status: str


class ProcessOrdersResponse(OrderContract):
    """Summary of one completion worker invocation."""

    message: str
    processed: int = 0
    outcomes: dict[str, int] = Field(default_factory=dict)
