"""1inch Fusion+ cross-chain API client.

Covers the quoter (quotes, order building), the relayer (order and secret
submission) and the orders API (status, fills awaiting a secret).
API docs: https://portal.1inch.dev/documentation/apis/cross-chain
"""

import logging
from functools import lru_cache
from typing import Any, Optional

import httpx

from fusiondonate.config import get_settings
from fusiondonate.fusion.models import (
    OrderParams,
    OrderStatusInfo,
    OrderSubmission,
    PreparedCrossChainOrder,
    Quote,
    ReadyToAcceptSecretFills,
    SwapParams,
)

logger = logging.getLogger(__name__)

FUSION_PLUS_API = "https://api.1inch.dev/fusion-plus"

QUOTE_PATH = "/quoter/v1.0/quote/receive"
BUILD_ORDER_PATH = "/quoter/v1.0/quote/build"
SUBMIT_ORDER_PATH = "/relayer/v1.0/submit"
SUBMIT_SECRET_PATH = "/relayer/v1.0/submit/secret"
ORDER_STATUS_PATH = "/orders/v1.0/order/status/{order_hash}"
READY_FILLS_PATH = "/orders/v1.0/order/ready-to-accept-secret-fills/{order_hash}"


class FusionAPIError(Exception):
    """Non-2xx response (or transport failure, status 0) from the provider."""

    def __init__(self, status_code: int, message: str, payload: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_bad_request(self) -> bool:
        return self.status_code == 400

    def __str__(self) -> str:
        return self.message


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None

    if isinstance(payload, dict):
        for key in ("description", "error", "message"):
            if payload.get(key):
                return str(payload[key]), payload
    return response.reason_phrase or str(payload), payload


class FusionPlusClient:
    """Fusion+ settlement provider.

    Stateless apart from its configuration; a fresh HTTP client is opened per
    call, so one instance can be shared across requests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = FUSION_PLUS_API,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: 1inch Dev Portal key, sent as a bearer token
            base_url: Fusion+ API root
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport override
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get API headers with authorization."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._get_headers(),
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as e:
            raise FusionAPIError(0, f"Fusion+ API unreachable: {e}") from e

        if response.status_code >= 400:
            message, payload = _error_message(response)
            logger.debug(f"Fusion+ {method} {path} -> {response.status_code}: {message}")
            raise FusionAPIError(response.status_code, message, payload)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get_quote(self, params: SwapParams) -> Quote:
        """Get a cross-chain quote."""
        data = await self._request("GET", QUOTE_PATH, params=params.to_query())
        return Quote.model_validate(data)

    async def create_order(
        self,
        params: SwapParams,
        quote: Quote,
        order_params: OrderParams,
    ) -> PreparedCrossChainOrder:
        """Build the unsigned cross-chain order for ``quote``.

        Returns the order struct inside its EIP-712 payload, the encoded
        extension and the order hash on the source chain.
        """
        query = params.to_query()
        query["preset"] = order_params.preset
        query["receiver"] = order_params.receiver
        body = {
            "quote": quote.to_wire(),
            "secretsHashList": order_params.secret_hashes,
            "hashLock": order_params.hash_lock,
        }
        data = await self._request("POST", BUILD_ORDER_PATH, params=query, json=body)
        if not isinstance(data, dict):
            raise FusionAPIError(502, "Unexpected order build response", data)

        quote_id = data.get("quoteId") or quote.quote_id
        if not data.get("orderHash") or not quote_id:
            raise FusionAPIError(502, "Order build response is missing orderHash or quoteId", data)

        return PreparedCrossChainOrder(
            order_hash=data["orderHash"],
            quote_id=quote_id,
            extension=data.get("extension") or "0x",
            typed_data=data.get("typedData") or {},
        )

    async def submit_order(self, submission: OrderSubmission) -> None:
        """Hand a signed order to the relayer."""
        await self._request("POST", SUBMIT_ORDER_PATH, json=submission.to_wire())

    async def get_order_status(self, order_hash: str) -> OrderStatusInfo:
        data = await self._request("GET", ORDER_STATUS_PATH.format(order_hash=order_hash))
        return OrderStatusInfo.model_validate(data)

    async def get_ready_to_accept_secret_fills(self, order_hash: str) -> ReadyToAcceptSecretFills:
        data = await self._request("GET", READY_FILLS_PATH.format(order_hash=order_hash))
        return ReadyToAcceptSecretFills.model_validate(data or {})

    async def submit_secret(self, order_hash: str, secret: str) -> None:
        """Reveal a fill secret. Resubmitting an already accepted secret is harmless."""
        await self._request(
            "POST",
            SUBMIT_SECRET_PATH,
            json={"orderHash": order_hash, "secret": secret},
        )


@lru_cache
def get_fusion_client() -> FusionPlusClient:
    """Get the process-wide provider client, built once from settings."""
    settings = get_settings()
    return FusionPlusClient(
        api_key=settings.require_dev_portal_key(),
        base_url=settings.fusion_api_url,
        timeout=settings.http_timeout,
    )
