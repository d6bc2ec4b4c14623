"""Client-side donation flow.

Drives the public API the way a wallet front end does:
quote -> prepare -> sign (wallet) -> place -> poll status until settled.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from fusiondonate.signing.base import WalletSigner

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class DonationError(Exception):
    """An API call in the donation flow failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class DonationResult:
    """Outcome of a completed donation flow."""

    order_hash: str
    status: str


class DonationFlow:
    """Quote, prepare, sign, place and track one cross-chain donation.

    Usage:
        async with DonationFlow("https://donate.example", signer) as flow:
            result = await flow.donate(
                src_chain_id=42161,
                dst_chain_id=8453,
                src_token_address="0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
                dst_token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                amount="100000",
            )

    Cancelling the task running ``donate`` or ``poll_until_settled`` stops
    polling immediately; leaving the context closes the HTTP client.
    """

    def __init__(
        self,
        base_url: str,
        signer: WalletSigner,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.signer = signer
        self.poll_interval = poll_interval
        self._sleep = sleep
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "DonationFlow":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, path: str, fallback: str, **kwargs) -> dict:
        response = await self.client.request(method, path, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            raise DonationError(message or fallback, status_code=response.status_code)
        return data

    async def get_quote(self, params: dict[str, Any]) -> dict:
        return await self._call(
            "GET",
            "/api/fusion-order/quote",
            "Failed to get quote from API",
            params={k: str(v) for k, v in params.items()},
        )

    async def prepare(self, quoter_request_params: dict, wallet_address: str) -> dict:
        return await self._call(
            "POST",
            "/api/fusion-order/prepare",
            "Failed to prepare order",
            json={"quoterRequestParams": quoter_request_params, "walletAddress": wallet_address},
        )

    async def place(self, preparation_id: str, signature: str) -> dict:
        return await self._call(
            "POST",
            "/api/fusion-order/place",
            "Failed to place signed order",
            json={"preparationId": preparation_id, "signature": signature},
        )

    async def get_status(self, order_hash: str) -> str:
        data = await self._call(
            "GET", f"/api/fusion-order/status/{order_hash}", "Failed to fetch status"
        )
        return data.get("status") or "unknown"

    async def poll_until_settled(self, order_hash: str) -> str:
        """Poll the order status until it leaves ``pending``.

        Returns the final status, or ``"error"`` if a status request fails.
        """
        while True:
            try:
                status = await self.get_status(order_hash)
            except (DonationError, httpx.HTTPError) as e:
                logger.error(f"Error polling status of order {order_hash}: {e}")
                return "error"

            logger.info(f"Order {order_hash} status: {status}")
            if status != "pending":
                return status
            await self._sleep(self.poll_interval)

    async def donate(
        self,
        src_chain_id: int,
        dst_chain_id: int,
        src_token_address: str,
        dst_token_address: str,
        amount: str,
    ) -> DonationResult:
        """Run the whole flow for the signer's wallet.

        Raises:
            DonationError: if quoting, preparation or placement fails
            SigningError: if the wallet does not produce a signature
        """
        wallet_address = self.signer.address
        quote = await self.get_quote(
            {
                "srcChainId": src_chain_id,
                "dstChainId": dst_chain_id,
                "srcTokenAddress": src_token_address,
                "dstTokenAddress": dst_token_address,
                "amount": amount,
                "walletAddress": wallet_address,
            }
        )

        prepared = await self.prepare(quote["quoterRequestParams"], wallet_address)
        signature = await self.signer.sign_typed_data(prepared["typedDataPayload"])
        placed = await self.place(prepared["preparationId"], signature)

        order_hash = placed["orderHash"]
        logger.info(f"Order {order_hash} placed, waiting for settlement")
        status = await self.poll_until_settled(order_hash)
        return DonationResult(order_hash=order_hash, status=status)
