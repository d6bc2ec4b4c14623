"""Balance service for the donation wallet view.

Passes raw balances through from the 1inch Balance API and decorates them
with token metadata. Only public data is queried.
"""

import logging
from typing import Optional

import httpx

from fusiondonate.config import Settings, get_settings
from fusiondonate.web.contracts.balances import TokenBalance, WalletBalancesResponse
from fusiondonate.web.services.errors import InvalidRequestError, OrderServiceError

logger = logging.getLogger(__name__)

TOP_TOKENS = 20


def _as_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


def _optional_int(value: object) -> Optional[int]:
    try:
        return int(value) if value is not None else None  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class BalanceService:
    """Fetch non-zero balances (largest first) with token metadata."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.settings.dev_portal_key:
            headers["Authorization"] = f"Bearer {self.settings.dev_portal_key}"
        return headers

    async def get_wallet_balances(
        self,
        wallet_address: Optional[str],
        chain_id: int = 1,
    ) -> WalletBalancesResponse:
        """Top non-zero token balances of ``wallet_address`` on ``chain_id``."""
        if not wallet_address:
            raise InvalidRequestError("Missing walletAddress")

        async with httpx.AsyncClient(
            timeout=self.settings.http_timeout, transport=self._transport
        ) as client:
            response = await client.get(
                f"{self.settings.balance_api_url}/{chain_id}/balances/{wallet_address}",
                headers=self._get_headers(),
            )
            if response.status_code != 200:
                try:
                    detail = response.json().get("error")
                except (ValueError, AttributeError):
                    detail = None
                raise OrderServiceError(
                    detail or response.reason_phrase or "Unknown error", status_code=500
                )

            raw_balances: dict = response.json() or {}
            non_zero = [
                (address, balance)
                for address, balance in raw_balances.items()
                if isinstance(balance, str) and balance != "0"
            ]
            non_zero.sort(key=lambda item: _as_int(item[1]), reverse=True)
            non_zero = non_zero[:TOP_TOKENS]

            token_info: dict = {}
            if non_zero:
                token_info = await self._fetch_token_info(
                    client, chain_id, [address for address, _ in non_zero]
                )

        tokens = []
        for address, balance in non_zero:
            info = token_info.get(address) or {}
            tokens.append(
                TokenBalance(
                    address=address,
                    balance=balance,
                    decimals=_optional_int(info.get("decimals")),
                    symbol=info.get("symbol"),
                    rating=_optional_int(info.get("rating")),
                )
            )
        return WalletBalancesResponse(tokens=tokens)

    async def _fetch_token_info(
        self,
        client: httpx.AsyncClient,
        chain_id: int,
        addresses: list[str],
    ) -> dict:
        """Token metadata keyed by address; empty if the lookup fails."""
        try:
            response = await client.get(
                f"{self.settings.token_api_url}/{chain_id}/custom",
                headers=self._get_headers(),
                params={"addresses": ",".join(addresses)},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Token metadata lookup failed: {e}")
            return {}

        if response.status_code != 200:
            logger.warning(f"Token metadata lookup returned {response.status_code}")
            return {}
        data = response.json()
        return data if isinstance(data, dict) else {}
