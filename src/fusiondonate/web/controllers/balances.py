"""Wallet balance API endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from fusiondonate.web.contracts.balances import WalletBalancesResponse
from fusiondonate.web.services.balance_service import BalanceService

router = APIRouter(prefix="/api/balances", tags=["balances"])


def get_balance_service() -> BalanceService:
    return BalanceService()


@router.get("", response_model=WalletBalancesResponse)
async def get_wallet_balances(
    wallet_address: Optional[str] = Query(None, alias="walletAddress"),
    chain_id: int = Query(1, alias="chainId"),
    service: BalanceService = Depends(get_balance_service),
) -> WalletBalancesResponse:
    """Top 20 non-zero token balances with symbol/decimals, largest first."""
    return await service.get_wallet_balances(wallet_address, chain_id)
