"""Balance contracts for the wallet token list."""

from typing import Optional

from pydantic import BaseModel, Field


class TokenBalance(BaseModel):
    """Raw balance of one token merged with whatever metadata is known."""

    address: str = Field(..., description="Token contract address")
    balance: str = Field(..., description="Raw balance in smallest units (decimal string)")
    decimals: Optional[int] = Field(None, description="Token decimals")
    symbol: Optional[str] = Field(None, description="Token symbol")
    rating: Optional[int] = Field(None, description="Provider token rating")


class WalletBalancesResponse(BaseModel):
    """Non-zero balances, largest first."""

    tokens: list[TokenBalance] = Field(default_factory=list)
