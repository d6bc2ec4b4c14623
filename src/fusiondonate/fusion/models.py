"""Wire models for the Fusion+ cross-chain settlement API.

Token amounts are arbitrary-precision integers. They are parsed into ``int``
and always serialized back as decimal strings so that they survive JSON
transport without precision loss.
"""

from typing import Annotated, Any, Optional

from eth_utils import is_address
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

# Largest integer a JSON consumer using IEEE-754 doubles can hold exactly.
MAX_SAFE_INTEGER = 2**53 - 1


def _parse_big_int(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer amount")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty integer string")
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    return value


BigInt = Annotated[
    int,
    BeforeValidator(_parse_big_int),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="always"),
]


def to_json_safe(value: Any) -> Any:
    """Recursively replace integers a JSON double cannot hold with decimal strings."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return value


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict:
        """Serialize by alias with big integers as decimal strings."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class SwapParams(WireModel):
    """Parameters of a prospective cross-chain swap."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    src_chain_id: int = Field(..., gt=0)
    dst_chain_id: int = Field(..., gt=0)
    src_token_address: str
    dst_token_address: str
    amount: BigInt
    wallet_address: str
    enable_estimate: bool = True

    @field_validator("src_token_address", "dst_token_address", "wallet_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"not an EVM address: {value}")
        return value

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("amount must be a positive integer in base units")
        return value

    def to_query(self) -> dict[str, str]:
        """Query string understood by the quoter."""
        return {
            "srcChain": str(self.src_chain_id),
            "dstChain": str(self.dst_chain_id),
            "srcTokenAddress": self.src_token_address,
            "dstTokenAddress": self.dst_token_address,
            "amount": str(self.amount),
            "walletAddress": self.wallet_address,
            "enableEstimate": "true" if self.enable_estimate else "false",
        }


class Preset(WireModel):
    """A provider execution strategy (auction timing and fee curve)."""

    auction_duration: Optional[int] = None
    start_auction_in: Optional[int] = None
    initial_rate_bump: Optional[int] = None
    auction_start_amount: Optional[BigInt] = None
    start_amount: Optional[BigInt] = None
    auction_end_amount: Optional[BigInt] = None
    cost_in_dst_token: Optional[BigInt] = None
    allow_partial_fills: bool = False
    allow_multiple_fills: bool = False
    secrets_count: int = 1


class Quote(WireModel):
    """A price/execution plan for a swap, kept verbatim apart from amounts."""

    quote_id: Optional[str] = None
    src_token_amount: BigInt
    dst_token_amount: BigInt
    presets: dict[str, Optional[Preset]] = Field(default_factory=dict)
    recommended_preset: Optional[str] = None
    src_safety_deposit: Optional[BigInt] = None
    dst_safety_deposit: Optional[BigInt] = None

    def get_preset(self, name: str) -> Optional[Preset]:
        return self.presets.get(name)

    def to_response(self) -> dict:
        """The quote as the provider sent it, nulls and unknown fields included.

        Declared amounts are decimal strings; undeclared integers become
        decimal strings once a JSON double can no longer hold them.
        """
        return to_json_safe(self.model_dump(by_alias=True, mode="json", exclude_unset=True))


class OrderParams(WireModel):
    """Everything needed to turn a quote into an unsigned cross-chain order."""

    src_chain_id: int
    wallet_address: str
    receiver: str
    preset: str
    hash_lock: str
    secret_hashes: list[str]


class PreparedCrossChainOrder(BaseModel):
    """An unsigned order as built by the provider."""

    order_hash: str
    quote_id: str
    extension: str
    typed_data: dict[str, Any]

    @property
    def order_struct(self) -> dict[str, Any]:
        """The limit order struct that the signature covers."""
        return self.typed_data.get("message") or {}


class OrderSubmission(WireModel):
    """Signed order handed to the relayer."""

    src_chain_id: int
    order: dict[str, Any]
    signature: str
    extension: str
    quote_id: str
    secret_hashes: Optional[list[str]] = None


class OrderStatusInfo(WireModel):
    """Provider-side status of an order."""

    order_hash: Optional[str] = None
    status: str


class ReadyFill(WireModel):
    """A fill whose escrows are deployed and which awaits its secret."""

    idx: int
    src_escrow_deploy_tx_hash: Optional[str] = None
    dst_escrow_deploy_tx_hash: Optional[str] = None


class ReadyToAcceptSecretFills(WireModel):
    fills: list[ReadyFill] = Field(default_factory=list)
