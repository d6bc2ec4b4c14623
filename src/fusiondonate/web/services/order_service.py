"""Order preparation service.

Request/response side of a cross-chain donation: quote, build an unsigned
order for the wallet to sign, then hand the signed order to the relayer and
enqueue it for the completion worker.

Secrets are generated and kept server-side; the client only ever sees the
EIP-712 payload and an opaque single-use preparation id.
"""

import json
import logging
import uuid
from datetime import timedelta
from typing import Any, Optional

from eth_utils import is_address
from pydantic import ValidationError

from fusiondonate.config import Settings, get_settings
from fusiondonate.fusion.client import FusionAPIError, FusionPlusClient, get_fusion_client
from fusiondonate.fusion.hashlock import HashLock, generate_secrets
from fusiondonate.fusion.models import (
    OrderParams,
    OrderSubmission,
    Quote,
    SwapParams,
    to_json_safe,
)
from fusiondonate.fusion.retry import with_rate_limit_retry
from fusiondonate.store.database import get_db
from fusiondonate.store.models import FusionOrderPreparation, OrderStatus, utcnow
from fusiondonate.store.repository import OrderRepository
from fusiondonate.web.contracts.orders import (
    OrderStatusResponse,
    PlaceOrderResponse,
    PrepareOrderResponse,
    QuoteResponse,
    TypedDataPayload,
)
from fusiondonate.web.services.errors import (
    InvalidRequestError,
    OrderPreparationError,
    PreparationNotFoundError,
    ProviderRejectedError,
)

logger = logging.getLogger(__name__)

REQUIRED_SWAP_FIELDS = (
    ("srcChainId", "src_chain_id"),
    ("dstChainId", "dst_chain_id"),
    ("srcTokenAddress", "src_token_address"),
    ("dstTokenAddress", "dst_token_address"),
    ("amount", "amount"),
    ("walletAddress", "wallet_address"),
)

TYPED_DATA_FIELDS = ("domain", "types", "message", "primaryType")


def parse_swap_params(raw: Optional[dict[str, Any]]) -> SwapParams:
    """Validate caller-supplied swap parameters.

    Raises:
        InvalidRequestError: if a field is missing or malformed
    """
    raw = raw or {}
    missing = [
        wire
        for wire, name in REQUIRED_SWAP_FIELDS
        if raw.get(wire) in (None, "") and raw.get(name) in (None, "")
    ]
    if missing:
        raise InvalidRequestError(f"Missing required parameters: {', '.join(missing)}")

    try:
        return SwapParams.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequestError(f"Invalid parameters: {problems}") from e


def extract_typed_data(typed_data: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Pull the four EIP-712 fields out of a built order.

    Raises:
        OrderPreparationError: if any of domain, types, message, primaryType is absent
    """
    typed_data = typed_data or {}
    missing = [field for field in TYPED_DATA_FIELDS if not typed_data.get(field)]
    if missing:
        raise OrderPreparationError(
            "Failed to construct EIP-712 typed data from the built order "
            f"(missing: {', '.join(missing)})"
        )
    return {field: to_json_safe(typed_data[field]) for field in TYPED_DATA_FIELDS}


class OrderPreparationService:
    """Quote, prepare, place and look up cross-chain orders."""

    def __init__(
        self,
        provider: Optional[FusionPlusClient] = None,
        session_factory=get_db,
        settings: Optional[Settings] = None,
    ):
        """Initialize the service.

        Args:
            provider: Settlement provider client (defaults to the process-wide
                client, resolved on first provider call)
            session_factory: Callable returning an async unit-of-work context
                yielding an AsyncSession (commits on exit)
            settings: Settings override (defaults to the cached settings)
        """
        self._provider = provider
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    @property
    def provider(self) -> FusionPlusClient:
        if self._provider is None:
            self._provider = get_fusion_client()
        return self._provider

    async def _fetch_quote(self, params: SwapParams) -> Quote:
        return await with_rate_limit_retry(
            self.provider.get_quote, params, description="quote fetch"
        )

    async def get_quote(self, raw_params: Optional[dict[str, Any]]) -> QuoteResponse:
        """Get a quote for the caller's swap parameters.

        Any provider failure is reported as a client error: the request is
        currently unsatisfiable and the user should retry with other values.
        """
        params = parse_swap_params(raw_params)
        provider = self.provider
        try:
            quote = await with_rate_limit_retry(
                provider.get_quote, params, description="quote fetch"
            )
        except Exception as e:
            logger.error(f"Error getting quote: {e}")
            raise InvalidRequestError(str(e) or "Failed to get quote") from e

        return QuoteResponse(quoter_request_params=params, quote=quote.to_response())

    async def prepare_order(
        self,
        raw_params: Optional[dict[str, Any]],
        wallet_address: Optional[str],
    ) -> PrepareOrderResponse:
        """Build an unsigned order and park it under a fresh preparation id."""
        if not raw_params or not wallet_address:
            raise InvalidRequestError("Missing quoterRequestParams or walletAddress")
        if not is_address(wallet_address):
            raise InvalidRequestError(f"Invalid walletAddress: {wallet_address}")
        params = parse_swap_params(raw_params)

        # Always requote: a client-held quote may be stale.
        try:
            quote = await self._fetch_quote(params)
        except FusionAPIError as e:
            logger.error(f"Error preparing order (quote): {e}")
            raise ProviderRejectedError.from_status(e.status_code, str(e)) from e

        preset_name = quote.recommended_preset
        if not preset_name:
            raise OrderPreparationError("Could not determine a preset from the quote.")
        preset = quote.get_preset(preset_name)
        if preset is None:
            raise OrderPreparationError(f"Preset data not found for preset: {preset_name}")

        try:
            secrets = generate_secrets(preset.secrets_count)
        except ValueError as e:
            raise OrderPreparationError(str(e)) from e
        hash_lock, secret_hashes = HashLock.for_secrets(secrets)

        order_params = OrderParams(
            src_chain_id=params.src_chain_id,
            wallet_address=wallet_address,
            receiver=wallet_address,
            preset=preset_name,
            hash_lock=hash_lock.value,
            secret_hashes=secret_hashes,
        )

        try:
            order = await self.provider.create_order(params, quote, order_params)
        except FusionAPIError as e:
            logger.error(f"Error preparing order (build): {e}")
            raise ProviderRejectedError.from_status(e.status_code, str(e)) from e

        typed_data = extract_typed_data(order.typed_data)

        preparation_id = str(uuid.uuid4())
        expires_at = utcnow() + timedelta(seconds=self.settings.preparation_ttl_seconds)
        async with self.session_factory() as session:
            await OrderRepository(session).save_preparation(
                FusionOrderPreparation(
                    preparation_id=preparation_id,
                    quote_json=json.dumps(quote.to_wire()),
                    secrets_json=json.dumps(secrets),
                    order_params_json=json.dumps(order_params.to_wire()),
                    order_struct_json=json.dumps(to_json_safe(order.order_struct)),
                    quote_id=order.quote_id,
                    extension_data=order.extension,
                    order_hash=order.order_hash,
                    expires_at=expires_at,
                )
            )

        logger.info(
            f"Prepared order {order.order_hash} ({len(secrets)} secret(s), preset {preset_name}) "
            f"as {preparation_id}"
        )
        return PrepareOrderResponse(
            preparation_id=preparation_id,
            typed_data_payload=TypedDataPayload.model_validate(typed_data),
        )

    async def place_signed_order(
        self,
        preparation_id: Optional[str],
        signature: Optional[str],
    ) -> PlaceOrderResponse:
        """Submit a signed order and enqueue it for completion.

        The preparation record is consumed (and committed) before the relayer
        is contacted, so a preparation id can be used at most once.
        """
        if not preparation_id or not signature:
            raise InvalidRequestError("Missing preparationId or signature")

        async with self.session_factory() as session:
            preparation = await OrderRepository(session).take_preparation(preparation_id)
        if preparation is None:
            raise PreparationNotFoundError("Order preparation data not found or expired")

        order_params = OrderParams.model_validate_json(preparation.order_params_json)
        secret_hashes = order_params.secret_hashes
        submission = OrderSubmission(
            src_chain_id=order_params.src_chain_id,
            order=json.loads(preparation.order_struct_json),
            signature=signature,
            extension=preparation.extension_data,
            quote_id=preparation.quote_id,
            # Single-fill orders carry their commitment in the hash lock.
            secret_hashes=None if len(secret_hashes) == 1 else secret_hashes,
        )

        try:
            await self.provider.submit_order(submission)
        except FusionAPIError as e:
            logger.error(f"Error placing signed order {preparation.order_hash}: {e}")
            raise ProviderRejectedError.from_status(e.status_code, str(e)) from e

        async with self.session_factory() as session:
            created = await OrderRepository(session).create_order_if_absent(
                preparation.order_hash, json.loads(preparation.secrets_json)
            )
        if created:
            logger.info(f"Order {preparation.order_hash} submitted, queued for completion")
        else:
            logger.warning(f"Order {preparation.order_hash} was already queued")

        return PlaceOrderResponse(
            order_hash=preparation.order_hash, status=OrderStatus.PENDING.value
        )

    async def get_status(self, order_hash: str) -> OrderStatusResponse:
        """Stored status of an order. The provider is never queried here."""
        async with self.session_factory() as session:
            order = await OrderRepository(session).get_order(order_hash)
        return OrderStatusResponse(status=order.status if order else "not_found")
