"""Order completion worker.

Drains pending orders: checks provider status, reveals secrets for fills
that are ready for them, and moves each order to a terminal state once it
is executed, out of attempts, or broken.

State machine per order::

    pending --(provider reports executed)--> executed
    pending --(attempts >= max)-----------> timeout
    pending --(unrecoverable error)-------> error
    pending --(progress, not done)--------> pending (attempts + 1)

Runs are idempotent. Overlapping runs are tolerated: reveals and status
checks are safe to repeat, at worst attempts advance faster.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

from fusiondonate.config import Settings, get_settings
from fusiondonate.fusion.client import FusionPlusClient
from fusiondonate.fusion.hashlock import InvalidSecretsError, parse_secrets
from fusiondonate.fusion.retry import with_rate_limit_retry
from fusiondonate.store.database import get_db
from fusiondonate.store.models import FusionOrder, OrderStatus
from fusiondonate.store.repository import OrderRepository

logger = logging.getLogger(__name__)

PROVIDER_EXECUTED = "executed"


def format_error(error: BaseException) -> str:
    return str(error) or error.__class__.__name__ or "An unknown error occurred"


@dataclass
class WorkerRunSummary:
    """Outcome counts for one worker invocation."""

    processed: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)
    housekeeping: bool = False

    def record(self, status: OrderStatus) -> None:
        self.processed += 1
        self.outcomes[status.value] = self.outcomes.get(status.value, 0) + 1

    @property
    def message(self) -> str:
        if not self.processed:
            return "No pending orders to process"
        return f"Processed {self.processed} orders"


class OrderCompletionWorker:
    """Batch job advancing pending orders. Invoke ``run_once`` on a schedule."""

    def __init__(
        self,
        provider: FusionPlusClient,
        session_factory=get_db,
        settings: Optional[Settings] = None,
        random_source: Callable[[], float] = random.random,
    ):
        """Initialize the worker.

        Args:
            provider: Settlement provider client
            session_factory: Callable returning an async unit-of-work context
            settings: Settings override (defaults to the cached settings)
            random_source: Uniform [0, 1) source deciding when to run housekeeping
        """
        self.provider = provider
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.random_source = random_source

    async def run_once(self) -> WorkerRunSummary:
        """Run one invocation: maybe housekeeping, then one bounded batch."""
        summary = WorkerRunSummary()

        if self.random_source() < self.settings.worker_cleanup_probability:
            await self.cleanup()
            summary.housekeeping = True

        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_pending_orders(
                limit=self.settings.worker_batch_size
            )

        for order in orders:
            try:
                status = await self.process_order(order)
            except Exception as e:
                # Store failure while recording the outcome; the row stays as it was.
                logger.error(f"Failed to record outcome for order {order.order_hash}: {format_error(e)}")
                status = OrderStatus.ERROR
            summary.record(status)

        if summary.processed:
            logger.info(f"{summary.message}: {summary.outcomes}")
        return summary

    async def process_order(self, order: FusionOrder) -> OrderStatus:
        """Advance a single pending order by one polling cycle."""
        order_hash = order.order_hash

        try:
            secrets = parse_secrets(order.secrets_json)
        except InvalidSecretsError as e:
            await self._mark_error(order_hash, format_error(e))
            logger.error(f"Invalid secrets JSON for order {order_hash}: {e}")
            return OrderStatus.ERROR

        if order.attempts >= self.settings.worker_max_attempts:
            async with self.session_factory() as session:
                await OrderRepository(session).mark_timeout(order_hash)
            logger.warning(
                f"Order {order_hash} timed out after {self.settings.worker_max_attempts} attempts"
            )
            return OrderStatus.TIMEOUT

        try:
            status = await with_rate_limit_retry(
                self.provider.get_order_status, order_hash, description="order status"
            )
            if status.status == PROVIDER_EXECUTED:
                async with self.session_factory() as session:
                    await OrderRepository(session).mark_executed(order_hash)
                logger.info(f"Order {order_hash} executed")
                return OrderStatus.EXECUTED

            await self._reveal_ready_secrets(order_hash, secrets)

            async with self.session_factory() as session:
                await OrderRepository(session).increment_attempts(order_hash)
            logger.info(f"Processed order {order_hash} attempt {order.attempts + 1}")
            return OrderStatus.PENDING

        except Exception as e:
            message = format_error(e)
            await self._mark_error(order_hash, message)
            logger.error(f"Error processing order {order_hash}: {message}")
            return OrderStatus.ERROR

    async def _reveal_ready_secrets(self, order_hash: str, secrets: list[str]) -> int:
        """Submit the secret of every fill the provider reports as ready."""
        ready = await with_rate_limit_retry(
            self.provider.get_ready_to_accept_secret_fills,
            order_hash,
            description="ready fills",
        )
        submitted = 0
        for fill in ready.fills:
            if not 0 <= fill.idx < len(secrets):
                logger.debug(f"Ignoring fill {fill.idx} for order {order_hash}: no such secret")
                continue
            logger.info(f"Submitting secret for fill {fill.idx} of order {order_hash}")
            await with_rate_limit_retry(
                self.provider.submit_secret,
                order_hash,
                secrets[fill.idx],
                description="secret submission",
            )
            submitted += 1
        return submitted

    async def _mark_error(self, order_hash: str, message: str) -> None:
        async with self.session_factory() as session:
            await OrderRepository(session).mark_error(order_hash, message)

    async def cleanup(self) -> None:
        """Delete expired preparations and old finished orders.

        Failures are logged and never abort the run.
        """
        try:
            async with self.session_factory() as session:
                removed = await OrderRepository(session).delete_expired_preparations()
            logger.info(f"Cleaned up {removed} expired order preparations")
        except Exception as e:
            logger.error(f"Error cleaning up expired order preparations: {format_error(e)}")

        try:
            async with self.session_factory() as session:
                removed = await OrderRepository(session).delete_stale_orders(
                    retention=timedelta(days=self.settings.order_retention_days)
                )
            logger.info(f"Cleaned up {removed} old orders")
        except Exception as e:
            logger.error(f"Error cleaning up old orders: {format_error(e)}")
