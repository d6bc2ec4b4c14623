"""Repository for order preparation and order completion persistence.

Every mutation is a single statement so a crash between two calls never
leaves a half-written row behind.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fusiondonate.store.models import (
    FusionOrder,
    FusionOrderPreparation,
    OrderStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

PURGEABLE_STATUSES = (OrderStatus.EXECUTED.value, OrderStatus.TIMEOUT.value)


class OrderRepository:
    """Repository for all order-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Preparation operations
    async def save_preparation(self, preparation: FusionOrderPreparation) -> FusionOrderPreparation:
        """Persist a freshly prepared order."""
        self.session.add(preparation)
        await self.session.flush()
        return preparation

    async def get_preparation(self, preparation_id: str) -> Optional[FusionOrderPreparation]:
        """Get a preparation record without consuming it."""
        stmt = select(FusionOrderPreparation).where(
            FusionOrderPreparation.preparation_id == preparation_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_preparation(self, preparation_id: str) -> bool:
        """Delete a preparation record. Returns True if this call removed it."""
        stmt = (
            delete(FusionOrderPreparation)
            .where(FusionOrderPreparation.preparation_id == preparation_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def take_preparation(
        self,
        preparation_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[FusionOrderPreparation]:
        """Consume a preparation record.

        Returns the record only to the caller whose delete removed it. Absent,
        expired (deleted as a side effect) and already-consumed records all
        yield None.
        """
        preparation = await self.get_preparation(preparation_id)
        if preparation is None:
            return None

        if preparation.is_expired(now):
            await self.delete_preparation(preparation_id)
            logger.info(f"Preparation {preparation_id} expired at {preparation.expires_at}")
            return None

        if not await self.delete_preparation(preparation_id):
            logger.warning(f"Preparation {preparation_id} was consumed concurrently")
            return None

        return preparation

    async def delete_expired_preparations(self, now: Optional[datetime] = None) -> int:
        """Delete preparation records whose expiry has passed."""
        stmt = (
            delete(FusionOrderPreparation)
            .where(FusionOrderPreparation.expires_at < (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # Order operations
    async def create_order_if_absent(self, order_hash: str, secrets: list[str]) -> bool:
        """Insert a pending order. No-op if the order hash already exists.

        Returns True if a row was inserted.
        """
        connection = await self.session.connection()
        insert = pg_insert if connection.dialect.name == "postgresql" else sqlite_insert
        now = utcnow()
        stmt = (
            insert(FusionOrder)
            .values(
                order_hash=order_hash,
                secrets_json=json.dumps(secrets),
                status=OrderStatus.PENDING.value,
                attempts=0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["order_hash"])
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_order(self, order_hash: str) -> Optional[FusionOrder]:
        """Get order by hash."""
        stmt = (
            select(FusionOrder)
            .where(FusionOrder.order_hash == order_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_orders(self, limit: int = 50) -> list[FusionOrder]:
        """Get up to ``limit`` orders still awaiting completion."""
        stmt = (
            select(FusionOrder)
            .where(FusionOrder.status == OrderStatus.PENDING.value)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _update_pending(self, order_hash: str, **values) -> bool:
        # Guarded on status so a terminal order never changes again.
        stmt = (
            update(FusionOrder)
            .where(
                FusionOrder.order_hash == order_hash,
                FusionOrder.status == OrderStatus.PENDING.value,
            )
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_executed(self, order_hash: str) -> bool:
        return await self._update_pending(order_hash, status=OrderStatus.EXECUTED.value)

    async def mark_timeout(self, order_hash: str) -> bool:
        return await self._update_pending(order_hash, status=OrderStatus.TIMEOUT.value)

    async def mark_error(self, order_hash: str, error_message: str) -> bool:
        return await self._update_pending(
            order_hash,
            status=OrderStatus.ERROR.value,
            error_message=error_message,
        )

    async def increment_attempts(self, order_hash: str) -> bool:
        """Record one completed polling cycle for a pending order."""
        return await self._update_pending(order_hash, attempts=FusionOrder.attempts + 1)

    async def delete_stale_orders(
        self,
        retention: timedelta = timedelta(days=7),
        now: Optional[datetime] = None,
    ) -> int:
        """Delete executed/timed out orders untouched for longer than ``retention``."""
        cutoff = (now or utcnow()) - retention
        stmt = (
            delete(FusionOrder)
            .where(
                FusionOrder.status.in_(PURGEABLE_STATUSES),
                FusionOrder.updated_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
