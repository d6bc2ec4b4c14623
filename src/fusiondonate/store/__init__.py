"""Relational store used as the job queue for order completion."""

from fusiondonate.store.database import get_db, init_db
from fusiondonate.store.models import (
    FusionOrder,
    FusionOrderPreparation,
    OrderStatus,
)
from fusiondonate.store.repository import OrderRepository

__all__ = [
    # Models
    "FusionOrder",
    "FusionOrderPreparation",
    # Enums
    "OrderStatus",
    # Database
    "get_db",
    "init_db",
    "OrderRepository",
]
