"""HTTP controllers for web API endpoints."""

from fusiondonate.web.controllers.balances import router as balances_router
from fusiondonate.web.controllers.fusion_orders import router as fusion_orders_router
from fusiondonate.web.controllers.order_processing import router as order_processing_router

__all__ = [
    "balances_router",
    "fusion_orders_router",
    "order_processing_router",
]
