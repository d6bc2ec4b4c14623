"""Request/response services behind the web controllers."""

from fusiondonate.web.services.balance_service import BalanceService
from fusiondonate.web.services.errors import (
    InvalidRequestError,
    OrderPreparationError,
    OrderServiceError,
    PreparationNotFoundError,
    ProviderRejectedError,
)
from fusiondonate.web.services.order_service import OrderPreparationService

__all__ = [
    "BalanceService",
    "OrderPreparationService",
    "OrderServiceError",
    "InvalidRequestError",
    "OrderPreparationError",
    "PreparationNotFoundError",
    "ProviderRejectedError",
]
