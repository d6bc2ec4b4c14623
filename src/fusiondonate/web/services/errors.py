"""Service-level errors mapped onto HTTP status codes by the API layer."""

from typing import Optional


class OrderServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(OrderServiceError):
    """Missing or invalid caller input, or a request the provider cannot satisfy."""

    status_code = 400


class PreparationNotFoundError(OrderServiceError):
    """Preparation id unknown, expired or already used."""

    status_code = 404


class OrderPreparationError(OrderServiceError):
    """The order could not be built from the quote."""

    status_code = 500


class ProviderRejectedError(OrderServiceError):
    """The settlement provider refused a request."""

    @classmethod
    def from_status(cls, provider_status: int, message: str) -> "ProviderRejectedError":
        return cls(message, status_code=400 if provider_status == 400 else 500)
