"""Background services.

- OrderCompletionWorker: advances submitted orders to a terminal state
"""

from fusiondonate.services.order_completion import (
    OrderCompletionWorker,
    WorkerRunSummary,
)

__all__ = [
    "OrderCompletionWorker",
    "WorkerRunSummary",
]
