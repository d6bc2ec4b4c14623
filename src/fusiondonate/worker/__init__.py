"""Scheduled invocation of the order completion worker."""

from fusiondonate.worker.runner import CompletionWorkerRunner

__all__ = ["CompletionWorkerRunner"]
