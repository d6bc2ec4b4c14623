"""Order completion worker runner.

Plays the part of the external scheduler: invokes the completion worker on
a fixed interval (or once).

Usage:
    python -m fusiondonate.worker.runner --interval 60
    python -m fusiondonate.worker.runner --once

Environment variables:
    WORKER_INTERVAL_SECONDS: Seconds between invocations (default: 60)
    DEV_PORTAL_KEY: Provider API key (required)
"""

import argparse
import asyncio
import logging
from typing import Optional

from fusiondonate.config import get_settings
from fusiondonate.fusion.client import get_fusion_client
from fusiondonate.services.order_completion import OrderCompletionWorker, WorkerRunSummary
from fusiondonate.store.database import close_db, init_db

logger = logging.getLogger(__name__)


class CompletionWorkerRunner:
    """Runs ``OrderCompletionWorker.run_once`` on a schedule."""

    def __init__(self, worker: OrderCompletionWorker, interval: float = 60):
        """Initialize runner.

        Args:
            worker: Worker to invoke
            interval: Seconds between invocations
        """
        self.worker = worker
        self.interval = interval
        self._stop = asyncio.Event()

    async def run_once(self) -> Optional[WorkerRunSummary]:
        """Run a single invocation. A failed invocation is logged, not raised."""
        try:
            return await self.worker.run_once()
        except Exception as e:
            logger.error(f"Order completion run failed: {e}")
            return None

    async def run(self) -> None:
        """Run continuous invocation loop until ``stop`` is called."""
        logger.info(f"Starting order completion worker (interval: {self.interval}s)")

        while not self._stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Order completion worker stopped")

    def stop(self) -> None:
        self._stop.set()


async def main():
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the order completion worker")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.worker_interval_seconds,
        help=f"Seconds between invocations (default: {settings.worker_interval_seconds})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    await init_db()
    runner = CompletionWorkerRunner(
        OrderCompletionWorker(provider=get_fusion_client()),
        interval=args.interval,
    )

    try:
        if args.once:
            summary = await runner.run_once()
            if summary is not None:
                print(f"{summary.message} {summary.outcomes}")
        else:
            await runner.run()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
