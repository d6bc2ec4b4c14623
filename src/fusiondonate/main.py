"""Main entry point - runs the API and, optionally, the completion worker."""

import asyncio
import logging
import signal

import uvicorn

from fusiondonate.api.app import create_app
from fusiondonate.config import get_settings
from fusiondonate.fusion.client import get_fusion_client
from fusiondonate.services.order_completion import OrderCompletionWorker
from fusiondonate.store.database import close_db, init_db
from fusiondonate.worker.runner import CompletionWorkerRunner

logger = logging.getLogger(__name__)


class Application:
    """Main application that runs the API and the embedded worker loop."""

    def __init__(self):
        self.settings = get_settings()
        self.worker_runner = None
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        # Configure logging
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        logger.info("Starting FusionDonate...")
        logger.info(f"Environment: {self.settings.environment}")

        # Initialize database
        await init_db()
        logger.info("Database initialized")

        tasks = []

        if self.settings.run_embedded_worker:
            self.worker_runner = CompletionWorkerRunner(
                OrderCompletionWorker(provider=get_fusion_client()),
                interval=self.settings.worker_interval_seconds,
            )
            tasks.append(asyncio.create_task(self.worker_runner.run()))
            logger.info("Worker task created")
        else:
            logger.info("Embedded worker disabled - trigger /api/fusion-order-process externally")

        # Start API server
        tasks.append(asyncio.create_task(self._run_api()))
        logger.info("API task created")

        # Wait for shutdown signal
        await self._shutdown_event.wait()

        if self.worker_runner:
            self.worker_runner.stop()

        # Cancel all tasks
        for task in tasks:
            task.cancel()

        # Wait for tasks to complete
        await asyncio.gather(*tasks, return_exceptions=True)

        await self._cleanup()

    async def _run_api(self):
        """Run the FastAPI server."""
        try:
            app = create_app()
            config = uvicorn.Config(
                app,
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    async def _cleanup(self):
        """Cleanup resources."""
        logger.info("Cleaning up...")
        await close_db()
        logger.info("Cleanup complete")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def main():
    """Main entry point."""
    app = Application()

    # Setup signal handlers
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
