"""
Startup and graceful shutdown handling for the HandyAI backend.
Builds the long-lived resources, ensures in-flight requests complete and
releases everything on exit.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable

from handyai.core.config import settings
from handyai.db.session import Database
from handyai.services.llm.llm_service import LLMService
from handyai.services.tools.crm_tools import build_crm_registry

logger = logging.getLogger("handyai.shutdown")


class GracefulShutdownManager:
    """
    Manages graceful shutdown of the application.

    Features:
    - Tracks in-flight requests
    - Waits for pending requests to complete
    - Runs cleanup callbacks (database pool, LLM client)
    """

    def __init__(self, timeout: int = 30):
        self._shutdown_requested = False
        self._timeout = timeout
        self._shutdown_callbacks: list[Callable] = []
        self._request_count = 0
        self._lock = asyncio.Lock()

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    async def increment_requests(self) -> None:
        """Track a new in-flight request."""
        async with self._lock:
            self._request_count += 1

    async def decrement_requests(self) -> None:
        """Mark a request as complete."""
        async with self._lock:
            self._request_count -= 1

    @property
    def pending_requests(self) -> int:
        """Get the number of pending requests."""
        return self._request_count

    def add_shutdown_callback(self, callback: Callable) -> None:
        """Register a callback to run during shutdown."""
        self._shutdown_callbacks.append(callback)

    async def shutdown(self) -> None:
        """
        Perform graceful shutdown.
        Waits for in-flight requests and runs cleanup callbacks.
        """
        if self._shutdown_requested:
            return

        self._shutdown_requested = True
        logger.info("Graceful shutdown initiated...")

        # Wait for in-flight requests with timeout
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self._request_count > 0:
            elapsed = loop.time() - start_time
            if elapsed > self._timeout:
                logger.warning(
                    f"Shutdown timeout reached with {self._request_count} pending requests"
                )
                break
            logger.info(f"Waiting for {self._request_count} pending requests...")
            await asyncio.sleep(0.5)

        logger.info(f"Running {len(self._shutdown_callbacks)} shutdown callbacks...")
        for callback in self._shutdown_callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in shutdown callback: {e}")

        logger.info("Graceful shutdown complete")


@asynccontextmanager
async def lifespan_manager(app):
    """
    FastAPI lifespan context manager for startup/shutdown.

    Stores the database, the tool registry, the LLM client and the shutdown
    manager on ``app.state``.

    Usage:
        app = FastAPI(lifespan=lifespan_manager)
    """
    logger.info("Application starting up...")
    shutdown_manager = GracefulShutdownManager()

    database = Database.from_settings(settings)
    llm_service = LLMService.from_settings(settings)

    app.state.shutdown_manager = shutdown_manager
    app.state.database = database
    app.state.tool_registry = build_crm_registry()
    app.state.llm_service = llm_service

    shutdown_manager.add_shutdown_callback(llm_service.aclose)
    shutdown_manager.add_shutdown_callback(database.dispose)

    logger.info(
        f"Application startup complete (LLM provider: {llm_service.provider}, model: {llm_service.model})"
    )

    try:
        yield
    finally:
        logger.info("Application shutting down...")
        await shutdown_manager.shutdown()


class RequestTrackingMiddleware:
    """
    Middleware that tracks in-flight requests for graceful shutdown.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        shutdown_manager = getattr(scope["app"].state, "shutdown_manager", None)
        if shutdown_manager is None:
            await self.app(scope, receive, send)
            return

        if shutdown_manager.shutdown_requested:
            # Return 503 Service Unavailable for new requests during shutdown
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"connection", b"close"],
                ],
            })
            await send({
                "type": "http.response.body",
                "body": b'{"error": "Service is shutting down", "retry_after": 5}',
            })
            return

        await shutdown_manager.increment_requests()
        try:
            await self.app(scope, receive, send)
        finally:
            await shutdown_manager.decrement_requests()
