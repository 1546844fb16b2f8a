"""Host a SessionController on a background event loop for a synchronous UI."""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from episode_trimmer.config import Settings, get_settings
from episode_trimmer.session.controller import SessionController

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLOSE_TIMEOUT_SECONDS = 5.0


def _stop_loop(
    loop: asyncio.AbstractEventLoop,
    thread: threading.Thread,
    controller: SessionController,
) -> None:
    # Must not hold a reference to the runtime, or it would never be collected.
    if threading.current_thread() is thread:
        loop.call_soon(loop.stop)
        return
    try:
        asyncio.run_coroutine_threadsafe(controller.close(), loop).result(CLOSE_TIMEOUT_SECONDS)
    except Exception:
        logger.exception("Closing the trim session failed")
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()
    logger.info("Session runtime stopped")


class SessionRuntime:
    """One trim session running on its own event loop thread.

    Streamlit reruns the page script on every interaction, so the session
    lives here and the script talks to it through ``call`` and ``run``,
    which block until the loop has executed the request.

    The loop thread and the controller's HTTP client are released by
    ``shutdown()``, or automatically once the runtime is garbage collected
    (Streamlit drops it with the browser session) or the interpreter exits.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name="trim-session",
            daemon=True,
        )
        self._thread.start()
        self.controller: SessionController = self.run(self._create_controller, http)
        self._finalizer = weakref.finalize(self, _stop_loop, self._loop, self._thread, self.controller)
        logger.info("Session runtime started against %s", self.settings.api_url)

    async def _create_controller(self, http: httpx.AsyncClient | None) -> SessionController:
        return SessionController(http=http, settings=self.settings)

    @property
    def closed(self) -> bool:
        return self._loop.is_closed()

    def run(self, coro_fn: Callable[..., Awaitable[T]], *args: Any, timeout: float | None = None) -> T:
        """Run ``coro_fn(*args)`` on the session loop and wait for the result."""
        future = asyncio.run_coroutine_threadsafe(coro_fn(*args), self._loop)
        return future.result(timeout)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a synchronous controller method on the session loop."""

        async def _invoke() -> T:
            return fn(*args)

        return self.run(_invoke)

    def shutdown(self) -> None:
        self._finalizer()
