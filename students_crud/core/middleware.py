"""Request cancellation on client disconnect.

Starlette keeps running a handler after the client has gone away. This
middleware watches the ASGI receive channel and cancels the handler task
when an `http.disconnect` arrives before the response is complete, so the
awaited store call is abandoned instead of finished and discarded.
"""

import asyncio
import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class CancelOnDisconnectMiddleware:
    """ASGI middleware cancelling in-flight HTTP requests on disconnect.

    Usage:
        app.add_middleware(CancelOnDisconnectMiddleware)
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # The handler reads from this queue; the poller owns the real receive
        queue: asyncio.Queue[Message] = asyncio.Queue()
        response_complete = asyncio.Event()

        async def tracking_send(message: Message) -> None:
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                response_complete.set()

        handler_task = asyncio.ensure_future(self.app(scope, queue.get, tracking_send))
        poller_task = asyncio.ensure_future(
            self._poll_receive(receive, queue, handler_task, response_complete)
        )

        try:
            await handler_task
        except asyncio.CancelledError:
            # Not our cancellation (e.g. server shutdown): propagate it
            if not (
                poller_task.done()
                and not poller_task.cancelled()
                and poller_task.exception() is None
                and poller_task.result()
            ):
                raise
            logger.info(
                f"Client disconnected, abandoned {scope['method']} {scope['path']}"
            )
        finally:
            poller_task.cancel()
            try:
                await poller_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Receive channel failed for {scope['path']}: {e}")

    @staticmethod
    async def _poll_receive(
        receive: Receive,
        queue: "asyncio.Queue[Message]",
        handler_task: asyncio.Future,
        response_complete: asyncio.Event,
    ) -> bool:
        """Return True when the handler was cancelled because of a disconnect."""
        while True:
            message = await receive()
            await queue.put(message)
            if message["type"] == "http.disconnect":
                if response_complete.is_set():
                    return False
                handler_task.cancel()
                return True
