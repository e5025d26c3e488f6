"""WebSocket endpoint that streams snapshots to the dashboard."""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from hoststream import __version__
from hoststream.config import APP_NAME, SETTINGS, ServerSettings, endpoint_url
from hoststream.errors import ConsumerGone
from hoststream.publisher import Send, StreamPublisher
from hoststream.sampler import Sampler

logger = logging.getLogger(__name__)

SamplerFactory = Callable[[], Sampler]


def _sender(websocket: WebSocket) -> Send:
    async def send(text: str) -> None:
        try:
            await websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError) as exc:
            raise ConsumerGone(str(exc) or "websocket closed") from exc

    return send


async def _discard_incoming(websocket: WebSocket, publisher: StreamPublisher) -> None:
    """Read and drop whatever the consumer sends; close the publisher on disconnect."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Receive side ended: %s", exc)
    finally:
        publisher.close()


def _client_label(websocket: WebSocket) -> str:
    if websocket.client is None:
        return "consumer"
    return f"{websocket.client.host}:{websocket.client.port}"


def create_app(
    settings: ServerSettings = SETTINGS,
    sampler_factory: SamplerFactory = Sampler.for_local_host,
) -> FastAPI:
    """
    Build the streaming application.

    Args:
        settings: Endpoint path and tick interval.
        sampler_factory: Creates the private sampler for each connection.
    """
    app = FastAPI(title=APP_NAME, version=__version__)

    @app.get("/endpoint")
    async def endpoint() -> dict[str, str]:
        return {"url": endpoint_url(settings)}

    @app.websocket(settings.path)
    async def stream(websocket: WebSocket) -> None:
        await websocket.accept()
        client = _client_label(websocket)
        logger.info("Consumer %s connected", client)

        publisher = StreamPublisher(
            sampler_factory(),
            send=_sender(websocket),
            interval=settings.tick_interval,
            name=client,
        )
        receiver = asyncio.create_task(_discard_incoming(websocket, publisher))
        try:
            await publisher.run()
        finally:
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiver

    return app


class StreamServer:
    """
    Runs the streaming endpoint on a background thread.

    Meant for shells that host their own UI loop on the main thread.
    """

    def __init__(self, settings: ServerSettings = SETTINGS, log_level: str = "warning") -> None:
        """
        Initialize the StreamServer.

        Args:
            settings: Where to listen.
            log_level: uvicorn log level.
        """
        self._settings = settings
        self._log_level = log_level
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return endpoint_url(self._settings)

    @property
    def is_running(self) -> bool:
        """Check if the server thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def started(self) -> bool:
        """Whether uvicorn has bound its socket and is accepting."""
        return self._server is not None and self._server.started

    def start(self) -> None:
        """Start serving; does nothing if already running."""
        if self.is_running:
            return

        config = uvicorn.Config(
            create_app(self._settings),
            host=self._settings.host,
            port=self._settings.port,
            log_level=self._log_level,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            daemon=True,
            name="StreamServer",
        )
        self._thread.start()
        logger.info("Streaming endpoint starting at %s", self.url)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop serving.

        Args:
            timeout: How long to wait for the thread to stop (seconds).
        """
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._server = None


def serve(settings: ServerSettings = SETTINGS, log_level: str = "info") -> None:
    """Serve the endpoint on the current thread until interrupted."""
    logger.info("Serving %s", endpoint_url(settings))
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=log_level,
    )
