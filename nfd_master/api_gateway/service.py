import asyncio
import logging
import ssl
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from uvicorn import Config, Server

from .routers import labeler, topology
from .transport import PeerCertH11Protocol
from ..config import Settings
from ..errors import AuthorizationError, ConflictError, NfdError, NotFoundError, StoreError
from ..reporting.service import ReportingService
from ..service_manager.base_service import BaseService
from ..version import get_version

logger = logging.getLogger("nfd-master.api-gateway")


def _error_status(error: NfdError) -> int:
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, StoreError):
        return 502
    return 500


def create_app(reporting: ReportingService) -> FastAPI:
    """Build the worker-facing API around an injected ReportingService."""
    app = FastAPI(title="NFD Master API", version=get_version())
    app.state.reporting = reporting

    app.include_router(labeler.router, prefix="/api/v1/labeler")
    app.include_router(topology.router, prefix="/api/v1/topology")

    @app.exception_handler(NfdError)
    async def nfd_error_handler(request: Request, exc: NfdError):
        return JSONResponse(status_code=_error_status(exc), content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


class APIGatewayService(BaseService):
    """
    API Gateway Service.
    Responsibility: Serve the worker API, with mutual TLS when TLS material
    is configured. Signals readiness through the injected event.
    """

    def __init__(self, settings: Settings, app: FastAPI, ready: Optional[asyncio.Event] = None):
        super().__init__("APIGatewayService")
        self.settings = settings
        self.app = app
        self.ready = ready or asyncio.Event()
        self._server: Optional[Server] = None
        self._task: Optional[asyncio.Task] = None

    def _config(self) -> Config:
        kwargs = {}
        if self.settings.tls_enabled:
            kwargs = dict(
                ssl_keyfile=self.settings.KEY_FILE,
                ssl_certfile=self.settings.CERT_FILE,
                ssl_ca_certs=self.settings.CA_FILE,
                ssl_cert_reqs=ssl.CERT_REQUIRED,
            )
        else:
            logger.warning("TLS material not configured. Serving without client authentication.")
        return Config(
            app=self.app,
            host=self.settings.API_HOST,
            port=self.settings.PORT,
            http=PeerCertH11Protocol,
            log_config=None,
            **kwargs,
        )

    async def start(self):
        logger.info(f"APIGatewayService starting on {self.settings.API_HOST}:{self.settings.PORT}")
        self._server = Server(self._config())
        self._task = asyncio.create_task(self._server.serve())

        deadline = asyncio.get_running_loop().time() + self.settings.READY_TIMEOUT_SECONDS
        while not self._server.started:
            if self._task.done():
                error = self._task.exception()
                raise RuntimeError(f"failed to start listener: {error}") from error
            if asyncio.get_running_loop().time() > deadline:
                self._server.should_exit = True
                raise RuntimeError(f"listener not ready after {self.settings.READY_TIMEOUT_SECONDS}s")
            await asyncio.sleep(0.05)

        # Notify that we're ready to accept connections
        self.ready.set()
        logger.info(f"serving on port: {self.settings.PORT}")

    async def wait_for_ready(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self.ready.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_closed(self):
        if self._task:
            await self._task

    async def stop(self):
        if self._server:
            self._server.should_exit = True
        if self._task:
            await self._task
        logger.info("APIGatewayService stopped.")
