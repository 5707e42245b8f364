"""
HTTPS server for the admission webhook.

The API server only talks to webhooks over TLS, so the server loads the
serving certificate generated at start-up (or mounted from a Secret) into an
``ssl.SSLContext``. Each review is handled on the event loop; the handler does
no blocking I/O.
"""

import logging
import ssl

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
)

from overcommit_webhook.constants import HEALTHZ_PATH, MIB, MUTATE_PATH
from overcommit_webhook.errors import CertificateError
from overcommit_webhook.webhooks.mutate import AdmissionHandler

logger = logging.getLogger(__name__)

# AdmissionReviews embed the whole object; etcd caps objects at ~1.5Mi
MAX_REQUEST_SIZE = 8 * MIB


class WebhookServer:
    """HTTPS server answering admission reviews on ``/mutate``."""

    def __init__(
        self,
        handler: AdmissionHandler,
        host: str = "0.0.0.0",
        port: int = 8443,
        certfile: str | None = None,
        keyfile: str | None = None,
    ):
        """
        Initialize webhook server.

        Args:
            handler: Admission handler answering reviews
            host: Host interface to bind to
            port: Port to serve on
            certfile: PEM certificate; plain HTTP when omitted (tests only)
            keyfile: PEM private key matching ``certfile``
        """
        self.handler = handler
        self.host = host
        self.port = port
        self.certfile = certfile
        self.keyfile = keyfile
        self.app = Application(client_max_size=MAX_REQUEST_SIZE)
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_post(MUTATE_PATH, self.handler.handle)
        self.app.router.add_get(HEALTHZ_PATH, self._healthz_handler)

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    @property
    def running(self) -> bool:
        return self.site is not None

    def ssl_context(self) -> ssl.SSLContext | None:
        """
        Build the TLS context from the configured certificate files.

        Raises:
            CertificateError: If the certificate or key cannot be loaded
        """
        if not self.certfile:
            return None

        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        try:
            context.load_cert_chain(certfile=self.certfile, keyfile=self.keyfile)
        except (OSError, ssl.SSLError) as e:
            raise CertificateError(
                f"Failed to load serving certificate {self.certfile}: {e}", e
            ) from e
        return context

    async def start(self) -> None:
        """Start the webhook server."""
        ssl_context = self.ssl_context()
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(
                self.runner, self.host, self.port, ssl_context=ssl_context
            )
            await self.site.start()

            scheme = "https" if ssl_context else "http"
            logger.info(
                f"Admission webhook listening on {scheme}://{self.host}:{self.port}{MUTATE_PATH}"
            )
        except Exception as e:
            logger.error(f"Failed to start webhook server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the webhook server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Webhook server stopped")
        except Exception as e:
            logger.error(f"Error stopping webhook server: {e}")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
