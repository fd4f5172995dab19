"""
OAuth Callback Server

Local aiohttp listener that receives the provider's redirect, exchanges the
authorization code for tokens and writes them to the token file. Failed or
incomplete callbacks are answered with an error page and the server keeps
listening so the operator can retry from the browser.
"""

import asyncio
import logging

from aiohttp import web

from ..config import Config
from .client import OAuthClient, TokenRequestError
from .token_store import TokenStore

logger = logging.getLogger(__name__)


class CallbackServer:
    """OAuth redirect listener bound to the redirect URI's path."""

    def __init__(
        self,
        config: Config,
        oauth_client: OAuthClient,
        token_store: TokenStore,
        host: str = "localhost",
    ) -> None:
        self.config = config
        self.oauth_client = oauth_client
        self.token_store = token_store
        self.host = host
        self.port = config.port
        self.app: web.Application | None = None
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self.auth_completed = asyncio.Event()

    def is_running(self) -> bool:
        return self.site is not None

    async def handle_callback(self, request: web.Request) -> web.StreamResponse:
        """OAuth callback: error -> 400, no code -> 400, otherwise exchange and save."""
        code = request.query.get("code")
        error = request.query.get("error")
        error_description = request.query.get("error_description")

        if error:
            logger.warning("Authorization denied: %s (%s)", error, error_description)
            return web.Response(text=f"OAuth error: {error_description or error}", status=400)

        if not code:
            return web.Response(text="Missing authorization code", status=400)

        try:
            tokens = await self.oauth_client.exchange_code(code)
        except TokenRequestError as e:
            logger.error("Token exchange failed: %s", e.detail or e)
            return web.Response(text="Token exchange failed. See console.", status=500)

        self.token_store.save(tokens)

        response = web.Response(
            text=(
                f"Success! Tokens saved to {self.token_store.path.name}. "
                "You can close this window."
            )
        )
        # Make sure the browser gets its page before the runner shuts us down
        await response.prepare(request)
        await response.write_eof()
        self.auth_completed.set()
        return response

    def init_app(self) -> web.Application:
        """Initialize the web application"""
        self.app = web.Application()
        self.app.router.add_get(self.config.callback_path, self.handle_callback)
        return self.app

    async def start(self) -> None:
        if self.is_running():
            logger.warning("Server already running")
            return

        self.init_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        # Port 0 asks the OS for a free port; report the one we actually got
        if self.runner.addresses:
            self.port = self.runner.addresses[0][1]
        logger.info(
            "Callback server listening on http://%s:%s%s",
            self.host, self.port, self.config.callback_path,
        )

    async def stop(self) -> None:
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Callback server stopped")

    async def wait_for_auth(self) -> None:
        """Block until a callback has saved tokens. There is no timeout."""
        await self.auth_completed.wait()
