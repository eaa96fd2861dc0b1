from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from pymongo import AsyncMongoClient

from paymail.config import Config
from paymail.core.core import Core
from paymail.core.modules.email_log.models import EmailLog, PayslipEmail
from paymail.core.modules.session.models import AuthContext, Session, SessionId
from paymail.errors import TokenRefreshError, ValidationError

logger = structlog.get_logger(__name__)


class App:
    """Facade for all application operations; protected operations take an AuthContext."""

    def __init__(
        self,
        config: Config,
        mongo_client: AsyncMongoClient[dict[str, Any]] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._core = Core(config, mongo_client=mongo_client, http_client=http_client)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Authentication flow ===
    def get_login_url(self) -> str:
        """Identity provider sign-in URL for the configured scopes and redirect URI."""
        return self._core.identity.build_authorization_url(self.config.scopes, self.config.redirect_uri)

    async def complete_login(self, code: str | None) -> Session:
        """Exchange the authorization code, look up the profile and open a session.

        The profile lookup needs the freshly minted access token, so the two
        provider calls are strictly sequential. Nothing is stored if either fails.
        """
        if not code:
            raise ValidationError("Authorization code missing")
        tokens = await self._core.identity.exchange_code_for_tokens(code, self.config.scopes, self.config.redirect_uri)
        profile = await self._core.identity.fetch_profile(tokens.access_token)
        return await self._core.services.session.create_session(profile, tokens)

    async def logout(self, session_id: SessionId | None) -> str:
        """End the session if there is one and return the provider logout URL."""
        if session_id:
            await self._core.services.session.delete_session(session_id)
        return self._core.identity.build_logout_url(self.config.frontend_origin)

    async def get_session_status(self, session_id: SessionId | None) -> Session | None:
        """Live session for the cookie value, or None."""
        if not session_id:
            return None
        return await self._core.services.session.get_valid_session(session_id)

    async def authenticate(self, session_id: SessionId | None) -> AuthContext:
        """Auth gate: resolve a session id into a request-scoped context."""
        return await self._core.services.access.authenticate(session_id)

    async def refresh_session(self, context: AuthContext) -> None:
        """Refresh the delegated tokens of the current session."""
        session = await self._core.services.session.refresh_session(context.session_id)
        if session is None:
            raise TokenRefreshError

    # === Payslips ===
    async def send_payslip(self, context: AuthContext, email: PayslipEmail) -> EmailLog:
        """Send a payslip as the signed-in user and log the attempt."""
        return await self._core.services.email_log.send_payslip(context, email)

    async def get_email_logs(self, context: AuthContext, limit: int = 100) -> list[EmailLog]:
        """Most recent payslip email logs."""
        logger.debug("email_logs_requested", requested_by=context.email, limit=limit)
        return await self._core.services.email_log.get_logs(limit)
