from paymail.core.core import Service
from paymail.core.modules.session.models import AuthContext, SessionId
from paymail.errors import AuthenticationError


class AccessService(Service):
    async def authenticate(self, session_id: SessionId | None) -> AuthContext:
        """Resolve the caller's session into a request-scoped context.

        Raises:
            AuthenticationError: No session id presented
            InvalidSessionError: Unknown or expired session (the caller should clear the cookie)
        """
        if not session_id:
            raise AuthenticationError
        session = await self.core.services.session.require_valid_session(session_id)
        return AuthContext.from_session(session)
