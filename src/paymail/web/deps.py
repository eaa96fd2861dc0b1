from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie

from paymail.app import App
from paymail.core.modules.session.models import AuthContext, SessionId
from paymail.web.cookies import SESSION_COOKIE_NAME, CookieCodec

# Security scheme
cookie_scheme = APIKeyCookie(name=SESSION_COOKIE_NAME, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_cookie_codec(request: Request) -> CookieCodec:
    return cast(CookieCodec, request.app.state.cookies)


async def get_session_id(session_cookie: Annotated[str | None, Depends(cookie_scheme)] = None) -> SessionId | None:
    return SessionId(session_cookie) if session_cookie else None


async def get_auth_context(
    app: Annotated[App, Depends(get_app)],
    session_id: Annotated[SessionId | None, Depends(get_session_id)],
) -> AuthContext:
    """Auth gate for protected routes.

    Raises AuthenticationError without a cookie and InvalidSessionError (cookie
    gets cleared by the error handler) for unknown or expired sessions.
    """
    return await app.authenticate(session_id)


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
CookieCodecDep = Annotated[CookieCodec, Depends(get_cookie_codec)]
SessionIdDep = Annotated[SessionId | None, Depends(get_session_id)]
AuthContextDep = Annotated[AuthContext, Depends(get_auth_context)]
