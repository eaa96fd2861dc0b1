from fastapi import APIRouter, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from paymail.web.deps import AppDep, AuthContextDep, CookieCodecDep, SessionIdDep
from paymail.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class AuthStatus(BaseModel):
    """Authentication status of the calling browser."""

    model_config = ConfigDict(populate_by_name=True)

    is_authenticated: bool = Field(..., alias="isAuthenticated", description="Whether a live session exists")
    name: str | None = Field(None, description="Display name, when authenticated")
    email: str | None = Field(None, description="Primary email, when authenticated")


class CurrentUser(BaseModel):
    """Signed-in user (tokens are never exposed)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Primary email")
    is_authenticated: bool = Field(True, alias="isAuthenticated")


class RefreshResponse(BaseModel):
    success: bool
    message: str


@router.get(
    "/auth/login",
    summary="Start sign-in",
    description="Redirect the browser to the identity provider sign-in page.",
    operation_id="login",
    status_code=302,
    response_class=RedirectResponse,
    responses={302: {"description": "Redirect to identity provider"}},
)
async def login(app: AppDep) -> RedirectResponse:
    return RedirectResponse(app.get_login_url(), status_code=302)


@router.get(
    "/auth/callback",
    summary="Complete sign-in",
    description=(
        "Exchange the authorization code for tokens, create a session, set the session cookie "
        "and redirect to the front end."
    ),
    operation_id="authCallback",
    status_code=302,
    response_class=RedirectResponse,
    responses={
        302: {"description": "Signed in, redirect to front end"},
        400: {"model": ErrorResponse, "description": "Authorization code missing"},
        500: {"model": ErrorResponse, "description": "Code exchange or profile lookup failed"},
    },
)
async def callback(app: AppDep, cookies: CookieCodecDep, code: str | None = None) -> RedirectResponse:
    session = await app.complete_login(code)
    response = RedirectResponse(app.config.frontend_origin, status_code=302)
    cookies.write(response, session.id)
    return response


@router.get(
    "/auth/logout",
    summary="Sign out",
    description="Delete the current session (if any), clear the cookie and redirect to the provider logout page.",
    operation_id="logout",
    status_code=302,
    response_class=RedirectResponse,
    responses={
        302: {"description": "Redirect to identity provider logout"},
        500: {"model": ErrorResponse, "description": "Store error"},
    },
)
async def logout(app: AppDep, cookies: CookieCodecDep, session_id: SessionIdDep) -> RedirectResponse:
    logout_url = await app.logout(session_id)
    response = RedirectResponse(logout_url, status_code=302)
    cookies.clear(response)
    return response


@router.get(
    "/auth/status",
    summary="Authentication status",
    description="Report whether the caller has a live session. Never fails for anonymous callers.",
    operation_id="authStatus",
    response_model_exclude_none=True,
    responses={
        200: {"description": "Authentication status"},
        500: {"model": ErrorResponse, "description": "Store error"},
    },
)
async def status(app: AppDep, cookies: CookieCodecDep, session_id: SessionIdDep, response: Response) -> AuthStatus:
    session = await app.get_session_status(session_id)
    if session is None:
        if session_id:
            cookies.clear(response)
        return AuthStatus(is_authenticated=False)
    return AuthStatus(is_authenticated=True, name=session.name, email=session.email)


@router.get(
    "/auth/get-current-user",
    summary="Current user",
    description="Name and email of the signed-in user.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_current_user(context: AuthContextDep) -> CurrentUser:
    return CurrentUser(name=context.name, email=context.email)


@router.post(
    "/auth/refresh-token",
    summary="Refresh access token",
    description="Use the stored refresh token to renew the session's access token.",
    operation_id="refreshToken",
    responses={
        200: {"description": "Token refreshed"},
        401: {"model": ErrorResponse, "description": "Not authenticated, no refresh token, or refresh rejected"},
    },
)
async def refresh_token(app: AppDep, context: AuthContextDep) -> RefreshResponse:
    await app.refresh_session(context)
    return RefreshResponse(success=True, message="Token refreshed successfully")
