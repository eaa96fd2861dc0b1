"""Session cookie handling."""

from fastapi import Request, Response

from paymail.config import Config
from paymail.core.modules.session.models import SessionId

SESSION_COOKIE_NAME = "sessionId"


class CookieCodec:
    """Reads, writes and clears the session cookie.

    The cookie only ever carries the opaque session id. Production deployments
    serve the API and front end from different sites, hence Secure + SameSite=None.
    """

    def __init__(self, secure: bool, max_age: int, name: str = SESSION_COOKIE_NAME) -> None:
        self.name = name
        self.secure = secure
        self.max_age = max_age

    @classmethod
    def from_config(cls, config: Config) -> "CookieCodec":
        return cls(secure=config.production, max_age=config.session_cookie_max_age)

    @property
    def samesite(self) -> str:
        return "none" if self.secure else "lax"

    def read(self, request: Request) -> SessionId | None:
        value = request.cookies.get(self.name)
        return SessionId(value) if value else None

    def write(self, response: Response, session_id: SessionId) -> None:
        response.set_cookie(
            key=self.name,
            value=session_id,
            max_age=self.max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,  # type: ignore[arg-type]
        )

    def clear(self, response: Response) -> None:
        # Attributes must match the issued cookie for browsers to drop it
        response.delete_cookie(
            key=self.name,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,  # type: ignore[arg-type]
        )
