"""Session management models."""

import secrets
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field

from paymail.core.db import MongoModel
from paymail.utils import now_ms

SessionId = NewType("SessionId", str)


def new_session_id() -> SessionId:
    return SessionId(secrets.token_urlsafe(32))


class Session(MongoModel):
    """Authenticated browser session.

    Keyed by an opaque random id that doubles as the cookie value.
    Indexed on expires_on for cleanup queries.
    """

    id: SessionId = Field(alias="_id", serialization_alias="id", default_factory=new_session_id, repr=False)  # type: ignore[assignment]
    email: str
    name: str
    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_on: int  # epoch ms
    created_at: int = Field(default_factory=now_ms)  # epoch ms

    def is_expired(self, at: int) -> bool:
        return self.expires_on <= at


class AuthContext(BaseModel):
    """Identity and delegated credential for the duration of one request."""

    model_config = ConfigDict(frozen=True)

    session_id: SessionId = Field(repr=False)
    email: str
    name: str
    access_token: str = Field(repr=False)
    expires_on: int

    @classmethod
    def from_session(cls, session: Session) -> "AuthContext":
        return cls(
            session_id=session.id,
            email=session.email,
            name=session.name,
            access_token=session.access_token,
            expires_on=session.expires_on,
        )


class PurgeResult(BaseModel):
    """Outcome of one expired-session purge."""

    deleted: int = 0
    failed: int = 0
