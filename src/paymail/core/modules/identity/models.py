"""Identity provider token and profile models."""

from pydantic import BaseModel


class TokenSet(BaseModel):
    """Tokens issued by the identity provider for one grant."""

    access_token: str
    refresh_token: str | None = None
    expires_on: int  # epoch milliseconds


class Profile(BaseModel):
    """Basic identity claims read from Microsoft Graph."""

    email: str
    name: str
