from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # e.g. mongodb://localhost:27017/paymail
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    forwarded_allow_ips: str = "127.0.0.1"  # reverse proxies trusted for X-Forwarded-* headers
    debug: bool = False
    production: bool = False  # Selects prod redirect URI / front-end origin and secure cookies
    microsoft_client_id: str
    microsoft_client_secret: str
    microsoft_tenant_id: str
    oauth_redirect_uri_prod: str = ""
    oauth_redirect_uri_local: str = "http://localhost:3000/auth/callback"
    frontend_origin_prod: str = ""
    frontend_origin_local: str = "http://localhost:5173"
    oauth_scopes: str = "openid profile email offline_access User.Read Mail.Send"  # space-separated
    http_timeout: float = 10.0  # seconds, identity provider and Graph calls
    store_timeout_ms: int = 10_000
    session_cleanup_interval: float = 24 * 60 * 60  # seconds
    session_cookie_max_age: int = 24 * 60 * 60  # seconds

    model_config = {
        "env_file": [".env"],
        "env_prefix": "PAYMAIL_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_production_urls(self) -> Self:
        if self.production and not (self.oauth_redirect_uri_prod and self.frontend_origin_prod):
            raise ValueError("production requires oauth_redirect_uri_prod and frontend_origin_prod")
        return self

    @property
    def redirect_uri(self) -> str:
        return self.oauth_redirect_uri_prod if self.production else self.oauth_redirect_uri_local

    @property
    def frontend_origin(self) -> str:
        return self.frontend_origin_prod if self.production else self.frontend_origin_local

    @property
    def scopes(self) -> list[str]:
        return self.oauth_scopes.split()

    @property
    def cors_origins(self) -> list[str]:
        """Both front-end origins are allowed, matching the deployed and local clients."""
        return [origin for origin in (self.frontend_origin_prod, self.frontend_origin_local) if origin]
