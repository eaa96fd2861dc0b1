"""Tests for the session cookie codec."""

import pytest
from fastapi import Response
from pydantic import ValidationError as PydanticValidationError

from paymail.config import Config
from paymail.core.modules.session.models import SessionId
from paymail.web.cookies import CookieCodec


class TestCookieCodec:
    """Tests for cookie attributes per environment."""

    def test_development_cookie(self, config):
        """Test that development cookies are Lax and not Secure."""
        response = Response()
        CookieCodec.from_config(config).write(response, SessionId("abc"))

        header = response.headers["set-cookie"]
        assert header.startswith("sessionId=abc;")
        assert "HttpOnly" in header
        assert "SameSite=lax" in header
        assert "Secure" not in header

    def test_production_cookie(self, config):
        """Test that production cookies are Secure with SameSite=None."""
        response = Response()
        codec = CookieCodec.from_config(config.model_copy(update={"production": True}))
        codec.write(response, SessionId("abc"))

        header = response.headers["set-cookie"]
        assert "Secure" in header
        assert "SameSite=none" in header
        assert "Max-Age=86400" in header
        assert "Path=/" in header

    def test_clear_matches_attributes(self, config):
        """Test that clearing expires the cookie with the same attributes."""
        response = Response()
        codec = CookieCodec.from_config(config.model_copy(update={"production": True}))
        codec.clear(response)

        header = response.headers["set-cookie"]
        assert "Max-Age=0" in header
        assert "Secure" in header
        assert "SameSite=none" in header


class TestConfigSelection:
    """Tests for environment-dependent settings."""

    def test_local_values(self, config):
        """Test that local redirect URI and origin are used outside production."""
        assert config.redirect_uri == "http://localhost:3000/auth/callback"
        assert config.frontend_origin == "http://localhost:5173"
        assert config.scopes == ["openid", "offline_access", "User.Read", "Mail.Send"]

    def test_production_values(self, config):
        """Test that production redirect URI and origin are used in production."""
        prod = config.model_copy(
            update={
                "production": True,
                "oauth_redirect_uri_prod": "https://api.example.com/auth/callback",
                "frontend_origin_prod": "https://payroll.example.com",
            }
        )

        assert prod.redirect_uri == "https://api.example.com/auth/callback"
        assert prod.frontend_origin == "https://payroll.example.com"
        assert prod.cors_origins == ["https://payroll.example.com", "http://localhost:5173"]

    def test_production_requires_urls(self, config):
        """Test that production settings without prod redirect URI and origin are rejected at load."""
        settings = config.model_dump() | {"production": True, "oauth_redirect_uri_prod": ""}

        with pytest.raises(PydanticValidationError):
            Config(**settings, _env_file=None)
