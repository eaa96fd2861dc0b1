"""OAuth2 client for the Microsoft identity platform (v2 endpoints)."""

from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from paymail.core.modules.identity.models import Profile, TokenSet
from paymail.errors import AuthExchangeError, ProfileFetchError, TokenRefreshError
from paymail.utils import now_ms

logger = structlog.get_logger(__name__)

AUTHORITY_URL = "https://login.microsoftonline.com"
GRAPH_URL = "https://graph.microsoft.com/v1.0"


def _error_code(response: httpx.Response) -> str:
    """Extract the OAuth `error` field without ever echoing the request body."""
    try:
        payload = response.json()
    except ValueError:
        return "unknown"
    if isinstance(payload, dict):
        return str(payload.get("error", "unknown"))
    return "unknown"


class IdentityProviderClient:
    """Authorization-code and refresh-token grants plus profile lookup.

    The caller owns the httpx client; its timeout bounds every call made here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        authority_url: str = AUTHORITY_URL,
        graph_url: str = GRAPH_URL,
    ) -> None:
        self._http = http_client
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = f"{authority_url}/{tenant_id}/oauth2/v2.0"
        self._graph_url = graph_url

    @property
    def token_url(self) -> str:
        return f"{self._base_url}/token"

    def build_authorization_url(self, scopes: list[str], redirect_uri: str) -> str:
        """Build the URL the browser is redirected to for sign-in."""
        params = {
            "client_id": self._client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "response_mode": "query",
            "scope": " ".join(scopes),
        }
        return f"{self._base_url}/authorize?{urlencode(params)}"

    def build_logout_url(self, post_logout_redirect_uri: str) -> str:
        return f"{self._base_url}/logout?{urlencode({'post_logout_redirect_uri': post_logout_redirect_uri})}"

    async def exchange_code_for_tokens(self, code: str, scopes: list[str], redirect_uri: str) -> TokenSet:
        """Redeem a single-use authorization code.

        Raises:
            AuthExchangeError: Code invalid or expired, provider unreachable or timed out
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes),
        }
        return await self._request_tokens(data, AuthExchangeError)

    async def refresh_tokens(self, refresh_token: str, scopes: list[str]) -> TokenSet:
        """Mint a new access token from a refresh token.

        Raises:
            TokenRefreshError: Refresh token revoked or expired, provider unreachable or timed out
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "scope": " ".join(scopes),
        }
        return await self._request_tokens(data, TokenRefreshError)

    async def fetch_profile(self, access_token: str) -> Profile:
        """Read display name and primary email of the signed-in user.

        Raises:
            ProfileFetchError: Non-2xx response, transport failure or missing claims
        """
        try:
            response = await self._http.get(
                f"{self._graph_url}/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("profile_request_failed", error=type(e).__name__)
            raise ProfileFetchError("Profile request failed") from e

        if response.is_error:
            logger.warning("profile_request_rejected", status_code=response.status_code)
            raise ProfileFetchError(f"Profile endpoint returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProfileFetchError("Malformed profile response") from e

        email = payload.get("mail") or payload.get("userPrincipalName")
        if not email:
            raise ProfileFetchError("Profile has no email address")
        return Profile(email=email, name=payload.get("displayName") or email)

    async def _request_tokens(
        self, data: dict[str, str], error_class: type[AuthExchangeError] | type[TokenRefreshError]
    ) -> TokenSet:
        grant_type = data["grant_type"]
        form = {**data, "client_id": self._client_id, "client_secret": self._client_secret}
        try:
            response = await self._http.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            logger.warning("token_request_failed", grant_type=grant_type, error=type(e).__name__)
            raise error_class("Identity provider unreachable") from e

        if response.is_error:
            error_code = _error_code(response)
            logger.warning(
                "token_request_rejected", grant_type=grant_type, status_code=response.status_code, error=error_code
            )
            raise error_class(f"Identity provider rejected the grant ({error_code})")

        try:
            payload: dict[str, Any] = response.json()
            return TokenSet(
                access_token=payload["access_token"],
                refresh_token=payload.get("refresh_token"),
                expires_on=now_ms() + int(payload["expires_in"]) * 1000,
            )
        except (ValueError, KeyError, TypeError) as e:
            raise error_class("Malformed token response") from e
