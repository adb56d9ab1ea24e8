"""
OAuth web flow for GitHub OAuth applications.

Builds the authorization redirect, exchanges one-time codes for access
tokens and fetches the authenticated user's profile over plain HTTPS.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from loguru import logger

from ..config import Config
from ..constants import GITHUB
from ..exceptions import AuthError, ErrorKind
from ..models import Credential


class OAuthFlow:
    """GitHub OAuth application flow."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = GITHUB.DEFAULT_REDIRECT_URI,
        scopes: Optional[List[str]] = None,
        timeout_seconds: float = 30.0
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes) if scopes is not None else list(GITHUB.DEFAULT_SCOPES)
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: Config) -> "OAuthFlow":
        """
        Create the flow from configuration.

        Raises:
            AuthError: AUTH_MISSING_CREDENTIALS listing the missing variables
        """
        errors = []
        if not config.client_id:
            errors.append("GITHUB_CLIENT_ID environment variable is required")
        if not config.client_secret:
            errors.append("GITHUB_CLIENT_SECRET environment variable is required")
        if errors:
            raise AuthError(
                "Missing required OAuth environment variables",
                kind=ErrorKind.AUTH_MISSING_CREDENTIALS,
                details={"errors": errors}
            )
        return cls(
            config.client_id,
            config.client_secret,
            redirect_uri=config.redirect_uri,
            timeout_seconds=config.timeout_seconds
        )

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """Build the URL users are redirected to for authorization."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
        }
        if state:
            params["state"] = state

        logger.info(f"Generated GitHub OAuth authorization URL for client {self.client_id}")
        return f"{GITHUB.OAUTH_AUTHORIZE_URL}?{urlencode(params)}"

    @staticmethod
    def _parse_json(response: httpx.Response, failure: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise AuthError(
                f"{failure}: response is not valid JSON",
                status=response.status_code,
                details={"errorText": response.text[:200]},
                cause=e
            )
        if not isinstance(data, dict):
            raise AuthError(
                f"{failure}: unexpected response payload",
                status=response.status_code,
                details={"errorText": response.text[:200]}
            )
        return data

    async def exchange_code_for_token(self, code: str, state: Optional[str] = None) -> Dict[str, Any]:
        """
        Exchange a one-time authorization code for an access token.

        Returns:
            Token response with access_token, token_type and scope

        Raises:
            AuthError: AUTH_FAILED when the request fails or GitHub rejects it
        """
        logger.info(f"Exchanging OAuth code for access token ({code[:10]}...)")

        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        if state:
            payload["state"] = state

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    GITHUB.OAUTH_TOKEN_URL,
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise AuthError(
                f"OAuth token exchange failed: {e}",
                details={"originalError": e.__class__.__name__},
                cause=e
            )

        if not response.is_success:
            raise AuthError(
                f"OAuth token exchange failed: {response.status_code} {response.text}",
                status=response.status_code,
                details={"errorText": response.text}
            )

        data = self._parse_json(response, "OAuth token exchange failed")
        if data.get("error"):
            raise AuthError(
                f"OAuth error: {data.get('error_description') or data['error']}",
                details={"error": data["error"], "errorDescription": data.get("error_description")}
            )

        logger.info(f"Successfully exchanged OAuth code (token type: {data.get('token_type')}, scope: {data.get('scope')})")
        return data

    async def get_user_info(self, token: str) -> Dict[str, Any]:
        """
        Fetch the profile of the user owning a bearer token.

        Raises:
            AuthError: AUTH_FAILED when the request fails or GitHub rejects it
        """
        logger.info("Fetching user info with OAuth token")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    GITHUB.USER_URL,
                    headers={
                        "Authorization": f"token {token}",
                        "Accept": "application/vnd.github.v3+json",
                    },
                )
        except httpx.HTTPError as e:
            raise AuthError(
                f"Failed to fetch user info: {e}",
                details={"originalError": e.__class__.__name__},
                cause=e
            )

        if not response.is_success:
            raise AuthError(
                f"Failed to fetch user info: {response.status_code} {response.text}",
                status=response.status_code,
                details={"errorText": response.text}
            )

        data = self._parse_json(response, "Failed to fetch user info")
        if data.get("error"):
            raise AuthError(
                f"Failed to fetch user info: {data.get('error_description') or data['error']}",
                details={"error": data["error"]}
            )

        logger.info(f"Successfully fetched user info for {data.get('login')}")
        return data

    async def validate_token(self, token: str) -> bool:
        """Check whether a token still resolves to a user."""
        try:
            await self.get_user_info(token)
            return True
        except AuthError as e:
            logger.warning(f"Token validation failed: {e.message}")
            return False

    def create_credential(self, token: str, expires_at: Optional[datetime] = None) -> Credential:
        """Wrap an exchanged access token in an OAuth credential."""
        if expires_at is None:
            # GitHub OAuth tokens do not expire; cap them at a year anyway
            expires_at = datetime.now(timezone.utc) + timedelta(days=GITHUB.OAUTH_TOKEN_LIFETIME_DAYS)
        return Credential.oauth_app(
            self.client_id,
            self.client_secret,
            token=token,
            scopes=frozenset(self.scopes),
            expires_at=expires_at
        )
