"""
Authentication strategy for the Speckit GitHub MCP Server.

Turns a Credential into an authenticated PyGithub handle and confirms the
identity behind it with a single read-only call.
"""

import asyncio
from typing import Optional, Tuple

from github import Auth, Github, GithubException
from loguru import logger

from ..exceptions import AuthError, ErrorKind, classify_exception
from ..models import AuthMode, Credential


class AuthStrategy:
    """Builds authenticated GitHub handles from credentials."""

    def __init__(self, timeout_seconds: float):
        """
        Initialize the strategy.

        Args:
            timeout_seconds: Per-request timeout applied to every API call
        """
        self.timeout_seconds = timeout_seconds

    def build_auth(self, credential: Credential) -> Auth.Auth:
        """
        Select the PyGithub auth object for a credential.

        Raises:
            AuthError: AUTH_MISSING_CREDENTIALS for incomplete or unsupported modes
        """
        mode = credential.mode
        if mode is AuthMode.PAT:
            if not credential.token:
                raise AuthError(
                    "PAT authentication requires a token",
                    kind=ErrorKind.AUTH_MISSING_CREDENTIALS
                )
            return Auth.Token(credential.token)

        elif mode is AuthMode.OAUTH:
            if not credential.client_id or not credential.client_secret:
                raise AuthError(
                    "OAuth authentication requires clientId and clientSecret",
                    kind=ErrorKind.AUTH_MISSING_CREDENTIALS
                )
            # An exchanged user token takes precedence over app credentials
            if credential.token:
                return Auth.Token(credential.token)
            return Auth.Login(credential.client_id, credential.client_secret)

        elif mode is AuthMode.APP:
            raise AuthError(
                "GitHub App authentication not yet supported",
                kind=ErrorKind.AUTH_MISSING_CREDENTIALS,
                details={"authType": mode.value}
            )

        raise AuthError(
            f"Unsupported authentication type: {mode}",
            kind=ErrorKind.AUTH_MISSING_CREDENTIALS
        )

    def build_handle(self, credential: Credential) -> Github:
        """Construct the PyGithub handle without touching the network."""
        auth = self.build_auth(credential)
        # Retries are owned by GitHubClient, so PyGithub's own retry is disabled
        return Github(auth=auth, timeout=self.timeout_seconds, retry=None)

    def _whoami_sync(self, handle: Github) -> str:
        """Synchronous identity check for thread pool execution."""
        return handle.get_user().login

    async def verify_identity(self, handle: Github) -> str:
        """
        Confirm the credential is live with one read-only call.

        Returns:
            Login of the authenticated identity

        Raises:
            AuthError: with the upstream status embedded; never retried
        """
        try:
            login = await asyncio.to_thread(self._whoami_sync, handle)
        except GithubException as e:
            kind = ErrorKind.AUTH_INVALID_TOKEN if e.status == 401 else ErrorKind.AUTH_FAILED
            raise AuthError(
                f"GitHub authentication check failed: HTTP {e.status}",
                kind=kind,
                status=e.status,
                details={"operation": "testAuthentication"},
                cause=e
            )
        except Exception as e:
            classified = classify_exception(e, {"operation": "testAuthentication"})
            raise AuthError(
                f"GitHub authentication check failed: {classified.message}",
                kind=ErrorKind.AUTH_FAILED,
                status=classified.details.get("status"),
                details={"operation": "testAuthentication"},
                cause=e
            )

        logger.info(f"GitHub authentication successful - authenticated as: {login}")
        return login

    async def create_handle(self, credential: Credential) -> Tuple[Github, Optional[str]]:
        """
        Produce an authenticated, verified handle.

        Args:
            credential: Credential resolved from configuration

        Returns:
            Tuple of (handle, login)
        """
        logger.info(f"Creating GitHub handle for {credential.mode.value} authentication")
        handle = self.build_handle(credential)
        login = await self.verify_identity(handle)
        return handle, login
