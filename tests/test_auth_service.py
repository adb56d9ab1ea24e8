"""
Tests for turning credentials into authenticated GitHub handles.
"""

import unittest
from unittest.mock import MagicMock, patch

from github import Auth, GithubException

from speckit_github.exceptions import AuthError, ErrorKind
from speckit_github.models import Credential
from speckit_github.services.auth_service import AuthStrategy


class TestBuildAuth(unittest.TestCase):

    def setUp(self):
        self.strategy = AuthStrategy(timeout_seconds=30.0)

    def test_pat_uses_token(self):
        auth = self.strategy.build_auth(Credential.personal_token("ghp_abc"))
        self.assertIsInstance(auth, Auth.Token)
        self.assertEqual(auth.token, "ghp_abc")

    def test_oauth_with_exchanged_token(self):
        auth = self.strategy.build_auth(Credential.oauth_app("id", "secret", token="gho_abc"))
        self.assertIsInstance(auth, Auth.Token)
        self.assertEqual(auth.token, "gho_abc")

    def test_oauth_app_credentials(self):
        auth = self.strategy.build_auth(Credential.oauth_app("id", "secret"))
        self.assertIsInstance(auth, Auth.Login)
        self.assertEqual(auth.login, "id")

    def test_app_mode_fails_fast(self):
        credential = Credential.installation_app("1", "-----BEGIN KEY-----", "99")
        with self.assertRaises(AuthError) as ctx:
            self.strategy.build_auth(credential)
        self.assertEqual(ctx.exception.kind, ErrorKind.AUTH_MISSING_CREDENTIALS)
        self.assertEqual(ctx.exception.message, "GitHub App authentication not yet supported")

    @patch("speckit_github.services.auth_service.Github")
    def test_build_handle_disables_library_retry(self, mock_github):
        self.strategy.build_handle(Credential.personal_token("ghp_abc"))
        _, kwargs = mock_github.call_args
        self.assertEqual(kwargs["timeout"], 30.0)
        self.assertIsNone(kwargs["retry"])
        self.assertIsInstance(kwargs["auth"], Auth.Token)


class TestVerifyIdentity(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.strategy = AuthStrategy(timeout_seconds=30.0)
        self.handle = MagicMock()

    async def test_returns_login(self):
        self.handle.get_user.return_value.login = "octocat"
        self.assertEqual(await self.strategy.verify_identity(self.handle), "octocat")

    async def test_invalid_token(self):
        self.handle.get_user.side_effect = GithubException(401, {"message": "Bad credentials"}, {})
        with self.assertRaises(AuthError) as ctx:
            await self.strategy.verify_identity(self.handle)
        self.assertEqual(ctx.exception.kind, ErrorKind.AUTH_INVALID_TOKEN)
        self.assertEqual(ctx.exception.details["status"], 401)

    async def test_server_error_is_not_retried(self):
        self.handle.get_user.side_effect = GithubException(503, {"message": "Unavailable"}, {})
        with self.assertRaises(AuthError) as ctx:
            await self.strategy.verify_identity(self.handle)
        self.assertEqual(ctx.exception.kind, ErrorKind.AUTH_FAILED)
        self.assertEqual(ctx.exception.details["status"], 503)
        self.assertEqual(self.handle.get_user.call_count, 1)

    @patch("speckit_github.services.auth_service.Github")
    async def test_create_handle(self, mock_github):
        mock_github.return_value.get_user.return_value.login = "octocat"
        handle, login = await self.strategy.create_handle(Credential.personal_token("ghp_abc"))
        self.assertIs(handle, mock_github.return_value)
        self.assertEqual(login, "octocat")


if __name__ == "__main__":
    unittest.main()
