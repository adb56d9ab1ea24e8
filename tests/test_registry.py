"""
Tests for the tool registry.
"""

import unittest
from unittest.mock import AsyncMock

from pydantic import BaseModel

from speckit_github.exceptions import ClassifiedError, ErrorKind
from speckit_github.tools.registry import ToolDefinition, ToolRegistry
from speckit_github.tools.schemas import IssueGetInput, RepositoryListInput


class EchoInput(BaseModel):
    message: str


class TestRegistration(unittest.TestCase):

    def setUp(self):
        self.registry = ToolRegistry()

    def test_last_registration_wins(self):
        first = ToolDefinition("echo", "first", EchoInput, AsyncMock())
        second = ToolDefinition("echo", "second", EchoInput, AsyncMock())
        self.registry.register(first)
        self.registry.register(second)

        self.assertIs(self.registry.get("echo"), second)
        self.assertEqual(self.registry.list_tools(), ["echo"])

    def test_get_unknown_returns_none(self):
        self.assertIsNone(self.registry.get("missing"))

    def test_unregister(self):
        self.registry.register(ToolDefinition("echo", "echo", EchoInput, AsyncMock()))
        self.assertTrue(self.registry.unregister("echo"))
        self.assertFalse(self.registry.unregister("echo"))
        self.assertEqual(self.registry.list_tools(), [])


class TestInvoke(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.registry = ToolRegistry()
        self.handler = AsyncMock(return_value={"echo": "hi"})
        self.registry.register(ToolDefinition("echo", "Echo a message", EchoInput, self.handler))

    async def test_unknown_tool(self):
        result = await self.registry.invoke("nope", {})
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "Tool 'nope' not found")

    async def test_payload_gets_timestamp(self):
        result = await self.registry.invoke("echo", {"message": "hi"})
        self.assertEqual(result["echo"], "hi")
        self.assertIn("timestamp", result)
        validated = self.handler.await_args.args[0]
        self.assertEqual(validated.message, "hi")

    async def test_validation_failure_touches_nothing(self):
        with self.assertRaises(ClassifiedError) as ctx:
            await self.registry.invoke("echo", {"message": 42, "extra": True})
        self.assertEqual(ctx.exception.kind, ErrorKind.TASK_VALIDATION)
        self.assertEqual(ctx.exception.details["tool"], "echo")
        self.assertTrue(ctx.exception.details["errors"])
        self.handler.assert_not_awaited()

    async def test_unclassified_handler_errors_are_classified(self):
        self.handler.side_effect = KeyError("issue")
        with self.assertRaises(ClassifiedError) as ctx:
            await self.registry.invoke("echo", {"message": "hi"})
        self.assertEqual(ctx.exception.kind, ErrorKind.UNKNOWN_ERROR)
        self.assertEqual(ctx.exception.details["tool"], "echo")

    async def test_classified_errors_pass_through(self):
        original = ClassifiedError(ErrorKind.GITHUB_NOT_FOUND, "GitHub resource not found")
        self.handler.side_effect = original
        with self.assertRaises(ClassifiedError) as ctx:
            await self.registry.invoke("echo", {"message": "hi"})
        self.assertIs(ctx.exception, original)


class TestSchemas(unittest.TestCase):

    def test_repository_list_defaults(self):
        params = RepositoryListInput.model_validate({})
        self.assertEqual((params.type, params.sort, params.direction), ("all", "updated", "desc"))

    def test_camel_case_aliases(self):
        self.assertEqual(IssueGetInput.model_validate({"repository": "acme/widgets", "issueId": 5}).issue_id, 5)
        self.assertEqual(IssueGetInput.model_validate({"repository": "acme/widgets", "issue_id": 5}).issue_id, 5)


if __name__ == "__main__":
    unittest.main()
