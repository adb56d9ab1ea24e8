"""
Tests for converting speckit tasks into GitHub issues.
"""

import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from speckit_github.exceptions import ClassifiedError, ErrorKind
from speckit_github.models import ConversionAction, Priority, Task
from speckit_github.services.issue_converter import (
    IssueConverter,
    build_issue_body,
    build_issue_title,
    build_labels,
    extract_task_id,
)


def make_task(task_id="T1", **kwargs):
    defaults = dict(
        id=task_id,
        title="Add login",
        description="Users can sign in with email.",
        priority=Priority.HIGH,
        story="US1",
    )
    defaults.update(kwargs)
    return Task(**defaults)


def gh_issue(number, task=None, body=None, labels=()):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return SimpleNamespace(
        number=number,
        html_url=f"https://github.com/acme/widgets/issues/{number}",
        title=build_issue_title(task) if task else "Issue",
        body=body if body is not None else (build_issue_body(task) if task else ""),
        state="open",
        created_at=created,
        updated_at=created,
        labels=[SimpleNamespace(name=name) for name in labels],
        assignees=[],
    )


class TestFormatting(unittest.TestCase):

    def test_title(self):
        self.assertEqual(build_issue_title(make_task()), "Add login (T1)")

    def test_body_round_trip(self):
        for task_id in ("T1", "T042", "setup-db"):
            with self.subTest(task_id=task_id):
                self.assertEqual(extract_task_id(build_issue_body(make_task(task_id))), task_id)

    def test_body_template(self):
        body = build_issue_body(make_task(metadata={"estimate": 3}))
        self.assertTrue(body.startswith("## Speckit Task\n\n**Task ID**: T1\n"))
        self.assertIn("**Priority**: high", body)
        self.assertIn("**User Story**: US1", body)
        self.assertIn("**Status**: pending", body)
        self.assertIn('```json\n{\n  "estimate": 3\n}\n```', body)
        self.assertTrue(body.endswith("*This issue was created automatically from a speckit task.*"))

    def test_dependencies_omitted_when_empty(self):
        self.assertNotIn("## Dependencies", build_issue_body(make_task()))

    def test_dependencies_listed(self):
        body = build_issue_body(make_task(dependencies=("T0", "T00")))
        self.assertIn("## Dependencies\n\n- T0\n- T00\n", body)

    def test_extract_task_id_absent(self):
        self.assertEqual(extract_task_id("just an issue"), "")
        self.assertEqual(extract_task_id(None), "")

    def test_labels(self):
        self.assertEqual(build_labels(make_task()), ["speckit", "high", "US1"])
        self.assertEqual(build_labels(make_task(story=""), ["bug", "high", ""]), ["speckit", "high", "bug"])


class TestIssueConverter(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.create_issue = AsyncMock()
        self.client.update_issue = AsyncMock()
        self.client.get_issue = AsyncMock()
        self.converter = IssueConverter(self.client)

    async def test_convert_task_to_issue(self):
        task = make_task()
        self.client.create_issue.return_value = gh_issue(42, task, labels=("speckit", "high", "US1"))

        issue = await self.converter.convert_task_to_issue(task, "acme/widgets")

        self.client.create_issue.assert_awaited_once_with(
            "acme/widgets",
            title="Add login (T1)",
            body=build_issue_body(task),
            labels=["speckit", "high", "US1"],
            assignees=[],
        )
        self.assertEqual(issue.id, "42")
        self.assertEqual(issue.number, 42)
        self.assertEqual(issue.task_id, "T1")
        self.assertEqual(issue.labels, ["speckit", "high", "US1"])
        self.assertEqual(issue.to_dict()["taskId"], "T1")

    async def test_invalid_repository_makes_no_calls(self):
        with self.assertRaises(ClassifiedError) as ctx:
            await self.converter.convert_task_to_issue(make_task(), "not-a-repo")
        self.assertEqual(ctx.exception.kind, ErrorKind.TASK_VALIDATION)
        self.client.create_issue.assert_not_awaited()

    async def test_update_with_invalid_repository_makes_no_calls(self):
        with self.assertRaises(ClassifiedError) as ctx:
            await self.converter.update_issue_from_task(1, make_task(), "bad")
        self.assertEqual(ctx.exception.kind, ErrorKind.TASK_VALIDATION)
        self.client.update_issue.assert_not_awaited()

    async def test_get_with_invalid_repository_makes_no_calls(self):
        for repository in ("a/b/c", "", "owner/"):
            with self.subTest(repository=repository):
                with self.assertRaises(ClassifiedError) as ctx:
                    await self.converter.get_issue(repository, 1)
                self.assertEqual(ctx.exception.kind, ErrorKind.TASK_VALIDATION)
        self.client.get_issue.assert_not_awaited()

    async def test_invalid_issue_number_makes_no_calls(self):
        with self.assertRaises(ClassifiedError) as ctx:
            await self.converter.get_issue("acme/widgets", 0)
        self.assertEqual(ctx.exception.kind, ErrorKind.TASK_VALIDATION)
        self.client.get_issue.assert_not_awaited()

    async def test_update_recovers_task_id_from_response(self):
        task = make_task("T9")
        self.client.update_issue.return_value = gh_issue(7, task)

        issue = await self.converter.update_issue_from_task(7, task, "acme/widgets")

        self.assertEqual(issue.task_id, "T9")
        self.assertEqual(self.client.update_issue.await_args.args, ("acme/widgets", 7))

    async def test_get_issue_parses_body(self):
        self.client.get_issue.return_value = gh_issue(3, body="**Task ID**: T3\nrest")
        issue = await self.converter.get_issue("acme/widgets", 3)
        self.assertEqual(issue.task_id, "T3")

    async def test_get_issue_without_marker(self):
        self.client.get_issue.return_value = gh_issue(4, body="hand written issue")
        issue = await self.converter.get_issue("acme/widgets", 4)
        self.assertEqual(issue.task_id, "")

    async def test_batch_does_not_abort_early(self):
        tasks = [make_task(f"T{i}") for i in range(1, 6)]
        self.client.create_issue.side_effect = [
            gh_issue(1, tasks[0]),
            ClassifiedError(ErrorKind.GITHUB_VALIDATION, "GitHub API validation failed"),
            gh_issue(3, tasks[2]),
            gh_issue(4, tasks[3]),
            gh_issue(5, tasks[4]),
        ]

        result = await self.converter.convert_multiple_tasks(tasks, "acme/widgets")

        self.assertEqual(self.client.create_issue.await_count, 5)
        self.assertEqual([o.task.id for o in result.outcomes], ["T1", "T2", "T3", "T4", "T5"])
        self.assertEqual(result.outcomes[1].action, ConversionAction.ERROR)
        self.assertEqual(result.outcomes[1].error, "GitHub API validation failed")
        self.assertEqual(result.summary, {"total": 5, "created": 4, "updated": 0, "skipped": 0, "errors": 1})
        self.assertFalse(result.success)

    async def test_batch_unexpected_error_is_classified(self):
        self.client.create_issue.side_effect = RuntimeError("socket closed")
        result = await self.converter.convert_multiple_tasks([make_task()], "acme/widgets")
        self.assertEqual(result.outcomes[0].action, ConversionAction.ERROR)
        self.assertEqual(result.outcomes[0].error, "socket closed")

    async def test_idempotent_update_path(self):
        tasks = [make_task(f"T{i}") for i in range(1, 4)]
        issue_map = {"T1": 11, "T2": 12, "T3": 13}
        self.client.update_issue.side_effect = [gh_issue(n, t) for n, t in zip((11, 12, 13), tasks)]

        result = await self.converter.convert_multiple_tasks(
            tasks,
            "acme/widgets",
            create_missing=False,
            update_existing=True,
            issue_map=issue_map,
        )

        self.client.create_issue.assert_not_awaited()
        self.assertEqual(self.client.update_issue.await_count, 3)
        self.assertEqual(result.summary["updated"], 3)
        self.assertEqual([o.issue.number for o in result.outcomes], [11, 12, 13])

    async def test_mapped_tasks_skipped_without_update(self):
        tasks = [make_task("T1"), make_task("T2")]
        self.client.create_issue.return_value = gh_issue(20, tasks[1])

        result = await self.converter.convert_multiple_tasks(tasks, "acme/widgets", issue_map={"T1": 10})

        self.assertEqual(result.outcomes[0].action, ConversionAction.SKIPPED)
        self.assertEqual(result.outcomes[1].action, ConversionAction.CREATED)
        self.client.update_issue.assert_not_awaited()

    async def test_unmapped_tasks_skipped_without_create(self):
        result = await self.converter.convert_multiple_tasks([make_task()], "acme/widgets", create_missing=False)
        self.assertEqual(result.summary["skipped"], 1)
        self.assertTrue(result.success)
        self.client.create_issue.assert_not_awaited()

    async def test_batch_to_dict(self):
        task = make_task()
        self.client.create_issue.return_value = gh_issue(42, task)
        result = await self.converter.convert_multiple_tasks([task], "acme/widgets")
        data = result.to_dict()
        self.assertTrue(data["success"])
        self.assertEqual(data["results"][0]["result"], "created")
        self.assertEqual(data["results"][0]["issueId"], "42")
        self.assertEqual(data["results"][0]["issueUrl"], "https://github.com/acme/widgets/issues/42")


if __name__ == "__main__":
    unittest.main()
