"""
Issue converter for the Speckit GitHub MCP Server.

Maps speckit tasks to GitHub issue title, body and labels, creates or
updates issues, and recovers the originating task ID from issue bodies.
"""

import json
import re
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..constants import ISSUE
from ..exceptions import classify_exception
from ..models import BatchResult, ConversionAction, ConversionOutcome, Issue, Task
from ..validation import InputValidator, validate_repo_name
from .github_client import GitHubClient

_TASK_ID_RE = re.compile(ISSUE.TASK_ID_PATTERN)


def build_issue_title(task: Task) -> str:
    return f"{task.title} ({task.id})"


def build_issue_body(task: Task) -> str:
    """Render the fixed issue body template for a task."""
    dependencies = ""
    if task.dependencies:
        dependency_list = "\n".join(f"- {dep}" for dep in task.dependencies)
        dependencies = f"\n## Dependencies\n\n{dependency_list}\n"

    return f"""## Speckit Task

**Task ID**: {task.id}
**Title**: {task.title}
**Priority**: {task.priority.value}
**User Story**: {task.story}
**Status**: {task.status.value}

## Description

{task.description}

{dependencies}

## Metadata

```json
{json.dumps(task.metadata, indent=2, default=str)}
```

---
{ISSUE.GENERATED_TRAILER}"""


def build_labels(task: Task, extra_labels: Optional[Sequence[str]] = None) -> List[str]:
    """Speckit tag, priority, story and extra labels with empty entries dropped."""
    candidates = [ISSUE.SPECKIT_LABEL, task.priority.value, task.story, *(extra_labels or [])]
    labels = []
    for label in candidates:
        if label and label not in labels:
            labels.append(label)
    return labels


def extract_task_id(body: str) -> str:
    """
    Recover the task ID from an issue body.

    Returns:
        First token after the "**Task ID**:" marker, or "" if absent
    """
    match = _TASK_ID_RE.search(body or "")
    return match.group(1) if match else ""


class IssueConverter:
    """Converts speckit tasks into GitHub issues."""

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    async def convert_task_to_issue(
        self,
        task: Task,
        repository: str,
        labels: Optional[Sequence[str]] = None,
        assignees: Optional[Sequence[str]] = None
    ) -> Issue:
        """
        Create a GitHub issue for a task.

        Args:
            task: Task to mirror
            repository: Repository in 'owner/repo' format
            labels: Additional labels
            assignees: Users to assign

        Returns:
            The created issue

        Raises:
            ClassifiedError: TASK_VALIDATION for a malformed repository (before
                any network call) or the classified GitHub failure
        """
        logger.info(f"Converting speckit task {task.id} to GitHub issue in {repository}")
        validate_repo_name(repository)

        try:
            gh_issue = await self.github_client.create_issue(
                repository,
                title=build_issue_title(task),
                body=build_issue_body(task),
                labels=build_labels(task, labels),
                assignees=list(assignees or []),
            )
        except Exception as e:
            raise classify_exception(e, {"operation": "convertTaskToIssue", "taskId": task.id, "repository": repository})

        issue = Issue.from_github(gh_issue, task_id=task.id)
        logger.info(f"Created issue #{issue.number} for task {task.id}")
        return issue

    async def update_issue_from_task(
        self,
        issue_number: int,
        task: Task,
        repository: str,
        labels: Optional[Sequence[str]] = None,
        assignees: Optional[Sequence[str]] = None
    ) -> Issue:
        """
        Refresh an existing issue from an updated task.

        The returned task ID is parsed from the response body rather than
        assumed to match the input task.
        """
        logger.info(f"Updating GitHub issue #{issue_number} from speckit task {task.id}")
        validate_repo_name(repository)
        InputValidator.validate_issue_number(issue_number)

        try:
            gh_issue = await self.github_client.update_issue(
                repository,
                issue_number,
                title=build_issue_title(task),
                body=build_issue_body(task),
                labels=build_labels(task, labels),
                assignees=list(assignees or []),
            )
        except Exception as e:
            raise classify_exception(e, {
                "operation": "updateIssueFromTask",
                "taskId": task.id,
                "issueId": issue_number,
                "repository": repository,
            })

        return Issue.from_github(gh_issue, task_id=extract_task_id(gh_issue.body))

    async def get_issue(self, repository: str, issue_number: int) -> Issue:
        """Get an issue and recover its task ID."""
        logger.debug(f"Getting GitHub issue #{issue_number} from {repository}")
        validate_repo_name(repository)
        InputValidator.validate_issue_number(issue_number)

        try:
            gh_issue = await self.github_client.get_issue(repository, issue_number)
        except Exception as e:
            raise classify_exception(e, {"operation": "getIssue", "issueId": issue_number, "repository": repository})

        return Issue.from_github(gh_issue, task_id=extract_task_id(gh_issue.body))

    async def convert_multiple_tasks(
        self,
        tasks: Sequence[Task],
        repository: str,
        labels: Optional[Sequence[str]] = None,
        assignees: Optional[Sequence[str]] = None,
        create_missing: bool = True,
        update_existing: bool = False,
        issue_map: Optional[Dict[str, int]] = None
    ) -> BatchResult:
        """
        Convert tasks one at a time, in order, without aborting early.

        Args:
            tasks: Tasks to convert
            repository: Repository in 'owner/repo' format
            labels: Additional labels for every issue
            assignees: Users to assign to every issue
            create_missing: Create issues for tasks with no mapped issue
            update_existing: Update issues already mapped to a task
            issue_map: Caller-tracked mapping of task ID to issue number

        Returns:
            One outcome per task, in input order
        """
        logger.info(f"Converting {len(tasks)} tasks to GitHub issues in {repository}")
        issue_map = issue_map or {}
        result = BatchResult()

        for task in tasks:
            existing = issue_map.get(task.id)
            try:
                if existing is not None:
                    if not update_existing:
                        result.outcomes.append(ConversionOutcome(task, ConversionAction.SKIPPED))
                        continue
                    issue = await self.update_issue_from_task(existing, task, repository, labels, assignees)
                    result.outcomes.append(ConversionOutcome(task, ConversionAction.UPDATED, issue=issue))
                elif create_missing:
                    issue = await self.convert_task_to_issue(task, repository, labels, assignees)
                    result.outcomes.append(ConversionOutcome(task, ConversionAction.CREATED, issue=issue))
                else:
                    result.outcomes.append(ConversionOutcome(task, ConversionAction.SKIPPED))
            except Exception as e:
                error = classify_exception(e, {"operation": "convertMultipleTasks", "taskId": task.id})
                logger.error(f"Failed to convert task {task.id} to issue: {error.message}")
                result.outcomes.append(ConversionOutcome(task, ConversionAction.ERROR, error=error.message))

        summary = result.summary
        logger.info(
            f"Task conversion completed: {summary['total']} total, {summary['created']} created, "
            f"{summary['updated']} updated, {summary['errors']} errors"
        )
        return result
