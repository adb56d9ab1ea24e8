"""
Input validation for tool arguments.

Repository names, issue numbers and timeouts are checked here before any
GitHub call is made, and secrets are redacted before anything is logged.
"""

import re
from typing import Any, Tuple

from .exceptions import ClassifiedError, ErrorKind


class InputValidator:
    """Centralized input validation."""

    # Patterns
    REPO_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+$')

    # Limits
    MAX_REPO_NAME_LENGTH = 200

    @staticmethod
    def validate_repo_name(repo_name: Any) -> Tuple[str, str]:
        """
        Validate GitHub repository name format.

        Args:
            repo_name: Repository name in format 'owner/repo'

        Returns:
            Tuple of (owner, repo)

        Raises:
            ClassifiedError: TASK_VALIDATION if the repository name is invalid
        """
        if not repo_name or not isinstance(repo_name, str):
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                'Invalid repository format. Expected "owner/repo"',
                details={"repository": repo_name}
            )

        if len(repo_name) > InputValidator.MAX_REPO_NAME_LENGTH:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                f"Repository name too long (max {InputValidator.MAX_REPO_NAME_LENGTH} chars)",
                details={"repository": repo_name[:50] + "..."}
            )

        if not InputValidator.REPO_NAME_PATTERN.match(repo_name) or '..' in repo_name:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                'Invalid repository format. Expected "owner/repo"',
                details={"repository": repo_name}
            )

        owner, name = repo_name.split('/')
        return owner, name

    @staticmethod
    def validate_issue_number(issue_number: Any) -> int:
        """Validate a GitHub issue number."""
        if isinstance(issue_number, bool) or not isinstance(issue_number, int) or issue_number <= 0:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                f"Issue number must be a positive integer, got {issue_number!r}",
                details={"issueId": issue_number}
            )
        return issue_number

    @staticmethod
    def validate_timeout(timeout_ms: Any) -> int:
        """Validate a per-call timeout in milliseconds."""
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                "Timeout must be a positive number of milliseconds",
                details={"timeout": timeout_ms}
            )
        return timeout_ms

    @staticmethod
    def sanitize_for_logging(data: Any) -> Any:
        """
        Sanitize data for logging to prevent leaking sensitive information.

        Args:
            data: Data to sanitize (can be dict, list, string, etc.)

        Returns:
            Sanitized data safe for logging
        """
        if isinstance(data, dict):
            sensitive_keys = {
                'token', 'password', 'secret', 'credential', 'private_key',
                'privatekey', 'authorization', 'code'
            }
            return {
                k: '***REDACTED***' if any(s in str(k).lower() for s in sensitive_keys)
                else InputValidator.sanitize_for_logging(v)
                for k, v in data.items()
            }
        elif isinstance(data, (list, tuple)):
            return [InputValidator.sanitize_for_logging(item) for item in data]
        elif isinstance(data, str):
            # GitHub token prefixes
            if data.startswith(('ghp_', 'gho_', 'ghu_', 'ghs_', 'github_pat_')):
                return '***REDACTED***'
            return data
        else:
            return data


# Convenience functions
def validate_repo_name(repo_name: Any) -> Tuple[str, str]:
    """Validate repository name."""
    return InputValidator.validate_repo_name(repo_name)


def sanitize_for_logging(data: Any) -> Any:
    """Sanitize data for logging."""
    return InputValidator.sanitize_for_logging(data)
