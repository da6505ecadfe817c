"""
Exceptions raised by the pull request workflow.

None of these are retried by the workflow itself; every one aborts the run
at the step that raised it.
"""

from typing import Optional


class PullRequestWorkflowError(Exception):
    """Base exception for pull request workflow errors."""
    pass


class InvalidRepositoryUrl(PullRequestWorkflowError):
    """Repository URL does not resolve to a host, project and repo."""
    pass


class MissingIntegrationConfig(PullRequestWorkflowError):
    """No Bitbucket Server integration is configured for the host."""
    pass


class MissingAuthorization(PullRequestWorkflowError):
    """No token or username/password could be resolved."""
    pass


class InvalidSourceDirectory(PullRequestWorkflowError):
    """Source directory is not a workspace under the configured root."""
    pass


class TargetBranchNotFound(PullRequestWorkflowError):
    """The branch the pull request merges into does not exist."""

    def __init__(self, branch_name: str, project: str, repo: str):
        self.branch_name = branch_name
        self.project = project
        self.repo = repo
        super().__init__(
            f"Target branch '{branch_name}' not found in {project}/{repo}"
        )


class RemoteCallFailed(PullRequestWorkflowError):
    """
    A REST call returned an unexpected status or never completed.

    ``status_code`` and ``status_text`` are None for transport failures; the
    transport exception is then chained as ``__cause__``.
    """

    def __init__(
        self,
        operation: str,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        body: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        if status_code is None:
            message = f"Unable to {operation}, {reason}"
        else:
            message = f"Unable to {operation}, {status_code} {status_text}, {body or ''}"
        super().__init__(message)


class MalformedResponse(PullRequestWorkflowError):
    """A successful response did not have the expected shape."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        super().__init__(f"Unexpected response to {operation}: {detail}")


class CommitPushFailed(PullRequestWorkflowError):
    """A git command failed while committing or pushing local changes."""

    def __init__(self, message: str, command: Optional[str] = None, stderr: Optional[str] = None):
        self.command = command
        self.stderr = stderr
        super().__init__(message)
