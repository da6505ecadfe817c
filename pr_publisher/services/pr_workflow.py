"""
Pull request workflow.

Publishes a directory of local changes as a Bitbucket Server pull request:

1. Resolve the repository endpoint and credentials
2. Ensure the source branch exists (created from the target tip if missing)
3. Commit and push the local changes onto the source branch
4. Open the pull request

Steps run strictly in order and any failure aborts the rest. Nothing is
rolled back: a failure after step 3 leaves the pushed branch in place.
"""

import uuid
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from pr_publisher.models.access import AuthorInfo
from pr_publisher.models.pull_request import PullRequestResult
from pr_publisher.services.access_resolver import AccessResolver
from pr_publisher.services.bitbucket_client import BitbucketServerClient
from pr_publisher.services.branch_resolver import BranchResolver
from pr_publisher.services.git_publisher import ChangePublisher, GitPublisher
from pr_publisher.services.http_transport import HttpTransport
from pr_publisher.utils.logging import get_logger, log_error_with_context, log_workflow_step
from pr_publisher.utils.metrics import MetricsCollector


logger = get_logger(__name__)


class WorkflowDefaults(BaseModel):
    """Fallback values used when a caller omits them."""

    default_author_name: str = "Pull Request Publisher"
    default_author_email: str = "pr-publisher@noreply.local"
    default_commit_message: Optional[str] = None
    default_target_branch: str = "master"

    @classmethod
    def from_settings(cls, settings) -> "WorkflowDefaults":
        return cls(
            default_author_name=settings.default_author_name,
            default_author_email=settings.default_author_email,
            default_commit_message=settings.default_commit_message,
            default_target_branch=settings.default_target_branch,
        )


class PullRequestWorkflow:
    """Runs the resolve, ensure-branch, push and open-PR sequence."""

    def __init__(
        self,
        access_resolver: AccessResolver,
        transport: HttpTransport,
        publisher: ChangePublisher,
        defaults: Optional[WorkflowDefaults] = None,
    ):
        """
        Initialize the workflow.

        Args:
            access_resolver: Maps repository locations to endpoint and credentials
            transport: HTTP transport for the Bitbucket Server REST API
            publisher: Commit-and-push implementation
            defaults: Fallback author, commit message and target branch
        """
        self.access_resolver = access_resolver
        self.transport = transport
        self.publisher = publisher
        self.defaults = defaults or WorkflowDefaults()

    def _commit_message(self, commit_message: Optional[str], description: Optional[str]) -> str:
        if commit_message is not None:
            return commit_message
        if description is not None:
            return description
        return self.defaults.default_commit_message or ""

    def _author(self, author: Optional[AuthorInfo]) -> AuthorInfo:
        author = author or AuthorInfo()
        return AuthorInfo(
            name=author.name or self.defaults.default_author_name,
            email=author.email or self.defaults.default_author_email,
        )

    async def run(
        self,
        repo_url: str,
        title: str,
        source_branch: str,
        source_dir: Union[str, Path],
        description: Optional[str] = None,
        target_branch: Optional[str] = None,
        commit_message: Optional[str] = None,
        author: Optional[AuthorInfo] = None,
        token: Optional[str] = None,
    ) -> PullRequestResult:
        """
        Publish local changes as a pull request.

        Args:
            repo_url: Repository location (``host?project=KEY&repo=slug``)
            title: Pull request title
            source_branch: Branch holding the changes, created if missing
            source_dir: Directory whose contents are committed
            description: Pull request description, also the default commit message
            target_branch: Branch to merge into (defaults to the configured one)
            commit_message: Explicit commit message
            author: Commit identity; missing parts use the configured defaults
            token: Token overriding configured credentials for this run

        Returns:
            PullRequestResult with the pull request URL

        Raises:
            PullRequestWorkflowError: Any failure, from the step that failed
        """
        run_id = uuid.uuid4().hex[:12]
        target_branch = target_branch or self.defaults.default_target_branch
        metrics = MetricsCollector(run_id)
        run_logger = logger.with_context(run_id=run_id)
        metrics.start()

        step = "resolve_access"
        try:
            log_workflow_step(run_logger, step, "started")
            access = self.access_resolver.resolve(repo_url, token=token)
            metrics.project, metrics.repo = access.project, access.repo
            run_logger = run_logger.with_context(project=access.project, repo=access.repo)
            log_workflow_step(run_logger, step, "completed")

            client = BitbucketServerClient(self.transport, metrics=metrics)

            step = "ensure_source_branch"
            log_workflow_step(
                run_logger, step, "started",
                target_branch=target_branch, source_branch=source_branch
            )
            refs = await BranchResolver(client).ensure_source_branch(
                access.project, access.repo, target_branch, source_branch, access
            )
            metrics.record_branch_created(refs.source_created)
            log_workflow_step(
                run_logger, step, "completed",
                from_ref=refs.from_ref.id, source_created=refs.source_created
            )

            step = "commit_and_push"
            log_workflow_step(run_logger, step, "started", remote_url=access.remote_url)
            await self.publisher.commit_and_push(
                Path(source_dir),
                access.remote_url,
                source_branch,
                access.credentials,
                self._commit_message(commit_message, description),
                self._author(author),
            )
            log_workflow_step(run_logger, step, "completed")

            step = "create_pull_request"
            log_workflow_step(run_logger, step, "started")
            result = await client.create_pull_request(
                access.project,
                access.repo,
                title,
                description,
                refs.to_ref,
                refs.from_ref,
                access,
            )
            log_workflow_step(run_logger, step, "completed", pull_request_url=result.url)

        except Exception as e:
            log_error_with_context(
                run_logger, f"Pull request workflow failed at step {step}: {e}", e, step=step
            )
            metrics.complete(status="failed", error_message=str(e))
            raise

        metrics.record_pull_request(result.url)
        metrics.complete(status="completed")
        return result


def get_pull_request_workflow(transport: HttpTransport) -> PullRequestWorkflow:
    """
    Factory function to create PullRequestWorkflow with settings from config.

    Args:
        transport: HTTP transport to use; the caller owns it and closes it
            once the workflow has run

    Returns:
        PullRequestWorkflow using the git CLI publisher
    """
    from pr_publisher.config import settings

    return PullRequestWorkflow(
        access_resolver=AccessResolver(settings.bitbucket_server_integrations),
        transport=transport,
        publisher=GitPublisher(),
        defaults=WorkflowDefaults.from_settings(settings),
    )
