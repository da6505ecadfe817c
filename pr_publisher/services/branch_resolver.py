"""
Source branch resolution.

Guarantees the source branch of a pull request exists, creating it from the
target branch's latest commit when it is missing. An existing source branch
is returned as is; its tip is left to the later push.
"""

from pr_publisher.models.access import AccessContext
from pr_publisher.models.branch import BranchPair
from pr_publisher.services.bitbucket_client import BitbucketServerClient
from pr_publisher.services.errors import RemoteCallFailed, TargetBranchNotFound
from pr_publisher.utils.logging import get_logger


logger = get_logger(__name__)

# Status Bitbucket Server answers with when the branch name is taken
BRANCH_CONFLICT_STATUS = 409


class BranchResolver:
    """Resolves the target and source refs of a pull request."""

    def __init__(self, client: BitbucketServerClient):
        self._client = client

    async def ensure_source_branch(
        self,
        project: str,
        repo: str,
        target_branch: str,
        source_branch: str,
        access: AccessContext,
    ) -> BranchPair:
        """
        Look up both branches, creating the source branch when absent.

        A create call answered with a conflict means another run created the
        branch after our lookup; the branch is then looked up once more and
        used if present.

        Args:
            project: Project key
            repo: Repository slug
            target_branch: Branch the pull request merges into
            source_branch: Branch holding the changes
            access: Resolved access context

        Returns:
            BranchPair with ``to_ref``, ``from_ref`` and whether the source
            branch was created by this call

        Raises:
            TargetBranchNotFound: If the target branch does not exist
            RemoteCallFailed: If any REST call fails
        """
        logger.info(
            f"Attempting to find branches targetBranch: {target_branch}, "
            f"sourceBranch: {source_branch}",
            extra={"project": project, "repo": repo}
        )

        to_ref = await self._client.find_branch(project, repo, target_branch, access)
        if to_ref is None:
            raise TargetBranchNotFound(target_branch, project, repo)

        from_ref = await self._client.find_branch(project, repo, source_branch, access)
        if from_ref is not None:
            return BranchPair(to_ref=to_ref, from_ref=from_ref)

        logger.info(
            f"Source branch not found, creating branch named: {source_branch} "
            f"at latest commit: {to_ref.latest_commit}",
            extra={"project": project, "repo": repo}
        )

        try:
            from_ref = await self._client.create_branch(
                project, repo, source_branch, to_ref.latest_commit, access
            )
        except RemoteCallFailed as e:
            if e.status_code != BRANCH_CONFLICT_STATUS:
                raise
            logger.warning(
                f"Branch {source_branch} was created concurrently, looking it up again",
                extra={"project": project, "repo": repo}
            )
            from_ref = await self._client.find_branch(project, repo, source_branch, access)
            if from_ref is None:
                raise
            return BranchPair(to_ref=to_ref, from_ref=from_ref)

        return BranchPair(to_ref=to_ref, from_ref=from_ref, source_created=True)
