"""
Pull request publishing REST API endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException

from pr_publisher.config import settings
from pr_publisher.models.pull_request import PublishPullRequestInput, PublishPullRequestOutput
from pr_publisher.services.errors import (
    CommitPushFailed,
    InvalidRepositoryUrl,
    InvalidSourceDirectory,
    MalformedResponse,
    MissingAuthorization,
    MissingIntegrationConfig,
    RemoteCallFailed,
    TargetBranchNotFound,
)
from pr_publisher.services.git_publisher import resolve_workspace_dir
from pr_publisher.services.http_transport import HttpxTransport
from pr_publisher.services.pr_workflow import get_pull_request_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pull-requests", tags=["pull-requests"])


@router.post("", response_model=PublishPullRequestOutput)
async def publish_pull_request(request: PublishPullRequestInput) -> PublishPullRequestOutput:
    """
    Publish local changes as a Bitbucket Server pull request.

    This endpoint:
    1. Resolves the repository and credentials from ``repo_url``
    2. Confines ``source_dir`` to the configured workspace root
    3. Creates the source branch from the target tip if it does not exist
    4. Commits and pushes ``source_dir`` onto the source branch
    5. Opens the pull request

    Args:
        request: Publish request

    Returns:
        The created pull request URL

    Raises:
        HTTPException: 400 for bad input or configuration, 404 when the
            target branch is missing, 502 when Bitbucket or git fails
    """
    try:
        logger.info(
            f"Publishing pull request from {request.source_branch} for {request.repo_url}"
        )
        source_dir = resolve_workspace_dir(request.source_dir, settings.workspace_root)

        async with HttpxTransport(timeout=settings.http_timeout_seconds) as transport:
            workflow = get_pull_request_workflow(transport)
            result = await workflow.run(
                repo_url=request.repo_url,
                title=request.title,
                source_branch=request.source_branch,
                source_dir=source_dir,
                description=request.description,
                target_branch=request.target_branch,
                token=request.token,
            )

        logger.info(f"Pull request published: {result.url}")
        return PublishPullRequestOutput(pull_request_url=result.url)

    except (
        InvalidRepositoryUrl,
        InvalidSourceDirectory,
        MissingIntegrationConfig,
        MissingAuthorization,
    ) as e:
        logger.warning(f"Publish request rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except TargetBranchNotFound as e:
        logger.warning(f"Target branch missing: {e}")
        raise HTTPException(status_code=404, detail=str(e))
    except (RemoteCallFailed, MalformedResponse, CommitPushFailed) as e:
        logger.error(f"Upstream failure while publishing pull request: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error publishing pull request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
