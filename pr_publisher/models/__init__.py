"""Data models for the Bitbucket Server pull request publisher."""

from .access import (
    AccessContext,
    AuthorInfo,
    BasicCredentials,
    Credentials,
    TokenCredentials,
)
from .branch import BranchPair, BranchRef
from .pull_request import (
    PublishPullRequestInput,
    PublishPullRequestOutput,
    PullRequestRequest,
    PullRequestResult,
)

__all__ = [
    # Access models
    "AccessContext",
    "AuthorInfo",
    "BasicCredentials",
    "Credentials",
    "TokenCredentials",
    # Branch models
    "BranchPair",
    "BranchRef",
    # Pull request models
    "PullRequestRequest",
    "PullRequestResult",
    # API models
    "PublishPullRequestInput",
    "PublishPullRequestOutput",
]
