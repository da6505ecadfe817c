"""Business logic services package."""

from pr_publisher.services.errors import (
    PullRequestWorkflowError,
    InvalidRepositoryUrl,
    MissingIntegrationConfig,
    MissingAuthorization,
    InvalidSourceDirectory,
    TargetBranchNotFound,
    RemoteCallFailed,
    MalformedResponse,
    CommitPushFailed,
)
from pr_publisher.services.access_resolver import AccessResolver, parse_repo_url
from pr_publisher.services.bitbucket_client import BitbucketServerClient
from pr_publisher.services.branch_resolver import BranchResolver
from pr_publisher.services.git_publisher import GitPublisher, resolve_workspace_dir
from pr_publisher.services.http_transport import HttpxTransport
from pr_publisher.services.pr_workflow import (
    PullRequestWorkflow,
    WorkflowDefaults,
    get_pull_request_workflow,
)

__all__ = [
    'PullRequestWorkflowError',
    'InvalidRepositoryUrl',
    'MissingIntegrationConfig',
    'MissingAuthorization',
    'InvalidSourceDirectory',
    'TargetBranchNotFound',
    'RemoteCallFailed',
    'MalformedResponse',
    'CommitPushFailed',
    'AccessResolver',
    'parse_repo_url',
    'BitbucketServerClient',
    'BranchResolver',
    'GitPublisher',
    'resolve_workspace_dir',
    'HttpxTransport',
    'PullRequestWorkflow',
    'WorkflowDefaults',
    'get_pull_request_workflow',
]
