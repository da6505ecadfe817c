"""
Access resolution for Bitbucket Server repositories.

Maps a repository location of the form ``host?project=KEY&repo=slug`` to the
REST endpoint and credentials of the matching integration.
"""

import base64
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from pr_publisher.config import BitbucketServerIntegration
from pr_publisher.models.access import (
    AccessContext,
    BasicCredentials,
    Credentials,
    TokenCredentials,
)
from pr_publisher.services.errors import (
    InvalidRepositoryUrl,
    MissingAuthorization,
    MissingIntegrationConfig,
)
from pr_publisher.utils.logging import get_logger


logger = get_logger(__name__)


def parse_repo_url(repo_url: str) -> Dict[str, str]:
    """
    Parse a repository location into host, project and repo.

    Accepts ``bitbucket.example.com?project=PROJ&repo=service`` with or
    without an ``https://`` prefix.

    Args:
        repo_url: Repository location

    Returns:
        Dictionary with keys: host, project, repo

    Raises:
        InvalidRepositoryUrl: If the host, project or repo is missing
    """
    candidate = repo_url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    try:
        parsed = urlparse(candidate)
        host = parsed.netloc
    except ValueError as e:
        raise InvalidRepositoryUrl(f"Invalid repo URL passed to publisher: {repo_url}") from e

    if not host:
        raise InvalidRepositoryUrl(f"Invalid repo URL passed to publisher: {repo_url}, missing host")

    query = parse_qs(parsed.query)
    project = (query.get("project") or [""])[0]
    repo = (query.get("repo") or [""])[0]

    if not project:
        raise InvalidRepositoryUrl(
            f"Invalid URL provider was included in the repo URL to create {repo_url}, missing project"
        )
    if not repo:
        raise InvalidRepositoryUrl(
            f"Invalid URL provider was included in the repo URL to create {repo_url}, missing repo"
        )

    return {"host": host, "project": project, "repo": repo}


def build_authorization_header(credentials: Credentials) -> str:
    """Authorization header value for the given credentials."""
    if isinstance(credentials, TokenCredentials):
        return f"Bearer {credentials.token}"
    raw = f"{credentials.username}:{credentials.password}".encode("utf-8")
    return f"Basic {base64.b64encode(raw).decode('ascii')}"


class AccessResolver:
    """
    Resolves repository locations against configured integrations.

    Credential precedence: per-call token, then the integration token, then
    the integration username and password.
    """

    def __init__(self, integrations: List[BitbucketServerIntegration]):
        self._integrations = {integration.host: integration for integration in integrations}

    def integration_for(self, host: str) -> BitbucketServerIntegration:
        """
        Find the integration configured for a host.

        Raises:
            MissingIntegrationConfig: If no integration matches
        """
        integration = self._integrations.get(host)
        if integration is None:
            raise MissingIntegrationConfig(
                f"No matching integration configuration for host {host}, "
                f"please check your integrations config"
            )
        return integration

    def resolve(self, repo_url: str, token: Optional[str] = None) -> AccessContext:
        """
        Resolve the access context for a repository.

        Args:
            repo_url: Repository location
            token: Optional token overriding configured credentials

        Returns:
            Immutable AccessContext

        Raises:
            InvalidRepositoryUrl: If the location cannot be parsed
            MissingIntegrationConfig: If the host is not configured
            MissingAuthorization: If no credential is available
        """
        parsed = parse_repo_url(repo_url)
        integration = self.integration_for(parsed["host"])

        credentials: Credentials
        effective_token = token or integration.token
        if effective_token:
            credentials = TokenCredentials(token=effective_token)
        elif integration.username and integration.password:
            credentials = BasicCredentials(
                username=integration.username, password=integration.password
            )
        else:
            raise MissingAuthorization(
                f"Authorization has not been provided for {integration.host}. "
                f"Please add either (a) a user login auth token, or (b) a token input "
                f"from the request or (c) username + password to the integration config."
            )

        logger.debug(
            f"Resolved access for {parsed['project']}/{parsed['repo']} on {parsed['host']} "
            f"using {type(credentials).__name__}"
        )

        return AccessContext(
            project=parsed["project"],
            repo=parsed["repo"],
            host=parsed["host"],
            api_base_url=integration.resolved_api_base_url,
            authorization_header=build_authorization_header(credentials),
            credentials=credentials,
        )
