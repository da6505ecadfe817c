"""
Bitbucket Server REST client.

Implements the three REST operations the workflow needs: branch lookup,
branch creation and pull request creation. Each call is a single attempt;
unexpected statuses and transport failures surface as ``RemoteCallFailed``.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from pr_publisher.models.access import AccessContext
from pr_publisher.models.branch import BranchRef
from pr_publisher.models.pull_request import PullRequestRequest, PullRequestResult
from pr_publisher.services.errors import MalformedResponse, RemoteCallFailed
from pr_publisher.services.http_transport import HttpTransport, TransportResponse
from pr_publisher.utils.logging import get_logger
from pr_publisher.utils.metrics import MetricsCollector, track_api_call


logger = get_logger(__name__)


class BitbucketServerClient:
    """
    Client for the Bitbucket Server ``/projects/{project}/repos/{repo}`` API.

    Endpoint and authorization come from the ``AccessContext`` passed to
    every call, so one client instance can serve any number of repositories.
    """

    def __init__(
        self,
        transport: HttpTransport,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the client.

        Args:
            transport: HTTP transport used for every request
            metrics: Optional collector recording call counts and latency
        """
        self._transport = transport
        self._metrics = metrics

    def _repo_url(self, project: str, repo: str, access: AccessContext) -> str:
        return (
            f"{access.api_base_url}/projects/{quote(project, safe='')}"
            f"/repos/{quote(repo, safe='')}"
        )

    @staticmethod
    def _headers(access: AccessContext) -> Dict[str, str]:
        return {
            "Authorization": access.authorization_header,
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        operation: str,
        description: str,
        method: str,
        url: str,
        access: AccessContext,
        expected_status: int,
        body: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse:
        """
        Issue one request and check its status.

        Args:
            operation: Metric name of the call (e.g. 'find_branch')
            description: Human phrase used in error messages ('get branches')
            method: 'GET' or 'POST'
            url: Request URL
            access: Resolved access context
            expected_status: The only status treated as success
            body: JSON body for POST requests

        Returns:
            The transport response

        Raises:
            RemoteCallFailed: On transport errors or any other status
        """
        headers = self._headers(access)

        async with track_api_call(self._metrics, operation, method, url, logger) as call:
            try:
                if method == "GET":
                    response = await self._transport.get(url, headers)
                else:
                    response = await self._transport.post(url, headers, body or {})
            except (httpx.HTTPError, OSError) as e:
                raise RemoteCallFailed(description, reason=str(e)) from e

            call["status_code"] = response.status_code

            if response.status_code != expected_status:
                raise RemoteCallFailed(
                    description,
                    status_code=response.status_code,
                    status_text=response.reason_phrase,
                    body=response.text,
                )

        return response

    @staticmethod
    def _json(response: TransportResponse, description: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(description, f"body is not JSON ({e})") from e

    async def find_branch(
        self,
        project: str,
        repo: str,
        branch_name: str,
        access: AccessContext,
    ) -> Optional[BranchRef]:
        """
        Look up a branch by display name.

        The server filter is a boosted text match and may return near
        matches, so only an entry whose ``displayId`` equals ``branch_name``
        exactly counts.

        Args:
            project: Project key
            repo: Repository slug
            branch_name: Branch display name
            access: Resolved access context

        Returns:
            The matching BranchRef, or None when no entry matches exactly

        Raises:
            RemoteCallFailed: If the request fails or status is not 200
            MalformedResponse: If the body has no ``values`` list or the
                matching entry is not a branch
        """
        url = (
            f"{self._repo_url(project, repo, access)}/branches"
            f"?boostMatches=true&filterText={quote(branch_name, safe='')}"
        )
        response = await self._send(
            "find_branch", "get branches", "GET", url, access, expected_status=200
        )

        data = self._json(response, "get branches")
        values = data.get("values") if isinstance(data, dict) else None
        if not isinstance(values, list):
            raise MalformedResponse("get branches", "missing 'values' list")

        for entry in values:
            if isinstance(entry, dict) and entry.get("displayId") == branch_name:
                logger.debug(f"Branch {branch_name} found in {project}/{repo}")
                try:
                    return BranchRef.model_validate(entry)
                except ValueError as e:
                    raise MalformedResponse("get branches", str(e)) from e

        logger.debug(
            f"Branch {branch_name} not found in {project}/{repo} "
            f"({len(values)} candidates scanned)"
        )
        return None

    async def create_branch(
        self,
        project: str,
        repo: str,
        branch_name: str,
        start_point: str,
        access: AccessContext,
    ) -> BranchRef:
        """
        Create a branch at a given commit.

        Any status other than 200, including a conflict for an existing
        branch, is a failure here; callers decide whether to reconcile.

        Args:
            project: Project key
            repo: Repository slug
            branch_name: Name of the new branch
            start_point: Commit the branch starts at
            access: Resolved access context

        Returns:
            The created BranchRef as reported by the server

        Raises:
            RemoteCallFailed: If the request fails or status is not 200
            MalformedResponse: If the body is not a branch
        """
        url = f"{self._repo_url(project, repo, access)}/branches"
        response = await self._send(
            "create_branch",
            "create branch",
            "POST",
            url,
            access,
            expected_status=200,
            body={"name": branch_name, "startPoint": start_point},
        )

        data = self._json(response, "create branch")
        try:
            return BranchRef.model_validate(data)
        except ValueError as e:
            raise MalformedResponse("create branch", str(e)) from e

    async def create_pull_request(
        self,
        project: str,
        repo: str,
        title: str,
        description: Optional[str],
        to_ref: BranchRef,
        from_ref: BranchRef,
        access: AccessContext,
    ) -> PullRequestResult:
        """
        Open a pull request.

        Args:
            project: Project key
            repo: Repository slug
            title: Pull request title
            description: Pull request description, omitted when None
            to_ref: Ref the changes merge into
            from_ref: Ref holding the changes
            access: Resolved access context

        Returns:
            PullRequestResult with the first self link of the response

        Raises:
            RemoteCallFailed: If the request fails or status is not 201
            MalformedResponse: If the response carries no self link
        """
        request = PullRequestRequest(
            title=title, description=description, to_ref=to_ref, from_ref=from_ref
        )
        url = f"{self._repo_url(project, repo, access)}/pull-requests"
        response = await self._send(
            "create_pull_request",
            "create pull requests",
            "POST",
            url,
            access,
            expected_status=201,
            body=request.to_payload(),
        )

        data = self._json(response, "create pull requests")
        try:
            href = data["links"]["self"][0]["href"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse("create pull requests", "missing links.self[0].href") from e

        return PullRequestResult(url=str(href))
