"""
Shared fixtures: an in-memory Bitbucket Server and resolved access contexts.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from pr_publisher.config import BitbucketServerIntegration
from pr_publisher.models.access import AccessContext, TokenCredentials
from pr_publisher.services.access_resolver import AccessResolver


API_BASE = "https://bitbucket.example.com/rest/api/1.0"
REPO_URL = "bitbucket.example.com?project=PROJ&repo=service"


def branch_payload(name: str, commit: str, is_default: bool = False) -> Dict[str, Any]:
    """Branch JSON as Bitbucket Server returns it."""
    return {
        "id": f"refs/heads/{name}",
        "displayId": name,
        "type": "BRANCH",
        "latestCommit": commit,
        "latestChangeset": commit,
        "isDefault": is_default,
    }


class FakeBitbucketServer:
    """
    Transport double that behaves like one Bitbucket Server repository.

    Branch lookups return every branch whose name contains the filter text,
    like the server's boosted match. Every call is appended to ``calls``.
    """

    def __init__(self, pull_request_status: int = 201):
        self.branches: Dict[str, Dict[str, Any]] = {}
        self.pull_requests: List[Dict[str, Any]] = []
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.pull_request_status = pull_request_status

    def add_branch(self, name: str, commit: str, is_default: bool = False) -> None:
        self.branches[name] = branch_payload(name, commit, is_default)

    def calls_to(self, method: str, suffix: str) -> List[Tuple[str, str, Optional[Dict[str, Any]]]]:
        return [
            call for call in self.calls
            if call[0] == method and urlparse(call[1]).path.endswith(suffix)
        ]

    async def get(self, url: str, headers) -> httpx.Response:
        self.calls.append(("GET", url, None))
        parsed = urlparse(url)
        if parsed.path.endswith("/branches"):
            filter_text = parse_qs(parsed.query).get("filterText", [""])[0]
            values = [
                branch for name, branch in self.branches.items() if filter_text in name
            ]
            return httpx.Response(200, json={"size": len(values), "values": values})
        return httpx.Response(404, text="Not found")

    async def post(self, url: str, headers, body: Dict[str, Any]) -> httpx.Response:
        self.calls.append(("POST", url, body))
        path = urlparse(url).path
        if path.endswith("/branches"):
            name = body["name"]
            if name in self.branches:
                return httpx.Response(409, json={"errors": [{"message": "Branch already exists"}]})
            self.add_branch(name, body["startPoint"])
            return httpx.Response(200, json=self.branches[name])
        if path.endswith("/pull-requests"):
            if self.pull_request_status != 201:
                return httpx.Response(
                    self.pull_request_status,
                    json={"errors": [{"message": "Only one pull request may be open"}]},
                )
            pr_id = len(self.pull_requests) + 1
            self.pull_requests.append(body)
            href = f"https://bitbucket.example.com/projects/PROJ/repos/service/pull-requests/{pr_id}"
            return httpx.Response(201, json={"id": pr_id, "links": {"self": [{"href": href}]}})
        return httpx.Response(404, text="Not found")


@pytest.fixture
def fake_server():
    """Fake Bitbucket Server repository with a master branch at c1."""
    server = FakeBitbucketServer()
    server.add_branch("master", "c1", is_default=True)
    return server


@pytest.fixture
def integration():
    """Token-authenticated integration for bitbucket.example.com."""
    return BitbucketServerIntegration(host="bitbucket.example.com", token="config-token")


@pytest.fixture
def access_resolver(integration):
    return AccessResolver([integration])


@pytest.fixture
def access():
    """Resolved access context for PROJ/service."""
    return AccessContext(
        project="PROJ",
        repo="service",
        host="bitbucket.example.com",
        api_base_url=API_BASE,
        authorization_header="Bearer config-token",
        credentials=TokenCredentials(token="config-token"),
    )
