"""Pull request data models."""

from typing import Optional

from pydantic import BaseModel

from pr_publisher.models.branch import BranchRef


class PullRequestRequest(BaseModel):
    """Pull request creation request sent to Bitbucket Server."""

    title: str
    description: Optional[str] = None
    to_ref: BranchRef
    from_ref: BranchRef

    def to_payload(self) -> dict:
        """
        Build the REST body.

        The state fields are fixed: every pull request is opened, never
        closed, with ``locked`` set as the server expects on creation.
        ``description`` is left out entirely when absent.
        """
        payload = {
            "title": self.title,
            "description": self.description,
            "state": "OPEN",
            "open": True,
            "closed": False,
            "locked": True,
            "toRef": self.to_ref.to_payload(),
            "fromRef": self.from_ref.to_payload(),
        }
        if self.description is None:
            del payload["description"]
        return payload


class PullRequestResult(BaseModel):
    """Result of a pull request creation."""

    url: str


class PublishPullRequestInput(BaseModel):
    """API request to publish local changes as a pull request."""

    repo_url: str
    title: str
    description: Optional[str] = None
    target_branch: Optional[str] = None
    source_branch: str
    token: Optional[str] = None
    # Relative to the configured workspace root
    source_dir: str


class PublishPullRequestOutput(BaseModel):
    """API response carrying the created pull request link."""

    pull_request_url: str
