"""Access context data models."""

from typing import Optional, Union

from pydantic import BaseModel


class TokenCredentials(BaseModel):
    """Bearer token credential."""

    token: str

    class Config:
        frozen = True


class BasicCredentials(BaseModel):
    """Username/password credential."""

    username: str
    password: str

    class Config:
        frozen = True


Credentials = Union[TokenCredentials, BasicCredentials]


class AccessContext(BaseModel):
    """Resolved endpoint and credentials for one repository."""

    project: str
    repo: str
    host: str
    api_base_url: str
    authorization_header: str
    credentials: Credentials

    class Config:
        frozen = True

    @property
    def remote_url(self) -> str:
        """Git clone/push URL of the repository."""
        return f"https://{self.host}/scm/{self.project}/{self.repo}.git"


class AuthorInfo(BaseModel):
    """Commit author identity."""

    name: Optional[str] = None
    email: Optional[str] = None
