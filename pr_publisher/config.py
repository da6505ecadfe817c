"""
Application configuration management.
"""

from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import List, Optional


class BitbucketServerIntegration(BaseModel):
    """Connection details for one Bitbucket Server host."""

    host: str
    api_base_url: Optional[str] = None
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def resolved_api_base_url(self) -> str:
        """REST API root, derived from the host when not configured."""
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        return f"https://{self.host}/rest/api/1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Bitbucket Server
    bitbucket_server_integrations: List[BitbucketServerIntegration] = []
    http_timeout_seconds: float = 30.0

    # Workflow defaults
    default_author_name: str = "Pull Request Publisher"
    default_author_email: str = "pr-publisher@noreply.local"
    default_commit_message: Optional[str] = None
    default_target_branch: str = "master"

    # Local workspaces; API callers may only publish directories below this root
    workspace_root: str = "/srv/pr-publisher/workspaces"

    # Application
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
