"""Branch reference data models."""

from typing import Optional

from pydantic import BaseModel, Field


class BranchRef(BaseModel):
    """
    Branch pointer as reported by Bitbucket Server.

    Instances are only built from REST responses (``model_validate``) so
    ``latest_commit`` always reflects the server state when observed. Fields
    the server sends beyond the known ones are kept and echoed back when the
    ref is embedded in a pull request body.
    """

    id: str
    display_id: str = Field(alias="displayId")
    type: Optional[str] = None
    latest_commit: str = Field(alias="latestCommit")
    latest_changeset: Optional[str] = Field(default=None, alias="latestChangeset")
    is_default: Optional[bool] = Field(default=None, alias="isDefault")

    class Config:
        populate_by_name = True
        extra = "allow"
        frozen = True

    def to_payload(self) -> dict:
        """Serialize with the server's field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BranchPair(BaseModel):
    """Target and source refs for a pull request."""

    to_ref: BranchRef
    from_ref: BranchRef
    source_created: bool = False
